# core/folder_utils.py

from __future__ import annotations

import json
import logging
import mimetypes
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from digital_goods_uploader.core.exceptions import DraftValidationError
from digital_goods_uploader.core.folder_context import FolderContext

logger = logging.getLogger(__name__)

DETAILS_FILE = "product.json"
IMAGES_DIR = "images"
VIDEO_DIR = "video"
FILES_DIR = "files"


def parse_folder_name(name: str) -> Tuple[str, Optional[float]]:
    """
    Parse a draft folder name, convention:
      {title}_{price}

    e.g.
      "Jet Fighter Pack_4.99"  -> ("Jet Fighter Pack", 4.99)
      "Map Bundle"             -> ("Map Bundle", None)

    Returns: (title, price_float_or_None)
    """
    name = name.strip()
    base_part, sep, price_part = name.rpartition("_")
    if not sep:
        return name, None

    try:
        price = float(price_part.strip())
    except ValueError:
        # "_" belongs to the title
        return name, None
    return base_part.strip(), price


def guess_kind(path: Path) -> str:
    """Return "image", "video" or "other" based on the mime type."""
    mime, _ = mimetypes.guess_type(path.name)
    mime = mime or ""
    if mime.startswith("image/"):
        return "image"
    if mime.startswith("video/"):
        return "video"
    return "other"


def _list_files(folder: Path) -> List[Path]:
    if not folder.is_dir():
        return []
    return sorted(
        (p for p in folder.iterdir() if p.is_file() and not p.name.startswith(".")),
        key=lambda p: p.name.lower(),
    )


def classify_files(files: List[Path]) -> Dict[str, List[Path]]:
    """Split loose files into images / videos / others."""
    result: Dict[str, List[Path]] = {"image": [], "video": [], "other": []}
    for f in files:
        result[guess_kind(f)].append(f)
    return result


def read_details(folder: Path) -> Dict:
    details_path = folder / DETAILS_FILE
    if not details_path.exists():
        return {}
    try:
        with details_path.open("r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise DraftValidationError(f"{details_path} is not valid JSON: {e}")
    if not isinstance(data, dict):
        raise DraftValidationError(f"{details_path} must contain a JSON object")
    return data


def scan_draft_folder(folder: Path) -> FolderContext:
    """
    Read a draft folder laid out as:

        <title>_<price>/
            product.json    scalar fields (optional if the name carries title/price)
            images/         cover images, sorted by name, first is the main one
            video/          at most one video (or a video file at the top level)
            files/          deliverables

    Loose top-level files that are not product.json are classified by type.
    """
    folder = Path(folder)
    if not folder.is_dir():
        raise DraftValidationError(f"Draft folder not found: {folder}")

    title, price = parse_folder_name(folder.name)
    fields = read_details(folder)

    loose = classify_files([p for p in _list_files(folder) if p.name != DETAILS_FILE])

    images = _list_files(folder / IMAGES_DIR) or loose["image"]
    videos = _list_files(folder / VIDEO_DIR) or loose["video"]
    files = _list_files(folder / FILES_DIR) or loose["other"]

    if len(videos) > 1:
        logger.warning("%s: %d videos found, only %s is used", folder.name, len(videos), videos[0].name)

    return FolderContext(
        folder_path=folder,
        folder_name=folder.name,
        title_from_name=title,
        price_from_name=price,
        fields=fields,
        image_files=images,
        video_file=videos[0] if videos else None,
        product_files=files,
    )
