# pipeline/loader.py

import logging
from pathlib import Path
from typing import List

from digital_goods_uploader.core.state_store import StateStore

logger = logging.getLogger(__name__)


def draft_key(folder: Path) -> str:
    """State store key of a draft folder."""
    return str(Path(folder).resolve())


def find_new_draft_folders(inbox: Path, state: StateStore) -> List[Path]:
    """
    Sub-folders of `inbox` that have no record in the state store yet,
    sorted by name.
    """
    inbox = Path(inbox)
    if not inbox.is_dir():
        raise FileNotFoundError(f"Inbox folder not found: {inbox}")

    all_folders = sorted(
        (p for p in inbox.iterdir() if p.is_dir() and not p.name.startswith(".")),
        key=lambda p: p.name.lower(),
    )
    known = state.get_known_draft_keys()

    new_folders = [f for f in all_folders if draft_key(f) not in known]
    logger.debug(
        "%d folder(s) in %s, %d already recorded, %d new",
        len(all_folders), inbox, len(all_folders) - len(new_folders), len(new_folders),
    )
    return new_folders
