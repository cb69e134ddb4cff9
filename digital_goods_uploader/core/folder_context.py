# core/folder_context.py

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Dict, Any, Optional


@dataclass
class FolderContext:
    """Raw contents of a local draft folder, before normalization"""

    folder_path: Path
    folder_name: str

    # Parsed from the folder name
    title_from_name: str = ""
    price_from_name: Optional[float] = None

    # product.json contents (may be empty)
    fields: Dict[str, Any] = field(default_factory=dict)

    image_files: List[Path] = field(default_factory=list)
    video_file: Optional[Path] = None
    product_files: List[Path] = field(default_factory=list)
