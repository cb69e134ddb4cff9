from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import List, Dict, Any, Optional


class Visibility(str, Enum):
    VISIBLE = "visible"
    INVISIBLE = "invisible"
    UNLISTED = "unlisted"


@dataclass
class ProductDraft:
    """Product data collected before submission (nothing exists server-side yet)"""

    title: str
    price_usd: Decimal
    category_id: int
    price_robux: Optional[int] = None
    developer_id: Optional[int] = None
    description: Optional[str] = None
    visibility: Visibility = Visibility.VISIBLE
    tags: List[str] = field(default_factory=list)

    # First cover image is the main one
    cover_images: List[Path] = field(default_factory=list)
    video: Optional[Path] = None
    # Deliverables sent to the customer after purchase
    product_files: List[Path] = field(default_factory=list)

    # Where the draft was loaded from (folder path), if anywhere
    source: str = ""

    def to_create_payload(self) -> Dict[str, Any]:
        """Scalar fields in the shape POST /products expects."""
        payload: Dict[str, Any] = {
            "name": self.title,
            "price": float(self.price_usd),
            "robux_price": self.price_robux,
            "category_id": self.category_id,
            "visibility": self.visibility.value,
            "tags": list(self.tags),
            "developer_id": self.developer_id,
        }
        if self.description:
            payload["description"] = self.description
        return payload


@dataclass
class StepResult:
    """Outcome of one network operation in a submission."""

    label: str
    kind: str  # "create" / "image" / "video" / "file"
    succeeded: bool
    error_message: Optional[str] = None
    # True when the step timed out and may have completed on the server anyway
    ambiguous: bool = False
    url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "label": self.label,
            "kind": self.kind,
            "succeeded": self.succeeded,
            "error_message": self.error_message,
            "ambiguous": self.ambiguous,
            "url": self.url,
        }


@dataclass
class SubmissionReport:
    product_id: int
    steps: List[StepResult] = field(default_factory=list)

    @property
    def failures(self) -> List[StepResult]:
        return [s for s in self.steps if not s.succeeded]

    @property
    def succeeded(self) -> bool:
        return not self.failures


@dataclass
class AdminSession:
    """Server-issued admin token. Expiry is checked client-side before each use."""

    token: str
    expires_at: datetime

    @property
    def expired(self) -> bool:
        return datetime.now(timezone.utc) >= self.expires_at

    def to_dict(self) -> Dict[str, Any]:
        return {"token": self.token, "expires_at": self.expires_at.isoformat()}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AdminSession":
        expires_at = datetime.fromisoformat(data["expires_at"])
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return cls(token=data["token"], expires_at=expires_at)
