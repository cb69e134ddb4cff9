# core/product_normalizer.py

from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from digital_goods_uploader.config.settings import MAX_COVER_IMAGES
from digital_goods_uploader.core.exceptions import DraftValidationError
from digital_goods_uploader.core.product_schema import ProductDraft, Visibility


def clean_title(title: Optional[str]) -> str:
    """Collapse newlines and repeated spaces."""
    if not title:
        return ""
    return re.sub(r"\s+", " ", str(title)).strip()


def parse_tags(tags: Union[str, Iterable[str], None]) -> List[str]:
    """
    Accepts "a, b, c" or a list.
    - trims each tag
    - drops empty ones
    - removes case-insensitive duplicates, keeping the first spelling
    """
    if not tags:
        return []
    if isinstance(tags, str):
        tags = tags.split(",")

    cleaned = []
    seen = set()
    for tag in tags:
        tag = str(tag).strip()
        if tag and tag.lower() not in seen:
            cleaned.append(tag)
            seen.add(tag.lower())
    return cleaned


def parse_price_usd(value: Any) -> Decimal:
    if value is None or str(value).strip() == "":
        raise DraftValidationError("Price (USD) is required")
    try:
        price = Decimal(str(value).strip())
    except InvalidOperation:
        raise DraftValidationError(f"Price (USD) is not a number: {value!r}")
    if not price.is_finite() or price < 0:
        raise DraftValidationError(f"Price (USD) must be >= 0, got {value!r}")
    return price


def parse_optional_int(value: Any, field_name: str, minimum: Optional[int] = None) -> Optional[int]:
    """Empty string / None means "not set"."""
    if value is None or str(value).strip() == "":
        return None
    try:
        number = int(str(value).strip())
    except ValueError:
        raise DraftValidationError(f"{field_name} must be a whole number, got {value!r}")
    if minimum is not None and number < minimum:
        raise DraftValidationError(f"{field_name} must be >= {minimum}, got {value!r}")
    return number


def parse_visibility(value: Any) -> Visibility:
    if value is None or str(value).strip() == "":
        return Visibility.VISIBLE
    try:
        return Visibility(str(value).strip().lower())
    except ValueError:
        allowed = ", ".join(v.value for v in Visibility)
        raise DraftValidationError(f"Visibility must be one of {allowed}, got {value!r}")


def normalize_draft(
    fields: Dict[str, Any],
    cover_images: Iterable[Path] = (),
    video: Optional[Path] = None,
    product_files: Iterable[Path] = (),
    source: str = "",
) -> ProductDraft:
    """
    Build a ProductDraft from raw form-like input.

    Args:
        fields: title, price, robux_price, category_id, developer_id,
            description, visibility, tags (comma string or list)
        cover_images: images in display order, first is the main one
        video: optional single video
        product_files: deliverables, at least one
        source: where the draft came from, for reporting

    Returns:
        ProductDraft ready for submission

    Raises:
        DraftValidationError: a required field is missing or malformed
    """
    title = clean_title(fields.get("title") or fields.get("name"))
    if not title:
        raise DraftValidationError("Title is required")

    price_usd = parse_price_usd(fields.get("price", fields.get("price_usd")))
    price_robux = parse_optional_int(
        fields.get("robux_price", fields.get("price_robux")), "Robux price", minimum=0
    )

    category_id = parse_optional_int(fields.get("category_id"), "Category")
    if category_id is None:
        raise DraftValidationError("Category is required")

    developer_id = parse_optional_int(fields.get("developer_id"), "Developer")

    description = str(fields.get("description") or "").strip() or None

    files = [Path(p) for p in product_files]
    if not files:
        raise DraftValidationError(
            "Add at least one product file so customers can download after purchase."
        )

    # The form only keeps the first 9 images
    images = [Path(p) for p in cover_images][:MAX_COVER_IMAGES]

    return ProductDraft(
        title=title,
        price_usd=price_usd,
        price_robux=price_robux,
        category_id=category_id,
        developer_id=developer_id,
        description=description,
        visibility=parse_visibility(fields.get("visibility")),
        tags=parse_tags(fields.get("tags")),
        cover_images=images,
        video=Path(video) if video else None,
        product_files=files,
        source=source,
    )
