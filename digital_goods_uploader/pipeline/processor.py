# pipeline/processor.py

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Any, List, Optional

from digital_goods_uploader.config.settings import TEMP_DIR
from digital_goods_uploader.core.exceptions import DraftValidationError, ProductCreateError
from digital_goods_uploader.core.folder_utils import scan_draft_folder
from digital_goods_uploader.core.image_crop import prepare_cover_image
from digital_goods_uploader.core.product_normalizer import normalize_draft
from digital_goods_uploader.core.product_schema import ProductDraft, SubmissionReport
from digital_goods_uploader.core.state_store import StateStore
from digital_goods_uploader.pipeline.loader import draft_key
from digital_goods_uploader.pipeline.orchestrator import CREATE_STEP_LABEL, submit_product
from digital_goods_uploader.platforms.store_api import StoreApiClient

logger = logging.getLogger(__name__)


def build_draft(folder: Path, crop: bool = True) -> ProductDraft:
    """
    Turn a draft folder into a validated ProductDraft.

    Fields from product.json win; title and price fall back to the
    folder name. Cover images are cropped to 16:10 unless crop=False.
    """
    ctx = scan_draft_folder(folder)

    fields: Dict[str, Any] = dict(ctx.fields)
    if not (fields.get("title") or fields.get("name")):
        fields["title"] = ctx.title_from_name
    has_price = any(fields.get(k) not in (None, "") for k in ("price", "price_usd"))
    if not has_price and ctx.price_from_name is not None:
        fields["price"] = ctx.price_from_name

    crop_dir = TEMP_DIR / ctx.folder_name
    # Numbered so cover.png and cover.jpg do not land on the same file
    images = [
        prepare_cover_image(p, skip=not crop, output_dir=crop_dir, output_name=f"{i:02d}_{p.stem}.jpg")
        for i, p in enumerate(ctx.image_files, start=1)
    ]

    return normalize_draft(
        fields,
        cover_images=images,
        video=ctx.video_file,
        product_files=ctx.product_files,
        source=str(ctx.folder_path),
    )


def print_report(report: SubmissionReport) -> None:
    failures = report.failures
    if not failures:
        print(f"✅ Product {report.product_id} created, {len(report.steps)} step(s) succeeded")
        return

    print(f"❌ {len(failures)} step(s) failed for product {report.product_id}. Fix and submit again:")
    for step in failures:
        marker = " (may have succeeded)" if step.ambiguous else ""
        print(f"   {step.label} → {step.error_message}{marker}")


def process_draft_folder(
    client: StoreApiClient,
    state: StateStore,
    folder: Path,
    crop: bool = True,
) -> Optional[SubmissionReport]:
    """
    Submit one draft folder and record the outcome in the state store.

    Returns the report, or None when the draft was invalid or the
    product could not be created.
    """
    folder = Path(folder)
    key = draft_key(folder)
    print(f"\n🗂 Draft: {folder.name}")

    try:
        draft = build_draft(folder, crop=crop)
    except DraftValidationError as e:
        print(f"❌ Invalid draft: {e}")
        state.mark_draft_status(
            key, folder.name, "failed",
            failures=[{"label": "Validate draft", "error_message": str(e)}],
        )
        return None

    print(
        f"📝 {draft.title}: {len(draft.cover_images)} image(s), "
        f"{'1 video, ' if draft.video else ''}{len(draft.product_files)} file(s)"
    )

    try:
        report = submit_product(client, draft, on_progress=lambda msg: print(f"   ⬆️ {msg}"))
    except ProductCreateError as e:
        print(f"❌ {e.message}")
        state.mark_draft_status(
            key, folder.name, "failed",
            failures=[{"label": CREATE_STEP_LABEL, "error_message": e.message}],
        )
        return None

    state.record_report(key, folder.name, report)
    print_report(report)
    return report


def process_pending_drafts(
    client: StoreApiClient,
    state: StateStore,
    crop: bool = True,
) -> List[Optional[SubmissionReport]]:
    """Submit every draft whose status is still "pending"."""
    pending = state.list_unfinished_drafts(status_filter=["pending"])
    if not pending:
        print("✅ No pending drafts.")
        return []

    print(f"🔍 {len(pending)} pending draft(s)")
    return [process_draft_folder(client, state, Path(key), crop=crop) for key in pending]
