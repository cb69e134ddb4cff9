# pipeline/orchestrator.py

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional

from digital_goods_uploader.core.exceptions import (
    ProductCreateError,
    RequestTimeoutError,
    StoreApiError,
)
from digital_goods_uploader.core.product_schema import ProductDraft, StepResult, SubmissionReport
from digital_goods_uploader.platforms.store_api import StoreApiClient

logger = logging.getLogger(__name__)

CREATE_STEP_LABEL = "Create product (details)"


@dataclass(frozen=True)
class UploadStep:
    """One binary upload against the created product."""

    kind: str  # "image" / "video" / "file"
    label: str
    progress: str
    path: Path


def plan_upload_steps(draft: ProductDraft) -> List[UploadStep]:
    """
    All uploads for a draft, in execution order:
    cover images, then the video, then the product files.
    """
    steps: List[UploadStep] = []

    total = len(draft.cover_images)
    for i, path in enumerate(draft.cover_images, start=1):
        steps.append(UploadStep(
            kind="image",
            label=f"Cover image {i} ({path.name})",
            progress=f"Uploading cover image {i} of {total} ({path.name})…",
            path=path,
        ))

    if draft.video is not None:
        steps.append(UploadStep(
            kind="video",
            label=f"Video ({draft.video.name})",
            progress=f"Uploading video ({draft.video.name})…",
            path=draft.video,
        ))

    total = len(draft.product_files)
    for i, path in enumerate(draft.product_files, start=1):
        steps.append(UploadStep(
            kind="file",
            label=f"Product file {i} ({path.name})",
            progress=f"Uploading file {i} of {total} ({path.name})…",
            path=path,
        ))

    return steps


def _error_text(error: Exception) -> str:
    if isinstance(error, StoreApiError):
        return error.message
    return str(error) or error.__class__.__name__


class UploadOrchestrator:
    """
    Create a product, then upload its media one step at a time.

    Only the create step is fatal (ProductCreateError). Every upload step
    is attempted regardless of earlier failures and gets a StepResult.
    Nothing is rolled back: a failed upload leaves the product partially
    uploaded, and submitting the same draft again creates a new product.
    """

    def __init__(
        self,
        client: StoreApiClient,
        on_progress: Optional[Callable[[str], None]] = None,
    ):
        self.client = client
        self.on_progress = on_progress

    def _progress(self, message: str) -> None:
        logger.info(message)
        if self.on_progress:
            self.on_progress(message)

    def _create_product(self, draft: ProductDraft) -> int:
        self._progress("Saving product details…")
        try:
            created = self.client.products.create(draft.to_create_payload())
        except StoreApiError as e:
            raise ProductCreateError(
                f"{CREATE_STEP_LABEL}: {e.message}", status_code=e.status_code
            ) from e

        product_id = created.get("id") if isinstance(created, dict) else None
        if product_id is None:
            raise ProductCreateError(f"{CREATE_STEP_LABEL}: server response has no product id")
        logger.info("Created product %s (%s)", product_id, draft.title)
        return product_id

    def _upload(self, product_id: int, step: UploadStep) -> dict:
        uploads = {
            "image": self.client.products.upload_image,
            "video": self.client.products.upload_video,
            "file": self.client.products.upload_file,
        }
        return uploads[step.kind](product_id, step.path)

    def _run_step(self, product_id: int, step: UploadStep) -> StepResult:
        self._progress(step.progress)
        try:
            response = self._upload(product_id, step)
        except RequestTimeoutError:
            message = f"{step.label} took too long; request may still have succeeded. Check the product list."
            logger.warning(message)
            return StepResult(step.label, step.kind, False, error_message=message, ambiguous=True)
        except (StoreApiError, OSError) as e:
            # OSError: the local file vanished or is unreadable
            logger.warning("%s failed: %s", step.label, _error_text(e))
            return StepResult(step.label, step.kind, False, error_message=_error_text(e))

        url = response.get("url") if isinstance(response, dict) else None
        return StepResult(step.label, step.kind, True, url=url)

    def submit(self, draft: ProductDraft) -> SubmissionReport:
        """
        Args:
            draft: validated draft (at least one product file, category set)

        Returns:
            SubmissionReport; report.failures lists every failed upload step

        Raises:
            ProductCreateError: the product record could not be created
        """
        product_id = self._create_product(draft)
        report = SubmissionReport(
            product_id=product_id,
            steps=[StepResult(CREATE_STEP_LABEL, "create", True)],
        )

        for step in plan_upload_steps(draft):
            report.steps.append(self._run_step(product_id, step))

        failures = report.failures
        if failures:
            logger.warning(
                "Product %s created but %d step(s) failed", product_id, len(failures)
            )
        else:
            logger.info("Product %s fully uploaded (%d steps)", product_id, len(report.steps))
        return report


def submit_product(
    client: StoreApiClient,
    draft: ProductDraft,
    on_progress: Optional[Callable[[str], None]] = None,
) -> SubmissionReport:
    return UploadOrchestrator(client, on_progress=on_progress).submit(draft)
