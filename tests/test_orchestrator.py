"""
Tests for the product upload sequence.

Covers:
    - happy path with files only
    - fatal create step
    - mid-sequence failure keeps going
    - re-submission creates a second product
    - timeout / payload-too-large / network failures per step
"""

from unittest.mock import MagicMock

import pytest
import requests

from digital_goods_uploader.core.exceptions import (
    NetworkError,
    PayloadTooLargeError,
    ProductCreateError,
    ServerRejectedError,
)
from digital_goods_uploader.pipeline.orchestrator import (
    CREATE_STEP_LABEL,
    UploadOrchestrator,
    plan_upload_steps,
    submit_product,
)
from digital_goods_uploader.platforms.store_api import StoreApiClient


def _http_client(http, **kwargs):
    return StoreApiClient(base_url="http://api.test", http=http, sleep=lambda s: None, **kwargs)


class TestPlan:
    def test_order_is_images_then_video_then_files(self, make_draft):
        draft = make_draft(images=["a.png", "b.png"], video="demo.mp4", files=["one.zip", "two.zip"])

        steps = plan_upload_steps(draft)

        assert [s.kind for s in steps] == ["image", "image", "video", "file", "file"]
        assert [s.label for s in steps] == [
            "Cover image 1 (a.png)",
            "Cover image 2 (b.png)",
            "Video (demo.mp4)",
            "Product file 1 (one.zip)",
            "Product file 2 (two.zip)",
        ]
        assert steps[1].progress == "Uploading cover image 2 of 2 (b.png)…"

    def test_no_video_step_without_video(self, make_draft):
        steps = plan_upload_steps(make_draft(files=["x.zip"]))
        assert [s.kind for s in steps] == ["file"]


class TestSubmit:
    def test_files_only_all_succeed(self, make_draft, fake_client_factory):
        client = fake_client_factory()
        draft = make_draft(files=["one.zip", "two.rbxm"])

        report = submit_product(client, draft)

        assert report.succeeded
        assert report.failures == []
        assert report.product_id == 101
        assert client.products.calls == [
            ("create", "Jet Fighter Pack"),
            ("file", 101, "one.zip"),
            ("file", 101, "two.rbxm"),
        ]
        assert report.steps[0].label == CREATE_STEP_LABEL
        assert report.steps[-1].url == "product-101/files/two.rbxm"

    def test_create_failure_stops_everything(self, make_draft, fake_client_factory):
        client = fake_client_factory(create_error=ServerRejectedError("Category not found", status_code=400))
        draft = make_draft(images=["a.png"], video="v.mp4", files=["one.zip"])

        with pytest.raises(ProductCreateError) as exc_info:
            submit_product(client, draft)

        assert client.products.calls == [("create", "Jet Fighter Pack")]
        assert "Category not found" in exc_info.value.message
        assert exc_info.value.status_code == 400
        assert isinstance(exc_info.value.__cause__, ServerRejectedError)

    def test_create_without_id_is_fatal(self, make_draft, fake_client_factory):
        client = fake_client_factory()
        client.products.create = lambda payload: {}

        with pytest.raises(ProductCreateError):
            submit_product(client, make_draft())

    def test_one_failed_image_does_not_stop_the_rest(self, make_draft, fake_client_factory):
        client = fake_client_factory(fail={"b.png": ServerRejectedError("Invalid image", status_code=400)})
        draft = make_draft(images=["a.png", "b.png", "c.png"], video="v.mp4", files=["one.zip", "two.zip"])

        report = submit_product(client, draft)

        assert client.products.upload_kinds() == [
            "create", "image", "image", "image", "video", "file", "file",
        ]
        assert not report.succeeded
        assert len(report.failures) == 1
        failure = report.failures[0]
        assert failure.label == "Cover image 2 (b.png)"
        assert failure.error_message == "Invalid image"
        assert failure.ambiguous is False

    def test_every_failure_is_reported_in_order(self, make_draft, fake_client_factory):
        client = fake_client_factory(fail={
            "v.mp4": ServerRejectedError("Unsupported codec"),
            "two.zip": NetworkError("could not reach server"),
        })
        draft = make_draft(images=["a.png"], video="v.mp4", files=["one.zip", "two.zip"])

        report = submit_product(client, draft)

        assert [f.label for f in report.failures] == ["Video (v.mp4)", "Product file 2 (two.zip)"]

    def test_resubmitting_creates_a_second_product(self, make_draft, fake_client_factory):
        # No resume: the partial product stays and a new one is created
        client = fake_client_factory(fail={"one.zip": ServerRejectedError("Storage error")})
        draft = make_draft(files=["one.zip"])

        first = submit_product(client, draft)
        client.products.fail.clear()
        second = submit_product(client, draft)

        assert not first.succeeded
        assert second.succeeded
        assert first.product_id != second.product_id
        assert client.products.created == [first.product_id, second.product_id]
        assert client.products.upload_kinds().count("create") == 2

    def test_progress_messages(self, make_draft, fake_client_factory):
        messages = []
        orchestrator = UploadOrchestrator(fake_client_factory(), on_progress=messages.append)

        orchestrator.submit(make_draft(images=["a.png"], files=["one.zip"]))

        assert messages == [
            "Saving product details…",
            "Uploading cover image 1 of 1 (a.png)…",
            "Uploading file 1 of 1 (one.zip)…",
        ]


class TestStepFailuresOverHttp:
    def test_timeout_is_ambiguous_and_not_retried(self, make_draft, make_response):
        http = MagicMock()
        http.request.return_value = make_response(201, {"id": 7})
        http.post.side_effect = [
            requests.exceptions.ReadTimeout("read timed out"),
            make_response(200, {"url": "product-7/files/two.zip"}),
        ]
        draft = make_draft(files=["one.zip", "two.zip"])

        report = submit_product(_http_client(http), draft)

        assert http.post.call_count == 2  # one attempt per file
        assert len(report.failures) == 1
        failure = report.failures[0]
        assert failure.label == "Product file 1 (one.zip)"
        assert failure.ambiguous is True
        assert "took too long" in failure.error_message
        assert "may still have succeeded" in failure.error_message
        assert report.steps[-1].succeeded

    def test_payload_too_large_is_not_retried(self, make_draft, make_response):
        http = MagicMock()
        http.request.return_value = make_response(201, {"id": 7})
        http.post.return_value = make_response(413, {"error": "Max 100MB per file"})

        report = submit_product(_http_client(http), make_draft(files=["big.zip"]))

        assert http.post.call_count == 1
        assert report.failures[0].error_message == "File too large: Max 100MB per file"
        assert report.failures[0].ambiguous is False

    def test_network_error_retried_then_recorded(self, make_draft, make_response):
        http = MagicMock()
        http.request.return_value = make_response(201, {"id": 7})
        http.post.side_effect = requests.exceptions.ConnectionError("connection reset")

        report = submit_product(_http_client(http, max_retries=2), make_draft(files=["one.zip"]))

        assert http.post.call_count == 3
        assert "could not reach server" in report.failures[0].error_message

    def test_network_error_recovers_on_retry(self, make_draft, make_response):
        http = MagicMock()
        http.request.return_value = make_response(201, {"id": 7})
        http.post.side_effect = [
            requests.exceptions.ConnectionError("connection reset"),
            make_response(200, {"url": "product-7/files/one.zip"}),
        ]

        report = submit_product(_http_client(http), make_draft(files=["one.zip"]))

        assert report.succeeded
        assert http.post.call_count == 2

    def test_missing_local_file_is_a_step_failure(self, make_draft, make_response):
        http = MagicMock()
        http.request.return_value = make_response(201, {"id": 7})
        http.post.return_value = make_response(200, {"url": "x"})
        draft = make_draft(files=["one.zip", "two.zip"])
        draft.product_files[0].unlink()

        report = submit_product(_http_client(http), draft)

        assert [f.label for f in report.failures] == ["Product file 1 (one.zip)"]
        assert http.post.call_count == 1

    def test_create_over_http_failure(self, make_draft, make_response):
        http = MagicMock()
        http.request.return_value = make_response(400, {"error": "name is required"})

        with pytest.raises(ProductCreateError, match="name is required"):
            submit_product(_http_client(http), make_draft())
        http.post.assert_not_called()

    def test_create_with_html_body_is_a_create_error(self, make_draft, make_response):
        http = MagicMock()
        http.request.return_value = make_response(200, raw=b"<html>proxy</html>")

        with pytest.raises(ProductCreateError, match="not JSON"):
            submit_product(_http_client(http), make_draft())
        http.post.assert_not_called()

    def test_create_with_bad_url_is_a_create_error(self, make_draft):
        http = MagicMock()
        http.request.side_effect = requests.exceptions.MissingSchema("No scheme supplied")

        with pytest.raises(ProductCreateError, match="No scheme supplied"):
            submit_product(_http_client(http), make_draft())

    def test_payload_too_large_type_on_client(self, make_draft, make_response, tmp_path):
        http = MagicMock()
        http.post.return_value = make_response(413, raw=b"<html>413</html>", reason="Request Entity Too Large")
        path = tmp_path / "x.bin"
        path.write_bytes(b"x")

        with pytest.raises(PayloadTooLargeError, match="Request Entity Too Large"):
            _http_client(http).products.upload_file(1, path)
