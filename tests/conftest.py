"""
Shared fixtures: a fake products API, HTTP response builder, draft files.
"""

import json
import os
import tempfile
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, List, Optional

# Keep settings from touching the real home directory
os.environ.setdefault("DATA_DIR", tempfile.mkdtemp(prefix="dgu-test-"))

import pytest
import requests
from PIL import Image

from digital_goods_uploader.core.product_schema import ProductDraft


# ============================================================================
# Fake API
# ============================================================================


class FakeProducts:
    """Records every call; uploads fail for file names listed in `fail`."""

    def __init__(self, fail: Optional[Dict[str, Exception]] = None, create_error: Optional[Exception] = None):
        self.fail = fail or {}
        self.create_error = create_error
        self.calls: List[tuple] = []
        self.created: List[int] = []
        self._next_id = 100

    def create(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        self.calls.append(("create", payload["name"]))
        if self.create_error:
            raise self.create_error
        self._next_id += 1
        self.created.append(self._next_id)
        return {"id": self._next_id}

    def _upload(self, kind: str, product_id: int, path: Path) -> Dict[str, Any]:
        self.calls.append((kind, product_id, path.name))
        error = self.fail.get(path.name)
        if error:
            raise error
        return {"url": f"product-{product_id}/{kind}s/{path.name}"}

    def upload_image(self, product_id, path):
        return self._upload("image", product_id, path)

    def upload_video(self, product_id, path):
        return self._upload("video", product_id, path)

    def upload_file(self, product_id, path):
        return self._upload("file", product_id, path)

    def upload_kinds(self) -> List[str]:
        return [c[0] for c in self.calls]


class FakeClient:
    def __init__(self, **kwargs):
        self.products = FakeProducts(**kwargs)


@pytest.fixture
def fake_client_factory():
    return FakeClient


# ============================================================================
# HTTP helpers
# ============================================================================


@pytest.fixture
def make_response():
    def _make(status: int = 200, body: Any = None, reason: str = "", raw: Optional[bytes] = None):
        response = requests.Response()
        response.status_code = status
        response.reason = reason
        if raw is not None:
            response._content = raw
        else:
            response._content = json.dumps(body).encode() if body is not None else b""
            response.headers["Content-Type"] = "application/json"
        return response
    return _make


# ============================================================================
# Files
# ============================================================================


def write_image(path: Path, size=(800, 600), mode="RGB", color=(200, 30, 30)) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    if mode == "RGBA":
        color = color + (128,)
    Image.new(mode, size, color).save(path)
    return path


def write_bytes(path: Path, data: bytes = b"payload") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    return path


@pytest.fixture
def make_draft(tmp_path):
    """Draft whose media files exist on disk."""

    def _make(images=(), video=None, files=("pack.zip",), **overrides) -> ProductDraft:
        media = tmp_path / "media"
        fields = {
            "title": "Jet Fighter Pack",
            "price_usd": Decimal("4.99"),
            "category_id": 3,
        }
        fields.update(overrides)
        return ProductDraft(
            cover_images=[write_bytes(media / name, b"img") for name in images],
            video=write_bytes(media / video, b"vid") if video else None,
            product_files=[write_bytes(media / name, b"file") for name in files],
            **fields,
        )

    return _make
