# platforms/store_api.py

from __future__ import annotations

import logging
import threading
import time
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import requests

from digital_goods_uploader.config.settings import (
    CONNECT_TIMEOUT,
    MAX_NETWORK_RETRIES,
    REQUEST_TIMEOUT,
    RETRY_BACKOFF_SECONDS,
    STORE_API_URL,
    UPLOAD_STEP_TIMEOUT,
)
from digital_goods_uploader.core.exceptions import (
    AuthError,
    NetworkError,
    PayloadTooLargeError,
    RequestTimeoutError,
    ServerRejectedError,
    StoreApiError,
)
from digital_goods_uploader.core.product_schema import AdminSession

logger = logging.getLogger(__name__)

# Used when the server issues a token without telling us how long it lives
DEFAULT_SESSION_TTL = timedelta(hours=12)


class Resource:
    """Plain CRUD collection, e.g. /categories, /tags."""

    def __init__(self, client: "StoreApiClient", path: str):
        self.client = client
        self.path = path.strip("/")

    def list(self, **params: Any) -> List[Dict[str, Any]]:
        query = {k: v for k, v in params.items() if v is not None}
        return self.client.request_json("GET", f"/{self.path}", params=query or None)

    def get(self, item_id: int) -> Dict[str, Any]:
        return self.client.request_json("GET", f"/{self.path}/{item_id}")

    def create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return self.client.request_json("POST", f"/{self.path}", json=data)

    def update(self, item_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        return self.client.request_json("PUT", f"/{self.path}/{item_id}", json=data)

    def delete(self, item_id: int) -> Dict[str, Any]:
        return self.client.request_json("DELETE", f"/{self.path}/{item_id}")


class ProductsResource(Resource):
    def get(self, item_id: int) -> Dict[str, Any]:
        # admin=1 includes invisible products and file urls
        return self.client.request_json("GET", f"/{self.path}/{item_id}", params={"admin": 1})

    def upload_image(self, product_id: int, file_path: Path) -> Dict[str, Any]:
        return self.client.upload_file(f"/upload/{product_id}/image", file_path)

    def upload_video(self, product_id: int, file_path: Path) -> Dict[str, Any]:
        return self.client.upload_file(f"/upload/{product_id}/video", file_path)

    def upload_file(self, product_id: int, file_path: Path) -> Dict[str, Any]:
        return self.client.upload_file(f"/upload/{product_id}/file", file_path)


class DevelopersResource(Resource):
    def products(self, developer_id: int) -> List[Dict[str, Any]]:
        return self.client.request_json("GET", f"/{self.path}/{developer_id}/products")


class PartnershipRequestsResource(Resource):
    def accept(self, request_id: int) -> Dict[str, Any]:
        return self.client.request_json("POST", f"/{self.path}/{request_id}/accept")

    def reject(self, request_id: int) -> Dict[str, Any]:
        return self.client.request_json("POST", f"/{self.path}/{request_id}/reject")

    def get_settings(self) -> Dict[str, Any]:
        return self.client.request_json("GET", f"/{self.path}/settings")

    def update_settings(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return self.client.request_json("PUT", f"/{self.path}/settings", json=data)


class StoreApiClient:
    """
    Thin wrapper around the storefront admin REST API.

    JSON calls use REQUEST_TIMEOUT; uploads use UPLOAD_STEP_TIMEOUT because a
    single file may be tens of MB. Only network-class failures are retried,
    with linear backoff. A read timeout is never retried: the server may
    already have stored the upload.
    """

    def __init__(
        self,
        base_url: str = STORE_API_URL,
        admin_session: Optional[AdminSession] = None,
        http: Optional[requests.Session] = None,
        max_retries: int = MAX_NETWORK_RETRIES,
        retry_backoff: float = RETRY_BACKOFF_SECONDS,
        request_timeout: float = REQUEST_TIMEOUT,
        upload_timeout: float = UPLOAD_STEP_TIMEOUT,
        connect_timeout: float = CONNECT_TIMEOUT,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.base_url = base_url.rstrip("/")
        self.admin_session = admin_session
        self.http = http or requests.Session()
        self.max_retries = max_retries
        self.retry_backoff = retry_backoff
        self.request_timeout = request_timeout
        self.upload_timeout = upload_timeout
        self.connect_timeout = connect_timeout
        self._sleep = sleep

        self.products = ProductsResource(self, "products")
        self.categories = Resource(self, "categories")
        self.tags = Resource(self, "tags")
        self.developers = DevelopersResource(self, "developers")
        self.orders = Resource(self, "orders")
        self.faqs = Resource(self, "faqs")
        self.users = Resource(self, "users")
        self.staff = Resource(self, "staff")
        self.partners = Resource(self, "partners")
        self.partnership_requests = PartnershipRequestsResource(self, "partnership-requests")
        self.credit_packages = Resource(self, "credit-packages")
        self.downloads = Resource(self, "downloads")

    # --- Auth ---

    def verify_admin_password(self, password: str) -> Dict[str, Any]:
        return self.request_json("POST", "/auth/admin/verify", json={"password": password})

    def login(self, password: str) -> AdminSession:
        """
        Exchange the admin password for a session token.

        The token is attached as a Bearer header to every later request
        until it expires.
        """
        data = self.verify_admin_password(password)
        token = data.get("token")
        if not data.get("success", True) or not token:
            raise AuthError("Server did not issue an admin session token")

        if data.get("expires_at"):
            expires_at = datetime.fromisoformat(str(data["expires_at"]).replace("Z", "+00:00"))
            if expires_at.tzinfo is None:
                expires_at = expires_at.replace(tzinfo=timezone.utc)
        elif data.get("expires_in"):
            expires_at = datetime.now(timezone.utc) + timedelta(seconds=int(data["expires_in"]))
        else:
            expires_at = datetime.now(timezone.utc) + DEFAULT_SESSION_TTL

        self.admin_session = AdminSession(token=token, expires_at=expires_at)
        logger.info("Admin session issued, expires at %s", expires_at.isoformat())
        return self.admin_session

    # --- Dashboard ---

    def stats(self, period: Optional[str] = None) -> Dict[str, Any]:
        params = {"period": period} if period else None
        return self.request_json("GET", "/stats", params=params)

    def visits(self) -> Dict[str, Any]:
        return self.request_json("GET", "/visits/stats")

    # --- Standalone uploads (category icons, partner logos) ---

    def upload_image(self, file_path: Path) -> Dict[str, Any]:
        return self.upload_file("/upload/image", file_path)

    # --- Transport ---

    def _url(self, path: str) -> str:
        if path.startswith("http"):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    def _headers(self) -> Dict[str, str]:
        if self.admin_session is None:
            return {}
        if self.admin_session.expired:
            raise AuthError("Admin session expired; log in again")
        return {"Authorization": f"Bearer {self.admin_session.token}"}

    def request_json(
        self,
        method: str,
        path: str,
        json: Any = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        url = self._url(path)
        headers = self._headers()

        def send() -> requests.Response:
            return self.http.request(
                method,
                url,
                json=json,
                params=params,
                headers=headers,
                timeout=(self.connect_timeout, self.request_timeout),
            )

        return self._send_with_retry(send, f"{method} {path}", self.request_timeout)

    def upload_file(self, path: str, file_path: Path, field: str = "file") -> Dict[str, Any]:
        """POST a single file as multipart/form-data and return the server's JSON (usually {"url": ...})."""
        url = self._url(path)
        headers = self._headers()
        file_path = Path(file_path)

        def send() -> requests.Response:
            # Reopen on each attempt so a retry sends the whole file again
            with file_path.open("rb") as fh:
                return self.http.post(
                    url,
                    files={field: (file_path.name, fh)},
                    headers=headers,
                    timeout=(self.connect_timeout, self.upload_timeout),
                )

        return self._send_with_retry(send, f"POST {path}", self.upload_timeout)

    @staticmethod
    def _call_with_deadline(send: Callable[[], requests.Response], deadline: float) -> requests.Response:
        """
        Run one attempt in a worker thread and give up after `deadline` seconds.

        The read timeout only bounds each socket read, so a server that
        trickles its response would otherwise hold the step open forever.
        The abandoned worker is a daemon and ends on its own read timeout.
        """
        outcome: Dict[str, Any] = {}

        def target() -> None:
            try:
                outcome["response"] = send()
            except Exception as e:
                outcome["error"] = e

        worker = threading.Thread(target=target, name="store-api-request", daemon=True)
        worker.start()
        worker.join(deadline)
        if worker.is_alive():
            raise requests.exceptions.ReadTimeout(f"no complete response within {deadline:g}s")
        if "error" in outcome:
            raise outcome["error"]
        return outcome["response"]

    def _send_with_retry(
        self,
        send: Callable[[], requests.Response],
        what: str,
        timeout: float,
    ) -> Any:
        attempt = 0
        while True:
            attempt += 1
            try:
                response = self._call_with_deadline(send, timeout)
            except requests.exceptions.ConnectTimeout as e:
                # Nothing reached the server, safe to retry
                self._raise_if_out_of_retries(e, what, attempt)
            except requests.exceptions.Timeout as e:
                raise RequestTimeoutError(
                    f"{what} timed out after {timeout:g}s; it may still have succeeded on the server"
                ) from e
            except requests.exceptions.ConnectionError as e:
                self._raise_if_out_of_retries(e, what, attempt)
            except requests.exceptions.RequestException as e:
                # Bad URL, broken chunked body, redirect loop and the like
                raise StoreApiError(f"{what} failed: {e}") from e
            else:
                return self._parse_response(response)

            delay = self.retry_backoff * attempt
            logger.warning(
                "%s: network error, retry %d/%d in %.1fs",
                what, attempt, self.max_retries, delay,
            )
            self._sleep(delay)

    def _raise_if_out_of_retries(self, error: Exception, what: str, attempt: int) -> None:
        if attempt > self.max_retries:
            raise NetworkError(f"{what} failed: could not reach server ({error})") from error

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get("error"):
            return str(body["error"])
        return response.reason or f"HTTP {response.status_code}"

    def _parse_response(self, response: requests.Response) -> Any:
        status = response.status_code
        if status == 413:
            raise PayloadTooLargeError(
                f"File too large: {self._error_message(response)}", status_code=status
            )
        if status in (401, 403):
            raise AuthError(self._error_message(response), status_code=status)
        if not response.ok:
            raise ServerRejectedError(self._error_message(response), status_code=status)
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise ServerRejectedError(
                f"Unexpected response from server (HTTP {status}, not JSON)", status_code=status
            ) from e
