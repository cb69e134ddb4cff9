"""
Errors raised by the store API client and the upload pipeline.

Retry decisions are made on the exception type, never on message text:
only NetworkError is retriable.
"""

from __future__ import annotations

from typing import Optional


class StoreApiError(RuntimeError):
    """Base class for every failure talking to the store API."""

    retriable = False

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class NetworkError(StoreApiError):
    """The request never got a response (connection refused/reset, DNS, connect timeout)."""

    retriable = True


class RequestTimeoutError(StoreApiError):
    """The response did not arrive in time. The server may still have finished the write."""

    ambiguous = True


class PayloadTooLargeError(StoreApiError):
    """HTTP 413."""


class ServerRejectedError(StoreApiError):
    """Any other non-2xx answer; message is passed through from the server."""


class AuthError(StoreApiError):
    """Admin login failed or the session is missing/expired."""


class ProductCreateError(StoreApiError):
    """The create-record step failed, so nothing was uploaded."""


class DraftValidationError(ValueError):
    """A draft is missing a required field or has a malformed one."""


__all__ = [
    "AuthError",
    "DraftValidationError",
    "NetworkError",
    "PayloadTooLargeError",
    "ProductCreateError",
    "RequestTimeoutError",
    "ServerRejectedError",
    "StoreApiError",
]
