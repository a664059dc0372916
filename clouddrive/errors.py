"""Errors raised by clouddrive and the mapping from HTTP statuses onto them."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


class CloudDriveError(Exception):
    """
    Root of every error clouddrive raises.

    ``details`` carries structured context (status code, server message,
    method and path); ``cause`` is the lower-level exception, if any.
    """

    def __init__(
        self,
        message: str,
        *,
        details: Optional[dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.details = details or {}
        self.cause = cause

    @property
    def status_code(self) -> Optional[int]:
        return self.details.get("status_code")


class InvalidStateError(CloudDriveError):
    """A component was used before it was ready (no session bound, hydrate repeated)."""


class InvalidArgumentError(CloudDriveError):
    """Rejected input, either locally or by the server (400)."""


class AuthError(CloudDriveError):
    """The server no longer accepts the credential (401)."""


class NotFoundError(CloudDriveError):
    """The item, or the identity behind the credential, is gone (404)."""


class NetworkError(CloudDriveError):
    """No usable response: connection, timeout, decoding or redirect failure."""


class ApiError(CloudDriveError):
    """Any other error status, or a body that does not have the expected shape."""


_STATUS_ERRORS: dict[int, type[CloudDriveError]] = {
    400: InvalidArgumentError,
    401: AuthError,
    404: NotFoundError,
}


@dataclass(frozen=True)
class HttpErrorInfo:
    status_code: int
    message: str | None = None
    details: dict[str, Any] | None = None


def map_http_error(info: HttpErrorInfo, *, cause: Optional[BaseException] = None) -> CloudDriveError:
    """
    Build the exception for an error response.

    400, 401 and 404 get their own classes because callers react to them
    differently; every other status is an ``ApiError``. The server's own
    message, when it sent one, becomes the exception text and is kept under
    ``details["server_message"]``.
    """
    details: dict[str, Any] = {"status_code": info.status_code}
    if info.message:
        details["server_message"] = info.message
    details.update(info.details or {})

    error_cls = _STATUS_ERRORS.get(info.status_code, ApiError)
    return error_cls(info.message or f"HTTP error {info.status_code}", details=details, cause=cause)


def user_message(exc: CloudDriveError, fallback: str) -> str:
    server_message = exc.details.get("server_message")
    if isinstance(server_message, str) and server_message.strip():
        return server_message
    return fallback
