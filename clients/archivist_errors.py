"""
Archivist API Error Types — Structured exception hierarchy.

Every failure the client can raise derives from ArchivistError, so the
import pipeline can catch one type per row and keep going. Nothing here is
retried automatically; the types exist so callers can tell an auth problem
from a bad payload from a dead network.
"""

from typing import Optional


class ArchivistError(Exception):
    """Base class for all Archivist client errors."""
    pass


class ArchivistAPIError(ArchivistError):
    """The API answered with a non-2xx status.

    The message is '<status> <reason> - <body>', which is what ends up in
    the row's error detail.
    """

    def __init__(self, status: int, status_text: str = "", body: str = ""):
        self.status = status
        self.status_text = status_text or ""
        self.body = body or ""
        super().__init__(f"{status} {self.status_text} - {self.body}")


class ArchivistAuthError(ArchivistAPIError):
    """API key rejected (401/403). Fix the key in settings."""
    pass


class ArchivistNotFoundError(ArchivistAPIError):
    """Campaign or endpoint does not exist (404)."""
    pass


class ArchivistRateLimitError(ArchivistAPIError):
    """Too many requests (429)."""
    pass


class ArchivistServerError(ArchivistAPIError):
    """The service failed (5xx)."""
    pass


class ArchivistConnectionError(ArchivistError):
    """The service could not be reached at all."""
    pass


class ArchivistTimeoutError(ArchivistError):
    """The transport gave up waiting for a response."""
    pass


class ArchivistResponseError(ArchivistError):
    """A 2xx response whose body does not match the expected schema."""

    def __init__(self, message: str, path: Optional[str] = None):
        self.path = path
        super().__init__(f"Unexpected response from {path}: {message}" if path else message)


def error_for_status(status: int, status_text: str, body: str) -> ArchivistAPIError:
    """Map an HTTP status to the matching error type."""
    if status in (401, 403):
        return ArchivistAuthError(status, status_text, body)
    if status == 404:
        return ArchivistNotFoundError(status, status_text, body)
    if status == 429:
        return ArchivistRateLimitError(status, status_text, body)
    if status >= 500:
        return ArchivistServerError(status, status_text, body)
    return ArchivistAPIError(status, status_text, body)
