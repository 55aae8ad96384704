"""
Error taxonomy for the tmail client.

Every public operation either returns its documented value or raises one of
these. ``code`` is stable and machine-readable; ``status_code`` is set when the
failure came from an HTTP response.
"""

from __future__ import annotations
from typing import Optional


class TmailError(Exception):
    """Base class for all client errors."""

    code = "TMAIL_ERROR"

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r}, status_code={self.status_code!r})"


class TokenAcquisitionFailed(TmailError):
    """Raised when the session token/cookie pair cannot be scraped."""
    code = "TOKEN_FAILED"


class InvalidCredentials(TmailError):
    """Raised on HTTP 419: the remote session is no longer usable."""
    code = "INVALID_CREDENTIALS"


class HttpError(TmailError):
    """Raised on any other non-2xx response."""
    code = "HTTP_ERROR"


class RequestFailed(TmailError):
    """Raised when transport-level retries are exhausted."""
    code = "REQUEST_FAILED"


class InvalidResponse(TmailError):
    """Raised when a successful response has an unexpected body."""
    code = "INVALID_RESPONSE"


class EmailNotSet(TmailError):
    """Raised when an inbox operation runs before an address was generated."""
    code = "EMAIL_NOT_SET"


class MessageIdNotSet(TmailError):
    """Raised when a body fetch is requested without a message id."""
    code = "MESSAGE_ID_NOT_SET"
