from typing import Optional


class EdoError(Exception):
    """Base exception for all uploader errors."""


class ValidationError(EdoError):
    """Raised when input is missing or malformed. Always detected before any remote call."""

    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field


class UpstreamError(EdoError):
    """Raised when the remote service answers with an error status or error payload."""

    def __init__(self, status: int, message: str):
        super().__init__(message)
        self.status = status
        self.message = message

    @property
    def status_code(self) -> int:
        # Successful upstream status carrying an error payload still maps to a gateway error
        return self.status if self.status >= 400 else 502


class MalformedResponseError(EdoError):
    """Raised when a response body is not the expected JSON. Callers keep the raw text."""

    def __init__(self, message: str, raw_body: str):
        super().__init__(message)
        self.message = message
        self.raw_body = raw_body
