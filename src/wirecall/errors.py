"""Error types raised by the request executor."""

from __future__ import annotations

from typing import Optional


class NetworkError(Exception):
    """Base class for all errors raised by wirecall."""


class NonRetriableError(Exception):
    """
    Marker base for errors the default retry policy must never retry.

    Application errors (business rule violations, validation failures
    decoded from an error body) can inherit from this alongside their own
    base class to opt out of automatic retries.
    """


class RequestConstructionError(NetworkError, NonRetriableError):
    """The request could not be turned into a wire request. Never dispatched."""


class InvalidURLError(RequestConstructionError):
    """Path traversal, malformed path, or a failed URL/query composition."""


class ConflictingBodyTypesError(RequestConstructionError):
    """Both a body and a multipart payload were set on the same request."""

    def __init__(self, message: str = "Request sets both body and multipart payload") -> None:
        super().__init__(message)


class InvalidMultipartEncodingError(RequestConstructionError):
    """Multipart header metadata cannot be represented on the wire."""


class InvalidEncodingError(RequestConstructionError):
    """A request body could not be encoded."""


class EmptyResponseError(NetworkError):
    """Success status with an empty body and no empty-response handler."""


class InvalidResponseError(NetworkError):
    """Response metadata was missing or not what was expected."""


class UnauthorizedError(NetworkError, NonRetriableError):
    """HTTP 401 with retry disallowed, or after the single refresh attempt."""

    def __init__(self, message: str = "Unauthorized (HTTP 401)") -> None:
        super().__init__(message)


class RequestCancelledError(NetworkError, NonRetriableError):
    """A cancellation token was triggered while the request was in flight."""

    def __init__(self, message: str = "Request was cancelled") -> None:
        super().__init__(message)


class HTTPError(NetworkError):
    """
    Non-2xx response that no custom error decoder claimed.

    Attributes:
        status_code: HTTP status code
        data: Raw response body (may be empty)
        headers: Response headers
    """

    def __init__(
        self,
        status_code: int,
        data: Optional[bytes] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> None:
        self.status_code = status_code
        self.data = data or b""
        self.headers = dict(headers or {})
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        message = f"HTTP {self.status_code}"
        if self.data:
            preview = self.data[:200].decode("utf-8", errors="replace")
            message = f"{message}: {preview}"
        return message
