"""Protocol definitions for the transport abstraction."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, Protocol


@dataclass(frozen=True)
class WireRequest:
    """
    Fully materialized request ready for dispatch.

    Attributes:
        method: HTTP method name ("GET", "POST", ...)
        url: Absolute URL including the query string
        headers: Final request headers
        body: Encoded bytes, a stream source, or None
    """

    method: str
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    body: Optional[Any] = None

    @property
    def content_length(self) -> Optional[int]:
        """Known body length, or None for streams and unset lengths."""
        if isinstance(self.body, (bytes, bytearray)):
            return len(self.body)
        value = self.headers.get("Content-Length")
        return int(value) if value and value.isdigit() else None


@dataclass(frozen=True)
class HttpOutcome:
    """
    Uniform result of a dispatch, direct or progress-tracked.

    Attributes:
        status_code: HTTP status code
        content: Raw response body
        headers: Response headers
    """

    status_code: int
    content: bytes
    headers: dict[str, str]

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300


class Transport(Protocol):
    """
    Protocol for HTTP transports.

    Implementations perform the byte-level I/O and must be safe to call
    from many concurrent requests. Cancelling the awaiting task must
    abort the in-flight call.
    """

    async def send(self, request: WireRequest) -> HttpOutcome:
        """
        Send a wire request.

        Args:
            request: Materialized request

        Returns:
            HttpOutcome with status, body and headers

        Raises:
            Exception on network errors
        """
        ...


class TokenRefresher(Protocol):
    """
    Protocol for access-token renewal.

    Called at most once per logical request, after a 401 response.
    """

    async def refresh_token_if_needed(self) -> None:
        """
        Refresh the access token.

        Raises:
            Exception if the token could not be refreshed
        """
        ...


class ProgressExecutor(Protocol):
    """Protocol for dispatchers that report transfer progress."""

    async def execute(self, request: WireRequest, progress: Any) -> HttpOutcome:
        ...
