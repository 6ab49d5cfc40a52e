"""aiohttp-backed transport."""

from __future__ import annotations

import logging
import threading
from collections.abc import AsyncIterable, AsyncIterator, Iterable
from types import TracebackType
from typing import Any, Optional

import aiohttp

from ..models.config import TransportConfig
from .protocols import HttpOutcome, WireRequest

logger = logging.getLogger(__name__)


async def _iterate(chunks: Iterable[bytes]) -> AsyncIterator[bytes]:
    for chunk in chunks:
        yield chunk


def as_payload(body: Any) -> Any:
    """
    Adapt a wire body to something aiohttp can send.

    Bytes, file objects and async iterables pass through untouched; plain
    iterables of bytes are wrapped in an async generator.
    """
    if body is None or isinstance(body, (bytes, bytearray)):
        return body
    if hasattr(body, "read") or isinstance(body, AsyncIterable):
        return body
    if isinstance(body, Iterable):
        return _iterate(body)
    raise TypeError(f"Unsupported request body type: {type(body).__name__}")


class AiohttpTransport:
    """
    Transport that sends wire requests over one aiohttp session.

    The session is created lazily on first use and shared by all
    concurrent requests; aiohttp sessions are safe for concurrent use
    within one event loop.

    Example:
        async with AiohttpTransport(TransportConfig(read_timeout=60)) as transport:
            outcome = await transport.send(WireRequest("GET", "https://example.com/"))
            print(outcome.status_code)
    """

    def __init__(self, config: Optional[TransportConfig] = None) -> None:
        """
        Initialize the transport.

        Args:
            config: Timeouts, proxy and connection limits (defaults if None)
        """
        self._config = config or TransportConfig()
        self._session: Optional[aiohttp.ClientSession] = None
        self._lock = threading.Lock()

    async def __aenter__(self) -> AiohttpTransport:
        """Enter async context and create session."""
        await self.get_session()
        return self

    async def __aexit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        """Exit async context and close session."""
        await self.close()

    async def get_session(self) -> aiohttp.ClientSession:
        """Return the shared session, creating it on first use."""
        with self._lock:
            if self._session is None or self._session.closed:
                connector = aiohttp.TCPConnector(
                    limit=self._config.connection_limit,
                    limit_per_host=self._config.limit_per_host,
                )
                self._session = aiohttp.ClientSession(
                    connector=connector,
                    timeout=aiohttp.ClientTimeout(
                        sock_connect=self._config.connect_timeout,
                        sock_read=self._config.read_timeout,
                    ),
                )
                logger.debug("Created aiohttp session")
            return self._session

    async def close(self) -> None:
        """Close the session if one is open."""
        with self._lock:
            session, self._session = self._session, None
        if session is not None and not session.closed:
            await session.close()

    async def send(self, request: WireRequest) -> HttpOutcome:
        """
        Perform the request and read the whole response body.

        Args:
            request: Materialized request

        Returns:
            HttpOutcome with status, content and headers

        Raises:
            aiohttp.ClientError: On connection or protocol errors
            asyncio.TimeoutError: On connect/read timeouts
        """
        session = await self.get_session()
        async with session.request(
            request.method,
            request.url,
            headers=request.headers,
            data=as_payload(request.body),
            proxy=self._config.proxy,
            allow_redirects=True,
        ) as response:
            content = await response.read()
            return HttpOutcome(
                status_code=response.status,
                content=content,
                headers=dict(response.headers),
            )

    @property
    def proxy(self) -> Optional[str]:
        return self._config.proxy
