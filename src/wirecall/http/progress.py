"""Progress-tracked transfers multiplexed over one shared session."""

from __future__ import annotations

import asyncio
import itertools
import logging
import threading
from collections.abc import AsyncIterable, AsyncIterator, Awaitable, Iterable
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

import aiohttp

from ..errors import InvalidResponseError
from ..models.config import TransportConfig
from .protocols import HttpOutcome, WireRequest

logger = logging.getLogger(__name__)

ProgressObserver = Callable[[float], None]
SessionProvider = Callable[[], Awaitable[aiohttp.ClientSession]]

DEFAULT_CHUNK_SIZE = 64 * 1024


class NetworkProgress:
    """
    Observable fraction-completed value for one transfer.

    Updates are marshaled onto ``loop`` when one is given, so observers
    bound to a specific event loop (a UI loop, for instance) only ever see
    mutations from that loop. Marshaling is fire-and-forget.

    Example:
        progress = NetworkProgress()
        progress.add_observer(lambda f: print(f"{f:.0%}"))
        await manager.send(UploadRequest(file_bytes, progress=progress))
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self.fraction_completed: float = 0.0
        self._loop = loop
        self._observers: list[ProgressObserver] = []

    def add_observer(self, observer: ProgressObserver) -> None:
        self._observers.append(observer)

    def update(self, fraction: float) -> None:
        """Schedule a new fraction on the sink's execution context."""
        fraction = min(max(fraction, 0.0), 1.0)
        loop = self._loop
        if loop is None or _is_current_loop(loop):
            self._apply(fraction)
            return
        try:
            loop.call_soon_threadsafe(self._apply, fraction)
        except RuntimeError:
            logger.debug("Progress loop closed, dropping update %.3f", fraction)

    def _apply(self, fraction: float) -> None:
        self.fraction_completed = fraction
        for observer in list(self._observers):
            observer(fraction)


def _is_current_loop(loop: asyncio.AbstractEventLoop) -> bool:
    try:
        return asyncio.get_running_loop() is loop
    except RuntimeError:
        return False


@dataclass
class ProgressTaskContext:
    """
    Registry entry for one in-flight progress-tracked transfer.

    Attributes:
        task_id: Dispatcher-assigned transfer identifier
        progress: Caller's progress sink
        future: Resolved with the HttpOutcome or the transfer error
        loop: Loop owning ``future``
        data: Accumulated response bytes
        status_code: Response status, once headers arrive
        headers: Response headers, once they arrive
    """

    task_id: int
    progress: NetworkProgress
    future: asyncio.Future
    loop: asyncio.AbstractEventLoop
    data: bytearray = field(default_factory=bytearray)
    status_code: Optional[int] = None
    headers: dict[str, str] = field(default_factory=dict)


class ProgressDispatcher:
    """
    Shared dispatcher for transfers that report upload/download progress.

    All transfers go through one long-lived aiohttp session instead of a
    session per request. Each transfer is registered under a task id;
    byte-count callbacks look the context up by id, and the entry is
    removed on completion, failure or cancellation. Every registry access
    holds the same lock, so callbacks may arrive from other threads.

    Example:
        dispatcher = ProgressDispatcher()
        try:
            outcome = await dispatcher.execute(wire_request, progress)
        finally:
            await dispatcher.close()
    """

    def __init__(
        self,
        session_provider: Optional[SessionProvider] = None,
        config: Optional[TransportConfig] = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        """
        Initialize the dispatcher.

        Args:
            session_provider: Coroutine returning a session owned elsewhere
                (e.g. AiohttpTransport.get_session). When None, the
                dispatcher creates and owns its own session.
            config: Transport settings for an owned session
            chunk_size: Upload/download chunk size in bytes
        """
        self._session_provider = session_provider
        self._config = config or TransportConfig()
        self._chunk_size = chunk_size
        self._lock = threading.Lock()
        self._contexts: dict[int, ProgressTaskContext] = {}
        self._task_ids = itertools.count(1)
        self._session: Optional[aiohttp.ClientSession] = None

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    def register(self, context: ProgressTaskContext) -> None:
        with self._lock:
            self._contexts[context.task_id] = context

    def unregister(self, task_id: int) -> Optional[ProgressTaskContext]:
        with self._lock:
            return self._contexts.pop(task_id, None)

    @property
    def active_transfers(self) -> int:
        with self._lock:
            return len(self._contexts)

    def _next_task_id(self) -> int:
        with self._lock:
            return next(self._task_ids)

    # ------------------------------------------------------------------
    # Transfer callbacks
    # ------------------------------------------------------------------

    def did_send_body_data(self, task_id: int, total_sent: int, expected: Optional[int]) -> None:
        """Report upload progress; ignored when the total is unknown."""
        if not expected or expected <= 0:
            return
        with self._lock:
            context = self._contexts.get(task_id)
        if context is None:
            return
        context.progress.update(min(total_sent / expected, 1.0))

    def did_receive_response(self, task_id: int, status_code: int, headers: dict[str, str]) -> None:
        with self._lock:
            context = self._contexts.get(task_id)
            if context is not None:
                context.status_code = status_code
                context.headers = headers

    def did_receive_data(self, task_id: int, chunk: bytes, expected: Optional[int]) -> None:
        """Accumulate a response chunk and report download progress."""
        with self._lock:
            context = self._contexts.get(task_id)
            if context is None:
                return
            context.data.extend(chunk)
            received = len(context.data)
        if expected and expected > 0:
            context.progress.update(min(received / expected, 1.0))

    def did_complete(self, task_id: int, error: Optional[BaseException] = None) -> None:
        """
        Finish a transfer and resolve its waiter.

        The registry entry is removed first, so late callbacks for the same
        task id become no-ops.
        """
        context = self.unregister(task_id)
        if context is None:
            return

        if error is not None:
            logger.debug("Transfer %d failed: %s", task_id, error)
            _settle(context, error=error)
            return

        if context.status_code is None:
            _settle(context, error=InvalidResponseError(f"Transfer {task_id} completed without a response"))
            return

        outcome = HttpOutcome(
            status_code=context.status_code,
            content=bytes(context.data),
            headers=context.headers,
        )
        _settle(context, outcome=outcome)
        context.progress.update(1.0)

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session_provider is not None:
            return await self._session_provider()
        with self._lock:
            if self._session is None or self._session.closed:
                self._session = aiohttp.ClientSession(
                    connector=aiohttp.TCPConnector(
                        limit=self._config.connection_limit,
                        limit_per_host=self._config.limit_per_host,
                    ),
                    timeout=aiohttp.ClientTimeout(
                        sock_connect=self._config.connect_timeout,
                        sock_read=self._config.read_timeout,
                    ),
                )
            return self._session

    async def close(self) -> None:
        """Close the owned session; a provided session is left alone."""
        with self._lock:
            session, self._session = self._session, None
        if session is not None and not session.closed:
            await session.close()

    async def execute(self, request: WireRequest, progress: NetworkProgress) -> HttpOutcome:
        """
        Run a transfer and wait for its completion callback.

        Args:
            request: Materialized request
            progress: Sink receiving fraction-completed updates

        Returns:
            HttpOutcome assembled from the streamed response

        Raises:
            aiohttp.ClientError / asyncio.TimeoutError: On transfer failure
            asyncio.CancelledError: If the awaiting task is cancelled
        """
        loop = asyncio.get_running_loop()
        task_id = self._next_task_id()
        context = ProgressTaskContext(
            task_id=task_id,
            progress=progress,
            future=loop.create_future(),
            loop=loop,
        )
        self.register(context)
        logger.debug("Registered transfer %d: %s %s", task_id, request.method, request.url)

        transfer = asyncio.create_task(self._transfer(task_id, request))
        try:
            return await context.future
        except asyncio.CancelledError:
            transfer.cancel()
            self.unregister(task_id)
            raise

    async def _transfer(self, task_id: int, request: WireRequest) -> None:
        try:
            session = await self._get_session()
            headers = dict(request.headers)
            expected_upload = request.content_length
            if expected_upload is not None and not any(k.lower() == "content-length" for k in headers):
                headers["Content-Length"] = str(expected_upload)

            data = None
            if request.body is not None:
                data = self._upload_stream(task_id, request.body, expected_upload)

            async with session.request(
                request.method,
                request.url,
                headers=headers,
                data=data,
                proxy=self._config.proxy,
                allow_redirects=True,
            ) as response:
                self.did_receive_response(task_id, response.status, dict(response.headers))
                expected_download = response.content_length
                async for chunk in response.content.iter_chunked(self._chunk_size):
                    self.did_receive_data(task_id, chunk, expected_download)
        except asyncio.CancelledError:
            self.unregister(task_id)
            raise
        except Exception as e:
            self.did_complete(task_id, e)
        else:
            self.did_complete(task_id)

    async def _upload_stream(self, task_id: int, body: Any, expected: Optional[int]) -> AsyncIterator[bytes]:
        sent = 0
        async for chunk in self._chunks(body):
            yield chunk
            sent += len(chunk)
            self.did_send_body_data(task_id, sent, expected)

    async def _chunks(self, body: Any) -> AsyncIterator[bytes]:
        if isinstance(body, (bytes, bytearray)):
            view = memoryview(body)
            for start in range(0, len(view), self._chunk_size):
                yield bytes(view[start : start + self._chunk_size])
        elif hasattr(body, "read"):
            loop = asyncio.get_running_loop()
            while True:
                # File reads block; keep them off the event loop
                chunk = await loop.run_in_executor(None, body.read, self._chunk_size)
                if not chunk:
                    break
                yield chunk
        elif isinstance(body, AsyncIterable):
            async for chunk in body:
                yield chunk
        elif isinstance(body, Iterable):
            for chunk in body:
                yield chunk
        else:
            raise TypeError(f"Unsupported request body type: {type(body).__name__}")


def _settle(
    context: ProgressTaskContext,
    *,
    outcome: Optional[HttpOutcome] = None,
    error: Optional[BaseException] = None,
) -> None:
    """Resolve the context's future on the loop that owns it."""

    def resolve() -> None:
        if context.future.done():
            return
        if error is not None:
            context.future.set_exception(error)
        else:
            context.future.set_result(outcome)

    if _is_current_loop(context.loop):
        resolve()
    else:
        context.loop.call_soon_threadsafe(resolve)
