"""Cooperative cancellation for in-flight requests."""

from __future__ import annotations

import asyncio
import threading

from ..errors import RequestCancelledError


def _wake(waiter: asyncio.Future) -> None:
    if not waiter.done():
        waiter.set_result(None)


class CancellationToken:
    """
    Flag checked by the executor at every suspension boundary.

    ``cancel()`` may be called from any thread. Once cancelled, the request
    stops at the next check with RequestCancelledError and performs no
    further retries or token refreshes.

    Example:
        token = CancellationToken()
        task = asyncio.create_task(manager.send(request, cancel_token=token))
        ...
        token.cancel()
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._cancelled = False
        self._waiters: list[tuple[asyncio.AbstractEventLoop, asyncio.Future]] = []

    @property
    def is_cancelled(self) -> bool:
        with self._lock:
            return self._cancelled

    def cancel(self) -> None:
        """Cancel the token and wake any pending ``sleep``."""
        with self._lock:
            if self._cancelled:
                return
            self._cancelled = True
            waiters, self._waiters = self._waiters, []
        for loop, waiter in waiters:
            loop.call_soon_threadsafe(_wake, waiter)

    def raise_if_cancelled(self) -> None:
        if self.is_cancelled:
            raise RequestCancelledError()

    async def sleep(self, delay: float) -> None:
        """
        Sleep for ``delay`` seconds, waking early on cancellation.

        Raises:
            RequestCancelledError: If the token is cancelled before or during the sleep
        """
        loop = asyncio.get_running_loop()
        waiter = loop.create_future()
        entry = (loop, waiter)
        with self._lock:
            if self._cancelled:
                raise RequestCancelledError()
            self._waiters.append(entry)
        try:
            await asyncio.wait({waiter}, timeout=delay)
        finally:
            with self._lock:
                if entry in self._waiters:
                    self._waiters.remove(entry)
            if not waiter.done():
                waiter.cancel()
        self.raise_if_cancelled()
