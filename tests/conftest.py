"""Shared fixtures for wirecall tests."""

from typing import Optional, Union

import pytest
from wirecall import HttpOutcome, NetworkManager, RetryPolicy, WireRequest

BASE_URL = "https://api.test"


class ScriptedTransport:
    """
    Transport double that replays scripted outcomes.

    Each send consumes the next item; the last item repeats once the
    script is exhausted. Exceptions in the script are raised.
    """

    def __init__(self, *script: Union[HttpOutcome, BaseException]) -> None:
        self.script = list(script)
        self.requests: list[WireRequest] = []

    @property
    def call_count(self) -> int:
        return len(self.requests)

    async def send(self, request: WireRequest) -> HttpOutcome:
        self.requests.append(request)
        item = self.script[min(len(self.requests), len(self.script)) - 1]
        if isinstance(item, BaseException):
            raise item
        return item


class CountingRefresher:
    """Token refresher that counts calls and optionally fails."""

    def __init__(self, error: Optional[BaseException] = None, on_refresh=None) -> None:
        self.call_count = 0
        self.error = error
        self.on_refresh = on_refresh

    async def refresh_token_if_needed(self) -> None:
        self.call_count += 1
        if self.on_refresh is not None:
            self.on_refresh()
        if self.error is not None:
            raise self.error


@pytest.fixture
def make_manager():
    """Build a manager over a ScriptedTransport with retries disabled by default."""

    def factory(*script, **kwargs):
        transport = ScriptedTransport(*script)
        kwargs.setdefault("default_retry_policy", RetryPolicy(max_retry_count=0, delay=0.0))
        manager = NetworkManager(BASE_URL, transport, **kwargs)
        return manager, transport

    return factory


@pytest.fixture
def make_refresher():
    """Build a CountingRefresher."""
    return CountingRefresher


@pytest.fixture
def scripted_transport():
    """Build a ScriptedTransport for tests that construct their own manager."""
    return ScriptedTransport
