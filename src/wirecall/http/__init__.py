"""HTTP transport and progress dispatch for wirecall."""

from .progress import NetworkProgress, ProgressDispatcher, ProgressTaskContext
from .protocols import HttpOutcome, ProgressExecutor, TokenRefresher, Transport, WireRequest
from .transport import AiohttpTransport

__all__ = [
    "AiohttpTransport",
    "HttpOutcome",
    "NetworkProgress",
    "ProgressDispatcher",
    "ProgressExecutor",
    "ProgressTaskContext",
    "TokenRefresher",
    "Transport",
    "WireRequest",
]
