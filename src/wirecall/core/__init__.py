"""Request execution core."""

from .cancellation import CancellationToken
from .manager import NetworkManager

__all__ = [
    "CancellationToken",
    "NetworkManager",
]
