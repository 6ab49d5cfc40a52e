"""Security helpers for request construction."""

from .path_validator import normalize_path

__all__ = [
    "normalize_path",
]
