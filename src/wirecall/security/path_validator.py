"""Request path validation and canonicalization."""

from __future__ import annotations

import re

from ..errors import InvalidURLError

_REPEATED_SLASHES = re.compile(r"/{2,}")


def normalize_path(path: str) -> str:
    """
    Validate and canonicalize a request path.

    Leading and trailing slashes are trimmed, runs of slashes collapse to
    one, and the result is prefixed with exactly one ``/``. An empty path
    maps to ``/``.

    Args:
        path: Path component as declared on the request

    Returns:
        Canonical path, e.g. ``"//users//me/"`` -> ``"/users/me"``

    Raises:
        InvalidURLError: If the path contains ``..`` (directory traversal)

    Example:
        >>> normalize_path("users//42/")
        '/users/42'
        >>> normalize_path("")
        '/'
    """
    if ".." in path:
        raise InvalidURLError(f"Path traversal not allowed: {path!r}")

    collapsed = _REPEATED_SLASHES.sub("/", path).strip("/")
    return "/" + collapsed
