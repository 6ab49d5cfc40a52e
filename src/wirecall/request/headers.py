"""Header composition for outgoing requests."""

from __future__ import annotations

from typing import Optional

from ..models.config import UserAgentConfig


def _has_header(headers: dict[str, str], name: str) -> bool:
    lowered = name.lower()
    return any(key.lower() == lowered for key in headers)


def compose_headers(
    request_headers: Optional[dict[str, str]],
    *,
    access_token: Optional[str] = None,
    content_type: Optional[str] = None,
    user_agent: Optional[UserAgentConfig] = None,
    base_headers: Optional[dict[str, str]] = None,
) -> dict[str, str]:
    """
    Merge per-request headers with generated defaults.

    Caller-supplied headers always win. Defaults are only added when the
    header is absent (case-insensitive):

    - ``Authorization: Bearer <token>`` when the token is not None
    - ``Accept: application/json`` when the content type is JSON
    - ``User-Agent`` generated from the User-Agent configuration

    Args:
        request_headers: Headers declared on the request
        access_token: Token returned by the access-token supplier
        content_type: Content type declared on the request
        user_agent: Optional User-Agent configuration
        base_headers: Manager-wide headers applied beneath request headers

    Returns:
        New header dict
    """
    headers = dict(base_headers or {})
    for key, value in (request_headers or {}).items():
        # Replace a base header regardless of its casing
        for existing in [k for k in headers if k.lower() == key.lower()]:
            del headers[existing]
        headers[key] = value

    if access_token is not None and not _has_header(headers, "Authorization"):
        headers["Authorization"] = f"Bearer {access_token}"

    if content_type and "application/json" in content_type.lower() and not _has_header(headers, "Accept"):
        headers["Accept"] = "application/json"

    if user_agent is not None and not _has_header(headers, "User-Agent"):
        headers["User-Agent"] = user_agent.user_agent_string()

    return headers
