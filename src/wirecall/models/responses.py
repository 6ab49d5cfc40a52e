"""Response types that carry no decoded payload."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class StatusCodeResponse(BaseModel):
    """
    Response that only records the HTTP status and headers.

    Use for endpoints where the status itself is the answer (201 Created,
    202 Accepted, 204 No Content). Any body is ignored.
    """

    status_code: int = Field(..., description="HTTP status code")
    headers: dict[str, str] = Field(default_factory=dict, description="Response headers")

    @classmethod
    def empty_response_handler(cls, status_code: int, headers: dict[str, str]) -> StatusCodeResponse:
        return cls(status_code=status_code, headers=dict(headers))

    @classmethod
    def decode_response(
        cls,
        data: bytes,
        status_code: int,
        headers: dict[str, str],
        codec: Any,
    ) -> StatusCodeResponse:
        return cls(status_code=status_code, headers=dict(headers))


class EmptyResponse(BaseModel):
    """Response for endpoints whose body is irrelevant."""

    @classmethod
    def empty_response_handler(cls, status_code: int, headers: dict[str, str]) -> EmptyResponse:
        return cls()

    @classmethod
    def decode_response(
        cls,
        data: bytes,
        status_code: int,
        headers: dict[str, str],
        codec: Any,
    ) -> EmptyResponse:
        return cls()
