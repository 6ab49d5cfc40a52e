"""Request body variants and their wire materialization."""

from __future__ import annotations

from collections.abc import AsyncIterable, Iterable
from dataclasses import dataclass
from typing import IO, Any, Optional, Union
from urllib.parse import quote

from ..codec import Codec
from ..errors import InvalidEncodingError

FORM_URLENCODED = "application/x-www-form-urlencoded"
JSON_CONTENT_TYPE = "application/json"

# Anything aiohttp can stream as a request body
StreamSource = Union[IO[bytes], AsyncIterable[bytes], Iterable[bytes]]


@dataclass(frozen=True)
class EncodableBody:
    """Object serialized through the request's codec (JSON by default)."""

    value: Any
    content_type: str = JSON_CONTENT_TYPE


@dataclass(frozen=True)
class RawBody:
    """Pre-encoded or binary payload sent as-is."""

    data: bytes
    content_type: str


@dataclass(frozen=True)
class StreamBody:
    """Streamed upload of unknown length."""

    source: StreamSource
    content_type: str


@dataclass(frozen=True)
class FormURLEncodedBody:
    """Key/value pairs sent as ``application/x-www-form-urlencoded``."""

    fields: dict[str, str]

    @property
    def content_type(self) -> str:
        return FORM_URLENCODED


RequestBody = Union[EncodableBody, RawBody, StreamBody, FormURLEncodedBody]


@dataclass(frozen=True)
class MaterializedBody:
    """
    Body ready for the wire.

    Attributes:
        content: Encoded bytes, or the stream handle for StreamBody
        content_type: Value for the Content-Type header
        content_length: Byte count, or None when unknown (streams)
    """

    content: Union[bytes, StreamSource]
    content_type: str
    content_length: Optional[int]


def encode_form(fields: dict[str, str]) -> bytes:
    """
    Percent-encode form fields and join them with ``&``.

    Raises:
        InvalidEncodingError: If a key or value cannot be UTF-8 encoded
    """
    try:
        query = "&".join(f"{quote(key, safe='')}={quote(value, safe='')}" for key, value in fields.items())
        return query.encode("utf-8")
    except (UnicodeEncodeError, TypeError) as err:
        raise InvalidEncodingError(f"Cannot form-encode body: {err}") from err


def materialize_body(body: RequestBody, request_content_type: str, codec: Codec) -> MaterializedBody:
    """
    Convert a body description into wire content.

    Content-Type rules:
        - EncodableBody: the request's declared content type (not the body's)
        - RawBody / StreamBody: the body's own content type
        - FormURLEncodedBody: always application/x-www-form-urlencoded

    Args:
        body: Body variant from the request
        request_content_type: Content type declared on the request
        codec: Codec used for EncodableBody

    Returns:
        MaterializedBody with content, content type and optional length

    Raises:
        InvalidEncodingError: If the body cannot be encoded
    """
    if isinstance(body, EncodableBody):
        try:
            data = codec.encode(body.value)
        except (TypeError, ValueError) as err:
            raise InvalidEncodingError(f"Cannot encode body: {err}") from err
        return MaterializedBody(data, request_content_type, len(data))

    if isinstance(body, RawBody):
        return MaterializedBody(body.data, body.content_type, len(body.data))

    if isinstance(body, StreamBody):
        return MaterializedBody(body.source, body.content_type, None)

    if isinstance(body, FormURLEncodedBody):
        data = encode_form(body.fields)
        return MaterializedBody(data, FORM_URLENCODED, len(data))

    raise InvalidEncodingError(f"Unsupported body type: {type(body).__name__}")
