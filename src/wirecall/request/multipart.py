"""multipart/form-data payloads for file uploads."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Optional

from ..errors import InvalidMultipartEncodingError

CRLF = b"\r\n"


@dataclass(frozen=True)
class Part:
    """
    A single field of a multipart form.

    Attributes:
        name: Form field name
        data: Raw content of the part
        mime_type: MIME type written to the part's Content-Type header
        filename: Optional filename sent in Content-Disposition
    """

    name: str
    data: bytes
    mime_type: str
    filename: Optional[str] = None


def _escape_quoted(value: str) -> str:
    """Escape a quoted-string parameter value (RFC 2183)."""
    return value.replace("\\", "\\\\").replace('"', '\\"')


def _header_line(text: str) -> bytes:
    # CR/LF would let a field name inject extra headers or split the part
    if "\r" in text or "\n" in text:
        raise InvalidMultipartEncodingError(f"Line break in multipart header: {text!r}")
    try:
        return text.encode("utf-8") + CRLF
    except UnicodeEncodeError as err:
        raise InvalidMultipartEncodingError(f"Header not representable as UTF-8: {text!r}") from err


@dataclass
class MultipartFormData:
    """
    Ordered collection of parts sharing one boundary.

    The boundary is generated once per instance.

    Example:
        form = MultipartFormData()
        form.add_part("avatar", png_bytes, "image/png", filename="me.png")
        body = form.encode()
        content_type = form.content_type
    """

    parts: list[Part] = field(default_factory=list)
    boundary: str = field(default_factory=lambda: str(uuid.uuid4()).upper())

    def add_part(
        self,
        name: str,
        data: bytes,
        mime_type: str,
        filename: Optional[str] = None,
    ) -> None:
        """Append a part; parts are encoded in insertion order."""
        self.parts.append(Part(name=name, data=data, mime_type=mime_type, filename=filename))

    @property
    def content_type(self) -> str:
        return f"multipart/form-data; boundary={self.boundary}"

    def encode(self) -> bytes:
        """
        Serialize all parts into a multipart body.

        Returns:
            Encoded body, starting with ``--<boundary>`` and ending with
            ``--<boundary>--\\r\\n``

        Raises:
            InvalidMultipartEncodingError: If a name, filename or MIME type
                cannot be written as a header line
        """
        buffer = bytearray()
        delimiter = _header_line(f"--{self.boundary}")

        for part in self.parts:
            disposition = f'Content-Disposition: form-data; name="{_escape_quoted(part.name)}"'
            if part.filename is not None:
                disposition += f'; filename="{_escape_quoted(part.filename)}"'

            buffer += delimiter
            buffer += _header_line(disposition)
            buffer += _header_line(f"Content-Type: {part.mime_type}")
            buffer += CRLF
            buffer += part.data
            buffer += CRLF

        buffer += _header_line(f"--{self.boundary}--")
        return bytes(buffer)
