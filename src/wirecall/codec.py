"""JSON codec capability used to encode request bodies and decode responses."""

from __future__ import annotations

from typing import Any, Protocol, TypeVar

from pydantic import TypeAdapter

T = TypeVar("T")


class Codec(Protocol):
    """
    Protocol for body codecs.

    Requests may carry their own codec to customize date handling, key
    casing, or alias usage for a single endpoint.
    """

    def encode(self, value: Any) -> bytes:
        """
        Serialize a value to wire bytes.

        Args:
            value: Object to encode (pydantic model, dataclass, dict, list...)

        Returns:
            Encoded bytes
        """
        ...

    def decode(self, data: bytes, type_: type[T]) -> T:
        """
        Deserialize wire bytes into ``type_``.

        Args:
            data: Raw response body
            type_: Target type

        Returns:
            Decoded value
        """
        ...


class JSONCodec:
    """
    Default codec backed by pydantic's JSON core.

    Handles pydantic models, dataclasses, TypedDicts and plain containers.
    Datetimes are written in ISO 8601.

    Example:
        codec = JSONCodec(by_alias=True, exclude_none=True)
        payload = codec.encode(CreateUser(name="x"))
        user = codec.decode(b'{"id": 1, "name": "x"}', User)
    """

    def __init__(self, *, by_alias: bool = False, exclude_none: bool = False) -> None:
        self.by_alias = by_alias
        self.exclude_none = exclude_none
        self._adapters: dict[Any, TypeAdapter[Any]] = {}

    def _adapter(self, type_: Any) -> TypeAdapter[Any]:
        adapter = self._adapters.get(type_)
        if adapter is None:
            adapter = TypeAdapter(type_)
            self._adapters[type_] = adapter
        return adapter

    def encode(self, value: Any) -> bytes:
        adapter = self._adapter(type(value))
        return adapter.dump_json(value, by_alias=self.by_alias, exclude_none=self.exclude_none)

    def decode(self, data: bytes, type_: type[T]) -> T:
        result: T = self._adapter(type_).validate_json(data)
        return result
