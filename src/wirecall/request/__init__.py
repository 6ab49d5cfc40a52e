"""Request description, body encoding and retry policy."""

from .base import HTTPMethod, NetworkRequest
from .body import (
    EncodableBody,
    FormURLEncodedBody,
    MaterializedBody,
    RawBody,
    RequestBody,
    StreamBody,
    materialize_body,
)
from .headers import compose_headers
from .multipart import MultipartFormData, Part
from .retry import NO_RETRY, RetryPolicy, default_should_retry

__all__ = [
    "EncodableBody",
    "FormURLEncodedBody",
    "HTTPMethod",
    "MaterializedBody",
    "MultipartFormData",
    "NO_RETRY",
    "NetworkRequest",
    "Part",
    "RawBody",
    "RequestBody",
    "RetryPolicy",
    "StreamBody",
    "compose_headers",
    "default_should_retry",
    "materialize_body",
]
