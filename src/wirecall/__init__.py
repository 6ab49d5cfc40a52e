"""
wirecall - Typed async HTTP request execution.

Usage:
    from wirecall import NetworkManager, NetworkRequest, HTTPMethod

    async with NetworkManager("https://api.example.com") as manager:
        user = await manager.send(
            NetworkRequest(path="/users/42", response_type=User),
            access_token=lambda: token_store.access_token,
        )
"""

__version__ = "1.0.0"

from .codec import Codec, JSONCodec
from .core import CancellationToken, NetworkManager
from .errors import (
    ConflictingBodyTypesError,
    EmptyResponseError,
    HTTPError,
    InvalidEncodingError,
    InvalidMultipartEncodingError,
    InvalidResponseError,
    InvalidURLError,
    NetworkError,
    NonRetriableError,
    RequestCancelledError,
    RequestConstructionError,
    UnauthorizedError,
)
from .http import AiohttpTransport, HttpOutcome, NetworkProgress, ProgressDispatcher, WireRequest
from .models import (
    AuthConfig,
    EmptyResponse,
    NetworkManagerConfig,
    RetryConfig,
    StatusCodeResponse,
    TransportConfig,
    UserAgentConfig,
)
from .request import (
    EncodableBody,
    FormURLEncodedBody,
    HTTPMethod,
    MultipartFormData,
    NetworkRequest,
    RawBody,
    RetryPolicy,
    StreamBody,
)

__all__ = [
    "__version__",
    # Core
    "NetworkManager",
    "CancellationToken",
    # Requests
    "NetworkRequest",
    "HTTPMethod",
    "EncodableBody",
    "RawBody",
    "StreamBody",
    "FormURLEncodedBody",
    "MultipartFormData",
    "RetryPolicy",
    # Responses
    "StatusCodeResponse",
    "EmptyResponse",
    # Config
    "NetworkManagerConfig",
    "UserAgentConfig",
    "AuthConfig",
    "TransportConfig",
    "RetryConfig",
    # Transport
    "AiohttpTransport",
    "HttpOutcome",
    "WireRequest",
    "NetworkProgress",
    "ProgressDispatcher",
    # Codec
    "Codec",
    "JSONCodec",
    # Errors
    "NetworkError",
    "NonRetriableError",
    "RequestConstructionError",
    "InvalidURLError",
    "ConflictingBodyTypesError",
    "InvalidMultipartEncodingError",
    "InvalidEncodingError",
    "EmptyResponseError",
    "InvalidResponseError",
    "UnauthorizedError",
    "HTTPError",
    "RequestCancelledError",
]
