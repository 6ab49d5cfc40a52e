"""Declarative request description consumed by NetworkManager."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Generic, Optional, TypeVar

from ..codec import Codec
from ..http.progress import NetworkProgress
from .body import JSON_CONTENT_TYPE, RequestBody
from .multipart import MultipartFormData
from .retry import RetryPolicy

ResponseT = TypeVar("ResponseT")

ErrorDecoder = Callable[[bytes], Optional[BaseException]]
EmptyResponseHandler = Callable[[int, dict[str, str]], Any]


class HTTPMethod(str, Enum):
    """HTTP methods supported by the executor."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    PATCH = "PATCH"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"
    TRACE = "TRACE"
    CONNECT = "CONNECT"


@dataclass
class NetworkRequest(Generic[ResponseT]):
    """
    Description of one HTTP call and how to interpret its result.

    Define endpoints either inline or by subclassing with defaults:

        @dataclass
        class GetUser(NetworkRequest[User]):
            path: str = "/users/42"
            response_type: type[User] = User

    Attributes:
        path: Path appended to the manager's base URL
        response_type: Type the success body decodes into
        method: HTTP method
        headers: Extra request headers (never overwritten by defaults)
        query_parameters: Query string parameters
        content_type: Declared content type; drives Accept and the
            Content-Type of encodable bodies
        body: Body variant (mutually exclusive with ``multipart``)
        multipart: multipart/form-data payload
        progress: Sink for upload/download progress
        retry_policy: Retry behavior (manager default when None)
        error_decoder: Turns a non-2xx body into a domain error, or None
        allows_retry: Whether a 401 may trigger a token refresh + re-dispatch
        empty_response_handler: Builds a response from status + headers
            when a 2xx body is empty
        codec: Codec override for this request's body and response
    """

    path: str
    response_type: type[ResponseT]
    method: HTTPMethod = HTTPMethod.GET
    headers: Optional[dict[str, str]] = None
    query_parameters: Optional[dict[str, str]] = None
    content_type: str = JSON_CONTENT_TYPE
    body: Optional[RequestBody] = None
    multipart: Optional[MultipartFormData] = None
    progress: Optional[NetworkProgress] = None
    retry_policy: Optional[RetryPolicy] = None
    error_decoder: Optional[ErrorDecoder] = None
    allows_retry: bool = True
    empty_response_handler: Optional[EmptyResponseHandler] = None
    codec: Optional[Codec] = None

    def resolve_empty_response_handler(self) -> Optional[EmptyResponseHandler]:
        """Explicit handler first, then the response type's default."""
        if self.empty_response_handler is not None:
            return self.empty_response_handler
        handler: Optional[EmptyResponseHandler] = getattr(self.response_type, "empty_response_handler", None)
        return handler

    def decode_error(self, data: bytes) -> Optional[BaseException]:
        if self.error_decoder is None:
            return None
        return self.error_decoder(data)
