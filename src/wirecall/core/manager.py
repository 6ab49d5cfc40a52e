"""NetworkManager: builds, dispatches, retries and decodes requests."""

from __future__ import annotations

import asyncio
import logging
from types import TracebackType
from typing import Any, Callable, Optional, TypeVar, Union
from urllib.parse import quote, urlencode, urlparse

from ..codec import Codec, JSONCodec
from ..errors import (
    ConflictingBodyTypesError,
    EmptyResponseError,
    HTTPError,
    InvalidResponseError,
    InvalidURLError,
    RequestCancelledError,
    RequestConstructionError,
    UnauthorizedError,
)
from ..http.progress import ProgressDispatcher
from ..http.protocols import HttpOutcome, ProgressExecutor, TokenRefresher, Transport, WireRequest
from ..http.transport import AiohttpTransport
from ..logging_config import setup_logging
from ..models.config import NetworkManagerConfig, TransportConfig, UserAgentConfig
from ..request.base import NetworkRequest
from ..request.body import materialize_body
from ..request.headers import compose_headers
from ..request.retry import RetryPolicy
from ..security.path_validator import normalize_path
from .cancellation import CancellationToken

logger = logging.getLogger(__name__)

T = TypeVar("T")

AccessTokenSupplier = Callable[[], Optional[str]]
BaseURL = Union[str, Callable[[], str]]

# RFC 3986 pchar characters plus "/"
_PATH_SAFE = "/:@!$&'()*+,;=-._~"


def _set_header(headers: dict[str, str], name: str, value: str) -> None:
    for existing in [k for k in headers if k.lower() == name.lower()]:
        del headers[existing]
    headers[name] = value


def _raise_if_cancelled(cancel_token: Optional[CancellationToken]) -> None:
    if cancel_token is not None:
        cancel_token.raise_if_cancelled()


class _SendState:
    """Per-logical-request flags shared across retry attempts."""

    __slots__ = ("refreshed", "refresh_failed")

    def __init__(self) -> None:
        self.refreshed = False
        self.refresh_failed = False


class NetworkManager:
    """
    Executes NetworkRequests against a base URL.

    For each ``send`` call the manager builds the wire request (path
    normalization, headers, body), dispatches it directly or through the
    progress dispatcher, refreshes the access token once on a 401, retries
    failures according to the request's RetryPolicy, and decodes the body.

    Example:
        async with NetworkManager("https://api.example.com") as manager:
            user = await manager.send(
                NetworkRequest(path="/users/42", response_type=User),
                access_token=lambda: session.token,
            )
    """

    def __init__(
        self,
        base_url: BaseURL,
        transport: Optional[Transport] = None,
        *,
        token_refresher: Optional[TokenRefresher] = None,
        user_agent: Optional[UserAgentConfig] = None,
        codec: Optional[Codec] = None,
        progress_dispatcher: Optional[ProgressExecutor] = None,
        default_retry_policy: Optional[RetryPolicy] = None,
        default_access_token: Optional[str] = None,
        transport_config: Optional[TransportConfig] = None,
    ) -> None:
        """
        Initialize the manager.

        Args:
            base_url: Base URL string, or a callable returning the current
                base URL (evaluated on every attempt)
            transport: Transport capability (aiohttp transport if None)
            token_refresher: Called once per request after a 401
            user_agent: Settings for the generated User-Agent header
            codec: Default codec for bodies and responses
            progress_dispatcher: Dispatcher for progress-tracked requests
                (a shared aiohttp-backed one is created lazily if None)
            default_retry_policy: Policy for requests that declare none
            default_access_token: Token used when ``send`` gets no supplier
            transport_config: Settings for the default transport/dispatcher
        """
        self._base_url = base_url
        self._transport_config = transport_config or TransportConfig()
        self._owns_transport = transport is None
        self._transport: Transport = transport or AiohttpTransport(self._transport_config)
        self.token_refresher = token_refresher
        self.user_agent = user_agent
        self._codec: Codec = codec or JSONCodec()
        self._progress_dispatcher = progress_dispatcher
        self._owns_dispatcher = False
        self._default_retry_policy = default_retry_policy or RetryPolicy()
        self._default_access_token = default_access_token

    @classmethod
    def from_config(
        cls,
        config: NetworkManagerConfig,
        *,
        configure_logging: bool = False,
        **kwargs: Any,
    ) -> NetworkManager:
        """
        Build a manager from a NetworkManagerConfig.

        Args:
            config: Validated configuration
            configure_logging: Also apply ``log_level``/``log_file`` to the
                package logger
            **kwargs: Overrides forwarded to ``__init__`` (transport,
                token_refresher, codec, ...)
        """
        if configure_logging:
            setup_logging(
                level=config.log_level,
                log_file=str(config.log_file) if config.log_file else None,
            )
        kwargs.setdefault("user_agent", config.user_agent)
        kwargs.setdefault(
            "default_retry_policy",
            RetryPolicy(max_retry_count=config.retry.max_retry_count, delay=config.retry.delay),
        )
        kwargs.setdefault("default_access_token", config.auth.token)
        kwargs.setdefault("transport_config", config.transport)
        return cls(config.base_url, **kwargs)

    async def __aenter__(self) -> NetworkManager:
        return self

    async def __aexit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the transport session and the owned progress dispatcher."""
        if self._owns_dispatcher and isinstance(self._progress_dispatcher, ProgressDispatcher):
            await self._progress_dispatcher.close()
        if self._owns_transport and isinstance(self._transport, AiohttpTransport):
            await self._transport.close()

    def base_url(self) -> str:
        """Current base URL."""
        return self._base_url() if callable(self._base_url) else self._base_url

    @property
    def progress_dispatcher(self) -> ProgressExecutor:
        """Shared dispatcher for progress-tracked requests, created on first use."""
        if self._progress_dispatcher is None:
            provider = self._transport.get_session if isinstance(self._transport, AiohttpTransport) else None
            self._progress_dispatcher = ProgressDispatcher(
                session_provider=provider,
                config=self._transport_config,
            )
            self._owns_dispatcher = True
        return self._progress_dispatcher

    # ------------------------------------------------------------------
    # Building
    # ------------------------------------------------------------------

    def _compose_url(self, path: str, query: Optional[dict[str, str]]) -> str:
        base = self.base_url().rstrip("/")
        parsed = urlparse(base)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise InvalidURLError(f"Invalid base URL: {base!r}")

        try:
            url = base + quote(path, safe=_PATH_SAFE)
        except UnicodeEncodeError as err:
            raise InvalidURLError(f"Cannot encode path {path!r}: {err}") from err
        if query:
            try:
                url = f"{url}?{urlencode(query, quote_via=quote)}"
            except (TypeError, UnicodeEncodeError) as err:
                raise InvalidURLError(f"Cannot encode query parameters: {err}") from err
        return url

    def build_wire_request(
        self,
        request: NetworkRequest[Any],
        access_token: Optional[AccessTokenSupplier] = None,
    ) -> WireRequest:
        """
        Materialize a request into a WireRequest.

        Raises:
            InvalidURLError: On path traversal or URL/query composition failure
            ConflictingBodyTypesError: If both body and multipart are set
            InvalidMultipartEncodingError: If multipart metadata is not encodable
            InvalidEncodingError: If the body cannot be encoded
        """
        path = normalize_path(request.path)
        url = self._compose_url(path, request.query_parameters)

        if request.body is not None and request.multipart is not None:
            raise ConflictingBodyTypesError()

        token = access_token() if access_token is not None else self._default_access_token
        headers = compose_headers(
            request.headers,
            access_token=token,
            content_type=request.content_type,
            user_agent=self.user_agent,
        )

        body: Any = None
        if request.body is not None:
            materialized = materialize_body(request.body, request.content_type, request.codec or self._codec)
            body = materialized.content
            _set_header(headers, "Content-Type", materialized.content_type)
            if materialized.content_length is not None:
                _set_header(headers, "Content-Length", str(materialized.content_length))
        elif request.multipart is not None:
            body = request.multipart.encode()
            _set_header(headers, "Content-Type", request.multipart.content_type)
            _set_header(headers, "Content-Length", str(len(body)))

        return WireRequest(method=request.method.value, url=url, headers=headers, body=body)

    # ------------------------------------------------------------------
    # Dispatch + classification
    # ------------------------------------------------------------------

    async def _dispatch(self, request: NetworkRequest[Any], wire: WireRequest) -> HttpOutcome:
        if request.progress is not None:
            outcome = await self.progress_dispatcher.execute(wire, request.progress)
        else:
            outcome = await self._transport.send(wire)

        if not isinstance(getattr(outcome, "status_code", None), int):
            raise InvalidResponseError(f"Transport returned no HTTP status for {wire.method} {wire.url}")
        return outcome

    async def _refresh_token(self) -> None:
        if self.token_refresher is None:
            logger.debug("No token refresher configured, re-dispatching without refresh")
            return
        await self.token_refresher.refresh_token_if_needed()

    def _decode(self, request: NetworkRequest[T], outcome: HttpOutcome) -> T:
        if not outcome.content:
            handler = request.resolve_empty_response_handler()
            if handler is None:
                raise EmptyResponseError(f"Empty body with status {outcome.status_code} for {request.path}")
            result: T = handler(outcome.status_code, outcome.headers)
            return result

        codec = request.codec or self._codec
        decode_response = getattr(request.response_type, "decode_response", None)
        if decode_response is not None:
            decoded: T = decode_response(outcome.content, outcome.status_code, outcome.headers, codec)
            return decoded
        return codec.decode(outcome.content, request.response_type)

    def _classify(self, request: NetworkRequest[T], outcome: HttpOutcome) -> T:
        if outcome.status_code == 401:
            custom = request.decode_error(outcome.content)
            if custom is not None:
                raise custom
            raise UnauthorizedError()

        if not outcome.is_success:
            custom = request.decode_error(outcome.content)
            if custom is not None:
                raise custom
            raise HTTPError(outcome.status_code, outcome.content, outcome.headers)

        return self._decode(request, outcome)

    async def _attempt(
        self,
        request: NetworkRequest[T],
        access_token: Optional[AccessTokenSupplier],
        state: _SendState,
        cancel_token: Optional[CancellationToken],
    ) -> T:
        wire = self.build_wire_request(request, access_token)
        _raise_if_cancelled(cancel_token)

        outcome = await self._dispatch(request, wire)
        _raise_if_cancelled(cancel_token)

        if outcome.status_code == 401 and request.allows_retry and not state.refreshed:
            state.refreshed = True
            logger.debug("401 for %s, refreshing token", request.path)
            try:
                await self._refresh_token()
            except Exception:
                state.refresh_failed = True
                raise
            _raise_if_cancelled(cancel_token)

            # Rebuilt so the Authorization header carries the refreshed token
            wire = self.build_wire_request(request, access_token)
            outcome = await self._dispatch(request, wire)
            _raise_if_cancelled(cancel_token)

        return self._classify(request, outcome)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def send(
        self,
        request: NetworkRequest[T],
        access_token: Optional[AccessTokenSupplier] = None,
        *,
        cancel_token: Optional[CancellationToken] = None,
    ) -> T:
        """
        Send a request and return its decoded response.

        Args:
            request: Request description
            access_token: Zero-arg callable returning the current token;
                called on every attempt
            cancel_token: Optional cooperative cancellation token

        Returns:
            Decoded response of ``request.response_type``

        Raises:
            RequestConstructionError: Invalid path/query, conflicting bodies
                or unencodable body (never retried)
            UnauthorizedError: 401 after the single refresh, or with
                ``allows_retry=False``
            HTTPError: Other non-2xx responses without a custom error
            EmptyResponseError: 2xx with empty body and no handler
            RequestCancelledError: The cancel token was triggered
            Exception: Errors from the token refresher, the error decoder,
                the transport or the codec
        """
        policy = request.retry_policy or self._default_retry_policy
        state = _SendState()
        attempt = 0

        while True:
            _raise_if_cancelled(cancel_token)
            logger.info("Sending %s %s (attempt %d)", request.method.value, request.path, attempt + 1)
            try:
                result = await self._attempt(request, access_token, state, cancel_token)
            except RequestConstructionError as e:
                logger.error("Request construction failed for %s: %s", request.path, e)
                raise
            except RequestCancelledError:
                logger.info("Request cancelled: %s %s", request.method.value, request.path)
                raise
            except Exception as e:
                logger.debug(
                    "Evaluating retry policy: attempt %d, max %d",
                    attempt,
                    policy.max_retry_count,
                )
                if state.refresh_failed or not policy.allows_retry(attempt, e):
                    logger.error("Request failed permanently: %s %s: %s", request.method.value, request.path, e)
                    raise
                logger.warning(
                    "Request failed: %s %s (attempt %d/%d): %s, retrying in %.1fs",
                    request.method.value,
                    request.path,
                    attempt + 1,
                    policy.max_retry_count + 1,
                    e,
                    policy.delay,
                )
                await self._sleep(policy.delay, cancel_token)
                attempt += 1
            else:
                logger.info("Request succeeded: %s %s", request.method.value, request.path)
                return result

    async def _sleep(self, delay: float, cancel_token: Optional[CancellationToken]) -> None:
        _raise_if_cancelled(cancel_token)
        if cancel_token is None:
            await asyncio.sleep(delay)
        else:
            await cancel_token.sleep(delay)
        _raise_if_cancelled(cancel_token)
