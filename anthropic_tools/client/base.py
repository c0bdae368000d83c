"""Base Messages API client with HTTP request handling and retries.

Provides the transport every API mixin builds on: header construction,
a lazily created shared httpx.AsyncClient, middleware and metrics hooks,
status-gated retries and mapping of failures onto the APIError family.
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable, Iterable
from contextlib import asynccontextmanager
from typing import Any, TypeVar

import httpx

from anthropic_tools.client.config import ClientConfig
from anthropic_tools.client.retry import RetryPolicy
from anthropic_tools.exceptions import (
    APIConnectionError,
    APIConnectionTimeoutError,
    APIError,
    ConfigurationError,
    error_for_status,
)
from anthropic_tools.instrumentation import MetricsCollector, record_safely
from anthropic_tools.middleware import Middleware, MiddlewareStack, RequestInfo, ResponseInfo
from anthropic_tools.streaming.session import StreamResponse

logger = logging.getLogger(__name__)

T = TypeVar("T")

REQUEST_ID_HEADERS = ("request-id", "x-request-id")


def _request_id(headers: httpx.Headers) -> str | None:
    for name in REQUEST_ID_HEADERS:
        value = headers.get(name)
        if value:
            return value
    return None


def _decode_body(response: httpx.Response) -> Any:
    """Decoded JSON body, falling back to text for non-JSON payloads."""
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


def _connection_error(error: httpx.HTTPError, action: str) -> APIConnectionError:
    if isinstance(error, httpx.TimeoutException):
        return APIConnectionTimeoutError(f"{action} timed out: {error}")
    return APIConnectionError(f"{action} failed: {type(error).__name__}: {error}")


class BaseClient:
    """Base HTTP client for the Messages API.

    Handles connection management, request signing, retries and error
    mapping. Endpoint methods are added via mixins.
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
        middleware: MiddlewareStack | Iterable[Middleware] | None = None,
        metrics: MetricsCollector | None = None,
        retry_policy: RetryPolicy | None = None,
        sleep: Callable[[float], Awaitable[Any]] | None = None,
    ):
        """Initialize the client. No network activity happens here.

        Args:
            config: Client configuration (uses environment settings if not provided)
            http_client: Pre-built httpx.AsyncClient; the caller keeps ownership
            middleware: Middleware stack or iterable of middleware
            metrics: Metrics collector (defaults to a no-op collector)
            retry_policy: Overrides the policy derived from config
            sleep: Awaitable sleep used between retries (injectable for tests)

        Raises:
            ConfigurationError: No API key is configured.
        """
        if config is None:
            config = ClientConfig.from_settings()
        if not config.api_key.get_secret_value():
            raise ConfigurationError("API key is required (set ANTHROPIC_API_KEY)")

        self.config = config
        self._http_client = http_client
        self._owns_http_client = http_client is None
        if isinstance(middleware, MiddlewareStack):
            self.middleware = middleware
        else:
            self.middleware = MiddlewareStack(middleware or ())
        self.metrics = metrics or MetricsCollector()
        self.retry_policy = retry_policy or RetryPolicy.from_config(config)
        self._sleep = sleep or asyncio.sleep

    # -------------------------------------------------------------------------
    # Connection management
    # -------------------------------------------------------------------------

    def _headers(self) -> dict[str, str]:
        return {
            "x-api-key": self.config.api_key.get_secret_value(),
            "anthropic-version": self.config.api_version,
            "content-type": "application/json",
        }

    def _url(self, path: str) -> str:
        return f"{self.config.api_url.rstrip('/')}{path}"

    def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create the shared httpx.AsyncClient with connection pooling."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=self.config.timeout,
                limits=httpx.Limits(
                    max_keepalive_connections=20,
                    max_connections=100,
                ),
            )
        return self._http_client

    async def close(self) -> None:
        """Close the shared HTTP client if this client created it."""
        if self._http_client is not None and self._owns_http_client:
            await self._http_client.aclose()
            self._http_client = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    # -------------------------------------------------------------------------
    # Request plumbing
    # -------------------------------------------------------------------------

    def _prepare(self, method: str, path: str, body: dict[str, Any] | None) -> RequestInfo:
        request = RequestInfo(
            method=method,
            url=self._url(path),
            path=path,
            headers=self._headers(),
            body=body,
        )
        request = self.middleware.process_request(request)
        record_safely(self.metrics.record_request_start, method=request.method, path=request.path)
        return request

    def _finish(self, request: RequestInfo, response: httpx.Response, body: Any) -> ResponseInfo:
        info = ResponseInfo(
            status_code=response.status_code,
            headers=dict(response.headers),
            request=request,
            body=body,
        )
        info = self.middleware.process_response(info)
        record_safely(
            self.metrics.record_request,
            method=request.method,
            path=request.path,
            status=info.status_code,
            duration=info.duration,
        )
        return info

    def _raise_for_status(self, info: ResponseInfo, response: httpx.Response) -> None:
        if 200 <= info.status_code < 300:
            return
        raise error_for_status(
            info.status_code,
            info.body,
            request_id=_request_id(response.headers),
            headers=dict(response.headers),
        )

    async def _with_retries(self, operation: Callable[[], Awaitable[T]], description: str) -> T:
        """Run ``operation`` until it succeeds or the retry policy gives up."""
        policy = self.retry_policy
        attempt = 0
        while True:
            try:
                return await operation()
            except APIError as e:
                if not policy.should_retry(e, attempt):
                    raise
                delay = policy.delay_for(e, attempt)
                logger.warning(
                    "%s failed (attempt %d/%d): %s. Retrying in %.2fs...",
                    description,
                    attempt + 1,
                    policy.max_attempts,
                    e,
                    delay,
                )
                await self._sleep(delay)
                attempt += 1

    async def _post(
        self,
        path: str,
        body: dict[str, Any],
        *,
        timeout: float | None = None,
    ) -> tuple[Any, str | None]:
        """POST a JSON body, with retries.

        Args:
            path: API path (without base URL)
            body: JSON body
            timeout: Per-request timeout in seconds

        Returns:
            Tuple of (decoded response body, request id)

        Raises:
            APIError: Mapped HTTP or connection failure after retries
        """

        async def attempt() -> tuple[Any, str | None]:
            request = self._prepare("POST", path, body)
            client = self._get_http_client()
            try:
                response = await client.request(
                    request.method,
                    request.url,
                    headers=request.headers,
                    json=request.body,
                    timeout=timeout or self.config.timeout,
                )
            except httpx.HTTPError as e:
                raise _connection_error(e, "Request") from e

            info = self._finish(request, response, _decode_body(response))
            self._raise_for_status(info, response)
            return info.body, _request_id(response.headers)

        return await self._with_retries(attempt, f"POST {path}")

    async def _open_stream_response(
        self,
        path: str,
        body: dict[str, Any],
        timeout: float | None,
    ) -> httpx.Response:
        request = self._prepare("POST", path, body)
        client = self._get_http_client()
        http_request = client.build_request(
            request.method,
            request.url,
            headers=request.headers,
            json=request.body,
            timeout=timeout or self.config.timeout,
        )
        try:
            response = await client.send(http_request, stream=True)
        except httpx.HTTPError as e:
            raise _connection_error(e, "Streaming request") from e

        if 200 <= response.status_code < 300:
            self._finish(request, response, None)
            return response

        try:
            await response.aread()
        except httpx.HTTPError as e:
            raise _connection_error(e, "Reading error response") from e
        finally:
            await response.aclose()
        info = self._finish(request, response, _decode_body(response))
        self._raise_for_status(info, response)
        return response

    @asynccontextmanager
    async def _stream(
        self,
        path: str,
        body: dict[str, Any],
        *,
        timeout: float | None = None,
    ) -> AsyncIterator[StreamResponse]:
        """Open a streaming POST.

        Retries apply only until response headers arrive. Once bytes are
        flowing, failures surface from the chunk iterator as
        APIConnectionError and are not retried.
        """
        response = await self._with_retries(
            lambda: self._open_stream_response(path, body, timeout),
            f"POST {path} (stream)",
        )
        try:
            yield StreamResponse(
                chunks=self._iter_chunks(response),
                request_id=_request_id(response.headers),
            )
        finally:
            await response.aclose()

    @staticmethod
    async def _iter_chunks(response: httpx.Response) -> AsyncIterator[bytes]:
        try:
            async for chunk in response.aiter_bytes():
                yield chunk
        except httpx.HTTPError as e:
            raise _connection_error(e, "Stream") from e
