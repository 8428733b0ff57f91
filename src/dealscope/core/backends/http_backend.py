"""
HTTP Backend implementation using httpx.

Provides async JSON fetching with:
- Persistent connection pooling
- Optional bearer-token authentication
- Retry with exponential backoff on transport errors, 429 and 5xx
- Status-code classification into BackendError subclasses
"""

from __future__ import annotations

import time

import httpx

from dealscope.core.fetch.retries import RetryConfig, async_retrying

from .base import (
    Backend,
    BackendError,
    BlockedError,
    FetchError,
    FetchResult,
    RateLimitError,
    RequestSpec,
)

# Status codes that indicate the request was refused
BLOCKED_STATUS_CODES = {401, 403, 451}

# Status codes that should trigger retry
RETRY_STATUS_CODES = {429, 500, 502, 503, 504}


def is_retryable(exc: BaseException) -> bool:
    """Transport errors, rate limits and 5xx responses are transient."""
    if isinstance(exc, httpx.TransportError):
        return True
    if isinstance(exc, RateLimitError):
        return True
    return isinstance(exc, FetchError) and exc.status_code in RETRY_STATUS_CODES


class HttpBackend(Backend):
    """HTTP backend using httpx for async JSON requests."""

    def __init__(
        self,
        timeout: float = 10.0,
        retry: RetryConfig | None = None,
        api_token: str | None = None,
        default_headers: dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize HTTP backend.

        Args:
            timeout: Default request timeout in seconds
            retry: Retry policy (default: RetryConfig())
            api_token: Bearer token sent as an Authorization header
            default_headers: Default headers for all requests
            transport: Custom httpx transport (tests use httpx.MockTransport)
        """
        self.timeout = timeout
        self.retry = retry or RetryConfig()
        self.transport = transport

        self.default_headers = {
            "Accept": "application/json",
            **(default_headers or {}),
        }
        if api_token:
            self.default_headers["Authorization"] = f"Bearer {api_token}"

        self._client: httpx.AsyncClient | None = None

    @property
    def name(self) -> str:
        return "http"

    async def _ensure_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True,
                headers=self.default_headers,
                limits=httpx.Limits(
                    max_connections=20,
                    max_keepalive_connections=10,
                ),
                transport=self.transport,
            )
        return self._client

    def _check_status(self, response: httpx.Response) -> None:
        """Raise the BackendError matching a non-2xx response."""
        status = response.status_code
        url = str(response.url)

        if status == 429:
            retry_after = response.headers.get("Retry-After")
            retry_seconds = None
            if retry_after:
                try:
                    retry_seconds = float(retry_after)
                except ValueError:
                    pass
            raise RateLimitError("Rate limit exceeded", url=url, retry_after=retry_seconds)

        if status in BLOCKED_STATUS_CODES:
            raise BlockedError(f"Request refused with status {status}", url=url, status_code=status)

        if not 200 <= status < 300:
            raise FetchError(f"Unexpected status {status}", url=url, status_code=status)

    async def _send(self, client: httpx.AsyncClient, request: RequestSpec) -> httpx.Response:
        method = request.method.upper()
        timeout = request.timeout if request.timeout is not None else self.timeout
        if method == "GET":
            return await client.get(
                request.url,
                headers=request.headers or None,
                params=request.params or None,
                timeout=timeout,
            )
        if method == "POST":
            return await client.post(
                request.url,
                headers=request.headers or None,
                params=request.params or None,
                json=request.json_data,
                timeout=timeout,
            )
        raise FetchError(f"Unsupported method: {request.method}", url=request.url)

    async def fetch(self, request: RequestSpec) -> FetchResult:
        """Fetch a URL with automatic retry.

        Args:
            request: Request specification

        Returns:
            FetchResult with a 2xx response

        Raises:
            RateLimitError: 429 after all attempts
            BlockedError: 401/403/451
            FetchError: Other non-2xx or transport failure
        """
        client = await self._ensure_client()
        retry_count = 0

        try:
            async for attempt in async_retrying(self.retry, is_retryable):
                with attempt:
                    retry_count = attempt.retry_state.attempt_number - 1
                    started = time.perf_counter()

                    response = await self._send(client, request)
                    elapsed_ms = (time.perf_counter() - started) * 1000

                    self._check_status(response)

                    return FetchResult(
                        url=request.url,
                        final_url=str(response.url),
                        status_code=response.status_code,
                        text=response.text,
                        headers=dict(response.headers),
                        elapsed_ms=elapsed_ms,
                        retry_count=retry_count,
                    )

        except BackendError:
            raise
        except httpx.HTTPError as e:
            raise FetchError(
                f"Transport error after {retry_count + 1} attempts: {e}",
                url=request.url,
                cause=e,
            ) from e

        # AsyncRetrying with reraise=True either returns or raises above
        raise FetchError("Retry loop exited without a result", url=request.url)

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None
