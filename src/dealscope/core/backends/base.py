"""
Backend base classes and data structures.

Defines the interface contract for upstream JSON backends.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from dealscope.core.normalize.dedupe import safe_parse_json


@dataclass
class RequestSpec:
    """Specification for an HTTP request."""

    url: str
    method: str = "GET"
    headers: dict[str, str] = field(default_factory=dict)
    params: dict[str, str] = field(default_factory=dict)
    json_data: dict[str, Any] | None = None
    timeout: float | None = None

    # Metadata for logging
    endpoint: str | None = None  # "entity_detail", "investor_profile", "fx"
    entity_id: int | None = None


@dataclass
class FetchResult:
    """Result of a fetch operation."""

    url: str
    final_url: str  # After redirects
    status_code: int
    text: str
    headers: dict[str, str]

    # Timing
    elapsed_ms: float
    fetched_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    retry_count: int = 0

    @property
    def ok(self) -> bool:
        """Check if request was successful (2xx status)."""
        return 200 <= self.status_code < 300

    def json(self) -> Any | None:
        """Decoded body, or None when it is not valid JSON."""
        return safe_parse_json(self.text)


class Backend(ABC):
    """Abstract base class for upstream backends."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Backend identifier."""
        pass

    @abstractmethod
    async def fetch(self, request: RequestSpec) -> FetchResult:
        """Fetch a URL and return the response.

        Args:
            request: Request specification

        Returns:
            FetchResult with a 2xx response

        Raises:
            BackendError: On non-2xx status or unrecoverable transport failure
        """
        pass

    async def fetch_json(self, request: RequestSpec) -> Any:
        """Fetch a URL and decode its JSON body.

        Raises:
            FetchError: When the body is not valid JSON
        """
        result = await self.fetch(request)
        payload = result.json()
        if payload is None:
            raise FetchError(
                "Malformed JSON body",
                url=result.final_url,
                status_code=result.status_code,
            )
        return payload

    async def close(self) -> None:
        """Clean up backend resources."""
        pass

    async def __aenter__(self) -> "Backend":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()


class BackendError(Exception):
    """Base exception for backend errors."""

    def __init__(
        self,
        message: str,
        url: str | None = None,
        status_code: int | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.url = url
        self.status_code = status_code
        self.cause = cause


class FetchError(BackendError):
    """Error during fetch operation (transport failure, non-2xx, bad body)."""
    pass


class RateLimitError(BackendError):
    """Rate limit hit (429 or similar)."""

    def __init__(
        self,
        message: str,
        url: str | None = None,
        retry_after: float | None = None,
    ):
        super().__init__(message, url, status_code=429)
        self.retry_after = retry_after


class BlockedError(BackendError):
    """Request refused by the upstream (401/403 and similar)."""
    pass
