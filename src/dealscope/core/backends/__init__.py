"""Backend implementations for the upstream JSON endpoints."""

from .base import (
    Backend,
    BackendError,
    BlockedError,
    FetchError,
    FetchResult,
    RateLimitError,
    RequestSpec,
)
from .http_backend import HttpBackend
from .upstream import UpstreamClient

__all__ = [
    # Base classes
    "Backend",
    "RequestSpec",
    "FetchResult",
    # Base errors
    "BackendError",
    "FetchError",
    "RateLimitError",
    "BlockedError",
    # HTTP backend
    "HttpBackend",
    # Endpoint contracts
    "UpstreamClient",
]
