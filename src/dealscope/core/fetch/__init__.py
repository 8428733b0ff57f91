"""Fetch utilities - retries."""

from .retries import RetryConfig, async_retrying, build_wait

__all__ = [
    "RetryConfig",
    "async_retrying",
    "build_wait",
]
