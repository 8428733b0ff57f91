"""
Retry utilities with tenacity.

Provides the retry policy applied to upstream JSON requests.
"""

from __future__ import annotations

import logging
from typing import Callable

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
    wait_random_exponential,
)
from tenacity.wait import wait_base

logger = logging.getLogger(__name__)


# Default retry configuration
DEFAULT_MAX_ATTEMPTS = 2
DEFAULT_MIN_WAIT = 0.5  # seconds
DEFAULT_MAX_WAIT = 8  # seconds
DEFAULT_MULTIPLIER = 1


class RetryConfig:
    """Configuration for retry behavior."""

    def __init__(
        self,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        min_wait: float = DEFAULT_MIN_WAIT,
        max_wait: float = DEFAULT_MAX_WAIT,
        multiplier: float = DEFAULT_MULTIPLIER,
        jitter: bool = True,
    ):
        """Initialize retry configuration.

        Args:
            max_attempts: Maximum number of attempts (including the first)
            min_wait: Minimum wait time in seconds
            max_wait: Maximum wait time in seconds
            multiplier: Exponential backoff multiplier
            jitter: Add random jitter to wait times
        """
        self.max_attempts = max(1, max_attempts)
        self.min_wait = min_wait
        self.max_wait = max_wait
        self.multiplier = multiplier
        self.jitter = jitter

    @classmethod
    def no_wait(cls, max_attempts: int = DEFAULT_MAX_ATTEMPTS) -> "RetryConfig":
        """Retry immediately; used where latency matters more than politeness."""
        return cls(max_attempts=max_attempts, min_wait=0, max_wait=0, jitter=False)


def build_wait(config: RetryConfig) -> wait_base:
    """Exponential backoff, with jitter when configured."""
    if config.jitter:
        return wait_random_exponential(
            multiplier=config.multiplier,
            min=config.min_wait,
            max=config.max_wait,
        )
    return wait_exponential(
        multiplier=config.multiplier,
        min=config.min_wait,
        max=config.max_wait,
    )


def async_retrying(
    config: RetryConfig,
    should_retry: Callable[[BaseException], bool],
) -> AsyncRetrying:
    """Build a tenacity AsyncRetrying loop for one request.

    Args:
        config: Retry configuration
        should_retry: Predicate deciding whether an exception is transient

    Returns:
        AsyncRetrying that re-raises the last exception when exhausted
    """
    return AsyncRetrying(
        stop=stop_after_attempt(config.max_attempts),
        wait=build_wait(config),
        retry=retry_if_exception(should_retry),
        before_sleep=before_sleep_log(logger, logging.DEBUG),
        reraise=True,
    )
