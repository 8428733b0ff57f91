"""
Upstream endpoint contracts.

Wraps a Backend with the read-only JSON lookups the resolution layer
depends on. Every method degrades to None (or fallback FX rates) instead
of raising, so callers can fall through to their own fallbacks.
"""

from __future__ import annotations

import time
from typing import Any

from dealscope.core.config.models import UpstreamConfig
from dealscope.core.fetch.retries import RetryConfig
from dealscope.core.logging import get_logger
from dealscope.core.normalize.fx import FALLBACK_RATES, FxRates, rates_from_payload

from .base import Backend, BackendError, RequestSpec
from .http_backend import HttpBackend

logger = get_logger("upstream")

FX_TTL_SECONDS = 12 * 60 * 60

# Tried in order; both return USD-based rates under a "rates" key
FX_SOURCES: tuple[tuple[str, str], ...] = (
    ("exchangerate.host", "https://api.exchangerate.host/latest?base=USD&symbols=GBP,EUR"),
    ("frankfurter.app", "https://api.frankfurter.app/latest?from=USD&to=GBP,EUR"),
)


class UpstreamClient:
    """Entity detail, investor-profile and FX lookups over one backend."""

    def __init__(
        self,
        config: UpstreamConfig | None = None,
        backend: Backend | None = None,
        fx_ttl_seconds: float = FX_TTL_SECONDS,
    ):
        """Initialize the client.

        Args:
            config: Endpoint and transport settings
            backend: Backend to use (default: an HttpBackend built from config)
            fx_ttl_seconds: How long fetched FX rates stay fresh
        """
        self.config = config or UpstreamConfig()
        self.backend = backend or HttpBackend(
            timeout=self.config.timeout_seconds,
            retry=RetryConfig(max_attempts=self.config.max_retries),
            api_token=self.config.api_token,
        )
        self.fx_ttl_seconds = fx_ttl_seconds
        self._fx_rates: FxRates | None = None

    async def _get_json(self, request: RequestSpec) -> Any | None:
        try:
            return await self.backend.fetch_json(request)
        except BackendError as e:
            logger.warning(
                "Upstream %s lookup failed: %s",
                request.endpoint,
                e,
                extra={
                    "endpoint": request.endpoint,
                    "entity_id": request.entity_id,
                    "status_code": e.status_code,
                },
            )
            return None

    async def get_entity_detail(self, entity_id: int) -> dict[str, Any] | None:
        """Fetch the entity detail record (``Company``/``Investor`` sub-objects).

        Returns:
            Decoded object, or None on non-2xx, malformed body or transport failure
        """
        payload = await self._get_json(RequestSpec(
            url=self.config.entity_detail_url(entity_id),
            endpoint="entity_detail",
            entity_id=entity_id,
        ))
        return payload if isinstance(payload, dict) else None

    async def get_investor_profile(
        self,
        entity_id: int,
        timeout: float | None = None,
    ) -> dict[str, Any] | None:
        """Fetch the investor-profile verification record for an entity.

        Args:
            entity_id: Entity id
            timeout: Per-request timeout override

        Returns:
            Decoded object, or None when the lookup did not succeed
        """
        payload = await self._get_json(RequestSpec(
            url=self.config.investor_profile_url(),
            params={self.config.investor_profile_param: str(entity_id)},
            timeout=timeout,
            endpoint="investor_profile",
            entity_id=entity_id,
        ))
        return payload if isinstance(payload, dict) else None

    async def get_fx_rates(self, now: float | None = None) -> FxRates:
        """USD-based FX rates, cached for the TTL; fallback rates on failure."""
        current = time.time() if now is None else now
        if self._fx_rates is not None and self._fx_rates.is_fresh(self.fx_ttl_seconds, current):
            return self._fx_rates

        for source, url in FX_SOURCES:
            payload = await self._get_json(RequestSpec(url=url, endpoint="fx"))
            rates = rates_from_payload(payload, source=source, now=current)
            if rates is not None:
                self._fx_rates = rates
                logger.debug("Loaded FX rates from %s", source)
                return rates

        logger.info("Using fallback FX rates")
        return self._fx_rates or FALLBACK_RATES

    async def close(self) -> None:
        await self.backend.close()

    async def __aenter__(self) -> "UpstreamClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
