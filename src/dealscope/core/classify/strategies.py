"""
Ordered resolution strategies for entity kind classification.

Each strategy either returns a definitive ClassificationResult or None
("inconclusive"), and the classifier walks them in order:

    heuristic -> verification lookup -> fallback flag -> default
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Iterable

from dealscope.core.config.models import ClassificationSource, ClassifierConfig, EntityKind
from dealscope.core.normalize.scalars import is_not_available

from .models import ClassificationRequest, ClassificationResult, EntityMetadata

if TYPE_CHECKING:
    from dealscope.core.backends.upstream import UpstreamClient


class ClassificationStrategy(ABC):
    """One step of the classification chain."""

    #: Whether the step performs network I/O
    remote: bool = False

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    async def resolve(
        self,
        request: ClassificationRequest,
        metadata: EntityMetadata,
        log: logging.LoggerAdapter,
    ) -> ClassificationResult | None:
        """Return a definitive result, or None when inconclusive."""
        pass


# =============================================================================
# Heuristic
# =============================================================================


class HeuristicStrategy(ClassificationStrategy):
    """Financial-services focus plus an investor-archetype sector means Investor."""

    def __init__(self, config: ClassifierConfig):
        self.config = config

    @property
    def name(self) -> str:
        return "heuristic"

    def matches(self, metadata: EntityMetadata) -> bool:
        return (
            self.config.financial_services_focus_id in metadata.focus_ids
            and not self.config.investor_sector_id_set.isdisjoint(metadata.sector_ids)
        )

    async def resolve(
        self,
        request: ClassificationRequest,
        metadata: EntityMetadata,
        log: logging.LoggerAdapter,
    ) -> ClassificationResult | None:
        if not self.matches(metadata):
            return None
        return ClassificationResult(
            entity_id=request.entity_id,
            kind=EntityKind.INVESTOR,
            source=ClassificationSource.HEURISTIC_RULE,
        )


# =============================================================================
# Verification Lookup
# =============================================================================


def has_investor_marker(payload: Any, marker_keys: Iterable[str]) -> bool:
    """True when any marker key is present with a non-empty value."""
    if not isinstance(payload, dict):
        return False
    return any(key in payload and not is_not_available(payload[key]) for key in marker_keys)


class VerificationStrategy(ClassificationStrategy):
    """Upgrade to Investor when the investor-profile endpoint knows the id.

    Absence of a marker, non-2xx, timeouts and transport errors are all
    inconclusive; this step never decides "Company".
    """

    remote = True

    def __init__(self, upstream: "UpstreamClient | None", config: ClassifierConfig):
        self.upstream = upstream
        self.config = config

    @property
    def name(self) -> str:
        return "verification"

    async def resolve(
        self,
        request: ClassificationRequest,
        metadata: EntityMetadata,
        log: logging.LoggerAdapter,
    ) -> ClassificationResult | None:
        if self.upstream is None:
            return None

        timeout = self.config.verify_timeout_seconds
        try:
            payload = await asyncio.wait_for(
                self.upstream.get_investor_profile(request.entity_id, timeout=timeout),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            log.warning("Investor-profile lookup timed out after %.1fs", timeout)
            return None
        except Exception as e:
            log.warning("Investor-profile lookup failed: %r", e)
            return None

        if not has_investor_marker(payload, self.config.profile_marker_keys):
            log.debug("No investor-profile marker")
            return None

        return ClassificationResult(
            entity_id=request.entity_id,
            kind=EntityKind.INVESTOR,
            source=ClassificationSource.VERIFIED_BY_LOOKUP,
        )


# =============================================================================
# Fallbacks
# =============================================================================


class FallbackFlagStrategy(ClassificationStrategy):
    """Use the caller-supplied (or record-supplied) investor flag."""

    @property
    def name(self) -> str:
        return "fallback_flag"

    async def resolve(
        self,
        request: ClassificationRequest,
        metadata: EntityMetadata,
        log: logging.LoggerAdapter,
    ) -> ClassificationResult | None:
        flag = request.fallback_flag
        if flag is None:
            flag = metadata.is_investor
        if flag is None:
            return None
        return ClassificationResult(
            entity_id=request.entity_id,
            kind=EntityKind.INVESTOR if flag else EntityKind.COMPANY,
            source=ClassificationSource.FALLBACK_FLAG,
        )


class DefaultStrategy(ClassificationStrategy):
    """Company, the lower-consequence answer when nothing else decided."""

    @property
    def name(self) -> str:
        return "default"

    async def resolve(
        self,
        request: ClassificationRequest,
        metadata: EntityMetadata,
        log: logging.LoggerAdapter,
    ) -> ClassificationResult | None:
        return ClassificationResult(
            entity_id=request.entity_id,
            kind=EntityKind.COMPANY,
            source=ClassificationSource.FALLBACK_FLAG,
        )


def default_strategies(
    config: ClassifierConfig,
    upstream: "UpstreamClient | None",
) -> list[ClassificationStrategy]:
    return [
        HeuristicStrategy(config),
        VerificationStrategy(upstream, config),
        FallbackFlagStrategy(),
        DefaultStrategy(),
    ]
