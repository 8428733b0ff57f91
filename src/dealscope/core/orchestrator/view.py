"""
Page view assembly.

Coordinates the resolution workflow for one page view:
parse → normalize → classify ambiguous entities → apply kinds.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from dealscope.core.classify import (
    ClassificationRequest,
    ClassificationResult,
    ClassificationSession,
    EntityKindClassifier,
)
from dealscope.core.config.models import AppConfig
from dealscope.core.logging import get_contextual_logger
from dealscope.core.normalize.canonical import (
    CorporateEventCanonical,
    EventParties,
    normalize_corporate_events,
)
from dealscope.core.normalize.entities import EntityRef

if TYPE_CHECKING:
    from dealscope.core.backends.upstream import UpstreamClient


@dataclass
class ViewStats:
    """Statistics for one page view build."""

    events_found: int = 0
    entities_total: int = 0
    entities_ambiguous: int = 0
    entities_classified: int = 0
    investors_found: int = 0

    started_at: float = field(default_factory=time.perf_counter)
    finished_at: float | None = None

    @property
    def duration_seconds(self) -> float | None:
        if self.finished_at is None:
            return None
        return self.finished_at - self.started_at

    def to_dict(self) -> dict[str, Any]:
        return {
            "events_found": self.events_found,
            "entities_total": self.entities_total,
            "entities_ambiguous": self.entities_ambiguous,
            "entities_classified": self.entities_classified,
            "investors_found": self.investors_found,
            "duration_seconds": self.duration_seconds,
        }


@dataclass
class EventView:
    """Normalized events ready for rendering."""

    events: list[CorporateEventCanonical]
    classifications: dict[int, ClassificationResult] = field(default_factory=dict)
    stats: ViewStats = field(default_factory=ViewStats)

    def to_dict(self) -> dict[str, Any]:
        return {
            "events": [event.to_dict() for event in self.events],
            "classifications": {
                str(entity_id): result.to_dict()
                for entity_id, result in self.classifications.items()
            },
            "stats": self.stats.to_dict(),
        }


def ambiguous_requests(events: list[CorporateEventCanonical]) -> list[ClassificationRequest]:
    """One request per entity id whose route left the kind undecided."""
    requests: dict[int, ClassificationRequest] = {}
    for event in events:
        for ref in event.parties.all_refs():
            if ref.ambiguous and ref.id not in requests:
                requests[ref.id] = ClassificationRequest(
                    entity_id=ref.id,
                    fallback_flag=ref.investor_flag,
                )
    return list(requests.values())


def _apply(refs: list[EntityRef], results: dict[int, ClassificationResult]) -> list[EntityRef]:
    applied = []
    for ref in refs:
        result = results.get(ref.id) if ref.ambiguous else None
        applied.append(ref.with_kind(result.kind) if result is not None else ref)
    return applied


def apply_classifications(
    event: CorporateEventCanonical,
    results: dict[int, ClassificationResult],
) -> CorporateEventCanonical:
    """Copy of event with ambiguous refs re-routed by their classification."""
    parties = event.parties
    return event.with_parties(EventParties(
        targets=_apply(parties.targets, results),
        buyers=_apply(parties.buyers, results),
        investors=_apply(parties.investors, results),
        sellers=_apply(parties.sellers, results),
        advisors=list(parties.advisors),
        other_counterparties=_apply(parties.other_counterparties, results),
    ))


class EventViewBuilder:
    """Builds the corporate-event section of a page view.

    Coordinates:
    - Envelope parsing and event normalization
    - Batch classification of ambiguous entity references
    - Re-routing references by their resolved kind
    """

    def __init__(
        self,
        config: AppConfig | None = None,
        *,
        upstream: "UpstreamClient | None" = None,
        classifier: EntityKindClassifier | None = None,
    ) -> None:
        """Initialize the builder.

        Args:
            config: Application configuration
            upstream: Client for the classification lookups (None: local only)
            classifier: Pre-built classifier (overrides upstream)
        """
        self.config = config or AppConfig()
        self.classifier = classifier or EntityKindClassifier(self.config.classifier, upstream)

    def normalize(self, raw: Any, sectors: Any = None) -> list[CorporateEventCanonical]:
        """Synchronous normalization only; no classification."""
        return normalize_corporate_events(
            raw,
            sectors=sectors,
            keyword_table=self.config.sectors.keyword_fallback,
            use_keyword_fallback=self.config.sectors.use_keyword_fallback,
            default_currency=self.config.default_currency,
        )

    async def build(
        self,
        raw: Any,
        *,
        sectors: Any = None,
        session: ClassificationSession | None = None,
        require_verification: bool = True,
    ) -> EventView:
        """Normalize an event payload and classify its ambiguous entities.

        Args:
            raw: Event envelope of any generation
            sectors: Sector payload shared by all events (company pages)
            session: Page-view classification scope (a new one if omitted)
            require_verification: Allow investor-profile lookups

        Returns:
            EventView; classification failures never fail the build
        """
        stats = ViewStats()
        scope = session or self.classifier.session()
        log = get_contextual_logger("view", page=scope.page)

        events = self.normalize(raw, sectors=sectors)
        stats.events_found = len(events)

        refs = [ref for event in events for ref in event.parties.all_refs()]
        stats.entities_total = len({ref.id for ref in refs if ref.id is not None})

        requests = ambiguous_requests(events)
        stats.entities_ambiguous = len(requests)

        results: dict[int, ClassificationResult] = {}
        if requests:
            results = await scope.classify_many(requests, require_verification=require_verification)
            events = [apply_classifications(event, results) for event in events]

        stats.entities_classified = len(results)
        stats.investors_found = sum(1 for result in results.values() if result.is_investor)
        stats.finished_at = time.perf_counter()

        log.info(
            "Built view: %d events, %d/%d entities classified",
            stats.events_found,
            stats.entities_classified,
            stats.entities_ambiguous,
        )
        return EventView(events=events, classifications=results, stats=stats)
