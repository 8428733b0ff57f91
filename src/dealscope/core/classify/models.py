"""
Classification inputs and results.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from dealscope.core.config.models import ClassificationSource, EntityKind
from dealscope.core.config.vocabulary import get_field
from dealscope.core.normalize.payloads import coerce_payload, parse_business_focus, parse_id_list


@dataclass(frozen=True)
class ClassificationResult:
    """Final kind for one entity id and the rule that decided it."""

    entity_id: int
    kind: EntityKind
    source: ClassificationSource

    @property
    def is_investor(self) -> bool:
        return self.kind is EntityKind.INVESTOR

    def to_dict(self) -> dict[str, Any]:
        return {
            "entity_id": self.entity_id,
            "kind": self.kind.value,
            "source": self.source.value,
        }


@dataclass(frozen=True)
class EntityMetadata:
    """Normalized focus/sector ids plus the record's own investor flag."""

    focus_ids: tuple[int, ...] = ()
    sector_ids: tuple[int, ...] = ()
    is_investor: bool | None = None

    @classmethod
    def from_fields(
        cls,
        focus: Any = None,
        sectors: Any = None,
        is_investor: bool | None = None,
    ) -> "EntityMetadata":
        """Build metadata from raw focus/sector fields in any encoding."""
        return cls(
            focus_ids=tuple(parse_business_focus(focus)),
            sector_ids=tuple(parse_id_list(sectors)),
            is_investor=is_investor if isinstance(is_investor, bool) else None,
        )

    @property
    def empty(self) -> bool:
        return not self.focus_ids and not self.sector_ids


@dataclass(frozen=True)
class ClassificationRequest:
    """One entity to classify.

    ``metadata`` of None means "look it up"; ``fallback_flag`` is a
    previously known investor indicator used only when nothing better
    is available.
    """

    entity_id: int
    metadata: EntityMetadata | None = None
    fallback_flag: bool | None = None


def metadata_from_entity_detail(payload: Any) -> EntityMetadata:
    """Extract classification metadata from an entity detail response.

    The record lives under ``Company`` or ``Investor`` (possibly as a JSON
    string) or at the top level. Presence of a populated ``Investor``
    sub-object implies the investor flag when the record carries none.
    """
    data = coerce_payload(payload)
    if not isinstance(data, dict):
        return EntityMetadata()

    company = coerce_payload(data.get("Company"))
    investor = coerce_payload(data.get("Investor"))

    record: dict[str, Any] = data
    if isinstance(company, dict) and company:
        record = company
    elif isinstance(investor, dict) and investor:
        record = investor

    flag = get_field(record, "is_investor")
    if not isinstance(flag, bool):
        flag = True if isinstance(investor, dict) and investor else None

    return EntityMetadata.from_fields(
        focus=get_field(record, "focus"),
        sectors=get_field(record, "sectors"),
        is_investor=flag,
    )
