"""
Sector hierarchy resolution.

Reconciles primary/secondary sector associations from either sector
payload generation into two disjoint buckets.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from dealscope.core.config.models import SectorImportance
from dealscope.core.config.vocabulary import FALLBACK_SECONDARY_TO_PRIMARY, normalize_sector_name

from .payloads import RawSector, SectorSource, SectorSourceKind, parse_sector_source
from .scalars import NOT_AVAILABLE

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SectorRef:
    """A sector association with its importance bucket."""

    id: int | None
    name: str
    importance: SectorImportance

    @property
    def href(self) -> str:
        return sector_href(self)

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "importance": self.importance.value}


@dataclass
class ResolvedSectors:
    """Primary and secondary sectors; ``approximated`` marks keyword fallback use."""

    primary: list[SectorRef] = field(default_factory=list)
    secondary: list[SectorRef] = field(default_factory=list)
    approximated: bool = False

    @property
    def primary_names(self) -> list[str]:
        return [s.name for s in self.primary]

    @property
    def secondary_names(self) -> list[str]:
        return [s.name for s in self.secondary]

    def to_dict(self) -> dict[str, Any]:
        return {
            "primary": [s.to_dict() for s in self.primary],
            "secondary": [s.to_dict() for s in self.secondary],
            "approximated": self.approximated,
        }


def sector_href(sector: SectorRef) -> str:
    """Primary sectors link to /sector/{id}, secondary to /sub-sector/{id}."""
    if sector.id is None:
        return ""
    if sector.importance is SectorImportance.PRIMARY:
        return f"/sector/{sector.id}"
    return f"/sub-sector/{sector.id}"


def format_sectors(sectors: Iterable[SectorRef]) -> str:
    names = [s.name for s in sectors if s.name]
    return ", ".join(names) if names else NOT_AVAILABLE


def _unique_refs(raw: Iterable[RawSector], importance: SectorImportance) -> list[SectorRef]:
    """Dedupe by name (case-insensitive), first occurrence wins."""
    seen: set[str] = set()
    refs: list[SectorRef] = []
    for sector in raw:
        key = normalize_sector_name(sector.name)
        if not key or key in seen:
            continue
        seen.add(key)
        refs.append(SectorRef(id=sector.id, name=sector.name, importance=importance))
    return refs


def _is_primary(sector: RawSector) -> bool:
    return normalize_sector_name(sector.importance) == "primary"


def _from_tagged(tagged: list[RawSector]) -> tuple[list[SectorRef], list[SectorRef]]:
    explicit = [s for s in tagged if _is_primary(s)]
    secondary_raw = [s for s in tagged if not _is_primary(s)]

    known_ids = {normalize_sector_name(s.name): s.id for s in tagged}
    implied = [
        RawSector(id=known_ids.get(normalize_sector_name(name)), name=name, importance="Primary")
        for s in secondary_raw
        for name in s.related_primary
    ]

    primary = _unique_refs([*explicit, *implied], SectorImportance.PRIMARY)
    secondary = _unique_refs(secondary_raw, SectorImportance.SECONDARY)
    return primary, secondary


def keyword_primary_sectors(
    secondary: Iterable[SectorRef],
    keyword_table: Mapping[str, str] | None = None,
    api_map: Mapping[str, str] | None = None,
) -> list[SectorRef]:
    """Approximate primary sectors from secondary names.

    This is a lossy, hand-maintained mapping (e.g. Crypto -> Web 3) that can
    drift from the upstream taxonomy. ``api_map`` entries, when provided,
    take precedence over the static table.
    """
    table = keyword_table if keyword_table is not None else FALLBACK_SECONDARY_TO_PRIMARY
    normalized_api = {normalize_sector_name(k): v for k, v in (api_map or {}).items()}

    derived: list[RawSector] = []
    for sector in secondary:
        key = normalize_sector_name(sector.name)
        target = normalized_api.get(key) or table.get(key)
        if target:
            derived.append(RawSector(id=None, name=target, importance="Primary"))
    return _unique_refs(derived, SectorImportance.PRIMARY)


def resolve_sectors(
    sector_source: Any,
    *,
    keyword_table: Mapping[str, str] | None = None,
    api_map: Mapping[str, str] | None = None,
    use_keyword_fallback: bool = True,
) -> ResolvedSectors:
    """Resolve a sector payload into disjoint primary/secondary buckets.

    Split lists (``primary_sectors``/``secondary_sectors``) win when
    populated. Otherwise the tagged list is partitioned by importance and
    every Secondary entry's related-primary back-references are added to
    the primary set. If no primary sector results, the keyword table
    approximates one.

    Args:
        sector_source: Raw payload or an already parsed SectorSource
        keyword_table: Override for the static Secondary -> Primary table
        api_map: Backend-provided Secondary -> Primary names, preferred
        use_keyword_fallback: Disable the lossy keyword approximation

    Returns:
        ResolvedSectors; empty on malformed input
    """
    source = sector_source if isinstance(sector_source, SectorSource) else parse_sector_source(sector_source)

    if source.primary or source.secondary:
        primary = _unique_refs(source.primary, SectorImportance.PRIMARY)
        secondary = _unique_refs(source.secondary, SectorImportance.SECONDARY)
    elif source.kind is SectorSourceKind.TAGGED:
        primary, secondary = _from_tagged(source.tagged)
    else:
        return ResolvedSectors()

    primary_keys = {normalize_sector_name(s.name) for s in primary}
    secondary = [s for s in secondary if normalize_sector_name(s.name) not in primary_keys]

    approximated = False
    if not primary and use_keyword_fallback:
        secondary_keys = {normalize_sector_name(s.name) for s in secondary}
        primary = [
            s for s in keyword_primary_sectors(secondary, keyword_table, api_map)
            if normalize_sector_name(s.name) not in secondary_keys
        ]
        approximated = bool(primary)
        if approximated:
            logger.debug(
                "Approximated primary sectors %s from keyword table",
                [s.name for s in primary],
            )

    return ResolvedSectors(primary=primary, secondary=secondary, approximated=approximated)
