"""
Union payload parsing.

Upstream fields may arrive as JSON-encoded strings, decoded objects, or
arrays, and each concept has been encoded by several schema generations.
No version tag exists, so every variant is recognized structurally by its
mutually exclusive field names.

Every ``parse_*`` function here is total: malformed input degrades to an
empty value and nothing is raised.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from dealscope.core.config.vocabulary import get_field

from .dedupe import coerce_entity_id, safe_parse_json, stable_unique

logger = logging.getLogger(__name__)


# =============================================================================
# Variant Tags
# =============================================================================


class EventContainerKind(str, Enum):
    """Corporate-event envelope generations."""

    NEW = "new_counterparties"
    LEGACY = "New_Events_Wits_Advisors"
    CORPORATE_EVENTS = "Corporate_Events"
    LIST = "list"
    SINGLE = "single"
    EMPTY = "empty"


class SectorSourceKind(str, Enum):
    """Sector payload generations."""

    SPLIT = "split"  # primary_sectors / secondary_sectors
    TAGGED = "tagged"  # flat list with an importance tag per entry
    EMPTY = "empty"


class IdListKind(str, Enum):
    """Encodings of an id list (business focus, sector ids)."""

    SINGLE = "single"
    LIST = "list"
    OBJECT_LIST = "object_list"
    EMPTY = "empty"


# =============================================================================
# Intermediate Structures
# =============================================================================


@dataclass(frozen=True)
class RawEntityItem:
    """One entity reference after defensive element normalization."""

    id: int | None
    name: str
    route: str | None = None
    path: str | None = None
    is_investor: bool | None = None
    status: str | None = None


@dataclass(frozen=True)
class RawSector:
    """One sector entry, before importance partitioning."""

    id: int | None
    name: str
    importance: str | None = None
    related_primary: tuple[str, ...] = ()


@dataclass
class SectorSource:
    """Parsed sector payload, tagged with the generation it came from."""

    kind: SectorSourceKind
    primary: list[RawSector] = field(default_factory=list)
    secondary: list[RawSector] = field(default_factory=list)
    tagged: list[RawSector] = field(default_factory=list)


# =============================================================================
# Generic Coercion
# =============================================================================


def coerce_payload(raw: Any) -> Any:
    """Decode string/bytes payloads; pass decoded values through.

    Returns None for missing input or an unparseable string.
    """
    if raw is None:
        return None
    if isinstance(raw, (str, bytes, bytearray)):
        parsed = safe_parse_json(raw)
        if parsed is None and isinstance(raw, str) and raw.strip():
            logger.debug("Discarding malformed JSON payload (%d chars)", len(raw))
        return parsed
    return raw


def as_list(raw: Any) -> list[Any]:
    """Coerce a payload to a list: decode strings, wrap single objects."""
    payload = coerce_payload(raw)
    if payload is None:
        return []
    if isinstance(payload, list):
        return payload
    if isinstance(payload, tuple):
        return list(payload)
    return [payload]


def _clean_text(value: Any) -> str:
    if not isinstance(value, str):
        return ""
    return " ".join(value.split())


# =============================================================================
# Corporate-Event Containers
# =============================================================================


_EVENT_MARKERS = ("deal_type", "announcement_date", "description", "targets", "target_counterparty")


def _looks_like_event(obj: Any) -> bool:
    return isinstance(obj, dict) and any(key in obj for key in _EVENT_MARKERS)


def detect_event_container(payload: Any) -> EventContainerKind:
    """Identify which envelope generation a decoded payload uses."""
    if isinstance(payload, list):
        return EventContainerKind.LIST if payload else EventContainerKind.EMPTY
    if not isinstance(payload, dict):
        return EventContainerKind.EMPTY
    if "new_counterparties" in payload:
        return EventContainerKind.NEW
    if "New_Events_Wits_Advisors" in payload:
        return EventContainerKind.LEGACY
    if "Corporate_Events" in payload:
        return EventContainerKind.CORPORATE_EVENTS
    if _looks_like_event(payload):
        return EventContainerKind.SINGLE
    return EventContainerKind.EMPTY


def _event_dicts(values: Any) -> list[dict[str, Any]]:
    return [item for item in as_list(values) if isinstance(item, dict)]


def parse_event_container(raw: Any) -> list[dict[str, Any]]:
    """Flatten any corporate-event envelope into a list of raw event dicts.

    The new envelope wraps events as ``new_counterparties: [{items: ...}]``
    where ``items`` is either a list or a JSON string of a list.
    """
    payload = coerce_payload(raw)
    kind = detect_event_container(payload)

    if kind is EventContainerKind.NEW:
        events: list[dict[str, Any]] = []
        for bucket in as_list(payload.get("new_counterparties")):
            if isinstance(bucket, dict) and "items" in bucket:
                events.extend(_event_dicts(bucket.get("items")))
            elif _looks_like_event(bucket):
                events.append(bucket)
        return events

    if kind is EventContainerKind.LEGACY:
        return _event_dicts(payload.get("New_Events_Wits_Advisors"))

    if kind is EventContainerKind.CORPORATE_EVENTS:
        return _event_dicts(payload.get("Corporate_Events"))

    if kind is EventContainerKind.LIST:
        return [item for item in payload if isinstance(item, dict)]

    if kind is EventContainerKind.SINGLE:
        return [payload]

    return []


# =============================================================================
# Entity References
# =============================================================================


def _nested_company(element: dict[str, Any]) -> dict[str, Any] | None:
    nested = get_field(element, "nested_company")
    if isinstance(nested, str):
        nested = safe_parse_json(nested)
    return nested if isinstance(nested, dict) else None


def _counterparty_status(element: dict[str, Any]) -> str | None:
    status = get_field(element, "counterparty_status")
    if status is None:
        for key in ("_counterparty_type", "_counterpartys_type", "counterparty_type"):
            wrapper = element.get(key)
            if isinstance(wrapper, dict):
                status = wrapper.get("counterparty_status")
                if status:
                    break
    text = _clean_text(status)
    return text.lower() or None


def _as_bool(value: Any) -> bool | None:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in {"true", "false"}:
        return value.strip().lower() == "true"
    return None


def parse_entity_element(element: Any) -> RawEntityItem | None:
    """Normalize one entity reference element to ``{id, name, route}``.

    Elements may be full objects, legacy counterparty rows (whose company
    lives one level down under ``_new_company``), bare ids, or digit
    strings. Returns None when neither a usable id nor a name exists.
    """
    if isinstance(element, (int, str)) and not isinstance(element, bool):
        entity_id = coerce_entity_id(element)
        if entity_id is not None:
            return RawEntityItem(id=entity_id, name="")
        name = _clean_text(element)
        return RawEntityItem(id=None, name=name) if name else None

    if not isinstance(element, dict):
        return None

    nested = _nested_company(element)

    # On counterparty rows ``id`` is the row id; the company id lives on the
    # nested company or in ``new_company_counterparty``.
    entity_id = None
    if nested is not None:
        entity_id = coerce_entity_id(nested.get("id"))
    if entity_id is None:
        entity_id = coerce_entity_id(element.get("new_company_counterparty"))
    if entity_id is None and nested is None:
        entity_id = coerce_entity_id(get_field(element, "entity_id"))

    name = _clean_text(get_field(element, "entity_name"))
    if not name and nested is not None:
        name = _clean_text(get_field(nested, "entity_name"))

    route = get_field(element, "route")
    if route is None and nested is not None:
        route = get_field(nested, "route")

    path = get_field(element, "path")
    if path is None and nested is not None:
        path = get_field(nested, "path")

    is_investor = _as_bool(get_field(element, "is_investor"))
    if is_investor is None and nested is not None:
        is_investor = _as_bool(get_field(nested, "is_investor"))

    if entity_id is None and not name:
        return None

    return RawEntityItem(
        id=entity_id,
        name=name,
        route=_clean_text(route) or None,
        path=_clean_text(path) or None,
        is_investor=is_investor,
        status=_counterparty_status(element),
    )


def parse_entity_items(raw: Any) -> list[RawEntityItem]:
    """Parse a targets/buyers/sellers/investors field into raw items.

    Accepts a list, a single object (wrapped), or a JSON string of either.
    """
    items: list[RawEntityItem] = []
    for element in as_list(raw):
        item = parse_entity_element(element)
        if item is not None:
            items.append(item)
    return items


# =============================================================================
# Id Lists (business focus, sector ids)
# =============================================================================


def detect_id_list(payload: Any) -> IdListKind:
    """Identify how an id list is encoded."""
    if isinstance(payload, (int, str)) and not isinstance(payload, bool):
        return IdListKind.SINGLE
    if isinstance(payload, dict):
        return IdListKind.OBJECT_LIST
    if isinstance(payload, (list, tuple)) and payload:
        if all(isinstance(item, dict) for item in payload):
            return IdListKind.OBJECT_LIST
        return IdListKind.LIST
    return IdListKind.EMPTY


def _id_from_object(obj: dict[str, Any]) -> int | None:
    for key in ("id", "sector_id", "Sector_id", "primary_business_focus_id", "business_focus_id"):
        entity_id = coerce_entity_id(obj.get(key))
        if entity_id is not None:
            return entity_id
    return None


def parse_id_list(raw: Any) -> list[int]:
    """Normalize an id list to unique positive ints, first-seen order.

    Handles ``74``, ``"74"``, ``"74, 12"``, ``"[74]"``, ``[74, "12"]`` and
    ``[{"id": 74}]``.
    """
    payload = raw
    if isinstance(raw, str):
        text = raw.strip()
        if text.startswith("[") or text.startswith("{"):
            payload = coerce_payload(text)
        elif "," in text:
            payload = [part for part in text.split(",")]

    kind = detect_id_list(payload)
    ids: list[int] = []

    if kind is IdListKind.SINGLE:
        entity_id = coerce_entity_id(payload)
        if entity_id is not None:
            ids.append(entity_id)
    elif kind is IdListKind.OBJECT_LIST:
        objects = [payload] if isinstance(payload, dict) else payload
        for obj in objects:
            entity_id = _id_from_object(obj)
            if entity_id is not None:
                ids.append(entity_id)
    elif kind is IdListKind.LIST:
        for item in payload:
            if isinstance(item, dict):
                entity_id = _id_from_object(item)
            else:
                entity_id = coerce_entity_id(item)
            if entity_id is not None:
                ids.append(entity_id)

    return stable_unique(ids)


def parse_business_focus(raw: Any) -> list[int]:
    """Normalize a primary-business-focus field to focus ids."""
    if isinstance(raw, dict) and get_field(raw, "focus") is not None:
        raw = get_field(raw, "focus")
    return parse_id_list(raw)


# =============================================================================
# Sector Payloads
# =============================================================================


_SPLIT_KEYS = {
    "primary": ("primary_sectors", "Primary_sectors", "_sectors_primary"),
    "secondary": ("secondary_sectors", "Secondary_sectors", "Sub-sectors", "_sectors_secondary"),
}


def _related_names(raw: Any) -> tuple[str, ...]:
    """Flatten a Secondary -> Primary back-reference list to names.

    Seen as a list of names, a list of ``{sector_name}`` objects, or a list
    of wrappers nesting that object under ``_primary_sector``.
    """
    names: list[str] = []
    for entry in as_list(raw):
        if isinstance(entry, str):
            name = _clean_text(entry)
        elif isinstance(entry, dict):
            inner = entry
            for key in ("_primary_sector", "primary_sector", "_sectors", "sector"):
                if isinstance(entry.get(key), dict):
                    inner = entry[key]
                    break
            name = _clean_text(get_field(inner, "sector_name"))
        else:
            continue
        if name:
            names.append(name)
    return tuple(stable_unique(names))


def parse_sector_entry(entry: Any, importance: str | None = None) -> RawSector | None:
    """Normalize one sector entry (object, bare name, or JSON string)."""
    if isinstance(entry, str):
        decoded = safe_parse_json(entry)
        if isinstance(decoded, dict):
            entry = decoded
        else:
            name = _clean_text(entry)
            return RawSector(id=None, name=name, importance=importance) if name else None

    if not isinstance(entry, dict):
        return None

    name = _clean_text(get_field(entry, "sector_name"))
    if not name:
        return None

    tag = get_field(entry, "sector_importance")
    return RawSector(
        id=coerce_entity_id(get_field(entry, "sector_id")),
        name=name,
        importance=_clean_text(tag) or importance,
        related_primary=_related_names(get_field(entry, "related_primary")),
    )


def _sector_list(raw: Any, importance: str | None = None) -> list[RawSector]:
    sectors: list[RawSector] = []
    for entry in as_list(raw):
        sector = parse_sector_entry(entry, importance)
        if sector is not None:
            sectors.append(sector)
    return sectors


def _first_present(payload: dict[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        if key in payload:
            return payload[key]
    return None


def detect_sector_source(payload: Any) -> SectorSourceKind:
    """Identify the sector generation of a decoded payload."""
    if isinstance(payload, dict):
        if any(key in payload for keys in _SPLIT_KEYS.values() for key in keys):
            return SectorSourceKind.SPLIT
        if get_field(payload, "sectors") is not None or get_field(payload, "sector_importance"):
            return SectorSourceKind.TAGGED
        return SectorSourceKind.EMPTY
    if isinstance(payload, list) and payload:
        return SectorSourceKind.TAGGED
    return SectorSourceKind.EMPTY


def parse_sector_source(raw: Any) -> SectorSource:
    """Parse any sector payload into a SectorSource.

    A dict may carry both generations; split lists are kept alongside the
    tagged list so the resolver can prefer whichever is populated.
    """
    payload = coerce_payload(raw)
    kind = detect_sector_source(payload)

    if kind is SectorSourceKind.EMPTY:
        return SectorSource(kind=kind)

    source = SectorSource(kind=kind)

    if isinstance(payload, dict):
        source.primary = _sector_list(_first_present(payload, _SPLIT_KEYS["primary"]), "Primary")
        source.secondary = _sector_list(_first_present(payload, _SPLIT_KEYS["secondary"]), "Secondary")

        tagged = get_field(payload, "sectors")
        if tagged is None and get_field(payload, "sector_importance"):
            tagged = payload  # a single tagged entry
        if tagged is not None:
            source.tagged = _sector_list(tagged)
    else:
        source.tagged = _sector_list(payload)

    if kind is SectorSourceKind.SPLIT and not (source.primary or source.secondary) and source.tagged:
        source.kind = SectorSourceKind.TAGGED

    return source
