"""Normalization of heterogeneous upstream payloads into canonical values."""

from .dedupe import (
    coerce_entity_id,
    dedupe_by_id,
    dedupe_names,
    safe_parse_json,
    stable_unique,
)
from .scalars import (
    NOT_AVAILABLE,
    EMPTY_MONEY,
    MoneyAmount,
    is_not_available,
    display_or_not_available,
    extract_year,
    normalize_date,
    format_date_display,
    extract_currency_code,
    parse_amount,
    format_amount,
    format_money,
    format_millions,
    normalize_money_display,
    parse_display_amount,
    money_amount,
)
from .payloads import (
    EventContainerKind,
    SectorSourceKind,
    IdListKind,
    RawEntityItem,
    RawSector,
    SectorSource,
    coerce_payload,
    as_list,
    detect_event_container,
    parse_event_container,
    parse_entity_element,
    parse_entity_items,
    detect_id_list,
    parse_id_list,
    parse_business_focus,
    detect_sector_source,
    parse_sector_source,
)
from .entities import (
    EntityRef,
    entity_path,
    route_kind,
    normalize_path,
    resolve_navigation,
    to_entity_refs,
    merge_entity_refs,
    resolve_search_href,
)
from .sectors import (
    SectorRef,
    ResolvedSectors,
    sector_href,
    format_sectors,
    keyword_primary_sectors,
    resolve_sectors,
)
from .canonical import (
    EventParties,
    EventSectors,
    CorporateEventCanonical,
    role_for_status,
    route_parties,
    normalize_corporate_event,
    normalize_corporate_events,
)
from .fx import FxRates, FALLBACK_RATES, convert_amount, rates_from_payload

__all__ = [
    # Dedupe
    "coerce_entity_id",
    "dedupe_by_id",
    "dedupe_names",
    "safe_parse_json",
    "stable_unique",
    # Scalars
    "NOT_AVAILABLE",
    "EMPTY_MONEY",
    "MoneyAmount",
    "is_not_available",
    "display_or_not_available",
    "extract_year",
    "normalize_date",
    "format_date_display",
    "extract_currency_code",
    "parse_amount",
    "format_amount",
    "format_money",
    "format_millions",
    "normalize_money_display",
    "parse_display_amount",
    "money_amount",
    # Payloads
    "EventContainerKind",
    "SectorSourceKind",
    "IdListKind",
    "RawEntityItem",
    "RawSector",
    "SectorSource",
    "coerce_payload",
    "as_list",
    "detect_event_container",
    "parse_event_container",
    "parse_entity_element",
    "parse_entity_items",
    "detect_id_list",
    "parse_id_list",
    "parse_business_focus",
    "detect_sector_source",
    "parse_sector_source",
    # Entities
    "EntityRef",
    "entity_path",
    "route_kind",
    "normalize_path",
    "resolve_navigation",
    "to_entity_refs",
    "merge_entity_refs",
    "resolve_search_href",
    # Sectors
    "SectorRef",
    "ResolvedSectors",
    "sector_href",
    "format_sectors",
    "keyword_primary_sectors",
    "resolve_sectors",
    # Canonical
    "EventParties",
    "EventSectors",
    "CorporateEventCanonical",
    "role_for_status",
    "route_parties",
    "normalize_corporate_event",
    "normalize_corporate_events",
    # FX
    "FxRates",
    "FALLBACK_RATES",
    "convert_amount",
    "rates_from_payload",
]
