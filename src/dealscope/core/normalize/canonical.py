"""
Canonical corporate-event model.

Assembles one CorporateEventCanonical from any event generation: the
party lists are routed by role, amounts become MoneyAmounts and sectors
are resolved into primary/secondary buckets.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Iterable, Mapping

from dealscope.core.config.models import EntityKind
from dealscope.core.config.vocabulary import get_field

from .dedupe import coerce_entity_id, dedupe_by_id, dedupe_names, safe_parse_json
from .entities import EntityRef, merge_entity_refs, to_entity_ref, to_entity_refs
from .payloads import (
    RawEntityItem,
    as_list,
    coerce_payload,
    parse_entity_element,
    parse_entity_items,
    parse_event_container,
)
from .scalars import (
    EMPTY_MONEY,
    MoneyAmount,
    display_or_not_available,
    format_date_display,
    money_amount,
    normalize_date,
)
from .sectors import ResolvedSectors, resolve_sectors

logger = logging.getLogger(__name__)

# Sector buckets of an event share the resolver's result type
EventSectors = ResolvedSectors


# =============================================================================
# Canonical Structures
# =============================================================================


@dataclass
class EventParties:
    """Parties of a corporate event, grouped by role."""

    targets: list[EntityRef] = field(default_factory=list)
    buyers: list[EntityRef] = field(default_factory=list)
    investors: list[EntityRef] = field(default_factory=list)
    sellers: list[EntityRef] = field(default_factory=list)
    advisors: list[str] = field(default_factory=list)
    other_counterparties: list[EntityRef] = field(default_factory=list)

    def all_refs(self) -> list[EntityRef]:
        """Every entity reference across roles, deduplicated by id."""
        return merge_entity_refs(
            self.targets,
            self.buyers,
            self.investors,
            self.sellers,
            self.other_counterparties,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "targets": [r.to_dict() for r in self.targets],
            "buyers": [r.to_dict() for r in self.buyers],
            "investors": [r.to_dict() for r in self.investors],
            "sellers": [r.to_dict() for r in self.sellers],
            "advisors": list(self.advisors),
            "other_counterparties": [r.to_dict() for r in self.other_counterparties],
        }


@dataclass
class CorporateEventCanonical:
    """Corporate event in the single shape the presentation layer renders."""

    id: int | None
    description: str
    announcement_date: date | None
    deal_type: str
    parties: EventParties = field(default_factory=EventParties)
    investment_amount: MoneyAmount = EMPTY_MONEY
    enterprise_value: MoneyAmount = EMPTY_MONEY
    sectors: EventSectors = field(default_factory=EventSectors)
    funding_stage: str = ""
    is_partnership: bool = False

    @property
    def navigation_path(self) -> str:
        return f"/corporate-event/{self.id}" if self.id is not None else ""

    @property
    def announcement_display(self) -> str:
        return format_date_display(self.announcement_date)

    def with_parties(self, parties: EventParties) -> "CorporateEventCanonical":
        return CorporateEventCanonical(
            id=self.id,
            description=self.description,
            announcement_date=self.announcement_date,
            deal_type=self.deal_type,
            parties=parties,
            investment_amount=self.investment_amount,
            enterprise_value=self.enterprise_value,
            sectors=self.sectors,
            funding_stage=self.funding_stage,
            is_partnership=self.is_partnership,
        )

    def to_dict(self) -> dict[str, Any]:
        """JSON-serializable representation."""
        return {
            "id": self.id,
            "description": display_or_not_available(self.description),
            "announcement_date": (
                self.announcement_date.isoformat() if self.announcement_date else None
            ),
            "announcement_display": self.announcement_display,
            "deal_type": display_or_not_available(self.deal_type),
            "funding_stage": self.funding_stage,
            "is_partnership": self.is_partnership,
            "navigation_path": self.navigation_path,
            "parties": self.parties.to_dict(),
            "investment_amount": self.investment_amount.to_dict(),
            "enterprise_value": self.enterprise_value.to_dict(),
            "sectors": self.sectors.to_dict(),
        }


# =============================================================================
# Counterparty Role Routing
# =============================================================================


_ROLE_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("investors", ("investor",)),
    ("buyers", ("acquirer", "buyer")),
    ("sellers", ("seller", "divestor", "vendor")),
    ("targets", ("target",)),
)


def role_for_status(status: str | None) -> str | None:
    """Map a counterparty status ('Investor', 'Acquirer', ...) to a role."""
    if not status:
        return None
    text = status.lower()
    for role, keywords in _ROLE_KEYWORDS:
        if any(keyword in text for keyword in keywords):
            return role
    return None


def _refs(items: Iterable[RawEntityItem]) -> list[EntityRef]:
    return [ref for ref in (to_entity_ref(item) for item in items) if ref is not None]


def _as_role(refs: Iterable[EntityRef], kind: EntityKind) -> list[EntityRef]:
    """Pin refs whose route was inconclusive to the kind implied by their role."""
    return [ref.with_kind(kind) if ref.kind is EntityKind.UNKNOWN else ref for ref in refs]


def _first_non_empty(*candidates: list[EntityRef]) -> list[EntityRef]:
    for candidate in candidates:
        if candidate:
            return dedupe_by_id(candidate, key=lambda ref: ref.id)
    return []


def _legacy_bucket(raw: Mapping[str, Any], key: str) -> list[RawEntityItem]:
    return parse_entity_items(raw.get(key))


def _targets(raw: Mapping[str, Any], routed: list[EntityRef]) -> list[EntityRef]:
    explicit = to_entity_refs(raw.get("targets"))

    legacy: list[EntityRef] = []
    target_counterparty = coerce_payload(raw.get("target_counterparty"))
    if isinstance(target_counterparty, dict):
        item = parse_entity_element(target_counterparty)
        if item is not None and item.name:
            legacy = _refs([item])

    target_company = to_entity_refs(raw.get("target_company"))
    return _first_non_empty(explicit, legacy, target_company, routed)


def _advisor_names(raw: Mapping[str, Any]) -> list[str]:
    names: list[str] = []
    names.extend(item.name for item in parse_entity_items(raw.get("advisors")) if item.name)
    names.extend(item.name for item in _legacy_bucket(raw, "1") if item.name)

    for value in as_list(raw.get("advisors_names")):
        if isinstance(value, str) and value.strip():
            names.append(value.strip())

    for entry in as_list(raw.get("other_advisors")):
        if isinstance(entry, str):
            entry = safe_parse_json(entry) or entry
        for advisor in as_list(entry):
            if isinstance(advisor, dict):
                name = advisor.get("advisor_company_name")
                if isinstance(name, str) and name.strip():
                    names.append(name.strip())

    return dedupe_names(names)


def route_parties(raw: Mapping[str, Any], deal_type: str = "") -> EventParties:
    """Route every party field of a raw event into role lists.

    Each role takes the first non-empty source in order: status-routed
    ``other_counterparties``, the explicit role array, ``buyers_investors``,
    then the legacy ``"0"`` bucket. ``buyers_investors`` entries count as
    investors on investment deals.
    """
    routed: dict[str, list[EntityRef]] = {role: [] for role, _ in _ROLE_KEYWORDS}
    unrouted: list[RawEntityItem] = []
    for item in parse_entity_items(raw.get("other_counterparties")):
        role = role_for_status(item.status)
        if role is None:
            unrouted.append(item)
        else:
            routed[role].extend(_refs([item]))

    is_investment = "investment" in deal_type.lower()
    combined = parse_entity_items(raw.get("buyers_investors"))
    combined_investors = [
        item for item in combined
        if is_investment or (item.route or "").lower().startswith("investor")
    ]
    combined_buyers = [] if is_investment else [
        item for item in combined if item not in combined_investors
    ]

    legacy = _legacy_bucket(raw, "0")
    legacy_investors = [item for item in legacy if item.is_investor]
    legacy_buyers = [item for item in legacy if not item.is_investor]

    investors = _as_role(
        _first_non_empty(
            routed["investors"],
            to_entity_refs(raw.get("investors")),
            _refs(combined_investors),
            _refs(legacy_investors),
        ),
        EntityKind.INVESTOR,
    )
    buyers = _first_non_empty(
        routed["buyers"],
        to_entity_refs(raw.get("buyers")),
        _as_role(_refs(combined_buyers), EntityKind.COMPANY),
        _as_role(_refs(legacy_buyers), EntityKind.COMPANY),
    )
    sellers = _first_non_empty(to_entity_refs(raw.get("sellers")), routed["sellers"])
    targets = _targets(raw, routed["targets"])

    assigned = {ref.id for ref in [*targets, *buyers, *investors, *sellers] if ref.id is not None}
    others = [
        ref for ref in dedupe_by_id(_refs(unrouted), key=lambda ref: ref.id)
        if ref.id is None or ref.id not in assigned
    ]

    return EventParties(
        targets=targets,
        buyers=buyers,
        investors=investors,
        sellers=sellers,
        advisors=_advisor_names(raw),
        other_counterparties=others,
    )


# =============================================================================
# Deal Metrics
# =============================================================================


def _investment_amount(raw: Mapping[str, Any], default_currency: str | None) -> MoneyAmount:
    data = coerce_payload(raw.get("investment_data"))
    data = data if isinstance(data, dict) else {}

    value = data.get("investment_amount_m")
    unit = "m" if value not in (None, "") else ""
    if not unit:
        value = data.get("investment_amount")

    return money_amount(
        value,
        data,
        display=raw.get("investment_display"),
        unit=unit,
        default_currency=default_currency,
    )


def _enterprise_value(raw: Mapping[str, Any], default_currency: str | None) -> MoneyAmount:
    data = coerce_payload(raw.get("ev_data"))
    data = data if isinstance(data, dict) else {}

    return money_amount(
        data.get("enterprise_value_m"),
        data,
        display=raw.get("ev_display"),
        band=data.get("ev_band"),
        unit="m",
        default_currency=default_currency,
    )


def _deal_type(raw: Mapping[str, Any]) -> str:
    value = get_field(raw, "deal_type")
    if value is None:
        value = raw.get("deal_types")
    if isinstance(value, (list, tuple)):
        return ", ".join(v.strip() for v in value if isinstance(v, str) and v.strip())
    return value.strip() if isinstance(value, str) else ""


def _funding_stage(raw: Mapping[str, Any]) -> str:
    data = coerce_payload(raw.get("investment_data"))
    if not isinstance(data, dict):
        return ""
    stage = data.get("Funding_stage") or data.get("funding_stage") or ""
    return stage.strip() if isinstance(stage, str) else ""


# =============================================================================
# Entry Points
# =============================================================================


def normalize_corporate_event(
    raw: Any,
    *,
    sectors: Any = None,
    keyword_table: Mapping[str, str] | None = None,
    use_keyword_fallback: bool = True,
    default_currency: str | None = None,
) -> CorporateEventCanonical | None:
    """Normalize one raw event of any generation.

    Args:
        raw: Event dict or JSON string
        sectors: Sector payload to use instead of the event's own fields
        keyword_table: Override for the sector keyword fallback table
        use_keyword_fallback: Allow keyword-approximated primary sectors
        default_currency: Currency assumed for amounts without one

    Returns:
        CorporateEventCanonical, or None when raw is not an event object
    """
    payload = coerce_payload(raw)
    if not isinstance(payload, dict):
        return None

    deal_type = _deal_type(payload)
    description = payload.get("description")

    return CorporateEventCanonical(
        id=coerce_entity_id(payload.get("id")),
        description=" ".join(description.split()) if isinstance(description, str) else "",
        announcement_date=normalize_date(get_field(payload, "announcement_date")),
        deal_type=deal_type,
        parties=route_parties(payload, deal_type),
        investment_amount=_investment_amount(payload, default_currency),
        enterprise_value=_enterprise_value(payload, default_currency),
        sectors=resolve_sectors(
            payload if sectors is None else sectors,
            keyword_table=keyword_table,
            use_keyword_fallback=use_keyword_fallback,
        ),
        funding_stage=_funding_stage(payload),
        is_partnership="partnership" in deal_type.lower(),
    )


def normalize_corporate_events(raw: Any, **kwargs: Any) -> list[CorporateEventCanonical]:
    """Normalize an event envelope of any generation into canonical events.

    Events sharing an id are collapsed, first occurrence wins.
    """
    events = []
    for event in parse_event_container(raw):
        canonical = normalize_corporate_event(event, **kwargs)
        if canonical is not None:
            events.append(canonical)
    logger.debug("Normalized %d corporate events", len(events))
    return dedupe_by_id(events, key=lambda event: event.id)
