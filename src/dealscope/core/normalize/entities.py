"""
Entity reference normalization.

Turns parsed entity items into deduplicated EntityRefs with a resolved
navigation target.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field, replace
from typing import Any, Iterable

from dealscope.core.config.models import EntityKind
from dealscope.core.config.vocabulary import COMPANY_ROUTE_TOKENS, INVESTOR_ROUTE_TOKENS

from .dedupe import coerce_entity_id, dedupe_by_id
from .payloads import RawEntityItem, parse_entity_items

logger = logging.getLogger(__name__)

_LEGACY_INVESTOR_PREFIX = re.compile(r"^/?investor/", re.IGNORECASE)

ENTITY_PATHS: dict[EntityKind, str] = {
    EntityKind.COMPANY: "/company/{id}",
    EntityKind.INVESTOR: "/investors/{id}",
}

# Search result type -> path template
SEARCH_PATHS: dict[str, str] = {
    "company": "/company/{id}",
    "investor": "/investors/{id}",
    "investors": "/investors/{id}",
    "advisor": "/advisor/{id}",
    "advisors": "/advisor/{id}",
    "individual": "/individual/{id}",
    "individuals": "/individual/{id}",
    "corporate_event": "/corporate-event/{id}",
    "corporate-events": "/corporate-event/{id}",
    "event": "/corporate-event/{id}",
    "insight": "/article/{id}",
    "insights": "/article/{id}",
    "article": "/article/{id}",
    "sector": "/sector/{id}",
    "sub_sector": "/sub-sector/{id}",
    "sub-sector": "/sub-sector/{id}",
}


@dataclass(frozen=True)
class EntityRef:
    """A canonical reference to a company or investor.

    ``id`` is None for display-only references; those render as plain text
    when ``navigation_path`` is empty. ``investor_flag`` carries the
    record's own "is investor" indicator for the classifier's fallback.
    """

    id: int | None
    name: str
    kind: EntityKind = EntityKind.UNKNOWN
    navigation_path: str = ""
    investor_flag: bool | None = field(default=None, compare=False)

    @property
    def clickable(self) -> bool:
        return bool(self.navigation_path)

    @property
    def ambiguous(self) -> bool:
        """True when the route gave no definitive kind but an id exists."""
        return self.id is not None and self.kind is EntityKind.UNKNOWN

    def with_kind(self, kind: EntityKind) -> "EntityRef":
        """Copy with a new kind; the path is rebuilt when an id exists."""
        if self.id is None:
            return replace(self, kind=kind)
        return replace(self, kind=kind, navigation_path=entity_path(kind, self.id))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "kind": self.kind.value,
            "navigation_path": self.navigation_path,
        }


def entity_path(kind: EntityKind, entity_id: int) -> str:
    """Navigation path for an entity; unknown kinds route as companies."""
    template = ENTITY_PATHS.get(kind, ENTITY_PATHS[EntityKind.COMPANY])
    return template.format(id=entity_id)


def route_kind(route: str | None) -> EntityKind:
    """Interpret a ``route``/``entity_type``/``page_type`` value."""
    if not route:
        return EntityKind.UNKNOWN
    token = route.strip().strip("/").split("/")[0].lower()
    if token in INVESTOR_ROUTE_TOKENS:
        return EntityKind.INVESTOR
    if token in COMPANY_ROUTE_TOKENS:
        return EntityKind.COMPANY
    return EntityKind.UNKNOWN


def normalize_path(path: str) -> str:
    """Rewrite the legacy singular ``/investor/`` prefix to ``/investors/``."""
    text = path.strip()
    if _LEGACY_INVESTOR_PREFIX.match(text):
        return _LEGACY_INVESTOR_PREFIX.sub("/investors/", text, count=1)
    if text and not text.startswith("/") and "://" not in text:
        text = "/" + text
    return text


def resolve_navigation(item: RawEntityItem) -> tuple[EntityKind, str]:
    """Resolve (kind, navigation path) for one parsed item.

    Precedence: numeric id with route hint; explicit path string; nothing.
    """
    if item.id is not None:
        kind = route_kind(item.route)
        return kind, entity_path(kind, item.id)

    if item.path:
        path = normalize_path(item.path)
        return route_kind(path), path

    return EntityKind.UNKNOWN, ""


def to_entity_ref(item: RawEntityItem) -> EntityRef | None:
    """Convert one parsed item; nameless items cannot be rendered."""
    if not item.name:
        logger.debug("Dropping nameless entity reference id=%s", item.id)
        return None
    kind, path = resolve_navigation(item)
    return EntityRef(
        id=item.id,
        name=item.name,
        kind=kind,
        navigation_path=path,
        investor_flag=item.is_investor,
    )


def to_entity_refs(parsed: Any) -> list[EntityRef]:
    """Convert parsed items (or a raw field) into deduplicated EntityRefs.

    Args:
        parsed: A list of RawEntityItem, or any raw entity-list payload

    Returns:
        EntityRefs, first occurrence of each id kept, order preserved
    """
    if isinstance(parsed, list) and all(isinstance(item, RawEntityItem) for item in parsed):
        items: Iterable[RawEntityItem] = parsed
    else:
        items = parse_entity_items(parsed)

    refs = [ref for ref in (to_entity_ref(item) for item in items) if ref is not None]
    return dedupe_by_id(refs, key=lambda ref: ref.id)


def merge_entity_refs(*groups: Iterable[EntityRef]) -> list[EntityRef]:
    """Concatenate groups and dedupe across them, first wins."""
    combined: list[EntityRef] = []
    for group in groups:
        combined.extend(group)
    return dedupe_by_id(combined, key=lambda ref: ref.id)


def resolve_search_href(result_type: Any, entity_id: Any) -> str:
    """Navigation path for a global-search result, or '' when unroutable."""
    number = coerce_entity_id(entity_id)
    if number is None:
        return ""
    token = str(result_type or "").strip().lower()
    template = SEARCH_PATHS.get(token)
    return template.format(id=number) if template else ""
