"""
Deduplication and ordering helpers shared by every normalizer.
"""

from __future__ import annotations

from typing import Any, Callable, Iterable, TypeVar

import orjson

T = TypeVar("T")


def coerce_entity_id(value: Any) -> int | None:
    """Return value as a positive int id, or None.

    Accepts ints and digit strings. Booleans and floats with a fractional
    part are rejected.
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    if isinstance(value, float):
        if value.is_integer() and value > 0:
            return int(value)
        return None
    if isinstance(value, str):
        text = value.strip()
        if text.isdigit():
            number = int(text)
            return number if number > 0 else None
    return None


def _default_id(item: Any) -> Any:
    if isinstance(item, dict):
        return item.get("id")
    return getattr(item, "id", None)


def dedupe_by_id(
    items: Iterable[T],
    key: Callable[[T], Any] | None = None,
) -> list[T]:
    """Drop repeated ids, keeping the first occurrence in original order.

    Items without a valid positive-integer id are always kept; they are
    display-only and cannot be matched against each other.

    Args:
        items: Dicts or objects carrying an ``id``
        key: Optional id accessor

    Returns:
        New list with duplicates removed
    """
    get_id = key or _default_id
    seen: set[int] = set()
    result: list[T] = []

    for item in items:
        entity_id = coerce_entity_id(get_id(item))
        if entity_id is None:
            result.append(item)
            continue
        if entity_id in seen:
            continue
        seen.add(entity_id)
        result.append(item)

    return result


def dedupe_names(names: Iterable[Any]) -> list[str]:
    """Trim names and drop blanks and case-insensitive repeats, first wins."""
    seen: set[str] = set()
    result: list[str] = []
    for name in names:
        if not isinstance(name, str):
            continue
        text = " ".join(name.split())
        folded = text.casefold()
        if not text or folded in seen:
            continue
        seen.add(folded)
        result.append(text)
    return result


def stable_unique(values: Iterable[T]) -> list[T]:
    """Order-preserving unique for hashable values."""
    return list(dict.fromkeys(values))


def safe_parse_json(value: Any) -> Any | None:
    """Strictly parse a JSON string; None on any failure.

    The backend sometimes double-escapes quotes as the literal sequence
    ``\\u0022``; when a strict parse fails those are normalized and the
    parse is retried.
    """
    if isinstance(value, (bytes, bytearray)):
        try:
            value = value.decode("utf-8")
        except UnicodeDecodeError:
            return None
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None

    try:
        return orjson.loads(text)
    except orjson.JSONDecodeError:
        if "\\u0022" not in text:
            return None

    try:
        return orjson.loads(text.replace("\\u0022", '"'))
    except orjson.JSONDecodeError:
        return None
