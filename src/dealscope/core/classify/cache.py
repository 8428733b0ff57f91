"""
Per-page-view classification cache.

Entries only ever get stronger: a result can replace a cached one only
when its source ranks higher, so a verified result is terminal.
"""

from __future__ import annotations

from dealscope.core.config.models import ClassificationSource

from .models import ClassificationResult

SOURCE_STRENGTH: dict[ClassificationSource, int] = {
    ClassificationSource.FALLBACK_FLAG: 0,
    ClassificationSource.HEURISTIC_RULE: 1,
    ClassificationSource.VERIFIED_BY_LOOKUP: 2,
}


class ClassificationCache:
    """Map of entity id -> ClassificationResult, write-once per strength."""

    def __init__(self) -> None:
        self._entries: dict[int, ClassificationResult] = {}

    def get(self, entity_id: int) -> ClassificationResult | None:
        return self._entries.get(entity_id)

    def put(self, result: ClassificationResult) -> ClassificationResult:
        """Store result unless an equal or stronger entry exists.

        Returns:
            The entry held by the cache after the call
        """
        existing = self._entries.get(result.entity_id)
        if existing is not None and SOURCE_STRENGTH[existing.source] >= SOURCE_STRENGTH[result.source]:
            return existing
        self._entries[result.entity_id] = result
        return result

    def clear(self) -> None:
        self._entries.clear()

    def snapshot(self) -> dict[int, ClassificationResult]:
        return dict(self._entries)

    def __contains__(self, entity_id: object) -> bool:
        return entity_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)
