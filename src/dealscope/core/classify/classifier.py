"""
Entity kind classification.

Decides whether a referenced entity routes as a company or an investor.
Results are memoized per page view in a ClassificationSession; batches run
their lookups concurrently and can be cancelled as a unit.
"""

from __future__ import annotations

import asyncio
import itertools
from typing import TYPE_CHECKING, Any, Iterable

from dealscope.core.config.models import ClassifierConfig
from dealscope.core.logging import ContextualLogger, get_contextual_logger

from .cache import ClassificationCache
from .models import (
    ClassificationRequest,
    ClassificationResult,
    EntityMetadata,
    metadata_from_entity_detail,
)
from .strategies import ClassificationStrategy, default_strategies

if TYPE_CHECKING:
    from dealscope.core.backends.upstream import UpstreamClient


_page_counter = itertools.count(1)


class EntityKindClassifier:
    """Runs the strategy chain for one entity at a time.

    Holds no per-view state; caching and cancellation live in
    ClassificationSession.
    """

    def __init__(
        self,
        config: ClassifierConfig | None = None,
        upstream: "UpstreamClient | None" = None,
        strategies: list[ClassificationStrategy] | None = None,
    ):
        """Initialize the classifier.

        Args:
            config: Classification constants and limits
            upstream: Client for the entity detail and investor-profile lookups;
                without one, classification is purely local
            strategies: Override the default strategy chain
        """
        self.config = config or ClassifierConfig()
        self.upstream = upstream
        self.strategies = strategies or default_strategies(self.config, upstream)

    async def load_metadata(self, entity_id: int, log: ContextualLogger) -> EntityMetadata:
        """Fetch focus/sector metadata from the entity detail endpoint."""
        if self.upstream is None:
            return EntityMetadata()
        try:
            payload = await self.upstream.get_entity_detail(entity_id)
        except Exception as e:
            log.warning("Entity detail lookup failed: %r", e)
            return EntityMetadata()
        if payload is None:
            log.debug("Entity detail unavailable; classifying without metadata")
            return EntityMetadata()
        return metadata_from_entity_detail(payload)

    async def resolve(
        self,
        request: ClassificationRequest,
        *,
        require_verification: bool = True,
        log: ContextualLogger | None = None,
    ) -> ClassificationResult:
        """Walk the strategy chain until one step is definitive.

        Args:
            request: Entity to classify
            require_verification: Run remote steps; False skips the lookup
            log: Logger bound to the caller's page view

        Returns:
            ClassificationResult (the default step always answers)
        """
        log = (log or get_contextual_logger("classify")).with_context(entity_id=request.entity_id)

        metadata = request.metadata
        if metadata is None:
            metadata = await self.load_metadata(request.entity_id, log)

        for strategy in self.strategies:
            if strategy.remote and not require_verification:
                continue
            result = await strategy.resolve(request, metadata, log)
            if result is not None:
                log.debug(
                    "Classified as %s via %s",
                    result.kind.value,
                    result.source.value,
                    extra={"source": result.source.value},
                )
                return result

        raise RuntimeError("Classification strategy chain ended without a result")

    def session(self, page: str | None = None) -> "ClassificationSession":
        """Start a classification scope for one page view."""
        return ClassificationSession(self, page=page)

    async def classify(
        self,
        entity_id: int,
        metadata: EntityMetadata | None = None,
        fallback_flag: bool | None = None,
        *,
        require_verification: bool = True,
        session: "ClassificationSession | None" = None,
    ) -> ClassificationResult:
        """Classify one entity within session (a throwaway one if omitted)."""
        scope = session or self.session()
        return await scope.classify(
            entity_id,
            metadata,
            fallback_flag,
            require_verification=require_verification,
        )

    async def classify_many(
        self,
        requests: Iterable[ClassificationRequest | int],
        *,
        require_verification: bool = True,
        session: "ClassificationSession | None" = None,
    ) -> dict[int, ClassificationResult]:
        """Batch variant of classify(); see ClassificationSession.classify_many."""
        scope = session or self.session()
        return await scope.classify_many(requests, require_verification=require_verification)


class ClassificationSession:
    """Classification scope for one page view.

    Owns the write-once cache and tracks in-flight batch tasks. ``cancel()``
    abandons the current batch: its tasks are cancelled and any result that
    still arrives is not written to the cache. ``close()`` also discards the
    cache, as on navigation away.
    """

    def __init__(self, classifier: EntityKindClassifier, page: str | None = None):
        self.classifier = classifier
        self.page = page or f"view-{next(_page_counter)}"
        self.cache = ClassificationCache()
        self.log = get_contextual_logger("classify", page=self.page)
        self._generation = 0
        self._tasks: set[asyncio.Task[Any]] = set()
        self.closed = False

    @property
    def generation(self) -> int:
        return self._generation

    async def classify(
        self,
        entity_id: int,
        metadata: EntityMetadata | None = None,
        fallback_flag: bool | None = None,
        *,
        require_verification: bool = True,
    ) -> ClassificationResult:
        """Classify one entity, answering from the cache when possible."""
        request = ClassificationRequest(
            entity_id=entity_id,
            metadata=metadata,
            fallback_flag=fallback_flag,
        )
        return await self._classify_request(request, require_verification)

    async def _classify_request(
        self,
        request: ClassificationRequest,
        require_verification: bool,
    ) -> ClassificationResult:
        cached = self.cache.get(request.entity_id)
        if cached is not None:
            return cached

        generation = self._generation
        result = await self.classifier.resolve(
            request,
            require_verification=require_verification,
            log=self.log,
        )

        if generation != self._generation or self.closed:
            self.log.debug(
                "Discarding late classification",
                extra={"entity_id": request.entity_id},
            )
            return result
        return self.cache.put(result)

    async def _fallback(self, request: ClassificationRequest) -> ClassificationResult:
        """Local-only classification for an entity whose lookup blew up."""
        result = await self.classifier.resolve(
            request,
            require_verification=False,
            log=self.log,
        )
        return self.cache.put(result)

    async def classify_many(
        self,
        requests: Iterable[ClassificationRequest | int],
        *,
        require_verification: bool = True,
    ) -> dict[int, ClassificationResult]:
        """Classify a batch concurrently.

        Requests are deduplicated by entity id (first wins), lookups are
        capped at ``max_concurrency`` and the returned map is complete: an
        entity whose lookup raised is classified locally instead.

        Raises:
            asyncio.CancelledError: If the batch was cancelled via cancel()
        """
        unique: dict[int, ClassificationRequest] = {}
        for item in requests:
            request = item if isinstance(item, ClassificationRequest) else ClassificationRequest(entity_id=item)
            unique.setdefault(request.entity_id, request)

        if not unique:
            return {}

        generation = self._generation
        semaphore = asyncio.Semaphore(self.classifier.config.max_concurrency)

        async def run(request: ClassificationRequest) -> ClassificationResult:
            if request.entity_id in self.cache:
                return self.cache.get(request.entity_id)
            async with semaphore:
                return await self._classify_request(request, require_verification)

        tasks = [asyncio.ensure_future(run(request)) for request in unique.values()]
        for task in tasks:
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

        outcomes = await asyncio.gather(*tasks, return_exceptions=True)

        if generation != self._generation:
            raise asyncio.CancelledError()

        results: dict[int, ClassificationResult] = {}
        for request, outcome in zip(unique.values(), outcomes):
            if isinstance(outcome, ClassificationResult):
                results[request.entity_id] = outcome
                continue
            self.log.warning(
                "Classification failed: %s",
                outcome,
                extra={"entity_id": request.entity_id},
            )
            results[request.entity_id] = await self._fallback(request)

        return results

    def cancel(self) -> None:
        """Cancel the in-flight batch; late results are dropped."""
        self._generation += 1
        pending = [task for task in self._tasks if not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            self.log.debug("Cancelled %d in-flight classifications", len(pending))

    def close(self) -> None:
        """Cancel everything and discard the cache."""
        self.cancel()
        self.cache.clear()
        self.closed = True

    async def __aenter__(self) -> "ClassificationSession":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
