import asyncio

import httpx
import pytest

from dealscope.core.classify import (
    ClassificationCache,
    ClassificationRequest,
    ClassificationResult,
    ClassificationStrategy,
    DefaultStrategy,
    EntityKindClassifier,
    EntityMetadata,
    FallbackFlagStrategy,
    HeuristicStrategy,
    has_investor_marker,
    metadata_from_entity_detail,
)
from dealscope.core.backends import Backend, UpstreamClient
from dealscope.core.config import ClassificationSource, ClassifierConfig, EntityKind

INVESTOR_METADATA = EntityMetadata.from_fields(focus="74", sectors=[{"id": 23877}])
COMPANY_METADATA = EntityMetadata.from_fields(focus=[12], sectors=[400])


def _result(entity_id, kind, source):
    return ClassificationResult(entity_id=entity_id, kind=kind, source=source)


class GatedStrategy(ClassificationStrategy):
    """Remote step that blocks until released, then verifies as Investor."""

    remote = True

    def __init__(self):
        self.gate = asyncio.Event()
        self.started = 0

    @property
    def name(self):
        return "gated"

    async def resolve(self, request, metadata, log):
        self.started += 1
        await self.gate.wait()
        return _result(request.entity_id, EntityKind.INVESTOR, ClassificationSource.VERIFIED_BY_LOOKUP)


class ExplodingStrategy(ClassificationStrategy):
    remote = True

    def __init__(self, bad_id):
        self.bad_id = bad_id

    @property
    def name(self):
        return "exploding"

    async def resolve(self, request, metadata, log):
        if request.entity_id == self.bad_id:
            raise RuntimeError("lookup exploded")
        return None


class BrokenBackend(Backend):
    """Backend whose fetch fails with a non-transport error."""

    def __init__(self):
        self.calls = 0

    @property
    def name(self):
        return "broken"

    async def fetch(self, request):
        self.calls += 1
        raise ValueError("bad base url")


def _local_chain(*remote):
    config = ClassifierConfig()
    return EntityKindClassifier(
        config,
        strategies=[HeuristicStrategy(config), *remote, FallbackFlagStrategy(), DefaultStrategy()],
    )


class TestMetadata:
    def test_from_fields_normalizes_encodings(self):
        assert INVESTOR_METADATA.focus_ids == (74,)
        assert INVESTOR_METADATA.sector_ids == (23877,)
        assert EntityMetadata.from_fields().empty

    def test_detail_company_record(self):
        payload = {"Company": {"primary_business_focus_id": [{"id": 74}], "sectors_id": "[23878]"}}
        metadata = metadata_from_entity_detail(payload)
        assert metadata.focus_ids == (74,)
        assert metadata.sector_ids == (23878,)
        assert metadata.is_investor is None

    def test_detail_investor_record_implies_flag(self):
        metadata = metadata_from_entity_detail('{"Investor": {"id": 3, "name": "Fund"}}')
        assert metadata.is_investor is True

    @pytest.mark.parametrize("payload", [None, "{", [], {"Company": {}}])
    def test_detail_garbage(self, payload):
        assert metadata_from_entity_detail(payload) == EntityMetadata()

    def test_marker_detection(self):
        keys = ("Investor", "Focus", "Invested_DA_sectors")
        assert has_investor_marker({"Focus": [{"id": 1}]}, keys)
        assert not has_investor_marker({"Investor": {}}, keys)
        assert not has_investor_marker({"Investor": None, "other": 1}, keys)
        assert not has_investor_marker(None, keys)


class TestCache:
    def test_stronger_source_replaces(self):
        cache = ClassificationCache()
        cache.put(_result(1, EntityKind.COMPANY, ClassificationSource.FALLBACK_FLAG))
        stored = cache.put(_result(1, EntityKind.INVESTOR, ClassificationSource.HEURISTIC_RULE))
        assert stored.source is ClassificationSource.HEURISTIC_RULE

    def test_verified_is_terminal(self):
        cache = ClassificationCache()
        verified = cache.put(_result(1, EntityKind.INVESTOR, ClassificationSource.VERIFIED_BY_LOOKUP))
        assert cache.put(_result(1, EntityKind.COMPANY, ClassificationSource.FALLBACK_FLAG)) is verified
        assert cache.put(_result(1, EntityKind.INVESTOR, ClassificationSource.HEURISTIC_RULE)) is verified
        assert len(cache) == 1
        assert 1 in cache


class TestStrategyChain:
    @pytest.mark.asyncio
    async def test_heuristic_needs_no_network(self, recording_handler, make_upstream):
        async with make_upstream(recording_handler) as upstream:
            classifier = EntityKindClassifier(upstream=upstream)
            result = await classifier.classify(10, INVESTOR_METADATA)

        assert result.kind is EntityKind.INVESTOR
        assert result.source is ClassificationSource.HEURISTIC_RULE
        assert recording_handler.requests == []

    @pytest.mark.asyncio
    async def test_unconfirmed_archetype_sector_is_verified(self, recording_handler, make_upstream):
        metadata = EntityMetadata(focus_ids=(74,), sector_ids=(23880,))
        async with make_upstream(recording_handler) as upstream:
            classifier = EntityKindClassifier(upstream=upstream)
            result = await classifier.classify(5, metadata)

        assert result.kind is EntityKind.COMPANY
        assert result.source is not ClassificationSource.HEURISTIC_RULE
        assert recording_handler.profile_calls == 1

    @pytest.mark.asyncio
    async def test_unexpected_backend_error_falls_back(self):
        backend = BrokenBackend()
        classifier = EntityKindClassifier(upstream=UpstreamClient(backend=backend))

        result = await classifier.classify(6, fallback_flag=True)

        assert result.kind is EntityKind.INVESTOR
        assert result.source is ClassificationSource.FALLBACK_FLAG
        assert backend.calls == 2

        result = await classifier.classify(7, COMPANY_METADATA)
        assert result.kind is EntityKind.COMPANY

    @pytest.mark.asyncio
    async def test_verified_by_lookup(self, recording_handler, make_upstream):
        recording_handler.profiles[11] = {"Investor": {"id": 11, "name": "Fund"}}
        async with make_upstream(recording_handler) as upstream:
            classifier = EntityKindClassifier(upstream=upstream)
            result = await classifier.classify(11, COMPANY_METADATA)

        assert result.kind is EntityKind.INVESTOR
        assert result.source is ClassificationSource.VERIFIED_BY_LOOKUP

    @pytest.mark.asyncio
    async def test_missing_profile_defaults_to_company(self, recording_handler, make_upstream):
        async with make_upstream(recording_handler) as upstream:
            classifier = EntityKindClassifier(upstream=upstream)
            result = await classifier.classify(12, COMPANY_METADATA)

        assert result.kind is EntityKind.COMPANY
        assert result.source is ClassificationSource.FALLBACK_FLAG
        assert recording_handler.profile_calls == 1

    @pytest.mark.asyncio
    async def test_failed_lookup_uses_fallback_flag(self, recording_handler, make_upstream):
        recording_handler.profiles[13] = 503
        async with make_upstream(recording_handler) as upstream:
            classifier = EntityKindClassifier(upstream=upstream)
            result = await classifier.classify(13, COMPANY_METADATA, fallback_flag=True)

        assert result.kind is EntityKind.INVESTOR
        assert result.source is ClassificationSource.FALLBACK_FLAG

    @pytest.mark.asyncio
    async def test_profile_without_marker_is_inconclusive(self, recording_handler, make_upstream):
        recording_handler.profiles[14] = {"Investor": {}, "Focus": []}
        async with make_upstream(recording_handler) as upstream:
            classifier = EntityKindClassifier(upstream=upstream)
            result = await classifier.classify(14, COMPANY_METADATA)

        assert result.kind is EntityKind.COMPANY

    @pytest.mark.asyncio
    async def test_metadata_loaded_from_entity_detail(self, recording_handler, make_upstream):
        recording_handler.details[15] = {"Company": {"primary_business_focus_id": 74, "sectors_id": [23877]}}
        async with make_upstream(recording_handler) as upstream:
            classifier = EntityKindClassifier(upstream=upstream)
            result = await classifier.classify(15)

        assert result.source is ClassificationSource.HEURISTIC_RULE
        assert recording_handler.detail_calls == 1
        assert recording_handler.profile_calls == 0

    @pytest.mark.asyncio
    async def test_verification_not_required_skips_lookup(self, recording_handler, make_upstream):
        recording_handler.profiles[16] = {"Investor": {"id": 16}}
        async with make_upstream(recording_handler) as upstream:
            classifier = EntityKindClassifier(upstream=upstream)
            result = await classifier.classify(16, COMPANY_METADATA, require_verification=False)

        assert result.kind is EntityKind.COMPANY
        assert recording_handler.requests == []

    @pytest.mark.asyncio
    async def test_lookup_timeout(self, make_upstream):
        async def slow(request):
            await asyncio.sleep(5)
            return httpx.Response(200, json={"Investor": {"id": 1}}, request=request)

        config = ClassifierConfig(verify_timeout_seconds=0.05)
        async with make_upstream(slow) as upstream:
            classifier = EntityKindClassifier(config, upstream=upstream)
            result = await classifier.classify(17, COMPANY_METADATA)

        assert result.kind is EntityKind.COMPANY
        assert result.source is ClassificationSource.FALLBACK_FLAG

    @pytest.mark.asyncio
    async def test_offline_classifier(self):
        classifier = EntityKindClassifier()
        assert (await classifier.classify(18)).kind is EntityKind.COMPANY
        assert (await classifier.classify(19, fallback_flag=True)).kind is EntityKind.INVESTOR

    @pytest.mark.asyncio
    async def test_custom_investor_sectors(self):
        config = ClassifierConfig(financial_services_focus_id=1, investor_sector_ids={"vc": 2})
        classifier = EntityKindClassifier(config)
        metadata = EntityMetadata.from_fields(focus=1, sectors=[2])
        assert (await classifier.classify(20, metadata)).source is ClassificationSource.HEURISTIC_RULE


class TestSession:
    @pytest.mark.asyncio
    async def test_cached_result_is_not_recomputed(self, recording_handler, make_upstream):
        recording_handler.profiles[30] = {"Invested_DA_sectors": [{"id": 1}]}
        async with make_upstream(recording_handler) as upstream:
            classifier = EntityKindClassifier(upstream=upstream)
            session = classifier.session("deal-page")
            first = await session.classify(30, COMPANY_METADATA)
            second = await session.classify(30, COMPANY_METADATA, fallback_flag=False)

        assert first is second
        assert second.source is ClassificationSource.VERIFIED_BY_LOOKUP
        assert recording_handler.profile_calls == 1

    @pytest.mark.asyncio
    async def test_sessions_do_not_share_cache(self, recording_handler, make_upstream):
        async with make_upstream(recording_handler) as upstream:
            classifier = EntityKindClassifier(upstream=upstream)
            await classifier.classify(31, COMPANY_METADATA, session=classifier.session())
            await classifier.classify(31, COMPANY_METADATA, session=classifier.session())

        assert recording_handler.profile_calls == 2

    @pytest.mark.asyncio
    async def test_batch_is_complete_and_isolated(self, recording_handler, make_upstream):
        recording_handler.profiles[2] = httpx.ConnectError("refused")
        recording_handler.profiles[3] = {"Investor": {"id": 3}}
        requests = [
            ClassificationRequest(1, COMPANY_METADATA),
            ClassificationRequest(2, COMPANY_METADATA, fallback_flag=True),
            ClassificationRequest(3, COMPANY_METADATA),
            ClassificationRequest(4, INVESTOR_METADATA),
            ClassificationRequest(1, INVESTOR_METADATA),
        ]
        async with make_upstream(recording_handler) as upstream:
            classifier = EntityKindClassifier(upstream=upstream)
            results = await classifier.classify_many(requests)

        assert set(results) == {1, 2, 3, 4}
        assert results[1].kind is EntityKind.COMPANY
        assert results[2].kind is EntityKind.INVESTOR
        assert results[2].source is ClassificationSource.FALLBACK_FLAG
        assert results[3].source is ClassificationSource.VERIFIED_BY_LOOKUP
        assert results[4].source is ClassificationSource.HEURISTIC_RULE
        assert recording_handler.profile_calls == 3

    @pytest.mark.asyncio
    async def test_exception_in_one_lookup_falls_back_locally(self):
        classifier = _local_chain(ExplodingStrategy(bad_id=2))
        session = classifier.session()
        results = await session.classify_many([1, 2, 3])

        assert set(results) == {1, 2, 3}
        assert results[2].kind is EntityKind.COMPANY
        assert 2 in session.cache

    @pytest.mark.asyncio
    async def test_bare_ids_in_batch(self):
        classifier = _local_chain()
        results = await classifier.classify_many([5, 5, 6], require_verification=False)
        assert sorted(results) == [5, 6]

    @pytest.mark.asyncio
    async def test_cancelled_batch_raises_and_caches_nothing(self):
        gated = GatedStrategy()
        session = _local_chain(gated).session()

        batch = asyncio.ensure_future(
            session.classify_many([ClassificationRequest(1, COMPANY_METADATA), ClassificationRequest(2, COMPANY_METADATA)])
        )
        while gated.started < 2:
            await asyncio.sleep(0)

        session.cancel()
        with pytest.raises(asyncio.CancelledError):
            await batch

        assert len(session.cache) == 0

    @pytest.mark.asyncio
    async def test_late_result_after_cancel_is_not_cached(self):
        gated = GatedStrategy()
        session = _local_chain(gated).session()

        pending = asyncio.ensure_future(session.classify(7, COMPANY_METADATA))
        while gated.started < 1:
            await asyncio.sleep(0)

        session.cancel()
        gated.gate.set()
        result = await pending

        assert result.kind is EntityKind.INVESTOR
        assert 7 not in session.cache

    @pytest.mark.asyncio
    async def test_close_discards_cache(self):
        session = _local_chain().session()
        await session.classify(8, INVESTOR_METADATA)
        assert 8 in session.cache

        session.close()
        assert len(session.cache) == 0
        assert session.closed
