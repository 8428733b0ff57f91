from decimal import Decimal

import httpx
import pytest

from dealscope.core.normalize import FALLBACK_RATES, FxRates, convert_amount, rates_from_payload


class TestConvertAmount:
    def test_usd_to_gbp(self):
        assert convert_amount(100, "USD", "GBP") == Decimal("79")

    def test_gbp_to_usd(self):
        assert convert_amount(79, "gbp", "usd") == Decimal("100")

    def test_cross_rate_via_usd(self):
        rates = FxRates(GBP=Decimal("0.5"), EUR=Decimal("0.25"))
        assert convert_amount(10, "GBP", "EUR", rates) == Decimal("5")

    def test_same_currency(self):
        assert convert_amount(12.5, "EUR", "EUR") == Decimal("12.5")

    def test_unsupported_or_missing(self):
        assert convert_amount(100, "USD", "JPY") is None
        assert convert_amount(None, "USD", "GBP") is None


class TestRatesFromPayload:
    def test_builds_rates(self):
        rates = rates_from_payload({"rates": {"GBP": 0.8, "EUR": 0.9}}, "test", now=1000.0)
        assert rates.GBP == Decimal("0.8")
        assert rates.EUR == Decimal("0.9")
        assert rates.is_fresh(ttl_seconds=10, now=1005.0)
        assert not rates.is_fresh(ttl_seconds=10, now=2000.0)

    def test_missing_currency_falls_back_individually(self):
        rates = rates_from_payload({"rates": {"GBP": 0.8, "EUR": "bad"}}, "test")
        assert rates.EUR == FALLBACK_RATES.EUR

    @pytest.mark.parametrize("payload", [None, [], {"success": False, "rates": {"GBP": 1}}, {"rates": None}])
    def test_unusable_payload(self, payload):
        assert rates_from_payload(payload, "test") is None

    def test_fallback_is_never_fresh(self):
        assert not FALLBACK_RATES.is_fresh(ttl_seconds=10**9)


class TestUpstreamFxRates:
    @pytest.mark.asyncio
    async def test_falls_through_to_second_source_and_caches(self, make_upstream):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request.url.host)
            if request.url.host == "api.exchangerate.host":
                return httpx.Response(500, request=request)
            return httpx.Response(200, json={"rates": {"GBP": 0.75, "EUR": 0.95}}, request=request)

        async with make_upstream(handler) as upstream:
            rates = await upstream.get_fx_rates(now=100.0)
            assert rates.source == "frankfurter.app"
            assert rates.GBP == Decimal("0.75")

            again = await upstream.get_fx_rates(now=200.0)
            assert again is rates

        assert calls == ["api.exchangerate.host", "api.frankfurter.app"]

    @pytest.mark.asyncio
    async def test_all_sources_failing_gives_fallback(self, make_upstream):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>maintenance</html>", request=request)

        async with make_upstream(handler) as upstream:
            rates = await upstream.get_fx_rates()

        assert rates == FALLBACK_RATES
        assert rates.source == "fallback"
