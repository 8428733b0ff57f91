import httpx
import pytest

from dealscope.core.backends import (
    BlockedError,
    FetchError,
    HttpBackend,
    RateLimitError,
    RequestSpec,
)
from dealscope.core.fetch import RetryConfig

URL = "https://upstream.test/api/thing"


def _backend(handler, attempts=2, **kwargs):
    return HttpBackend(
        retry=RetryConfig.no_wait(attempts),
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


class Sequence:
    """Handler answering with the given responses in order, repeating the last."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        index = min(len(self.requests), len(self.responses)) - 1
        value = self.responses[index]
        if isinstance(value, Exception):
            raise value
        status, body = value
        return httpx.Response(status, json=body, request=request)


class TestHttpBackend:
    @pytest.mark.asyncio
    async def test_fetch_json_sends_token(self):
        handler = Sequence((200, {"ok": True}))
        async with _backend(handler, api_token="secret") as backend:
            payload = await backend.fetch_json(RequestSpec(url=URL, params={"a": "1"}))

        assert payload == {"ok": True}
        request = handler.requests[0]
        assert request.headers["Authorization"] == "Bearer secret"
        assert request.headers["Accept"] == "application/json"
        assert request.url.params["a"] == "1"

    @pytest.mark.asyncio
    async def test_no_token_no_header(self):
        handler = Sequence((200, {}))
        async with _backend(handler) as backend:
            await backend.fetch(RequestSpec(url=URL))
        assert "Authorization" not in handler.requests[0].headers

    @pytest.mark.asyncio
    async def test_retries_5xx_then_succeeds(self):
        handler = Sequence((503, None), (200, [1, 2]))
        async with _backend(handler) as backend:
            result = await backend.fetch(RequestSpec(url=URL))

        assert result.ok
        assert result.retry_count == 1
        assert result.json() == [1, 2]
        assert len(handler.requests) == 2

    @pytest.mark.asyncio
    async def test_404_is_not_retried(self):
        handler = Sequence((404, None))
        async with _backend(handler, attempts=3) as backend:
            with pytest.raises(FetchError) as excinfo:
                await backend.fetch(RequestSpec(url=URL))

        assert excinfo.value.status_code == 404
        assert len(handler.requests) == 1

    @pytest.mark.asyncio
    async def test_rate_limit_exhausts_attempts(self):
        handler = Sequence((429, None))
        async with _backend(handler, attempts=3) as backend:
            with pytest.raises(RateLimitError) as excinfo:
                await backend.fetch(RequestSpec(url=URL))

        assert excinfo.value.status_code == 429
        assert len(handler.requests) == 3

    @pytest.mark.asyncio
    async def test_forbidden_is_blocked(self):
        handler = Sequence((403, None))
        async with _backend(handler, attempts=3) as backend:
            with pytest.raises(BlockedError):
                await backend.fetch(RequestSpec(url=URL))
        assert len(handler.requests) == 1

    @pytest.mark.asyncio
    async def test_transport_error_wrapped(self):
        handler = Sequence(httpx.ConnectError("connection refused"))
        async with _backend(handler) as backend:
            with pytest.raises(FetchError) as excinfo:
                await backend.fetch(RequestSpec(url=URL))

        assert isinstance(excinfo.value.cause, httpx.ConnectError)
        assert len(handler.requests) == 2

    @pytest.mark.asyncio
    async def test_malformed_body(self):
        def handler(request):
            return httpx.Response(200, text="<html>", request=request)

        async with _backend(handler) as backend:
            with pytest.raises(FetchError, match="Malformed JSON"):
                await backend.fetch_json(RequestSpec(url=URL))

    @pytest.mark.asyncio
    async def test_post(self):
        seen = {}

        def handler(request):
            seen["method"] = request.method
            seen["body"] = request.content
            return httpx.Response(200, json={"created": 1}, request=request)

        async with _backend(handler) as backend:
            payload = await backend.fetch_json(RequestSpec(url=URL, method="post", json_data={"q": 1}))

        assert payload == {"created": 1}
        assert seen["method"] == "POST"
        assert b'"q"' in seen["body"]


class TestUpstreamClient:
    @pytest.mark.asyncio
    async def test_entity_detail(self, recording_handler, make_upstream):
        recording_handler.details[5] = {"Company": {"name": "Acme"}}
        async with make_upstream(recording_handler) as upstream:
            detail = await upstream.get_entity_detail(5)

        assert detail == {"Company": {"name": "Acme"}}
        assert recording_handler.requests[0].url.path == "/api:GYQcK4au/Get_new_company/5"

    @pytest.mark.asyncio
    async def test_investor_profile_query(self, recording_handler, make_upstream):
        recording_handler.profiles[9] = {"Investor": {"id": 9}}
        async with make_upstream(recording_handler) as upstream:
            profile = await upstream.get_investor_profile(9)

        assert profile == {"Investor": {"id": 9}}
        request = recording_handler.requests[0]
        assert request.url.path == "/api:y4OAXSVm/get_the_investor_new_company"
        assert request.url.params["new_comp_id"] == "9"

    @pytest.mark.asyncio
    async def test_failures_degrade_to_none(self, recording_handler, make_upstream):
        recording_handler.details[1] = 500
        recording_handler.details[2] = [1, 2, 3]
        recording_handler.details[3] = httpx.ReadTimeout("slow")
        async with make_upstream(recording_handler) as upstream:
            assert await upstream.get_entity_detail(1) is None
            assert await upstream.get_entity_detail(2) is None
            assert await upstream.get_entity_detail(3) is None
            assert await upstream.get_investor_profile(4) is None
