"""Shared fixtures: sample payloads and an upstream client over httpx.MockTransport."""

from typing import Callable

import httpx
import pytest

from dealscope.core.backends import HttpBackend, UpstreamClient
from dealscope.core.config import UpstreamConfig
from dealscope.core.fetch import RetryConfig

BASE_URL = "https://upstream.test"


def build_upstream(handler: Callable, max_attempts: int = 1) -> UpstreamClient:
    """UpstreamClient whose requests are answered by handler."""
    config = UpstreamConfig(base_url=BASE_URL)
    backend = HttpBackend(
        timeout=2.0,
        retry=RetryConfig.no_wait(max_attempts),
        transport=httpx.MockTransport(handler),
    )
    return UpstreamClient(config, backend=backend)


class RecordingHandler:
    """MockTransport handler that routes by endpoint and records requests.

    ``profiles`` maps entity id -> response for the investor-profile
    lookup; ``details`` does the same for entity detail. A value may be a
    dict (200 JSON), an int (bare status) or an exception to raise.
    """

    def __init__(self, profiles=None, details=None):
        self.profiles = profiles or {}
        self.details = details or {}
        self.requests: list[httpx.Request] = []

    def _respond(self, value, request):
        if isinstance(value, Exception):
            raise value
        if isinstance(value, int):
            return httpx.Response(value, request=request)
        return httpx.Response(200, json=value, request=request)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path.endswith("/get_the_investor_new_company"):
            entity_id = int(request.url.params["new_comp_id"])
            return self._respond(self.profiles.get(entity_id, 404), request)
        if "/Get_new_company/" in path:
            entity_id = int(path.rsplit("/", 1)[-1])
            return self._respond(self.details.get(entity_id, 404), request)
        return httpx.Response(404, request=request)

    def count(self, fragment: str) -> int:
        return sum(1 for r in self.requests if fragment in str(r.url))

    @property
    def profile_calls(self) -> int:
        return self.count("get_the_investor_new_company")

    @property
    def detail_calls(self) -> int:
        return self.count("Get_new_company/")


@pytest.fixture
def recording_handler():
    return RecordingHandler()


@pytest.fixture
def make_upstream():
    return build_upstream


@pytest.fixture
def new_event():
    return {
        "id": 501,
        "description": "Acme  raises Series A",
        "announcement_date": "2024-03-05",
        "deal_type": "Investment",
        "targets": [{"id": 1, "name": "Acme", "route": "company"}],
        "buyers_investors": [
            {"id": 2, "name": "Alpha Ventures"},
            {"id": 3, "name": "Beta Capital", "page_type": "investor"},
        ],
        "advisors": [{"id": 9, "advisor_company": {"id": 70, "name": "Lex LLP"}}],
        "advisors_names": ["lex llp", "Numbers & Co"],
        "investment_data": {
            "investment_amount_m": "12.5",
            "currency": {"Currency": "USD"},
            "Funding_stage": "Series A",
        },
        "ev_data": {"enterprise_value_m": None, "ev_band": "50-100m"},
        "sectors": [{"id": 10, "sector_name": "Fintech", "Sector_importance": "Primary"}],
    }


@pytest.fixture
def legacy_envelope():
    return {
        "New_Events_Wits_Advisors": [
            {
                "id": 77,
                "description": "Target Ltd acquired",
                "announcement_date": "1900-01-01",
                "deal_type": "Acquisition",
                "target_counterparty": {
                    "new_company_counterparty": 11,
                    "_new_company": {"id": 11, "name": "Target Ltd"},
                },
                "0": [
                    {"_new_company": {"id": 21, "name": "Buyer plc", "_is_that_investor": False}},
                    {"_new_company": {"id": 22, "name": "Fund LP", "_is_that_investor": True}},
                ],
                "1": [{"_new_company": {"id": 31, "name": "Advisor & Partners"}}],
                "ev_data": {"enterprise_value_m": "250", "_currency": {"Currency": "GBP"}},
            }
        ]
    }
