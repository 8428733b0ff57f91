import json
from datetime import date
from decimal import Decimal

import pytest

from dealscope.core.config import EntityKind
from dealscope.core.normalize import (
    NOT_AVAILABLE,
    normalize_corporate_event,
    normalize_corporate_events,
    role_for_status,
    route_parties,
)


def _names(refs):
    return [r.name for r in refs]


class TestNewShapeEvent:
    def test_core_fields(self, new_event):
        event = normalize_corporate_event(new_event)
        assert event.id == 501
        assert event.description == "Acme raises Series A"
        assert event.announcement_date == date(2024, 3, 5)
        assert event.announcement_display == "March 5, 2024"
        assert event.deal_type == "Investment"
        assert event.funding_stage == "Series A"
        assert event.navigation_path == "/corporate-event/501"
        assert not event.is_partnership

    def test_buyers_investors_are_investors_on_investment_deals(self, new_event):
        parties = normalize_corporate_event(new_event).parties
        assert _names(parties.investors) == ["Alpha Ventures", "Beta Capital"]
        assert all(r.kind is EntityKind.INVESTOR for r in parties.investors)
        assert parties.investors[0].navigation_path == "/investors/2"
        assert parties.buyers == []

    def test_targets_and_advisors(self, new_event):
        parties = normalize_corporate_event(new_event).parties
        assert [(r.id, r.kind) for r in parties.targets] == [(1, EntityKind.COMPANY)]
        assert parties.advisors == ["Lex LLP", "Numbers & Co"]

    def test_amounts(self, new_event):
        event = normalize_corporate_event(new_event)
        assert event.investment_amount.display == "USD 12.5m"
        assert event.investment_amount.raw_value == Decimal("12.5")
        assert event.investment_amount.unit == "m"
        assert event.enterprise_value.display == "50-100m"

    def test_sectors_from_event(self, new_event):
        event = normalize_corporate_event(new_event)
        assert event.sectors.primary_names == ["Fintech"]

    def test_sector_override(self, new_event):
        override = [{"sector_name": "Crypto", "Sector_importance": "Secondary"}]
        event = normalize_corporate_event(new_event, sectors=override)
        assert event.sectors.primary_names == ["Web 3"]
        assert event.sectors.approximated

    def test_to_dict_is_json_serializable(self, new_event):
        data = normalize_corporate_event(new_event).to_dict()
        encoded = json.loads(json.dumps(data))
        assert encoded["parties"]["investors"][0]["kind"] == "investor"
        assert encoded["investment_amount"]["display"] == "USD 12.5m"
        assert encoded["announcement_date"] == "2024-03-05"

    def test_accepts_json_string(self, new_event):
        assert normalize_corporate_event(json.dumps(new_event)).id == 501


class TestLegacyEvent:
    def test_legacy_buckets(self, legacy_envelope):
        [event] = normalize_corporate_events(legacy_envelope)
        parties = event.parties
        assert [(r.id, r.name) for r in parties.targets] == [(11, "Target Ltd")]
        assert [(r.id, r.kind) for r in parties.buyers] == [(21, EntityKind.COMPANY)]
        assert [(r.id, r.navigation_path) for r in parties.investors] == [(22, "/investors/22")]
        assert parties.advisors == ["Advisor & Partners"]

    def test_legacy_placeholders(self, legacy_envelope):
        [event] = normalize_corporate_events(legacy_envelope)
        assert event.announcement_date is None
        assert event.announcement_display == NOT_AVAILABLE
        assert event.enterprise_value.display == "GBP 250m"
        assert event.investment_amount.display == NOT_AVAILABLE

    def test_default_currency(self, legacy_envelope):
        legacy_envelope["New_Events_Wits_Advisors"][0]["investment_data"] = {"investment_amount": "40"}
        [event] = normalize_corporate_events(legacy_envelope, default_currency="USD")
        assert event.investment_amount.display == "USD 40"


class TestRoleRouting:
    def test_status_routing_wins_over_role_arrays(self):
        raw = {
            "other_counterparties": [
                {"id": 41, "name": "Acquirer Inc", "counterparty_status": "Acquirer"},
                {"id": 42, "name": "Seller Co", "_counterparty_type": {"counterparty_status": "Divestor"}},
                {"id": 43, "name": "Growth Fund", "counterparty_status": "Investor"},
                {"id": 44, "name": "Bystander", "counterparty_status": "Other"},
                {"id": 41, "name": "Acquirer Inc", "counterparty_status": "Acquirer"},
            ],
            "buyers": [{"id": 99, "name": "Ignored Buyer"}],
        }
        parties = route_parties(raw, "Acquisition")
        assert _names(parties.buyers) == ["Acquirer Inc"]
        assert _names(parties.sellers) == ["Seller Co"]
        assert _names(parties.investors) == ["Growth Fund"]
        assert parties.investors[0].kind is EntityKind.INVESTOR
        assert _names(parties.other_counterparties) == ["Bystander"]

    def test_explicit_sellers_before_routed(self):
        raw = {
            "sellers": [{"id": 1, "name": "Explicit"}],
            "other_counterparties": [{"id": 2, "name": "Routed", "counterparty_status": "Seller"}],
        }
        assert _names(route_parties(raw).sellers) == ["Explicit"]

    def test_nested_row_without_company_id_does_not_borrow_row_id(self):
        raw = {
            "targets": [{"id": 7, "name": "Real Target"}],
            "other_counterparties": [
                {"id": 7, "_new_company": {"name": "Nameless Co"}, "counterparty_status": "Acquirer"},
            ],
        }
        parties = route_parties(raw, "Acquisition")
        [buyer] = parties.buyers
        assert buyer.name == "Nameless Co"
        assert buyer.id is None
        assert buyer.navigation_path == ""
        assert [r.id for r in parties.all_refs() if r.id is not None] == [7]

    def test_buyers_investors_split_on_non_investment_deal(self):
        raw = {
            "buyers_investors": [
                {"id": 5, "name": "Corp"},
                {"id": 6, "name": "PE Fund", "route": "investors"},
            ]
        }
        parties = route_parties(raw, "Acquisition")
        assert [(r.id, r.navigation_path) for r in parties.buyers] == [(5, "/company/5")]
        assert [(r.id, r.kind) for r in parties.investors] == [(6, EntityKind.INVESTOR)]

    def test_all_refs_dedupes_across_roles(self):
        raw = {
            "targets": [{"id": 1, "name": "T"}],
            "buyers": [{"id": 1, "name": "T again"}, {"id": 2, "name": "B"}],
        }
        assert [r.id for r in route_parties(raw).all_refs()] == [1, 2]

    def test_other_advisor_shapes(self):
        raw = {
            "advisors_names": '["Alpha LLP"]',
            "other_advisors": ['[{"advisor_company_name": "Beta LLP"}]', {"advisor_company_name": "alpha llp"}],
        }
        assert route_parties(raw).advisors == ["Alpha LLP", "Beta LLP"]

    @pytest.mark.parametrize(
        "status,role",
        [
            ("Lead Investor", "investors"),
            ("Acquirer", "buyers"),
            ("buyer", "buyers"),
            ("Vendor", "sellers"),
            ("Target", "targets"),
            ("", None),
            (None, None),
            ("Advisor", None),
        ],
    )
    def test_role_for_status(self, status, role):
        assert role_for_status(status) == role


class TestEnvelopes:
    def test_duplicate_event_ids_collapse(self):
        raw = {"Corporate_Events": [{"id": 1, "description": "first"}, {"id": 1, "description": "second"}]}
        events = normalize_corporate_events(raw)
        assert [e.description for e in events] == ["first"]

    def test_partnership_flag(self):
        [event] = normalize_corporate_events([{"id": 2, "deal_types": ["Strategic Partnership"]}])
        assert event.deal_type == "Strategic Partnership"
        assert event.is_partnership

    @pytest.mark.parametrize("raw", [None, "{", "[]", 42, {"unrelated": True}])
    def test_malformed_envelopes(self, raw):
        assert normalize_corporate_events(raw) == []

    def test_non_object_event(self):
        assert normalize_corporate_event("not json") is None
        assert normalize_corporate_event([1, 2]) is None
