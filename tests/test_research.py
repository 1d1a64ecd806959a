from __future__ import annotations

from datetime import datetime, timedelta, timezone

import httpx
import pytest

from adapters.background_check.checkr import CheckrAdapter, resolve_package
from adapters.wealth_research.wealthengine import (
    WealthEngineAdapter,
    capacity_rating,
    income_range,
    net_worth_range,
)
from core.result import Failure, FailureKind
from core.signatures import hmac_digest

PERSON = {"first_name": "Ada", "last_name": "Lovelace", "city": "Boston", "state": "MA"}


# Checkr


def _checkr(settings, recorder, **kwargs) -> CheckrAdapter:
    return CheckrAdapter("ck_live", settings=settings, transport=recorder.transport, **kwargs)


@pytest.mark.parametrize(
    ("package", "expected"),
    [("volunteer", "basic"), ("Staff", "standard"), ("board", "premium"), ("custom_pkg", "custom_pkg")],
)
def test_package_aliases(package, expected) -> None:
    assert resolve_package(package) == expected


def test_checkr_create_check_maps_package_and_cost(settings, recorder_factory) -> None:
    recorder = recorder_factory(lambda r: httpx.Response(201, json={"id": "rep_1", "status": "pending", "eta": "2025-04-20"}))

    check = _checkr(settings, recorder).create_check("cand_1", "staff").value

    assert recorder.paths() == ["POST /v1/reports"]
    assert recorder.last_json() == {"candidate_id": "cand_1", "package": "standard"}
    assert recorder.last.headers["Authorization"].startswith("Basic ")
    assert check.status == "pending"
    assert check.cost == 50.00


def test_checkr_status_translation(settings, recorder_factory) -> None:
    recorder = recorder_factory(
        lambda r: httpx.Response(
            200,
            json={
                "id": "rep_1",
                "status": "complete",
                "adjudication": "approved",
                "screenings": {"criminal": {"status": "clear"}},
            },
        )
    )

    check = _checkr(settings, recorder).get_check_status("rep_1").value

    assert check.status == "completed"
    assert check.completion_percentage == 100
    assert check.overall_result == "clear"
    assert check.component_results["criminal"] == {"status": "clear"}
    assert check.component_results["mvr"] == {}


def test_checkr_cancel_never_claims_refund(settings, recorder_factory) -> None:
    recorder = recorder_factory(lambda r: httpx.Response(200, json={"id": "rep_1", "status": "canceled"}))

    cancellation = _checkr(settings, recorder).cancel_check("rep_1", "duplicate").value

    assert recorder.paths() == ["PATCH /v1/reports/rep_1"]
    assert cancellation.status == "cancelled"
    assert cancellation.refund_issued is False


def test_checkr_adverse_action_dispute_window(settings, recorder_factory) -> None:
    recorder = recorder_factory(lambda r: httpx.Response(201, json={"id": "aa_1", "created_at": "2025-04-01T10:00:00Z"}))

    action = _checkr(settings, recorder).initiate_adverse_action("rep_1").value

    assert recorder.last_json()["pre_notice"] is True
    window = action.dispute_period_ends - datetime.now(timezone.utc)
    assert timedelta(days=6, hours=23) < window <= timedelta(days=7)


def test_checkr_webhook_signature(settings, recorder_factory) -> None:
    recorder = recorder_factory(lambda r: httpx.Response(200))
    adapter = _checkr(settings, recorder, webhook_secret="whsec")
    payload = b'{"type":"report.completed"}'

    assert adapter.validate_webhook(payload, hmac_digest("whsec", payload)) is True
    assert adapter.validate_webhook(payload, hmac_digest("other", payload)) is False
    assert adapter.validate_webhook(payload, None) is False
    assert _checkr(settings, recorder).validate_webhook(payload, hmac_digest("whsec", payload)) is False


def test_checkr_process_webhook_adds_check_id(settings, recorder_factory) -> None:
    recorder = recorder_factory(lambda r: httpx.Response(200))

    event = _checkr(settings, recorder).process_webhook(
        {"id": "evt_1", "type": "report.completed", "data": {"object": {"id": "rep_1"}}}
    )

    assert event.type == "report.completed"
    assert event.data["check_id"] == "rep_1"


def test_checkr_process_webhook_bad_timestamp(settings, recorder_factory) -> None:
    recorder = recorder_factory(lambda r: httpx.Response(200))
    adapter = _checkr(settings, recorder)

    event = adapter.process_webhook({"id": 991, "type": "report.completed", "created_at": "not-a-date", "data": {}})
    dated = adapter.process_webhook({"id": "evt_2", "type": "report.completed", "created_at": "2025-04-01T10:00:00Z"})

    assert event.created is None
    assert event.id == "991"
    assert dated.created == datetime(2025, 4, 1, 10, 0, tzinfo=timezone.utc)


def test_checkr_static_catalogue(settings) -> None:
    adapter = CheckrAdapter(settings=settings)

    assert [p.package_id for p in adapter.get_packages()] == ["basic", "standard", "premium"]
    assert adapter.calculate_cost("unknown") == 35.00
    assert "FAIR CREDIT REPORTING ACT" in adapter.get_fcra_disclosure().summary_rights
    assert adapter.test_connection().kind is FailureKind.NOT_CONFIGURED


# WealthEngine


def _wealthengine(settings, recorder) -> WealthEngineAdapter:
    return WealthEngineAdapter("we_key", settings=settings, transport=recorder.transport)


@pytest.mark.parametrize(
    ("score", "rating"),
    [(9.5, "A+"), (7, "A"), ("5", "B"), (3.2, "C"), (1, "D"), (None, "D"), ("n/a", "D")],
)
def test_capacity_rating_tiers(score, rating) -> None:
    assert capacity_rating(score) == rating


def test_income_and_net_worth_ranges() -> None:
    assert income_range(1_200_000) == "$1M+"
    assert income_range(75_000) == "$50K-$100K"
    assert income_range(0) == "Under $50K"
    assert net_worth_range(6_000_000) == "$5M-$10M"
    assert net_worth_range(99_999) == "Under $100K"


def test_wealthengine_screen_individual(settings, recorder_factory) -> None:
    recorder = recorder_factory(
        lambda r: httpx.Response(
            200,
            json={"individual_id": "we_9", "wealth_capacity_rating": 8, "estimated_income": 300000, "estimated_net_worth": 2000000, "confidence_code": 0.8},
        )
    )

    screening = _wealthengine(settings, recorder).screen_individual(PERSON).value

    assert recorder.paths() == ["POST /v1/profile/basic"]
    assert recorder.last_json()["address"] == {"line1": "", "city": "Boston", "state": "MA", "zip": ""}
    assert screening.giving_capacity == "A"
    assert screening.income_range == "$250K-$500K"
    assert screening.net_worth_range == "$1M-$5M"
    assert screening.cost == 2.50


def test_wealthengine_real_estate_totals(settings, recorder_factory) -> None:
    recorder = recorder_factory(
        lambda r: httpx.Response(200, json={"properties": [{"assessed_value": 450000}, {"assessed_value": "150000.50"}, "junk"]})
    )

    holdings = _wealthengine(settings, recorder).get_real_estate_holdings(PERSON).value

    assert holdings.property_count == 2
    assert holdings.total_value == 600000.50


def test_wealthengine_email_search_without_match(settings, recorder_factory) -> None:
    recorder = recorder_factory(lambda r: httpx.Response(200, json={}))

    match = _wealthengine(settings, recorder).search_by_email("nobody@example.org").value

    assert match.found is False
    assert match.cost == 1.00


def test_wealthengine_requires_name(settings, recorder_factory) -> None:
    recorder = recorder_factory(lambda r: httpx.Response(200, json={}))

    result = _wealthengine(settings, recorder).get_profile({"first_name": "Ada"})

    assert isinstance(result, Failure)
    assert result.kind is FailureKind.INVALID_REQUEST
    assert recorder.requests == []


def test_wealthengine_connection_uses_usage(settings, recorder_factory) -> None:
    recorder = recorder_factory(lambda r: httpx.Response(200, json={"calls_used": 40, "calls_limit": 100, "calls_remaining": 60}))

    status = _wealthengine(settings, recorder).test_connection().value

    assert recorder.paths() == ["GET /v1/account/usage"]
    assert status.details["calls_remaining"] == 60
