from __future__ import annotations

import json
from decimal import Decimal

import httpx
import pytest

from adapters.payment.stripe import StripeAdapter, estimate_fee, to_cents
from adapters.payment.stripe_webhook import StripeWebhookHandler, parse_signature_header
from adapters.payment.zelle import ZelleAdapter
from core.domain.payments import PaymentStatus
from core.result import Failure, FailureKind, Ok

NOW = 1_700_000_000


def _stripe(settings, recorder, **kwargs) -> StripeAdapter:
    return StripeAdapter("sk_test_123", settings=settings, transport=recorder.transport, **kwargs)


def test_cents_and_fee() -> None:
    assert to_cents(Decimal("25.005")) == 2501
    assert estimate_fee(Decimal("100")) == Decimal("3.20")


def test_create_payment_posts_form_encoded_cents(settings, recorder_factory) -> None:
    recorder = recorder_factory(
        lambda r: httpx.Response(
            200,
            json={
                "id": "pi_1",
                "amount": 5000,
                "currency": "usd",
                "status": "succeeded",
                "receipt_email": "ada@example.org",
                "metadata": {"donor_name": "Ada"},
                "created": NOW,
            },
        )
    )
    result = _stripe(settings, recorder).create_payment(
        {"amount": "50.00", "email": "ada@example.org", "donor_name": "Ada", "payment_method_id": "pm_card"}
    )

    assert isinstance(result, Ok)
    payment = result.value
    assert payment.amount == Decimal("50")
    assert payment.status is PaymentStatus.SUCCEEDED
    assert payment.fee_amount == Decimal("1.75")
    assert payment.net_amount == Decimal("48.25")
    assert payment.donor_name == "Ada"

    form = recorder.last_form()
    assert recorder.last.headers["Authorization"] == "Bearer sk_test_123"
    assert form["amount"] == "5000"
    assert form["metadata[donor_name]"] == "Ada"
    assert form["payment_method"] == "pm_card"
    assert form["confirm"] == "true"


def test_card_declined_keeps_decline_code(settings, recorder_factory) -> None:
    recorder = recorder_factory(
        lambda r: httpx.Response(
            402,
            json={"error": {"type": "card_error", "code": "card_declined", "decline_code": "insufficient_funds", "message": "Your card has insufficient funds."}},
        )
    )
    result = _stripe(settings, recorder).create_payment({"amount": 10})

    assert isinstance(result, Failure)
    assert result.kind is FailureKind.API_ERROR
    assert result.status_code == 402
    assert result.code == "insufficient_funds"
    assert result.message == "Your card has insufficient funds."


def test_refund_with_custom_reason_goes_to_metadata(settings, recorder_factory) -> None:
    recorder = recorder_factory(
        lambda r: httpx.Response(200, json={"id": "re_1", "payment_intent": "pi_1", "amount": 1000, "status": "succeeded"})
    )
    result = _stripe(settings, recorder).refund_payment("pi_1", Decimal("10"), "donor changed mind")

    assert result.value.amount == Decimal("10")
    form = recorder.last_form()
    assert form["amount"] == "1000"
    assert "reason" not in form
    assert form["metadata[reason]"] == "donor changed mind"


def test_subscription_creates_customer_and_price(settings, recorder_factory) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/v1/customers":
            return httpx.Response(200, json={"id": "cus_1", "email": "ada@example.org"})
        if request.url.path == "/v1/prices":
            return httpx.Response(200, json={"id": "price_1"})
        return httpx.Response(
            200,
            json={
                "id": "sub_1",
                "status": "active",
                "customer": "cus_1",
                "items": {"data": [{"price": {"unit_amount": 2500, "recurring": {"interval": "month"}}}]},
            },
        )

    recorder = recorder_factory(handler)
    result = _stripe(settings, recorder).create_subscription({"amount": 25, "email": "ada@example.org", "interval": "quarter"})

    assert result.value.id == "sub_1"
    assert result.value.amount == Decimal("25")
    assert recorder.paths() == ["POST /v1/customers", "POST /v1/prices", "POST /v1/subscriptions"]
    price_form = dict(httpx.QueryParams(recorder.requests[1].content.decode("utf-8")))
    assert price_form["recurring[interval]"] == "month"
    assert price_form["recurring[interval_count]"] == "3"
    assert recorder.last_form()["items[0][price]"] == "price_1"


def test_missing_key_is_not_configured(settings) -> None:
    result = StripeAdapter(settings=settings).get_payment("pi_1")
    assert result.kind is FailureKind.NOT_CONFIGURED


def test_webhook_round_trip(settings, recorder_factory) -> None:
    payload = json.dumps(
        {
            "id": "evt_1",
            "type": "payment_intent.succeeded",
            "created": NOW,
            "data": {"object": {"id": "pi_1", "amount": 1500, "currency": "usd"}},
        }
    )
    handler = StripeWebhookHandler("whsec_abc", clock=lambda: NOW)
    header = handler.sign(payload, NOW)

    assert handler.verify_signature(payload, header)
    event = handler.process_event(handler.parse_payload(payload).value).value
    assert event.action == "payment_completed"
    assert event.data["amount"] == Decimal("15")
    assert event.data["currency"] == "USD"


def test_webhook_rejects_tampering_and_stale_timestamps() -> None:
    payload = '{"type":"charge.refunded","data":{"object":{}}}'
    handler = StripeWebhookHandler("whsec_abc", clock=lambda: NOW)
    header = handler.sign(payload, NOW)

    assert not handler.verify_signature(payload.replace("refunded", "refundeD"), header)
    assert not handler.verify_signature(payload, header[:-1] + ("0" if header[-1] != "0" else "1"))
    assert not handler.verify_signature(payload, handler.sign(payload, NOW - 301))
    assert not StripeWebhookHandler(None).verify_signature(payload, header)
    assert not handler.verify_signature(payload, None)


def test_parse_signature_header_accepts_multiple_v1() -> None:
    assert parse_signature_header("t=12,v1=aa,v0=zz,v1=bb") == (12, ["aa", "bb"])
    assert parse_signature_header("t=abc,v1=aa") == (None, [])


def test_unknown_event_is_ignored() -> None:
    handler = StripeWebhookHandler("s")
    event = handler.process_event({"id": "evt_2", "type": "customer.created", "data": {"object": {}}}).value
    assert event.status == "ignored"
    assert event.action is None


def test_handle_webhook_invalid_signature(settings, recorder_factory) -> None:
    recorder = recorder_factory(lambda r: httpx.Response(500))
    result = _stripe(settings, recorder, webhook_secret="whsec_abc").handle_webhook("{}", "t=1,v1=00")
    assert result.kind is FailureKind.INVALID_REQUEST
    assert result.code == "invalid_signature"
    assert recorder.requests == []


def test_zelle_create_then_get(store) -> None:
    zelle = ZelleAdapter(store)
    created = zelle.create_payment(
        {"amount": "125.50", "donor_name": "Grace", "email": "grace@example.org", "reference_id": "BANK-77"}
    )
    assert isinstance(created, Ok)
    assert created.value.id.startswith("zelle_")

    fetched = zelle.get_payment(created.value.id).value
    assert fetched.amount == Decimal("125.50")
    assert fetched.donor_name == "Grace"
    assert fetched.reference_id == "BANK-77"
    assert fetched.status is PaymentStatus.SUCCEEDED
    assert zelle.capture_payment(created.value.id).value == fetched


def test_zelle_list_and_missing(store) -> None:
    zelle = ZelleAdapter(store)
    for amount in ("10", "20", "30"):
        zelle.create_payment({"amount": amount})

    listed = zelle.list_payments({"limit": 2}).value
    assert len(listed) == 2
    assert zelle.get_payment("zelle_nope").kind is FailureKind.NOT_FOUND


@pytest.mark.parametrize(
    ("operation", "args"),
    [
        ("refund_payment", ("zelle_1",)),
        ("create_subscription", ({"amount": 5},)),
        ("cancel_subscription", ("sub",)),
        ("get_subscription", ("sub",)),
        ("get_customer", ("cus",)),
        ("handle_webhook", ("{}", None)),
        ("get_checkout_url", ({"amount": 5, "success_url": "a", "cancel_url": "b"},)),
    ],
)
def test_zelle_unsupported_operations(store, operation: str, args: tuple) -> None:
    result = getattr(ZelleAdapter(store), operation)(*args)
    assert isinstance(result, Failure)
    assert result.kind is FailureKind.NOT_SUPPORTED


def test_zelle_customer_id_is_stable(store) -> None:
    zelle = ZelleAdapter(store)
    first = zelle.create_customer("Ada@Example.org").value
    second = zelle.create_customer("ada@example.org ").value
    assert first.id == second.id
    assert zelle.test_connection().value.provider == "zelle"
