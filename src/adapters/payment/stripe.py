"""Adaptador de pagos: Stripe (API v1, form-encoded).

- Importes en centavos en el cable; `Decimal` en unidades hacia fuera.
- Objetos anidados en notación de corchetes: `metadata[k]`, `items[0][price]`.
- La comisión es una estimación (2.9% + 0.30); la real llega con el balance
  transaction, que aquí no se consulta.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Mapping

import httpx

from adapters.http_client import HttpTransport, dig, flatten_params
from adapters.payment.stripe_webhook import StripeWebhookHandler, from_cents
from core.config import AppSettings
from core.domain.base import Bag, parse_datetime, parse_request
from core.domain.common import ConnectionStatus
from core.domain.payments import (
    CheckoutRequest,
    Customer,
    Payment,
    PaymentQuery,
    PaymentRequest,
    PaymentStatus,
    Refund,
    Subscription,
    SubscriptionInterval,
    SubscriptionRequest,
    WebhookEvent,
)
from core.result import Failure, FailureKind, Ok, fail, not_configured

FEE_PERCENT = Decimal("0.029")
FEE_FIXED = Decimal("0.30")

STATUS_MAP: dict[str, PaymentStatus] = {
    "requires_payment_method": PaymentStatus.PENDING,
    "requires_confirmation": PaymentStatus.PENDING,
    "requires_capture": PaymentStatus.PENDING,
    "processing": PaymentStatus.PENDING,
    "requires_action": PaymentStatus.REQUIRES_ACTION,
    "succeeded": PaymentStatus.SUCCEEDED,
    "canceled": PaymentStatus.CANCELLED,
}

REFUND_REASONS = {"duplicate", "fraudulent", "requested_by_customer"}

# intervalo local -> (interval, interval_count) de Stripe
INTERVALS: dict[SubscriptionInterval, tuple[str, int]] = {
    SubscriptionInterval.WEEK: ("week", 1),
    SubscriptionInterval.MONTH: ("month", 1),
    SubscriptionInterval.QUARTER: ("month", 3),
    SubscriptionInterval.YEAR: ("year", 1),
}


def to_cents(amount: Decimal) -> int:
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def estimate_fee(amount: Decimal) -> Decimal:
    return (amount * FEE_PERCENT + FEE_FIXED).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


class StripeAdapter:
    provider_id = "stripe"
    _base_url = "https://api.stripe.com/v1"

    def __init__(
        self,
        secret_key: str | None = None,
        *,
        webhook_secret: str | None = None,
        settings: AppSettings | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._settings = settings or AppSettings()
        self._secret_key = secret_key or ""
        self._webhooks = StripeWebhookHandler(webhook_secret)
        self._http = HttpTransport(
            self.provider_id,
            base_url=self._base_url,
            settings=self._settings,
            headers={"Authorization": f"Bearer {self._secret_key}"},
            transport=transport,
            error_message=lambda body: dig(body, "error", "message"),
            error_code=lambda body: dig(body, "error", "decline_code") or dig(body, "error", "code"),
        )

    def _missing_credentials(self) -> Failure | None:
        return None if self._secret_key else not_configured("Stripe", "secret_key")

    def _call(self, method: str, path: str, params: Mapping[str, Any] | None = None) -> Ok[Any] | Failure:
        missing = self._missing_credentials()
        if missing is not None:
            return missing
        if method == "GET":
            return self._http.request(method, path, params=flatten_params(params or {}))
        return self._http.request(method, path, data=flatten_params(params or {}))

    def _to_payment(self, intent: Mapping[str, Any]) -> Payment:
        amount = from_cents(intent.get("amount")) or Decimal(0)
        status = STATUS_MAP.get(intent.get("status") or "", PaymentStatus.PENDING)
        fee = estimate_fee(amount) if status == PaymentStatus.SUCCEEDED else None
        metadata = dict(intent.get("metadata") or {})
        return Payment(
            id=intent["id"],
            amount=amount,
            currency=intent.get("currency") or "usd",
            status=status,
            fee_amount=fee,
            net_amount=amount - fee if fee is not None else None,
            donor_email=intent.get("receipt_email"),
            donor_name=metadata.get("donor_name"),
            description=intent.get("description"),
            reference_id=metadata.get("reference_id"),
            created_at=parse_datetime(intent.get("created")),
            metadata=metadata,
        )

    def _to_subscription(self, body: Mapping[str, Any]) -> Subscription:
        price = dig(body, "items", "data", 0, "price") or {}
        return Subscription(
            id=body["id"],
            status=body.get("status") or "unknown",
            customer_id=body.get("customer"),
            amount=from_cents(price.get("unit_amount")),
            interval=dig(price, "recurring", "interval"),
            current_period_end=parse_datetime(body.get("current_period_end")),
        )

    def create_payment(self, payment: PaymentRequest | Bag) -> Ok[Payment] | Failure:
        parsed = parse_request(PaymentRequest, payment)
        if isinstance(parsed, Failure):
            return parsed
        req = parsed.value

        metadata = dict(req.metadata)
        if req.donor_name:
            metadata["donor_name"] = req.donor_name
        if req.reference_id:
            metadata["reference_id"] = req.reference_id
        params: dict[str, Any] = {
            "amount": to_cents(req.amount),
            "currency": req.currency.lower(),
            "description": req.description,
            "receipt_email": req.donor_email,
            "customer": req.customer_id,
            "metadata": metadata,
        }
        if req.payment_method_id:
            params["payment_method"] = req.payment_method_id
            params["confirm"] = True
        else:
            params["automatic_payment_methods"] = {"enabled": True}
        if not req.capture:
            params["capture_method"] = "manual"

        result = self._call("POST", "/payment_intents", params)
        if isinstance(result, Failure):
            return result
        return Ok(self._to_payment(result.value))

    def capture_payment(self, payment_id: str) -> Ok[Payment] | Failure:
        result = self._call("POST", f"/payment_intents/{payment_id}/capture")
        if isinstance(result, Failure):
            return result
        return Ok(self._to_payment(result.value))

    def refund_payment(
        self, payment_id: str, amount: Decimal | None = None, reason: str | None = None
    ) -> Ok[Refund] | Failure:
        params: dict[str, Any] = {"payment_intent": payment_id}
        if amount is not None:
            params["amount"] = to_cents(Decimal(amount))
        if reason in REFUND_REASONS:
            params["reason"] = reason
        elif reason:
            params["metadata"] = {"reason": reason}

        result = self._call("POST", "/refunds", params)
        if isinstance(result, Failure):
            return result
        body = result.value
        return Ok(
            Refund(
                id=body["id"],
                payment_id=body.get("payment_intent") or payment_id,
                amount=from_cents(body.get("amount")) or Decimal(0),
                status=body.get("status") or "pending",
                reason=reason,
            )
        )

    def get_payment(self, payment_id: str) -> Ok[Payment] | Failure:
        result = self._call("GET", f"/payment_intents/{payment_id}")
        if isinstance(result, Failure):
            return result
        return Ok(self._to_payment(result.value))

    def list_payments(self, query: PaymentQuery | Bag | None = None) -> Ok[list[Payment]] | Failure:
        parsed = parse_request(PaymentQuery, query)
        if isinstance(parsed, Failure):
            return parsed
        q = parsed.value

        created: dict[str, int] = {}
        if q.created_after:
            created["gte"] = int(q.created_after.timestamp())
        if q.created_before:
            created["lte"] = int(q.created_before.timestamp())
        params: dict[str, Any] = {"limit": q.limit, "starting_after": q.starting_after}
        if created:
            params["created"] = created

        result = self._call("GET", "/payment_intents", params)
        if isinstance(result, Failure):
            return result
        payments = [self._to_payment(intent) for intent in result.value.get("data") or []]
        if q.status is not None:
            payments = [p for p in payments if p.status == q.status]
        return Ok(payments)

    def create_subscription(self, subscription: SubscriptionRequest | Bag) -> Ok[Subscription] | Failure:
        parsed = parse_request(SubscriptionRequest, subscription)
        if isinstance(parsed, Failure):
            return parsed
        req = parsed.value

        customer_id = req.customer_id
        if not customer_id:
            if not req.email:
                return fail(FailureKind.INVALID_REQUEST, "customer_id or email is required", code="missing_customer")
            customer = self.create_customer(req.email, req.name)
            if isinstance(customer, Failure):
                return customer
            customer_id = customer.value.id

        interval, interval_count = INTERVALS[req.interval]
        price = self._call(
            "POST",
            "/prices",
            {
                "unit_amount": to_cents(req.amount),
                "currency": req.currency.lower(),
                "recurring": {"interval": interval, "interval_count": interval_count},
                "product_data": {"name": req.description},
            },
        )
        if isinstance(price, Failure):
            return price

        params: dict[str, Any] = {
            "customer": customer_id,
            "items": [{"price": price.value["id"]}],
            "default_payment_method": req.payment_method_id,
            "metadata": req.metadata,
        }
        result = self._call("POST", "/subscriptions", params)
        if isinstance(result, Failure):
            return result
        return Ok(self._to_subscription(result.value))

    def cancel_subscription(self, subscription_id: str) -> Ok[Subscription] | Failure:
        result = self._call("DELETE", f"/subscriptions/{subscription_id}")
        if isinstance(result, Failure):
            return result
        return Ok(self._to_subscription(result.value))

    def get_subscription(self, subscription_id: str) -> Ok[Subscription] | Failure:
        result = self._call("GET", f"/subscriptions/{subscription_id}")
        if isinstance(result, Failure):
            return result
        return Ok(self._to_subscription(result.value))

    def create_customer(self, email: str, name: str | None = None, **metadata: str) -> Ok[Customer] | Failure:
        result = self._call("POST", "/customers", {"email": email, "name": name, "metadata": metadata})
        if isinstance(result, Failure):
            return result
        body = result.value
        return Ok(Customer(id=body["id"], email=body.get("email"), name=body.get("name"), metadata=body.get("metadata") or {}))

    def get_customer(self, customer_id: str) -> Ok[Customer] | Failure:
        result = self._call("GET", f"/customers/{customer_id}")
        if isinstance(result, Failure):
            return result
        body = result.value
        if body.get("deleted"):
            return fail(FailureKind.NOT_FOUND, f"Customer {customer_id} was deleted")
        return Ok(Customer(id=body["id"], email=body.get("email"), name=body.get("name"), metadata=body.get("metadata") or {}))

    def handle_webhook(self, payload: bytes | str, signature: str | None) -> Ok[WebhookEvent] | Failure:
        if not self._webhooks.verify_signature(payload, signature):
            return fail(FailureKind.INVALID_REQUEST, "Invalid Stripe webhook signature", code="invalid_signature")
        event = self._webhooks.parse_payload(payload)
        if isinstance(event, Failure):
            return event
        return self._webhooks.process_event(event.value)

    def get_checkout_url(self, checkout: CheckoutRequest | Bag) -> Ok[str] | Failure:
        parsed = parse_request(CheckoutRequest, checkout)
        if isinstance(parsed, Failure):
            return parsed
        req = parsed.value

        params: dict[str, Any] = {
            "mode": "payment",
            "submit_type": "donate",
            "success_url": req.success_url,
            "cancel_url": req.cancel_url,
            "customer_email": req.donor_email,
            "line_items": [
                {
                    "quantity": 1,
                    "price_data": {
                        "currency": req.currency.lower(),
                        "unit_amount": to_cents(req.amount),
                        "product_data": {"name": req.description},
                    },
                }
            ],
        }
        result = self._call("POST", "/checkout/sessions", params)
        if isinstance(result, Failure):
            return result
        url = result.value.get("url")
        if not url:
            return fail(FailureKind.PARSE_ERROR, "Checkout session has no url")
        return Ok(url)

    def test_connection(self) -> Ok[ConnectionStatus] | Failure:
        result = self._call("GET", "/account")
        if isinstance(result, Failure):
            return result
        body = result.value
        return Ok(
            ConnectionStatus(
                provider=self.provider_id,
                account=dig(body, "business_profile", "name") or body.get("email") or body.get("id"),
                details={"charges_enabled": body.get("charges_enabled"), "country": body.get("country")},
            )
        )
