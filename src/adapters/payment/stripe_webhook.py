"""Manejador de webhooks de Stripe.

Firma (cabecera `Stripe-Signature`):
- Formato `t=<epoch>,v1=<hex>[,v1=<hex>...]`.
- `v1` = HMAC-SHA256 hex de `"{t}.{payload}"` con el secreto del endpoint.
- Se rechaza si `|ahora - t|` supera la tolerancia (300s).

Sin secreto configurado no se acepta ninguna firma.
"""

from __future__ import annotations

import json
import time
from decimal import Decimal
from typing import Any, Callable

from core.domain.base import parse_datetime
from core.domain.payments import WebhookEvent
from core.result import Failure, FailureKind, Ok, fail
from core.signatures import constant_time_equals, hmac_digest

DEFAULT_TOLERANCE_SECONDS = 300

# Evento Stripe -> acción normalizada para el llamador.
EVENT_ACTIONS: dict[str, str] = {
    "payment_intent.succeeded": "payment_completed",
    "payment_intent.payment_failed": "payment_failed",
    "charge.refunded": "payment_refunded",
    "charge.dispute.created": "dispute_opened",
    "charge.dispute.closed": "dispute_closed",
    "customer.subscription.created": "subscription_created",
    "customer.subscription.updated": "subscription_updated",
    "customer.subscription.deleted": "subscription_cancelled",
    "invoice.payment_succeeded": "invoice_paid",
    "invoice.payment_failed": "invoice_failed",
}


def from_cents(value: Any) -> Decimal | None:
    if value is None:
        return None
    return Decimal(int(value)) / 100


def signed_payload(payload: bytes | str, timestamp: int) -> bytes:
    body = payload if isinstance(payload, bytes) else payload.encode("utf-8")
    return f"{timestamp}.".encode("ascii") + body


def parse_signature_header(header: str) -> tuple[int | None, list[str]]:
    timestamp: int | None = None
    signatures: list[str] = []
    for element in header.split(","):
        key, sep, value = element.strip().partition("=")
        if not sep:
            continue
        if key == "t":
            try:
                timestamp = int(value)
            except ValueError:
                return None, []
        elif key == "v1":
            signatures.append(value)
    return timestamp, signatures


class StripeWebhookHandler:
    processor = "stripe"

    def __init__(
        self,
        webhook_secret: str | None = None,
        *,
        tolerance_seconds: int = DEFAULT_TOLERANCE_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._secret = webhook_secret or ""
        self._tolerance = tolerance_seconds
        self._clock = clock

    def sign(self, payload: bytes | str, timestamp: int) -> str:
        """Cabecera válida para `payload`; útil para pruebas y reenvíos."""

        return f"t={timestamp},v1={hmac_digest(self._secret, signed_payload(payload, timestamp))}"

    def verify_signature(self, payload: bytes | str, signature: str | None) -> bool:
        if not self._secret or not signature:
            return False
        timestamp, candidates = parse_signature_header(signature)
        if timestamp is None or not candidates:
            return False
        if abs(self._clock() - timestamp) > self._tolerance:
            return False

        expected = hmac_digest(self._secret, signed_payload(payload, timestamp))
        return any(constant_time_equals(expected, candidate) for candidate in candidates)

    def parse_payload(self, payload: bytes | str) -> Ok[dict[str, Any]] | Failure:
        try:
            event = json.loads(payload)
        except ValueError as exc:
            return fail(FailureKind.PARSE_ERROR, f"Invalid webhook JSON: {exc}")
        if not isinstance(event, dict) or "type" not in event or "data" not in event:
            return fail(FailureKind.INVALID_REQUEST, "Invalid event structure", code="invalid_event")
        return Ok(event)

    def process_event(self, event: dict[str, Any]) -> Ok[WebhookEvent] | Failure:
        event_type = str(event.get("type") or "")
        obj = (event.get("data") or {}).get("object") or {}
        created = parse_datetime(event.get("created"))

        action = EVENT_ACTIONS.get(event_type)
        if action is None:
            return Ok(WebhookEvent(id=event.get("id"), type=event_type, created=created, status="ignored"))
        return Ok(
            WebhookEvent(
                id=event.get("id"),
                type=event_type,
                created=created,
                data=self._summarize(event_type, obj),
                action=action,
            )
        )

    def supported_events(self) -> tuple[str, ...]:
        return tuple(EVENT_ACTIONS)

    def _summarize(self, event_type: str, obj: dict[str, Any]) -> dict[str, Any]:
        summary: dict[str, Any] = {"object_id": obj.get("id"), "metadata": obj.get("metadata") or {}}
        if event_type.startswith("payment_intent."):
            summary["amount"] = from_cents(obj.get("amount"))
            summary["currency"] = (obj.get("currency") or "").upper() or None
            summary["failure_reason"] = (obj.get("last_payment_error") or {}).get("message")
        elif event_type == "charge.refunded":
            refunds = (obj.get("refunds") or {}).get("data") or []
            summary["payment_intent"] = obj.get("payment_intent")
            summary["refund_amount"] = sum((from_cents(r.get("amount")) or Decimal(0) for r in refunds), Decimal(0))
            summary["fully_refunded"] = bool(obj.get("refunded"))
        elif event_type.startswith("charge.dispute."):
            summary["charge"] = obj.get("charge")
            summary["amount"] = from_cents(obj.get("amount"))
            summary["reason"] = obj.get("reason")
            summary["dispute_status"] = obj.get("status")
        elif event_type.startswith("customer.subscription."):
            summary["customer"] = obj.get("customer")
            summary["subscription_status"] = obj.get("status")
        elif event_type.startswith("invoice."):
            summary["customer"] = obj.get("customer")
            summary["subscription"] = obj.get("subscription")
            summary["amount"] = from_cents(obj.get("amount_paid") if event_type.endswith("succeeded") else obj.get("amount_due"))
        return summary
