"""Adaptador de pagos: Zelle (registro manual en el store local).

Zelle no tiene API para comercios: el tesorero registra el pago recibido
(con la referencia bancaria) y este adaptador lo guarda. Todo lo que exigiría
una API (reembolsos, suscripciones, checkout, webhooks) es `not_supported`.
"""

from __future__ import annotations

import hashlib
import uuid
from decimal import Decimal

from sqlalchemy import inspect, select
from sqlalchemy.orm import Session

from adapters.local_store import LocalStore, ZellePaymentRecord
from adapters.payment.stripe import to_cents
from core.domain.base import Bag, parse_request
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
    SubscriptionRequest,
    WebhookEvent,
)
from core.result import Failure, FailureKind, Ok, fail, not_supported

PROVIDER_NAME = "Zelle"


def _to_payment(record: ZellePaymentRecord) -> Payment:
    return Payment(
        id=record.payment_id,
        amount=Decimal(record.amount_cents) / 100,
        currency=record.currency,
        status=PaymentStatus(record.status),
        donor_email=record.donor_email,
        donor_name=record.donor_name,
        description=record.description,
        reference_id=record.reference_id,
        created_at=record.created_at,
        metadata=dict(record.extra or {}),
    )


class ZelleAdapter:
    provider_id = "zelle"

    def __init__(self, store: LocalStore) -> None:
        self._store = store

    def create_payment(self, payment: PaymentRequest | Bag) -> Ok[Payment] | Failure:
        parsed = parse_request(PaymentRequest, payment)
        if isinstance(parsed, Failure):
            return parsed
        req = parsed.value

        def work(session: Session) -> Payment:
            record = ZellePaymentRecord(
                payment_id=f"zelle_{uuid.uuid4()}",
                amount_cents=to_cents(req.amount),
                currency=req.currency.lower(),
                donor_email=req.donor_email,
                donor_name=req.donor_name,
                donor_phone=req.donor_phone,
                description=req.description,
                reference_id=req.reference_id,
                received_date=req.received_date,
                status=PaymentStatus.SUCCEEDED.value,
                extra=dict(req.metadata),
            )
            session.add(record)
            session.flush()
            return _to_payment(record)

        return self._store.run("zelle.create_payment", work)

    def capture_payment(self, payment_id: str) -> Ok[Payment] | Failure:
        # Un pago Zelle se registra ya recibido: capturar es leerlo.
        return self.get_payment(payment_id)

    def refund_payment(
        self, payment_id: str, amount: Decimal | None = None, reason: str | None = None
    ) -> Ok[Refund] | Failure:
        return not_supported("refund_payment", PROVIDER_NAME)

    def get_payment(self, payment_id: str) -> Ok[Payment] | Failure:
        def work(session: Session) -> Payment | Failure:
            record = session.scalar(select(ZellePaymentRecord).where(ZellePaymentRecord.payment_id == payment_id))
            if record is None:
                return fail(FailureKind.NOT_FOUND, f"Payment {payment_id} not found")
            return _to_payment(record)

        return self._store.run("zelle.get_payment", work)

    def list_payments(self, query: PaymentQuery | Bag | None = None) -> Ok[list[Payment]] | Failure:
        parsed = parse_request(PaymentQuery, query)
        if isinstance(parsed, Failure):
            return parsed
        q = parsed.value

        def work(session: Session) -> list[Payment]:
            stmt = select(ZellePaymentRecord)
            if q.status is not None:
                stmt = stmt.where(ZellePaymentRecord.status == q.status.value)
            if q.created_after is not None:
                stmt = stmt.where(ZellePaymentRecord.created_at >= q.created_after)
            if q.created_before is not None:
                stmt = stmt.where(ZellePaymentRecord.created_at <= q.created_before)
            stmt = stmt.order_by(ZellePaymentRecord.created_at.desc(), ZellePaymentRecord.id.desc())
            stmt = stmt.limit(q.limit).offset(q.offset)
            return [_to_payment(record) for record in session.scalars(stmt)]

        return self._store.run("zelle.list_payments", work)

    def create_subscription(self, subscription: SubscriptionRequest | Bag) -> Ok[Subscription] | Failure:
        return not_supported("create_subscription", PROVIDER_NAME)

    def cancel_subscription(self, subscription_id: str) -> Ok[Subscription] | Failure:
        return not_supported("cancel_subscription", PROVIDER_NAME)

    def get_subscription(self, subscription_id: str) -> Ok[Subscription] | Failure:
        return not_supported("get_subscription", PROVIDER_NAME)

    def create_customer(self, email: str, name: str | None = None, **metadata: str) -> Ok[Customer] | Failure:
        # Sin objetos de cliente: ID estable derivado del email.
        digest = hashlib.md5(email.strip().lower().encode("utf-8")).hexdigest()
        return Ok(Customer(id=f"zelle_customer_{digest}", email=email, name=name, metadata=dict(metadata)))

    def get_customer(self, customer_id: str) -> Ok[Customer] | Failure:
        return not_supported("get_customer", PROVIDER_NAME)

    def handle_webhook(self, payload: bytes | str, signature: str | None) -> Ok[WebhookEvent] | Failure:
        return not_supported("handle_webhook", PROVIDER_NAME)

    def get_checkout_url(self, checkout: CheckoutRequest | Bag) -> Ok[str] | Failure:
        return not_supported("get_checkout_url", PROVIDER_NAME)

    def test_connection(self) -> Ok[ConnectionStatus] | Failure:
        def work(session: Session) -> ConnectionStatus | Failure:
            if not inspect(session.get_bind()).has_table(ZellePaymentRecord.__tablename__):
                return fail(FailureKind.NOT_CONFIGURED, "Zelle payments table is missing; run init-store")
            return ConnectionStatus(provider=self.provider_id, details={"store": "local"})

        return self._store.run("zelle.test_connection", work)
