"""Contrato de procesadores de pago.

Los métodos que un proveedor no puede ofrecer (p.ej. reembolsos en pagos
manuales) existen igual y devuelven `not_supported`.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Protocol, runtime_checkable

from core.domain.base import Bag
from core.domain.common import ConnectionStatus
from core.domain.payments import (
    CheckoutRequest,
    Customer,
    Payment,
    PaymentQuery,
    PaymentRequest,
    Refund,
    Subscription,
    SubscriptionRequest,
    WebhookEvent,
)
from core.result import Failure, Ok


@runtime_checkable
class PaymentAdapter(Protocol):
    provider_id: str

    def create_payment(self, payment: PaymentRequest | Bag) -> Ok[Payment] | Failure:
        ...

    def capture_payment(self, payment_id: str) -> Ok[Payment] | Failure:
        ...

    def refund_payment(
        self, payment_id: str, amount: Decimal | None = None, reason: str | None = None
    ) -> Ok[Refund] | Failure:
        ...

    def get_payment(self, payment_id: str) -> Ok[Payment] | Failure:
        ...

    def list_payments(self, query: PaymentQuery | Bag | None = None) -> Ok[list[Payment]] | Failure:
        ...

    def create_subscription(self, subscription: SubscriptionRequest | Bag) -> Ok[Subscription] | Failure:
        ...

    def cancel_subscription(self, subscription_id: str) -> Ok[Subscription] | Failure:
        ...

    def get_subscription(self, subscription_id: str) -> Ok[Subscription] | Failure:
        ...

    def create_customer(self, email: str, name: str | None = None, **metadata: str) -> Ok[Customer] | Failure:
        ...

    def get_customer(self, customer_id: str) -> Ok[Customer] | Failure:
        ...

    def handle_webhook(self, payload: bytes | str, signature: str | None) -> Ok[WebhookEvent] | Failure:
        ...

    def get_checkout_url(self, checkout: CheckoutRequest | Bag) -> Ok[str] | Failure:
        ...

    def test_connection(self) -> Ok[ConnectionStatus] | Failure:
        ...