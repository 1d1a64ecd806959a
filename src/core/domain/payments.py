"""Modelos de pagos (procesadores y pagos manuales tipo Zelle)."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import Field

from core.domain.base import DomainModel


class PaymentStatus(str, Enum):
    PENDING = "pending"
    REQUIRES_ACTION = "requires_action"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class PaymentRequest(DomainModel):
    amount: Decimal = Field(..., gt=0, description="Importe en unidades (no centavos).")
    currency: str = Field(default="usd", min_length=3, max_length=3)
    description: str | None = None
    donor_email: str | None = Field(default=None, alias="email")
    donor_name: str | None = None
    donor_phone: str | None = None
    payment_method_id: str | None = None
    customer_id: str | None = None
    reference_id: str | None = Field(default=None, description="Referencia externa (nº de confirmación bancaria).")
    received_date: date | None = None
    capture: bool = Field(default=True, description="False = solo autorizar (captura posterior).")
    metadata: dict[str, str] = Field(default_factory=dict)


class Payment(DomainModel):
    id: str
    amount: Decimal
    currency: str = "usd"
    status: PaymentStatus = PaymentStatus.PENDING
    fee_amount: Decimal | None = None
    net_amount: Decimal | None = None
    donor_email: str | None = None
    donor_name: str | None = None
    description: str | None = None
    reference_id: str | None = None
    created_at: datetime | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class PaymentQuery(DomainModel):
    limit: int = Field(default=50, ge=1, le=100)
    offset: int = Field(default=0, ge=0)
    status: PaymentStatus | None = None
    created_after: datetime | None = None
    created_before: datetime | None = None
    starting_after: str | None = Field(default=None, description="Cursor para APIs paginadas por ID.")


class Refund(DomainModel):
    id: str
    payment_id: str
    amount: Decimal
    status: str
    reason: str | None = None


class SubscriptionInterval(str, Enum):
    WEEK = "week"
    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"


class SubscriptionRequest(DomainModel):
    amount: Decimal = Field(..., gt=0)
    currency: str = Field(default="usd", min_length=3, max_length=3)
    interval: SubscriptionInterval = SubscriptionInterval.MONTH
    customer_id: str | None = None
    email: str | None = None
    name: str | None = None
    payment_method_id: str | None = None
    description: str = Field(default="Recurring donation")
    metadata: dict[str, str] = Field(default_factory=dict)


class Subscription(DomainModel):
    id: str
    status: str
    customer_id: str | None = None
    amount: Decimal | None = None
    interval: str | None = None
    current_period_end: datetime | None = None


class Customer(DomainModel):
    id: str
    email: str | None = None
    name: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class CheckoutRequest(DomainModel):
    amount: Decimal = Field(..., gt=0)
    currency: str = Field(default="usd", min_length=3, max_length=3)
    description: str = Field(default="Donation")
    success_url: str = Field(..., min_length=1)
    cancel_url: str = Field(..., min_length=1)
    donor_email: str | None = Field(default=None, alias="email")


class WebhookEvent(DomainModel):
    """Evento de webhook ya verificado y normalizado."""

    id: str | None = None
    type: str
    created: datetime | None = None
    data: dict[str, Any] = Field(default_factory=dict)
    status: str = Field(default="processed", description="'processed' o 'ignored'.")
    action: str | None = Field(default=None, description="Acción derivada (p.ej. 'payment_completed').")
