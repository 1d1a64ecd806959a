"""Modelos de mensajería (email y SMS)."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import Field, field_validator

from core.domain.base import DomainModel


def _as_list(value: Any) -> list[str]:
    if value is None or value == "":
        return []
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    return list(value)


class EmailAttachment(DomainModel):
    filename: str
    content: bytes
    content_type: str = "application/octet-stream"


class EmailMessage(DomainModel):
    """Email saliente.

    `to`, `cc` y `bcc` aceptan una lista o un string separado por comas.
    """

    to: list[str] = Field(..., min_length=1)
    subject: str = Field(..., min_length=1)
    body: str = Field(..., min_length=1, alias="message")
    html: bool = True
    from_email: str | None = Field(default=None, alias="from")
    from_name: str | None = None
    reply_to: str | None = None
    cc: list[str] = Field(default_factory=list)
    bcc: list[str] = Field(default_factory=list)
    attachments: list[EmailAttachment] = Field(default_factory=list)
    template_id: str | None = None
    tags: list[str] = Field(default_factory=list)

    @field_validator("to", "cc", "bcc", mode="before")
    @classmethod
    def _split_addresses(cls, value: Any) -> list[str]:
        return _as_list(value)


class EmailReceipt(DomainModel):
    provider: str
    message_id: str | None = None
    status: str = "sent"
    recipients: int = 1


class SmsStatus(str, Enum):
    QUEUED = "queued"
    SENT = "sent"
    DELIVERED = "delivered"
    UNDELIVERED = "undelivered"
    FAILED = "failed"


class SmsMessage(DomainModel):
    to: str = Field(..., min_length=1)
    body: str = Field(..., alias="message")
    from_number: str | None = Field(default=None, alias="from")
    status_callback: str | None = None
    media_urls: list[str] = Field(default_factory=list)


class SmsReceipt(DomainModel):
    message_id: str | None
    status: SmsStatus = SmsStatus.QUEUED
    to: str | None = None
    segments: int = 1
    price: float | None = None
    error_code: str | None = None
    error_message: str | None = None
    sent_at: datetime | None = None


class InboundSms(DomainModel):
    """Callback de estado o mensaje entrante ya normalizado."""

    message_id: str | None = None
    from_number: str | None = None
    to: str | None = None
    body: str | None = None
    status: SmsStatus = SmsStatus.QUEUED
    segments: int = 1
    error_code: str | None = None
    raw: dict[str, Any] = Field(default_factory=dict)


class NumberSearch(DomainModel):
    country_code: str = Field(default="US", min_length=2, max_length=2)
    area_code: str | None = None
    contains: str | None = None
    region: str | None = None
    limit: int = Field(default=20, ge=1, le=100)


class PhoneNumberOffer(DomainModel):
    phone_number: str
    friendly_name: str | None = None
    locality: str | None = None
    region: str | None = None
    capabilities: dict[str, bool] = Field(default_factory=dict)
    monthly_cost: float | None = None


class PurchasedNumber(DomainModel):
    id: str | None = None
    phone_number: str
    status: str = "active"


class Balance(DomainModel):
    balance: float
    currency: str = "USD"
