"""Contrato SMS.

`count_segments` y `calculate_cost` son puros (sin red); el resto habla con
el proveedor. `validate_webhook_signature` nunca lanza: devuelve bool.
"""

from __future__ import annotations

from typing import Any, Mapping, Protocol, runtime_checkable

from core.domain.base import Bag
from core.domain.common import ConnectionStatus
from core.domain.messaging import (
    Balance,
    InboundSms,
    NumberSearch,
    PhoneNumberOffer,
    PurchasedNumber,
    SmsMessage,
    SmsReceipt,
)
from core.result import BatchResult, Failure, Ok


@runtime_checkable
class SMSAdapter(Protocol):
    provider_id: str

    def send_message(self, message: SmsMessage | Bag) -> Ok[SmsReceipt] | Failure:
        ...

    def send_bulk(self, recipients: list[str], body: str, **options: Any) -> BatchResult[SmsReceipt]:
        ...

    def get_message_status(self, message_id: str) -> Ok[SmsReceipt] | Failure:
        ...

    def get_balance(self) -> Ok[Balance] | Failure:
        ...

    def search_available_numbers(self, search: NumberSearch | Bag | None = None) -> Ok[list[PhoneNumberOffer]] | Failure:
        ...

    def purchase_number(self, phone_number: str) -> Ok[PurchasedNumber] | Failure:
        ...

    def validate_webhook_signature(self, payload: Mapping[str, Any], signature: str | None, url: str) -> bool:
        ...

    def process_webhook(self, payload: Mapping[str, Any]) -> InboundSms:
        ...

    def calculate_cost(self, to: str, body: str) -> float:
        ...

    def count_segments(self, body: str) -> int:
        ...

    def test_connection(self) -> Ok[ConnectionStatus] | Failure:
        ...

    def get_capabilities(self) -> dict[str, bool]:
        ...
