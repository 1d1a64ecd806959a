"""Contrato de envío de email."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from core.domain.base import Bag
from core.domain.common import ConnectionStatus
from core.domain.messaging import EmailMessage, EmailReceipt
from core.result import BatchResult, Failure, Ok


@runtime_checkable
class EmailAdapter(Protocol):
    provider_id: str

    def send(self, message: EmailMessage | Bag) -> Ok[EmailReceipt] | Failure:
        ...

    def send_bulk(self, messages: list[EmailMessage | Bag]) -> BatchResult[EmailReceipt]:
        ...

    def get_status(self, message_id: str) -> Ok[dict[str, Any]] | Failure:
        ...

    def fetch_emails(self, folder: str = "INBOX", limit: int = 50) -> Ok[list[dict[str, Any]]] | Failure:
        ...

    def test_connection(self) -> Ok[ConnectionStatus] | Failure:
        ...

    def get_capabilities(self) -> dict[str, bool]:
        ...
