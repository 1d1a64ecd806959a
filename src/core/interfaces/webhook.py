"""Contrato de manejadores de webhooks de pago."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from core.domain.payments import WebhookEvent
from core.result import Failure, Ok


@runtime_checkable
class WebhookHandler(Protocol):
    processor: str

    def verify_signature(self, payload: bytes | str, signature: str | None) -> bool:
        ...

    def parse_payload(self, payload: bytes | str) -> Ok[dict[str, Any]] | Failure:
        ...

    def process_event(self, event: dict[str, Any]) -> Ok[WebhookEvent] | Failure:
        ...

    def supported_events(self) -> tuple[str, ...]:
        ...
