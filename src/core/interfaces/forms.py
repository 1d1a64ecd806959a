"""Contrato de formularios."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from core.domain.base import Bag
from core.domain.common import ConnectionStatus
from core.domain.forms import EmbedOptions, Form, FormDefinition, FormResponse, FormStats, FormUpdate, ResponseQuery
from core.result import Failure, Ok


@runtime_checkable
class FormAdapter(Protocol):
    provider_id: str

    def create_form(self, form: FormDefinition | Bag) -> Ok[Form] | Failure:
        ...

    def update_form(self, form_id: str, changes: FormUpdate | Bag) -> Ok[Form] | Failure:
        ...

    def delete_form(self, form_id: str) -> Ok[bool] | Failure:
        ...

    def get_form(self, form_id: str) -> Ok[Form] | Failure:
        ...

    def list_forms(self, limit: int = 50, offset: int = 0) -> Ok[list[Form]] | Failure:
        ...

    def get_responses(self, form_id: str, query: ResponseQuery | Bag | None = None) -> Ok[list[FormResponse]] | Failure:
        ...

    def get_response(self, form_id: str, response_id: str) -> Ok[FormResponse] | Failure:
        ...

    def submit_response(
        self, form_id: str, answers: dict[str, Any], ip_address: str | None = None
    ) -> Ok[FormResponse] | Failure:
        ...

    def get_form_stats(self, form_id: str) -> Ok[FormStats] | Failure:
        ...

    def get_embed_code(self, form_id: str, options: EmbedOptions | Bag | None = None) -> Ok[str] | Failure:
        ...

    def validate_webhook_signature(self, payload: bytes | str, signature: str | None) -> bool:
        ...

    def test_connection(self) -> Ok[ConnectionStatus] | Failure:
        ...
