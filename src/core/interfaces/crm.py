"""Contrato CRM.

Reglas de diseño:
- `sync_contact` crea si el contacto no trae `id` y actualiza si lo trae.
- `batch_push` es un bucle secuencial sobre `sync_contact`; no hay paralelismo.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol, runtime_checkable

from core.domain.base import Bag
from core.domain.common import ConnectionStatus
from core.domain.crm import Campaign, Contact, ContactChange, ContactSearch, Donation, Note
from core.result import BatchResult, Failure, Ok


@runtime_checkable
class CRMAdapter(Protocol):
    provider_id: str

    def sync_contact(self, contact: Contact | Bag) -> Ok[Contact] | Failure:
        ...

    def get_contact(self, contact_id: str) -> Ok[Contact] | Failure:
        ...

    def delete_contact(self, contact_id: str) -> Ok[bool] | Failure:
        ...

    def search_contacts(self, query: ContactSearch | Bag) -> Ok[list[Contact]] | Failure:
        ...

    def sync_donation(self, donation: Donation | Bag) -> Ok[Donation] | Failure:
        ...

    def get_donation(self, donation_id: str) -> Ok[Donation] | Failure:
        ...

    def add_note(self, note: Note | Bag) -> Ok[Note] | Failure:
        ...

    def get_changes_since(self, since: datetime) -> Ok[list[ContactChange]] | Failure:
        ...

    def batch_push(self, contacts: list[Contact | Bag]) -> BatchResult[Contact]:
        ...

    def get_campaigns(self) -> Ok[list[Campaign]] | Failure:
        ...

    def test_connection(self) -> Ok[ConnectionStatus] | Failure:
        ...
