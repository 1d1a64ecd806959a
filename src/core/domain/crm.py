"""Modelos CRM (contactos, donaciones, notas, campañas).

Nota:
- Los IDs son del proveedor: un `contact_id` de HubSpot no tiene relación con
  uno de Salesforce.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Mapping

from pydantic import Field

from core.domain.base import DomainModel


class Contact(DomainModel):
    """Contacto/donante normalizado.

    `id` vacío en `sync_contact` significa "crear"; con valor, "actualizar".
    """

    id: str | None = Field(default=None, description="ID del contacto en el CRM.")
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    phone: str | None = None
    organization: str | None = None
    address: str | None = None
    city: str | None = None
    state: str | None = None
    postal_code: str | None = Field(default=None, alias="zip")
    country: str | None = None
    tags: list[str] = Field(default_factory=list)
    custom_fields: dict[str, Any] = Field(
        default_factory=dict,
        description="Campos extra ya con el nombre del proveedor (se envían tal cual).",
    )
    updated_at: datetime | None = None


class Donation(DomainModel):
    id: str | None = None
    contact_id: str | None = None
    amount: Decimal = Field(..., gt=0)
    currency: str = Field(default="USD", min_length=3, max_length=3)
    donation_date: date = Field(default_factory=date.today, alias="date")
    campaign: str | None = None
    payment_method: str | None = None
    description: str | None = None
    status: str | None = None


class Note(DomainModel):
    id: str | None = None
    contact_id: str = Field(..., min_length=1)
    body: str = Field(..., min_length=1)
    subject: str | None = None
    created_at: datetime | None = None


class Campaign(DomainModel):
    id: str
    name: str
    status: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    goal: Decimal | None = None


class ContactSearch(DomainModel):
    """Criterios de búsqueda por igualdad; los vacíos se ignoran."""

    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    phone: str | None = None
    limit: int = Field(default=50, ge=1, le=200)

    def criteria(self) -> dict[str, str]:
        return {
            key: value
            for key, value in self.model_dump(include={"email", "first_name", "last_name", "phone"}).items()
            if value
        }


class ContactChange(DomainModel):
    """Registro devuelto por `get_changes_since`."""

    id: str
    changed_at: datetime | None = None
    contact: Contact | None = None


class FieldMapping(DomainModel):
    """Nombre local -> nombre de propiedad en el proveedor.

    Cada CRM trae su mapping por defecto; el llamador puede sustituirlo para
    usar propiedades personalizadas.
    """

    fields: dict[str, str]

    def to_remote(self, contact: Contact) -> dict[str, Any]:
        properties: dict[str, Any] = {}
        for local, remote in self.fields.items():
            value = getattr(contact, local, None)
            if value not in (None, ""):
                properties[remote] = value
        properties.update(contact.custom_fields)
        return properties

    def to_local(self, properties: Mapping[str, Any]) -> dict[str, Any]:
        return {local: properties.get(remote) for local, remote in self.fields.items() if properties.get(remote) is not None}
