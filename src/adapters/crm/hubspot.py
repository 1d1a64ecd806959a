"""Adaptador CRM: HubSpot (API v3, private app token).

Mapeo:
- Contact  -> objeto `contacts`
- Donation -> objeto `deals` en el pipeline por defecto, etapa `closedwon`
- Note     -> objeto `notes`, asociado al contacto
"""

from __future__ import annotations

from datetime import datetime, time, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping

import httpx

from adapters.http_client import HttpTransport, dig
from core.config import AppSettings
from core.domain.base import Bag, parse_datetime, parse_request
from core.domain.common import ConnectionStatus
from core.domain.crm import Campaign, Contact, ContactChange, ContactSearch, Donation, FieldMapping, Note
from core.result import BatchResult, Failure, FailureKind, Ok, fail, not_configured

DEFAULT_CONTACT_FIELDS = FieldMapping(
    fields={
        "first_name": "firstname",
        "last_name": "lastname",
        "email": "email",
        "phone": "phone",
        "organization": "company",
        "address": "address",
        "city": "city",
        "state": "state",
        "postal_code": "zip",
        "country": "country",
    }
)

DEAL_PROPERTIES = ("dealname", "amount", "closedate", "dealstage", "pipeline", "description", "campaign")

# Tipos de asociación HUBSPOT_DEFINED.
DEAL_TO_CONTACT = 3
NOTE_TO_CONTACT = 202


def _association(contact_id: str, type_id: int) -> dict[str, Any]:
    return {
        "to": {"id": contact_id},
        "types": [{"associationCategory": "HUBSPOT_DEFINED", "associationTypeId": type_id}],
    }


def _as_decimal(value: Any) -> Decimal | None:
    if value in (None, ""):
        return None
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return None


class HubSpotAdapter:
    provider_id = "hubspot"
    _base_url = "https://api.hubapi.com"

    def __init__(
        self,
        access_token: str | None = None,
        *,
        field_mapping: FieldMapping | None = None,
        settings: AppSettings | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._settings = settings or AppSettings()
        self._access_token = access_token or ""
        self._mapping = field_mapping or DEFAULT_CONTACT_FIELDS
        self._http = HttpTransport(
            self.provider_id,
            base_url=self._base_url,
            settings=self._settings,
            headers={"Authorization": f"Bearer {self._access_token}"},
            transport=transport,
            error_message=lambda body: dig(body, "message"),
            error_code=lambda body: dig(body, "category"),
        )

    def _missing_credentials(self) -> Failure | None:
        return None if self._access_token else not_configured("HubSpot", "access_token")

    def _contact_properties(self) -> str:
        return ",".join(list(self._mapping.fields.values()) + ["lastmodifieddate"])

    def _to_contact(self, body: Mapping[str, Any]) -> Contact:
        properties = body.get("properties") or {}
        return Contact(
            id=str(body.get("id")),
            updated_at=parse_datetime(body.get("updatedAt") or properties.get("lastmodifieddate")),
            **self._mapping.to_local(properties),
        )

    def sync_contact(self, contact: Contact | Bag) -> Ok[Contact] | Failure:
        parsed = parse_request(Contact, contact)
        if isinstance(parsed, Failure):
            return parsed
        item = parsed.value
        missing = self._missing_credentials()
        if missing is not None:
            return missing

        payload = {"properties": self._mapping.to_remote(item)}
        if item.id:
            result = self._http.request("PATCH", f"/crm/v3/objects/contacts/{item.id}", json=payload)
        else:
            result = self._http.request("POST", "/crm/v3/objects/contacts", json=payload)
        if isinstance(result, Failure):
            return result
        return Ok(item.model_copy(update={"id": str(result.value.get("id") or item.id)}))

    def get_contact(self, contact_id: str) -> Ok[Contact] | Failure:
        missing = self._missing_credentials()
        if missing is not None:
            return missing
        result = self._http.request(
            "GET",
            f"/crm/v3/objects/contacts/{contact_id}",
            params={"properties": self._contact_properties()},
        )
        if isinstance(result, Failure):
            return result
        return Ok(self._to_contact(result.value))

    def delete_contact(self, contact_id: str) -> Ok[bool] | Failure:
        missing = self._missing_credentials()
        if missing is not None:
            return missing
        result = self._http.request("DELETE", f"/crm/v3/objects/contacts/{contact_id}")
        if isinstance(result, Failure):
            return result
        return Ok(True)

    def search_contacts(self, query: ContactSearch | Bag) -> Ok[list[Contact]] | Failure:
        parsed = parse_request(ContactSearch, query)
        if isinstance(parsed, Failure):
            return parsed
        search = parsed.value
        missing = self._missing_credentials()
        if missing is not None:
            return missing

        filters = [
            {"propertyName": self._mapping.fields.get(key, key), "operator": "EQ", "value": value}
            for key, value in search.criteria().items()
        ]
        return self._search(filters, limit=search.limit)

    def _search(
        self,
        filters: list[dict[str, Any]],
        *,
        limit: int,
        sorts: list[dict[str, str]] | None = None,
    ) -> Ok[list[Contact]] | Failure:
        payload: dict[str, Any] = {
            "filterGroups": [{"filters": filters}] if filters else [],
            "properties": self._contact_properties().split(","),
            "limit": limit,
        }
        if sorts:
            payload["sorts"] = sorts
        result = self._http.request("POST", "/crm/v3/objects/contacts/search", json=payload)
        if isinstance(result, Failure):
            return result
        return Ok([self._to_contact(row) for row in result.value.get("results") or []])

    def sync_donation(self, donation: Donation | Bag) -> Ok[Donation] | Failure:
        parsed = parse_request(Donation, donation)
        if isinstance(parsed, Failure):
            return parsed
        item = parsed.value
        missing = self._missing_credentials()
        if missing is not None:
            return missing

        close_date = datetime.combine(item.donation_date, time.min, tzinfo=timezone.utc)
        properties: dict[str, Any] = {
            "dealname": item.description or f"Donation - {item.amount} {item.currency}",
            "amount": str(item.amount),
            "closedate": close_date.isoformat().replace("+00:00", "Z"),
            "pipeline": "default",
            "dealstage": "closedwon",
        }
        if item.campaign:
            properties["campaign"] = item.campaign
        if item.description:
            properties["description"] = item.description

        if item.id:
            result = self._http.request("PATCH", f"/crm/v3/objects/deals/{item.id}", json={"properties": properties})
        else:
            payload: dict[str, Any] = {"properties": properties}
            if item.contact_id:
                payload["associations"] = [_association(item.contact_id, DEAL_TO_CONTACT)]
            result = self._http.request("POST", "/crm/v3/objects/deals", json=payload)
        if isinstance(result, Failure):
            return result
        return Ok(item.model_copy(update={"id": str(result.value.get("id") or item.id), "status": "closedwon"}))

    def get_donation(self, donation_id: str) -> Ok[Donation] | Failure:
        missing = self._missing_credentials()
        if missing is not None:
            return missing
        result = self._http.request(
            "GET",
            f"/crm/v3/objects/deals/{donation_id}",
            params={"properties": ",".join(DEAL_PROPERTIES), "associations": "contacts"},
        )
        if isinstance(result, Failure):
            return result

        body = result.value
        properties = body.get("properties") or {}
        amount = _as_decimal(properties.get("amount"))
        if amount is None or amount <= 0:
            return fail(FailureKind.PARSE_ERROR, f"Deal {donation_id} has no usable amount")
        fields: dict[str, Any] = {
            "id": str(body.get("id")),
            "contact_id": dig(body, "associations", "contacts", "results", 0, "id"),
            "amount": amount,
            "campaign": properties.get("campaign"),
            "description": properties.get("description"),
            "status": properties.get("dealstage"),
        }
        closed = parse_datetime(properties.get("closedate"))
        if closed is not None:
            fields["donation_date"] = closed.date()
        return Ok(Donation(**fields))

    def add_note(self, note: Note | Bag) -> Ok[Note] | Failure:
        parsed = parse_request(Note, note)
        if isinstance(parsed, Failure):
            return parsed
        item = parsed.value
        missing = self._missing_credentials()
        if missing is not None:
            return missing

        created = item.created_at or datetime.now(timezone.utc)
        body = f"<strong>{item.subject}</strong><br>{item.body}" if item.subject else item.body
        payload = {
            "properties": {"hs_note_body": body, "hs_timestamp": created.isoformat()},
            "associations": [_association(item.contact_id, NOTE_TO_CONTACT)],
        }
        result = self._http.request("POST", "/crm/v3/objects/notes", json=payload)
        if isinstance(result, Failure):
            return result
        return Ok(item.model_copy(update={"id": str(result.value.get("id")), "created_at": created}))

    def get_changes_since(self, since: datetime) -> Ok[list[ContactChange]] | Failure:
        missing = self._missing_credentials()
        if missing is not None:
            return missing
        if since.tzinfo is None:
            since = since.replace(tzinfo=timezone.utc)
        filters = [
            {
                "propertyName": "lastmodifieddate",
                "operator": "GT",
                "value": str(int(since.timestamp() * 1000)),
            }
        ]
        result = self._search(filters, limit=100, sorts=[{"propertyName": "lastmodifieddate", "direction": "ASCENDING"}])
        if isinstance(result, Failure):
            return result
        return Ok([ContactChange(id=c.id or "", changed_at=c.updated_at, contact=c) for c in result.value])

    def batch_push(self, contacts: list[Contact | Bag]) -> BatchResult[Contact]:
        batch: BatchResult[Contact] = BatchResult()
        for contact in contacts:
            batch.record(self.sync_contact(contact))
        return batch

    def get_campaigns(self) -> Ok[list[Campaign]] | Failure:
        missing = self._missing_credentials()
        if missing is not None:
            return missing
        result = self._http.request("GET", "/marketing/v3/campaigns", params={"properties": "hs_name,hs_start_date,hs_end_date"})
        if isinstance(result, Failure):
            return result

        campaigns = []
        for row in result.value.get("results") or []:
            properties = row.get("properties") or {}
            starts = parse_datetime(properties.get("hs_start_date"))
            ends = parse_datetime(properties.get("hs_end_date"))
            campaigns.append(
                Campaign(
                    id=str(row.get("id")),
                    name=properties.get("hs_name") or row.get("name") or str(row.get("id")),
                    start_date=starts.date() if starts else None,
                    end_date=ends.date() if ends else None,
                )
            )
        return Ok(campaigns)

    def test_connection(self) -> Ok[ConnectionStatus] | Failure:
        missing = self._missing_credentials()
        if missing is not None:
            return missing
        result = self._http.request("GET", "/account-info/v3/details")
        if isinstance(result, Failure):
            return result
        body = result.value
        return Ok(
            ConnectionStatus(
                provider=self.provider_id,
                account=str(body.get("portalId")) if body.get("portalId") is not None else None,
                details={"time_zone": body.get("timeZone"), "currency": body.get("companyCurrency")},
            )
        )
