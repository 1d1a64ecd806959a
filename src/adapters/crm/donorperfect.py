"""Adaptador CRM: DonorPerfect (XML sobre HTTPS).

Cada operación es un POST de un documento:

    <request><apikey/><action/><record><field id="...">valor</field></record></request>

La respuesta es XML. Un elemento `<error>` con HTTP 200 es un error del
proveedor (api_error); un documento ilegible es parse_error.

Por qué defusedxml al leer:
- La respuesta viene de la red; un DTD con entidades (billion laughs,
  entidades externas) se rechaza como parse_error en vez de expandirse.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Mapping

import httpx
from defusedxml import DefusedXmlException
from defusedxml import ElementTree as SafeET

from adapters.http_client import HttpTransport
from core.config import AppSettings
from core.domain.base import Bag, parse_datetime, parse_request
from core.domain.common import ConnectionStatus
from core.domain.crm import Campaign, Contact, ContactChange, ContactSearch, Donation, Note
from core.result import BatchResult, Failure, FailureKind, Ok, fail, not_configured, not_supported

API_URL = "https://www.donorperfect.net/prod/xmlrequest.asp"
TIMEOUT_SECONDS = 60.0

# Nombre local -> campo DonorPerfect (tabla `dp`).
DONOR_FIELDS = {
    "first_name": "first_name",
    "last_name": "last_name",
    "email": "email",
    "phone": "phone",
    "address": "address",
    "city": "city",
    "state": "state",
    "postal_code": "zip",
    "country": "country",
    "organization": "org_rec",
}


@dataclass
class DpReply:
    """Respuesta XML aplanada: valores sueltos + lista de registros."""

    values: dict[str, str] = field(default_factory=dict)
    records: list[dict[str, str]] = field(default_factory=list)

    def first(self, key: str) -> str | None:
        if self.values.get(key):
            return self.values[key]
        for record in self.records:
            if record.get(key):
                return record[key]
        return None


def build_request_xml(api_key: str, action: str, params: Mapping[str, Any]) -> str:
    root = ET.Element("request")
    ET.SubElement(root, "apikey").text = api_key
    ET.SubElement(root, "action").text = action
    record = ET.SubElement(root, "record")
    for key, value in params.items():
        if value is None:
            continue
        node = ET.SubElement(record, "field", {"id": key})
        node.text = value.isoformat() if isinstance(value, (date, datetime)) else str(value)
    return ET.tostring(root, encoding="unicode")


def _record_values(node: ET.Element) -> dict[str, str]:
    values: dict[str, str] = {}
    for child in node:
        if child.tag == "field":
            key = child.get("id") or child.get("name")
            value = child.get("value", child.text)
        else:
            key, value = child.tag, child.text
        if key:
            values[key] = (value or "").strip()
    return values


def parse_reply(text: str) -> Ok[DpReply] | Failure:
    try:
        root = SafeET.fromstring(text)
    except SafeET.ParseError as exc:
        return fail(FailureKind.PARSE_ERROR, f"DonorPerfect returned malformed XML: {exc}")
    except DefusedXmlException as exc:
        # DTD/entidades en la respuesta: no se expanden.
        return fail(FailureKind.PARSE_ERROR, f"DonorPerfect reply rejected: {exc!r}", code="unsafe_xml")

    error = root.find("error")
    if error is not None:
        return fail(FailureKind.API_ERROR, (error.text or "DonorPerfect error").strip(), status_code=200)

    reply = DpReply()
    for child in root:
        if child.tag == "record":
            reply.records.append(_record_values(child))
        elif child.tag == "records":
            reply.records.extend(_record_values(record) for record in child)
        elif len(child) == 0:
            reply.values[child.tag] = (child.text or "").strip()
    return Ok(reply)


def sql_literal(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


class DonorPerfectAdapter:
    provider_id = "donorperfect"

    def __init__(
        self,
        api_key: str | None = None,
        *,
        settings: AppSettings | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._settings = settings or AppSettings()
        self._api_key = api_key or ""
        self._http = HttpTransport(
            self.provider_id,
            settings=self._settings,
            headers={"Content-Type": "text/xml", "Accept": "text/xml"},
            timeout=TIMEOUT_SECONDS,
            transport=transport,
        )

    def _missing_credentials(self) -> Failure | None:
        return None if self._api_key else not_configured("DonorPerfect", "api_key")

    def _call(self, action: str, params: Mapping[str, Any]) -> Ok[DpReply] | Failure:
        missing = self._missing_credentials()
        if missing is not None:
            return missing
        result = self._http.request(
            "POST",
            API_URL,
            content=build_request_xml(self._api_key, action, params),
            expect="text",
        )
        if isinstance(result, Failure):
            return result
        if result.value is True:
            return fail(FailureKind.PARSE_ERROR, "DonorPerfect returned an empty response")
        return parse_reply(result.value)

    def _to_contact(self, record: Mapping[str, str]) -> Contact:
        values = {local: record[remote] for local, remote in DONOR_FIELDS.items() if record.get(remote)}
        return Contact(id=record.get("donor_id"), updated_at=parse_datetime(record.get("modified_date")), **values)

    def sync_contact(self, contact: Contact | Bag) -> Ok[Contact] | Failure:
        parsed = parse_request(Contact, contact)
        if isinstance(parsed, Failure):
            return parsed
        item = parsed.value

        params: dict[str, Any] = {}
        if item.id:
            params["donor_id"] = item.id
        for local, remote in DONOR_FIELDS.items():
            params[remote] = getattr(item, local) or ""
        params.update(item.custom_fields)

        reply = self._call("dp_savedonor", params)
        if isinstance(reply, Failure):
            return reply
        donor_id = reply.value.first("donor_id") or item.id
        if not donor_id:
            return fail(FailureKind.PARSE_ERROR, "DonorPerfect did not return a donor_id")
        return Ok(item.model_copy(update={"id": donor_id}))

    def get_contact(self, contact_id: str) -> Ok[Contact] | Failure:
        reply = self._call("dp_donor", {"donor_id": contact_id})
        if isinstance(reply, Failure):
            return reply
        if not reply.value.records:
            return fail(FailureKind.NOT_FOUND, f"Donor {contact_id} not found")
        record = dict(reply.value.records[0])
        record.setdefault("donor_id", contact_id)
        return Ok(self._to_contact(record))

    def delete_contact(self, contact_id: str) -> Ok[bool] | Failure:
        return not_supported("delete_contact", "DonorPerfect")

    def search_contacts(self, query: ContactSearch | Bag) -> Ok[list[Contact]] | Failure:
        parsed = parse_request(ContactSearch, query)
        if isinstance(parsed, Failure):
            return parsed
        search = parsed.value

        clauses = []
        if search.email:
            clauses.append(f"email = {sql_literal(search.email)}")
        if search.phone:
            clauses.append(f"phone = {sql_literal(search.phone)}")
        if search.first_name:
            clauses.append(f"first_name LIKE {sql_literal('%' + search.first_name + '%')}")
        if search.last_name:
            clauses.append(f"last_name LIKE {sql_literal('%' + search.last_name + '%')}")

        reply = self._call(
            "dp_selectrecords",
            {
                "table": "dp",
                "fields": "donor_id,first_name,last_name,email,phone",
                "where": " AND ".join(clauses) or "1=1",
                "limit": search.limit,
            },
        )
        if isinstance(reply, Failure):
            return reply
        return Ok([self._to_contact(record) for record in reply.value.records])

    def sync_donation(self, donation: Donation | Bag) -> Ok[Donation] | Failure:
        parsed = parse_request(Donation, donation)
        if isinstance(parsed, Failure):
            return parsed
        item = parsed.value
        if not item.contact_id:
            return fail(FailureKind.INVALID_REQUEST, "DonorPerfect gifts require contact_id", code="missing_donor")

        params: dict[str, Any] = {
            "donor_id": item.contact_id,
            "amount": item.amount,
            "gift_date": item.donation_date,
            "campaign": item.campaign or "",
            "payment_type": item.payment_method or "",
            "memo": item.description or "",
        }
        if item.id:
            params["gift_id"] = item.id

        reply = self._call("dp_savegift", params)
        if isinstance(reply, Failure):
            return reply
        gift_id = reply.value.first("gift_id") or item.id
        if not gift_id:
            return fail(FailureKind.PARSE_ERROR, "DonorPerfect did not return a gift_id")
        return Ok(item.model_copy(update={"id": gift_id}))

    def get_donation(self, donation_id: str) -> Ok[Donation] | Failure:
        reply = self._call("dp_gift", {"gift_id": donation_id})
        if isinstance(reply, Failure):
            return reply
        if not reply.value.records:
            return fail(FailureKind.NOT_FOUND, f"Gift {donation_id} not found")
        record = reply.value.records[0]
        fields: dict[str, Any] = {
            "id": record.get("gift_id") or donation_id,
            "contact_id": record.get("donor_id"),
            "amount": record.get("amount"),
            "campaign": record.get("campaign") or None,
            "payment_method": record.get("payment_type") or None,
            "description": record.get("memo") or None,
        }
        if record.get("gift_date"):
            fields["donation_date"] = record["gift_date"]
        return parse_request(Donation, fields)

    def add_note(self, note: Note | Bag) -> Ok[Note] | Failure:
        return not_supported("add_note", "DonorPerfect")

    def get_changes_since(self, since: datetime) -> Ok[list[ContactChange]] | Failure:
        reply = self._call(
            "dp_selectrecords",
            {
                "table": "dp",
                "fields": "donor_id,first_name,last_name,email,phone,modified_date",
                "where": f"modified_date > {sql_literal(since.strftime('%Y-%m-%d %H:%M:%S'))}",
            },
        )
        if isinstance(reply, Failure):
            return reply
        changes = []
        for record in reply.value.records:
            contact = self._to_contact(record)
            changes.append(ContactChange(id=contact.id or "", changed_at=contact.updated_at, contact=contact))
        return Ok(changes)

    def batch_push(self, contacts: list[Contact | Bag]) -> BatchResult[Contact]:
        batch: BatchResult[Contact] = BatchResult()
        for contact in contacts:
            batch.record(self.sync_contact(contact))
        return batch

    def get_campaigns(self) -> Ok[list[Campaign]] | Failure:
        reply = self._call(
            "dp_selectrecords",
            {"table": "dpcodes", "fields": "code,description", "where": "field_name = 'CAMPAIGN'"},
        )
        if isinstance(reply, Failure):
            return reply
        return Ok(
            [
                Campaign(id=record["code"], name=record.get("description") or record["code"])
                for record in reply.value.records
                if record.get("code")
            ]
        )

    def test_connection(self) -> Ok[ConnectionStatus] | Failure:
        reply = self._call("dp_selectrecords", {"table": "dp", "fields": "donor_id", "where": "1=0", "limit": 1})
        if isinstance(reply, Failure):
            return reply
        return Ok(ConnectionStatus(provider=self.provider_id))
