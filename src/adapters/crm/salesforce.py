"""Adaptador CRM: Salesforce (REST v58.0 + OAuth refresh_token).

- Contact  -> sObject `Contact`
- Donation -> sObject `Opportunity` (etapa "Closed Won")
- Note     -> sObject `Task` completada, ligada al contacto (`WhoId`)

El access token vive en el `TokenCache`; la `instance_url` llega con cada
refresh y se guarda junto al token.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Mapping

import httpx

from adapters.http_client import HttpTransport, dig
from adapters.oauth import OAuthSession, token_from_result
from core.config import AppSettings
from core.domain.base import Bag, parse_datetime, parse_request
from core.domain.common import ConnectionStatus
from core.domain.crm import Campaign, Contact, ContactChange, ContactSearch, Donation, FieldMapping, Note
from core.interfaces.token_cache import MemoryTokenCache, OAuthToken, TokenCache
from core.result import BatchResult, Failure, FailureKind, Ok, fail, not_configured

API_VERSION = "v58.0"

DEFAULT_CONTACT_FIELDS = FieldMapping(
    fields={
        "first_name": "FirstName",
        "last_name": "LastName",
        "email": "Email",
        "phone": "Phone",
        "address": "MailingStreet",
        "city": "MailingCity",
        "state": "MailingState",
        "postal_code": "MailingPostalCode",
        "country": "MailingCountry",
    }
)


def soql_quote(value: str) -> str:
    """Literal SOQL entre comillas simples."""

    escaped = value.replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


def soql_datetime(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class SalesforceAdapter:
    provider_id = "salesforce"

    def __init__(
        self,
        client_id: str | None = None,
        client_secret: str | None = None,
        refresh_token: str | None = None,
        *,
        access_token: str | None = None,
        instance_url: str | None = None,
        sandbox: bool = False,
        field_mapping: FieldMapping | None = None,
        token_cache: TokenCache | None = None,
        settings: AppSettings | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._settings = settings or AppSettings()
        self._client_id = client_id or ""
        self._client_secret = client_secret or ""
        self._refresh_token = refresh_token or ""
        self._instance_url = (instance_url or "").rstrip("/")
        self._mapping = field_mapping or DEFAULT_CONTACT_FIELDS
        login_host = "test.salesforce.com" if sandbox else "login.salesforce.com"
        self._token_url = f"https://{login_host}/services/oauth2/token"

        self._http = HttpTransport(
            self.provider_id,
            settings=self._settings,
            transport=transport,
            error_message=lambda body: dig(body, 0, "message") or dig(body, "error_description"),
            error_code=lambda body: dig(body, 0, "errorCode") or dig(body, "error"),
        )
        cache = token_cache or MemoryTokenCache()
        cache_key = f"salesforce:{self._client_id}"
        if access_token and cache.get(cache_key) is None:
            cache.set(
                cache_key,
                OAuthToken(
                    access_token=access_token,
                    refresh_token=self._refresh_token or None,
                    extra={"instance_url": self._instance_url},
                ),
            )
        self._oauth = OAuthSession(
            self._http,
            cache=cache,
            cache_key=cache_key,
            refresher=self._refresh,
            margin_seconds=self._settings.token_refresh_margin_seconds,
        )

    def _missing_credentials(self) -> Failure | None:
        missing = [
            name
            for name, value in (
                ("client_id", self._client_id),
                ("client_secret", self._client_secret),
                ("refresh_token", self._refresh_token),
            )
            if not value
        ]
        return not_configured("Salesforce", *missing) if missing else None

    def _refresh(self, previous: OAuthToken | None) -> Ok[OAuthToken] | Failure:
        refresh_token = (previous.refresh_token if previous else None) or self._refresh_token
        result = self._http.request(
            "POST",
            self._token_url,
            data={
                "grant_type": "refresh_token",
                "client_id": self._client_id,
                "client_secret": self._client_secret,
                "refresh_token": refresh_token,
            },
        )
        token = token_from_result(result, refresh_token=refresh_token)
        if isinstance(token, Failure):
            return token
        if not token.value.extra.get("instance_url"):
            token.value.extra["instance_url"] = self._instance_url
        return token

    def _api(self, method: str, path: str, **kwargs: Any) -> Ok[Any] | Failure:
        missing = self._missing_credentials()
        if missing is not None:
            return missing

        def url(token: OAuthToken) -> str:
            instance = str(token.extra.get("instance_url") or self._instance_url).rstrip("/")
            return f"{instance}/services/data/{API_VERSION}{path}"

        return self._oauth.request(method, url, **kwargs)

    def _query(self, soql: str) -> Ok[list[dict[str, Any]]] | Failure:
        result = self._api("GET", "/query", params={"q": soql})
        if isinstance(result, Failure):
            return result
        return Ok(list(result.value.get("records") or []))

    def _contact_fields(self) -> str:
        return ", ".join(["Id", "LastModifiedDate", *self._mapping.fields.values()])

    def _to_contact(self, record: Mapping[str, Any]) -> Contact:
        return Contact(
            id=record.get("Id"),
            updated_at=parse_datetime(record.get("LastModifiedDate")),
            **self._mapping.to_local(record),
        )

    def sync_contact(self, contact: Contact | Bag) -> Ok[Contact] | Failure:
        parsed = parse_request(Contact, contact)
        if isinstance(parsed, Failure):
            return parsed
        item = parsed.value
        if not item.id and not item.last_name:
            return fail(FailureKind.INVALID_REQUEST, "Salesforce contacts require last_name", code="missing_last_name")

        fields = self._mapping.to_remote(item)
        if item.id:
            result = self._api("PATCH", f"/sobjects/Contact/{item.id}", json=fields)
            if isinstance(result, Failure):
                return result
            return Ok(item)
        result = self._api("POST", "/sobjects/Contact", json=fields)
        if isinstance(result, Failure):
            return result
        return Ok(item.model_copy(update={"id": result.value.get("id")}))

    def get_contact(self, contact_id: str) -> Ok[Contact] | Failure:
        result = self._api("GET", f"/sobjects/Contact/{contact_id}")
        if isinstance(result, Failure):
            return result
        return Ok(self._to_contact(result.value))

    def delete_contact(self, contact_id: str) -> Ok[bool] | Failure:
        result = self._api("DELETE", f"/sobjects/Contact/{contact_id}")
        if isinstance(result, Failure):
            return result
        return Ok(True)

    def search_contacts(self, query: ContactSearch | Bag) -> Ok[list[Contact]] | Failure:
        parsed = parse_request(ContactSearch, query)
        if isinstance(parsed, Failure):
            return parsed
        search = parsed.value

        clauses = [
            f"{self._mapping.fields.get(key, key)} = {soql_quote(value)}"
            for key, value in search.criteria().items()
        ]
        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
        result = self._query(f"SELECT {self._contact_fields()} FROM Contact{where} LIMIT {search.limit}")
        if isinstance(result, Failure):
            return result
        return Ok([self._to_contact(record) for record in result.value])

    def sync_donation(self, donation: Donation | Bag) -> Ok[Donation] | Failure:
        parsed = parse_request(Donation, donation)
        if isinstance(parsed, Failure):
            return parsed
        item = parsed.value

        fields: dict[str, Any] = {
            "Name": item.description or f"Donation {item.donation_date.isoformat()}",
            "Amount": float(item.amount),
            "CloseDate": item.donation_date.isoformat(),
            "StageName": "Closed Won",
        }
        if item.contact_id:
            fields["ContactId"] = item.contact_id
        if item.description:
            fields["Description"] = item.description
        if item.campaign:
            fields["CampaignId"] = item.campaign

        if item.id:
            result = self._api("PATCH", f"/sobjects/Opportunity/{item.id}", json=fields)
            if isinstance(result, Failure):
                return result
            return Ok(item.model_copy(update={"status": "Closed Won"}))
        result = self._api("POST", "/sobjects/Opportunity", json=fields)
        if isinstance(result, Failure):
            return result
        return Ok(item.model_copy(update={"id": result.value.get("id"), "status": "Closed Won"}))

    def get_donation(self, donation_id: str) -> Ok[Donation] | Failure:
        result = self._api("GET", f"/sobjects/Opportunity/{donation_id}")
        if isinstance(result, Failure):
            return result
        record = result.value
        if not record.get("Amount"):
            return fail(FailureKind.PARSE_ERROR, f"Opportunity {donation_id} has no amount")
        fields: dict[str, Any] = {
            "id": record.get("Id"),
            "contact_id": record.get("ContactId"),
            "amount": str(record["Amount"]),
            "campaign": record.get("CampaignId"),
            "description": record.get("Description"),
            "status": record.get("StageName"),
        }
        if record.get("CloseDate"):
            fields["donation_date"] = record["CloseDate"]
        return parse_request(Donation, fields)

    def add_note(self, note: Note | Bag) -> Ok[Note] | Failure:
        parsed = parse_request(Note, note)
        if isinstance(parsed, Failure):
            return parsed
        item = parsed.value
        fields = {
            "WhoId": item.contact_id,
            "Subject": item.subject or "Note",
            "Description": item.body,
            "Status": "Completed",
        }
        result = self._api("POST", "/sobjects/Task", json=fields)
        if isinstance(result, Failure):
            return result
        return Ok(item.model_copy(update={"id": result.value.get("id"), "created_at": datetime.now(timezone.utc)}))

    def get_changes_since(self, since: datetime) -> Ok[list[ContactChange]] | Failure:
        result = self._query(
            f"SELECT {self._contact_fields()} FROM Contact "
            f"WHERE LastModifiedDate > {soql_datetime(since)} ORDER BY LastModifiedDate ASC"
        )
        if isinstance(result, Failure):
            return result
        changes = []
        for record in result.value:
            contact = self._to_contact(record)
            changes.append(ContactChange(id=contact.id or "", changed_at=contact.updated_at, contact=contact))
        return Ok(changes)

    def batch_push(self, contacts: list[Contact | Bag]) -> BatchResult[Contact]:
        batch: BatchResult[Contact] = BatchResult()
        for contact in contacts:
            batch.record(self.sync_contact(contact))
        return batch

    def get_campaigns(self) -> Ok[list[Campaign]] | Failure:
        result = self._query(
            "SELECT Id, Name, Status, StartDate, EndDate, ExpectedRevenue FROM Campaign WHERE IsActive = true"
        )
        if isinstance(result, Failure):
            return result
        return Ok(
            [
                Campaign(
                    id=record["Id"],
                    name=record.get("Name") or record["Id"],
                    status=record.get("Status"),
                    start_date=record.get("StartDate"),
                    end_date=record.get("EndDate"),
                    goal=record.get("ExpectedRevenue"),
                )
                for record in result.value
            ]
        )

    def test_connection(self) -> Ok[ConnectionStatus] | Failure:
        result = self._api("GET", "/limits")
        if isinstance(result, Failure):
            return result
        daily = result.value.get("DailyApiRequests") or {}
        return Ok(
            ConnectionStatus(
                provider=self.provider_id,
                details={"api_requests_remaining": daily.get("Remaining"), "api_requests_max": daily.get("Max")},
            )
        )
