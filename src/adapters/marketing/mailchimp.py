"""Adaptador de marketing: Mailchimp (Marketing API 3.0).

- Basic auth `anystring:<api_key>`.
- El datacenter sale del sufijo de la clave (`...-us21` -> `us21.api.mailchimp.com`).
- Los miembros se direccionan por md5 del email en minúsculas.
"""

from __future__ import annotations

import hashlib

import httpx

from adapters.http_client import HttpTransport, dig
from core.config import AppSettings
from core.domain.base import Bag, parse_request
from core.domain.common import ConnectionStatus
from core.domain.marketing import (
    Audience,
    AudienceContact,
    AudienceRequest,
    AudienceUpdate,
    CampaignRequest,
    CampaignStats,
    MarketingCampaign,
)
from core.domain.messaging import EmailMessage, EmailReceipt
from core.result import Failure, Ok, not_configured, not_supported


def datacenter_from_key(api_key: str) -> str | None:
    _, sep, dc = api_key.rpartition("-")
    return dc if sep and dc else None


def subscriber_hash(email: str) -> str:
    return hashlib.md5(email.strip().lower().encode("utf-8")).hexdigest()


class MailchimpAdapter:
    provider_id = "mailchimp"

    def __init__(
        self,
        api_key: str | None = None,
        *,
        from_email: str | None = None,
        from_name: str | None = None,
        settings: AppSettings | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._settings = settings or AppSettings()
        self._api_key = api_key or ""
        self._dc = datacenter_from_key(self._api_key)
        self._from_email = from_email
        self._from_name = from_name or self._settings.organization_name
        self._http = HttpTransport(
            self.provider_id,
            base_url=f"https://{self._dc or 'us1'}.api.mailchimp.com/3.0",
            settings=self._settings,
            auth=("anystring", self._api_key),
            transport=transport,
            error_message=lambda body: dig(body, "detail") or dig(body, "title"),
            error_code=lambda body: dig(body, "title"),
        )

    def _missing_credentials(self) -> Failure | None:
        if not self._api_key:
            return not_configured("Mailchimp", "api_key")
        if not self._dc:
            return not_configured("Mailchimp", "api_key datacenter suffix")
        return None

    def create_audience(self, audience: AudienceRequest | Bag) -> Ok[Audience] | Failure:
        parsed = parse_request(AudienceRequest, audience)
        if isinstance(parsed, Failure):
            return parsed
        req = parsed.value
        missing = self._missing_credentials()
        if missing is not None:
            return missing

        payload = {
            "name": req.name,
            "contact": {
                "company": req.company or self._settings.organization_name,
                "address1": req.address,
                "city": req.city,
                "state": req.state,
                "zip": req.zip,
                "country": req.country,
            },
            "permission_reminder": req.permission_reminder,
            "campaign_defaults": {
                "from_name": req.from_name or self._from_name,
                "from_email": req.from_email or self._from_email or "",
                "subject": "",
                "language": "en",
            },
            "email_type_option": True,
        }
        result = self._http.request("POST", "/lists", json=payload)
        if isinstance(result, Failure):
            return result
        body = result.value
        return Ok(Audience(id=body["id"], name=body.get("name"), member_count=dig(body, "stats", "member_count")))

    def add_contacts_to_audience(
        self, audience_id: str, contacts: list[AudienceContact | Bag]
    ) -> Ok[AudienceUpdate] | Failure:
        members = []
        for contact in contacts:
            parsed = parse_request(AudienceContact, contact)
            if isinstance(parsed, Failure):
                return parsed
            item = parsed.value
            members.append(
                {
                    "email_address": item.email,
                    "status": "subscribed",
                    "merge_fields": {"FNAME": item.first_name, "LNAME": item.last_name},
                }
            )
        missing = self._missing_credentials()
        if missing is not None:
            return missing

        result = self._http.request(
            "POST",
            f"/lists/{audience_id}",
            json={"members": members, "update_existing": True},
        )
        if isinstance(result, Failure):
            return result
        body = result.value
        return Ok(
            AudienceUpdate(
                created=len(body.get("new_members") or []),
                updated=len(body.get("updated_members") or []),
                errors=int(body.get("error_count") or 0),
            )
        )

    def remove_contact_from_audience(self, audience_id: str, email: str) -> Ok[bool] | Failure:
        missing = self._missing_credentials()
        if missing is not None:
            return missing
        result = self._http.request("DELETE", f"/lists/{audience_id}/members/{subscriber_hash(email)}")
        if isinstance(result, Failure):
            return result
        return Ok(True)

    def create_campaign(self, campaign: CampaignRequest | Bag) -> Ok[MarketingCampaign] | Failure:
        parsed = parse_request(CampaignRequest, campaign)
        if isinstance(parsed, Failure):
            return parsed
        req = parsed.value
        missing = self._missing_credentials()
        if missing is not None:
            return missing

        settings = {
            "subject_line": req.subject,
            "preview_text": req.preview_text,
            "title": req.title,
            "from_name": req.from_name or self._from_name,
            "reply_to": req.reply_to or self._from_email or "",
        }
        created = self._http.request(
            "POST",
            "/campaigns",
            json={"type": "regular", "recipients": {"list_id": req.audience_id}, "settings": settings},
        )
        if isinstance(created, Failure):
            return created
        campaign_id = created.value["id"]

        content = self._http.request("PUT", f"/campaigns/{campaign_id}/content", json={"html": req.content_html})
        if isinstance(content, Failure):
            return content
        return Ok(
            MarketingCampaign(
                id=campaign_id,
                title=dig(created.value, "settings", "title") or req.title,
                status=created.value.get("status"),
            )
        )

    def send_campaign(self, campaign_id: str) -> Ok[bool] | Failure:
        missing = self._missing_credentials()
        if missing is not None:
            return missing
        result = self._http.request("POST", f"/campaigns/{campaign_id}/actions/send")
        if isinstance(result, Failure):
            return result
        return Ok(True)

    def get_campaign_stats(self, campaign_id: str) -> Ok[CampaignStats] | Failure:
        missing = self._missing_credentials()
        if missing is not None:
            return missing
        result = self._http.request("GET", f"/reports/{campaign_id}")
        if isinstance(result, Failure):
            return result
        body = result.value
        bounces = body.get("bounces") or {}
        return Ok(
            CampaignStats(
                emails_sent=int(body.get("emails_sent") or 0),
                opens=int(dig(body, "opens", "opens_total") or 0),
                unique_opens=int(dig(body, "opens", "unique_opens") or 0),
                clicks=int(dig(body, "clicks", "clicks_total") or 0),
                unique_clicks=int(dig(body, "clicks", "unique_clicks") or 0),
                unsubscribed=int(body.get("unsubscribed") or 0),
                bounces=int(bounces.get("hard_bounces") or 0) + int(bounces.get("soft_bounces") or 0),
                open_rate=float(dig(body, "opens", "open_rate") or 0.0),
                click_rate=float(dig(body, "clicks", "click_rate") or 0.0),
            )
        )

    def send_transactional(self, message: EmailMessage | Bag) -> Ok[EmailReceipt] | Failure:
        # Los transaccionales van por Mandrill, que es otro producto y otra clave.
        return not_supported("send_transactional", "Mailchimp")

    def get_unsubscribed(self, audience_id: str, limit: int = 100) -> Ok[list[str]] | Failure:
        missing = self._missing_credentials()
        if missing is not None:
            return missing
        result = self._http.request(
            "GET",
            f"/lists/{audience_id}/members",
            params={"status": "unsubscribed", "count": limit, "fields": "members.email_address"},
        )
        if isinstance(result, Failure):
            return result
        return Ok([m["email_address"] for m in result.value.get("members") or [] if m.get("email_address")])

    def test_connection(self) -> Ok[ConnectionStatus] | Failure:
        missing = self._missing_credentials()
        if missing is not None:
            return missing
        result = self._http.request("GET", "/ping")
        if isinstance(result, Failure):
            return result
        return Ok(
            ConnectionStatus(
                provider=self.provider_id,
                account=self._dc,
                details={"health_status": result.value.get("health_status")},
            )
        )
