"""Adaptador email: SendGrid (v3 Mail Send)."""

from __future__ import annotations

import base64
from typing import Any

import httpx

from adapters.http_client import HttpTransport
from core.config import AppSettings
from core.domain.base import Bag, parse_request
from core.domain.common import ConnectionStatus
from core.domain.messaging import EmailMessage, EmailReceipt
from core.result import BatchResult, Failure, Ok, not_configured, not_supported


class SendGridAdapter:
    provider_id = "sendgrid"
    _base_url = "https://api.sendgrid.com/v3"

    def __init__(
        self,
        api_key: str | None = None,
        from_email: str | None = None,
        from_name: str | None = None,
        *,
        settings: AppSettings | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._settings = settings or AppSettings()
        self._api_key = api_key or ""
        self._from_email = from_email
        self._from_name = from_name or self._settings.organization_name
        self._http = HttpTransport(
            self.provider_id,
            base_url=self._base_url,
            settings=self._settings,
            headers={"Authorization": f"Bearer {self._api_key}"},
            transport=transport,
        )

    def build_payload(self, message: EmailMessage) -> dict[str, Any]:
        personalization: dict[str, Any] = {"to": [{"email": addr} for addr in message.to]}
        if message.cc:
            personalization["cc"] = [{"email": addr} for addr in message.cc]
        if message.bcc:
            personalization["bcc"] = [{"email": addr} for addr in message.bcc]

        sender: dict[str, str] = {"email": message.from_email or self._from_email or ""}
        name = message.from_name or self._from_name
        if name:
            sender["name"] = name

        payload: dict[str, Any] = {
            "personalizations": [personalization],
            "from": sender,
            "subject": message.subject,
            "content": [
                {"type": "text/html" if message.html else "text/plain", "value": message.body},
            ],
        }
        if message.reply_to:
            payload["reply_to"] = {"email": message.reply_to}
        if message.template_id:
            payload["template_id"] = message.template_id
        if message.tags:
            payload["categories"] = message.tags[:10]
        if message.attachments:
            payload["attachments"] = [
                {
                    "content": base64.b64encode(att.content).decode("ascii"),
                    "filename": att.filename,
                    "type": att.content_type,
                    "disposition": "attachment",
                }
                for att in message.attachments
            ]
        return payload

    def send(self, message: EmailMessage | Bag) -> Ok[EmailReceipt] | Failure:
        parsed = parse_request(EmailMessage, message)
        if isinstance(parsed, Failure):
            return parsed
        if not self._api_key:
            return not_configured("SendGrid", "api_key")
        msg = parsed.value

        result = self._http.request("POST", "/mail/send", json=self.build_payload(msg), expect="response")
        if isinstance(result, Failure):
            return result
        response: httpx.Response = result.value
        return Ok(
            EmailReceipt(
                provider=self.provider_id,
                message_id=response.headers.get("X-Message-Id"),
                status="queued" if response.status_code == 202 else "sent",
                recipients=len(msg.to) + len(msg.cc) + len(msg.bcc),
            )
        )

    def send_bulk(self, messages: list[EmailMessage | Bag]) -> BatchResult[EmailReceipt]:
        batch: BatchResult[EmailReceipt] = BatchResult()
        for message in messages:
            batch.record(self.send(message))
        return batch

    def get_status(self, message_id: str) -> Ok[dict[str, Any]] | Failure:
        """Estado agregado desde la Email Activity API (requiere el add-on)."""

        if not self._api_key:
            return not_configured("SendGrid", "api_key")
        result = self._http.request("GET", f"/messages/{message_id}")
        if isinstance(result, Failure):
            return result

        body = result.value if isinstance(result.value, dict) else {}
        status, opens, clicks = "sent", 0, 0
        for event in body.get("events") or []:
            kind = event.get("event")
            if kind == "delivered":
                status = "delivered"
            elif kind in ("bounce", "dropped"):
                status = "bounced"
            elif kind == "open":
                opens += 1
            elif kind == "click":
                clicks += 1
        return Ok(
            {
                "message_id": message_id,
                "status": status,
                "opens": opens,
                "clicks": clicks,
                "timestamp": body.get("last_event_time"),
            }
        )

    def fetch_emails(self, folder: str = "INBOX", limit: int = 50) -> Ok[list[dict[str, Any]]] | Failure:
        return not_supported("fetch_emails", "SendGrid")

    def test_connection(self) -> Ok[ConnectionStatus] | Failure:
        if not self._api_key:
            return not_configured("SendGrid", "api_key")
        result = self._http.request("GET", "/scopes")
        if isinstance(result, Failure):
            return result
        scopes = result.value.get("scopes", []) if isinstance(result.value, dict) else []
        return Ok(
            ConnectionStatus(
                provider=self.provider_id,
                details={"can_send": "mail.send" in scopes, "scopes": len(scopes)},
            )
        )

    def get_capabilities(self) -> dict[str, bool]:
        return {
            "html": True,
            "attachments": True,
            "templates": True,
            "tracking": True,
            "fetch": False,
            "bulk": True,
        }
