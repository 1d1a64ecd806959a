"""Adaptador SMS: Plivo.

- REST+JSON con Basic auth (Auth ID : Auth Token).
- Firma de webhooks (esquema v1): SHA1 hex de URL + pares ordenados + auth token.
"""

from __future__ import annotations

from typing import Any, Mapping

import httpx

from adapters.http_client import HttpTransport, dig
from core import sms
from core.config import AppSettings
from core.domain.base import Bag, parse_datetime, parse_int, parse_request
from core.domain.common import ConnectionStatus
from core.domain.messaging import (
    Balance,
    InboundSms,
    NumberSearch,
    PhoneNumberOffer,
    PurchasedNumber,
    SmsMessage,
    SmsReceipt,
    SmsStatus,
)
from core.result import BatchResult, Failure, FailureKind, Ok, fail, not_configured
from core.signatures import canonicalize, constant_time_equals, plain_hash_hex

STATUS_MAP: dict[str, SmsStatus] = {
    "queued": SmsStatus.QUEUED,
    "sent": SmsStatus.SENT,
    "delivered": SmsStatus.DELIVERED,
    "undelivered": SmsStatus.UNDELIVERED,
    "failed": SmsStatus.FAILED,
    "rejected": SmsStatus.FAILED,
}

US_PRICE_PER_SEGMENT = 0.0065
INTL_PRICE_PER_SEGMENT = 0.04


def map_status(value: str | None) -> SmsStatus:
    return STATUS_MAP.get((value or "").lower(), SmsStatus.QUEUED)


class PlivoAdapter:
    provider_id = "plivo"
    _base_url = "https://api.plivo.com/v1"

    def __init__(
        self,
        auth_id: str | None = None,
        auth_token: str | None = None,
        from_number: str | None = None,
        *,
        settings: AppSettings | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._settings = settings or AppSettings()
        self._auth_id = auth_id or ""
        self._auth_token = auth_token or ""
        self._from_number = from_number
        self._http = HttpTransport(
            self.provider_id,
            base_url=self._base_url,
            settings=self._settings,
            auth=(self._auth_id, self._auth_token),
            transport=transport,
            error_message=lambda body: dig(body, "error"),
        )

    def _account_path(self, suffix: str = "") -> str:
        return f"/Account/{self._auth_id}/{suffix}"

    def _missing_credentials(self) -> Failure | None:
        missing = [name for name, value in (("auth_id", self._auth_id), ("auth_token", self._auth_token)) if not value]
        return not_configured("Plivo", *missing) if missing else None

    def send_message(self, message: SmsMessage | Bag) -> Ok[SmsReceipt] | Failure:
        parsed = parse_request(SmsMessage, message)
        if isinstance(parsed, Failure):
            return parsed
        msg = parsed.value
        missing = self._missing_credentials()
        if missing is not None:
            return missing

        sender = msg.from_number or self._from_number
        if not sender:
            return fail(FailureKind.INVALID_REQUEST, "From number is required", code="missing_from")

        body: dict[str, Any] = {"src": sender, "dst": msg.to, "text": msg.body}
        if msg.status_callback:
            body["url"] = msg.status_callback
            body["method"] = "POST"
        if msg.media_urls:
            body["type"] = "mms"
            body["media_urls"] = msg.media_urls

        result = self._http.request("POST", self._account_path("Message/"), json=body)
        if isinstance(result, Failure):
            return result

        uuids = result.value.get("message_uuid") or [None]
        return Ok(
            SmsReceipt(
                message_id=uuids[0],
                status=SmsStatus.QUEUED,
                to=msg.to,
                segments=self.count_segments(msg.body),
                price=self.calculate_cost(msg.to, msg.body),
            )
        )

    def send_bulk(self, recipients: list[str], body: str, **options: Any) -> BatchResult[SmsReceipt]:
        batch: BatchResult[SmsReceipt] = BatchResult()
        for recipient in recipients:
            batch.record(self.send_message({"to": recipient, "message": body, **options}))
        return batch

    def get_message_status(self, message_id: str) -> Ok[SmsReceipt] | Failure:
        missing = self._missing_credentials()
        if missing is not None:
            return missing
        result = self._http.request("GET", self._account_path(f"Message/{message_id}/"))
        if isinstance(result, Failure):
            return result
        data = result.value
        return Ok(
            SmsReceipt(
                message_id=data.get("message_uuid") or message_id,
                status=map_status(data.get("message_state")),
                to=data.get("to_number"),
                segments=int(data.get("units") or 1),
                price=float(data.get("total_rate") or 0),
                error_code=str(data["error_code"]) if data.get("error_code") not in (None, "") else None,
                sent_at=parse_datetime(data.get("message_time")),
            )
        )

    def get_balance(self) -> Ok[Balance] | Failure:
        missing = self._missing_credentials()
        if missing is not None:
            return missing
        result = self._http.request("GET", self._account_path())
        if isinstance(result, Failure):
            return result
        return Ok(Balance(balance=float(result.value.get("cash_credits") or 0), currency="USD"))

    def search_available_numbers(self, search: NumberSearch | Bag | None = None) -> Ok[list[PhoneNumberOffer]] | Failure:
        parsed = parse_request(NumberSearch, search)
        if isinstance(parsed, Failure):
            return parsed
        query = parsed.value
        missing = self._missing_credentials()
        if missing is not None:
            return missing

        params: dict[str, Any] = {"country_iso": query.country_code.upper(), "type": "local", "limit": query.limit}
        if query.region:
            params["region"] = query.region
        pattern = query.contains or query.area_code
        if pattern:
            params["pattern"] = pattern

        result = self._http.request("GET", self._account_path("PhoneNumber/"), params=params)
        if isinstance(result, Failure):
            return result

        return Ok(
            [
                PhoneNumberOffer(
                    phone_number=number["number"],
                    friendly_name=number["number"],
                    region=number.get("region"),
                    capabilities={
                        "sms": bool(number.get("sms_enabled")),
                        "mms": bool(number.get("mms_enabled")),
                        "voice": bool(number.get("voice_enabled")),
                    },
                    monthly_cost=float(number.get("monthly_rental_rate") or 0),
                )
                for number in result.value.get("objects") or []
            ]
        )

    def purchase_number(self, phone_number: str) -> Ok[PurchasedNumber] | Failure:
        missing = self._missing_credentials()
        if missing is not None:
            return missing
        number = phone_number.lstrip("+")
        result = self._http.request("POST", self._account_path(f"PhoneNumber/{number}/"), json={})
        if isinstance(result, Failure):
            return result
        body = result.value if isinstance(result.value, dict) else {}
        first = (body.get("numbers") or [{}])[0]
        return Ok(
            PurchasedNumber(
                id=first.get("number") or number,
                phone_number=phone_number,
                status=body.get("status") or "fulfilled",
            )
        )

    def validate_webhook_signature(self, payload: Mapping[str, Any], signature: str | None, url: str) -> bool:
        if not self._auth_token or not signature:
            return False
        expected = plain_hash_hex(canonicalize(url, payload) + self._auth_token, algorithm="sha1")
        return constant_time_equals(expected, signature)

    def process_webhook(self, payload: Mapping[str, Any]) -> InboundSms:
        return InboundSms(
            message_id=payload.get("MessageUUID"),
            from_number=payload.get("From"),
            to=payload.get("To"),
            body=payload.get("Text"),
            status=map_status(payload.get("Status")),
            segments=max(parse_int(payload.get("Units"), 1), 1),
            error_code=payload.get("ErrorCode"),
            raw=dict(payload),
        )

    def calculate_cost(self, to: str, body: str) -> float:
        rate = US_PRICE_PER_SEGMENT if to.startswith("+1") else INTL_PRICE_PER_SEGMENT
        return round(self.count_segments(body) * rate, 4)

    def count_segments(self, body: str) -> int:
        return sms.count_segments(body)

    def test_connection(self) -> Ok[ConnectionStatus] | Failure:
        missing = self._missing_credentials()
        if missing is not None:
            return missing
        result = self._http.request("GET", self._account_path())
        if isinstance(result, Failure):
            return result
        return Ok(
            ConnectionStatus(
                provider=self.provider_id,
                account=result.value.get("name"),
                details={"account_type": result.value.get("account_type")},
            )
        )

    def get_capabilities(self) -> dict[str, bool]:
        return {
            "mms": True,
            "unicode": True,
            "delivery_reports": True,
            "two_way": True,
            "scheduled": False,
            "bulk": True,
        }
