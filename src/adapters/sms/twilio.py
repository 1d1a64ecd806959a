"""Adaptador SMS: Twilio.

- REST con cuerpo form-encoded y Basic auth (Account SID : Auth Token).
- Firma de webhooks: HMAC-SHA1 en base64 sobre URL + pares clave/valor ordenados
  (cabecera `X-Twilio-Signature`).
"""

from __future__ import annotations

from datetime import datetime
from email.utils import parsedate_to_datetime
from typing import Any, Mapping

import httpx

from adapters.http_client import HttpTransport, dig
from core import sms
from core.config import AppSettings
from core.domain.base import Bag, parse_int, parse_request
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
from core.signatures import canonicalize, constant_time_equals, hmac_digest

STATUS_MAP: dict[str, SmsStatus] = {
    "accepted": SmsStatus.QUEUED,
    "scheduled": SmsStatus.QUEUED,
    "queued": SmsStatus.QUEUED,
    "sending": SmsStatus.SENT,
    "sent": SmsStatus.SENT,
    "delivered": SmsStatus.DELIVERED,
    "undelivered": SmsStatus.UNDELIVERED,
    "failed": SmsStatus.FAILED,
    "received": SmsStatus.DELIVERED,
}

US_PRICE_PER_SEGMENT = 0.0079
INTL_PRICE_PER_SEGMENT = 0.05


def map_status(value: str | None) -> SmsStatus:
    return STATUS_MAP.get((value or "").lower(), SmsStatus.QUEUED)


def _parse_date(value: Any) -> datetime | None:
    if not value:
        return None
    try:
        return parsedate_to_datetime(str(value))
    except (TypeError, ValueError):
        return None


class TwilioAdapter:
    """Envía y consulta SMS vía Twilio."""

    provider_id = "twilio"
    _base_url = "https://api.twilio.com/2010-04-01"

    def __init__(
        self,
        account_sid: str | None = None,
        auth_token: str | None = None,
        from_number: str | None = None,
        *,
        settings: AppSettings | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._settings = settings or AppSettings()
        self._account_sid = account_sid or ""
        self._auth_token = auth_token or ""
        self._from_number = from_number
        self._http = HttpTransport(
            self.provider_id,
            base_url=self._base_url,
            settings=self._settings,
            auth=(self._account_sid, self._auth_token),
            transport=transport,
            error_message=lambda body: dig(body, "message"),
            error_code=lambda body: dig(body, "code"),
        )

    def _account_path(self, suffix: str) -> str:
        return f"/Accounts/{self._account_sid}{suffix}"

    def _missing_credentials(self) -> Failure | None:
        missing = [name for name, value in (("account_sid", self._account_sid), ("auth_token", self._auth_token)) if not value]
        return not_configured("Twilio", *missing) if missing else None

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

        data: dict[str, Any] = {"To": msg.to, "From": sender, "Body": msg.body}
        if msg.status_callback:
            data["StatusCallback"] = msg.status_callback
        if msg.media_urls:
            data["MediaUrl"] = msg.media_urls

        result = self._http.request("POST", self._account_path("/Messages.json"), data=data)
        if isinstance(result, Failure):
            return result
        return Ok(self._receipt(result.value, to=msg.to, text=msg.body))

    def send_bulk(self, recipients: list[str], body: str, **options: Any) -> BatchResult[SmsReceipt]:
        batch: BatchResult[SmsReceipt] = BatchResult()
        for recipient in recipients:
            batch.record(self.send_message({"to": recipient, "message": body, **options}))
        return batch

    def get_message_status(self, message_id: str) -> Ok[SmsReceipt] | Failure:
        missing = self._missing_credentials()
        if missing is not None:
            return missing
        result = self._http.request("GET", self._account_path(f"/Messages/{message_id}.json"))
        if isinstance(result, Failure):
            return result
        return Ok(self._receipt(result.value))

    def get_balance(self) -> Ok[Balance] | Failure:
        missing = self._missing_credentials()
        if missing is not None:
            return missing
        result = self._http.request("GET", self._account_path("/Balance.json"))
        if isinstance(result, Failure):
            return result
        body = result.value
        return Ok(Balance(balance=float(body.get("balance") or 0), currency=body.get("currency") or "USD"))

    def search_available_numbers(self, search: NumberSearch | Bag | None = None) -> Ok[list[PhoneNumberOffer]] | Failure:
        parsed = parse_request(NumberSearch, search)
        if isinstance(parsed, Failure):
            return parsed
        query = parsed.value
        missing = self._missing_credentials()
        if missing is not None:
            return missing

        params: dict[str, Any] = {"SmsEnabled": "true", "PageSize": query.limit}
        if query.area_code:
            params["AreaCode"] = query.area_code
        if query.contains:
            params["Contains"] = query.contains
        if query.region:
            params["InRegion"] = query.region

        result = self._http.request(
            "GET",
            self._account_path(f"/AvailablePhoneNumbers/{query.country_code.upper()}/Local.json"),
            params=params,
        )
        if isinstance(result, Failure):
            return result

        offers = []
        for number in result.value.get("available_phone_numbers") or []:
            caps = number.get("capabilities") or {}
            offers.append(
                PhoneNumberOffer(
                    phone_number=number["phone_number"],
                    friendly_name=number.get("friendly_name"),
                    locality=number.get("locality"),
                    region=number.get("region"),
                    capabilities={
                        "sms": bool(caps.get("SMS") or caps.get("sms")),
                        "mms": bool(caps.get("MMS") or caps.get("mms")),
                        "voice": bool(caps.get("voice")),
                    },
                )
            )
        return Ok(offers)

    def purchase_number(self, phone_number: str) -> Ok[PurchasedNumber] | Failure:
        missing = self._missing_credentials()
        if missing is not None:
            return missing
        result = self._http.request(
            "POST",
            self._account_path("/IncomingPhoneNumbers.json"),
            data={"PhoneNumber": phone_number},
        )
        if isinstance(result, Failure):
            return result
        body = result.value
        return Ok(
            PurchasedNumber(
                id=body.get("sid"),
                phone_number=body.get("phone_number") or phone_number,
                status=body.get("status") or "active",
            )
        )

    def validate_webhook_signature(self, payload: Mapping[str, Any], signature: str | None, url: str) -> bool:
        if not self._auth_token or not signature:
            return False
        expected = hmac_digest(
            self._auth_token,
            canonicalize(url, payload),
            algorithm="sha1",
            encoding="base64",
        )
        return constant_time_equals(expected, signature)

    def process_webhook(self, payload: Mapping[str, Any]) -> InboundSms:
        return InboundSms(
            message_id=payload.get("MessageSid") or payload.get("SmsSid"),
            from_number=payload.get("From"),
            to=payload.get("To"),
            body=payload.get("Body"),
            status=map_status(payload.get("MessageStatus") or payload.get("SmsStatus")),
            segments=max(parse_int(payload.get("NumSegments"), 1), 1),
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
        result = self._http.request("GET", self._account_path(".json"))
        if isinstance(result, Failure):
            return result
        body = result.value
        return Ok(
            ConnectionStatus(
                provider=self.provider_id,
                account=body.get("friendly_name"),
                details={"status": body.get("status")},
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

    def _receipt(self, body: Mapping[str, Any], *, to: str | None = None, text: str | None = None) -> SmsReceipt:
        recipient = body.get("to") or to

        segments = int(body.get("num_segments") or 0)
        if not segments:
            segments = self.count_segments(text) if text is not None else 1

        # Twilio reports price as a negative string once the message is billed.
        price: float | None = None
        if body.get("price") not in (None, ""):
            price = abs(float(body["price"]))
        elif recipient and text is not None:
            price = self.calculate_cost(recipient, text)

        return SmsReceipt(
            message_id=body.get("sid"),
            status=map_status(body.get("status")),
            to=recipient,
            segments=segments,
            price=price,
            error_code=str(body["error_code"]) if body.get("error_code") is not None else None,
            error_message=body.get("error_message"),
            sent_at=_parse_date(body.get("date_sent") or body.get("date_created")),
        )
