"""Adaptador de analítica: Segment (HTTP Tracking API v1).

Segment enruta eventos hacia otros destinos; no ofrece consultas. Las
operaciones de lectura (informes, funnels, cohortes, export) devuelven
`not_supported`, nunca un éxito vacío.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

import httpx

from adapters.http_client import HttpTransport, dig
from core.config import AppSettings
from core.domain.analytics import Conversion, IdentifyUser, PageView, TrackEvent, TrackReceipt
from core.domain.base import Bag, parse_request
from core.domain.common import ConnectionStatus
from core.result import Failure, Ok, not_configured, not_supported

API_URL = "https://api.segment.io/v1"
TIMEOUT_SECONDS = 10.0
PROVIDER_NAME = "Segment"


def _timestamp(value: datetime | None) -> str:
    return (value or datetime.now(timezone.utc)).isoformat()


def _identity(model: Any) -> dict[str, Any]:
    identity: dict[str, Any] = {}
    if model.user_id:
        identity["userId"] = model.user_id
    if model.anonymous_id:
        identity["anonymousId"] = model.anonymous_id
    return identity


class SegmentAdapter:
    provider_id = "segment"

    def __init__(
        self,
        write_key: str | None = None,
        *,
        settings: AppSettings | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._write_key = write_key or ""
        self._http = HttpTransport(
            self.provider_id,
            base_url=API_URL,
            settings=settings,
            auth=(self._write_key, ""),
            timeout=TIMEOUT_SECONDS,
            transport=transport,
            error_message=lambda body: dig(body, "error", "message") or dig(body, "message"),
        )

    def _send(self, path: str, payload: dict[str, Any], event: str | None) -> Ok[TrackReceipt] | Failure:
        if not self._write_key:
            return not_configured(PROVIDER_NAME, "write_key")
        result = self._http.request("POST", path, json=payload)
        if isinstance(result, Failure):
            return result
        return Ok(TrackReceipt(accepted=True, event=event))

    def track_event(self, event: TrackEvent | Bag) -> Ok[TrackReceipt] | Failure:
        parsed = parse_request(TrackEvent, event)
        if isinstance(parsed, Failure):
            return parsed
        req = parsed.value

        properties: dict[str, Any] = {"category": req.category, "label": req.label, "value": req.value}
        properties.update(req.properties)
        payload = {
            **_identity(req),
            "event": req.event,
            "properties": properties,
            "timestamp": _timestamp(req.timestamp),
        }
        return self._send("/track", payload, req.event)

    def identify_user(self, identify: IdentifyUser | Bag) -> Ok[TrackReceipt] | Failure:
        parsed = parse_request(IdentifyUser, identify)
        if isinstance(parsed, Failure):
            return parsed
        req = parsed.value
        payload = {**_identity(req), "traits": req.traits, "timestamp": _timestamp(req.timestamp)}
        return self._send("/identify", payload, None)

    def track_page_view(self, page: PageView | Bag) -> Ok[TrackReceipt] | Failure:
        parsed = parse_request(PageView, page)
        if isinstance(parsed, Failure):
            return parsed
        req = parsed.value

        properties: dict[str, Any] = {"url": req.url or "", "path": req.path or "", "referrer": req.referrer or ""}
        properties.update(req.properties)
        payload = {
            **_identity(req),
            "name": req.name or "",
            "properties": properties,
            "timestamp": _timestamp(req.timestamp),
        }
        return self._send("/page", payload, req.name)

    def track_conversion(self, conversion: Conversion | Bag) -> Ok[TrackReceipt] | Failure:
        parsed = parse_request(Conversion, conversion)
        if isinstance(parsed, Failure):
            return parsed
        req = parsed.value

        revenue = float(req.revenue) if req.revenue is not None else 0.0
        properties: dict[str, Any] = {"revenue": revenue, "currency": req.currency}
        properties.update(req.properties)
        return self.track_event(
            TrackEvent(
                event=req.event,
                user_id=req.user_id,
                anonymous_id=req.anonymous_id,
                timestamp=req.timestamp,
                value=revenue,
                properties=properties,
            )
        )

    def get_analytics_data(self, query: Bag) -> Ok[dict[str, Any]] | Failure:
        return not_supported("get_analytics_data", PROVIDER_NAME)

    def get_realtime_data(self, query: Bag | None = None) -> Ok[dict[str, Any]] | Failure:
        return not_supported("get_realtime_data", PROVIDER_NAME)

    def create_funnel(self, funnel: Bag) -> Ok[dict[str, Any]] | Failure:
        return not_supported("create_funnel", PROVIDER_NAME)

    def get_funnel_analytics(self, funnel_id: str, query: Bag | None = None) -> Ok[dict[str, Any]] | Failure:
        return not_supported("get_funnel_analytics", PROVIDER_NAME)

    def create_cohort(self, cohort: Bag) -> Ok[dict[str, Any]] | Failure:
        return not_supported("create_cohort", PROVIDER_NAME)

    def get_cohort_analytics(self, cohort_id: str, query: Bag | None = None) -> Ok[dict[str, Any]] | Failure:
        return not_supported("get_cohort_analytics", PROVIDER_NAME)

    def export_data(self, params: Bag) -> Ok[dict[str, Any]] | Failure:
        return not_supported("export_data", PROVIDER_NAME)

    def get_capabilities(self) -> dict[str, bool]:
        return {
            "event_tracking": True,
            "user_identification": True,
            "page_tracking": True,
            "conversions": True,
            "realtime": False,
            "reporting": False,
            "funnels": False,
            "cohorts": False,
            "export": False,
        }

    def test_connection(self) -> Ok[ConnectionStatus] | Failure:
        # La Tracking API no tiene endpoint de cuenta: se envía un evento de prueba.
        event = TrackEvent(
            event="connection_test",
            anonymous_id=f"anon_{uuid.uuid4().hex}",
            properties={"test": True},
        )
        result = self.track_event(event)
        if isinstance(result, Failure):
            return result
        return Ok(ConnectionStatus(provider=self.provider_id))
