"""Adaptador de vídeo: Zoom (API v2, Server-to-Server OAuth).

El token se obtiene con `grant_type=account_credentials` (Basic
client_id:client_secret) y dura una hora; no hay refresh_token, así que
"refrescar" es pedir uno nuevo.
"""

from __future__ import annotations

import base64
from datetime import datetime, timezone
from typing import Any, Mapping

import httpx

from adapters.http_client import HttpTransport, dig
from adapters.oauth import OAuthSession, token_from_result
from core.config import AppSettings
from core.domain.base import Bag, parse_datetime, parse_request
from core.domain.common import ConnectionStatus
from core.domain.meetings import Meeting, MeetingQuery, MeetingRequest, MeetingUpdate, Participant, Recording
from core.interfaces.token_cache import MemoryTokenCache, OAuthToken, TokenCache
from core.result import Failure, Ok, not_configured

TOKEN_URL = "https://zoom.us/oauth/token"

SCHEDULED_MEETING = 2
INSTANT_MEETING = 1

DEFAULT_MEETING_SETTINGS: dict[str, Any] = {
    "host_video": True,
    "participant_video": True,
    "join_before_host": False,
    "mute_upon_entry": True,
    "waiting_room": True,
}


def zoom_time(value: datetime) -> str:
    """Zoom acepta UTC con `Z` o hora local sin offset (junto a `timezone`)."""

    if value.tzinfo is None:
        return value.strftime("%Y-%m-%dT%H:%M:%S")
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class ZoomAdapter:
    provider_id = "zoom"
    _base_url = "https://api.zoom.us/v2"

    def __init__(
        self,
        account_id: str | None = None,
        client_id: str | None = None,
        client_secret: str | None = None,
        *,
        token_cache: TokenCache | None = None,
        settings: AppSettings | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._settings = settings or AppSettings()
        self._account_id = account_id or ""
        self._client_id = client_id or ""
        self._client_secret = client_secret or ""
        self._http = HttpTransport(
            self.provider_id,
            base_url=self._base_url,
            settings=self._settings,
            transport=transport,
            error_message=lambda body: dig(body, "message") or dig(body, "reason"),
            error_code=lambda body: dig(body, "code"),
        )
        self._oauth = OAuthSession(
            self._http,
            cache=token_cache or MemoryTokenCache(),
            cache_key=f"zoom:{self._account_id}:{self._client_id}",
            refresher=self._fetch_token,
            margin_seconds=self._settings.token_refresh_margin_seconds,
        )

    def _missing_credentials(self) -> Failure | None:
        missing = [
            name
            for name, value in (
                ("account_id", self._account_id),
                ("client_id", self._client_id),
                ("client_secret", self._client_secret),
            )
            if not value
        ]
        return not_configured("Zoom", *missing) if missing else None

    def _fetch_token(self, previous: OAuthToken | None) -> Ok[OAuthToken] | Failure:
        basic = base64.b64encode(f"{self._client_id}:{self._client_secret}".encode("utf-8")).decode("ascii")
        result = self._http.request(
            "POST",
            TOKEN_URL,
            params={"grant_type": "account_credentials", "account_id": self._account_id},
            headers={"Authorization": f"Basic {basic}"},
        )
        return token_from_result(result)

    def _api(self, method: str, path: str, **kwargs: Any) -> Ok[Any] | Failure:
        missing = self._missing_credentials()
        if missing is not None:
            return missing
        return self._oauth.request(method, path, **kwargs)

    def _to_meeting(self, body: Mapping[str, Any]) -> Meeting:
        return Meeting(
            id=str(body.get("id")),
            provider=self.provider_id,
            title=body.get("topic") or "",
            join_url=body.get("join_url") or "",
            host_url=body.get("start_url"),
            start_time=parse_datetime(body.get("start_time")),
            duration_minutes=body.get("duration"),
            timezone=body.get("timezone"),
            agenda=body.get("agenda"),
            password=body.get("password"),
            status=body.get("status"),
        )

    def create_meeting(self, meeting: MeetingRequest | Bag) -> Ok[Meeting] | Failure:
        parsed = parse_request(MeetingRequest, meeting)
        if isinstance(parsed, Failure):
            return parsed
        req = parsed.value

        payload: dict[str, Any] = {
            "topic": req.title,
            "type": SCHEDULED_MEETING if req.start_time else INSTANT_MEETING,
            "duration": req.duration_minutes,
            "timezone": req.timezone,
            "settings": {**DEFAULT_MEETING_SETTINGS, **req.settings},
        }
        if req.start_time:
            payload["start_time"] = zoom_time(req.start_time)
        if req.agenda:
            payload["agenda"] = req.agenda
        if req.password:
            payload["password"] = req.password

        result = self._api("POST", "/users/me/meetings", json=payload)
        if isinstance(result, Failure):
            return result
        return Ok(self._to_meeting(result.value))

    def update_meeting(self, meeting_id: str, changes: MeetingUpdate | Bag) -> Ok[Meeting] | Failure:
        parsed = parse_request(MeetingUpdate, changes)
        if isinstance(parsed, Failure):
            return parsed
        update = parsed.value

        payload: dict[str, Any] = {}
        if update.title is not None:
            payload["topic"] = update.title
        if update.start_time is not None:
            payload["start_time"] = zoom_time(update.start_time)
        if update.duration_minutes is not None:
            payload["duration"] = update.duration_minutes
        if update.timezone is not None:
            payload["timezone"] = update.timezone
        if update.agenda is not None:
            payload["agenda"] = update.agenda
        if update.password is not None:
            payload["password"] = update.password

        result = self._api("PATCH", f"/meetings/{meeting_id}", json=payload)
        if isinstance(result, Failure):
            return result
        # PATCH responde 204 sin cuerpo.
        return self.get_meeting(meeting_id)

    def delete_meeting(self, meeting_id: str) -> Ok[bool] | Failure:
        result = self._api("DELETE", f"/meetings/{meeting_id}")
        if isinstance(result, Failure):
            return result
        return Ok(True)

    def get_meeting(self, meeting_id: str) -> Ok[Meeting] | Failure:
        result = self._api("GET", f"/meetings/{meeting_id}")
        if isinstance(result, Failure):
            return result
        return Ok(self._to_meeting(result.value))

    def list_meetings(self, query: MeetingQuery | Bag | None = None) -> Ok[list[Meeting]] | Failure:
        parsed = parse_request(MeetingQuery, query)
        if isinstance(parsed, Failure):
            return parsed
        q = parsed.value

        page_size = min(q.limit + q.offset, 300)
        result = self._api("GET", "/users/me/meetings", params={"type": "scheduled", "page_size": page_size})
        if isinstance(result, Failure):
            return result
        rows = (result.value.get("meetings") or [])[q.offset : q.offset + q.limit]
        return Ok([self._to_meeting(row) for row in rows])

    def get_participants(self, meeting_id: str) -> Ok[list[Participant]] | Failure:
        result = self._api("GET", f"/report/meetings/{meeting_id}/participants", params={"page_size": 300})
        if isinstance(result, Failure):
            return result
        return Ok(
            [
                Participant(
                    id=row.get("user_id") or row.get("id"),
                    name=row.get("name"),
                    email=row.get("user_email") or None,
                    join_time=parse_datetime(row.get("join_time")),
                    leave_time=parse_datetime(row.get("leave_time")),
                    duration_seconds=row.get("duration"),
                )
                for row in result.value.get("participants") or []
            ]
        )

    def get_recordings(self, meeting_id: str) -> Ok[list[Recording]] | Failure:
        result = self._api("GET", f"/meetings/{meeting_id}/recordings")
        if isinstance(result, Failure):
            return result
        return Ok(
            [
                Recording(
                    id=str(row.get("id")),
                    file_type=row.get("file_type"),
                    download_url=row.get("download_url"),
                    play_url=row.get("play_url"),
                    recording_start=parse_datetime(row.get("recording_start")),
                    recording_end=parse_datetime(row.get("recording_end")),
                    file_size=row.get("file_size"),
                )
                for row in result.value.get("recording_files") or []
            ]
        )

    def test_connection(self) -> Ok[ConnectionStatus] | Failure:
        result = self._api("GET", "/users/me")
        if isinstance(result, Failure):
            return result
        body = result.value
        return Ok(
            ConnectionStatus(
                provider=self.provider_id,
                account=body.get("email"),
                details={"account_id": body.get("account_id"), "type": body.get("type")},
            )
        )
