"""Adaptador de vídeo: Jitsi Meet (sin API; salas registradas en local).

- La sala es `slug(título)-<8 hex>`; el ID expuesto es `jitsi_<sala>`.
- Con `app_id` + `app_secret` (Jitsi self-hosted / JaaS) la URL lleva un JWT
  HS256 de moderador; sin ellos, la sala es pública.
- Participantes y grabaciones no existen sin API: `not_supported`.
"""

from __future__ import annotations

import hashlib
import re
import time
from typing import Any

import httpx
import jwt
from sqlalchemy import select
from sqlalchemy.orm import Session

from adapters.embed import render_meeting_iframe
from adapters.http_client import HttpTransport
from adapters.local_store import JitsiMeetingRecord, LocalStore
from core.config import AppSettings
from core.domain.base import Bag, parse_request
from core.domain.common import ConnectionStatus
from core.domain.forms import EmbedOptions
from core.domain.meetings import Meeting, MeetingQuery, MeetingRequest, MeetingUpdate, Participant, Recording
from core.result import Failure, FailureKind, Ok, fail, not_supported

DEFAULT_DOMAIN = "meet.jit.si"
ID_PREFIX = "jitsi_"
TOKEN_GRACE_SECONDS = 3600


def slugify(text: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")
    return slug or "meeting"


def room_name_for(title: str) -> str:
    suffix = hashlib.md5(f"{title}{time.time_ns()}".encode("utf-8")).hexdigest()[:8]
    return f"{slugify(title)}-{suffix}"


def room_from_id(meeting_id: str) -> str:
    return meeting_id[len(ID_PREFIX) :] if meeting_id.startswith(ID_PREFIX) else meeting_id


class JitsiAdapter:
    provider_id = "jitsi"

    def __init__(
        self,
        store: LocalStore,
        *,
        domain: str | None = None,
        app_id: str | None = None,
        app_secret: str | None = None,
        settings: AppSettings | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._store = store
        self._domain = (domain or DEFAULT_DOMAIN).strip().rstrip("/")
        self._app_id = app_id or ""
        self._app_secret = app_secret or ""
        self._settings = settings or AppSettings()
        self._http = HttpTransport(
            self.provider_id,
            base_url=f"https://{self._domain}",
            settings=self._settings,
            transport=transport,
        )

    def room_token(self, room: str, *, host_name: str | None = None, duration_minutes: int = 60, moderator: bool = True) -> str:
        issued = int(time.time())
        payload: dict[str, Any] = {
            "aud": "jitsi",
            "iss": self._app_id,
            "sub": self._domain,
            "room": room,
            "context": {"user": {"name": host_name or "Host"}},
            "moderator": moderator,
            "iat": issued,
            "exp": issued + duration_minutes * 60 + TOKEN_GRACE_SECONDS,
        }
        return jwt.encode(payload, self._app_secret, algorithm="HS256")

    def _meeting_url(self, room: str, req: MeetingRequest) -> str:
        url = f"https://{self._domain}/{room}"
        if self._app_id and self._app_secret:
            token = self.room_token(
                room,
                host_name=req.host_name,
                duration_minutes=req.duration_minutes,
                moderator=req.moderator,
            )
            url = f"{url}?jwt={token}"
        return url

    def _to_meeting(self, record: JitsiMeetingRecord) -> Meeting:
        return Meeting(
            id=record.meeting_id,
            provider=self.provider_id,
            title=record.title,
            join_url=record.meeting_url,
            host_url=record.meeting_url,
            start_time=record.start_time,
            duration_minutes=record.duration,
            timezone=record.timezone,
            agenda=record.agenda,
            password=record.password,
            status="active",
        )

    def _find(self, session: Session, meeting_id: str) -> JitsiMeetingRecord | None:
        return session.scalar(select(JitsiMeetingRecord).where(JitsiMeetingRecord.room_name == room_from_id(meeting_id)))

    def create_meeting(self, meeting: MeetingRequest | Bag) -> Ok[Meeting] | Failure:
        parsed = parse_request(MeetingRequest, meeting)
        if isinstance(parsed, Failure):
            return parsed
        req = parsed.value
        room = room_name_for(req.title)

        def work(session: Session) -> Meeting:
            record = JitsiMeetingRecord(
                meeting_id=f"{ID_PREFIX}{room}",
                room_name=room,
                title=req.title,
                agenda=req.agenda,
                start_time=req.start_time,
                duration=req.duration_minutes,
                timezone=req.timezone,
                password=req.password,
                domain=self._domain,
                meeting_url=self._meeting_url(room, req),
            )
            session.add(record)
            session.flush()
            return self._to_meeting(record)

        return self._store.run("jitsi.create_meeting", work)

    def update_meeting(self, meeting_id: str, changes: MeetingUpdate | Bag) -> Ok[Meeting] | Failure:
        parsed = parse_request(MeetingUpdate, changes)
        if isinstance(parsed, Failure):
            return parsed
        update = parsed.value

        def work(session: Session) -> Meeting | Failure:
            record = self._find(session, meeting_id)
            if record is None:
                return fail(FailureKind.NOT_FOUND, f"Meeting {meeting_id} not found")
            if update.title is not None:
                record.title = update.title
            if update.start_time is not None:
                record.start_time = update.start_time
            if update.duration_minutes is not None:
                record.duration = update.duration_minutes
            if update.timezone is not None:
                record.timezone = update.timezone
            if update.agenda is not None:
                record.agenda = update.agenda
            if update.password is not None:
                record.password = update.password
            session.flush()
            return self._to_meeting(record)

        return self._store.run("jitsi.update_meeting", work)

    def delete_meeting(self, meeting_id: str) -> Ok[bool] | Failure:
        def work(session: Session) -> bool | Failure:
            record = self._find(session, meeting_id)
            if record is None:
                return fail(FailureKind.NOT_FOUND, f"Meeting {meeting_id} not found")
            session.delete(record)
            return True

        return self._store.run("jitsi.delete_meeting", work)

    def get_meeting(self, meeting_id: str) -> Ok[Meeting] | Failure:
        def work(session: Session) -> Meeting | Failure:
            record = self._find(session, meeting_id)
            if record is None:
                return fail(FailureKind.NOT_FOUND, f"Meeting {meeting_id} not found")
            return self._to_meeting(record)

        return self._store.run("jitsi.get_meeting", work)

    def list_meetings(self, query: MeetingQuery | Bag | None = None) -> Ok[list[Meeting]] | Failure:
        parsed = parse_request(MeetingQuery, query)
        if isinstance(parsed, Failure):
            return parsed
        q = parsed.value

        def work(session: Session) -> list[Meeting]:
            stmt = (
                select(JitsiMeetingRecord)
                .order_by(JitsiMeetingRecord.created_at.desc(), JitsiMeetingRecord.id.desc())
                .limit(q.limit)
                .offset(q.offset)
            )
            return [self._to_meeting(record) for record in session.scalars(stmt)]

        return self._store.run("jitsi.list_meetings", work)

    def get_participants(self, meeting_id: str) -> Ok[list[Participant]] | Failure:
        return not_supported("get_participants", "Jitsi Meet")

    def get_recordings(self, meeting_id: str) -> Ok[list[Recording]] | Failure:
        return not_supported("get_recordings", "Jitsi Meet")

    def get_embed_code(self, meeting_id: str, options: EmbedOptions | Bag | None = None) -> Ok[str] | Failure:
        parsed = parse_request(EmbedOptions, options)
        if isinstance(parsed, Failure):
            return parsed
        opts = parsed.value
        meeting = self.get_meeting(meeting_id)
        if isinstance(meeting, Failure):
            return meeting
        return Ok(
            render_meeting_iframe(
                f"https://{self._domain}/{room_from_id(meeting_id)}",
                title=meeting.value.title,
                width=opts.width,
                height=opts.height,
            )
        )

    def test_connection(self) -> Ok[ConnectionStatus] | Failure:
        result = self._http.request("HEAD", "/", expect="response")
        if isinstance(result, Failure):
            return result
        return Ok(ConnectionStatus(provider=self.provider_id, account=self._domain))
