"""Calendario builtin sobre el store local.

Es la fuente de verdad cuando no hay proveedor externo: `sync_events` no
tiene nada que sincronizar y devuelve un resumen a cero. Los asistentes se
guardan como lista de emails en la propia fila del evento.
"""

from __future__ import annotations

from datetime import datetime, time, timezone

from sqlalchemy import inspect, select
from sqlalchemy.orm import Session

from adapters.local_store import CalendarEventRecord, LocalStore
from core.domain.base import Bag, parse_request
from core.domain.common import ConnectionStatus
from core.domain.meetings import CalendarEvent, EventQuery, EventUpdate, SyncSummary
from core.result import Failure, FailureKind, Ok, fail


def _naive_utc(value: datetime | None) -> datetime | None:
    """Las columnas son naive: los datetime con zona se guardan en UTC."""

    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _unique_emails(emails: list[str]) -> list[str]:
    seen: dict[str, str] = {}
    for email in emails:
        seen.setdefault(email.lower(), email)
    return list(seen.values())


def _to_event(record: CalendarEventRecord) -> CalendarEvent:
    return CalendarEvent(
        id=str(record.id),
        title=record.title,
        description=record.description,
        start=record.start_datetime,
        end=record.end_datetime,
        location=record.location,
        all_day=record.all_day,
        created_by=record.created_by,
        attendees=list(record.attendees or []),
    )


def _not_found(event_id: str) -> Failure:
    return fail(FailureKind.NOT_FOUND, f"Calendar event {event_id} not found")


class BuiltinCalendarAdapter:
    provider_id = "builtin"

    def __init__(self, store: LocalStore) -> None:
        self._store = store

    def _load(self, session: Session, event_id: str) -> CalendarEventRecord | None:
        if not str(event_id).isdigit():
            return None
        return session.get(CalendarEventRecord, int(event_id))

    def create_event(self, event: CalendarEvent | Bag) -> Ok[CalendarEvent] | Failure:
        parsed = parse_request(CalendarEvent, event)
        if isinstance(parsed, Failure):
            return parsed
        req = parsed.value

        def work(session: Session) -> CalendarEvent:
            record = CalendarEventRecord(
                title=req.title,
                description=req.description,
                start_datetime=_naive_utc(req.start),
                end_datetime=_naive_utc(req.end),
                location=req.location,
                all_day=req.all_day,
                created_by=req.created_by,
                attendees=_unique_emails(req.attendees),
            )
            session.add(record)
            session.flush()
            return _to_event(record)

        return self._store.run("calendar.create_event", work)

    def update_event(self, event_id: str, changes: EventUpdate | Bag) -> Ok[CalendarEvent] | Failure:
        parsed = parse_request(EventUpdate, changes)
        if isinstance(parsed, Failure):
            return parsed
        values = parsed.value.model_dump(exclude_none=True)
        if not values:
            return fail(FailureKind.INVALID_REQUEST, "No data to update", code="no_data")

        def work(session: Session) -> CalendarEvent | Failure:
            record = self._load(session, event_id)
            if record is None:
                return _not_found(event_id)
            columns = {"start": "start_datetime", "end": "end_datetime"}
            for field, value in values.items():
                if isinstance(value, datetime):
                    value = _naive_utc(value)
                setattr(record, columns.get(field, field), value)
            session.flush()
            return _to_event(record)

        return self._store.run("calendar.update_event", work)

    def delete_event(self, event_id: str) -> Ok[bool] | Failure:
        def work(session: Session) -> bool | Failure:
            record = self._load(session, event_id)
            if record is None:
                return _not_found(event_id)
            session.delete(record)
            return True

        return self._store.run("calendar.delete_event", work)

    def get_event(self, event_id: str) -> Ok[CalendarEvent] | Failure:
        def work(session: Session) -> CalendarEvent | Failure:
            record = self._load(session, event_id)
            if record is None:
                return _not_found(event_id)
            return _to_event(record)

        return self._store.run("calendar.get_event", work)

    def list_events(self, query: EventQuery | Bag | None = None) -> Ok[list[CalendarEvent]] | Failure:
        parsed = parse_request(EventQuery, query)
        if isinstance(parsed, Failure):
            return parsed
        q = parsed.value

        def work(session: Session) -> list[CalendarEvent]:
            stmt = select(CalendarEventRecord)
            if q.start_date is not None:
                stmt = stmt.where(CalendarEventRecord.start_datetime >= datetime.combine(q.start_date, time.min))
            if q.end_date is not None:
                stmt = stmt.where(CalendarEventRecord.start_datetime <= datetime.combine(q.end_date, time.max))
            if q.created_by is not None:
                stmt = stmt.where(CalendarEventRecord.created_by == q.created_by)
            stmt = stmt.order_by(CalendarEventRecord.start_datetime.asc(), CalendarEventRecord.id.asc())
            stmt = stmt.limit(q.limit).offset(q.offset)
            return [_to_event(record) for record in session.scalars(stmt)]

        return self._store.run("calendar.list_events", work)

    def add_attendee(self, event_id: str, email: str) -> Ok[bool] | Failure:
        def work(session: Session) -> bool | Failure:
            record = self._load(session, event_id)
            if record is None:
                return _not_found(event_id)
            current = list(record.attendees or [])
            if email.lower() not in {item.lower() for item in current}:
                # Nueva lista: SQLAlchemy no detecta mutaciones in-place del JSON.
                record.attendees = current + [email]
            return True

        return self._store.run("calendar.add_attendee", work)

    def remove_attendee(self, event_id: str, email: str) -> Ok[bool] | Failure:
        def work(session: Session) -> bool | Failure:
            record = self._load(session, event_id)
            if record is None:
                return _not_found(event_id)
            record.attendees = [item for item in record.attendees or [] if item.lower() != email.lower()]
            return True

        return self._store.run("calendar.remove_attendee", work)

    def sync_events(self) -> Ok[SyncSummary] | Failure:
        return Ok(SyncSummary())

    def test_connection(self) -> Ok[ConnectionStatus] | Failure:
        def work(session: Session) -> ConnectionStatus | Failure:
            inspector = inspect(session.get_bind())
            if not inspector.has_table(CalendarEventRecord.__tablename__):
                return fail(FailureKind.DB_ERROR, "Calendar table does not exist", code="table_missing")
            return ConnectionStatus(provider=self.provider_id, account="local")

        return self._store.run("calendar.test_connection", work)
