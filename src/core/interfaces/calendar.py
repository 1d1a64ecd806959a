"""Contrato de calendario."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from core.domain.base import Bag
from core.domain.meetings import CalendarEvent, EventQuery, EventUpdate, SyncSummary
from core.result import Failure, Ok


@runtime_checkable
class CalendarAdapter(Protocol):
    provider_id: str

    def create_event(self, event: CalendarEvent | Bag) -> Ok[CalendarEvent] | Failure:
        ...

    def update_event(self, event_id: str, changes: EventUpdate | Bag) -> Ok[CalendarEvent] | Failure:
        ...

    def delete_event(self, event_id: str) -> Ok[bool] | Failure:
        ...

    def get_event(self, event_id: str) -> Ok[CalendarEvent] | Failure:
        ...

    def list_events(self, query: EventQuery | Bag | None = None) -> Ok[list[CalendarEvent]] | Failure:
        ...

    def add_attendee(self, event_id: str, email: str) -> Ok[bool] | Failure:
        ...

    def remove_attendee(self, event_id: str, email: str) -> Ok[bool] | Failure:
        ...

    def sync_events(self) -> Ok[SyncSummary] | Failure:
        ...
