"""Modelos de videoconferencia y calendario."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from pydantic import Field

from core.domain.base import DomainModel


class MeetingRequest(DomainModel):
    title: str = Field(..., min_length=1, alias="topic")
    start_time: datetime | None = None
    duration_minutes: int = Field(default=60, ge=1, le=24 * 60, alias="duration")
    timezone: str = "UTC"
    agenda: str | None = None
    password: str | None = None
    host_name: str | None = Field(default=None, description="Nombre mostrado en tokens/URLs del anfitrión.")
    moderator: bool = True
    settings: dict[str, Any] = Field(default_factory=dict, description="Ajustes específicos del proveedor.")


class MeetingUpdate(DomainModel):
    """Actualización parcial: solo se envían los campos informados."""

    title: str | None = Field(default=None, alias="topic")
    start_time: datetime | None = None
    duration_minutes: int | None = Field(default=None, ge=1, le=24 * 60, alias="duration")
    timezone: str | None = None
    agenda: str | None = None
    password: str | None = None


class Meeting(DomainModel):
    id: str
    provider: str
    title: str
    join_url: str
    host_url: str | None = None
    start_time: datetime | None = None
    duration_minutes: int | None = None
    timezone: str | None = None
    agenda: str | None = None
    password: str | None = None
    status: str | None = None


class MeetingQuery(DomainModel):
    limit: int = Field(default=50, ge=1, le=300)
    offset: int = Field(default=0, ge=0)


class Participant(DomainModel):
    id: str | None = None
    name: str | None = None
    email: str | None = None
    join_time: datetime | None = None
    leave_time: datetime | None = None
    duration_seconds: int | None = None


class Recording(DomainModel):
    id: str
    file_type: str | None = None
    download_url: str | None = None
    play_url: str | None = None
    recording_start: datetime | None = None
    recording_end: datetime | None = None
    file_size: int | None = None


class CalendarEvent(DomainModel):
    id: str | None = None
    title: str = Field(..., min_length=1)
    description: str | None = None
    start: datetime = Field(..., alias="start_datetime")
    end: datetime | None = Field(default=None, alias="end_datetime")
    location: str | None = None
    all_day: bool = False
    created_by: str | None = None
    attendees: list[str] = Field(default_factory=list)


class EventUpdate(DomainModel):
    title: str | None = None
    description: str | None = None
    start: datetime | None = Field(default=None, alias="start_datetime")
    end: datetime | None = Field(default=None, alias="end_datetime")
    location: str | None = None
    all_day: bool | None = None


class EventQuery(DomainModel):
    start_date: date | None = None
    end_date: date | None = None
    created_by: str | None = None
    limit: int = Field(default=100, ge=1, le=1000)
    offset: int = Field(default=0, ge=0)


class SyncSummary(DomainModel):
    imported: int = 0
    exported: int = 0
    updated: int = 0
