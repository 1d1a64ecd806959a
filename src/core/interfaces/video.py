"""Contrato de videoconferencia."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from core.domain.base import Bag
from core.domain.common import ConnectionStatus
from core.domain.meetings import Meeting, MeetingQuery, MeetingRequest, MeetingUpdate, Participant, Recording
from core.result import Failure, Ok


@runtime_checkable
class VideoAdapter(Protocol):
    provider_id: str

    def create_meeting(self, meeting: MeetingRequest | Bag) -> Ok[Meeting] | Failure:
        ...

    def update_meeting(self, meeting_id: str, changes: MeetingUpdate | Bag) -> Ok[Meeting] | Failure:
        ...

    def delete_meeting(self, meeting_id: str) -> Ok[bool] | Failure:
        ...

    def get_meeting(self, meeting_id: str) -> Ok[Meeting] | Failure:
        ...

    def list_meetings(self, query: MeetingQuery | Bag | None = None) -> Ok[list[Meeting]] | Failure:
        ...

    def get_participants(self, meeting_id: str) -> Ok[list[Participant]] | Failure:
        ...

    def get_recordings(self, meeting_id: str) -> Ok[list[Recording]] | Failure:
        ...

    def test_connection(self) -> Ok[ConnectionStatus] | Failure:
        ...
