"""Contrato de verificación de antecedentes (FCRA)."""

from __future__ import annotations

from typing import Any, Mapping, Protocol, runtime_checkable

from core.domain.base import Bag
from core.domain.common import ConnectionStatus
from core.domain.payments import WebhookEvent
from core.domain.research import (
    AdverseAction,
    BackgroundCheck,
    Candidate,
    CandidateRequest,
    CheckCancellation,
    CheckPackage,
    FcraDisclosure,
    Invitation,
)
from core.result import Failure, Ok


@runtime_checkable
class BackgroundCheckAdapter(Protocol):
    provider_id: str

    def create_candidate(self, candidate: CandidateRequest | Bag) -> Ok[Candidate] | Failure:
        ...

    def create_invitation(
        self, candidate_id: str, package: str, *, custom_message: str | None = None, return_url: str | None = None
    ) -> Ok[Invitation] | Failure:
        ...

    def create_check(
        self, candidate_id: str, package: str, *, components: list[str] | None = None
    ) -> Ok[BackgroundCheck] | Failure:
        ...

    def get_check_status(self, check_id: str) -> Ok[BackgroundCheck] | Failure:
        ...

    def get_report(self, check_id: str) -> Ok[dict[str, Any]] | Failure:
        ...

    def get_packages(self) -> list[CheckPackage]:
        ...

    def cancel_check(self, check_id: str, reason: str = "") -> Ok[CheckCancellation] | Failure:
        ...

    def validate_webhook(self, payload: bytes | str, signature: str | None) -> bool:
        ...

    def process_webhook(self, payload: Mapping[str, Any]) -> WebhookEvent:
        ...

    def get_fcra_disclosure(self, check_type: str = "employment") -> FcraDisclosure:
        ...

    def initiate_adverse_action(self, check_id: str, *, pre_adverse: bool = True) -> Ok[AdverseAction] | Failure:
        ...

    def calculate_cost(self, package: str) -> float:
        ...

    def test_connection(self) -> Ok[ConnectionStatus] | Failure:
        ...
