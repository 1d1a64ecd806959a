"""Contrato de investigación de capacidad de donación (wealth screening).

Cada operación remota informa su coste (`cost`) porque el proveedor cobra
por consulta.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from core.domain.base import Bag
from core.domain.common import ConnectionStatus
from core.domain.research import (
    BusinessAffiliations,
    CapacityRating,
    PhilanthropicHistory,
    RealEstateHoldings,
    ResearchMatch,
    Screening,
    ScreeningRequest,
    UsageStats,
    WealthProfile,
)
from core.result import Failure, Ok


@runtime_checkable
class WealthResearchAdapter(Protocol):
    provider_id: str

    def screen_individual(self, request: ScreeningRequest | Bag) -> Ok[Screening] | Failure:
        ...

    def get_profile(self, request: ScreeningRequest | Bag) -> Ok[WealthProfile] | Failure:
        ...

    def get_capacity_rating(self, request: ScreeningRequest | Bag) -> Ok[CapacityRating] | Failure:
        ...

    def get_philanthropic_history(self, request: ScreeningRequest | Bag) -> Ok[PhilanthropicHistory] | Failure:
        ...

    def get_real_estate_holdings(self, request: ScreeningRequest | Bag) -> Ok[RealEstateHoldings] | Failure:
        ...

    def get_business_affiliations(self, request: ScreeningRequest | Bag) -> Ok[BusinessAffiliations] | Failure:
        ...

    def search_by_email(self, email: str) -> Ok[ResearchMatch] | Failure:
        ...

    def search_by_name(
        self, first_name: str, last_name: str, *, city: str = "", state: str = "", zip: str = ""
    ) -> Ok[ResearchMatch] | Failure:
        ...

    def get_usage_stats(self) -> Ok[UsageStats] | Failure:
        ...

    def calculate_cost(self, operation: str) -> float:
        ...

    def test_connection(self) -> Ok[ConnectionStatus] | Failure:
        ...
