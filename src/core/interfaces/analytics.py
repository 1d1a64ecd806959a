"""Contrato de analítica.

Los proveedores de solo-ingesta (Segment) devuelven `not_supported` en las
operaciones de consulta.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from core.domain.analytics import Conversion, IdentifyUser, PageView, TrackEvent, TrackReceipt
from core.domain.base import Bag
from core.domain.common import ConnectionStatus
from core.result import Failure, Ok


@runtime_checkable
class AnalyticsAdapter(Protocol):
    provider_id: str

    def track_event(self, event: TrackEvent | Bag) -> Ok[TrackReceipt] | Failure:
        ...

    def identify_user(self, identify: IdentifyUser | Bag) -> Ok[TrackReceipt] | Failure:
        ...

    def track_page_view(self, page: PageView | Bag) -> Ok[TrackReceipt] | Failure:
        ...

    def track_conversion(self, conversion: Conversion | Bag) -> Ok[TrackReceipt] | Failure:
        ...

    def get_analytics_data(self, query: Bag) -> Ok[dict[str, Any]] | Failure:
        ...

    def get_realtime_data(self, query: Bag | None = None) -> Ok[dict[str, Any]] | Failure:
        ...

    def create_funnel(self, funnel: Bag) -> Ok[dict[str, Any]] | Failure:
        ...

    def get_funnel_analytics(self, funnel_id: str, query: Bag | None = None) -> Ok[dict[str, Any]] | Failure:
        ...

    def create_cohort(self, cohort: Bag) -> Ok[dict[str, Any]] | Failure:
        ...

    def get_cohort_analytics(self, cohort_id: str, query: Bag | None = None) -> Ok[dict[str, Any]] | Failure:
        ...

    def export_data(self, params: Bag) -> Ok[dict[str, Any]] | Failure:
        ...

    def test_connection(self) -> Ok[ConnectionStatus] | Failure:
        ...
