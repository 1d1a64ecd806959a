"""Contrato de plataformas de email marketing."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from core.domain.base import Bag
from core.domain.common import ConnectionStatus
from core.domain.marketing import (
    Audience,
    AudienceContact,
    AudienceRequest,
    AudienceUpdate,
    CampaignRequest,
    CampaignStats,
    MarketingCampaign,
)
from core.domain.messaging import EmailMessage, EmailReceipt
from core.result import Failure, Ok


@runtime_checkable
class MarketingAdapter(Protocol):
    provider_id: str

    def create_audience(self, audience: AudienceRequest | Bag) -> Ok[Audience] | Failure:
        ...

    def add_contacts_to_audience(
        self, audience_id: str, contacts: list[AudienceContact | Bag]
    ) -> Ok[AudienceUpdate] | Failure:
        ...

    def remove_contact_from_audience(self, audience_id: str, email: str) -> Ok[bool] | Failure:
        ...

    def create_campaign(self, campaign: CampaignRequest | Bag) -> Ok[MarketingCampaign] | Failure:
        ...

    def send_campaign(self, campaign_id: str) -> Ok[bool] | Failure:
        ...

    def get_campaign_stats(self, campaign_id: str) -> Ok[CampaignStats] | Failure:
        ...

    def send_transactional(self, message: EmailMessage | Bag) -> Ok[EmailReceipt] | Failure:
        ...

    def get_unsubscribed(self, audience_id: str, limit: int = 100) -> Ok[list[str]] | Failure:
        ...

    def test_connection(self) -> Ok[ConnectionStatus] | Failure:
        ...
