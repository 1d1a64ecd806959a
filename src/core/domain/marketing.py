"""Modelos de email marketing (audiencias y campañas)."""

from __future__ import annotations

from pydantic import Field

from core.domain.base import DomainModel


class AudienceRequest(DomainModel):
    name: str = Field(..., min_length=1, alias="segment_name")
    company: str | None = None
    address: str = ""
    city: str = ""
    state: str = ""
    zip: str = ""
    country: str = "US"
    from_name: str | None = None
    from_email: str | None = None
    permission_reminder: str = "You are receiving this email because you subscribed to our mailing list."


class Audience(DomainModel):
    id: str
    name: str | None = None
    member_count: int | None = None


class AudienceContact(DomainModel):
    email: str = Field(..., min_length=3)
    first_name: str = ""
    last_name: str = ""


class AudienceUpdate(DomainModel):
    created: int = 0
    updated: int = 0
    errors: int = 0


class CampaignRequest(DomainModel):
    audience_id: str = Field(..., min_length=1, alias="platform_list_id")
    subject: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1, alias="campaign_name")
    content_html: str = Field(..., alias="content")
    preview_text: str = ""
    from_name: str | None = None
    reply_to: str | None = None


class MarketingCampaign(DomainModel):
    id: str
    title: str | None = None
    status: str | None = None


class CampaignStats(DomainModel):
    emails_sent: int = 0
    opens: int = 0
    unique_opens: int = 0
    clicks: int = 0
    unique_clicks: int = 0
    unsubscribed: int = 0
    bounces: int = 0
    open_rate: float = 0.0
    click_rate: float = 0.0
