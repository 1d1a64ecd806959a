"""Modelos de analítica (eventos, páginas, conversiones)."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import Field, model_validator

from core.domain.base import DomainModel


class _Identified(DomainModel):
    user_id: str | None = None
    anonymous_id: str | None = None
    timestamp: datetime | None = None

    @model_validator(mode="after")
    def _needs_identity(self) -> "_Identified":
        if not self.user_id and not self.anonymous_id:
            raise ValueError("user_id or anonymous_id is required")
        return self


class TrackEvent(_Identified):
    event: str = Field(..., min_length=1, alias="event_name")
    category: str | None = None
    label: str | None = None
    value: float | None = None
    properties: dict[str, Any] = Field(default_factory=dict)


class IdentifyUser(_Identified):
    traits: dict[str, Any] = Field(default_factory=dict)


class PageView(_Identified):
    name: str | None = Field(default=None, alias="page_title")
    url: str | None = Field(default=None, alias="page_url")
    path: str | None = Field(default=None, alias="page_path")
    referrer: str | None = None
    properties: dict[str, Any] = Field(default_factory=dict)


class Conversion(_Identified):
    event: str = Field(default="Conversion", alias="conversion_type")
    revenue: Decimal | None = Field(default=None, alias="value")
    currency: str = "USD"
    properties: dict[str, Any] = Field(default_factory=dict)


class TrackReceipt(DomainModel):
    accepted: bool = True
    event: str | None = None
