"""Modelos de formularios (builtin y proveedores externos)."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import Field

from core.domain.base import DomainModel

FIELD_TYPES = ("text", "email", "textarea", "select", "radio", "checkbox", "number", "date", "phone")


class FormField(DomainModel):
    name: str = Field(..., min_length=1)
    label: str = Field(..., min_length=1)
    type: str = Field(default="text", pattern="^(" + "|".join(FIELD_TYPES) + ")$")
    required: bool = False
    options: list[str] = Field(default_factory=list)
    placeholder: str | None = None


class FormDefinition(DomainModel):
    title: str = Field(..., min_length=1)
    description: str | None = None
    fields: list[FormField] = Field(default_factory=list)
    status: str = "active"
    settings: dict[str, Any] = Field(default_factory=dict)


class FormUpdate(DomainModel):
    title: str | None = None
    description: str | None = None
    fields: list[FormField] | None = None
    status: str | None = None
    settings: dict[str, Any] | None = None


class Form(DomainModel):
    id: str
    title: str
    description: str | None = None
    fields: list[FormField] = Field(default_factory=list)
    status: str = "active"
    url: str | None = None
    created_at: datetime | None = None


class FormResponse(DomainModel):
    id: str
    form_id: str
    answers: dict[str, Any] = Field(default_factory=dict)
    submitted_at: datetime | None = None
    ip_address: str | None = None


class ResponseQuery(DomainModel):
    limit: int = Field(default=50, ge=1, le=1000)
    offset: int = Field(default=0, ge=0)
    submitted_after: datetime | None = None


class FormStats(DomainModel):
    form_id: str
    responses: int = 0
    views: int | None = None
    last_response_at: datetime | None = None


class EmbedOptions(DomainModel):
    width: str = "100%"
    height: int = Field(default=600, ge=100, le=10_000)
    title: str = "Form"
