"""Modelos compartidos entre capacidades."""

from __future__ import annotations

from typing import Any

from pydantic import Field

from core.domain.base import DomainModel


class ConnectionStatus(DomainModel):
    """Resultado de `test_connection` para cualquier proveedor."""

    provider: str = Field(..., min_length=1, description="Identificador del proveedor (p.ej. 'twilio').")
    connected: bool = Field(default=True)
    account: str | None = Field(default=None, description="Cuenta/usuario reportado por el proveedor.")
    details: dict[str, Any] = Field(default_factory=dict)
