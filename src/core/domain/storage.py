"""Modelos de almacenamiento de ficheros.

`file_id` es la ruta relativa a la raíz del proveedor (`receipts/2025/a.pdf`);
nunca una ruta absoluta.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import Field

from core.domain.base import DomainModel


class UploadOptions(DomainModel):
    folder: str = ""
    filename: str | None = Field(default=None, description="Nombre destino; por defecto, el del fichero origen.")
    public: bool = True
    metadata: dict[str, Any] = Field(default_factory=dict)


class StoredFile(DomainModel):
    file_id: str
    url: str
    size: int = Field(default=0, ge=0)
    mime_type: str | None = None
    public: bool = True


class FileMetadata(DomainModel):
    file_id: str
    size: int = Field(default=0, ge=0)
    mime_type: str | None = None
    modified: datetime
    metadata: dict[str, Any] = Field(default_factory=dict)


class FileQuery(DomainModel):
    limit: int = Field(default=100, ge=1, le=1000)
    offset: int = Field(default=0, ge=0)
    mime_type: str | None = None


class StorageUsage(DomainModel):
    used: int = Field(default=0, ge=0, description="Bytes ocupados.")
    total: int | None = Field(default=None, description="Capacidad total; None si no hay límite conocido.")
    file_count: int = Field(default=0, ge=0)
