"""Contrato de almacenamiento de ficheros (local, S3, Drive, ...)."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol, runtime_checkable

from core.domain.base import Bag
from core.domain.common import ConnectionStatus
from core.domain.storage import FileMetadata, FileQuery, StorageUsage, StoredFile, UploadOptions
from core.result import Failure, Ok


@runtime_checkable
class StorageAdapter(Protocol):
    provider_id: str

    def upload(self, file_path: str | Path, options: UploadOptions | Bag | None = None) -> Ok[StoredFile] | Failure:
        ...

    def download(self, file_id: str, destination: str | Path | None = None) -> Ok[Path] | Failure:
        """Sin `destination` devuelve la ruta local del propio fichero si el proveedor la tiene."""
        ...

    def delete(self, file_id: str) -> Ok[bool] | Failure:
        ...

    def get_url(self, file_id: str, *, expiration: int | None = None, download: bool = False) -> Ok[str] | Failure:
        ...

    def exists(self, file_id: str) -> bool:
        ...

    def get_metadata(self, file_id: str) -> Ok[FileMetadata] | Failure:
        ...

    def list_files(self, folder: str = "", query: FileQuery | Bag | None = None) -> Ok[list[str]] | Failure:
        ...

    def create_folder(self, folder_path: str) -> Ok[bool] | Failure:
        ...

    def get_usage(self) -> Ok[StorageUsage] | Failure:
        ...

    def test_connection(self) -> Ok[ConnectionStatus] | Failure:
        ...
