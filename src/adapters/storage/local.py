"""Adaptador de almacenamiento builtin: disco local + metadatos en el store.

El contenido se copia bajo `settings.storage_path`; el store local guarda una
fila por fichero (carpeta, tipo MIME, visibilidad, metadatos libres).

Por qué se sanea cada segmento:
- `file_id` y `folder` llegan de fuera. Un `..`, una ruta absoluta o un
  enlace que salga de la raíz se rechaza como `invalid_request` antes de
  tocar el disco.

Los errores de disco (`OSError`) son `db_error` con `code="io_error"`: es el
mismo "falló el store local" que un error de SQLAlchemy.
"""

from __future__ import annotations

import mimetypes
import re
import shutil
from datetime import datetime, timezone
from pathlib import Path
from urllib.parse import quote

from sqlalchemy import delete, inspect, select
from sqlalchemy.orm import Session

from adapters.local_store import LocalStore, StoredFileRecord
from core.config import AppSettings
from core.domain.base import Bag, parse_request
from core.domain.common import ConnectionStatus
from core.domain.storage import FileMetadata, FileQuery, StorageUsage, StoredFile, UploadOptions
from core.logging import get_logger
from core.result import Failure, FailureKind, Ok, fail

_log = get_logger(__name__)

_UNSAFE = re.compile(r"[^A-Za-z0-9._-]+")
WRITE_TEST_FILE = ".write-test"


def sanitize_name(name: str) -> str:
    """Nombre de fichero seguro: espacios y símbolos pasan a `-`, sin puntos iniciales."""

    return _UNSAFE.sub("-", name.strip()).strip("-").lstrip(".")


def sanitize_folder(folder: str) -> str | None:
    """Carpeta relativa saneada (`a/b`); None si intenta salir de la raíz."""

    parts = [part for part in folder.replace("\\", "/").split("/") if part not in ("", ".")]
    if ".." in parts:
        return None
    cleaned = [sanitize_name(part) for part in parts]
    if not all(cleaned):
        return None
    return "/".join(cleaned)


def _unique_path(directory: Path, filename: str) -> Path:
    target = directory / filename
    counter = 1
    stem, suffix = Path(filename).stem, Path(filename).suffix
    while target.exists():
        target = directory / f"{stem}-{counter}{suffix}"
        counter += 1
    return target


def _io_failure(operation: str, exc: OSError) -> Failure:
    _log.error("storage.io_error", operation=operation, error=str(exc))
    return fail(
        FailureKind.DB_ERROR,
        f"Local storage failed during {operation}: {exc.__class__.__name__}",
        code="io_error",
        details={"operation": operation},
    )


def _visible(path: Path, root: Path) -> bool:
    return path.is_file() and not any(part.startswith(".") for part in path.relative_to(root).parts)


class LocalStorageAdapter:
    provider_id = "local"

    def __init__(
        self,
        store: LocalStore,
        root: str | Path | None = None,
        *,
        base_url: str | None = None,
        settings: AppSettings | None = None,
    ) -> None:
        self._settings = settings or AppSettings()
        self._store = store
        self._root = Path(root or self._settings.storage_path).expanduser().resolve()
        self._base_url = (base_url or self._settings.storage_url or "").rstrip("/")

    @property
    def root(self) -> Path:
        return self._root

    def _resolve(self, file_id: str) -> Ok[Path] | Failure:
        candidate = (self._root / file_id).resolve()
        if candidate == self._root or self._root not in candidate.parents:
            return fail(FailureKind.INVALID_REQUEST, f"File id is outside the storage root: {file_id}", code="invalid_path")
        return Ok(candidate)

    def _existing(self, file_id: str) -> Ok[Path] | Failure:
        resolved = self._resolve(file_id)
        if isinstance(resolved, Failure):
            return resolved
        if not resolved.value.is_file():
            return fail(FailureKind.NOT_FOUND, f"File not found: {file_id}", code="file_not_found")
        return resolved

    def _file_id(self, path: Path) -> str:
        return path.relative_to(self._root).as_posix()

    def _url(self, file_id: str, path: Path) -> str:
        if self._base_url:
            return f"{self._base_url}/{quote(file_id)}"
        return path.as_uri()

    def upload(self, file_path: str | Path, options: UploadOptions | Bag | None = None) -> Ok[StoredFile] | Failure:
        parsed = parse_request(UploadOptions, options)
        if isinstance(parsed, Failure):
            return parsed
        opts = parsed.value

        source = Path(file_path)
        if not source.is_file():
            return fail(FailureKind.NOT_FOUND, f"File not found: {source}", code="file_not_found")
        folder = sanitize_folder(opts.folder)
        if folder is None:
            return fail(FailureKind.INVALID_REQUEST, f"Invalid folder: {opts.folder}", code="invalid_path")
        filename = sanitize_name(opts.filename or source.name)
        if not filename:
            return fail(FailureKind.INVALID_REQUEST, "A file name is required", code="invalid_filename")

        directory = self._root / folder if folder else self._root
        try:
            directory.mkdir(parents=True, exist_ok=True)
            target = _unique_path(directory, filename)
            shutil.copyfile(source, target)
            size = target.stat().st_size
        except OSError as exc:
            return _io_failure("upload", exc)

        file_id = self._file_id(target)
        mime_type = mimetypes.guess_type(target.name)[0]

        def work(session: Session) -> StoredFile:
            record = session.scalar(select(StoredFileRecord).where(StoredFileRecord.file_id == file_id))
            if record is None:
                record = StoredFileRecord(file_id=file_id)
                session.add(record)
            record.folder = folder
            record.filename = target.name
            record.size = size
            record.mime_type = mime_type
            record.public = opts.public
            record.extra = dict(opts.metadata)
            return StoredFile(
                file_id=file_id,
                url=self._url(file_id, target),
                size=size,
                mime_type=mime_type,
                public=opts.public,
            )

        result = self._store.run("storage.upload", work)
        if isinstance(result, Failure):
            # Sin fila de metadatos el fichero quedaría huérfano.
            target.unlink(missing_ok=True)
            return result
        _log.info("storage.file_uploaded", file_id=file_id, size=size)
        return result

    def download(self, file_id: str, destination: str | Path | None = None) -> Ok[Path] | Failure:
        existing = self._existing(file_id)
        if isinstance(existing, Failure):
            return existing
        if destination is None:
            return existing

        target = Path(destination)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(existing.value, target)
        except OSError as exc:
            return _io_failure("download", exc)
        return Ok(target)

    def delete(self, file_id: str) -> Ok[bool] | Failure:
        existing = self._existing(file_id)
        if isinstance(existing, Failure):
            return existing
        try:
            existing.value.unlink()
        except OSError as exc:
            return _io_failure("delete", exc)

        relative = self._file_id(existing.value)

        def work(session: Session) -> bool:
            session.execute(delete(StoredFileRecord).where(StoredFileRecord.file_id == relative))
            return True

        result = self._store.run("storage.delete", work)
        if isinstance(result, Failure):
            return result
        _log.info("storage.file_deleted", file_id=relative)
        return Ok(True)

    def get_url(self, file_id: str, *, expiration: int | None = None, download: bool = False) -> Ok[str] | Failure:
        # Los ficheros locales no caducan: `expiration` no aplica.
        existing = self._existing(file_id)
        if isinstance(existing, Failure):
            return existing
        url = self._url(self._file_id(existing.value), existing.value)
        if download and self._base_url:
            url = f"{url}?download=1"
        return Ok(url)

    def exists(self, file_id: str) -> bool:
        return isinstance(self._existing(file_id), Ok)

    def get_metadata(self, file_id: str) -> Ok[FileMetadata] | Failure:
        existing = self._existing(file_id)
        if isinstance(existing, Failure):
            return existing
        path = existing.value
        relative = self._file_id(path)
        try:
            stat = path.stat()
        except OSError as exc:
            return _io_failure("get_metadata", exc)

        def work(session: Session) -> FileMetadata:
            # Ficheros copiados a mano en la raíz no tienen fila: solo datos de disco.
            record = session.scalar(select(StoredFileRecord).where(StoredFileRecord.file_id == relative))
            return FileMetadata(
                file_id=relative,
                size=stat.st_size,
                mime_type=(record.mime_type if record is not None else None) or mimetypes.guess_type(path.name)[0],
                modified=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
                metadata=dict(record.extra or {}) if record is not None else {},
            )

        return self._store.run("storage.get_metadata", work)

    def list_files(self, folder: str = "", query: FileQuery | Bag | None = None) -> Ok[list[str]] | Failure:
        parsed = parse_request(FileQuery, query)
        if isinstance(parsed, Failure):
            return parsed
        q = parsed.value
        cleaned = sanitize_folder(folder)
        if cleaned is None:
            return fail(FailureKind.INVALID_REQUEST, f"Invalid folder: {folder}", code="invalid_path")

        directory = self._root / cleaned if cleaned else self._root
        if not directory.is_dir():
            return Ok([])
        files: list[str] = []
        for path in sorted(directory.rglob("*")):
            if not _visible(path, self._root):
                continue
            if q.mime_type and mimetypes.guess_type(path.name)[0] != q.mime_type:
                continue
            files.append(self._file_id(path))
        return Ok(files[q.offset : q.offset + q.limit])

    def create_folder(self, folder_path: str) -> Ok[bool] | Failure:
        cleaned = sanitize_folder(folder_path)
        if not cleaned:
            return fail(FailureKind.INVALID_REQUEST, f"Invalid folder: {folder_path}", code="invalid_path")
        try:
            (self._root / cleaned).mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            return _io_failure("create_folder", exc)
        return Ok(True)

    def get_usage(self) -> Ok[StorageUsage] | Failure:
        if not self._root.is_dir():
            return Ok(StorageUsage())
        used = 0
        count = 0
        try:
            for path in self._root.rglob("*"):
                if _visible(path, self._root):
                    used += path.stat().st_size
                    count += 1
        except OSError as exc:
            return _io_failure("get_usage", exc)
        # El límite depende del disco del servidor: sin total.
        return Ok(StorageUsage(used=used, total=None, file_count=count))

    def test_connection(self) -> Ok[ConnectionStatus] | Failure:
        marker = self._root / WRITE_TEST_FILE
        try:
            self._root.mkdir(parents=True, exist_ok=True)
            marker.write_text("ok", encoding="utf-8")
            marker.unlink()
        except OSError as exc:
            return _io_failure("test_connection", exc)

        def work(session: Session) -> ConnectionStatus | Failure:
            if not inspect(session.get_bind()).has_table(StoredFileRecord.__tablename__):
                return fail(FailureKind.NOT_CONFIGURED, "Storage metadata table is missing; run init-store")
            return ConnectionStatus(provider=self.provider_id, details={"root": str(self._root), "store": "local"})

        return self._store.run("storage.test_connection", work)
