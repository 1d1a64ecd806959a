from __future__ import annotations

import pytest

from adapters.storage.local import LocalStorageAdapter, sanitize_folder, sanitize_name
from core.interfaces import StorageAdapter
from core.result import Failure, FailureKind, Ok


@pytest.fixture
def storage(settings, store, tmp_path) -> LocalStorageAdapter:
    return LocalStorageAdapter(store, tmp_path / "files", settings=settings)


@pytest.fixture
def receipt(tmp_path):
    source = tmp_path / "Gala Receipt.pdf"
    source.write_bytes(b"%PDF-1.4 receipt")
    return source


@pytest.mark.parametrize(
    ("name", "expected"),
    [("Gala Receipt.pdf", "Gala-Receipt.pdf"), (".htaccess", "htaccess"), ("año 2025!.txt", "a-o-2025-.txt")],
)
def test_sanitize_name(name, expected) -> None:
    assert sanitize_name(name) == expected


def test_sanitize_folder() -> None:
    assert sanitize_folder("receipts/2025") == "receipts/2025"
    assert sanitize_folder("/board minutes/") == "board-minutes"
    assert sanitize_folder("") == ""
    assert sanitize_folder("../etc") is None
    assert sanitize_folder("a/../../b") is None


def test_adapter_satisfies_protocol(storage) -> None:
    assert isinstance(storage, StorageAdapter)


def test_upload_copies_file_and_records_metadata(storage, receipt) -> None:
    stored = storage.upload(receipt, {"folder": "receipts", "metadata": {"donor": "Ada"}}).value

    assert stored.file_id == "receipts/Gala-Receipt.pdf"
    assert stored.size == len(b"%PDF-1.4 receipt")
    assert stored.mime_type == "application/pdf"
    assert stored.url.startswith("file://")
    assert (storage.root / "receipts" / "Gala-Receipt.pdf").read_bytes() == b"%PDF-1.4 receipt"

    meta = storage.get_metadata(stored.file_id).value
    assert meta.metadata == {"donor": "Ada"}
    assert meta.mime_type == "application/pdf"
    assert meta.modified.tzinfo is not None


def test_upload_never_overwrites(storage, receipt) -> None:
    first = storage.upload(receipt).value
    second = storage.upload(receipt).value

    assert first.file_id == "Gala-Receipt.pdf"
    assert second.file_id == "Gala-Receipt-1.pdf"


def test_upload_missing_source(storage, tmp_path) -> None:
    result = storage.upload(tmp_path / "nope.pdf")

    assert isinstance(result, Failure)
    assert result.kind is FailureKind.NOT_FOUND


def test_upload_rejects_folder_outside_root(storage, receipt) -> None:
    result = storage.upload(receipt, {"folder": "../../outside"})

    assert result.kind is FailureKind.INVALID_REQUEST
    assert result.code == "invalid_path"


@pytest.mark.parametrize("file_id", ["../secrets.txt", "/etc/passwd", "a/../../b.txt"])
def test_file_ids_cannot_escape_root(storage, file_id) -> None:
    assert storage.exists(file_id) is False
    assert storage.get_url(file_id).code == "invalid_path"
    assert storage.delete(file_id).kind is FailureKind.INVALID_REQUEST
    assert storage.download(file_id).kind is FailureKind.INVALID_REQUEST


def test_download_in_place_and_to_destination(storage, receipt, tmp_path) -> None:
    stored = storage.upload(receipt).value

    in_place = storage.download(stored.file_id).value
    copied = storage.download(stored.file_id, tmp_path / "out" / "copy.pdf").value

    assert in_place == storage.root / "Gala-Receipt.pdf"
    assert copied.read_bytes() == b"%PDF-1.4 receipt"


def test_delete_removes_file_and_metadata(storage, receipt, store) -> None:
    stored = storage.upload(receipt, {"metadata": {"k": "v"}}).value

    assert storage.delete(stored.file_id).value is True
    assert storage.exists(stored.file_id) is False
    assert storage.delete(stored.file_id).kind is FailureKind.NOT_FOUND

    # Mismo nombre otra vez: sin metadatos heredados.
    again = storage.upload(receipt).value
    assert again.file_id == stored.file_id
    assert storage.get_metadata(again.file_id).value.metadata == {}


def test_get_url_with_public_base(settings, store, tmp_path, receipt) -> None:
    storage = LocalStorageAdapter(store, tmp_path / "files", base_url="https://example.org/files/", settings=settings)
    storage.upload(receipt, {"folder": "2025", "filename": "gala receipt.pdf"})

    assert storage.get_url("2025/gala-receipt.pdf").value == "https://example.org/files/2025/gala-receipt.pdf"
    assert storage.get_url("2025/gala-receipt.pdf", download=True).value.endswith("?download=1")
    assert storage.get_url("2025/missing.pdf").kind is FailureKind.NOT_FOUND


def test_list_files_filters_and_pages(storage, tmp_path) -> None:
    for name in ("a.txt", "b.txt", "c.pdf"):
        source = tmp_path / name
        source.write_text(name, encoding="utf-8")
        storage.upload(source, {"folder": "docs"})
    (storage.root / ".hidden").write_text("x", encoding="utf-8")

    assert storage.list_files().value == ["docs/a.txt", "docs/b.txt", "docs/c.pdf"]
    assert storage.list_files("docs", {"mime_type": "text/plain"}).value == ["docs/a.txt", "docs/b.txt"]
    assert storage.list_files("docs", {"limit": 1, "offset": 1}).value == ["docs/b.txt"]
    assert storage.list_files("empty").value == []
    assert storage.list_files("../up").kind is FailureKind.INVALID_REQUEST


def test_create_folder_and_usage(storage, receipt) -> None:
    assert storage.get_usage().value.file_count == 0
    assert storage.create_folder("minutes/2025").value is True
    assert (storage.root / "minutes" / "2025").is_dir()
    assert storage.create_folder("..").kind is FailureKind.INVALID_REQUEST

    storage.upload(receipt)
    usage = storage.get_usage().value

    assert usage.file_count == 1
    assert usage.used == len(b"%PDF-1.4 receipt")
    assert usage.total is None


def test_connection_checks_write_access_and_table(storage) -> None:
    result = storage.test_connection()

    assert isinstance(result, Ok)
    assert result.value.provider == "local"
    assert list(storage.root.iterdir()) == []
