"""Store local (SQLAlchemy) para los adaptadores builtin.

Una tabla por tipo de entidad, columnas simples, sin joins ni transacciones
que crucen entidades. Los fallos del store se devuelven como `db_error`.
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Callable, Iterator, TypeVar

from sqlalchemy import JSON, Boolean, Date, DateTime, Engine, ForeignKey, Integer, String, Text, create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker
from sqlalchemy.pool import StaticPool

from core.config import AppSettings
from core.logging import get_logger
from core.result import Failure, FailureKind, Ok, fail

T = TypeVar("T")

_log = get_logger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Declarative base de las tablas locales."""


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )


class CalendarEventRecord(TimestampMixin, Base):
    __tablename__ = "ns_calendar_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    start_datetime: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    end_datetime: Mapped[datetime | None] = mapped_column(DateTime)
    location: Mapped[str | None] = mapped_column(String(255))
    all_day: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_by: Mapped[str | None] = mapped_column(String(100))
    attendees: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)


class FormRecord(TimestampMixin, Base):
    __tablename__ = "ns_forms"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    fields: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list, nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="active", nullable=False)
    settings: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)


class FormResponseRecord(Base):
    __tablename__ = "ns_form_responses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    form_id: Mapped[int] = mapped_column(ForeignKey("ns_forms.id", ondelete="CASCADE"), index=True)
    answers: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    ip_address: Mapped[str | None] = mapped_column(String(45))
    submitted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)


class ZellePaymentRecord(Base):
    __tablename__ = "ns_zelle_payments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    payment_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    amount_cents: Mapped[int] = mapped_column("amount", Integer, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="usd", nullable=False)
    donor_email: Mapped[str | None] = mapped_column(String(255))
    donor_name: Mapped[str | None] = mapped_column(String(255))
    donor_phone: Mapped[str | None] = mapped_column(String(50))
    description: Mapped[str | None] = mapped_column(Text)
    reference_id: Mapped[str | None] = mapped_column(String(255))
    received_date: Mapped[date | None] = mapped_column(Date)
    status: Mapped[str] = mapped_column(String(20), default="succeeded", nullable=False, index=True)
    # `metadata` está reservado por la declarative base.
    extra: Mapped[dict[str, Any]] = mapped_column("metadata", JSON, default=dict, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)


class JitsiMeetingRecord(Base):
    __tablename__ = "ns_jitsi_meetings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    meeting_id: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    room_name: Mapped[str] = mapped_column(String(255), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    agenda: Mapped[str | None] = mapped_column(Text)
    start_time: Mapped[datetime | None] = mapped_column(DateTime)
    duration: Mapped[int] = mapped_column(Integer, default=60, nullable=False)
    timezone: Mapped[str] = mapped_column(String(64), default="UTC", nullable=False)
    password: Mapped[str | None] = mapped_column(String(255))
    domain: Mapped[str] = mapped_column(String(255), nullable=False)
    meeting_url: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)


class StoredFileRecord(TimestampMixin, Base):
    """Metadatos de un fichero del almacenamiento local; el contenido vive en disco."""

    __tablename__ = "ns_storage_files"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    file_id: Mapped[str] = mapped_column(String(512), unique=True, nullable=False)
    folder: Mapped[str] = mapped_column(String(255), default="", nullable=False, index=True)
    filename: Mapped[str] = mapped_column(String(255), nullable=False)
    size: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    mime_type: Mapped[str | None] = mapped_column(String(127))
    public: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    extra: Mapped[dict[str, Any]] = mapped_column("metadata", JSON, default=dict, nullable=False)


class TreasuryAccountRecord(TimestampMixin, Base):
    __tablename__ = "ns_treasury_accounts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    account_type: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    account_code: Mapped[str] = mapped_column(String(50), default="", nullable=False)
    description: Mapped[str] = mapped_column(Text, default="", nullable=False)
    parent_id: Mapped[int | None] = mapped_column(ForeignKey("ns_treasury_accounts.id", ondelete="SET NULL"))
    balance_cents: Mapped[int] = mapped_column("balance", Integer, default=0, nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


class TreasuryEntryRecord(Base):
    """Una línea de asiento; las líneas con el mismo `batch_id` forman el asiento."""

    __tablename__ = "ns_treasury_entries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    line_id: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    batch_id: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    account_id: Mapped[int] = mapped_column(ForeignKey("ns_treasury_accounts.id"), nullable=False, index=True)
    entry_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    debit_cents: Mapped[int] = mapped_column("debit", Integer, default=0, nullable=False)
    credit_cents: Mapped[int] = mapped_column("credit", Integer, default=0, nullable=False)
    memo: Mapped[str] = mapped_column(Text, default="", nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)


def build_engine(database_url: str) -> Engine:
    """Engine SQLAlchemy; para SQLite en fichero crea el directorio si falta."""

    url = make_url(database_url)
    if url.get_backend_name() == "sqlite":
        if url.database in (None, "", ":memory:"):
            return create_engine(
                database_url,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        Path(url.database).expanduser().parent.mkdir(parents=True, exist_ok=True)
    return create_engine(database_url, pool_pre_ping=True)


class LocalStore:
    """Puerto de almacenamiento inyectado en los adaptadores builtin."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self._sessions = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)

    @classmethod
    def from_settings(cls, settings: AppSettings | None = None) -> "LocalStore":
        settings = settings or AppSettings()
        return cls(build_engine(settings.database_url))

    @classmethod
    def in_memory(cls) -> "LocalStore":
        store = cls(build_engine("sqlite://"))
        store.create_all()
        return store

    def create_all(self) -> None:
        Base.metadata.create_all(self.engine)

    @contextmanager
    def session(self) -> Iterator[Session]:
        session = self._sessions()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def run(self, operation: str, work: Callable[[Session], T | Failure]) -> Ok[T] | Failure:
        """Ejecuta `work` en una sesión y devuelve su valor como `Result`.

        `work` puede devolver un `Failure` (p.ej. not_found); se propaga tal cual
        y la transacción se confirma igualmente (no hubo escrituras).
        """

        try:
            with self.session() as session:
                value = work(session)
        except SQLAlchemyError as exc:
            _log.error("store.error", operation=operation, error=str(exc))
            return fail(
                FailureKind.DB_ERROR,
                f"Local store failed during {operation}: {exc.__class__.__name__}",
                details={"operation": operation},
            )
        if isinstance(value, Failure):
            return value
        return Ok(value)
