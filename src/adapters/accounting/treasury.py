"""Adaptador contable builtin: libro de tesorería en el store local.

Es el proveedor contable por defecto. Guarda el plan de cuentas y los asientos
(una fila por línea, agrupadas por `batch_id`) y mantiene el saldo de cada
cuenta en su sentido natural:

- activo, gasto y otras: débito suma, crédito resta;
- pasivo, patrimonio e ingreso: crédito suma, débito resta.

Por qué también es un `AccountingExporter`:
- El contable externo (CPA) sigue recibiendo IIF o CSV. Los `export_*` y
  `export_for_cpa` delegan en los exportadores QuickBooks/Wave.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Iterable

from sqlalchemy import inspect, select
from sqlalchemy.orm import Session

from adapters.accounting.journal import CASH_ACCOUNT, FEES_ACCOUNT, parse_all, transactions_to_lines
from adapters.accounting.quickbooks_iif import QuickBooksIifExporter
from adapters.accounting.wave_csv import WaveCsvExporter
from adapters.local_store import LocalStore, TreasuryAccountRecord, TreasuryEntryRecord
from adapters.payment.stripe import to_cents
from core.domain.accounting import (
    Account,
    AccountBalance,
    AccountRequest,
    AccountType,
    DonationTransaction,
    ExportFile,
    JournalLine,
    LedgerAccount,
)
from core.domain.base import Bag, parse_request
from core.domain.common import ConnectionStatus
from core.logging import get_logger
from core.result import BatchResult, Failure, FailureKind, Ok, fail

_log = get_logger(__name__)

CREDIT_NORMAL = {AccountType.LIABILITY, AccountType.EQUITY, AccountType.REVENUE}
REVENUE_ACCOUNT = "Donation Revenue"

EXPORTERS = {
    "iif": QuickBooksIifExporter,
    "csv": WaveCsvExporter,
}


def _balance_delta(account_type: str, debit_cents: int, credit_cents: int) -> int:
    if AccountType(account_type) in CREDIT_NORMAL:
        return credit_cents - debit_cents
    return debit_cents - credit_cents


def _to_account(record: TreasuryAccountRecord) -> LedgerAccount:
    return LedgerAccount(
        id=record.id,
        account_name=record.name,
        account_type=record.account_type,
        account_number=record.account_code,
        description=record.description,
        parent_id=record.parent_id,
        balance=Decimal(record.balance_cents) / 100,
        active=record.active,
    )


def unbalanced_batches(lines: Iterable[JournalLine]) -> list[str]:
    """Lotes cuyo débito total no iguala al crédito total."""

    totals: dict[str, Decimal] = {}
    for line in lines:
        totals[line.batch_key] = totals.get(line.batch_key, Decimal("0")) + line.signed_amount
    return [batch for batch, total in totals.items() if total != 0]


class TreasuryAdapter:
    provider_id = "treasury"
    revenue_account = REVENUE_ACCOUNT

    def __init__(self, store: LocalStore, *, export_format: str = "iif", currency: str = "USD") -> None:
        self._store = store
        self._currency = currency.upper()
        self._exporter = EXPORTERS.get(export_format, QuickBooksIifExporter)()
        self.format_name = self._exporter.format_name
        self.file_extension = self._exporter.file_extension
        self.mime_type = self._exporter.mime_type

    # Libro

    def create_account(self, account: AccountRequest | Bag) -> Ok[LedgerAccount] | Failure:
        parsed = parse_request(AccountRequest, account)
        if isinstance(parsed, Failure):
            return parsed
        req = parsed.value

        def work(session: Session) -> LedgerAccount | Failure:
            duplicate = session.scalar(select(TreasuryAccountRecord).where(TreasuryAccountRecord.name == req.account_name))
            if duplicate is not None:
                return fail(
                    FailureKind.INVALID_REQUEST,
                    f"Account {req.account_name!r} already exists",
                    code="duplicate_account",
                    details={"account_id": duplicate.id},
                )
            if req.parent_id is not None and session.get(TreasuryAccountRecord, req.parent_id) is None:
                return fail(FailureKind.NOT_FOUND, f"Parent account {req.parent_id} not found", code="account_not_found")
            record = TreasuryAccountRecord(
                name=req.account_name,
                account_type=req.account_type.value,
                account_code=req.account_number,
                description=req.description,
                parent_id=req.parent_id,
                balance_cents=0,
                active=True,
            )
            session.add(record)
            session.flush()
            return _to_account(record)

        return self._store.run("treasury.create_account", work)

    def get_chart_of_accounts(
        self, account_type: AccountType | str | None = None, *, active_only: bool = True
    ) -> Ok[list[LedgerAccount]] | Failure:
        wanted = None
        if account_type is not None:
            try:
                wanted = AccountType(str(account_type).lower()).value
            except ValueError:
                return fail(FailureKind.INVALID_REQUEST, f"Unknown account type: {account_type}", code="invalid_account_type")

        def work(session: Session) -> list[LedgerAccount]:
            stmt = select(TreasuryAccountRecord)
            if active_only:
                stmt = stmt.where(TreasuryAccountRecord.active.is_(True))
            if wanted is not None:
                stmt = stmt.where(TreasuryAccountRecord.account_type == wanted)
            stmt = stmt.order_by(TreasuryAccountRecord.account_code, TreasuryAccountRecord.name)
            return [_to_account(record) for record in session.scalars(stmt)]

        return self._store.run("treasury.get_chart_of_accounts", work)

    def get_account_balance(self, account_id: int | str) -> Ok[AccountBalance] | Failure:
        if not str(account_id).isdigit():
            return fail(FailureKind.INVALID_REQUEST, f"Invalid account id: {account_id}", code="invalid_account_id")

        def work(session: Session) -> AccountBalance | Failure:
            record = session.get(TreasuryAccountRecord, int(account_id))
            if record is None:
                return fail(FailureKind.NOT_FOUND, f"Account {account_id} not found", code="account_not_found")
            return AccountBalance(
                account_id=record.id,
                account_name=record.name,
                balance=Decimal(record.balance_cents) / 100,
                currency=self._currency,
            )

        return self._store.run("treasury.get_account_balance", work)

    def post_journal_entries(self, entries: list[JournalLine | Bag]) -> Ok[list[JournalLine]] | Failure:
        """Registra asientos contra cuentas existentes; cada lote debe cuadrar."""

        parsed = parse_all(JournalLine, entries)
        if isinstance(parsed, Failure):
            return parsed
        return self._post("treasury.post_journal_entries", parsed.value, auto_create={})

    def sync_transaction(self, transaction: DonationTransaction | Bag) -> Ok[list[JournalLine]] | Failure:
        """Asienta una donación (caja / ingreso / comisión). Las cuentas base se crean si faltan."""

        parsed = parse_request(DonationTransaction, transaction)
        if isinstance(parsed, Failure):
            return parsed
        lines = transactions_to_lines([parsed.value], revenue_account=self.revenue_account)
        auto_create = {
            CASH_ACCOUNT: AccountType.ASSET,
            self.revenue_account: AccountType.REVENUE,
            FEES_ACCOUNT: AccountType.EXPENSE,
        }
        return self._post("treasury.sync_transaction", lines, auto_create=auto_create)

    def sync_transactions_bulk(self, transactions: list[DonationTransaction | Bag]) -> BatchResult[list[JournalLine]]:
        batch: BatchResult[list[JournalLine]] = BatchResult()
        for transaction in transactions:
            batch.record(self.sync_transaction(transaction))
        return batch

    def _post(
        self, operation: str, lines: list[JournalLine], *, auto_create: dict[str, AccountType]
    ) -> Ok[list[JournalLine]] | Failure:
        if not lines:
            return fail(FailureKind.INVALID_REQUEST, "No journal lines to post", code="empty_entry")
        unbalanced = unbalanced_batches(lines)
        if unbalanced:
            return fail(
                FailureKind.INVALID_REQUEST,
                f"Debits and credits differ in {', '.join(unbalanced)}",
                code="unbalanced_entry",
                details={"batches": unbalanced},
            )
        batch_ids = sorted({line.batch_key for line in lines})
        names = list(dict.fromkeys(line.account_name for line in lines))

        def work(session: Session) -> list[JournalLine] | Failure:
            # Todas las comprobaciones antes de escribir: `run` confirma aunque se devuelva un Failure.
            posted = session.scalar(
                select(TreasuryEntryRecord.batch_id).where(TreasuryEntryRecord.batch_id.in_(batch_ids)).limit(1)
            )
            if posted is not None:
                return fail(
                    FailureKind.INVALID_REQUEST,
                    f"Entry {posted} is already posted",
                    code="duplicate_entry",
                    details={"batch_id": posted},
                )
            accounts = {
                record.name: record
                for record in session.scalars(select(TreasuryAccountRecord).where(TreasuryAccountRecord.name.in_(names)))
            }
            missing = [name for name in names if name not in accounts and name not in auto_create]
            if missing:
                return fail(
                    FailureKind.NOT_FOUND,
                    f"Unknown accounts: {', '.join(missing)}",
                    code="account_not_found",
                    details={"accounts": missing},
                )
            for name in names:
                if name not in accounts:
                    record = TreasuryAccountRecord(
                        name=name, account_type=auto_create[name].value, account_code="", description="", balance_cents=0
                    )
                    session.add(record)
                    accounts[name] = record
            session.flush()

            for line in lines:
                account = accounts[line.account_name]
                debit = to_cents(line.net_debit)
                credit = to_cents(line.net_credit)
                session.add(
                    TreasuryEntryRecord(
                        line_id=f"{line.batch_key}:{line.id}",
                        batch_id=line.batch_key,
                        account_id=account.id,
                        entry_date=line.entry_date,
                        debit_cents=debit,
                        credit_cents=credit,
                        memo=line.description,
                    )
                )
                account.balance_cents += _balance_delta(account.account_type, debit, credit)
            return lines

        result = self._store.run(operation, work)
        if isinstance(result, Ok):
            _log.info("treasury.posted", batches=batch_ids, lines=len(lines))
        return result

    def get_journal_entries(
        self, *, start_date: date | None = None, end_date: date | None = None
    ) -> Ok[list[JournalLine]] | Failure:
        def work(session: Session) -> list[JournalLine]:
            stmt = select(TreasuryEntryRecord, TreasuryAccountRecord).join(
                TreasuryAccountRecord, TreasuryEntryRecord.account_id == TreasuryAccountRecord.id
            )
            if start_date is not None:
                stmt = stmt.where(TreasuryEntryRecord.entry_date >= start_date)
            if end_date is not None:
                stmt = stmt.where(TreasuryEntryRecord.entry_date <= end_date)
            stmt = stmt.order_by(TreasuryEntryRecord.entry_date, TreasuryEntryRecord.id)
            return [
                JournalLine(
                    id=entry.line_id.rsplit(":", 1)[-1],
                    batch_id=entry.batch_id,
                    entry_date=entry.entry_date,
                    account_name=account.name,
                    account_number=account.account_code or None,
                    debit_amount=Decimal(entry.debit_cents) / 100,
                    credit_amount=Decimal(entry.credit_cents) / 100,
                    description=entry.memo,
                )
                for entry, account in session.execute(stmt)
            ]

        return self._store.run("treasury.get_journal_entries", work)

    def export_for_cpa(
        self,
        export_format: str | None = None,
        *,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> Ok[list[ExportFile]] | Failure:
        """Plan de cuentas + asientos del periodo, en IIF o CSV."""

        if export_format is not None and export_format not in EXPORTERS:
            return fail(
                FailureKind.INVALID_REQUEST,
                f"Unknown export format {export_format!r} (use {', '.join(EXPORTERS)})",
                code="invalid_format",
            )
        exporter = EXPORTERS[export_format]() if export_format else self._exporter

        accounts = self.get_chart_of_accounts(active_only=False)
        if isinstance(accounts, Failure):
            return accounts
        entries = self.get_journal_entries(start_date=start_date, end_date=end_date)
        if isinstance(entries, Failure):
            return entries

        chart = exporter.export_chart_of_accounts(list(accounts.value))
        if isinstance(chart, Failure):
            return chart
        journal = exporter.export_journal_entries(list(entries.value))
        if isinstance(journal, Failure):
            return journal
        return Ok([chart.value, journal.value])

    # AccountingExporter

    def export_chart_of_accounts(self, accounts: list[Account | Bag]) -> Ok[ExportFile] | Failure:
        return self._exporter.export_chart_of_accounts(accounts)

    def export_journal_entries(self, entries: list[JournalLine | Bag]) -> Ok[ExportFile] | Failure:
        return self._exporter.export_journal_entries(entries)

    def export_transactions(self, transactions: list[DonationTransaction | Bag]) -> Ok[ExportFile] | Failure:
        return self._exporter.export_transactions(transactions)

    def test_connection(self) -> Ok[ConnectionStatus] | Failure:
        def work(session: Session) -> ConnectionStatus | Failure:
            inspector = inspect(session.get_bind())
            tables = (TreasuryAccountRecord.__tablename__, TreasuryEntryRecord.__tablename__)
            missing = [table for table in tables if not inspector.has_table(table)]
            if missing:
                return fail(FailureKind.NOT_CONFIGURED, f"Treasury tables are missing: {', '.join(missing)}; run init-store")
            return ConnectionStatus(provider=self.provider_id, details={"store": "local", "export_format": self.file_extension})

        return self._store.run("treasury.test_connection", work)
