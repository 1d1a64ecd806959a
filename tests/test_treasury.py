from __future__ import annotations

import csv
import io
from datetime import date
from decimal import Decimal

import pytest

from adapters.accounting.treasury import TreasuryAdapter, unbalanced_batches
from core.domain.accounting import AccountType, JournalLine
from core.interfaces import AccountingExporter
from core.result import Failure, FailureKind, Ok

GALA = {"id": "101", "created_at": "2025-03-01T14:30:00", "amount": "100.00", "fee_amount": "3.20", "description": "Gala donation"}
CHECK = {"id": "102", "created_at": "2025-04-02", "amount": "50.00", "description": "Check"}


@pytest.fixture
def treasury(store) -> TreasuryAdapter:
    return TreasuryAdapter(store)


def _balances(treasury: TreasuryAdapter) -> dict[str, Decimal]:
    return {account.account_name: account.balance for account in treasury.get_chart_of_accounts().value}


def test_is_an_accounting_exporter(treasury, store) -> None:
    assert isinstance(treasury, AccountingExporter)
    assert treasury.file_extension == "iif"
    assert TreasuryAdapter(store, export_format="csv").mime_type == "text/csv"


def test_create_account_and_chart_order(treasury) -> None:
    treasury.create_account({"name": "Grants Receivable", "type": "asset", "number": "1200"})
    bank = treasury.create_account({"name": "Checking", "type": "Asset", "number": "1000"}).value
    treasury.create_account({"name": "Program Expenses", "type": "expense", "number": "5000"})

    chart = treasury.get_chart_of_accounts().value

    assert [account.account_number for account in chart] == ["1000", "1200", "5000"]
    assert bank.id > 0
    assert bank.balance == Decimal("0")
    assert [a.account_name for a in treasury.get_chart_of_accounts("expense").value] == ["Program Expenses"]
    assert treasury.get_chart_of_accounts("furniture").kind is FailureKind.INVALID_REQUEST


def test_create_account_rejects_duplicates_and_unknown_parent(treasury) -> None:
    treasury.create_account({"name": "Checking", "type": "asset"})

    duplicate = treasury.create_account({"name": "Checking", "type": "asset"})
    orphan = treasury.create_account({"name": "Sub", "type": "asset", "parent_id": 42})

    assert duplicate.code == "duplicate_account"
    assert orphan.kind is FailureKind.NOT_FOUND
    assert treasury.create_account({"type": "asset"}).kind is FailureKind.INVALID_REQUEST


def test_sync_transaction_posts_entry_and_updates_balances(treasury) -> None:
    lines = treasury.sync_transaction(GALA).value

    assert {line.batch_id for line in lines} == {"TXN-101"}
    assert _balances(treasury) == {
        "Cash - Operating": Decimal("96.80"),
        "Donation Revenue": Decimal("100.00"),
        "Payment Processing Fees": Decimal("3.20"),
    }
    kinds = {a.account_name: a.account_type for a in treasury.get_chart_of_accounts().value}
    assert kinds["Donation Revenue"] is AccountType.REVENUE


def test_sync_transaction_is_posted_once(treasury) -> None:
    treasury.sync_transaction(GALA)

    again = treasury.sync_transaction(GALA)

    assert isinstance(again, Failure)
    assert again.code == "duplicate_entry"
    assert _balances(treasury)["Cash - Operating"] == Decimal("96.80")


def test_bulk_sync_counts_failures(treasury) -> None:
    batch = treasury.sync_transactions_bulk([GALA, CHECK, {"id": "103"}])

    assert batch.succeeded == 2
    assert batch.failed == 1
    assert _balances(treasury)["Donation Revenue"] == Decimal("150.00")


def test_manual_entries_need_known_accounts_and_balance(treasury) -> None:
    checking = treasury.create_account({"name": "Checking", "type": "asset"}).value
    treasury.create_account({"name": "Loan Payable", "type": "liability"})
    loan = [
        {"id": "1", "batch_id": "LOAN-1", "entry_date": "2025-05-01", "account_name": "Checking", "debit_amount": "500"},
        {"id": "2", "batch_id": "LOAN-1", "entry_date": "2025-05-01", "account_name": "Loan Payable", "credit_amount": "500"},
    ]

    unbalanced = treasury.post_journal_entries([loan[0]])
    unknown = treasury.post_journal_entries([loan[0], {**loan[1], "account_name": "Mystery"}])
    posted = treasury.post_journal_entries(loan)

    assert unbalanced.code == "unbalanced_entry"
    assert unknown.code == "account_not_found"
    assert isinstance(posted, Ok)
    assert treasury.get_account_balance(checking.id).value.balance == Decimal("500")
    assert _balances(treasury)["Loan Payable"] == Decimal("500")
    assert "Mystery" not in _balances(treasury)


def test_account_balance_errors(treasury) -> None:
    assert treasury.get_account_balance(404).code == "account_not_found"
    assert treasury.get_account_balance("abc").kind is FailureKind.INVALID_REQUEST


def test_balance_currency(store) -> None:
    treasury = TreasuryAdapter(store, currency="cad")
    account = treasury.create_account({"name": "Checking", "type": "asset"}).value

    assert treasury.get_account_balance(str(account.id)).value.currency == "CAD"


def test_unbalanced_batches() -> None:
    lines = [
        JournalLine(id="1", batch_id="A", entry_date=date(2025, 1, 1), account_name="Cash", debit_amount=Decimal("10")),
        JournalLine(id="2", batch_id="A", entry_date=date(2025, 1, 1), account_name="Income", credit_amount=Decimal("10")),
        JournalLine(id="3", batch_id="B", entry_date=date(2025, 1, 1), account_name="Cash", debit_amount=Decimal("1")),
    ]

    assert unbalanced_batches(lines) == ["B"]


def test_export_for_cpa_iif(treasury) -> None:
    treasury.sync_transaction(GALA)
    treasury.sync_transaction(CHECK)

    chart, journal = treasury.export_for_cpa().value

    assert chart.filename == "chart-of-accounts.iif"
    assert chart.rows == 3
    assert "ACCNT\tDonation Revenue\tINC" in chart.content
    assert journal.rows == 5
    # Cabecera !ENDTRNS + un ENDTRNS por asiento.
    assert journal.content.count("ENDTRNS") == 3


def test_export_for_cpa_csv_by_period(treasury) -> None:
    treasury.sync_transaction(GALA)
    treasury.sync_transaction(CHECK)

    _, journal = treasury.export_for_cpa("csv", start_date=date(2025, 4, 1)).value

    rows = list(csv.reader(io.StringIO(journal.content)))
    assert journal.filename.endswith(".csv")
    assert len(rows) == 1 + 2
    assert treasury.export_for_cpa("pdf").code == "invalid_format"


def test_delegated_exports(treasury) -> None:
    exported = treasury.export_transactions([GALA]).value

    assert exported.filename == "transactions.iif"
    assert exported.rows == 3


def test_connection_checks_tables(treasury) -> None:
    status = treasury.test_connection().value

    assert status.provider == "treasury"
    assert status.details["export_format"] == "iif"
