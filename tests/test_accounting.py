from __future__ import annotations

import csv
import io
from decimal import Decimal

import pytest

from adapters.accounting.journal import group_batches, transactions_to_lines
from adapters.accounting.quickbooks_iif import QuickBooksIifExporter, escape_field
from adapters.accounting.wave_csv import WaveCsvExporter
from core.domain.accounting import DonationTransaction, JournalLine
from core.result import Failure, FailureKind

GALA = {"id": "101", "created_at": "2025-03-01T14:30:00", "amount": "100.00", "fee_amount": "3.20", "description": "Gala donation"}
CHECK = {"id": "102", "created_at": "2025-03-02", "amount": "50.00", "description": "Check"}


def _rows(content: str) -> list[list[str]]:
    return list(csv.reader(io.StringIO(content)))


def test_transaction_becomes_balanced_entry() -> None:
    txn = DonationTransaction.model_validate(GALA)

    lines = transactions_to_lines([txn], revenue_account="Donation Revenue")

    assert [line.account_name for line in lines] == ["Cash - Operating", "Donation Revenue", "Payment Processing Fees"]
    assert sum(line.signed_amount for line in lines) == Decimal("0")
    assert {line.batch_id for line in lines} == {"TXN-101"}


def test_fee_line_only_when_fee() -> None:
    txn = DonationTransaction.model_validate(CHECK)

    lines = transactions_to_lines([txn], revenue_account="Donation Revenue")

    assert len(lines) == 2
    assert lines[0].debit_amount == Decimal("50.00")


def test_group_batches_keeps_first_seen_order() -> None:
    lines = [
        JournalLine(id="1", batch_id="B", entry_date="2025-01-01", account_name="Cash", debit_amount=1),
        JournalLine(id="2", batch_id="A", entry_date="2025-01-01", account_name="Cash", debit_amount=1),
        JournalLine(id="3", batch_id="B", entry_date="2025-01-01", account_name="Revenue", credit_amount=1),
        JournalLine(id="4", entry_date="2025-01-01", account_name="Cash", debit_amount=1),
    ]

    batches = group_batches(lines)

    assert list(batches) == ["B", "A", "BATCH-4"]
    assert [line.id for line in batches["B"]] == ["1", "3"]


def test_iif_one_trns_block_per_batch() -> None:
    exported = QuickBooksIifExporter().export_transactions([GALA, CHECK]).value

    lines = exported.content.splitlines()
    assert exported.filename == "transactions.iif"
    assert exported.rows == 5
    assert lines[:3] == [
        "!TRNS\tTRNSID\tTRNSTYPE\tDATE\tACCNT\tAMOUNT\tMEMO",
        "!SPL\tSPLID\tTRNSTYPE\tDATE\tACCNT\tAMOUNT\tMEMO",
        "!ENDTRNS",
    ]
    assert sum(1 for line in lines if line.startswith("TRNS\t")) == 2
    assert sum(1 for line in lines if line == "ENDTRNS") == 2
    assert lines[3] == "TRNS\tTXN-101\tGENERAL JOURNAL\t03/01/2025\t\t\tGala donation"
    amounts = [line.split("\t")[5] for line in lines[4:7]]
    assert amounts == ["96.80", "-100.00", "3.20"]


def test_iif_accounts_map_types() -> None:
    exported = QuickBooksIifExporter().export_chart_of_accounts(
        [
            {"name": "Cash\tOperating", "type": "Asset", "number": "1000"},
            {"name": "Grants", "type": "revenue"},
            {"name": "Misc", "type": "whatever"},
        ]
    ).value

    lines = exported.content.splitlines()
    assert lines[0] == "!ACCNT\tNAME\tACCNTTYPE\tDESC\tACCNUM"
    assert lines[1] == "ACCNT\tCash Operating\tBANK\t\t1000"
    assert lines[2].split("\t")[2] == "INC"
    assert lines[3].split("\t")[2] == "OASSET"


def test_escape_field() -> None:
    assert escape_field("multi\nline\tmemo ") == "multi line memo"
    assert escape_field(None) == ""


def test_csv_never_fills_both_columns() -> None:
    exported = WaveCsvExporter().export_journal_entries(
        [
            {"id": "1", "batch_id": "J-1", "entry_date": "2025-01-15", "account_name": "Cash", "debit_amount": "80", "credit_amount": "30"},
            {"id": "2", "batch_id": "J-1", "entry_date": "2025-01-15", "account_name": "Revenue", "credit_amount": "50"},
        ]
    ).value

    rows = _rows(exported.content)
    assert rows[0] == ["Transaction Date", "Account Name", "Debit Amount", "Credit Amount", "Description", "Reference"]
    assert rows[1] == ["2025-01-15", "Cash", "50.00", "", "", "J-1"]
    assert rows[2] == ["2025-01-15", "Revenue", "", "50.00", "", "J-1"]
    assert exported.mime_type == "text/csv"


def test_csv_transactions_share_reference() -> None:
    exported = WaveCsvExporter().export_transactions([GALA]).value

    rows = _rows(exported.content)[1:]
    assert {row[5] for row in rows} == {"TXN-101"}
    assert rows[1][1] == "Donation Income"


@pytest.mark.parametrize("exporter", [QuickBooksIifExporter(), WaveCsvExporter()])
def test_invalid_row_reports_index(exporter) -> None:
    result = exporter.export_transactions([GALA, {"id": "bad", "created_at": "2025-01-01", "amount": "-5"}])

    assert isinstance(result, Failure)
    assert result.kind is FailureKind.INVALID_REQUEST
    assert result.details["index"] == 1
    assert result.message.startswith("[1]")
