"""Exportador Wave (CSV).

Una fila por línea de asiento; las líneas de un mismo lote comparten la
columna `Reference`. Solo una de las columnas Debit/Credit lleva valor.
"""

from __future__ import annotations

import csv
import io
from typing import Any

from adapters.accounting.journal import money, parse_all, transactions_to_lines
from core.domain.accounting import Account, AccountType, DonationTransaction, ExportFile, JournalLine
from core.domain.base import Bag
from core.result import Failure, Ok

ACCOUNT_TYPES: dict[AccountType, str] = {
    AccountType.ASSET: "Asset",
    AccountType.LIABILITY: "Liability",
    AccountType.EQUITY: "Equity",
    AccountType.REVENUE: "Income",
    AccountType.EXPENSE: "Expense",
}
DEFAULT_ACCOUNT_TYPE = "Asset"

ACCOUNTS_HEADER = ("Account Name", "Account Type", "Account Number", "Description")
JOURNAL_HEADER = ("Transaction Date", "Account Name", "Debit Amount", "Credit Amount", "Description", "Reference")


class WaveCsvExporter:
    provider_id = "wave_csv"
    format_name = "Wave CSV"
    file_extension = "csv"
    mime_type = "text/csv"
    revenue_account = "Donation Income"

    def _file(self, stem: str, header: tuple[str, ...], rows: list[tuple[Any, ...]]) -> ExportFile:
        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        writer.writerow(header)
        writer.writerows(rows)
        return ExportFile(
            filename=f"{stem}.{self.file_extension}",
            mime_type=self.mime_type,
            content=buffer.getvalue(),
            rows=len(rows),
        )

    def export_chart_of_accounts(self, accounts: list[Account | Bag]) -> Ok[ExportFile] | Failure:
        parsed = parse_all(Account, accounts)
        if isinstance(parsed, Failure):
            return parsed
        rows = [
            (
                account.account_name,
                ACCOUNT_TYPES.get(account.account_type, DEFAULT_ACCOUNT_TYPE),
                account.account_number,
                account.description,
            )
            for account in parsed.value
        ]
        return Ok(self._file("chart-of-accounts", ACCOUNTS_HEADER, rows))

    def export_journal_entries(self, entries: list[JournalLine | Bag]) -> Ok[ExportFile] | Failure:
        parsed = parse_all(JournalLine, entries)
        if isinstance(parsed, Failure):
            return parsed
        return Ok(self._journal("journal-entries", parsed.value))

    def export_transactions(self, transactions: list[DonationTransaction | Bag]) -> Ok[ExportFile] | Failure:
        parsed = parse_all(DonationTransaction, transactions)
        if isinstance(parsed, Failure):
            return parsed
        lines = transactions_to_lines(parsed.value, revenue_account=self.revenue_account)
        return Ok(self._journal("transactions", lines))

    def _journal(self, stem: str, entries: list[JournalLine]) -> ExportFile:
        rows = [
            (
                entry.entry_date.strftime("%Y-%m-%d"),
                entry.account_name,
                money(entry.net_debit) if entry.net_debit > 0 else "",
                money(entry.net_credit) if entry.net_credit > 0 else "",
                entry.description,
                entry.batch_id or entry.entry_number or entry.batch_key,
            )
            for entry in entries
        ]
        return self._file(stem, JOURNAL_HEADER, rows)
