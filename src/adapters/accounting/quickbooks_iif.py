"""Exportador QuickBooks Desktop (IIF, texto separado por tabuladores).

Cada lote produce:

    TRNS  <batch>  GENERAL JOURNAL  <m/d/Y>          <memo>
    SPL   <batch>-<id>  GENERAL JOURNAL  <m/d/Y>  <cuenta>  <importe con signo>  <memo>
    ...
    ENDTRNS

Débitos positivos, créditos negativos.
"""

from __future__ import annotations

from typing import Any

from adapters.accounting.journal import group_batches, money, parse_all, transactions_to_lines
from core.domain.accounting import Account, AccountType, DonationTransaction, ExportFile, JournalLine
from core.domain.base import Bag
from core.result import Failure, Ok

ACCOUNT_TYPES: dict[AccountType, str] = {
    AccountType.ASSET: "BANK",
    AccountType.LIABILITY: "OCLIAB",
    AccountType.EQUITY: "EQUITY",
    AccountType.REVENUE: "INC",
    AccountType.EXPENSE: "EXP",
}
DEFAULT_ACCOUNT_TYPE = "OASSET"

ACCOUNTS_HEADER = "!ACCNT\tNAME\tACCNTTYPE\tDESC\tACCNUM"
JOURNAL_HEADER = (
    "!TRNS\tTRNSID\tTRNSTYPE\tDATE\tACCNT\tAMOUNT\tMEMO",
    "!SPL\tSPLID\tTRNSTYPE\tDATE\tACCNT\tAMOUNT\tMEMO",
    "!ENDTRNS",
)
TRANSACTION_TYPE = "GENERAL JOURNAL"


def escape_field(value: Any) -> str:
    """IIF no tiene comillas: tabs y saltos de línea pasan a espacios."""

    text = "" if value is None else str(value)
    for char in ("\t", "\r", "\n"):
        text = text.replace(char, " ")
    return text.strip()


class QuickBooksIifExporter:
    provider_id = "quickbooks_iif"
    format_name = "QuickBooks IIF"
    file_extension = "iif"
    mime_type = "application/octet-stream"
    revenue_account = "Donation Revenue"

    def _file(self, stem: str, lines: list[str], rows: int) -> ExportFile:
        return ExportFile(
            filename=f"{stem}.{self.file_extension}",
            mime_type=self.mime_type,
            content="\n".join(lines) + "\n",
            rows=rows,
        )

    def export_chart_of_accounts(self, accounts: list[Account | Bag]) -> Ok[ExportFile] | Failure:
        parsed = parse_all(Account, accounts)
        if isinstance(parsed, Failure):
            return parsed

        lines = [ACCOUNTS_HEADER]
        for account in parsed.value:
            lines.append(
                "\t".join(
                    (
                        "ACCNT",
                        escape_field(account.account_name),
                        ACCOUNT_TYPES.get(account.account_type, DEFAULT_ACCOUNT_TYPE),
                        escape_field(account.description),
                        escape_field(account.account_number),
                    )
                )
            )
        return Ok(self._file("chart-of-accounts", lines, len(parsed.value)))

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
        lines = list(JOURNAL_HEADER)
        for batch_id, batch in group_batches(entries).items():
            first = batch[0]
            when = first.entry_date.strftime("%m/%d/%Y")
            lines.append(
                "\t".join(("TRNS", escape_field(batch_id), TRANSACTION_TYPE, when, "", "", escape_field(first.description)))
            )
            for entry in batch:
                lines.append(
                    "\t".join(
                        (
                            "SPL",
                            escape_field(f"{batch_id}-{entry.id}"),
                            TRANSACTION_TYPE,
                            when,
                            escape_field(entry.account_name),
                            money(entry.signed_amount),
                            escape_field(entry.description),
                        )
                    )
                )
            lines.append("ENDTRNS")
        return self._file(stem, lines, len(entries))
