"""Contrato de exportación contable (ficheros planos, sin red)."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from core.domain.accounting import Account, DonationTransaction, ExportFile, JournalLine
from core.domain.base import Bag
from core.result import Failure, Ok


@runtime_checkable
class AccountingExporter(Protocol):
    provider_id: str
    format_name: str
    file_extension: str
    mime_type: str

    def export_chart_of_accounts(self, accounts: list[Account | Bag]) -> Ok[ExportFile] | Failure:
        ...

    def export_journal_entries(self, entries: list[JournalLine | Bag]) -> Ok[ExportFile] | Failure:
        ...

    def export_transactions(self, transactions: list[DonationTransaction | Bag]) -> Ok[ExportFile] | Failure:
        ...
