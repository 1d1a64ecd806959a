"""Adaptadores contables: libro builtin y exportadores (`core.interfaces.accounting.AccountingExporter`)."""

from adapters.accounting.quickbooks_iif import QuickBooksIifExporter
from adapters.accounting.treasury import TreasuryAdapter
from adapters.accounting.wave_csv import WaveCsvExporter

__all__ = [
	"QuickBooksIifExporter",
	"TreasuryAdapter",
	"WaveCsvExporter",
]
