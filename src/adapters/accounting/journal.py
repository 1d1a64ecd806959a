"""Piezas comunes de los exportadores contables.

Una transacción de donación se convierte en un asiento de 2 o 3 líneas:
- débito a caja por el neto,
- crédito a ingresos por el bruto,
- débito a gastos por la comisión (solo si hay comisión).
"""

from __future__ import annotations

from collections import OrderedDict
from decimal import Decimal
from typing import Iterable, Mapping, TypeVar

from pydantic import BaseModel

from core.domain.accounting import DonationTransaction, JournalLine
from core.domain.base import parse_request
from core.result import Failure, Ok

M = TypeVar("M", bound=BaseModel)

CASH_ACCOUNT = "Cash - Operating"
FEES_ACCOUNT = "Payment Processing Fees"


def parse_all(model: type[M], items: Iterable[M | Mapping]) -> Ok[list[M]] | Failure:
    parsed: list[M] = []
    for index, item in enumerate(items):
        result = parse_request(model, item)
        if isinstance(result, Failure):
            details = dict(result.details)
            details["index"] = index
            return Failure(kind=result.kind, message=f"[{index}] {result.message}", details=details)
        parsed.append(result.value)
    return Ok(parsed)


def transactions_to_lines(transactions: list[DonationTransaction], *, revenue_account: str) -> list[JournalLine]:
    lines: list[JournalLine] = []
    for txn in transactions:
        batch_id = f"TXN-{txn.id}"
        lines.append(
            JournalLine(
                id=f"{txn.id}-1",
                entry_number=f"{txn.id}-1",
                batch_id=batch_id,
                entry_date=txn.entry_date,
                account_name=CASH_ACCOUNT,
                debit_amount=txn.net_amount or Decimal("0"),
                description=txn.description,
            )
        )
        lines.append(
            JournalLine(
                id=f"{txn.id}-2",
                entry_number=f"{txn.id}-2",
                batch_id=batch_id,
                entry_date=txn.entry_date,
                account_name=revenue_account,
                credit_amount=txn.amount,
                description=txn.description,
            )
        )
        if txn.fee_amount > 0:
            lines.append(
                JournalLine(
                    id=f"{txn.id}-3",
                    entry_number=f"{txn.id}-3",
                    batch_id=batch_id,
                    entry_date=txn.entry_date,
                    account_name=FEES_ACCOUNT,
                    debit_amount=txn.fee_amount,
                    description=f"Processing fee for {txn.description}",
                )
            )
    return lines


def group_batches(lines: list[JournalLine]) -> "OrderedDict[str, list[JournalLine]]":
    """Agrupa por `batch_key` conservando el orden de primera aparición."""

    batches: OrderedDict[str, list[JournalLine]] = OrderedDict()
    for line in lines:
        batches.setdefault(line.batch_key, []).append(line)
    return batches


def money(value: Decimal) -> str:
    return f"{value:.2f}"
