"""Modelos de exportación contable (plan de cuentas y asientos).

Los exportadores trabajan sobre lotes: varias líneas de asiento que comparten
`batch_id` forman un único asiento (una cabecera TRNS en IIF, una referencia
común en CSV).
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from pydantic import Field, field_validator, model_validator

from core.domain.base import DomainModel


class AccountType(str, Enum):
    ASSET = "asset"
    LIABILITY = "liability"
    EQUITY = "equity"
    REVENUE = "revenue"
    EXPENSE = "expense"
    OTHER = "other"


class Account(DomainModel):
    account_name: str = Field(..., min_length=1, alias="name")
    account_type: AccountType = Field(default=AccountType.OTHER, alias="type")
    account_number: str = Field(default="", alias="number")
    description: str = ""

    @field_validator("account_type", mode="before")
    @classmethod
    def _known_type(cls, value: object) -> object:
        if isinstance(value, str):
            value = value.strip().lower()
            return value if value in AccountType._value2member_map_ else AccountType.OTHER
        return value


class JournalLine(DomainModel):
    """Una línea (split) de un asiento.

    Si llegan débito y crédito a la vez se netean: el exportador nunca
    escribe ambas columnas en la misma línea.
    """

    id: str
    batch_id: str | None = None
    entry_date: date
    account_name: str = Field(..., min_length=1)
    account_number: str | None = None
    debit_amount: Decimal = Field(default=Decimal("0"), ge=0)
    credit_amount: Decimal = Field(default=Decimal("0"), ge=0)
    description: str = ""
    entry_number: str | None = None

    @property
    def batch_key(self) -> str:
        return self.batch_id or f"BATCH-{self.id}"

    @property
    def signed_amount(self) -> Decimal:
        """Débito positivo, crédito negativo."""

        return self.debit_amount - self.credit_amount

    @property
    def net_debit(self) -> Decimal:
        return max(self.signed_amount, Decimal("0"))

    @property
    def net_credit(self) -> Decimal:
        return max(-self.signed_amount, Decimal("0"))


class DonationTransaction(DomainModel):
    """Transacción de pago a convertir en asiento (efectivo / ingreso / comisión)."""

    id: str
    created_at: date | datetime
    amount: Decimal = Field(..., gt=0)
    fee_amount: Decimal = Field(default=Decimal("0"), ge=0)
    net_amount: Decimal | None = None
    description: str = ""

    @model_validator(mode="after")
    def _default_net(self) -> "DonationTransaction":
        if self.net_amount is None:
            self.net_amount = self.amount - self.fee_amount
        return self

    @property
    def entry_date(self) -> date:
        return self.created_at.date() if isinstance(self.created_at, datetime) else self.created_at


class ExportFile(DomainModel):
    filename: str
    mime_type: str
    content: str
    rows: int = Field(default=0, description="Líneas de datos (sin cabeceras).")


class AccountRequest(Account):
    parent_id: int | None = None


class LedgerAccount(Account):
    """Cuenta del libro builtin, con saldo en su sentido natural (deudor o acreedor)."""

    id: int
    parent_id: int | None = None
    balance: Decimal = Decimal("0")
    active: bool = True


class AccountBalance(DomainModel):
    account_id: int
    account_name: str
    balance: Decimal
    currency: str = "USD"
