"""Result type compartido por todas las capacidades.

Por qué un Result y no excepciones:
- Los fallos remotos (timeouts, 4xx/5xx, errores del proveedor) son esperables;
  el llamador decide qué hacer con ellos ramificando sobre `ok`.
- Una única taxonomía cerrada (`FailureKind`) permite tratar igual a 25
  proveedores distintos.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar, Union

T = TypeVar("T")


class FailureKind(str, Enum):
    """Closed failure taxonomy returned by every adapter operation."""

    NOT_CONFIGURED = "not_configured"
    NOT_SUPPORTED = "not_supported"
    NOT_APPLICABLE = "not_applicable"
    NOT_IMPLEMENTED = "not_implemented"
    TRANSPORT_ERROR = "transport_error"
    API_ERROR = "api_error"
    PARSE_ERROR = "parse_error"
    DB_ERROR = "db_error"
    INVALID_REQUEST = "invalid_request"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful outcome carrying the normalized value."""

    value: T

    @property
    def ok(self) -> bool:
        return True

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Failure:
    """Discriminated failure value.

    `status_code` keeps the HTTP status from the vendor when there was one;
    `code` keeps the vendor's own error code (Twilio `21211`, Stripe
    `card_declined`, ...).
    """

    kind: FailureKind
    message: str
    status_code: int | None = None
    code: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return False

    def unwrap(self) -> Any:
        raise ValueError(f"{self.kind.value}: {self.message}")


Result = Union[Ok[T], Failure]


def ok(value: T) -> Ok[T]:
    return Ok(value)


def fail(
    kind: FailureKind,
    message: str,
    *,
    status_code: int | None = None,
    code: str | int | None = None,
    details: dict[str, Any] | None = None,
) -> Failure:
    return Failure(
        kind=kind,
        message=message,
        status_code=status_code,
        code=str(code) if code is not None else None,
        details=dict(details or {}),
    )


def not_supported(operation: str, provider: str) -> Failure:
    """Failure for operations a provider cannot perform at all."""

    return fail(
        FailureKind.NOT_SUPPORTED,
        f"{provider} does not support {operation}",
        details={"operation": operation, "provider": provider},
    )


def not_configured(provider: str, *missing: str) -> Failure:
    names = ", ".join(missing) if missing else "credentials"
    return fail(
        FailureKind.NOT_CONFIGURED,
        f"{provider} is missing {names}",
        details={"provider": provider, "missing": list(missing)},
    )


@dataclass
class BatchResult(Generic[T]):
    """Running tally for sequential bulk operations (`send_bulk`, `batch_push`).

    No aggregation beyond the counts: each item keeps its own result.
    """

    succeeded: int = 0
    failed: int = 0
    results: list[Ok[T] | Failure] = field(default_factory=list)

    def record(self, result: Ok[T] | Failure) -> None:
        self.results.append(result)
        if result.ok:
            self.succeeded += 1
        else:
            self.failed += 1

    @property
    def total(self) -> int:
        return self.succeeded + self.failed
