"""Base de los modelos de request/result.

Por qué un helper de parseo:
- Los adaptadores aceptan un modelo ya construido o un mapping plano
  ("bolsa" de campos con nombre). La validación ocurre en el borde y un
  error de validación se devuelve como `invalid_request`, nunca se lanza.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping, TypeVar

from pydantic import BaseModel, TypeAdapter, ValidationError
from pydantic.config import ConfigDict

from core.result import Failure, FailureKind, Ok, fail

M = TypeVar("M", bound=BaseModel)


class DomainModel(BaseModel):
    """Base para requests y results: ignora claves desconocidas, acepta alias."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


def parse_request(model: type[M], data: M | Mapping[str, Any] | None = None, **fields: Any) -> Ok[M] | Failure:
    """Valida `data` (y/o kwargs) contra `model`.

    Acepta una instancia del modelo (se devuelve tal cual si no hay kwargs),
    un mapping o solo kwargs.
    """

    if isinstance(data, model) and not fields:
        return Ok(data)

    payload: dict[str, Any] = {}
    if isinstance(data, BaseModel):
        payload.update(data.model_dump(exclude_unset=True))
    elif data is not None:
        payload.update(dict(data))
    payload.update(fields)

    try:
        return Ok(model.model_validate(payload))
    except ValidationError as exc:
        errors = [
            {"loc": ".".join(str(p) for p in err["loc"]), "msg": err["msg"]}
            for err in exc.errors()
        ]
        first = errors[0] if errors else {"loc": "", "msg": str(exc)}
        return fail(
            FailureKind.INVALID_REQUEST,
            f"Invalid {model.__name__}: {first['loc']} {first['msg']}".strip(),
            details={"errors": errors},
        )


Bag = Mapping[str, Any]

_datetime_adapter: TypeAdapter[datetime] = TypeAdapter(datetime)


def parse_datetime(value: Any) -> datetime | None:
    """Fecha/hora del proveedor -> datetime; None si falta o no se reconoce.

    Acepta ISO 8601 (con espacio o `T`) y epoch en segundos.
    """

    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        return value
    try:
        return _datetime_adapter.validate_python(value)
    except ValidationError:
        return None


def parse_int(value: Any, default: int) -> int:
    """Entero del proveedor (form o JSON) -> int; `default` si falta o no es numérico."""

    if value in (None, ""):
        return default
    try:
        return int(str(value).strip())
    except ValueError:
        return default
