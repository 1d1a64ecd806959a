"""Exportación JSON de resultados.

Por qué JSON:
- Interoperabilidad con otras herramientas y pipelines.
- Permite persistir el resultado de una operación (Ok o Failure) sin
  depender de la CLI.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic_core import to_jsonable_python

from core.result import Failure, Ok


def result_payload(result: Ok[Any] | Failure | Any) -> dict[str, Any] | Any:
    """`Ok` -> `{"ok": true, "value": ...}`; `Failure` -> sus campos; resto tal cual."""

    if isinstance(result, Ok):
        return {"ok": True, "value": to_jsonable_python(result.value)}
    if isinstance(result, Failure):
        return {
            "ok": False,
            "kind": result.kind.value,
            "message": result.message,
            "status_code": result.status_code,
            "code": result.code,
            "details": to_jsonable_python(result.details, fallback=str),
        }
    return to_jsonable_python(result)


def export_result_json(*, result: Ok[Any] | Failure | Any, output_path: Path) -> Path:
    """Exporta un resultado (o cualquier modelo) a JSON UTF-8 con formato estable."""

    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(
        json.dumps(result_payload(result), ensure_ascii=False, indent=2, sort_keys=True) + "\n",
        encoding="utf-8",
    )
    return output_path
