"""CLI principal (Typer).

Comandos:
- `providers`: proveedores registrados por categoría.
- `sms-segments`: codificación, segmentos y coste estimado de un SMS.
- `export`: plan de cuentas / asientos / transacciones a IIF o CSV.
- `init-store`: crea las tablas del store local.
- `doctor`: diagnóstico y configuración de credenciales.
"""

from __future__ import annotations

import json
from enum import Enum
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from adapters.accounting import QuickBooksIifExporter, WaveCsvExporter
from adapters.json_exporter import export_result_json
from adapters.local_store import LocalStore
from adapters.sms import twilio, plivo
from cli import doctor
from cli.ui_components import (
    build_export_panel,
    build_failure_panel,
    build_providers_table,
    build_segments_table,
    print_banner,
)
from core import sms
from core.config import AppSettings
from core.logging import configure_logging
from core.registry import CATEGORIES, default_manager
from core.result import Failure

app = typer.Typer(no_args_is_help=True, help="NonprofitSuite integration adapters.")
app.add_typer(doctor.app, name="doctor")

_console = Console()


class ExportFormat(str, Enum):
    IIF = "iif"
    CSV = "csv"


class ExportKind(str, Enum):
    ACCOUNTS = "accounts"
    JOURNAL = "journal"
    TRANSACTIONS = "transactions"


@app.callback()
def main(
    quiet: bool = typer.Option(False, "--quiet", "-q", help="No mostrar el banner."),
) -> None:
    settings = AppSettings()
    configure_logging(settings.log_level, settings.log_format)
    if not quiet:
        print_banner(_console)


@app.command()
def providers(
    category: Optional[str] = typer.Argument(None, help="Categoría (sms, crm, payment...)."),
) -> None:
    """Lista los proveedores registrados."""

    if category is not None and category not in CATEGORIES:
        raise typer.BadParameter(f"Unknown category: {category}. Known: {', '.join(CATEGORIES)}")
    manager = default_manager()
    categories = [category] if category else list(CATEGORIES)
    _console.print(build_providers_table(manager, categories))


@app.command(name="sms-segments")
def sms_segments(
    message: str = typer.Argument(..., help="Texto del SMS."),
    to: str = typer.Option("+1", "--to", help="Destino (el prefijo +1 usa tarifa US)."),
) -> None:
    """Muestra codificación, longitud, segmentos y coste estimado."""

    segments = sms.count_segments(message)
    costs = {}
    for name, module in (("Twilio", twilio), ("Plivo", plivo)):
        rate = module.US_PRICE_PER_SEGMENT if to.startswith("+1") else module.INTL_PRICE_PER_SEGMENT
        costs[name] = round(segments * rate, 4)
    table = build_segments_table(
        message,
        sms.detect_encoding(message).value,
        sms.message_length(message),
        segments,
        costs,
    )
    _console.print(table)


@app.command()
def export(
    format: ExportFormat = typer.Argument(..., help="iif (QuickBooks) o csv (Wave)."),
    kind: ExportKind = typer.Argument(..., help="accounts, journal o transactions."),
    input_path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Fichero JSON con una lista de objetos."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Ruta de salida (por defecto, nombre del export)."),
    result_json: Optional[Path] = typer.Option(None, "--result-json", help="Guarda también el resultado como JSON."),
) -> None:
    """Exporta datos contables a IIF o CSV."""

    try:
        items = json.loads(input_path.read_text(encoding="utf-8"))
    except ValueError as exc:
        raise typer.BadParameter(f"Invalid JSON: {exc}") from exc
    if not isinstance(items, list):
        raise typer.BadParameter("The input JSON must be a list of objects")

    exporter = QuickBooksIifExporter() if format is ExportFormat.IIF else WaveCsvExporter()
    operations = {
        ExportKind.ACCOUNTS: exporter.export_chart_of_accounts,
        ExportKind.JOURNAL: exporter.export_journal_entries,
        ExportKind.TRANSACTIONS: exporter.export_transactions,
    }
    result = operations[kind](items)

    if result_json is not None:
        export_result_json(result=result, output_path=result_json)

    if isinstance(result, Failure):
        _console.print(build_failure_panel(result))
        raise typer.Exit(code=1)

    target = output or Path(result.value.filename)
    target.parent.mkdir(parents=True, exist_ok=True)
    # newline="" conserva los finales de línea del export.
    with target.open("w", encoding="utf-8", newline="") as handle:
        handle.write(result.value.content)
    _console.print(build_export_panel(result.value, str(target)))


@app.command(name="init-store")
def init_store() -> None:
    """Crea las tablas del store local (calendario, formularios, Zelle, Jitsi, ficheros, tesorería)."""

    settings = AppSettings()
    store = LocalStore.from_settings(settings)
    store.create_all()
    _console.print(f"[green]Local store ready:[/green] {settings.database_url}")


def run() -> None:
    app()


if __name__ == "__main__":
    run()
