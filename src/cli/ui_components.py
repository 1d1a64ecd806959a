"""Componentes de UI para CLI (Rich).

Por qué separar componentes:
- Evita mezclar lógica de comandos con detalles visuales.
- Permite reutilizar tablas/paneles en múltiples comandos.
"""

from __future__ import annotations

from rich.align import Align
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from core.domain.accounting import ExportFile
from core.registry import IntegrationManager
from core.result import Failure


def print_banner(console: Console) -> None:
    """Imprime el banner de bienvenida.

    Por qué aquí:
    - Evita dependencias circulares (main <-> doctor).
    - Permite desactivar banner en modos no interactivos (JSON/pipelines).
    """

    title = Text("NS-INTEGRATIONS", style="bold cyan")
    subtitle = Text("CRM • Pagos • Mensajería • Exportación contable", style="dim")
    body = Align.center(Text.assemble(title, "\n", subtitle), vertical="middle")
    console.print(Panel(body, border_style="cyan", padding=(1, 4)))


def _yes(value: bool) -> str:
    return "[green]yes[/green]" if value else "[dim]no[/dim]"


def build_providers_table(manager: IntegrationManager, categories: list[str]) -> Table:
    """Tabla de proveedores registrados por categoría."""

    table = Table(title="Integration Providers")
    table.add_column("Category", style="cyan", no_wrap=True)
    table.add_column("Provider", style="white", no_wrap=True)
    table.add_column("Name", style="white")
    table.add_column("Default")
    table.add_column("Free")
    table.add_column("Active")
    table.add_column("Connected")

    for category in categories:
        active = manager.get_active_provider_id(category)
        providers = manager.get_providers(category)
        if not providers:
            table.add_row(category, "-", "[dim]no providers[/dim]", "", "", "", "")
            continue
        for provider_id, info in providers.items():
            table.add_row(
                category,
                provider_id,
                info.name,
                _yes(info.is_default),
                _yes(info.is_free),
                _yes(provider_id == active),
                _yes(manager.is_provider_connected(category, provider_id)),
            )
    return table


def build_segments_table(text: str, encoding: str, length: int, segments: int, costs: dict[str, float]) -> Table:
    table = Table(title="SMS Segments")
    table.add_column("Field", style="bright_green", no_wrap=True)
    table.add_column("Value", style="white")
    preview = text if len(text) <= 60 else text[:57] + "..."
    table.add_row("Message", preview)
    table.add_row("Encoding", encoding)
    table.add_row("Length", str(length))
    table.add_row("Segments", str(segments))
    for name, cost in costs.items():
        table.add_row(f"Cost ({name})", f"${cost:.4f}")
    return table


def build_export_panel(export: ExportFile, output: str) -> Panel:
    body = Text()
    body.append(f"File: {export.filename}\n")
    body.append(f"Rows: {export.rows}\n")
    body.append(f"MIME: {export.mime_type}\n")
    body.append(f"Written to: {output}", style="dim")
    return Panel(body, title=Text("Export", style="bold green"), border_style="green")


def build_failure_panel(failure: Failure) -> Panel:
    body = Text()
    body.append(failure.message + "\n", style="bold")
    body.append(f"kind: {failure.kind.value}", style="dim")
    if failure.status_code is not None:
        body.append(f"\nstatus: {failure.status_code}", style="dim")
    if failure.code:
        body.append(f"\ncode: {failure.code}", style="dim")
    return Panel(body, title=Text("Error", style="bold red"), border_style="red")
