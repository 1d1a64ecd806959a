"""Doctor command for environment diagnostics."""

from __future__ import annotations

import typer
from rich.console import Console
from rich.table import Table
from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError

from adapters.local_store import Base, LocalStore
from core.config import AppSettings, get_user_env_file, write_user_env_vars
from core.registry import CATEGORIES, IntegrationManager, default_manager
from core.result import Failure

app = typer.Typer(no_args_is_help=True, help="Environment diagnostics and configuration checks.")

_console = Console()

# Claves de credencial que lee cada factory del registry.
CREDENTIAL_KEYS: dict[str, tuple[str, ...]] = {
    "twilio": ("account_sid", "auth_token", "from_number"),
    "plivo": ("auth_id", "auth_token", "from_number"),
    "sendgrid": ("api_key", "from_email", "from_name"),
    "smtp": ("host", "port", "username", "password", "from_email", "from_name", "security"),
    "hubspot": ("access_token",),
    "salesforce": ("client_id", "client_secret", "refresh_token", "instance_url", "sandbox"),
    "donorperfect": ("api_key",),
    "stripe": ("secret_key", "webhook_secret"),
    "zoom": ("account_id", "client_id", "client_secret"),
    "jitsi": ("domain", "app_id", "app_secret"),
    "mailchimp": ("api_key", "from_email", "from_name"),
    "jotform": ("api_key", "webhook_token"),
    "builtin_forms": ("webhook_secret",),
    "asana": ("access_token", "workspace_id"),
    "monday": ("api_token",),
    "trello": ("api_key", "api_token"),
    "segment": ("write_key",),
    "checkr": ("api_key", "webhook_secret"),
    "wealthengine": ("api_key",),
    "treasury": ("export_format", "currency"),
}
SECRET_HINTS = ("token", "secret", "password", "key")


def credential_env_name(provider_id: str, key: str) -> str:
    return f"NS_INTEGRATIONS_PROVIDER_CREDENTIALS__{provider_id.upper()}__{key.upper()}"


def _check_store(settings: AppSettings) -> tuple[bool, str]:
    try:
        store = LocalStore.from_settings(settings)
        existing = set(inspect(store.engine).get_table_names())
    except SQLAlchemyError as exc:
        return False, exc.__class__.__name__
    missing = sorted(set(Base.metadata.tables) - existing)
    if missing:
        return False, f"Missing tables: {', '.join(missing)} (run `init-store`)"
    return True, settings.database_url


def _check_connection(manager: IntegrationManager, category: str) -> tuple[str, str]:
    result = manager.get_active_provider(category)
    if isinstance(result, Failure):
        return "SKIP", result.message
    adapter = result.value
    test = getattr(adapter, "test_connection", None)
    if test is None:
        return "OK", "no remote connection"
    outcome = test()
    if isinstance(outcome, Failure):
        return "FAIL", f"{outcome.kind.value}: {outcome.message}"
    return "OK", outcome.value.account or "connected"


@app.command()
def run(
    live: bool = typer.Option(False, "--live", help="Call test_connection on every active provider."),
) -> None:
    """Run baseline diagnostics and show recommended fixes."""

    settings = AppSettings()
    manager = default_manager(settings)

    table = Table(title="NS-Integrations Doctor")
    table.add_column("Check", style="bright_green", no_wrap=True)
    table.add_column("Status", style="white")
    table.add_column("Details", style="dim")

    # Config
    table.add_row("User config", "OK" if get_user_env_file().exists() else "OPTIONAL", str(get_user_env_file()))
    table.add_row("Log", "OK", f"{settings.log_level} / {settings.log_format}")
    table.add_row("HTTP timeout", "OK", f"{settings.http_timeout_seconds:g}s")

    ok_store, detail_store = _check_store(settings)
    table.add_row("Local store", "OK" if ok_store else "FAIL", detail_store)

    for category in CATEGORIES:
        provider_id = manager.get_active_provider_id(category)
        if not provider_id:
            table.add_row(f"{category}", "OPTIONAL", "no provider selected")
            continue
        if live:
            status, detail = _check_connection(manager, category)
        elif manager.is_provider_connected(category, provider_id):
            status, detail = "OK", "credentials present"
        else:
            status, detail = "MISSING", f"run `doctor setup {provider_id}`"
        table.add_row(f"{category}: {provider_id}", status, detail)

    _console.print(table)

    if not ok_store:
        _console.print("\n[yellow]Note:[/yellow] built-in calendar, forms, Zelle and Jitsi need the local store.")


@app.command()
def setup(
    provider: str = typer.Argument(..., help="Provider id (p.ej. twilio, stripe, hubspot)."),
) -> None:
    """Interactive credentials setup (stores config in the user config .env)."""

    provider_id = provider.strip().lower()
    keys = CREDENTIAL_KEYS.get(provider_id)
    if keys is None:
        raise typer.BadParameter(f"Unknown provider: {provider_id}. Known: {', '.join(sorted(CREDENTIAL_KEYS))}")

    current = AppSettings().credentials_for(provider_id)
    values: dict[str, str | None] = {}
    for key in keys:
        secret = any(hint in key for hint in SECRET_HINTS)
        answer = typer.prompt(
            key,
            default="" if secret else current.get(key, ""),
            show_default=not secret,
            hide_input=secret,
        ).strip()
        values[credential_env_name(provider_id, key)] = answer or None

    if not any(values.values()):
        raise typer.BadParameter("No values entered")

    env_path = write_user_env_vars(values)
    _console.print(f"[green]Saved {provider_id} credentials to:[/green] {env_path}")
