"""Configuración del Core.

Por qué aquí:
- Centraliza variables de entorno (pydantic-settings) sin contaminar la CLI.
- Permite que adaptadores (HTTP/OAuth/store local) lean config de forma consistente.

Las credenciales de proveedor se pasan al construir el adaptador; el registry
las lee de `provider_credentials` (env anidado) para las factories por defecto.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

APP_DIR_NAME = "nonprofit-integrations"


def get_user_config_dir() -> Path:
    """Directorio de configuración por usuario (cross-platform, sin dependencias)."""

    if sys.platform.startswith("win"):
        base = Path(os.environ.get("APPDATA", str(Path.home())))
        return base / APP_DIR_NAME
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / APP_DIR_NAME

    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / APP_DIR_NAME
    return Path.home() / ".config" / APP_DIR_NAME


def get_user_env_file() -> Path:
    return get_user_config_dir() / ".env"


def default_storage_path() -> Path:
    return get_user_config_dir() / "storage"


def default_database_url() -> str:
    return f"sqlite:///{get_user_config_dir() / 'integrations.db'}"


def _parse_env_lines(text: str) -> dict[str, str]:
    data: dict[str, str] = {}
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key:
            data[key] = value
    return data


def write_user_env_vars(values: dict[str, str | None], env_path: Path | None = None) -> Path:
    """Escribe/actualiza variables en el .env global del usuario."""

    env_path = env_path or get_user_env_file()
    env_path.parent.mkdir(parents=True, exist_ok=True)

    existing: dict[str, str] = {}
    if env_path.exists():
        existing = _parse_env_lines(env_path.read_text(encoding="utf-8"))

    existing.update({k: v for k, v in values.items() if v is not None})

    lines = ["# nonprofit-integrations user config (.env)"]
    for key in sorted(existing.keys()):
        lines.append(f"{key}={existing[key]}")
    env_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return env_path


class AppSettings(BaseSettings):
    """Configuración central de la capa de integraciones.

    Por qué pydantic-settings:
    - Tipado + validación en el borde (env vars) sin ensuciar los adaptadores.
    - Un único contrato de configuración para CLI/adapters.
    """

    model_config = SettingsConfigDict(
        env_prefix="NS_INTEGRATIONS_",
        extra="ignore",
        case_sensitive=False,
        # Orden: proyecto primero (dev), luego config global de usuario.
        env_file=(".env", str(get_user_env_file())),
        env_file_encoding="utf-8",
        # NS_INTEGRATIONS_PROVIDER_CREDENTIALS__TWILIO__ACCOUNT_SID=... -> dict anidado.
        env_nested_delimiter="__",
    )

    http_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Timeout por request (segundos) cuando el adaptador no fija uno propio.",
    )
    user_agent: str = Field(
        default="nonprofit-integrations/0.1",
        min_length=1,
        description="User-Agent enviado a las APIs de proveedores.",
    )

    database_url: str = Field(
        default_factory=default_database_url,
        min_length=1,
        description="URL SQLAlchemy del store local (calendario, formularios, Zelle, Jitsi, ficheros, tesorería).",
    )

    storage_path: Path = Field(
        default_factory=default_storage_path,
        description="Raíz del almacenamiento local de ficheros (adaptador `storage.local`).",
    )
    storage_url: str | None = Field(
        default=None,
        description="URL pública que sirve `storage_path`; sin ella, `get_url` devuelve URIs `file://`.",
    )

    log_level: str = Field(
        default="INFO",
        description="Nivel de logging (DEBUG, INFO, WARNING, ERROR).",
    )
    log_format: str = Field(
        default="console",
        pattern="^(console|json)$",
        description="`console` para desarrollo, `json` para agregadores.",
    )

    token_refresh_margin_seconds: int = Field(
        default=60,
        ge=0,
        le=3600,
        description="Margen antes de la expiración en el que un token OAuth se considera caducado.",
    )

    active_providers: dict[str, str] = Field(
        default_factory=dict,
        description="Proveedor activo por categoría (p.ej. {'sms': 'twilio'}). JSON o `NS_INTEGRATIONS_ACTIVE_PROVIDERS__SMS=twilio`.",
    )

    organization_name: str = Field(
        default="Organization",
        min_length=1,
        description="Nombre usado por defecto como remitente/empresa en campañas y reuniones.",
    )

    site_url: str = Field(
        default="http://localhost",
        min_length=1,
        description="URL pública de la app; base de los enlaces a formularios builtin.",
    )

    provider_credentials: dict[str, dict[str, str]] = Field(
        default_factory=dict,
        description="Credenciales por proveedor ({'twilio': {'account_sid': ...}}).",
    )

    def credentials_for(self, provider_id: str) -> dict[str, str]:
        return dict(self.provider_credentials.get(provider_id.lower(), {}))
