"""Puerto de caché de credenciales OAuth.

Por qué un puerto:
- El token vive fuera del adaptador (memoria, store de la app, keyring...).
- Un único escritor: el adaptador que refresca su propio token. No hace falta
  lock; una carrera solo provoca un refresh de más.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Protocol, runtime_checkable


@dataclass
class OAuthToken:
    access_token: str
    expires_at: datetime | None = None
    refresh_token: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_response(cls, body: dict[str, Any], *, refresh_token: str | None = None) -> "OAuthToken":
        """Construye el token desde una respuesta estándar de `/token`."""

        expires_in = body.get("expires_in")
        expires_at = None
        if expires_in is not None:
            expires_at = datetime.now(timezone.utc) + timedelta(seconds=int(expires_in))
        known = {"access_token", "expires_in", "refresh_token"}
        return cls(
            access_token=str(body["access_token"]),
            expires_at=expires_at,
            refresh_token=body.get("refresh_token") or refresh_token,
            extra={k: v for k, v in body.items() if k not in known},
        )

    def is_expired(self, margin_seconds: int = 0, *, now: datetime | None = None) -> bool:
        if self.expires_at is None:
            return False
        now = now or datetime.now(timezone.utc)
        return now >= self.expires_at - timedelta(seconds=margin_seconds)


@runtime_checkable
class TokenCache(Protocol):
    def get(self, key: str) -> OAuthToken | None:
        ...

    def set(self, key: str, token: OAuthToken) -> None:
        ...

    def delete(self, key: str) -> None:
        ...


class MemoryTokenCache:
    """Implementación en memoria (por proceso)."""

    def __init__(self) -> None:
        self._tokens: dict[str, OAuthToken] = {}

    def get(self, key: str) -> OAuthToken | None:
        return self._tokens.get(key)

    def set(self, key: str, token: OAuthToken) -> None:
        self._tokens[key] = token

    def delete(self, key: str) -> None:
        self._tokens.pop(key, None)
