"""Sesión OAuth sobre `HttpTransport`.

Política única para todos los adaptadores OAuth:
- El token se lee del `TokenCache`; si falta o caduca (con margen), se
  refresca antes de llamar.
- Si la llamada devuelve 401, se refresca una vez y se reintenta una vez.
- Un segundo 401 tras el refresh es el resultado final (api_error).
"""

from __future__ import annotations

from typing import Any, Callable

from adapters.http_client import HttpTransport
from core.interfaces.token_cache import OAuthToken, TokenCache
from core.logging import get_logger
from core.result import Failure, FailureKind, Ok, fail

TokenRefresher = Callable[[OAuthToken | None], "Ok[OAuthToken] | Failure"]
PathBuilder = Callable[[OAuthToken], str]

_log = get_logger(__name__)


class OAuthSession:
    def __init__(
        self,
        transport: HttpTransport,
        *,
        cache: TokenCache,
        cache_key: str,
        refresher: TokenRefresher,
        margin_seconds: int = 60,
    ) -> None:
        self._transport = transport
        self._cache = cache
        self._cache_key = cache_key
        self._refresher = refresher
        self._margin = margin_seconds

    @property
    def provider(self) -> str:
        return self._transport.provider

    def current_token(self) -> Ok[OAuthToken] | Failure:
        token = self._cache.get(self._cache_key)
        if token is not None and not token.is_expired(self._margin):
            return Ok(token)
        return self.refresh(token)

    def refresh(self, previous: OAuthToken | None = None) -> Ok[OAuthToken] | Failure:
        _log.info("oauth.refresh", provider=self.provider, had_token=previous is not None)
        result = self._refresher(previous)
        if isinstance(result, Failure):
            self._cache.delete(self._cache_key)
            return result
        self._cache.set(self._cache_key, result.value)
        return result

    def request(self, method: str, path: str | PathBuilder, **kwargs: Any) -> Ok[Any] | Failure:
        token = self.current_token()
        if isinstance(token, Failure):
            return token

        result = self._send(token.value, method, path, **kwargs)
        if not (isinstance(result, Failure) and result.status_code == 401):
            return result

        refreshed = self.refresh(token.value)
        if isinstance(refreshed, Failure):
            return refreshed
        retried = self._send(refreshed.value, method, path, **kwargs)
        if isinstance(retried, Failure) and retried.status_code == 401:
            _log.warning("oauth.unauthorized_after_refresh", provider=self.provider)
        return retried

    def _send(self, token: OAuthToken, method: str, path: str | PathBuilder, **kwargs: Any) -> Ok[Any] | Failure:
        headers = dict(kwargs.pop("headers", None) or {})
        headers["Authorization"] = f"Bearer {token.access_token}"
        url = path(token) if callable(path) else path
        return self._transport.request(method, url, headers=headers, **kwargs)


def token_from_result(result: Ok[Any] | Failure, *, refresh_token: str | None = None) -> Ok[OAuthToken] | Failure:
    """Convierte la respuesta de un endpoint `/token` en `OAuthToken`."""

    if isinstance(result, Failure):
        return result
    body = result.value
    if not isinstance(body, dict) or not body.get("access_token"):
        return fail(FailureKind.PARSE_ERROR, "Token response has no access_token")
    return Ok(OAuthToken.from_response(body, refresh_token=refresh_token))
