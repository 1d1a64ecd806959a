"""Wrapper de httpx: el "transport helper" de todos los adaptadores remotos.

Por qué un wrapper:
- Estandariza timeouts, headers y autenticación para que todos los proveedores
  se comporten igual.
- Convierte cada respuesta en un `Result`: los fallos remotos son valores,
  nunca excepciones.
- Facilita testeo: se inyecta un `httpx.MockTransport` vía `transport=`.

Clasificación:
- error de red/timeout/DNS          -> transport_error
- 2xx sin cuerpo                    -> Ok(True)
- 2xx con cuerpo                    -> Ok(JSON) (o texto / respuesta cruda)
- 2xx con JSON ilegible             -> parse_error
- cualquier otro status             -> api_error (mensaje del proveedor + status)

Sin reintentos ni backoff: una petición, un resultado.
"""

from __future__ import annotations

import time
from typing import Any, Callable, Literal, Mapping

import httpx

from core.config import AppSettings
from core.logging import get_logger
from core.result import Failure, FailureKind, Ok, fail

Expect = Literal["json", "text", "response"]
ErrorExtractor = Callable[[Any], "str | None"]

_log = get_logger(__name__)


def dig(data: Any, *path: str | int) -> Any:
    """Navega dicts/listas anidados; devuelve None si falta cualquier tramo."""

    current = data
    for key in path:
        if isinstance(key, int):
            if not isinstance(current, list) or len(current) <= key:
                return None
            current = current[key]
        else:
            if not isinstance(current, Mapping) or key not in current:
                return None
            current = current[key]
    return current


def default_error_message(body: Any) -> str | None:
    """Mensaje de error para los envelopes más comunes."""

    candidates = (
        dig(body, "error", "message"),
        dig(body, "errors", 0, "message"),
        dig(body, 0, "message"),
        dig(body, "message"),
        dig(body, "detail"),
        dig(body, "error_description"),
        dig(body, "error"),
    )
    for candidate in candidates:
        if isinstance(candidate, str) and candidate.strip():
            return candidate.strip()
    return None


def build_client(
    settings: AppSettings | None = None,
    *,
    base_url: str = "",
    auth: httpx.Auth | tuple[str, str] | None = None,
    timeout: float | None = None,
    extra_headers: dict[str, str] | None = None,
    transport: httpx.BaseTransport | None = None,
) -> httpx.Client:
    """Crea un `httpx.Client` síncrono con defaults consistentes."""

    settings = settings or AppSettings()
    headers: dict[str, str] = {
        "User-Agent": settings.user_agent,
        "Accept": "application/json",
    }
    if extra_headers:
        headers.update(extra_headers)
    return httpx.Client(
        base_url=base_url,
        auth=auth,
        timeout=httpx.Timeout(timeout or settings.http_timeout_seconds),
        headers=headers,
        transport=transport,
    )


class HttpTransport:
    """Una petición autenticada -> un `Result`.

    `error_message` y `error_code` extraen del cuerpo de error el mensaje y el
    código propios del proveedor; cada adaptador pasa los suyos.
    """

    def __init__(
        self,
        provider: str,
        *,
        base_url: str = "",
        settings: AppSettings | None = None,
        auth: httpx.Auth | tuple[str, str] | None = None,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
        error_message: ErrorExtractor = default_error_message,
        error_code: ErrorExtractor | None = None,
    ) -> None:
        self.provider = provider
        self._client = build_client(
            settings,
            base_url=base_url,
            auth=auth,
            timeout=timeout,
            extra_headers=headers,
            transport=transport,
        )
        self._error_message = error_message
        self._error_code = error_code

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "HttpTransport":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
        json: Any = None,
        data: Mapping[str, Any] | None = None,
        content: str | bytes | None = None,
        headers: Mapping[str, str] | None = None,
        expect: Expect = "json",
    ) -> Ok[Any] | Failure:
        started = time.perf_counter()
        try:
            response = self._client.request(
                method,
                path,
                params=params,
                json=json,
                data=data,
                content=content,
                headers=headers,
            )
        except httpx.TransportError as exc:
            message = str(exc) or exc.__class__.__name__
            _log.warning(
                "http.failure",
                provider=self.provider,
                method=method,
                path=path,
                kind=FailureKind.TRANSPORT_ERROR.value,
                error=message,
            )
            return fail(
                FailureKind.TRANSPORT_ERROR,
                f"{self.provider}: {message}",
                details={"exception": exc.__class__.__name__},
            )

        elapsed_ms = round((time.perf_counter() - started) * 1000, 1)
        _log.debug(
            "http.request",
            provider=self.provider,
            method=method,
            path=path,
            status=response.status_code,
            elapsed_ms=elapsed_ms,
        )

        if response.is_success:
            return self._success(response, expect)
        return self._api_error(response, method, path)

    def _success(self, response: httpx.Response, expect: Expect) -> Ok[Any] | Failure:
        if expect == "response":
            return Ok(response)
        if not response.content.strip():
            return Ok(True)
        if expect == "text":
            return Ok(response.text)
        try:
            return Ok(response.json())
        except ValueError as exc:
            return fail(
                FailureKind.PARSE_ERROR,
                f"{self.provider}: response is not valid JSON ({exc})",
                status_code=response.status_code,
                details={"body": response.text[:500]},
            )

    def _api_error(self, response: httpx.Response, method: str, path: str) -> Failure:
        try:
            body: Any = response.json()
        except ValueError:
            body = response.text

        message = self._error_message(body) or response.reason_phrase or f"HTTP {response.status_code}"
        code = self._error_code(body) if self._error_code else None

        _log.warning(
            "http.failure",
            provider=self.provider,
            method=method,
            path=path,
            kind=FailureKind.API_ERROR.value,
            status=response.status_code,
            error=message,
        )
        return fail(
            FailureKind.API_ERROR,
            message,
            status_code=response.status_code,
            code=code,
            details={"body": body} if body not in ("", None) else {},
        )


def flatten_params(data: Mapping[str, Any], prefix: str = "") -> dict[str, str]:
    """Dict anidado -> claves con corchetes (`a[b][0][c]`) para cuerpos form-encoded."""

    flat: dict[str, str] = {}
    for key, value in data.items():
        name = f"{prefix}[{key}]" if prefix else str(key)
        if value is None:
            continue
        if isinstance(value, Mapping):
            flat.update(flatten_params(value, name))
        elif isinstance(value, (list, tuple)):
            for index, item in enumerate(value):
                if isinstance(item, Mapping):
                    flat.update(flatten_params(item, f"{name}[{index}]"))
                else:
                    flat[f"{name}[{index}]"] = str(item)
        elif isinstance(value, bool):
            flat[name] = "true" if value else "false"
        else:
            flat[name] = str(value)
    return flat
