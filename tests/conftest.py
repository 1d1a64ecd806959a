"""Fixtures compartidas.

Nada sale a la red: los adaptadores HTTP reciben un `httpx.MockTransport` y
los builtin un store SQLite en memoria.
"""

from __future__ import annotations

import json
from typing import Any, Callable

import httpx
import pytest

from adapters.local_store import LocalStore
from core.config import AppSettings
from core.interfaces.token_cache import MemoryTokenCache


class Recorder:
    """MockTransport que guarda cada request y responde vía `handler`."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.handler = handler
        self.requests: list[httpx.Request] = []
        self.transport = httpx.MockTransport(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]

    def last_json(self) -> Any:
        return json.loads(self.last.content)

    def last_form(self) -> dict[str, str]:
        pairs = httpx.QueryParams(self.last.content.decode("utf-8"))
        return dict(pairs.multi_items())

    def paths(self) -> list[str]:
        return [f"{r.method} {r.url.path}" for r in self.requests]


@pytest.fixture
def settings() -> AppSettings:
    return AppSettings(
        _env_file=None,
        database_url="sqlite://",
        log_level="DEBUG",
        organization_name="Helping Hands",
        site_url="https://example.org",
    )


@pytest.fixture
def store() -> LocalStore:
    return LocalStore.in_memory()


@pytest.fixture
def token_cache() -> MemoryTokenCache:
    return MemoryTokenCache()


@pytest.fixture
def recorder_factory() -> Callable[[Callable[[httpx.Request], httpx.Response]], Recorder]:
    return Recorder
