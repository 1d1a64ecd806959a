from __future__ import annotations

from datetime import datetime, timedelta, timezone

import httpx

from adapters.crm.salesforce import SalesforceAdapter
from adapters.video.zoom import ZoomAdapter
from core.interfaces.token_cache import OAuthToken
from core.result import Failure, FailureKind, Ok


def _zoom_handler(api_statuses: list[int], token_calls: list[int]):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "zoom.us":
            token_calls.append(1)
            return httpx.Response(200, json={"access_token": f"tok-{len(token_calls)}", "expires_in": 3600})
        status = api_statuses.pop(0)
        if status == 401:
            return httpx.Response(401, json={"code": 124, "message": "Invalid access token."})
        return httpx.Response(200, json={"email": "host@example.org", "account_id": "acc"})

    return handler


def test_zoom_401_refreshes_and_retries_once(settings, token_cache, recorder_factory) -> None:
    token_calls: list[int] = []
    recorder = recorder_factory(_zoom_handler([401, 200], token_calls))
    zoom = ZoomAdapter("acc", "cid", "secret", token_cache=token_cache, settings=settings, transport=recorder.transport)

    result = zoom.test_connection()

    assert isinstance(result, Ok)
    assert result.value.account == "host@example.org"
    assert len(token_calls) == 2
    api_calls = [r for r in recorder.requests if r.url.host == "api.zoom.us"]
    assert len(api_calls) == 2
    assert api_calls[-1].headers["Authorization"] == "Bearer tok-2"


def test_zoom_second_401_is_final(settings, token_cache, recorder_factory) -> None:
    token_calls: list[int] = []
    recorder = recorder_factory(_zoom_handler([401, 401], token_calls))
    zoom = ZoomAdapter("acc", "cid", "secret", token_cache=token_cache, settings=settings, transport=recorder.transport)

    result = zoom.get_meeting("123")

    assert isinstance(result, Failure)
    assert result.kind is FailureKind.API_ERROR
    assert result.status_code == 401
    assert len([r for r in recorder.requests if r.url.host == "api.zoom.us"]) == 2


def test_zoom_reuses_cached_token(settings, token_cache, recorder_factory) -> None:
    token_calls: list[int] = []
    recorder = recorder_factory(_zoom_handler([200, 200], token_calls))
    zoom = ZoomAdapter("acc", "cid", "secret", token_cache=token_cache, settings=settings, transport=recorder.transport)

    zoom.test_connection()
    zoom.test_connection()

    assert len(token_calls) == 1


def test_zoom_refreshes_expired_token(settings, token_cache, recorder_factory) -> None:
    token_calls: list[int] = []
    recorder = recorder_factory(_zoom_handler([200], token_calls))
    token_cache.set(
        "zoom:acc:cid",
        OAuthToken("stale", expires_at=datetime.now(timezone.utc) + timedelta(seconds=10)),
    )
    zoom = ZoomAdapter("acc", "cid", "secret", token_cache=token_cache, settings=settings, transport=recorder.transport)

    assert isinstance(zoom.test_connection(), Ok)
    assert len(token_calls) == 1
    assert token_cache.get("zoom:acc:cid").access_token == "tok-1"


def test_zoom_without_credentials_is_not_configured(settings) -> None:
    result = ZoomAdapter(settings=settings).list_meetings()
    assert result.kind is FailureKind.NOT_CONFIGURED


def test_salesforce_refresh_then_retry(settings, token_cache, recorder_factory) -> None:
    api_statuses = [401, 200]
    grants: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/oauth2/token"):
            form = dict(httpx.QueryParams(request.content.decode("utf-8")))
            grants.append(form["grant_type"])
            return httpx.Response(
                200,
                json={"access_token": "fresh", "instance_url": "https://acme.my.salesforce.com"},
            )
        if api_statuses.pop(0) == 401:
            return httpx.Response(401, json=[{"message": "Session expired", "errorCode": "INVALID_SESSION_ID"}])
        return httpx.Response(200, json={"Id": "003XX", "FirstName": "Ada", "LastName": "Lovelace", "Email": "ada@example.org"})

    recorder = recorder_factory(handler)
    adapter = SalesforceAdapter(
        "cid",
        "secret",
        refresh_token="refresh-1",
        access_token="expired",
        instance_url="https://acme.my.salesforce.com",
        token_cache=token_cache,
        settings=settings,
        transport=recorder.transport,
    )

    result = adapter.get_contact("003XX")

    assert isinstance(result, Ok)
    assert result.value.email == "ada@example.org"
    assert grants == ["refresh_token"]
    assert recorder.last.headers["Authorization"] == "Bearer fresh"


def test_token_expiry_margin() -> None:
    now = datetime(2025, 1, 1, tzinfo=timezone.utc)
    token = OAuthToken("t", expires_at=now + timedelta(seconds=30))
    assert token.is_expired(60, now=now)
    assert not token.is_expired(0, now=now)
    assert not OAuthToken("t").is_expired(3600)
