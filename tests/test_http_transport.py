from __future__ import annotations

import httpx

from adapters.http_client import HttpTransport, default_error_message, dig, flatten_params
from core.result import Failure, FailureKind, Ok


def _transport(handler, settings, **kwargs) -> tuple[HttpTransport, list[httpx.Request]]:
    calls: list[httpx.Request] = []

    def record(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return handler(request)

    http = HttpTransport(
        "acme",
        base_url="https://api.acme.test",
        settings=settings,
        transport=httpx.MockTransport(record),
        **kwargs,
    )
    return http, calls


def test_success_returns_json(settings) -> None:
    http, _ = _transport(lambda r: httpx.Response(200, json={"id": 7}), settings)
    assert http.request("GET", "/things/7") == Ok({"id": 7})


def test_empty_success_is_true(settings) -> None:
    http, _ = _transport(lambda r: httpx.Response(204), settings)
    assert http.request("DELETE", "/things/7") == Ok(True)


def test_invalid_json_is_parse_error(settings) -> None:
    http, _ = _transport(lambda r: httpx.Response(200, text="<html>"), settings)
    result = http.request("GET", "/things")
    assert isinstance(result, Failure)
    assert result.kind is FailureKind.PARSE_ERROR


def test_non_2xx_keeps_status_and_vendor_message(settings) -> None:
    http, _ = _transport(
        lambda r: httpx.Response(422, json={"message": "Bad phone", "code": 21211}),
        settings,
        error_code=lambda body: dig(body, "code"),
    )
    result = http.request("POST", "/messages", data={"To": "x"})
    assert isinstance(result, Failure)
    assert result.kind is FailureKind.API_ERROR
    assert result.status_code == 422
    assert result.message == "Bad phone"
    assert result.code == "21211"


def test_plain_text_error_body_falls_back_to_reason(settings) -> None:
    http, _ = _transport(lambda r: httpx.Response(401, text="invalid token"), settings)
    result = http.request("GET", "/me")
    assert result.status_code == 401
    assert result.message == "Unauthorized"
    assert result.details["body"] == "invalid token"


def test_connection_failure_is_transport_error_attempted_once(settings) -> None:
    def boom(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    http, calls = _transport(boom, settings)
    result = http.request("GET", "/me")
    assert isinstance(result, Failure)
    assert result.kind is FailureKind.TRANSPORT_ERROR
    assert result.status_code is None
    assert len(calls) == 1


def test_headers_carry_user_agent(settings) -> None:
    http, calls = _transport(lambda r: httpx.Response(200, json={}), settings, headers={"X-Extra": "1"})
    http.request("GET", "/")
    assert calls[0].headers["User-Agent"] == settings.user_agent
    assert calls[0].headers["X-Extra"] == "1"


def test_default_error_message_envelopes() -> None:
    assert default_error_message({"error": {"message": "nope"}}) == "nope"
    assert default_error_message({"errors": [{"message": "first"}]}) == "first"
    assert default_error_message([{"message": "sf style"}]) == "sf style"
    assert default_error_message({"error": "invalid_grant"}) == "invalid_grant"
    assert default_error_message("plain") is None


def test_dig() -> None:
    data = {"a": [{"b": 1}]}
    assert dig(data, "a", 0, "b") == 1
    assert dig(data, "a", 3, "b") is None
    assert dig(data, "x") is None


def test_flatten_params() -> None:
    flat = flatten_params(
        {"amount": 500, "metadata": {"donor": "42"}, "items": [{"price": "p_1"}], "capture": False, "skip": None}
    )
    assert flat == {
        "amount": "500",
        "metadata[donor]": "42",
        "items[0][price]": "p_1",
        "capture": "false",
    }
