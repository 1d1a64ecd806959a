from __future__ import annotations

import pytest

from core.domain.base import parse_datetime, parse_request
from core.domain.messaging import EmailMessage, SmsMessage
from core.result import BatchResult, Failure, FailureKind, Ok, fail, not_configured, not_supported
from core.signatures import canonicalize, constant_time_equals, hmac_digest, plain_hash_hex


def test_fail_normalizes_code_to_string() -> None:
    failure = fail(FailureKind.API_ERROR, "boom", status_code=400, code=21211)
    assert failure.code == "21211"
    assert failure.status_code == 400
    assert failure.ok is False


def test_unwrap() -> None:
    assert Ok(3).unwrap() == 3
    with pytest.raises(ValueError, match="not_found"):
        fail(FailureKind.NOT_FOUND, "missing").unwrap()


def test_not_supported_and_not_configured() -> None:
    failure = not_supported("refund_payment", "Zelle")
    assert failure.kind is FailureKind.NOT_SUPPORTED
    assert failure.details == {"operation": "refund_payment", "provider": "Zelle"}

    missing = not_configured("Twilio", "account_sid", "auth_token")
    assert missing.kind is FailureKind.NOT_CONFIGURED
    assert "account_sid, auth_token" in missing.message


def test_batch_result_counts() -> None:
    batch: BatchResult[int] = BatchResult()
    batch.record(Ok(1))
    batch.record(fail(FailureKind.API_ERROR, "x"))
    batch.record(Ok(2))
    assert (batch.succeeded, batch.failed, batch.total) == (2, 1, 3)


def test_parse_request_accepts_mapping_and_aliases() -> None:
    result = parse_request(SmsMessage, {"to": "+15550001111", "message": "hi", "from": "+15550002222"})
    assert isinstance(result, Ok)
    assert result.value.body == "hi"
    assert result.value.from_number == "+15550002222"


def test_parse_request_returns_invalid_request() -> None:
    result = parse_request(EmailMessage, {"to": [], "subject": "s", "message": "b"})
    assert isinstance(result, Failure)
    assert result.kind is FailureKind.INVALID_REQUEST
    assert result.details["errors"][0]["loc"] == "to"


def test_email_addresses_split_on_commas() -> None:
    result = parse_request(EmailMessage, to="a@example.org, b@example.org", subject="s", message="b")
    assert result.value.to == ["a@example.org", "b@example.org"]


def test_parse_datetime() -> None:
    assert parse_datetime(None) is None
    assert parse_datetime("not a date") is None
    assert parse_datetime("2025-03-01T10:00:00Z").year == 2025


def test_canonicalize_sorts_keys() -> None:
    assert canonicalize("https://x.test/hook", {"b": "2", "a": "1", "c": None}) == "https://x.test/hooka1b2c"


@pytest.mark.parametrize("encoding", ["hex", "base64"])
def test_signature_fails_after_single_byte_mutation(encoding: str) -> None:
    payload = '{"id":"evt_1","amount":500}'
    signature = hmac_digest("secret", payload, encoding=encoding)

    assert constant_time_equals(hmac_digest("secret", payload, encoding=encoding), signature)
    for index in range(len(payload)):
        mutated = payload[:index] + chr(ord(payload[index]) ^ 1) + payload[index + 1 :]
        assert not constant_time_equals(hmac_digest("secret", mutated, encoding=encoding), signature)
    tampered = signature[:-1] + ("0" if signature[-1] != "0" else "1")
    assert not constant_time_equals(hmac_digest("secret", payload, encoding=encoding), tampered)
    assert not constant_time_equals(hmac_digest("other", payload, encoding=encoding), signature)


def test_constant_time_equals_rejects_missing() -> None:
    assert constant_time_equals("abc", None) is False


def test_plain_hash_hex() -> None:
    assert plain_hash_hex("abc") == "a9993e364706816aba3e25717850c26c9cd0d89d"
