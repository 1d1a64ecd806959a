from __future__ import annotations

import hashlib
import smtplib

import httpx

from adapters.email.sendgrid import SendGridAdapter
from adapters.email.smtp import SmtpAdapter
from adapters.sms.plivo import PlivoAdapter
from adapters.sms.twilio import TwilioAdapter
from core.domain.messaging import SmsStatus
from core.result import Failure, FailureKind, Ok
from core.signatures import canonicalize, hmac_digest

HOOK_URL = "https://example.org/sms/status"


def test_twilio_send_message(settings, recorder_factory) -> None:
    recorder = recorder_factory(
        lambda r: httpx.Response(
            201,
            json={"sid": "SM1", "status": "queued", "to": "+15551230000", "num_segments": "1", "price": None},
        )
    )
    twilio = TwilioAdapter("AC1", "token", "+15550000000", settings=settings, transport=recorder.transport)

    result = twilio.send_message({"to": "+15551230000", "message": "Thanks for your gift!"})

    assert isinstance(result, Ok)
    assert result.value.message_id == "SM1"
    assert result.value.status is SmsStatus.QUEUED
    assert result.value.price == 0.0079
    assert recorder.last.url.path == "/2010-04-01/Accounts/AC1/Messages.json"
    assert recorder.last_form() == {"To": "+15551230000", "From": "+15550000000", "Body": "Thanks for your gift!"}


def test_twilio_error_code(settings, recorder_factory) -> None:
    recorder = recorder_factory(
        lambda r: httpx.Response(400, json={"code": 21211, "message": "The 'To' number is not a valid phone number."})
    )
    twilio = TwilioAdapter("AC1", "token", "+15550000000", settings=settings, transport=recorder.transport)

    result = twilio.send_message({"to": "123", "message": "hi"})

    assert result.kind is FailureKind.API_ERROR
    assert result.code == "21211"
    assert result.status_code == 400


def test_twilio_requires_sender(settings, recorder_factory) -> None:
    recorder = recorder_factory(lambda r: httpx.Response(500))
    twilio = TwilioAdapter("AC1", "token", settings=settings, transport=recorder.transport)
    assert twilio.send_message({"to": "+1555", "message": "hi"}).code == "missing_from"
    assert recorder.requests == []


def test_twilio_bulk_counts_each_result(settings, recorder_factory) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        to = dict(httpx.QueryParams(request.content.decode("utf-8")))["To"]
        if to == "bad":
            return httpx.Response(400, json={"code": 21211, "message": "invalid"})
        return httpx.Response(201, json={"sid": f"SM-{to}", "status": "queued"})

    recorder = recorder_factory(handler)
    twilio = TwilioAdapter("AC1", "token", "+15550000000", settings=settings, transport=recorder.transport)

    batch = twilio.send_bulk(["+15551", "bad", "+15552"], "Reminder")

    assert (batch.succeeded, batch.failed) == (2, 1)
    assert len(recorder.requests) == 3


def test_twilio_webhook_signature(settings) -> None:
    twilio = TwilioAdapter("AC1", "token", settings=settings)
    payload = {"MessageSid": "SM1", "MessageStatus": "delivered", "To": "+15551"}
    signature = hmac_digest("token", canonicalize(HOOK_URL, payload), algorithm="sha1", encoding="base64")

    assert twilio.validate_webhook_signature(payload, signature, HOOK_URL)
    assert not twilio.validate_webhook_signature({**payload, "MessageStatus": "failed"}, signature, HOOK_URL)
    assert not twilio.validate_webhook_signature(payload, None, HOOK_URL)
    assert twilio.process_webhook(payload).status is SmsStatus.DELIVERED


def test_webhook_segment_counts_tolerate_junk(settings) -> None:
    twilio = TwilioAdapter("AC1", "token", settings=settings)
    plivo = PlivoAdapter("MA1", "token", settings=settings)

    assert twilio.process_webhook({"MessageSid": "SM1", "NumSegments": "abc"}).segments == 1
    assert twilio.process_webhook({"MessageSid": "SM1", "NumSegments": "3"}).segments == 3
    assert plivo.process_webhook({"MessageUUID": "uuid-1", "Units": "n/a"}).segments == 1
    assert plivo.process_webhook({"MessageUUID": "uuid-1", "Units": 2}).segments == 2


def test_cost_estimates(settings) -> None:
    twilio = TwilioAdapter("AC1", "token", settings=settings)
    plivo = PlivoAdapter("MA1", "token", settings=settings)
    assert twilio.calculate_cost("+15551234567", "a" * 161) == 0.0158
    assert twilio.calculate_cost("+447700900000", "hola") == 0.05
    assert plivo.calculate_cost("+15551234567", "é" * 71) == 0.013
    assert plivo.calculate_cost("+34600000000", "hi") == 0.04


def test_twilio_not_configured(settings) -> None:
    assert TwilioAdapter(settings=settings).get_balance().kind is FailureKind.NOT_CONFIGURED


def test_plivo_send_message_json(settings, recorder_factory) -> None:
    recorder = recorder_factory(
        lambda r: httpx.Response(202, json={"message": "message(s) queued", "message_uuid": ["uuid-1"]})
    )
    plivo = PlivoAdapter("MA1", "token", "+15550000000", settings=settings, transport=recorder.transport)

    result = plivo.send_message({"to": "+15551230000", "message": "hello"})

    assert result.value.message_id == "uuid-1"
    assert result.value.price == 0.0065
    assert recorder.last.url.path == "/v1/Account/MA1/Message/"
    assert recorder.last_json() == {"src": "+15550000000", "dst": "+15551230000", "text": "hello"}


def test_plivo_webhook_signature(settings) -> None:
    plivo = PlivoAdapter("MA1", "token", settings=settings)
    payload = {"MessageUUID": "uuid-1", "Status": "delivered"}
    signature = hashlib.sha1((canonicalize(HOOK_URL, payload) + "token").encode("utf-8")).hexdigest()

    assert plivo.validate_webhook_signature(payload, signature, HOOK_URL)
    assert not plivo.validate_webhook_signature({**payload, "Status": "failed"}, signature, HOOK_URL)
    assert plivo.process_webhook(payload).message_id == "uuid-1"


def test_sendgrid_send_reads_message_id_header(settings, recorder_factory) -> None:
    recorder = recorder_factory(lambda r: httpx.Response(202, headers={"X-Message-Id": "sg-123"}))
    sendgrid = SendGridAdapter("SG.key", "noreply@example.org", settings=settings, transport=recorder.transport)

    result = sendgrid.send(
        {"to": "a@example.org", "cc": "b@example.org", "subject": "Receipt", "message": "<p>Thanks</p>", "tags": ["receipts"]}
    )

    assert result.value.message_id == "sg-123"
    assert result.value.status == "queued"
    assert result.value.recipients == 2
    body = recorder.last_json()
    assert body["from"] == {"email": "noreply@example.org", "name": "Helping Hands"}
    assert body["personalizations"][0]["cc"] == [{"email": "b@example.org"}]
    assert body["content"][0]["type"] == "text/html"
    assert body["categories"] == ["receipts"]


def test_sendgrid_fetch_is_not_supported(settings) -> None:
    result = SendGridAdapter("SG.key", settings=settings).fetch_emails()
    assert result.kind is FailureKind.NOT_SUPPORTED


class FakeSmtp:
    instances: list["FakeSmtp"] = []

    def __init__(self, host: str, port: int, timeout: float | None = None) -> None:
        self.host = host
        self.port = port
        self.sent: list[tuple[object, list[str]]] = []
        self.logged_in: tuple[str, str] | None = None
        self.started_tls = False
        self.closed = False
        FakeSmtp.instances.append(self)

    def starttls(self, context=None) -> None:
        self.started_tls = True

    def login(self, user: str, password: str) -> None:
        self.logged_in = (user, password)

    def send_message(self, message, to_addrs=None) -> dict:
        self.sent.append((message, list(to_addrs or [])))
        return {}

    def noop(self) -> tuple[int, bytes]:
        return 250, b"OK"

    def quit(self) -> None:
        self.closed = True

    def close(self) -> None:
        self.closed = True


def test_smtp_send(settings) -> None:
    FakeSmtp.instances.clear()
    smtp = SmtpAdapter(
        "mail.example.org",
        587,
        "user",
        "pass",
        "office@example.org",
        settings=settings,
        smtp_factory=FakeSmtp,
    )

    result = smtp.send({"to": ["a@example.org"], "bcc": ["b@example.org"], "subject": "Hello", "message": "Plain", "html": False})

    assert isinstance(result, Ok)
    assert result.value.recipients == 2
    client = FakeSmtp.instances[-1]
    assert client.started_tls
    assert client.logged_in == ("user", "pass")
    assert client.closed
    mime, recipients = client.sent[0]
    assert recipients == ["a@example.org", "b@example.org"]
    assert "Bcc" not in mime
    assert mime["From"] == "Helping Hands <office@example.org>"


def test_smtp_connection_error_is_transport_error(settings) -> None:
    def refuse(*args, **kwargs):
        raise ConnectionRefusedError("refused")

    smtp = SmtpAdapter("mail.example.org", from_email="office@example.org", settings=settings, smtp_factory=refuse)
    result = smtp.send({"to": "a@example.org", "subject": "s", "message": "b"})
    assert isinstance(result, Failure)
    assert result.kind is FailureKind.TRANSPORT_ERROR


def test_smtp_response_error_keeps_code(settings) -> None:
    class Rejecting(FakeSmtp):
        def login(self, user: str, password: str) -> None:
            raise smtplib.SMTPAuthenticationError(535, b"Authentication failed")

    smtp = SmtpAdapter("mail.example.org", username="u", from_email="o@example.org", settings=settings, smtp_factory=Rejecting)
    result = smtp.test_connection()
    assert result.kind is FailureKind.API_ERROR
    assert result.status_code == 535
    assert result.message == "Authentication failed"


def test_smtp_failed_login_closes_socket(settings) -> None:
    FakeSmtp.instances.clear()

    class Rejecting(FakeSmtp):
        def login(self, user: str, password: str) -> None:
            raise smtplib.SMTPAuthenticationError(535, b"Authentication failed")

    smtp = SmtpAdapter("mail.example.org", username="u", from_email="o@example.org", settings=settings, smtp_factory=Rejecting)

    result = smtp.send({"to": "a@example.org", "subject": "s", "message": "b"})

    assert isinstance(result, Failure)
    assert result.status_code == 535
    assert FakeSmtp.instances[-1].closed is True
    assert FakeSmtp.instances[-1].sent == []


def test_smtp_unsupported_and_unconfigured(settings) -> None:
    assert SmtpAdapter(settings=settings).send({"to": "a@example.org", "subject": "s", "message": "b"}).kind is FailureKind.NOT_CONFIGURED
    assert SmtpAdapter("h", settings=settings).get_status("x").kind is FailureKind.NOT_SUPPORTED
