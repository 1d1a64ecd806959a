"""Adaptador email builtin: SMTP (smtplib).

Es el fallback sin proveedor externo: envía a través del servidor de correo
de la organización. No hay API de estado ni de lectura: esas operaciones
devuelven `not_supported`.
"""

from __future__ import annotations

import smtplib
import ssl
import uuid
from email.message import EmailMessage as MimeMessage
from email.utils import formataddr, make_msgid
from typing import Any, Callable

from core.config import AppSettings
from core.domain.base import Bag, parse_request
from core.domain.common import ConnectionStatus
from core.domain.messaging import EmailMessage, EmailReceipt
from core.logging import get_logger
from core.result import BatchResult, Failure, FailureKind, Ok, fail, not_configured, not_supported

SmtpFactory = Callable[..., smtplib.SMTP]

_log = get_logger(__name__)


class SmtpAdapter:
    provider_id = "smtp"

    def __init__(
        self,
        host: str | None = None,
        port: int = 587,
        username: str | None = None,
        password: str | None = None,
        from_email: str | None = None,
        from_name: str | None = None,
        *,
        security: str = "starttls",
        settings: AppSettings | None = None,
        smtp_factory: SmtpFactory | None = None,
    ) -> None:
        self._settings = settings or AppSettings()
        self._host = host or ""
        self._port = port
        self._username = username
        self._password = password
        self._from_email = from_email
        self._from_name = from_name or self._settings.organization_name
        self._security = security
        if smtp_factory is not None:
            self._factory = smtp_factory
        elif security == "ssl":
            self._factory = smtplib.SMTP_SSL
        else:
            self._factory = smtplib.SMTP

    def build_message(self, message: EmailMessage) -> MimeMessage:
        mime = MimeMessage()
        sender = message.from_email or self._from_email or ""
        name = message.from_name or self._from_name
        mime["From"] = formataddr((name, sender)) if name else sender
        mime["To"] = ", ".join(message.to)
        if message.cc:
            mime["Cc"] = ", ".join(message.cc)
        if message.reply_to:
            mime["Reply-To"] = message.reply_to
        mime["Subject"] = message.subject
        domain = sender.rsplit("@", 1)[-1] if "@" in sender else None
        mime["Message-ID"] = make_msgid(idstring=uuid.uuid4().hex[:12], domain=domain)

        if message.html:
            mime.set_content("This message requires an HTML-capable email client.")
            mime.add_alternative(message.body, subtype="html")
        else:
            mime.set_content(message.body)

        for att in message.attachments:
            maintype, _, subtype = att.content_type.partition("/")
            mime.add_attachment(
                att.content,
                maintype=maintype or "application",
                subtype=subtype or "octet-stream",
                filename=att.filename,
            )
        return mime

    def _connect(self) -> smtplib.SMTP:
        client = self._factory(self._host, self._port, timeout=self._settings.http_timeout_seconds)
        try:
            if self._security == "starttls":
                client.starttls(context=ssl.create_default_context())
            if self._username:
                client.login(self._username, self._password or "")
        except BaseException:
            # Sin sesión usable no hay `quit()`: se cierra el socket.
            client.close()
            raise
        return client

    def send(self, message: EmailMessage | Bag) -> Ok[EmailReceipt] | Failure:
        parsed = parse_request(EmailMessage, message)
        if isinstance(parsed, Failure):
            return parsed
        if not self._host:
            return not_configured("SMTP", "host")
        msg = parsed.value
        if not (msg.from_email or self._from_email):
            return fail(FailureKind.INVALID_REQUEST, "From address is required", code="missing_from")

        mime = self.build_message(msg)
        recipients = [*msg.to, *msg.cc, *msg.bcc]
        try:
            client = self._connect()
            try:
                refused = client.send_message(mime, to_addrs=recipients)
            finally:
                client.quit()
        except smtplib.SMTPResponseException as exc:
            return self._smtp_failure(exc.smtp_code, exc.smtp_error)
        except smtplib.SMTPRecipientsRefused as exc:
            return fail(
                FailureKind.API_ERROR,
                "All recipients were refused",
                details={"refused": sorted(exc.recipients)},
            )
        except (smtplib.SMTPException, OSError) as exc:
            _log.warning("smtp.failure", host=self._host, error=str(exc))
            return fail(FailureKind.TRANSPORT_ERROR, f"SMTP: {exc}")

        return Ok(
            EmailReceipt(
                provider=self.provider_id,
                message_id=mime["Message-ID"],
                status="sent",
                recipients=len(recipients) - len(refused or {}),
            )
        )

    def _smtp_failure(self, code: int, error: bytes | str) -> Failure:
        message = error.decode("utf-8", "replace") if isinstance(error, bytes) else str(error)
        _log.warning("smtp.failure", host=self._host, code=code, error=message)
        return fail(FailureKind.API_ERROR, message or "SMTP error", status_code=code)

    def send_bulk(self, messages: list[EmailMessage | Bag]) -> BatchResult[EmailReceipt]:
        batch: BatchResult[EmailReceipt] = BatchResult()
        for message in messages:
            batch.record(self.send(message))
        return batch

    def get_status(self, message_id: str) -> Ok[dict[str, Any]] | Failure:
        return not_supported("get_status", "SMTP")

    def fetch_emails(self, folder: str = "INBOX", limit: int = 50) -> Ok[list[dict[str, Any]]] | Failure:
        return not_supported("fetch_emails", "SMTP")

    def test_connection(self) -> Ok[ConnectionStatus] | Failure:
        if not self._host:
            return not_configured("SMTP", "host")
        try:
            client = self._connect()
            try:
                code, _ = client.noop()
            finally:
                client.quit()
        except smtplib.SMTPResponseException as exc:
            return self._smtp_failure(exc.smtp_code, exc.smtp_error)
        except (smtplib.SMTPException, OSError) as exc:
            return fail(FailureKind.TRANSPORT_ERROR, f"SMTP: {exc}")
        return Ok(
            ConnectionStatus(
                provider=self.provider_id,
                account=self._username,
                details={"host": self._host, "port": self._port, "noop": code},
            )
        )

    def get_capabilities(self) -> dict[str, bool]:
        return {
            "html": True,
            "attachments": True,
            "templates": False,
            "tracking": False,
            "fetch": False,
            "bulk": True,
        }
