"""Adaptadores de email (implementan `core.interfaces.email.EmailAdapter`)."""

from adapters.email.sendgrid import SendGridAdapter
from adapters.email.smtp import SmtpAdapter

__all__ = [
	"SendGridAdapter",
	"SmtpAdapter",
]
