"""Adaptadores SMS (cada módulo implementa `core.interfaces.sms.SMSAdapter`)."""

from adapters.sms.plivo import PlivoAdapter
from adapters.sms.twilio import TwilioAdapter

__all__ = [
	"PlivoAdapter",
	"TwilioAdapter",
]
