"""Adaptadores de pago (`core.interfaces.payment.PaymentAdapter`) y webhooks."""

from adapters.payment.stripe import StripeAdapter
from adapters.payment.stripe_webhook import StripeWebhookHandler
from adapters.payment.zelle import ZelleAdapter

__all__ = [
	"StripeAdapter",
	"StripeWebhookHandler",
	"ZelleAdapter",
]
