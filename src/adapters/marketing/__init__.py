"""Adaptadores de email marketing (`core.interfaces.marketing.MarketingAdapter`)."""

from adapters.marketing.mailchimp import MailchimpAdapter

__all__ = [
	"MailchimpAdapter",
]
