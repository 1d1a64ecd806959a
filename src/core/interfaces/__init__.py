"""Interfaces/abstracciones del Core.

Por qué:
- Define contratos (Protocol) por capacidad que implementan adaptadores concretos.
- Permite invertir dependencias: la aplicación depende de la capacidad
  ("enviar SMS"), nunca del proveedor ("Twilio").
"""

from core.interfaces.accounting import AccountingExporter
from core.interfaces.analytics import AnalyticsAdapter
from core.interfaces.background_check import BackgroundCheckAdapter
from core.interfaces.calendar import CalendarAdapter
from core.interfaces.crm import CRMAdapter
from core.interfaces.email import EmailAdapter
from core.interfaces.forms import FormAdapter
from core.interfaces.marketing import MarketingAdapter
from core.interfaces.payment import PaymentAdapter
from core.interfaces.project import ProjectAdapter
from core.interfaces.sms import SMSAdapter
from core.interfaces.storage import StorageAdapter
from core.interfaces.token_cache import MemoryTokenCache, OAuthToken, TokenCache
from core.interfaces.video import VideoAdapter
from core.interfaces.wealth_research import WealthResearchAdapter
from core.interfaces.webhook import WebhookHandler

__all__ = [
	"AccountingExporter",
	"AnalyticsAdapter",
	"BackgroundCheckAdapter",
	"CalendarAdapter",
	"CRMAdapter",
	"EmailAdapter",
	"FormAdapter",
	"MarketingAdapter",
	"MemoryTokenCache",
	"OAuthToken",
	"PaymentAdapter",
	"ProjectAdapter",
	"SMSAdapter",
	"StorageAdapter",
	"TokenCache",
	"VideoAdapter",
	"WealthResearchAdapter",
	"WebhookHandler",
]
