"""Registro de proveedores por categoría (IntegrationManager).

Por qué un registro:
- La aplicación pide "el proveedor activo de sms" y recibe un adaptador que
  cumple `SMSAdapter`, sin saber si es Twilio o Plivo.
- Las factories reciben el propio manager: de ahí leen settings,
  credenciales, store local y caché de tokens compartida.

Errores:
- Categoría desconocida o adaptador que no cumple su Protocol -> excepción
  (error de programación, ver `core.errors`).
- Sin proveedor configurado / proveedor inexistente -> `Failure`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

from core.config import AppSettings
from core.errors import InvalidAdapterError, UnknownCategoryError, UnknownProviderError
from core.interfaces import (
    AccountingExporter,
    AnalyticsAdapter,
    BackgroundCheckAdapter,
    CalendarAdapter,
    CRMAdapter,
    EmailAdapter,
    FormAdapter,
    MarketingAdapter,
    MemoryTokenCache,
    PaymentAdapter,
    ProjectAdapter,
    SMSAdapter,
    StorageAdapter,
    TokenCache,
    VideoAdapter,
    WealthResearchAdapter,
)
from core.logging import get_logger
from core.result import Failure, FailureKind, Ok, fail

ProviderFactory = Callable[["IntegrationManager"], Any]

_log = get_logger(__name__)

CATEGORIES: dict[str, str] = {
    "storage": "File Storage",
    "calendar": "Calendar",
    "email": "Email",
    "accounting": "Accounting",
    "payment": "Payment Processing",
    "crm": "CRM",
    "marketing": "Marketing",
    "video": "Video Conferencing",
    "forms": "Forms & Surveys",
    "project": "Project Management",
    "ai": "AI & Automation",
    "sms": "SMS & Messaging",
    "analytics": "Analytics",
    "background_check": "Background Checks",
    "wealth_research": "Wealth Research",
}

# Categorías sin Protocol (ai) no se comprueban.
CATEGORY_PROTOCOLS: dict[str, type] = {
    "storage": StorageAdapter,
    "calendar": CalendarAdapter,
    "email": EmailAdapter,
    "accounting": AccountingExporter,
    "payment": PaymentAdapter,
    "crm": CRMAdapter,
    "marketing": MarketingAdapter,
    "video": VideoAdapter,
    "forms": FormAdapter,
    "project": ProjectAdapter,
    "sms": SMSAdapter,
    "analytics": AnalyticsAdapter,
    "background_check": BackgroundCheckAdapter,
    "wealth_research": WealthResearchAdapter,
}


@dataclass(frozen=True)
class ProviderInfo:
    name: str
    factory: ProviderFactory
    description: str = ""
    is_default: bool = False
    is_free: bool = False
    recommended: bool = False


class IntegrationManager:
    def __init__(
        self,
        settings: AppSettings | None = None,
        *,
        store: Any = None,
        token_cache: TokenCache | None = None,
    ) -> None:
        self.settings = settings or AppSettings()
        self.token_cache: TokenCache = token_cache or MemoryTokenCache()
        self._store = store
        self._providers: dict[str, dict[str, ProviderInfo]] = {category: {} for category in CATEGORIES}
        self._active: dict[str, str] = {}
        self._connected: set[tuple[str, str]] = set()
        self._instances: dict[str, Any] = {}

    @property
    def store(self) -> Any:
        """Store local compartido por los adaptadores builtin (creado bajo demanda)."""

        if self._store is None:
            # Import diferido: core no depende de adapters salvo aquí.
            from adapters.local_store import LocalStore  # noqa: PLC0415

            self._store = LocalStore.from_settings(self.settings)
            self._store.create_all()
        return self._store

    def credentials(self, provider_id: str) -> dict[str, str]:
        return self.settings.credentials_for(provider_id)

    def _require_category(self, category: str) -> dict[str, ProviderInfo]:
        if category not in self._providers:
            raise UnknownCategoryError(category)
        return self._providers[category]

    def get_categories(self) -> dict[str, str]:
        return dict(CATEGORIES)

    def register_provider(self, category: str, provider_id: str, info: ProviderInfo) -> None:
        self._require_category(category)[provider_id] = info
        self._instances.pop(category, None)

    def get_providers(self, category: str) -> dict[str, ProviderInfo]:
        return dict(self._require_category(category))

    def get_provider(self, category: str, provider_id: str) -> ProviderInfo | None:
        return self._require_category(category).get(provider_id)

    def _default_provider_id(self, category: str) -> str | None:
        for provider_id, info in self._require_category(category).items():
            if info.is_default:
                return provider_id
        return None

    def get_active_provider_id(self, category: str) -> str | None:
        self._require_category(category)
        configured = self._active.get(category) or self.settings.active_providers.get(category)
        return configured or self._default_provider_id(category)

    def set_active_provider(self, category: str, provider_id: str) -> None:
        if provider_id not in self._require_category(category):
            raise UnknownProviderError(category, provider_id)
        previous = self.get_active_provider_id(category)
        self._active[category] = provider_id
        self._instances.pop(category, None)
        _log.info("registry.provider_switched", category=category, provider=provider_id, previous=previous)

    def get_active_provider(self, category: str) -> Ok[Any] | Failure:
        cached = self._instances.get(category)
        if cached is not None:
            return Ok(cached)

        provider_id = self.get_active_provider_id(category)
        if not provider_id:
            return fail(
                FailureKind.NOT_CONFIGURED,
                f"No provider configured for {category}",
                details={"category": category},
            )
        info = self.get_provider(category, provider_id)
        if info is None:
            return fail(
                FailureKind.NOT_SUPPORTED,
                f"Invalid provider: {provider_id}",
                details={"category": category, "provider": provider_id},
            )

        adapter = info.factory(self)
        protocol = CATEGORY_PROTOCOLS.get(category)
        if protocol is not None and not isinstance(adapter, protocol):
            raise InvalidAdapterError(f"{type(adapter).__name__} does not implement {protocol.__name__}")

        self._instances[category] = adapter
        _log.debug("registry.instance_created", category=category, provider=provider_id)
        return Ok(adapter)

    def is_provider_connected(self, category: str, provider_id: str | None = None) -> bool:
        provider_id = provider_id or self.get_active_provider_id(category)
        if not provider_id:
            return False
        info = self.get_provider(category, provider_id)
        if info is None:
            return False
        if info.is_default:
            return True
        return (category, provider_id) in self._connected or bool(self.credentials(provider_id))

    def mark_provider_connected(self, category: str, provider_id: str) -> None:
        self._require_category(category)
        self._connected.add((category, provider_id))

    def mark_provider_disconnected(self, category: str, provider_id: str) -> None:
        self._connected.discard((category, provider_id))


def _flag(value: str | None) -> bool:
    return (value or "").strip().lower() in ("1", "true", "yes", "on")


def _build_registrations() -> list[tuple[str, str, ProviderInfo]]:
    # Imports diferidos: los adaptadores importan core, no al revés.
    from adapters.accounting import QuickBooksIifExporter, TreasuryAdapter, WaveCsvExporter  # noqa: PLC0415
    from adapters.analytics import SegmentAdapter  # noqa: PLC0415
    from adapters.background_check import CheckrAdapter  # noqa: PLC0415
    from adapters.calendar import BuiltinCalendarAdapter  # noqa: PLC0415
    from adapters.crm import DonorPerfectAdapter, HubSpotAdapter, SalesforceAdapter  # noqa: PLC0415
    from adapters.email import SendGridAdapter, SmtpAdapter  # noqa: PLC0415
    from adapters.forms import BuiltinFormsAdapter, JotFormAdapter  # noqa: PLC0415
    from adapters.marketing import MailchimpAdapter  # noqa: PLC0415
    from adapters.payment import StripeAdapter, ZelleAdapter  # noqa: PLC0415
    from adapters.project import AsanaAdapter, MondayAdapter, TrelloAdapter  # noqa: PLC0415
    from adapters.sms import PlivoAdapter, TwilioAdapter  # noqa: PLC0415
    from adapters.storage import LocalStorageAdapter  # noqa: PLC0415
    from adapters.video import JitsiAdapter, ZoomAdapter  # noqa: PLC0415
    from adapters.wealth_research import WealthEngineAdapter  # noqa: PLC0415

    def smtp(m: IntegrationManager) -> SmtpAdapter:
        c = m.credentials("smtp")
        return SmtpAdapter(
            c.get("host"),
            int(c.get("port") or 587),
            c.get("username"),
            c.get("password"),
            c.get("from_email"),
            c.get("from_name"),
            security=c.get("security") or "starttls",
            settings=m.settings,
        )

    def salesforce(m: IntegrationManager) -> SalesforceAdapter:
        c = m.credentials("salesforce")
        return SalesforceAdapter(
            c.get("client_id"),
            c.get("client_secret"),
            c.get("refresh_token"),
            access_token=c.get("access_token"),
            instance_url=c.get("instance_url"),
            sandbox=_flag(c.get("sandbox")),
            token_cache=m.token_cache,
            settings=m.settings,
        )

    def zoom(m: IntegrationManager) -> ZoomAdapter:
        c = m.credentials("zoom")
        return ZoomAdapter(
            c.get("account_id"), c.get("client_id"), c.get("client_secret"), token_cache=m.token_cache, settings=m.settings
        )

    def jitsi(m: IntegrationManager) -> JitsiAdapter:
        c = m.credentials("jitsi")
        return JitsiAdapter(
            m.store, domain=c.get("domain"), app_id=c.get("app_id"), app_secret=c.get("app_secret"), settings=m.settings
        )

    def cred(m: IntegrationManager, provider_id: str, key: str) -> str | None:
        return m.credentials(provider_id).get(key)

    return [
        (
            "storage",
            "local",
            ProviderInfo(
                "Built-in Local Storage",
                lambda m: LocalStorageAdapter(m.store, settings=m.settings),
                "Store files on this server (included, no setup required)",
                is_default=True,
                is_free=True,
            ),
        ),
        (
            "calendar",
            "builtin",
            ProviderInfo(
                "Built-in Calendar",
                lambda m: BuiltinCalendarAdapter(m.store),
                "Simple calendar system (included, no setup required)",
                is_default=True,
                is_free=True,
            ),
        ),
        (
            "email",
            "smtp",
            ProviderInfo("SMTP", smtp, "Send through any SMTP server", is_default=True, is_free=True),
        ),
        (
            "email",
            "sendgrid",
            ProviderInfo(
                "SendGrid",
                lambda m: SendGridAdapter(
                    cred(m, "sendgrid", "api_key"),
                    cred(m, "sendgrid", "from_email"),
                    cred(m, "sendgrid", "from_name"),
                    settings=m.settings,
                ),
                "Transactional email API",
                recommended=True,
            ),
        ),
        (
            "accounting",
            "treasury",
            ProviderInfo(
                "Built-in Treasury",
                lambda m: TreasuryAdapter(
                    m.store,
                    export_format=cred(m, "treasury", "export_format") or "iif",
                    currency=cred(m, "treasury", "currency") or "USD",
                ),
                "Chart of accounts and journal in the local database, with IIF/CSV exports for your CPA",
                is_default=True,
                is_free=True,
                recommended=True,
            ),
        ),
        (
            "accounting",
            "quickbooks_iif",
            ProviderInfo(
                "QuickBooks Desktop (IIF)",
                lambda m: QuickBooksIifExporter(),
                "Export files for QuickBooks Desktop",
                is_free=True,
            ),
        ),
        (
            "accounting",
            "wave_csv",
            ProviderInfo("Wave (CSV)", lambda m: WaveCsvExporter(), "Export files for Wave Accounting", is_free=True),
        ),
        (
            "payment",
            "stripe",
            ProviderInfo(
                "Stripe",
                lambda m: StripeAdapter(
                    cred(m, "stripe", "secret_key"),
                    webhook_secret=cred(m, "stripe", "webhook_secret"),
                    settings=m.settings,
                ),
                "Card payments, subscriptions and checkout",
                recommended=True,
            ),
        ),
        (
            "payment",
            "zelle",
            ProviderInfo(
                "Zelle",
                lambda m: ZelleAdapter(m.store),
                "Record bank transfers received through Zelle",
                is_free=True,
            ),
        ),
        (
            "crm",
            "hubspot",
            ProviderInfo(
                "HubSpot",
                lambda m: HubSpotAdapter(cred(m, "hubspot", "access_token"), settings=m.settings),
                "HubSpot CRM (contacts, deals, notes)",
            ),
        ),
        ("crm", "salesforce", ProviderInfo("Salesforce", salesforce, "Salesforce / Nonprofit Cloud")),
        (
            "crm",
            "donorperfect",
            ProviderInfo(
                "DonorPerfect",
                lambda m: DonorPerfectAdapter(cred(m, "donorperfect", "api_key"), settings=m.settings),
                "DonorPerfect XML API",
            ),
        ),
        (
            "marketing",
            "mailchimp",
            ProviderInfo(
                "Mailchimp",
                lambda m: MailchimpAdapter(
                    cred(m, "mailchimp", "api_key"),
                    from_email=cred(m, "mailchimp", "from_email"),
                    from_name=cred(m, "mailchimp", "from_name"),
                    settings=m.settings,
                ),
                "Audiences and email campaigns",
            ),
        ),
        (
            "video",
            "jitsi",
            ProviderInfo(
                "Jitsi Meet",
                jitsi,
                "Open-source video conferencing (free, no account required)",
                is_default=True,
                is_free=True,
            ),
        ),
        ("video", "zoom", ProviderInfo("Zoom", zoom, "Zoom meetings (server-to-server OAuth)")),
        (
            "forms",
            "builtin",
            ProviderInfo(
                "Built-in Forms",
                lambda m: BuiltinFormsAdapter(
                    m.store, webhook_secret=cred(m, "builtin_forms", "webhook_secret"), settings=m.settings
                ),
                "Forms stored in the local database",
                is_default=True,
                is_free=True,
            ),
        ),
        (
            "forms",
            "jotform",
            ProviderInfo(
                "JotForm",
                lambda m: JotFormAdapter(
                    cred(m, "jotform", "api_key"),
                    webhook_token=cred(m, "jotform", "webhook_token"),
                    settings=m.settings,
                ),
                "JotForm forms and submissions",
            ),
        ),
        (
            "project",
            "asana",
            ProviderInfo(
                "Asana",
                lambda m: AsanaAdapter(
                    cred(m, "asana", "access_token"),
                    workspace_id=cred(m, "asana", "workspace_id"),
                    settings=m.settings,
                ),
                "Asana projects and tasks",
            ),
        ),
        (
            "project",
            "monday",
            ProviderInfo(
                "Monday.com",
                lambda m: MondayAdapter(cred(m, "monday", "api_token"), settings=m.settings),
                "Monday.com boards and items",
            ),
        ),
        (
            "project",
            "trello",
            ProviderInfo(
                "Trello",
                lambda m: TrelloAdapter(cred(m, "trello", "api_key"), cred(m, "trello", "api_token"), settings=m.settings),
                "Trello boards and cards",
            ),
        ),
        (
            "sms",
            "twilio",
            ProviderInfo(
                "Twilio",
                lambda m: TwilioAdapter(
                    cred(m, "twilio", "account_sid"),
                    cred(m, "twilio", "auth_token"),
                    cred(m, "twilio", "from_number"),
                    settings=m.settings,
                ),
                "SMS through Twilio",
                recommended=True,
            ),
        ),
        (
            "sms",
            "plivo",
            ProviderInfo(
                "Plivo",
                lambda m: PlivoAdapter(
                    cred(m, "plivo", "auth_id"),
                    cred(m, "plivo", "auth_token"),
                    cred(m, "plivo", "from_number"),
                    settings=m.settings,
                ),
                "SMS through Plivo",
            ),
        ),
        (
            "analytics",
            "segment",
            ProviderInfo(
                "Segment",
                lambda m: SegmentAdapter(cred(m, "segment", "write_key"), settings=m.settings),
                "Event routing to downstream analytics tools",
            ),
        ),
        (
            "background_check",
            "checkr",
            ProviderInfo(
                "Checkr",
                lambda m: CheckrAdapter(
                    cred(m, "checkr", "api_key"),
                    webhook_secret=cred(m, "checkr", "webhook_secret"),
                    settings=m.settings,
                ),
                "FCRA-compliant background checks",
            ),
        ),
        (
            "wealth_research",
            "wealthengine",
            ProviderInfo(
                "WealthEngine",
                lambda m: WealthEngineAdapter(cred(m, "wealthengine", "api_key"), settings=m.settings),
                "Donor wealth screening (billed per lookup)",
            ),
        ),
    ]


def default_manager(
    settings: AppSettings | None = None,
    *,
    store: Any = None,
    token_cache: TokenCache | None = None,
) -> IntegrationManager:
    """Manager con todos los adaptadores incluidos ya registrados."""

    manager = IntegrationManager(settings, store=store, token_cache=token_cache)
    for category, provider_id, info in _build_registrations():
        manager.register_provider(category, provider_id, info)
    return manager
