from __future__ import annotations

import pytest

from adapters.accounting import TreasuryAdapter
from adapters.calendar import BuiltinCalendarAdapter
from adapters.sms import PlivoAdapter, TwilioAdapter
from adapters.storage import LocalStorageAdapter
from core.config import AppSettings
from core.errors import InvalidAdapterError, UnknownCategoryError, UnknownProviderError
from core.registry import CATEGORIES, ProviderInfo, default_manager
from core.result import FailureKind, Ok


@pytest.fixture
def manager(settings, store, token_cache):
    return default_manager(settings, store=store, token_cache=token_cache)


@pytest.mark.parametrize(
    ("category", "provider_id"),
    [
        ("calendar", "builtin"),
        ("email", "smtp"),
        ("accounting", "treasury"),
        ("storage", "local"),
        ("video", "jitsi"),
        ("forms", "builtin"),
    ],
)
def test_free_defaults(manager, category, provider_id) -> None:
    assert manager.get_active_provider_id(category) == provider_id
    assert manager.is_provider_connected(category) is True


def test_default_adapters_are_built(manager) -> None:
    assert isinstance(manager.get_active_provider("calendar").value, BuiltinCalendarAdapter)
    assert isinstance(manager.get_active_provider("accounting").value, TreasuryAdapter)
    assert isinstance(manager.get_active_provider("storage").value, LocalStorageAdapter)


@pytest.mark.parametrize("category", ["payment", "sms", "crm", "ai"])
def test_no_default_means_not_configured(manager, category) -> None:
    result = manager.get_active_provider(category)

    assert result.kind is FailureKind.NOT_CONFIGURED
    assert result.details["category"] == category


def test_ai_has_no_providers(manager) -> None:
    assert manager.get_providers("ai") == {}
    assert set(manager.get_providers("storage")) == {"local"}
    assert set(manager.get_providers("accounting")) == {"treasury", "quickbooks_iif", "wave_csv"}
    assert set(manager.get_categories()) == set(CATEGORIES)


def test_treasury_reads_export_format_from_credentials(store) -> None:
    settings = AppSettings(
        _env_file=None,
        database_url="sqlite://",
        provider_credentials={"treasury": {"export_format": "csv", "currency": "cad"}},
    )

    adapter = default_manager(settings, store=store).get_active_provider("accounting").value

    assert adapter.file_extension == "csv"
    assert adapter.get_account_balance(999).kind is FailureKind.NOT_FOUND


def test_switching_provider_rebuilds_instance(manager) -> None:
    manager.set_active_provider("sms", "twilio")
    first = manager.get_active_provider("sms").value
    assert isinstance(first, TwilioAdapter)
    assert manager.get_active_provider("sms").value is first

    manager.set_active_provider("sms", "plivo")
    assert isinstance(manager.get_active_provider("sms").value, PlivoAdapter)


def test_active_provider_from_settings(store) -> None:
    settings = AppSettings(_env_file=None, database_url="sqlite://", active_providers={"sms": "plivo"})

    manager = default_manager(settings, store=store)

    assert manager.get_active_provider_id("sms") == "plivo"


def test_unknown_provider_in_settings_is_a_failure(store) -> None:
    settings = AppSettings(_env_file=None, database_url="sqlite://", active_providers={"sms": "carrier_pigeon"})

    result = default_manager(settings, store=store).get_active_provider("sms")

    assert result.kind is FailureKind.NOT_SUPPORTED


def test_unknown_category_and_provider_raise(manager) -> None:
    with pytest.raises(UnknownCategoryError):
        manager.get_providers("teleportation")
    with pytest.raises(UnknownProviderError):
        manager.set_active_provider("sms", "carrier_pigeon")


def test_factory_must_satisfy_protocol(manager) -> None:
    manager.register_provider("sms", "broken", ProviderInfo("Broken", lambda m: object()))
    manager.set_active_provider("sms", "broken")

    with pytest.raises(InvalidAdapterError):
        manager.get_active_provider("sms")


def test_connected_by_credentials_or_mark(store) -> None:
    settings = AppSettings(
        _env_file=None,
        database_url="sqlite://",
        provider_credentials={"twilio": {"account_sid": "AC1", "auth_token": "t", "from_number": "+15550001111"}},
    )
    manager = default_manager(settings, store=store)

    assert manager.is_provider_connected("sms", "twilio") is True
    assert manager.is_provider_connected("sms", "plivo") is False
    assert manager.is_provider_connected("sms") is False
    assert manager.is_provider_connected("sms", "carrier_pigeon") is False

    manager.mark_provider_connected("sms", "plivo")
    assert manager.is_provider_connected("sms", "plivo") is True
    manager.mark_provider_disconnected("sms", "plivo")
    assert manager.is_provider_connected("sms", "plivo") is False


def test_credentials_reach_the_adapter(store) -> None:
    settings = AppSettings(
        _env_file=None,
        database_url="sqlite://",
        provider_credentials={"segment": {"write_key": "wk_abc"}},
        active_providers={"analytics": "segment"},
    )

    adapter = default_manager(settings, store=store).get_active_provider("analytics")

    assert isinstance(adapter, Ok)
    assert adapter.value.provider_id == "segment"
