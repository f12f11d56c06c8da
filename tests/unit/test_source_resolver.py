import pytest

from order_lookup.config import LookupConfig, SourceConfiguration, load_lookup_config
from order_lookup.sources.resolver import SourceResolver, parse_source_mode
from order_lookup.sources.tenant_config import (
    InMemoryTenantConfigStore,
    IntegrationRecord,
    SqliteTenantConfigStore,
)
from order_lookup.types import SourceMode

_ENV = {"SHOPIFY_DOMAIN": "env-store.myshopify.com", "SHOPIFY_ACCESS_TOKEN": "env-token"}


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("local", SourceMode.LOCAL),
        ("Local Database", SourceMode.LOCAL),
        ("shopify", SourceMode.EXTERNAL),
        ("external", SourceMode.EXTERNAL),
        ("BOTH", SourceMode.BOTH),
        (None, SourceMode.EXTERNAL),
        ("carrier pigeon", SourceMode.EXTERNAL),
    ],
)
def test_parse_source_mode(value: str | None, expected: SourceMode) -> None:
    assert parse_source_mode(value) is expected


def test_active_integration_supplies_credentials() -> None:
    store = InMemoryTenantConfigStore()
    store.set_settings("t1", {"orderTrackingSource": "both"})
    store.add_integration(
        IntegrationRecord(
            tenant_id="t1",
            type="shopify",
            status="ACTIVE",
            config={"domain": "t1.myshopify.com", "accessToken": "tok"},
        )
    )

    source = SourceResolver(store, environ=_ENV).resolve("t1")

    assert source.mode is SourceMode.BOTH
    assert source.external_credentials.endpoint == "t1.myshopify.com"
    assert source.effective_mode() is SourceMode.BOTH


def test_inactive_integration_falls_back_to_environment() -> None:
    store = InMemoryTenantConfigStore()
    store.add_integration(
        IntegrationRecord(
            tenant_id="t1",
            type="shopify",
            status="DISABLED",
            config={"domain": "t1.myshopify.com", "accessToken": "tok"},
        )
    )

    source = SourceResolver(store, environ=_ENV).resolve("t1")

    assert source.mode is SourceMode.EXTERNAL
    assert source.external_credentials.endpoint == "env-store.myshopify.com"


def test_missing_credentials_degrade_to_local(caplog: pytest.LogCaptureFixture) -> None:
    store = InMemoryTenantConfigStore()
    store.set_settings("t1", {"orderTrackingSource": "shopify"})

    with caplog.at_level("WARNING"):
        source = SourceResolver(store, environ={}).resolve("t1")

    assert source.external_misconfigured
    assert source.effective_mode() is SourceMode.LOCAL
    assert "t1" in caplog.text


def test_local_mode_never_reads_credentials() -> None:
    store = InMemoryTenantConfigStore()
    store.set_settings("t1", {"orderTrackingSource": "local database"})

    source = SourceResolver(store, environ=_ENV).resolve("t1")

    assert source == SourceConfiguration(mode=SourceMode.LOCAL)


def test_store_failure_uses_default_mode() -> None:
    class _BrokenStore:
        def get_settings(self, tenant_id):
            raise RuntimeError("config service down")

        def get_integration(self, tenant_id, integration_type):
            raise RuntimeError("config service down")

    source = SourceResolver(_BrokenStore(), environ=_ENV).resolve("t1")

    assert source.mode is SourceMode.EXTERNAL
    assert source.external_credentials.token == "env-token"


def test_sqlite_config_store_prefers_active_integration(tmp_path) -> None:
    store = SqliteTenantConfigStore(tmp_path / "config.db")
    store.set_settings("t1", {"orderTrackingSource": "both"})
    store.add_integration(
        IntegrationRecord("t1", "shopify", "ACTIVE", {"domain": "a.myshopify.com", "accessToken": "a"})
    )
    store.add_integration(
        IntegrationRecord("t1", "shopify", "INACTIVE", {"domain": "b.myshopify.com", "accessToken": "b"})
    )

    source = SourceResolver(store, environ={}).resolve("t1")

    assert store.get_settings("missing") is None
    assert source.mode is SourceMode.BOTH
    assert source.external_credentials.endpoint == "a.myshopify.com"


def test_load_lookup_config_reads_environment() -> None:
    config = load_lookup_config(
        {"ORDER_LOOKUP_MAX_RESULTS": "3", "ORDER_LOOKUP_EXTERNAL_TIMEOUT": "2.5"}
    )

    assert config.max_results == 3
    assert config.external_timeout_seconds == 2.5
    assert config.bulk_scan_limit == LookupConfig().bulk_scan_limit


def test_lookup_config_bounds() -> None:
    with pytest.raises(ValueError):
        LookupConfig(bulk_scan_limit=1000)
