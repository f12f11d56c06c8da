"""Per-tenant resolution of active backends and external credentials."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from order_lookup.config import ExternalCredentials, SourceConfiguration
from order_lookup.sources.tenant_config import TenantConfigStore
from order_lookup.types import SourceMode

logger = logging.getLogger(__name__)

EXTERNAL_INTEGRATION_TYPE = "shopify"
SOURCE_SETTING_KEY = "orderTrackingSource"
ENV_ENDPOINT = "SHOPIFY_DOMAIN"
ENV_TOKEN = "SHOPIFY_ACCESS_TOKEN"

DEFAULT_MODE = SourceMode.EXTERNAL

_MODE_ALIASES: dict[str, SourceMode] = {
    "local": SourceMode.LOCAL,
    "local database": SourceMode.LOCAL,
    "external": SourceMode.EXTERNAL,
    "shopify": SourceMode.EXTERNAL,
    "both": SourceMode.BOTH,
}


def parse_source_mode(value: Any) -> SourceMode:
    """Map a stored setting onto `SourceMode`; unknown values use the default."""

    if not value:
        return DEFAULT_MODE
    normalized = " ".join(str(value).lower().split())
    mode = _MODE_ALIASES.get(normalized)
    if mode is None:
        logger.warning("Unknown order tracking source %r, using %s", value, DEFAULT_MODE.value)
        return DEFAULT_MODE
    return mode


class SourceResolver:
    """Reads tenant configuration on every call; nothing is cached."""

    def __init__(
        self,
        config_store: TenantConfigStore,
        *,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self._config_store = config_store
        self._environ = environ

    def resolve(self, tenant_id: str) -> SourceConfiguration:
        try:
            settings = self._config_store.get_settings(tenant_id) or {}
            mode = parse_source_mode(settings.get(SOURCE_SETTING_KEY))
            credentials = (
                self._resolve_credentials(tenant_id)
                if mode in (SourceMode.EXTERNAL, SourceMode.BOTH)
                else None
            )
        except Exception:
            logger.exception(
                "Failed to read order tracking configuration for tenant %s", tenant_id
            )
            mode = DEFAULT_MODE
            credentials = self._environment_credentials()

        configuration = SourceConfiguration(mode=mode, external_credentials=credentials)
        if configuration.external_misconfigured:
            logger.warning(
                "Tenant %s uses %s order tracking but no external credentials resolved; "
                "continuing with the local store only",
                tenant_id,
                mode.value,
            )
        return configuration

    def _resolve_credentials(self, tenant_id: str) -> ExternalCredentials | None:
        integration = self._config_store.get_integration(
            tenant_id, EXTERNAL_INTEGRATION_TYPE
        )
        if integration is not None and integration.is_active:
            credentials = _credentials_from_config(integration.config)
            if credentials is not None:
                return credentials
            logger.warning(
                "Active %s integration for tenant %s is missing endpoint or token",
                EXTERNAL_INTEGRATION_TYPE,
                tenant_id,
            )
        return self._environment_credentials()

    def _environment_credentials(self) -> ExternalCredentials | None:
        env = os.environ if self._environ is None else self._environ
        endpoint = env.get(ENV_ENDPOINT)
        token = env.get(ENV_TOKEN)
        if endpoint and token:
            return ExternalCredentials(endpoint=endpoint, token=token)
        return None


def _credentials_from_config(config: Mapping[str, Any]) -> ExternalCredentials | None:
    endpoint = config.get("domain") or config.get("endpoint")
    token = config.get("accessToken") or config.get("token")
    if not endpoint or not token:
        return None
    try:
        return ExternalCredentials(endpoint=str(endpoint), token=str(token))
    except ValidationError:
        return None
