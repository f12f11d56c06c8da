"""Configuration models for the order lookup core."""

from __future__ import annotations

import os
from collections.abc import Mapping

from pydantic import BaseModel, Field

from order_lookup.types import SourceMode


class LookupConfig(BaseModel):
    """Configures result limits and backend time bounds."""

    max_results: int = Field(default=5, ge=1, le=50)
    bulk_scan_limit: int = Field(default=50, ge=1, le=250)
    max_query_length: int = Field(default=100, ge=1)
    external_timeout_seconds: float = Field(default=10.0, gt=0.0)
    adapter_timeout_seconds: float = Field(default=15.0, gt=0.0)


class ExternalCredentials(BaseModel):
    """Connection details for the external commerce platform."""

    endpoint: str = Field(min_length=1)
    token: str = Field(min_length=1)


class SourceConfiguration(BaseModel):
    """Per-invocation view of which backends a tenant uses."""

    mode: SourceMode = SourceMode.EXTERNAL
    external_credentials: ExternalCredentials | None = None

    @property
    def requires_external(self) -> bool:
        return self.mode in (SourceMode.EXTERNAL, SourceMode.BOTH)

    @property
    def external_misconfigured(self) -> bool:
        return self.requires_external and self.external_credentials is None

    def effective_mode(self) -> SourceMode:
        """Mode actually queried once missing credentials are accounted for."""
        if self.external_misconfigured:
            return SourceMode.LOCAL
        return self.mode


_ENV_FIELDS = {
    "max_results": "ORDER_LOOKUP_MAX_RESULTS",
    "bulk_scan_limit": "ORDER_LOOKUP_BULK_SCAN_LIMIT",
    "external_timeout_seconds": "ORDER_LOOKUP_EXTERNAL_TIMEOUT",
    "adapter_timeout_seconds": "ORDER_LOOKUP_ADAPTER_TIMEOUT",
}


def load_lookup_config(environ: Mapping[str, str] | None = None) -> LookupConfig:
    """Build a `LookupConfig` from `ORDER_LOOKUP_*` environment variables."""

    env = os.environ if environ is None else environ
    overrides = {
        field: env[name] for field, name in _ENV_FIELDS.items() if env.get(name)
    }
    return LookupConfig.model_validate(overrides)
