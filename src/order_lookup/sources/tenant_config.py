"""Business configuration service contract and concrete stores."""

from __future__ import annotations

import json
import sqlite3
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

ACTIVE_STATUS = "ACTIVE"


@dataclass(slots=True)
class IntegrationRecord:
    """A tenant's stored connection to a third-party platform."""

    tenant_id: str
    type: str
    status: str
    config: dict[str, Any] = field(default_factory=dict)

    @property
    def is_active(self) -> bool:
        return self.status.upper() == ACTIVE_STATUS


class TenantConfigStore(Protocol):
    """Minimal business configuration contract used by the source resolver."""

    def get_settings(self, tenant_id: str) -> dict[str, Any] | None:
        """Return the tenant's settings document, if the tenant exists."""

    def get_integration(
        self, tenant_id: str, integration_type: str
    ) -> IntegrationRecord | None:
        """Return the tenant's integration record of the given type."""


class InMemoryTenantConfigStore:
    """Dictionary-backed configuration used for tests and local prototyping."""

    def __init__(self) -> None:
        self._settings: dict[str, dict[str, Any]] = {}
        self._integrations: dict[tuple[str, str], IntegrationRecord] = {}

    def set_settings(self, tenant_id: str, settings: dict[str, Any]) -> None:
        self._settings[tenant_id] = dict(settings)

    def add_integration(self, record: IntegrationRecord) -> None:
        self._integrations[(record.tenant_id, record.type)] = record

    def get_settings(self, tenant_id: str) -> dict[str, Any] | None:
        settings = self._settings.get(tenant_id)
        return dict(settings) if settings is not None else None

    def get_integration(
        self, tenant_id: str, integration_type: str
    ) -> IntegrationRecord | None:
        return self._integrations.get((tenant_id, integration_type))


class SqliteTenantConfigStore:
    """SQLite-backed tenant settings and integrations.

    Settings and integration configs are stored as JSON text columns, the way
    the surrounding application persists them.
    """

    def __init__(self, db_path: str | Path) -> None:
        self._db_path = Path(db_path)
        _ensure_config_tables(self._db_path)

    def set_settings(self, tenant_id: str, settings: dict[str, Any]) -> None:
        with sqlite3.connect(self._db_path) as conn:
            conn.execute(
                "INSERT INTO businesses(id, settings) VALUES(?, ?) "
                "ON CONFLICT(id) DO UPDATE SET settings=excluded.settings",
                (tenant_id, json.dumps(settings)),
            )
            conn.commit()

    def add_integration(self, record: IntegrationRecord) -> None:
        with sqlite3.connect(self._db_path) as conn:
            conn.execute(
                "INSERT INTO integrations(business_id, type, status, config) "
                "VALUES(?, ?, ?, ?)",
                (record.tenant_id, record.type, record.status, json.dumps(record.config)),
            )
            conn.commit()

    def get_settings(self, tenant_id: str) -> dict[str, Any] | None:
        with sqlite3.connect(self._db_path) as conn:
            row = conn.execute(
                "SELECT settings FROM businesses WHERE id = ?", (tenant_id,)
            ).fetchone()
        if row is None:
            return None
        return _load_json_object(row[0])

    def get_integration(
        self, tenant_id: str, integration_type: str
    ) -> IntegrationRecord | None:
        with sqlite3.connect(self._db_path) as conn:
            rows = conn.execute(
                "SELECT status, config FROM integrations "
                "WHERE business_id = ? AND type = ? ORDER BY id DESC",
                (tenant_id, integration_type),
            ).fetchall()
        if not rows:
            return None
        # Prefer an active record when several exist.
        status, config = next(
            (row for row in rows if str(row[0]).upper() == ACTIVE_STATUS), rows[0]
        )
        return IntegrationRecord(
            tenant_id=tenant_id,
            type=integration_type,
            status=str(status),
            config=_load_json_object(config),
        )


def _load_json_object(raw: str | None) -> dict[str, Any]:
    if not raw:
        return {}
    payload = json.loads(raw)
    return payload if isinstance(payload, dict) else {}


def _ensure_config_tables(db_path: Path) -> None:
    with sqlite3.connect(db_path) as conn:
        conn.execute(
            "CREATE TABLE IF NOT EXISTS businesses (id TEXT PRIMARY KEY, settings TEXT)"
        )
        conn.execute(
            "CREATE TABLE IF NOT EXISTS integrations ("
            "id INTEGER PRIMARY KEY AUTOINCREMENT, "
            "business_id TEXT NOT NULL, "
            "type TEXT NOT NULL, "
            "status TEXT NOT NULL, "
            "config TEXT)"
        )
        conn.commit()
