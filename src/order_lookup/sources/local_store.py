"""Local order store interfaces and concrete stores."""

from __future__ import annotations

import json
import sqlite3
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Protocol

from order_lookup.errors import BackendUnavailableError
from order_lookup.types import LocalOrderRecord

SEARCHABLE_FIELDS = (
    "id",
    "customer_id",
    "customer_name",
    "customer_email",
    "tracking_number",
    "notes",
)


class MatchOp(str, Enum):
    EQUALS = "equals"
    CONTAINS = "contains"
    ICONTAINS = "icontains"
    ENDS_WITH = "ends_with"


@dataclass(frozen=True, slots=True)
class FieldPredicate:
    """One OR-combined field match sent to the local store."""

    field: str
    op: MatchOp
    value: str

    def __post_init__(self) -> None:
        if self.field not in SEARCHABLE_FIELDS:
            raise ValueError(f"Unsupported search field: {self.field}")

    def matches(self, record: LocalOrderRecord) -> bool:
        actual = getattr(record, self.field)
        if actual is None:
            return False
        actual = str(actual)
        if self.op is MatchOp.EQUALS:
            return actual == self.value
        if self.op is MatchOp.CONTAINS:
            return self.value in actual
        if self.op is MatchOp.ICONTAINS:
            return self.value.lower() in actual.lower()
        return actual.endswith(self.value)


class LocalOrderStore(Protocol):
    """Record-oriented order persistence queried by field match."""

    def find_orders(
        self,
        tenant_id: str,
        predicates: list[FieldPredicate],
        *,
        email_filter: str | None = None,
        limit: int = 5,
    ) -> list[LocalOrderRecord]:
        """Return up to `limit` records matching any predicate, newest first.

        `email_filter`, when given, must also match (case-insensitive
        substring of the customer email).
        """


def _email_filter_matches(record: LocalOrderRecord, email_filter: str | None) -> bool:
    if not email_filter:
        return True
    return bool(record.customer_email) and email_filter.lower() in record.customer_email.lower()


def _updated_sort_key(record: LocalOrderRecord) -> datetime:
    stamp = record.updated_at or record.created_at
    if stamp is None:
        return datetime.min.replace(tzinfo=timezone.utc)
    if stamp.tzinfo is None:
        return stamp.replace(tzinfo=timezone.utc)
    return stamp


class InMemoryOrderStore:
    """Deterministic order store used for tests and local prototyping."""

    def __init__(self, records: list[LocalOrderRecord] | None = None) -> None:
        self._records: dict[str, LocalOrderRecord] = {}
        for record in records or []:
            self.add_order(record)

    def add_order(self, record: LocalOrderRecord) -> None:
        self._records[record.id] = record

    def find_orders(
        self,
        tenant_id: str,
        predicates: list[FieldPredicate],
        *,
        email_filter: str | None = None,
        limit: int = 5,
    ) -> list[LocalOrderRecord]:
        candidates = [
            record
            for record in self._records.values()
            if record.tenant_id == tenant_id
            and any(predicate.matches(record) for predicate in predicates)
            and _email_filter_matches(record, email_filter)
        ]
        ranked = sorted(candidates, key=_updated_sort_key, reverse=True)
        return ranked[:limit]


_SQL_MATCH = {
    MatchOp.EQUALS: "{field} = ?",
    MatchOp.CONTAINS: "instr({field}, ?) > 0",
    MatchOp.ICONTAINS: "instr(lower({field}), lower(?)) > 0",
    MatchOp.ENDS_WITH: "substr({field}, -length(?)) = ?",
}

_COLUMNS = (
    "id, tenant_id, customer_id, customer_name, customer_email, status, total, "
    "currency, items, shipping_address, tracking_number, notes, created_at, updated_at"
)


class SqliteOrderStore:
    """SQLite-backed local order store.

    Line items and shipping addresses are JSON text columns; timestamps are
    ISO-8601 text so `ORDER BY updated_at` sorts chronologically.
    """

    def __init__(self, db_path: str | Path) -> None:
        self._db_path = Path(db_path)
        _ensure_orders_table(self._db_path)

    def add_order(self, record: LocalOrderRecord) -> None:
        with sqlite3.connect(self._db_path) as conn:
            conn.execute(
                f"INSERT OR REPLACE INTO orders({_COLUMNS}) "
                "VALUES(?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    record.id,
                    record.tenant_id,
                    record.customer_id,
                    record.customer_name,
                    record.customer_email,
                    record.status,
                    record.total,
                    record.currency,
                    json.dumps(record.items),
                    json.dumps(record.shipping_address) if record.shipping_address else None,
                    record.tracking_number,
                    record.notes,
                    _to_iso(record.created_at),
                    _to_iso(record.updated_at),
                ),
            )
            conn.commit()

    def find_orders(
        self,
        tenant_id: str,
        predicates: list[FieldPredicate],
        *,
        email_filter: str | None = None,
        limit: int = 5,
    ) -> list[LocalOrderRecord]:
        if not predicates:
            return []

        clauses: list[str] = []
        params: list[Any] = [tenant_id]
        for predicate in predicates:
            clauses.append(_SQL_MATCH[predicate.op].format(field=predicate.field))
            params.append(predicate.value)
            if predicate.op is MatchOp.ENDS_WITH:
                params.append(predicate.value)

        sql = f"SELECT {_COLUMNS} FROM orders WHERE tenant_id = ? AND ({' OR '.join(clauses)})"
        if email_filter:
            sql += " AND instr(lower(customer_email), lower(?)) > 0"
            params.append(email_filter)
        sql += " ORDER BY COALESCE(updated_at, created_at) DESC LIMIT ?"
        params.append(limit)

        try:
            with sqlite3.connect(self._db_path) as conn:
                conn.row_factory = sqlite3.Row
                rows = conn.execute(sql, params).fetchall()
        except sqlite3.Error as exc:
            raise BackendUnavailableError(f"order store query failed: {exc}") from exc
        return [_row_to_record(row) for row in rows]


def _row_to_record(row: sqlite3.Row) -> LocalOrderRecord:
    return LocalOrderRecord(
        id=row["id"],
        tenant_id=row["tenant_id"],
        customer_id=row["customer_id"],
        customer_name=row["customer_name"],
        customer_email=row["customer_email"],
        status=row["status"],
        total=row["total"],
        currency=row["currency"],
        items=json.loads(row["items"] or "[]"),
        shipping_address=json.loads(row["shipping_address"]) if row["shipping_address"] else None,
        tracking_number=row["tracking_number"],
        notes=row["notes"],
        created_at=_from_iso(row["created_at"]),
        updated_at=_from_iso(row["updated_at"]),
    )


def _to_iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _from_iso(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _ensure_orders_table(db_path: Path) -> None:
    with sqlite3.connect(db_path) as conn:
        conn.execute(
            "CREATE TABLE IF NOT EXISTS orders ("
            "id TEXT PRIMARY KEY, "
            "tenant_id TEXT NOT NULL, "
            "customer_id TEXT, "
            "customer_name TEXT, "
            "customer_email TEXT, "
            "status TEXT, "
            "total REAL, "
            "currency TEXT, "
            "items TEXT, "
            "shipping_address TEXT, "
            "tracking_number TEXT, "
            "notes TEXT, "
            "created_at TEXT, "
            "updated_at TEXT)"
        )
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_orders_tenant_updated "
            "ON orders(tenant_id, updated_at)"
        )
        conn.commit()
