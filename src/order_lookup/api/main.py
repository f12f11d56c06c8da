"""FastAPI entrypoint for lookup/health/trace endpoints."""

from __future__ import annotations

import logging
import os
import sqlite3
from dataclasses import asdict
from typing import Any

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from order_lookup.agent.pipeline import OrderLookupPipeline
from order_lookup.config import load_lookup_config
from order_lookup.obs.tracing import TraceStore
from order_lookup.sources.external_client import ShopifyClient
from order_lookup.sources.local_store import SqliteOrderStore
from order_lookup.sources.resolver import SourceResolver
from order_lookup.sources.tenant_config import SqliteTenantConfigStore

logging.basicConfig(
    level=os.getenv("ORDER_LOOKUP_LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


class LookupRequest(BaseModel):
    tenant_id: str = Field(min_length=1)
    query: str = ""


app = FastAPI(title="Order Lookup Service", version="0.1.0")

_db_path = os.getenv("ORDER_LOOKUP_DB_PATH", "order_lookup.db")
_config = load_lookup_config()
_order_store = SqliteOrderStore(_db_path)
_tenant_store = SqliteTenantConfigStore(_db_path)
_resolver = SourceResolver(_tenant_store)
_trace_store = TraceStore()
_pipeline = OrderLookupPipeline(
    local_store=_order_store,
    resolver=_resolver,
    config=_config,
    trace_store=_trace_store,
)


def _database_connected() -> bool:
    try:
        with sqlite3.connect(_db_path) as conn:
            conn.execute("SELECT 1").fetchone()
    except sqlite3.Error:
        logger.exception("Local order store health check failed")
        return False
    return True


@app.get("/health")
def health(tenant_id: str | None = None) -> dict[str, Any]:
    components: dict[str, str] = {
        "database": "connected" if _database_connected() else "disconnected",
        "local_orders": "available",
    }
    payload: dict[str, Any] = {"status": "ok", "components": components}

    if tenant_id is not None:
        source = _resolver.resolve(tenant_id)
        payload["tenant_id"] = tenant_id
        payload["source_mode"] = source.mode.value
        if source.external_credentials is None:
            components["external"] = "not_configured"
        else:
            with ShopifyClient(
                source.external_credentials, timeout=_config.external_timeout_seconds
            ) as client:
                components["external"] = (
                    "connected" if client.test_connection() else "unreachable"
                )

    if components["database"] != "connected":
        payload["status"] = "unhealthy"
    payload["trace_count"] = len(_trace_store.list_recent(limit=1000))
    return payload


@app.post("/lookup")
def lookup(request: LookupRequest) -> dict[str, Any]:
    reply = _pipeline.run(request.tenant_id, request.query)
    return {
        "reply": reply.text,
        "outcome": reply.outcome.value,
        "trace_id": reply.trace_id,
    }


@app.get("/traces")
def traces(limit: int = 20) -> dict[str, Any]:
    records = [asdict(record) for record in _trace_store.list_recent(limit=limit)]
    return {"items": records}


@app.get("/traces/{trace_id}")
def trace_detail(trace_id: str) -> dict[str, Any]:
    try:
        record = _trace_store.get(trace_id)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return asdict(record)


@app.get("/metrics")
def metrics() -> dict[str, Any]:
    return _trace_store.summary()
