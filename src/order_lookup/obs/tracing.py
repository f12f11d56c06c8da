"""Lookup tracing and summary metrics."""

from __future__ import annotations

import threading
import time
import uuid
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timezone


@dataclass(slots=True)
class LookupTrace:
    trace_id: str
    timestamp_utc: str
    tenant_id: str
    query: str
    query_type: str | None
    confidence: float | None
    source_mode: str | None
    result_count: int
    outcome: str
    latency_ms: float


class TraceStore:
    """In-memory trace storage for API-level observability."""

    def __init__(self, max_records: int = 1000) -> None:
        self._records: dict[str, LookupTrace] = {}
        self._max_records = max_records
        self._lock = threading.Lock()

    def create_record(
        self,
        *,
        tenant_id: str,
        query: str,
        query_type: str | None,
        confidence: float | None,
        source_mode: str | None,
        result_count: int,
        outcome: str,
        latency_ms: float,
    ) -> LookupTrace:
        record = LookupTrace(
            trace_id=str(uuid.uuid4()),
            timestamp_utc=datetime.now(timezone.utc).isoformat(),
            tenant_id=tenant_id,
            query=query,
            query_type=query_type,
            confidence=confidence,
            source_mode=source_mode,
            result_count=result_count,
            outcome=outcome,
            latency_ms=latency_ms,
        )
        with self._lock:
            self._records[record.trace_id] = record
            while len(self._records) > self._max_records:
                self._records.pop(next(iter(self._records)))
        return record

    def get(self, trace_id: str) -> LookupTrace:
        record = self._records.get(trace_id)
        if record is None:
            raise KeyError(f"Trace not found: {trace_id}")
        return record

    def list_recent(self, limit: int = 20) -> list[LookupTrace]:
        return list(self._records.values())[-limit:]

    def summary(self) -> dict[str, float | int | dict[str, int]]:
        """Aggregate lookup metrics for dashboard display."""
        records = list(self._records.values())
        total = len(records)
        if total == 0:
            return {
                "total_lookups": 0,
                "avg_latency_ms": 0.0,
                "p95_latency_ms": 0.0,
                "match_rate": 0.0,
                "outcomes": {},
            }

        latencies = sorted(record.latency_ms for record in records)
        p95_index = max(0, int((len(latencies) * 0.95) - 1))
        matched = sum(1 for record in records if record.result_count > 0)
        return {
            "total_lookups": total,
            "avg_latency_ms": sum(latencies) / total,
            "p95_latency_ms": latencies[p95_index],
            "match_rate": matched / total,
            "outcomes": dict(Counter(record.outcome for record in records)),
        }


class Timer:
    """Simple context timer used by the lookup pipeline."""

    def __init__(self) -> None:
        self._start = 0.0
        self.elapsed_ms = 0.0

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        return self

    def __exit__(self, exc_type: object, exc: object, tb: object) -> None:
        self.elapsed_ms = (time.perf_counter() - self._start) * 1000.0
