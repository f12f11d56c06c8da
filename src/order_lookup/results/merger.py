"""Merging of per-backend results into one lookup result."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timezone

from order_lookup.types import CanonicalOrder

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """Treat naive timestamps as UTC so both backends compare cleanly."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def recency_key(order: CanonicalOrder) -> datetime:
    return as_utc(order.updated_at or order.created_at) or _EPOCH


def deduplicate_orders(orders: Iterable[CanonicalOrder]) -> list[CanonicalOrder]:
    """Drop later orders whose `order_number or order_id` was already seen."""

    seen: set[str] = set()
    unique: list[CanonicalOrder] = []
    for order in orders:
        key = order.dedupe_key
        if key in seen:
            continue
        seen.add(key)
        unique.append(order)
    return unique


def merge_results(
    order_lists: Iterable[list[CanonicalOrder]], *, max_results: int = 5
) -> list[CanonicalOrder]:
    """Concatenate, deduplicate (first wins), sort most recent first, cap."""

    combined = [order for orders in order_lists for order in orders]
    unique = deduplicate_orders(combined)
    ranked = sorted(unique, key=recency_key, reverse=True)
    return ranked[:max_results]
