"""Adapter from the local order store to canonical orders."""

from __future__ import annotations

import logging
import re
from typing import Any

from order_lookup.config import LookupConfig
from order_lookup.errors import AdapterOutcome, ErrorKind, OrderLookupError
from order_lookup.results.status import map_local_status
from order_lookup.sources.local_store import FieldPredicate, LocalOrderStore, MatchOp
from order_lookup.types import (
    CanonicalOrder,
    LineItem,
    LocalOrderRecord,
    LookupQuery,
    ShippingAddress,
    SourceBackend,
)

logger = logging.getLogger(__name__)

_USPS_NUMBER = re.compile(r"^\d{12}$")
_FEDEX_NUMBER = re.compile(r"^\d{10,14}$")


def tracking_url_for(tracking_number: str | None) -> str | None:
    """Guess a carrier tracking link from the shape of the number."""

    if not tracking_number:
        return None
    if tracking_number.startswith("1Z"):
        return f"https://www.ups.com/track?loc=en_US&tracknum={tracking_number}"
    if _USPS_NUMBER.match(tracking_number):
        return f"https://tools.usps.com/go/TrackConfirmAction?tLabels={tracking_number}"
    if _FEDEX_NUMBER.match(tracking_number):
        return f"https://www.fedex.com/fedextrack/?trknbr={tracking_number}"
    return None


def build_local_predicates(term: str) -> list[FieldPredicate]:
    """OR-combined field matches for one search term.

    The `-term` suffix match finds composite ids such as `EXTERNAL-176484`.
    """

    return [
        FieldPredicate("id", MatchOp.EQUALS, term),
        FieldPredicate("id", MatchOp.ENDS_WITH, f"-{term}"),
        FieldPredicate("customer_id", MatchOp.CONTAINS, term),
        FieldPredicate("customer_name", MatchOp.ICONTAINS, term),
        FieldPredicate("customer_email", MatchOp.ICONTAINS, term),
        FieldPredicate("tracking_number", MatchOp.CONTAINS, term),
        FieldPredicate("notes", MatchOp.CONTAINS, term),
    ]


def _line_item(raw: dict[str, Any]) -> LineItem:
    title = raw.get("title") or raw.get("productName") or raw.get("name") or "Item"
    price = raw.get("price")
    return LineItem(
        title=str(title),
        quantity=int(raw.get("quantity") or 1),
        price=float(price) if price not in (None, "") else None,
    )


def _shipping_address(raw: dict[str, Any] | None) -> ShippingAddress | None:
    if not raw:
        return None
    return ShippingAddress(
        first_name=raw.get("firstName") or raw.get("first_name"),
        last_name=raw.get("lastName") or raw.get("last_name"),
        address1=raw.get("address1") or raw.get("street"),
        address2=raw.get("address2"),
        city=raw.get("city"),
        province=raw.get("province") or raw.get("state"),
        zip=raw.get("zip") or raw.get("zipCode"),
        country=raw.get("country"),
    )


def normalize_local_order(record: LocalOrderRecord) -> CanonicalOrder:
    return CanonicalOrder(
        source_backend=SourceBackend.LOCAL,
        order_id=record.id,
        # Local orders have no separate order number; the id doubles as one.
        order_number=record.id,
        display_name=record.id,
        customer_name=record.customer_name,
        customer_email=record.customer_email,
        status=map_local_status(record.status),
        total=record.total,
        currency=record.currency,
        line_items=[_line_item(item) for item in record.items if isinstance(item, dict)],
        shipping_address=_shipping_address(record.shipping_address),
        tracking_number=record.tracking_number,
        tracking_url=tracking_url_for(record.tracking_number),
        tracking_carrier=None,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


class LocalStoreAdapter:
    """Flexible multi-field search against the tenant's local orders."""

    def __init__(self, store: LocalOrderStore, config: LookupConfig | None = None) -> None:
        self.store = store
        self.config = config or LookupConfig()

    def search(self, tenant_id: str, query: LookupQuery) -> AdapterOutcome:
        predicates = build_local_predicates(query.search_term)
        try:
            records = self.store.find_orders(
                tenant_id,
                predicates,
                email_filter=query.email,
                limit=self.config.max_results,
            )
        except Exception as exc:
            logger.error(
                "Local order search failed for tenant %s query %r: %s",
                tenant_id,
                query.text,
                exc,
            )
            kind = exc.kind if isinstance(exc, OrderLookupError) else ErrorKind.BACKEND_UNAVAILABLE
            return AdapterOutcome.failed(SourceBackend.LOCAL, kind, str(exc))

        orders = [normalize_local_order(record) for record in records]
        logger.info(
            "Local order search for tenant %s returned %d orders", tenant_id, len(orders)
        )
        return AdapterOutcome(backend=SourceBackend.LOCAL, orders=orders)
