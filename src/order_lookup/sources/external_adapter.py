"""Adapter from the external commerce platform to canonical orders."""

from __future__ import annotations

import logging
import re

from order_lookup.config import LookupConfig
from order_lookup.errors import AdapterOutcome, ErrorKind
from order_lookup.results.status import map_external_status
from order_lookup.sources.external_client import (
    ClientResult,
    ClientStatus,
    ExternalOrder,
    ExternalPlatformClient,
)
from order_lookup.types import (
    CanonicalOrder,
    LineItem,
    LookupQuery,
    ShippingAddress,
    SourceBackend,
)

logger = logging.getLogger(__name__)

_NON_DIGITS = re.compile(r"[^0-9]")


def normalize_external_order(order: ExternalOrder) -> CanonicalOrder:
    customer_name = "N/A"
    if order.customer is not None:
        full_name = f"{order.customer.first_name or ''} {order.customer.last_name or ''}".strip()
        customer_name = full_name or "N/A"

    first_fulfillment = order.fulfillments[0] if order.fulfillments else None
    address = order.shipping_address
    order_number = order.order_number if order.order_number is not None else order.name

    return CanonicalOrder(
        source_backend=SourceBackend.EXTERNAL,
        order_id=str(order.id),
        order_number=str(order_number) if order_number is not None else None,
        display_name=order.name,
        customer_name=customer_name,
        customer_email=order.contact_email,
        status=map_external_status(
            order.financial_status,
            order.fulfillment_status,
            cancelled=order.cancelled_at is not None,
        ),
        total=order.total_price,
        currency=order.currency,
        line_items=[
            LineItem(
                title=item.title or item.name or "Item",
                quantity=item.quantity,
                price=item.price,
            )
            for item in order.line_items
        ],
        shipping_address=(
            ShippingAddress(**address.model_dump()) if address is not None else None
        ),
        tracking_number=first_fulfillment.tracking_number if first_fulfillment else None,
        tracking_url=first_fulfillment.tracking_url if first_fulfillment else None,
        tracking_carrier=first_fulfillment.tracking_company if first_fulfillment else None,
        created_at=order.created_at,
        updated_at=order.updated_at,
    )


def key_variants(key: str) -> list[str]:
    """Literal key, the key with a leading `#` toggled, and its string form."""

    toggled = key[1:] if key.startswith("#") else f"#{key}"
    variants: list[str] = []
    for candidate in (key, toggled, str(key)):
        if candidate and candidate not in variants:
            variants.append(candidate)
    return variants


def _email_matches(order: ExternalOrder, email: str) -> bool:
    wanted = email.lower()
    candidates = [order.email]
    if order.customer is not None:
        candidates.append(order.customer.email)
    return any(candidate and candidate.lower() == wanted for candidate in candidates)


def order_matches_key(order: ExternalOrder, key: str) -> bool:
    """Loose match used when scanning a window of recent orders."""

    lower_key = key.lower()
    digits = _NON_DIGITS.sub("", key)
    customer = order.customer

    fields = [
        order.name and lower_key in order.name.lower(),
        bool(digits) and order.name and _NON_DIGITS.sub("", order.name) == digits,
        order.email and lower_key in order.email.lower(),
        order.order_number is not None and key in str(order.order_number),
        any(
            fulfillment.tracking_number and key in fulfillment.tracking_number
            for fulfillment in order.fulfillments
        ),
        customer is not None and customer.email and lower_key in customer.email.lower(),
        customer is not None
        and customer.first_name
        and lower_key in customer.first_name.lower(),
        customer is not None
        and customer.last_name
        and lower_key in customer.last_name.lower(),
    ]
    return any(bool(value) for value in fields)


class ExternalPlatformAdapter:
    """Three-tier lookup: key pair, exact key variants, bounded bulk scan.

    Tiers run strictly in sequence and stop at the first tier that yields an
    order. A platform error at any tier ends the search with a
    `backend_unavailable` outcome.
    """

    def __init__(
        self, client: ExternalPlatformClient, config: LookupConfig | None = None
    ) -> None:
        self.client = client
        self.config = config or LookupConfig()

    def search(self, query: LookupQuery) -> AdapterOutcome:
        if query.needs_email:
            # The platform only authenticates order lookups by number + email.
            logger.info(
                "Order number %r received without an email; asking for one",
                query.order_number,
            )
            return AdapterOutcome.failed(SourceBackend.EXTERNAL, ErrorKind.EMAIL_REQUIRED)

        for tier in (self._key_pair_tier, self._exact_key_tier, self._bulk_scan_tier):
            result = tier(query)
            if result is None:
                continue
            if result.status is ClientStatus.ERROR:
                return AdapterOutcome.failed(
                    SourceBackend.EXTERNAL, ErrorKind.BACKEND_UNAVAILABLE, result.error
                )
            if result.orders:
                logger.info(
                    "External lookup matched %d orders via %s",
                    len(result.orders),
                    tier.__name__.strip("_"),
                )
                return AdapterOutcome(
                    backend=SourceBackend.EXTERNAL,
                    orders=[normalize_external_order(order) for order in result.orders],
                )

        return AdapterOutcome(backend=SourceBackend.EXTERNAL, orders=[])

    def _key_pair_tier(self, query: LookupQuery) -> ClientResult | None:
        if not (query.order_number and query.email):
            return None
        result = self.client.get_by_key_pair(query.order_number, query.email)
        if result.status is ClientStatus.FOUND and result.order is not None:
            return ClientResult.found([result.order])
        return result if result.status is ClientStatus.ERROR else None

    def _exact_key_tier(self, query: LookupQuery) -> ClientResult | None:
        key = query.order_number or (None if query.is_compound else query.text)
        if not key:
            return None
        for variant in key_variants(key):
            result = self.client.get_by_key(variant)
            if result.status is ClientStatus.ERROR:
                return result
            order = result.order
            if result.status is not ClientStatus.FOUND or order is None:
                continue
            if query.email and not _email_matches(order, query.email):
                logger.info("Order %s found but email does not match; skipping", order.name)
                continue
            return ClientResult.found([order])
        return None

    def _bulk_scan_tier(self, query: LookupQuery) -> ClientResult | None:
        result = self.client.list_recent(self.config.bulk_scan_limit)
        if result.status is not ClientStatus.FOUND:
            return result if result.status is ClientStatus.ERROR else None

        key = query.order_number or (None if query.is_compound else query.text)
        matches = [
            order
            for order in result.orders
            if (not query.email or _email_matches(order, query.email))
            and (key is None or order_matches_key(order, key))
        ]
        return ClientResult.found(matches) if matches else None
