"""Status normalization from native backend vocabularies to `CanonicalStatus`."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from order_lookup.types import CanonicalStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class StatusDisplay:
    emoji: str
    label: str
    guidance: str


STATUS_DISPLAY: dict[CanonicalStatus, StatusDisplay] = {
    CanonicalStatus.PENDING: StatusDisplay(
        "⏳", "Pending", "Your order is being reviewed and will be processed soon."
    ),
    CanonicalStatus.PENDING_PAYMENT: StatusDisplay(
        "💳", "Awaiting Payment", "Waiting for payment confirmation."
    ),
    CanonicalStatus.CONFIRMED: StatusDisplay(
        "✅",
        "Order Confirmed",
        "Your order has been confirmed and will be processed shortly.",
    ),
    CanonicalStatus.PROCESSING: StatusDisplay(
        "🏭", "Processing", "Your order is being prepared for shipment."
    ),
    CanonicalStatus.SHIPPED: StatusDisplay("🚛", "Shipped", "Your order is on its way!"),
    CanonicalStatus.PARTIALLY_SHIPPED: StatusDisplay(
        "📦", "Partially Shipped", "Part of your order has been shipped."
    ),
    CanonicalStatus.DELIVERED: StatusDisplay(
        "🎉", "Delivered", "Your order has been delivered!"
    ),
    CanonicalStatus.CANCELLED: StatusDisplay(
        "❌", "Cancelled", "This order has been cancelled."
    ),
    CanonicalStatus.REFUNDED: StatusDisplay(
        "💸", "Refunded", "This order has been refunded."
    ),
    CanonicalStatus.RETURNED: StatusDisplay(
        "🔄", "Returned", "This order has been returned."
    ),
}

# Fulfillment state wins over payment state when both are present.
EXTERNAL_FULFILLMENT_STATUS: dict[str, CanonicalStatus] = {
    "fulfilled": CanonicalStatus.DELIVERED,
    "partial": CanonicalStatus.PARTIALLY_SHIPPED,
    "shipped": CanonicalStatus.SHIPPED,
    "restocked": CanonicalStatus.RETURNED,
}

EXTERNAL_FINANCIAL_STATUS: dict[str, CanonicalStatus] = {
    "paid": CanonicalStatus.PROCESSING,
    "partially_paid": CanonicalStatus.PENDING_PAYMENT,
    "pending": CanonicalStatus.PENDING_PAYMENT,
    "authorized": CanonicalStatus.CONFIRMED,
    "refunded": CanonicalStatus.REFUNDED,
    "partially_refunded": CanonicalStatus.REFUNDED,
    "voided": CanonicalStatus.CANCELLED,
}

# Values that carry no lifecycle information on their own.
_EXTERNAL_NEUTRAL = {"unfulfilled", "unshipped", "null", ""}


def status_display(status: CanonicalStatus) -> StatusDisplay:
    return STATUS_DISPLAY[status]


def map_external_status(
    financial_status: str | None,
    fulfillment_status: str | None,
    *,
    cancelled: bool = False,
) -> CanonicalStatus:
    """Map the platform's financial/fulfillment pair onto one canonical status."""

    if cancelled:
        return CanonicalStatus.CANCELLED

    fulfillment = (fulfillment_status or "").strip().lower()
    financial = (financial_status or "").strip().lower()

    if fulfillment in EXTERNAL_FULFILLMENT_STATUS:
        return EXTERNAL_FULFILLMENT_STATUS[fulfillment]
    if fulfillment not in _EXTERNAL_NEUTRAL:
        logger.warning("Unrecognized fulfillment status %r", fulfillment_status)

    if financial in EXTERNAL_FINANCIAL_STATUS:
        return EXTERNAL_FINANCIAL_STATUS[financial]
    if financial not in _EXTERNAL_NEUTRAL:
        logger.warning(
            "Unrecognized financial status %r, treating as pending", financial_status
        )
    return CanonicalStatus.PENDING


def map_local_status(status: str | None) -> CanonicalStatus:
    """Local statuses are already canonical-shaped and pass through."""

    if not status:
        return CanonicalStatus.PENDING
    key = status.strip().upper().replace(" ", "_").replace("-", "_")
    try:
        return CanonicalStatus(key)
    except ValueError:
        logger.warning("Unrecognized local order status %r, treating as pending", status)
        return CanonicalStatus.PENDING
