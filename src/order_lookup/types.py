"""Shared domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class QueryType(str, Enum):
    ORDER_NUMBER = "order_number"
    EMAIL = "email"
    TRACKING_NUMBER = "tracking_number"
    PARTIAL_FRAGMENT = "partial_fragment"
    VAGUE = "vague"


class SourceMode(str, Enum):
    LOCAL = "local"
    EXTERNAL = "external"
    BOTH = "both"


class SourceBackend(str, Enum):
    LOCAL = "local"
    EXTERNAL = "external"


class CanonicalStatus(str, Enum):
    """Closed set of order lifecycle states shared by every backend."""

    PENDING = "PENDING"
    PENDING_PAYMENT = "PENDING_PAYMENT"
    CONFIRMED = "CONFIRMED"
    PROCESSING = "PROCESSING"
    SHIPPED = "SHIPPED"
    PARTIALLY_SHIPPED = "PARTIALLY_SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"
    REFUNDED = "REFUNDED"
    RETURNED = "RETURNED"


@dataclass(frozen=True, slots=True)
class QueryClassification:
    """Heuristic shape of a non-compound query."""

    type: QueryType
    confidence: float


@dataclass(frozen=True, slots=True)
class CompoundQuery:
    """An `order_number|email` query split into its two halves."""

    order_number: str | None
    email: str | None
    raw_query: str


@dataclass(frozen=True, slots=True)
class LookupQuery:
    """Everything the adapters need to know about one sanitized query."""

    text: str
    classification: QueryClassification
    order_number: str | None = None
    email: str | None = None
    is_compound: bool = False

    @property
    def search_term(self) -> str:
        return self.order_number or self.email or self.text

    @property
    def needs_email(self) -> bool:
        """Order-number shaped query with no email to pair it with."""
        return self.order_number is not None and self.email is None


@dataclass(slots=True)
class LineItem:
    title: str
    quantity: int = 1
    price: float | None = None


@dataclass(slots=True)
class ShippingAddress:
    first_name: str | None = None
    last_name: str | None = None
    address1: str | None = None
    address2: str | None = None
    city: str | None = None
    province: str | None = None
    zip: str | None = None
    country: str | None = None


@dataclass(slots=True)
class CanonicalOrder:
    """Backend-agnostic order used by status and formatting logic.

    Every field is always present; adapters fill missing values with `None`
    or empty lists rather than omitting them.
    """

    source_backend: SourceBackend
    order_id: str
    order_number: str | None
    display_name: str | None
    customer_name: str | None
    customer_email: str | None
    status: CanonicalStatus
    total: float | None
    currency: str | None
    line_items: list[LineItem] = field(default_factory=list)
    shipping_address: ShippingAddress | None = None
    tracking_number: str | None = None
    tracking_url: str | None = None
    tracking_carrier: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def dedupe_key(self) -> str:
        return self.order_number or self.order_id


@dataclass(slots=True)
class LocalOrderRecord:
    """A row from the local order store in its native shape."""

    id: str
    tenant_id: str
    customer_name: str | None = None
    customer_email: str | None = None
    customer_id: str | None = None
    status: str | None = None
    total: float | None = None
    currency: str | None = None
    items: list[dict[str, Any]] = field(default_factory=list)
    shipping_address: dict[str, Any] | None = None
    tracking_number: str | None = None
    notes: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(slots=True)
class ToolTrace:
    """Trace record for an executed tool call."""

    name: str
    input_payload: dict[str, Any]
    output_preview: str
    latency_ms: float
