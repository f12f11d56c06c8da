"""External commerce platform client contract and HTTP implementation."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Protocol

import httpx
from pydantic import BaseModel, Field

from order_lookup.config import ExternalCredentials

logger = logging.getLogger(__name__)

API_VERSION = "2023-10"
KEY_PAIR_SCAN_LIMIT = 250


class ExternalCustomer(BaseModel):
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None


class ExternalAddress(BaseModel):
    first_name: str | None = None
    last_name: str | None = None
    address1: str | None = None
    address2: str | None = None
    city: str | None = None
    province: str | None = None
    zip: str | None = None
    country: str | None = None


class ExternalLineItem(BaseModel):
    title: str | None = None
    name: str | None = None
    quantity: int = 1
    price: float | None = None


class ExternalFulfillment(BaseModel):
    status: str | None = None
    tracking_company: str | None = None
    tracking_number: str | None = None
    tracking_url: str | None = None


class ExternalOrder(BaseModel):
    """Order as returned by the platform's Admin REST API."""

    id: int | str
    order_number: int | str | None = None
    name: str | None = None
    email: str | None = None
    financial_status: str | None = None
    fulfillment_status: str | None = None
    total_price: float | None = None
    currency: str | None = None
    customer: ExternalCustomer | None = None
    shipping_address: ExternalAddress | None = None
    line_items: list[ExternalLineItem] = Field(default_factory=list)
    fulfillments: list[ExternalFulfillment] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None
    cancelled_at: datetime | None = None

    @property
    def contact_email(self) -> str | None:
        if self.email:
            return self.email
        return self.customer.email if self.customer else None


class ClientStatus(str, Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"
    ERROR = "error"


@dataclass(slots=True)
class ClientResult:
    """Explicit outcome of one platform call; never partial data."""

    status: ClientStatus
    orders: list[ExternalOrder] = field(default_factory=list)
    error: str | None = None

    @classmethod
    def found(cls, orders: list[ExternalOrder]) -> "ClientResult":
        return cls(status=ClientStatus.FOUND, orders=orders)

    @classmethod
    def not_found(cls) -> "ClientResult":
        return cls(status=ClientStatus.NOT_FOUND)

    @classmethod
    def failed(cls, error: str) -> "ClientResult":
        return cls(status=ClientStatus.ERROR, error=error)

    @property
    def order(self) -> ExternalOrder | None:
        return self.orders[0] if self.orders else None


class ExternalPlatformClient(Protocol):
    """Operations the external adapter relies on."""

    def get_by_key_pair(self, order_number: str, email: str) -> ClientResult:
        """Look up one order by order number plus customer email."""

    def get_by_key(self, key: str) -> ClientResult:
        """Look up one order by name or id."""

    def list_recent(self, limit: int) -> ClientResult:
        """Fetch the most recent orders, newest first."""

    def close(self) -> None:
        """Release network resources."""


def _strip_hash(value: str) -> str:
    return value[1:] if value.startswith("#") else value


def _name_matches(order: ExternalOrder, clean_number: str) -> bool:
    return order.name in (clean_number, f"#{clean_number}")


class ShopifyClient:
    """Admin REST API client; every request is bounded by `timeout`."""

    def __init__(
        self,
        credentials: ExternalCredentials,
        *,
        timeout: float = 10.0,
        http_client: httpx.Client | None = None,
        api_version: str = API_VERSION,
    ) -> None:
        endpoint = credentials.endpoint.rstrip("/")
        if not endpoint.startswith(("http://", "https://")):
            endpoint = f"https://{endpoint}"
        self.base_url = f"{endpoint}/admin/api/{api_version}"
        self._owns_client = http_client is None
        self._http = http_client or httpx.Client(timeout=timeout)
        self._timeout = timeout
        self._headers = {
            "X-Shopify-Access-Token": credentials.token,
            "Content-Type": "application/json",
        }

    def __enter__(self) -> "ShopifyClient":
        return self

    def __exit__(self, exc_type: object, exc: object, tb: object) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_client:
            self._http.close()

    def get_by_key_pair(self, order_number: str, email: str) -> ClientResult:
        clean = _strip_hash(order_number)
        wanted_email = email.lower()

        def _match(orders: list[ExternalOrder]) -> ExternalOrder | None:
            for order in orders:
                contact = order.contact_email
                if contact and contact.lower() == wanted_email and _name_matches(order, clean):
                    return order
            return None

        try:
            by_name = self._list_orders({"name": clean, "status": "any", "limit": 50})
            order = _match(by_name)
            if order is None:
                recent = self._list_orders({"status": "any", "limit": KEY_PAIR_SCAN_LIMIT})
                order = _match(recent)
        except (httpx.HTTPError, ValueError) as exc:
            return self._failure("key pair lookup", exc)

        if order is None:
            return ClientResult.not_found()
        return ClientResult.found([order])

    def get_by_key(self, key: str) -> ClientResult:
        clean = _strip_hash(key)
        try:
            orders = self._list_orders({"name": clean, "status": "any", "limit": 1})
            if orders:
                return ClientResult.found(orders[:1])
            if not clean.isdigit():
                return ClientResult.not_found()

            response = self._http.get(
                f"{self.base_url}/orders/{clean}.json",
                headers=self._headers,
                timeout=self._timeout,
            )
            if response.status_code == 404:
                return ClientResult.not_found()
            response.raise_for_status()
            payload = response.json().get("order")
            if not payload:
                return ClientResult.not_found()
            return ClientResult.found([ExternalOrder.model_validate(payload)])
        except (httpx.HTTPError, ValueError) as exc:
            return self._failure("order lookup", exc)

    def list_recent(self, limit: int) -> ClientResult:
        try:
            orders = self._list_orders({"status": "any", "limit": limit})
        except (httpx.HTTPError, ValueError) as exc:
            return self._failure("recent orders fetch", exc)
        return ClientResult.found(orders) if orders else ClientResult.not_found()

    def test_connection(self) -> bool:
        try:
            response = self._http.get(
                f"{self.base_url}/shop.json", headers=self._headers, timeout=self._timeout
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error("External platform connection test failed: %s", exc)
            return False
        return True

    def _list_orders(self, params: dict[str, Any]) -> list[ExternalOrder]:
        response = self._http.get(
            f"{self.base_url}/orders.json",
            params=params,
            headers=self._headers,
            timeout=self._timeout,
        )
        response.raise_for_status()
        return [
            ExternalOrder.model_validate(item) for item in response.json().get("orders", [])
        ]

    @staticmethod
    def _failure(operation: str, exc: Exception) -> ClientResult:
        if isinstance(exc, httpx.TimeoutException):
            message = f"{operation} timed out"
        else:
            message = f"{operation} failed: {exc}"
        logger.error("External platform %s", message)
        return ClientResult.failed(message)
