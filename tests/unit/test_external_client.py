import httpx

from order_lookup.config import ExternalCredentials
from order_lookup.sources.external_client import ClientStatus, ShopifyClient

_CREDENTIALS = ExternalCredentials(endpoint="demo-store.myshopify.com", token="shpat_test")


def _order_payload(order_id: int, name: str, email: str) -> dict[str, object]:
    return {
        "id": order_id,
        "order_number": int(name.lstrip("#")),
        "name": name,
        "email": email,
        "financial_status": "paid",
        "fulfillment_status": None,
        "total_price": "42.00",
        "currency": "USD",
        "line_items": [{"title": "Mug", "quantity": 1, "price": "42.00"}],
        "created_at": "2024-02-01T10:00:00-05:00",
        "updated_at": "2024-02-02T10:00:00-05:00",
    }


def _client(handler) -> tuple[ShopifyClient, list[httpx.Request]]:
    seen: list[httpx.Request] = []

    def _record(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)

    http = httpx.Client(transport=httpx.MockTransport(_record))
    return ShopifyClient(_CREDENTIALS, http_client=http), seen


def test_requests_use_admin_api_and_access_token_header() -> None:
    client, seen = _client(lambda request: httpx.Response(200, json={"orders": []}))

    client.list_recent(10)

    request = seen[0]
    assert request.url.host == "demo-store.myshopify.com"
    assert request.url.path == "/admin/api/2023-10/orders.json"
    assert request.url.params["limit"] == "10"
    assert request.url.params["status"] == "any"
    assert request.headers["X-Shopify-Access-Token"] == "shpat_test"


def test_get_by_key_pair_matches_name_and_email() -> None:
    orders = [
        _order_payload(1, "#176484", "someone@else.com"),
        _order_payload(2, "#176484", "John@Example.com"),
    ]
    client, seen = _client(lambda request: httpx.Response(200, json={"orders": orders}))

    result = client.get_by_key_pair("#176484", "john@example.com")

    assert result.status is ClientStatus.FOUND
    assert result.order.id == 2
    assert seen[0].url.params["name"] == "176484"
    assert len(seen) == 1


def test_get_by_key_pair_falls_back_to_recent_scan() -> None:
    target = _order_payload(7, "#176484", "john@example.com")

    def _handler(request: httpx.Request) -> httpx.Response:
        if "name" in request.url.params:
            return httpx.Response(200, json={"orders": []})
        return httpx.Response(200, json={"orders": [target]})

    client, seen = _client(_handler)

    result = client.get_by_key_pair("176484", "john@example.com")

    assert result.status is ClientStatus.FOUND
    assert seen[1].url.params["limit"] == "250"


def test_get_by_key_pair_not_found() -> None:
    client, _ = _client(lambda request: httpx.Response(200, json={"orders": []}))

    assert client.get_by_key_pair("1", "a@b.co").status is ClientStatus.NOT_FOUND


def test_get_by_key_falls_back_to_numeric_id() -> None:
    def _handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/orders/5550001.json"):
            return httpx.Response(
                200, json={"order": _order_payload(5550001, "#1001", "a@b.co")}
            )
        return httpx.Response(200, json={"orders": []})

    client, seen = _client(_handler)

    result = client.get_by_key("5550001")

    assert result.status is ClientStatus.FOUND
    assert result.order.name == "#1001"
    assert len(seen) == 2


def test_get_by_key_missing_id_is_not_found() -> None:
    def _handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith(".json") and "/orders/" in request.url.path:
            return httpx.Response(404, json={"errors": "Not Found"})
        return httpx.Response(200, json={"orders": []})

    client, _ = _client(_handler)

    assert client.get_by_key("999").status is ClientStatus.NOT_FOUND
    assert client.get_by_key("#ABC").status is ClientStatus.NOT_FOUND


def test_http_errors_become_error_results() -> None:
    client, _ = _client(lambda request: httpx.Response(503, json={"errors": "down"}))

    for result in (
        client.get_by_key("1001"),
        client.get_by_key_pair("1001", "a@b.co"),
        client.list_recent(5),
    ):
        assert result.status is ClientStatus.ERROR
        assert result.orders == []
        assert result.error


def test_timeouts_become_error_results() -> None:
    def _handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    client, _ = _client(_handler)

    result = client.list_recent(5)

    assert result.status is ClientStatus.ERROR
    assert "timed out" in result.error


def test_connection_check() -> None:
    healthy, _ = _client(lambda request: httpx.Response(200, json={"shop": {}}))
    broken, _ = _client(lambda request: httpx.Response(401, json={"errors": "no"}))

    assert healthy.test_connection() is True
    assert broken.test_connection() is False
