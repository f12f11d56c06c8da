import time
from datetime import datetime, timezone

import pytest

from order_lookup.agent.pipeline import LookupOutcome, OrderLookupPipeline, build_lookup_query
from order_lookup.config import LookupConfig, SourceConfiguration
from order_lookup.errors import ErrorKind, InvalidQueryError
from order_lookup.obs.tracing import TraceStore
from order_lookup.sources.external_client import ClientResult, ExternalOrder
from order_lookup.sources.local_store import InMemoryOrderStore
from order_lookup.sources.resolver import SourceResolver
from order_lookup.sources.tenant_config import InMemoryTenantConfigStore, IntegrationRecord
from order_lookup.types import LocalOrderRecord, QueryType

TENANT = "tenant-a"


class FakePlatformClient:
    def __init__(
        self,
        *,
        key_pair: ClientResult | None = None,
        recent: ClientResult | None = None,
        by_key: ClientResult | None = None,
        delay: float = 0.0,
    ) -> None:
        self.calls: list[str] = []
        self.closed = False
        self._key_pair = key_pair or ClientResult.not_found()
        self._recent = recent or ClientResult.not_found()
        self._by_key = by_key or ClientResult.not_found()
        self._delay = delay

    def get_by_key_pair(self, order_number: str, email: str) -> ClientResult:
        self.calls.append("get_by_key_pair")
        time.sleep(self._delay)
        return self._key_pair

    def get_by_key(self, key: str) -> ClientResult:
        self.calls.append("get_by_key")
        time.sleep(self._delay)
        return self._by_key

    def list_recent(self, limit: int) -> ClientResult:
        self.calls.append("list_recent")
        time.sleep(self._delay)
        return self._recent

    def close(self) -> None:
        self.closed = True


def _local_record(order_id: str, **kwargs) -> LocalOrderRecord:
    values = {
        "customer_name": "John Smith",
        "customer_email": "john.smith@email.com",
        "status": "PROCESSING",
        "total": 89.99,
        "currency": "USD",
        "items": [{"productName": "Trail Runner Shoes", "quantity": 1, "price": 89.99}],
        "created_at": datetime(2024, 4, 2, tzinfo=timezone.utc),
        "updated_at": datetime(2024, 4, 3, tzinfo=timezone.utc),
    }
    values.update(kwargs)
    return LocalOrderRecord(id=order_id, tenant_id=TENANT, **values)


def _external_order(order_id: int, name: str, email: str, updated_day: int) -> ExternalOrder:
    return ExternalOrder.model_validate(
        {
            "id": order_id,
            "order_number": name.lstrip("#"),
            "name": name,
            "email": email,
            "financial_status": "paid",
            "fulfillment_status": None,
            "total_price": 10.0,
            "created_at": datetime(2024, 6, 1, tzinfo=timezone.utc),
            "updated_at": datetime(2024, 6, updated_day, tzinfo=timezone.utc),
        }
    )


def _pipeline(
    mode: str,
    *,
    client: FakePlatformClient | None = None,
    records: list[LocalOrderRecord] | None = None,
    with_credentials: bool = True,
    config: LookupConfig | None = None,
    trace_store: TraceStore | None = None,
) -> tuple[OrderLookupPipeline, list[FakePlatformClient]]:
    config_store = InMemoryTenantConfigStore()
    config_store.set_settings(TENANT, {"orderTrackingSource": mode})
    if with_credentials:
        config_store.add_integration(
            IntegrationRecord(
                tenant_id=TENANT,
                type="shopify",
                status="ACTIVE",
                config={"domain": "demo.myshopify.com", "accessToken": "tok"},
            )
        )

    created: list[FakePlatformClient] = []

    def _factory(credentials, lookup_config):
        instance = client or FakePlatformClient()
        created.append(instance)
        return instance

    pipeline = OrderLookupPipeline(
        local_store=InMemoryOrderStore(records or []),
        resolver=SourceResolver(config_store, environ={}),
        config=config,
        client_factory=_factory,
        trace_store=trace_store,
    )
    return pipeline, created


def test_order_number_without_email_asks_for_email() -> None:
    pipeline, created = _pipeline("shopify")

    reply = pipeline.run(TENANT, "176484")

    assert reply.outcome is LookupOutcome.EMAIL_REQUIRED
    assert "176484" in reply.text
    assert "email address" in reply.text
    assert "Total" not in reply.text
    assert "Items" not in reply.text
    assert created == []


def test_order_reference_is_reduced_to_its_identifier() -> None:
    query = build_lookup_query("order 12345")

    assert query.classification.type is QueryType.ORDER_NUMBER
    assert query.order_number == "12345"
    assert query.search_term == "12345"
    assert query.needs_email


def test_hashed_order_reference_asks_for_email_with_bare_number() -> None:
    pipeline, created = _pipeline("shopify")

    reply = pipeline.run(TENANT, "order #12345")

    assert reply.outcome is LookupOutcome.EMAIL_REQUIRED
    assert reply.query.order_number == "12345"
    assert "**12345**" in reply.text
    assert "**order 12345**" not in reply.text
    assert created == []


def test_order_reference_finds_local_order_by_identifier() -> None:
    pipeline, _ = _pipeline("local", records=[_local_record("SHOP-12345")])

    reply = pipeline.run(TENANT, "order 12345")

    assert reply.outcome is LookupOutcome.FOUND
    assert [order.order_id for order in reply.orders] == ["SHOP-12345"]


def test_email_query_against_local_store_renders_single_order() -> None:
    pipeline, created = _pipeline("local", records=[_local_record("ORD-2024-001")])

    reply = pipeline.lookup_order(TENANT, "john.smith@email.com")

    assert "Order Found!" in reply
    assert "John Smith" in reply
    assert "Trail Runner Shoes" in reply
    assert created == []


def test_compound_query_tries_key_pair_first() -> None:
    query = build_lookup_query("ORD-2024-001|foo@bar.com")
    client = FakePlatformClient()
    pipeline, _ = _pipeline("shopify", client=client)

    reply = pipeline.run(TENANT, "ORD-2024-001|foo@bar.com")

    assert query.order_number == "ORD-2024-001"
    assert query.email == "foo@bar.com"
    assert client.calls[0] == "get_by_key_pair"
    assert reply.outcome is LookupOutcome.NO_MATCH
    assert "ORD-2024-001" in reply.text


def test_vague_query_lists_accepted_identifiers() -> None:
    pipeline, _ = _pipeline("local")

    reply = pipeline.run(TENANT, "track my order")

    assert reply.outcome is LookupOutcome.NO_MATCH
    assert reply.query.classification.type is QueryType.VAGUE
    assert "Email address" in reply.text
    assert "Order number" in reply.text
    assert "Tracking number" in reply.text


def test_duplicate_order_numbers_render_once_each_most_recent_first() -> None:
    recent = ClientResult.found(
        [
            _external_order(1, "#5001", "jane@example.com", updated_day=1),
            _external_order(2, "#5001", "jane@example.com", updated_day=9),
            _external_order(3, "#5001", "jane@example.com", updated_day=5),
            _external_order(4, "#5002", "jane@example.com", updated_day=3),
        ]
    )
    pipeline, _ = _pipeline("shopify", client=FakePlatformClient(recent=recent))

    reply = pipeline.run(TENANT, "jane@example.com")

    assert reply.outcome is LookupOutcome.FOUND
    assert [order.order_id for order in reply.orders] == ["4", "1"]
    assert "Found 2 Orders" in reply.text
    assert reply.text.count("Order #5001") == 1
    assert reply.text.index("#5002") < reply.text.index("#5001")


def test_both_mode_degrades_to_local_when_external_fails() -> None:
    client = FakePlatformClient(
        key_pair=ClientResult.failed("order lookup timed out"),
        by_key=ClientResult.failed("order lookup timed out"),
        recent=ClientResult.failed("recent orders fetch timed out"),
    )
    pipeline, _ = _pipeline("both", client=client, records=[_local_record("ORD-77")])

    reply = pipeline.run(TENANT, "john.smith@email.com")

    assert reply.outcome is LookupOutcome.FOUND
    assert [order.order_id for order in reply.orders] == ["ORD-77"]


def test_both_mode_keeps_local_results_when_external_is_slow() -> None:
    client = FakePlatformClient(delay=0.6)
    pipeline, _ = _pipeline(
        "both",
        client=client,
        records=[_local_record("ORD-78")],
        config=LookupConfig(adapter_timeout_seconds=0.2),
    )

    reply = pipeline.run(TENANT, "john.smith@email.com")

    assert reply.outcome is LookupOutcome.FOUND
    assert [order.order_id for order in reply.orders] == ["ORD-78"]


def test_external_only_failure_gives_trouble_reply(caplog: pytest.LogCaptureFixture) -> None:
    client = FakePlatformClient(recent=ClientResult.failed("recent orders fetch failed: 503"))
    pipeline, _ = _pipeline("shopify", client=client)

    with caplog.at_level("WARNING"):
        reply = pipeline.run(TENANT, "jane@example.com")

    assert reply.outcome is LookupOutcome.BACKEND_UNAVAILABLE
    assert "I had trouble looking that up" in reply.text
    assert TENANT in caplog.text


def test_missing_credentials_fall_back_to_local_store() -> None:
    pipeline, created = _pipeline(
        "shopify", records=[_local_record("EXTERNAL-176484")], with_credentials=False
    )

    reply = pipeline.run(TENANT, "176484")

    assert reply.outcome is LookupOutcome.FOUND
    assert reply.orders[0].order_id == "EXTERNAL-176484"
    assert created == []


def test_both_mode_order_number_uses_local_match() -> None:
    client = FakePlatformClient()
    pipeline, created = _pipeline("both", client=client, records=[_local_record("EXTERNAL-176484")])

    reply = pipeline.run(TENANT, "176484")

    assert reply.outcome is LookupOutcome.FOUND
    assert client.calls == []
    assert created == []


@pytest.mark.parametrize("raw", ["", "   ", "<<<>>>", "|"])
def test_unusable_input_is_rejected(raw: str) -> None:
    pipeline, created = _pipeline("shopify")

    reply = pipeline.run(TENANT, raw)

    assert reply.outcome is LookupOutcome.INVALID_INPUT
    assert reply.text.startswith("I apologize, but I need something to look up")
    assert created == []


def test_unexpected_failure_returns_generic_reply() -> None:
    class _ExplodingResolver:
        def resolve(self, tenant_id: str):
            raise RuntimeError("boom")

    pipeline = OrderLookupPipeline(
        local_store=InMemoryOrderStore(),
        resolver=_ExplodingResolver(),
    )

    reply = pipeline.run(TENANT, "176484")

    assert reply.outcome is LookupOutcome.ERROR
    assert "I encountered an issue looking up your order" in reply.text


def test_lookups_are_traced() -> None:
    trace_store = TraceStore()
    pipeline, _ = _pipeline("local", records=[_local_record("ORD-1")], trace_store=trace_store)

    reply = pipeline.run(TENANT, "john.smith@email.com")
    trace = trace_store.get(reply.trace_id)

    assert trace.outcome == "found"
    assert trace.query_type == "email"
    assert trace.source_mode == "local"
    assert trace.result_count == 1


@pytest.mark.parametrize("text", ["", "|", " | "])
def test_build_lookup_query_rejects_empty_input(text: str) -> None:
    with pytest.raises(InvalidQueryError):
        build_lookup_query(text)


def test_external_search_without_credentials_is_skipped() -> None:
    pipeline, created = _pipeline("shopify", with_credentials=False)

    outcome = pipeline._search_external(
        TENANT, build_lookup_query("jane@example.com"), SourceConfiguration()
    )

    assert outcome.error is ErrorKind.BACKEND_MISCONFIGURED
    assert created == []
