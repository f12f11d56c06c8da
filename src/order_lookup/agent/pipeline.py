"""The `lookup_order` capability: sanitize, classify, search, merge, reply."""

from __future__ import annotations

import logging
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from enum import Enum

from order_lookup.config import ExternalCredentials, LookupConfig, SourceConfiguration
from order_lookup.errors import (
    AdapterOutcome,
    BackendMisconfiguredError,
    ErrorKind,
    InvalidQueryError,
)
from order_lookup.obs.tracing import Timer, TraceStore
from order_lookup.query.classifier import classify_query, extract_order_number
from order_lookup.query.compound import compound_classification, parse_compound_query
from order_lookup.query.sanitizer import sanitize_query
from order_lookup.render.disambiguation import (
    backend_trouble_reply,
    build_follow_up,
    generic_fallback_reply,
    invalid_input_reply,
)
from order_lookup.render.formatter import format_orders
from order_lookup.results.merger import merge_results
from order_lookup.sources.external_adapter import ExternalPlatformAdapter
from order_lookup.sources.external_client import ExternalPlatformClient, ShopifyClient
from order_lookup.sources.local_adapter import LocalStoreAdapter
from order_lookup.sources.local_store import LocalOrderStore
from order_lookup.sources.resolver import SourceResolver
from order_lookup.types import (
    CanonicalOrder,
    LookupQuery,
    QueryType,
    SourceBackend,
    SourceMode,
)

logger = logging.getLogger(__name__)

ClientFactory = Callable[[ExternalCredentials, LookupConfig], ExternalPlatformClient]


def default_client_factory(
    credentials: ExternalCredentials, config: LookupConfig
) -> ExternalPlatformClient:
    return ShopifyClient(credentials, timeout=config.external_timeout_seconds)


class LookupOutcome(str, Enum):
    FOUND = "found"
    NO_MATCH = "no_match"
    EMAIL_REQUIRED = "email_required"
    INVALID_INPUT = "invalid_input"
    BACKEND_UNAVAILABLE = "backend_unavailable"
    ERROR = "error"


@dataclass(slots=True)
class LookupReply:
    """The reply text plus what the pipeline learned along the way."""

    text: str
    outcome: LookupOutcome
    query: LookupQuery | None = None
    source_mode: SourceMode | None = None
    orders: list[CanonicalOrder] = field(default_factory=list)
    trace_id: str | None = None


def build_lookup_query(text: str) -> LookupQuery:
    """Turn sanitized text into a `LookupQuery`.

    Raises `InvalidQueryError` when nothing usable is left to search for.
    """

    if not text:
        raise InvalidQueryError("empty query")
    compound = parse_compound_query(text)
    if compound is not None:
        if compound.order_number is None and compound.email is None:
            raise InvalidQueryError("compound query with both halves empty")
        return LookupQuery(
            text=text,
            classification=compound_classification(compound),
            order_number=compound.order_number,
            email=compound.email,
            is_compound=True,
        )

    classification = classify_query(text)
    order_number = None
    if classification.type is QueryType.ORDER_NUMBER:
        order_number = extract_order_number(text)
    return LookupQuery(text=text, classification=classification, order_number=order_number)


class OrderLookupPipeline:
    """Resolves a free-form identifier into a reply for one tenant.

    Each call re-reads the tenant's source configuration and threads it
    through the adapters; nothing is shared between calls except the stores
    and the optional trace store.
    """

    def __init__(
        self,
        *,
        local_store: LocalOrderStore,
        resolver: SourceResolver,
        config: LookupConfig | None = None,
        client_factory: ClientFactory = default_client_factory,
        trace_store: TraceStore | None = None,
    ) -> None:
        self.config = config or LookupConfig()
        self.local_adapter = LocalStoreAdapter(local_store, self.config)
        self.resolver = resolver
        self.client_factory = client_factory
        self.trace_store = trace_store

    def lookup_order(self, tenant_id: str, query: str) -> str:
        """Capability entrypoint: always returns a complete reply string."""
        return self.run(tenant_id, query).text

    def run(self, tenant_id: str, query: str) -> LookupReply:
        logger.info("Order tracking initiated for tenant %s query %r", tenant_id, query)
        with Timer() as timer:
            try:
                reply = self._lookup(tenant_id, query)
            except Exception:
                logger.exception(
                    "Order tracking failed for tenant %s query %r", tenant_id, query
                )
                reply = LookupReply(text=generic_fallback_reply(), outcome=LookupOutcome.ERROR)

        logger.info(
            "Order tracking completed for tenant %s: outcome=%s results=%d in %.1fms",
            tenant_id,
            reply.outcome.value,
            len(reply.orders),
            timer.elapsed_ms,
        )
        if self.trace_store is not None:
            classification = reply.query.classification if reply.query else None
            record = self.trace_store.create_record(
                tenant_id=tenant_id,
                query=reply.query.text if reply.query else (query or ""),
                query_type=classification.type.value if classification else None,
                confidence=classification.confidence if classification else None,
                source_mode=reply.source_mode.value if reply.source_mode else None,
                result_count=len(reply.orders),
                outcome=reply.outcome.value,
                latency_ms=timer.elapsed_ms,
            )
            reply.trace_id = record.trace_id
        return reply

    def _lookup(self, tenant_id: str, query: str) -> LookupReply:
        text = sanitize_query(query, max_length=self.config.max_query_length)
        try:
            lookup = build_lookup_query(text)
        except InvalidQueryError:
            return LookupReply(text=invalid_input_reply(), outcome=LookupOutcome.INVALID_INPUT)

        source = self.resolver.resolve(tenant_id)
        mode = source.effective_mode()
        outcomes = self._run_adapters(tenant_id, lookup, source, mode)

        orders = merge_results(
            [outcome.orders for outcome in outcomes if outcome.ok],
            max_results=self.config.max_results,
        )
        if orders:
            return LookupReply(
                text=format_orders(orders, text),
                outcome=LookupOutcome.FOUND,
                query=lookup,
                source_mode=mode,
                orders=orders,
            )

        errors = {outcome.backend: outcome.error for outcome in outcomes}
        if errors.get(SourceBackend.EXTERNAL) is ErrorKind.EMAIL_REQUIRED:
            return LookupReply(
                text=build_follow_up(lookup, email_required=True),
                outcome=LookupOutcome.EMAIL_REQUIRED,
                query=lookup,
                source_mode=mode,
            )
        if outcomes and all(
            outcome.error is ErrorKind.BACKEND_UNAVAILABLE for outcome in outcomes
        ):
            return LookupReply(
                text=backend_trouble_reply(),
                outcome=LookupOutcome.BACKEND_UNAVAILABLE,
                query=lookup,
                source_mode=mode,
            )
        return LookupReply(
            text=build_follow_up(lookup),
            outcome=LookupOutcome.NO_MATCH,
            query=lookup,
            source_mode=mode,
        )

    def _run_adapters(
        self,
        tenant_id: str,
        lookup: LookupQuery,
        source: SourceConfiguration,
        mode: SourceMode,
    ) -> list[AdapterOutcome]:
        if mode is SourceMode.LOCAL:
            return [self.local_adapter.search(tenant_id, lookup)]
        if mode is SourceMode.EXTERNAL:
            return [self._search_external(tenant_id, lookup, source)]

        # Both backends are independent; run them side by side and wait for
        # each up to the adapter timeout.
        executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="order-lookup")
        try:
            futures: dict[SourceBackend, Future[AdapterOutcome]] = {
                SourceBackend.LOCAL: executor.submit(
                    self.local_adapter.search, tenant_id, lookup
                ),
                SourceBackend.EXTERNAL: executor.submit(
                    self._search_external, tenant_id, lookup, source
                ),
            }
            wait(futures.values(), timeout=self.config.adapter_timeout_seconds)
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        outcomes: list[AdapterOutcome] = []
        for backend, future in futures.items():
            if future.done() and not future.cancelled():
                outcomes.append(future.result())
                continue
            logger.warning(
                "%s order search for tenant %s timed out after %.1fs",
                backend.value,
                tenant_id,
                self.config.adapter_timeout_seconds,
            )
            outcomes.append(
                AdapterOutcome.failed(backend, ErrorKind.BACKEND_UNAVAILABLE, "timed out")
            )
        return outcomes

    def _search_external(
        self, tenant_id: str, lookup: LookupQuery, source: SourceConfiguration
    ) -> AdapterOutcome:
        if lookup.needs_email:
            logger.info(
                "Order number %r for tenant %s received without an email; asking for one",
                lookup.order_number,
                tenant_id,
            )
            return AdapterOutcome.failed(SourceBackend.EXTERNAL, ErrorKind.EMAIL_REQUIRED)

        try:
            client = self._open_client(source)
            try:
                outcome = ExternalPlatformAdapter(client, self.config).search(lookup)
            finally:
                client.close()
        except BackendMisconfiguredError as exc:
            logger.warning("Skipping external order search for tenant %s: %s", tenant_id, exc)
            return AdapterOutcome.failed(SourceBackend.EXTERNAL, exc.kind, str(exc))
        except Exception as exc:
            logger.exception(
                "External order search failed for tenant %s query %r", tenant_id, lookup.text
            )
            return AdapterOutcome.failed(
                SourceBackend.EXTERNAL, ErrorKind.BACKEND_UNAVAILABLE, str(exc)
            )

        if outcome.error is ErrorKind.BACKEND_UNAVAILABLE:
            logger.warning(
                "External platform unavailable for tenant %s query %r: %s",
                tenant_id,
                lookup.text,
                outcome.detail,
            )
        return outcome

    def _open_client(self, source: SourceConfiguration) -> ExternalPlatformClient:
        if source.external_credentials is None:
            raise BackendMisconfiguredError("no external platform credentials")
        return self.client_factory(source.external_credentials, self.config)
