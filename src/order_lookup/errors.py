"""Error kinds and per-adapter outcomes.

Components report failures as values (`AdapterOutcome.error`) and the lookup
pipeline performs the single translation from error kind to reply text.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from order_lookup.types import CanonicalOrder, SourceBackend


class ErrorKind(str, Enum):
    INVALID_INPUT = "invalid_input"
    BACKEND_UNAVAILABLE = "backend_unavailable"
    BACKEND_MISCONFIGURED = "backend_misconfigured"
    NO_MATCH_FOUND = "no_match_found"
    EMAIL_REQUIRED = "email_required"


class OrderLookupError(Exception):
    """Base error raised inside lookup components."""

    kind: ErrorKind = ErrorKind.BACKEND_UNAVAILABLE


class InvalidQueryError(OrderLookupError):
    kind = ErrorKind.INVALID_INPUT


class BackendUnavailableError(OrderLookupError):
    kind = ErrorKind.BACKEND_UNAVAILABLE


class BackendMisconfiguredError(OrderLookupError):
    kind = ErrorKind.BACKEND_MISCONFIGURED


@dataclass(slots=True)
class AdapterOutcome:
    """Result of running one backend adapter for one query."""

    backend: SourceBackend
    orders: list[CanonicalOrder] = field(default_factory=list)
    error: ErrorKind | None = None
    detail: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failed(
        cls, backend: SourceBackend, error: ErrorKind, detail: str | None = None
    ) -> "AdapterOutcome":
        return cls(backend=backend, orders=[], error=error, detail=detail)
