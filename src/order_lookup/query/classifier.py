"""Heuristic classification of single-field customer queries.

Shapes overlap (a long digit run is both a plausible tracking number and a
plausible order number), so precedence lives in `CLASSIFICATION_RULES` as
data: rules are evaluated top to bottom and the first match wins.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass

from order_lookup.types import QueryClassification, QueryType

_STRICT_EMAIL = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_CARRIER_PREFIX = re.compile(r"^(trk|ups|fedex|1z)[a-z0-9]+$")
_LONG_DIGITS = re.compile(r"^\d{10,20}$")
_HASH_NUMBER = re.compile(r"^#?(?P<number>\d{4,})$")
# An optional "order" / "order #" lead-in followed by the identifier itself.
_PREFIXED_NUMBER = re.compile(
    r"^(?:order(?:\s*#\s*|\s+|(?=\d)))?(?P<number>[a-z]*-?\d{4,}(?:-\d+)*)$"
)
_PURE_NUMBER = re.compile(r"^\d{5,}$")
_VAGUE_KEYWORDS = re.compile(r"track|order|where|status")
_SHORT_DIGITS = re.compile(r"^\d{1,3}$")
_SHORT_WORDS = re.compile(r"^[a-z\s]{2,}$")

DEFAULT_CLASSIFICATION = QueryClassification(type=QueryType.VAGUE, confidence=0.3)


@dataclass(frozen=True, slots=True)
class ShapeRule:
    """One row of the classification table."""

    name: str
    predicate: Callable[[str], bool]
    type: QueryType
    confidence: Callable[[str], float]


def _email_confidence(text: str) -> float:
    return 0.9 if _STRICT_EMAIL.match(text) else 0.6


def _order_number_confidence(text: str) -> float:
    if _PURE_NUMBER.match(text) or "#" in text or "ord" in text:
        return 0.9
    return 0.8


def _fixed(value: float) -> Callable[[str], float]:
    return lambda _text: value


CLASSIFICATION_RULES: tuple[ShapeRule, ...] = (
    ShapeRule(
        name="email",
        predicate=lambda text: "@" in text,
        type=QueryType.EMAIL,
        confidence=_email_confidence,
    ),
    ShapeRule(
        name="tracking_number",
        predicate=lambda text: bool(
            _CARRIER_PREFIX.match(text) or _LONG_DIGITS.match(text)
        ),
        type=QueryType.TRACKING_NUMBER,
        confidence=_fixed(0.8),
    ),
    ShapeRule(
        name="order_number",
        predicate=lambda text: bool(
            _HASH_NUMBER.match(text) or _PREFIXED_NUMBER.match(text)
        ),
        type=QueryType.ORDER_NUMBER,
        confidence=_order_number_confidence,
    ),
    ShapeRule(
        name="vague_request",
        predicate=lambda text: bool(_VAGUE_KEYWORDS.search(text)),
        type=QueryType.VAGUE,
        confidence=_fixed(0.9),
    ),
    ShapeRule(
        name="partial_fragment",
        predicate=lambda text: bool(
            _SHORT_DIGITS.match(text) or _SHORT_WORDS.match(text)
        ),
        type=QueryType.PARTIAL_FRAGMENT,
        confidence=_fixed(0.5),
    ),
)


def classify_query(
    text: str, rules: tuple[ShapeRule, ...] = CLASSIFICATION_RULES
) -> QueryClassification:
    """Return the first matching shape; total, defaulting to a weak `vague`."""

    normalized = text.lower().strip()
    for rule in rules:
        if rule.predicate(normalized):
            return QueryClassification(
                type=rule.type, confidence=rule.confidence(normalized)
            )
    return DEFAULT_CLASSIFICATION


def extract_order_number(text: str) -> str:
    """The identifier part of an order-number shaped query.

    `"order 12345"` yields `"12345"`; the original casing is kept so
    `"ORD-2024-001"` comes back unchanged. Text that does not have the
    order-number shape is returned stripped.
    """

    stripped = text.strip()
    normalized = stripped.lower()
    for pattern in (_HASH_NUMBER, _PREFIXED_NUMBER):
        match = pattern.match(normalized)
        if match:
            start, end = match.span("number")
            return stripped[start:end]
    return stripped
