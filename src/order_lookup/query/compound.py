"""Parser for the `<order number>|<email>` compound query format."""

from __future__ import annotations

from order_lookup.types import CompoundQuery, QueryClassification, QueryType

COMPOUND_SEPARATOR = "|"


def parse_compound_query(sanitized: str) -> CompoundQuery | None:
    """Split a compound query, or return `None` for a single-field query."""

    if COMPOUND_SEPARATOR not in sanitized:
        return None
    order_part, _, email_part = sanitized.partition(COMPOUND_SEPARATOR)
    return CompoundQuery(
        order_number=order_part.strip() or None,
        email=email_part.strip() or None,
        raw_query=sanitized,
    )


def compound_classification(compound: CompoundQuery) -> QueryClassification:
    """Synthetic classification used instead of the heuristic classifier."""

    if compound.order_number:
        return QueryClassification(type=QueryType.ORDER_NUMBER, confidence=1.0)
    return QueryClassification(type=QueryType.EMAIL, confidence=1.0)
