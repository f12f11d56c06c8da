"""Input cleanup applied before any other query processing."""

from __future__ import annotations

import re

MAX_QUERY_LENGTH = 100

_WHITESPACE = re.compile(r"\s+")
_DISALLOWED = re.compile(r"[^A-Za-z0-9 @.\-|]")


def sanitize_query(raw: str | None, *, max_length: int = MAX_QUERY_LENGTH) -> str:
    """Strip unsafe characters, collapse whitespace and cap the length.

    Never raises. An empty return value means the caller supplied nothing
    usable.
    """

    if not raw:
        return ""
    text = _WHITESPACE.sub(" ", str(raw))
    text = _DISALLOWED.sub("", text)
    text = _WHITESPACE.sub(" ", text).strip()
    return text[:max_length].strip()
