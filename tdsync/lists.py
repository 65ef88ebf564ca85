"""
lists.py - List Descriptors and Payload Normalization

A list descriptor names one remotely-published tracker data set and says how
its body is decoded (``format``) and how the decoded body is reshaped for
consumers (``kind``).

Normalization is dispatched on ListKind rather than on the list name:

    ListKind.JSON   →  decoded JSON passed through unchanged
    ListKind.TEXT   →  decoded text passed through unchanged
    ListKind.LINES  →  "a\\nb\\nc"  →  ["a", "b", "c"]

Every normalizer is pure. Bad input raises ProcessingError so the caller can
fall back to the persisted copy instead of caching garbage.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Callable, Final, NamedTuple

from tdsync.errors import ProcessingError


# =============================================================================
# TYPES
# =============================================================================

class ListFormat(str, Enum):
    """How the fetcher decodes a response body."""
    JSON = "json"
    TEXT = "text"


class ListKind(str, Enum):
    """Shape consumers expect a list's payload to have."""
    JSON = "json"
    TEXT = "text"
    LINES = "lines"


#: Kind used when a descriptor does not declare one
DEFAULT_KINDS: Final[dict[ListFormat, ListKind]] = {
    ListFormat.JSON: ListKind.JSON,
    ListFormat.TEXT: ListKind.TEXT,
}


class ListDescriptor(NamedTuple):
    """
    Identifies one tracker data set.

    Attributes:
        name: Unique list name, used as cache key and settings-key prefix
        url: Base fetch location
        format: Body decoding for the fetcher
        kind: Normalization strategy, derived from format when None

    Example:
        >>> d = ListDescriptor("brokenSiteList", "https://example.com/b.txt",
        ...                    ListFormat.TEXT, ListKind.LINES)
        >>> d.resolved_kind
        <ListKind.LINES: 'lines'>
    """
    name: str
    url: str
    format: ListFormat = ListFormat.JSON
    kind: ListKind | None = None

    @property
    def resolved_kind(self) -> ListKind:
        if self.kind is not None:
            return self.kind
        return DEFAULT_KINDS[self.format]


# =============================================================================
# NORMALIZERS
# =============================================================================

def _normalize_json(raw: Any) -> Any:
    if raw is None:
        raise ProcessingError("JSON list decoded to nothing")
    return raw


def _normalize_text(raw: Any) -> str:
    if not isinstance(raw, str):
        raise ProcessingError(f"Expected text payload, got {type(raw).__name__}")
    if not raw.strip():
        raise ProcessingError("Text payload is empty")
    return raw


def _normalize_lines(raw: Any) -> list[str]:
    # Already split (e.g. read back from the cache)
    if isinstance(raw, list):
        if not all(isinstance(entry, str) for entry in raw):
            raise ProcessingError("Line list contains non-string entries")
        if not any(entry.strip() for entry in raw):
            raise ProcessingError("Line list has no entries")
        return list(raw)
    if not isinstance(raw, str):
        raise ProcessingError(f"Expected newline-delimited text, got {type(raw).__name__}")
    if not raw.strip():
        raise ProcessingError("Line list body is empty")
    return raw.split("\n")


NORMALIZERS: Final[dict[ListKind, Callable[[Any], Any]]] = {
    ListKind.JSON: _normalize_json,
    ListKind.TEXT: _normalize_text,
    ListKind.LINES: _normalize_lines,
}


def normalize(kind: ListKind, raw: Any) -> Any:
    """
    Reshape a decoded payload into the structure consumers expect.

    Args:
        kind: The list's normalization strategy
        raw: Decoded response body

    Returns:
        Normalized payload

    Raises:
        ProcessingError: If the payload has the wrong shape for its kind
    """
    return NORMALIZERS[ListKind(kind)](raw)


def empty_payload(kind: ListKind) -> Any:
    """Payload consumers see for a list that has never been loaded."""
    if kind is ListKind.JSON:
        return {}
    if kind is ListKind.LINES:
        return []
    return ""
