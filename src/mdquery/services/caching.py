"""Query result cache.

Results are memoized per (normalized query text, document count) for a
short TTL so that re-rendering the same query while a note is being edited
does not re-run it. The document count is a cheap proxy for "the
collection changed"; an index rebuild clears the cache outright.

Eviction is coarse: once the cache holds more than ``max_entries`` results,
the oldest ``eviction_batch`` of them (by insertion time) are dropped in
one pass.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Callable, Optional

from loguru import logger

from ..core.config import QueryCacheConfig
from ..utils.hashing import digest

if TYPE_CHECKING:
    from ..core.types import QueryResult


def normalize_query_text(query_text: str) -> str:
    """Collapse a query to one line: lines stripped, blank lines dropped."""
    return " ".join(line.strip() for line in query_text.splitlines() if line.strip())


def make_key(query_text: str, document_count: int) -> str:
    """Cache key for a query over a collection of the given size."""
    return digest(normalize_query_text(query_text), document_count)


@dataclass
class CacheEntry:
    """A cached query result."""

    key: str
    result: "QueryResult"
    timestamp: float
    """Clock reading (seconds) when the entry was stored."""


class QueryCache:
    """TTL cache of query results with batch eviction.

    Example:
        cache = QueryCache(QueryCacheConfig(ttl_ms=5000))
        key = make_key(query_text, len(documents))
        result = cache.get(key)
        if result is None:
            result = run_query(query_text, documents)
            cache.put(key, result)
    """

    def __init__(
        self,
        config: Optional[QueryCacheConfig] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        """Initialize the cache.

        Args:
            config: Cache settings, defaults when omitted.
            clock: Monotonic clock in seconds, injectable for tests.
        """
        self._config = config or QueryCacheConfig()
        self._clock = clock or time.monotonic
        self._entries: dict[str, CacheEntry] = {}
        self._hits = 0
        self._misses = 0

    @property
    def enabled(self) -> bool:
        return self._config.enabled

    @property
    def hits(self) -> int:
        return self._hits

    @property
    def misses(self) -> int:
        return self._misses

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def get(self, key: str) -> Optional["QueryResult"]:
        """Return a fresh cached result, or None on a miss.

        A hit is a copy of the stored result with ``execution_time_ms`` set
        to 0 and ``cached`` set. Stale entries count as misses and stay in
        place until overwritten or evicted.
        """
        if not self._config.enabled:
            return None

        entry = self._entries.get(key)
        if entry is None or self._is_stale(entry):
            self._misses += 1
            return None

        self._hits += 1
        logger.debug(f"Query cache hit: {key[:12]}")
        return replace(_copy_result(entry.result), execution_time_ms=0.0, cached=True)

    def put(self, key: str, result: "QueryResult") -> None:
        """Store a copy of a result, evicting the oldest batch when over capacity."""
        if not self._config.enabled:
            return

        self._entries.pop(key, None)
        self._entries[key] = CacheEntry(key=key, result=_copy_result(result), timestamp=self._clock())

        if len(self._entries) > self._config.max_entries:
            self._evict()

    def invalidate_all(self) -> None:
        """Drop every cached result."""
        count = len(self._entries)
        self._entries.clear()
        if count:
            logger.debug(f"Query cache cleared: {count} entries")

    def _is_stale(self, entry: CacheEntry) -> bool:
        age_ms = (self._clock() - entry.timestamp) * 1000
        return age_ms > self._config.ttl_ms

    def _evict(self) -> None:
        oldest = sorted(self._entries.values(), key=lambda entry: entry.timestamp)
        for entry in oldest[: self._config.eviction_batch]:
            del self._entries[entry.key]
        logger.debug(
            f"Query cache evicted {min(len(oldest), self._config.eviction_batch)} entries, "
            f"{len(self._entries)} remain"
        )


def _copy_result(result: "QueryResult") -> "QueryResult":
    """Copy a result down to its rows and TABLE values.

    Documents and resolved metadata are shared, not copied; callers treat
    them as read-only.
    """
    rows = [
        replace(row, values=dict(row.values) if row.values is not None else None)
        for row in result.rows
    ]
    columns = list(result.columns) if result.columns is not None else None
    return replace(result, rows=rows, columns=columns)
