"""Tests for the query result cache."""

from mdquery.core.config import QueryCacheConfig
from mdquery.core.types import Document, QueryKind, QueryResult, ResultRow
from mdquery.services.caching import QueryCache, make_key, normalize_query_text


class FakeClock:
    """Manually advanced clock in seconds."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_result(execution_time_ms: float = 12.5) -> QueryResult:
    return QueryResult(kind=QueryKind.LIST, execution_time_ms=execution_time_ms)


class TestKeys:
    """Tests for cache key construction."""

    def test_normalize_query_text(self):
        text = "  LIST\n\n   FROM #a  \n\tSORT file.name\n"
        assert normalize_query_text(text) == "LIST FROM #a SORT file.name"

    def test_whitespace_variants_share_a_key(self):
        """Should ignore line breaks, indentation and blank lines."""
        assert make_key("LIST\n  FROM #a\n", 3) == make_key("LIST FROM #a", 3)

    def test_document_count_is_part_of_key(self):
        assert make_key("LIST", 3) != make_key("LIST", 4)

    def test_case_is_significant(self):
        assert make_key('LIST WHERE a = "X"', 1) != make_key('LIST WHERE a = "x"', 1)


class TestGetPut:
    """Tests for storing and retrieving results."""

    def test_miss_then_hit(self):
        """Should return a copy marked cached with zero execution time."""
        cache = QueryCache(clock=FakeClock())
        stored = make_result()

        assert cache.get("k") is None
        cache.put("k", stored)
        hit = cache.get("k")

        assert hit is not stored
        assert hit.cached is True
        assert hit.execution_time_ms == 0.0
        assert stored.cached is False
        assert stored.execution_time_ms == 12.5
        assert (cache.hits, cache.misses) == (1, 1)

    def test_hit_rows_are_a_fresh_list(self):
        cache = QueryCache(clock=FakeClock())
        cache.put("k", make_result())

        cache.get("k").rows.append("junk")

        assert cache.get("k").rows == []

    def test_entry_expires_after_ttl(self):
        """Should treat entries older than the TTL as misses."""
        clock = FakeClock()
        cache = QueryCache(QueryCacheConfig(ttl_ms=5000), clock=clock)
        cache.put("k", make_result())

        clock.advance(5.0)
        assert cache.get("k") is not None

        clock.advance(0.001)
        assert cache.get("k") is None
        assert "k" in cache

    def test_put_refreshes_timestamp(self):
        clock = FakeClock()
        cache = QueryCache(QueryCacheConfig(ttl_ms=1000), clock=clock)
        cache.put("k", make_result())
        clock.advance(0.9)
        cache.put("k", make_result())
        clock.advance(0.9)

        assert cache.get("k") is not None
        assert len(cache) == 1

    def test_invalidate_all(self):
        cache = QueryCache(clock=FakeClock())
        cache.put("a", make_result())
        cache.put("b", make_result())

        cache.invalidate_all()

        assert len(cache) == 0
        assert cache.get("a") is None


class TestEviction:
    """Tests for batch eviction."""

    def test_evicts_oldest_batch(self):
        """Storing the 101st entry should drop the 20 oldest."""
        clock = FakeClock()
        cache = QueryCache(QueryCacheConfig(max_entries=100, eviction_batch=20), clock=clock)

        for i in range(100):
            cache.put(f"k{i}", make_result())
            clock.advance(0.001)
        assert len(cache) == 100

        cache.put("k100", make_result())

        assert len(cache) == 81
        assert all(f"k{i}" not in cache for i in range(20))
        assert all(f"k{i}" in cache for i in range(20, 101))

    def test_ties_evict_in_insertion_order(self):
        cache = QueryCache(QueryCacheConfig(max_entries=3, eviction_batch=2), clock=FakeClock())

        for key in ("a", "b", "c", "d"):
            cache.put(key, make_result())

        assert [key for key in ("a", "b", "c", "d") if key in cache] == ["c", "d"]


class TestDisabled:
    """Tests for a disabled cache."""

    def test_disabled_cache_stores_nothing(self):
        cache = QueryCache(QueryCacheConfig(enabled=False), clock=FakeClock())

        cache.put("k", make_result())

        assert cache.enabled is False
        assert len(cache) == 0
        assert cache.get("k") is None
        assert cache.misses == 0


class TestIsolation:
    """Tests that cached results are isolated from callers."""

    @staticmethod
    def table_result() -> QueryResult:
        row = ResultRow(document=Document(id="a", path="a.md"), metadata=None, values={"status": "open"})
        return QueryResult(kind=QueryKind.TABLE, rows=[row], columns=["status"])

    def test_mutating_stored_result_does_not_leak(self):
        """Changes to the result after put should not reach later hits."""
        cache = QueryCache(clock=FakeClock())
        result = self.table_result()
        cache.put("k", result)

        result.rows[0].values["status"] = "changed"
        result.rows.clear()
        result.columns.append("extra")

        hit = cache.get("k")
        assert hit.columns == ["status"]
        assert hit.rows[0].values == {"status": "open"}

    def test_mutating_hit_does_not_leak(self):
        """Changes to one hit should not reach the next."""
        cache = QueryCache(clock=FakeClock())
        cache.put("k", self.table_result())

        first = cache.get("k")
        first.rows[0].values["status"] = "changed"
        first.rows[0].values["new"] = 1

        assert cache.get("k").rows[0].values == {"status": "open"}
