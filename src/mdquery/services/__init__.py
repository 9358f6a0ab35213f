"""Service layer for mdquery.

Example usage:

    from mdquery.services import QueryEngine

    engine = QueryEngine()
    engine.rebuild_indexes(documents)
    result = engine.execute('TABLE status, due FROM "Work"', documents)
"""

from .caching import CacheEntry, QueryCache, make_key, normalize_query_text
from .engine import QueryEngine

__all__ = [
    "QueryEngine",
    "QueryCache",
    "CacheEntry",
    "make_key",
    "normalize_query_text",
]
