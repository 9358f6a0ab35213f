"""Query engine facade.

``QueryEngine`` owns the pieces one host needs: the metadata cache, the
current indexes, the query result cache and a function registry. Several
engines can live side by side; none of them share state.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Iterable, Optional, Sequence

from loguru import logger

from ..core.config import Config
from ..core.types import QueryResult
from ..index.manager import IndexManager, Indexes
from ..metadata.extractor import MetadataCache
from ..query.executor import run_query
from ..query.functions import FunctionRegistry, create_function_registry
from ..query.parser import ParseResult, parse_query
from .caching import QueryCache, make_key

if TYPE_CHECKING:
    from ..core.protocols import MetadataExtractor, TextReader
    from ..core.types import Document


class QueryEngine:
    """Parses, executes and caches queries over a document collection.

    Indexes are rebuilt only when the host asks for it. Between rebuilds
    the engine answers from the last indexes it built, and a rebuild clears
    every cached query result.

    Example:
        engine = QueryEngine(Config.from_env())
        engine.rebuild_indexes(documents)
        result = engine.execute('LIST FROM #project SORT file.name', documents)
        if result.error:
            print(result.error)
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        extractor: Optional["MetadataExtractor"] = None,
        functions: Optional[FunctionRegistry] = None,
        text_reader: Optional["TextReader"] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        """Initialize the engine.

        Args:
            config: Engine configuration, defaults when omitted.
            extractor: Metadata extractor, markdown by default.
            functions: Function registry; a fresh builtin registry when omitted.
            text_reader: Text source for documents loaded without content.
            clock: Clock for the result cache, injectable for tests.
        """
        self.config = config or Config()
        self._metadata_cache = MetadataCache(extractor=extractor, text_reader=text_reader)
        self._index_manager = IndexManager(self._metadata_cache)
        self._functions = functions if functions is not None else create_function_registry()
        self._text_reader = text_reader
        self._cache = QueryCache(self.config.cache, clock=clock)
        self._indexes: Indexes | None = None

    @property
    def indexes(self) -> Indexes | None:
        """Indexes from the last rebuild, None before the first one."""
        return self._indexes

    @property
    def metadata_cache(self) -> MetadataCache:
        return self._metadata_cache

    @property
    def cache(self) -> QueryCache:
        return self._cache

    @property
    def functions(self) -> FunctionRegistry:
        return self._functions

    def rebuild_indexes(self, documents: Iterable["Document"]) -> Indexes:
        """Rebuild all indexes and clear cached query results.

        Metadata cache entries for documents that are no longer in the
        collection are dropped.
        """
        documents = list(documents)
        self._indexes = self._index_manager.rebuild(documents)
        self._cache.invalidate_all()

        pruned = self._metadata_cache.prune(document.id for document in documents)
        if pruned:
            logger.debug(f"Pruned {pruned} metadata cache entries")
        return self._indexes

    def prime_metadata(self, documents: Iterable["Document"]) -> int:
        """Extract metadata for every document ahead of the first query."""
        return self._metadata_cache.prime(documents)

    def parse(self, query_text: str) -> ParseResult:
        return parse_query(query_text)

    def is_valid_query(self, query_text: str) -> bool:
        return parse_query(query_text).ok

    def execute(self, query_text: str, documents: Sequence["Document"]) -> QueryResult:
        """Run a query, answering from the cache when possible.

        Args:
            query_text: Query source.
            documents: The collection the indexes were built from.

        Returns:
            QueryResult. Parse errors are reported in ``error``; this
            method does not raise for malformed queries.
        """
        key = make_key(query_text, len(documents))
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        if self._indexes is None:
            logger.info("No indexes yet, building before first query")
            self.rebuild_indexes(documents)

        result = run_query(
            query_text,
            documents,
            indexes=self._indexes,
            metadata_cache=self._metadata_cache,
            functions=self._functions,
            text_reader=self._text_reader,
            task_config=self.config.tasks,
        )
        if result.error:
            logger.debug(f"Query failed to parse: {result.error}")
        else:
            logger.debug(f"Query returned {len(result.rows)} rows in {result.execution_time_ms:.1f}ms")

        self._cache.put(key, result)
        return result

    def invalidate_cache(self, document_id: str | None = None) -> None:
        """Clear cached query results.

        Args:
            document_id: A document whose text changed; its extracted
                metadata is dropped as well.
        """
        self._cache.invalidate_all()
        if document_id is not None:
            self._metadata_cache.invalidate(document_id)
