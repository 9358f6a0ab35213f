"""Query execution.

``execute_query`` runs a parsed Query over a document collection:

1. candidate selection from the FROM clause via the indexes
2. field-index prefilter for fields the WHERE clause requires
3. per-document (per-task for TASK) WHERE filtering
4. TABLE projection
5. stable multi-key sort
6. LIMIT

Evaluation failures are local: a document whose WHERE cannot be evaluated
is excluded and a TABLE cell that cannot be evaluated is None. Nothing
from a single document aborts the query.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any, Iterable, Optional, Sequence

from loguru import logger

from ..core.config import TaskConfig
from ..core.exceptions import EvaluationError, FunctionNotFoundError
from ..core.types import Document, QueryKind, QueryResult, ResultRow
from ..index.manager import IndexManager, Indexes, normalize_folder
from ..metadata.extractor import MetadataCache
from .ast import Expression, FromClause, LinkFilter, Projection, Query, SortDirection, SortKey
from .evaluator import evaluate, evaluate_bool, required_fields
from .functions import FunctionRegistry, get_default_function_registry
from .parser import ParseFailure, parse_query
from .tasks import scan_tasks
from .values import sort_key

if TYPE_CHECKING:
    from ..core.protocols import TextReader
    from ..metadata.model import DocumentMetadata


class _Evaluation:
    """Per-query evaluation context.

    Unknown functions are reported once per query instead of once per
    document.
    """

    def __init__(self, functions: FunctionRegistry):
        self.functions = functions
        self._reported: set[str] = set()

    def passes(self, where: Optional[Expression], metadata: "DocumentMetadata") -> bool:
        if where is None:
            return True
        try:
            return evaluate_bool(where, metadata, self.functions)
        except EvaluationError as e:
            self._report(e, metadata)
            return False

    def project(self, fields: Sequence[Projection], metadata: "DocumentMetadata") -> dict[str, Any]:
        values: dict[str, Any] = {}
        for projection in fields:
            try:
                values[projection.name] = evaluate(projection.expression, metadata, self.functions)
            except EvaluationError as e:
                self._report(e, metadata)
                values[projection.name] = None
        return values

    def _report(self, error: EvaluationError, metadata: "DocumentMetadata") -> None:
        if isinstance(error, FunctionNotFoundError):
            if error.name not in self._reported:
                self._reported.add(error.name)
                logger.warning(f"Query uses unknown function {error.name!r}")
            return
        logger.debug(f"Evaluation failed for {metadata.file.path!r}: {error}")


def execute_query(
    query: Query,
    documents: Iterable[Document],
    indexes: Optional[Indexes] = None,
    metadata_cache: Optional[MetadataCache] = None,
    functions: Optional[FunctionRegistry] = None,
    text_reader: Optional["TextReader"] = None,
    task_config: Optional[TaskConfig] = None,
) -> QueryResult:
    """Execute a parsed query.

    Args:
        query: Parsed query.
        documents: The collection, in candidate order.
        indexes: Prebuilt indexes; built on the fly when None.
        metadata_cache: Metadata cache; a private one is used when None.
        functions: Function registry; the builtins when None.
        text_reader: Text source used when the metadata cache is created
            here and documents were loaded without content.
        task_config: TASK scanning options.

    Returns:
        QueryResult with rows, columns (TABLE) and execution time.
    """
    start = time.perf_counter()

    documents = list(documents)
    cache = metadata_cache if metadata_cache is not None else MetadataCache(text_reader=text_reader)
    context = _Evaluation(functions if functions is not None else get_default_function_registry())
    tasks = task_config or TaskConfig()

    if indexes is None:
        indexes = IndexManager(cache).rebuild(documents)

    candidates = select_candidates(query.source, documents, indexes)

    required = required_fields(query.where)
    if required:
        allowed = set.intersection(*(indexes.lookup_field(name) for name in required))
        candidates = [document for document in candidates if document.id in allowed]

    rows: list[ResultRow] = []
    for document in candidates:
        metadata = cache.build_metadata(document)

        if query.kind is QueryKind.TASK:
            text = cache.read_text(document)
            for task in scan_tasks(text, tasks.indent_width, tasks.skip_code_blocks):
                task_metadata = metadata.with_task(task)
                if context.passes(query.where, task_metadata):
                    rows.append(ResultRow(document=document, metadata=task_metadata, task=task))
            continue

        if not context.passes(query.where, metadata):
            continue

        row = ResultRow(document=document, metadata=metadata)
        if query.kind is QueryKind.TABLE:
            row.values = context.project(query.fields, metadata)
        rows.append(row)

    rows = sort_rows(rows, query.sort)

    if query.limit is not None:
        rows = rows[: query.limit]

    elapsed_ms = (time.perf_counter() - start) * 1000
    logger.debug(
        f"Executed {query!r}: {len(candidates)} candidates, {len(rows)} rows ({elapsed_ms:.1f}ms)"
    )

    return QueryResult(
        kind=query.kind,
        rows=rows,
        columns=query.columns if query.kind is QueryKind.TABLE else None,
        execution_time_ms=elapsed_ms,
    )


def run_query(text: str, documents: Iterable[Document], **kwargs: Any) -> QueryResult:
    """Parse and execute query text.

    Parse failures are returned as a result with ``error`` set and no rows.
    Keyword arguments are passed through to ``execute_query``.
    """
    start = time.perf_counter()
    outcome = parse_query(text)
    if isinstance(outcome, ParseFailure):
        return QueryResult(
            kind=_guess_kind(text),
            rows=[],
            error=outcome.error,
            execution_time_ms=(time.perf_counter() - start) * 1000,
        )
    return execute_query(outcome.query, documents, **kwargs)


def _guess_kind(text: str) -> QueryKind:
    """Kind named by the first word, so failed results keep their shape."""
    words = text.split(None, 1)
    if words:
        try:
            return QueryKind(words[0].upper())
        except ValueError:
            pass
    return QueryKind.LIST


# =============================================================================
# Candidate selection
# =============================================================================


def select_candidates(
    source: Optional[FromClause],
    documents: Sequence[Document],
    indexes: Indexes,
) -> list[Document]:
    """Select documents matching a FROM clause.

    Tags are intersected, folders are unioned and link matches are
    unioned; the three groups are then intersected. Input order is kept.
    """
    if source is None or source.is_empty():
        return list(documents)

    selected: Optional[set[str]] = None

    def narrow(ids: set[str]) -> None:
        nonlocal selected
        selected = set(ids) if selected is None else selected & ids

    for tag in source.tags:
        narrow(indexes.lookup_tag(tag))

    if source.folders:
        matches: set[str] = set()
        for folder in source.folders:
            if normalize_folder(folder):
                matches |= indexes.lookup_folder(folder)
            else:
                matches |= {document.id for document in documents}
        narrow(matches)

    if source.links:
        narrow(_link_matches(source.links, documents, indexes))

    if selected is None:
        return list(documents)
    return [document for document in documents if document.id in selected]


def _link_matches(links: LinkFilter, documents: Sequence[Document], indexes: Indexes) -> set[str]:
    by_id = {document.id: document for document in documents}

    def resolve(name: str) -> Optional[str]:
        return indexes.resolve_name(name) or (name if name in by_id else None)

    matches: set[str] = set()

    # Documents the named note links to
    for name in links.from_:
        source_id = resolve(name)
        if source_id is None:
            logger.debug(f"Link source not found: {name!r}")
            continue
        source = by_id.get(source_id)
        if source is not None:
            matches.update(filter(None, (resolve(link) for link in source.outgoing_links)))
        matches.update(d.id for d in documents if source_id in d.incoming_links)

    # Documents linking to the named note
    for name in links.to:
        target_id = resolve(name)
        if target_id is None:
            logger.debug(f"Link target not found: {name!r}")
            continue
        for document in documents:
            if any(resolve(link) == target_id for link in document.outgoing_links):
                matches.add(document.id)
        target = by_id.get(target_id)
        if target is not None:
            matches.update(target.incoming_links)

    return matches


# =============================================================================
# Sorting
# =============================================================================


def sort_rows(rows: list[ResultRow], keys: Sequence[SortKey]) -> list[ResultRow]:
    """Stable multi-key sort.

    Earlier keys take priority. Nulls sort last ascending and first
    descending. Rows that tie on every key keep their input order.
    """
    ordered = list(rows)
    for key in reversed(keys):
        ordered.sort(
            key=lambda row: sort_key(_sort_value(row, key.field)),
            reverse=key.direction is SortDirection.DESC,
        )
    return ordered


def _sort_value(row: ResultRow, field: str) -> Any:
    """Sort value for a row: a TABLE column first, then metadata."""
    if row.values is not None and field in row.values:
        return row.values[field]
    try:
        return row.metadata.resolve(field)
    except EvaluationError:
        return None
