"""JSON-serializable form of query results."""

from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ..core.types import QueryResult, ResultRow


def render_json(result: "QueryResult") -> dict[str, Any]:
    """Convert a result to plain dicts, lists, strings and numbers.

    Dates become ISO strings. The output can be passed to ``json.dumps``
    as is.
    """
    return {
        "kind": result.kind.value,
        "columns": result.columns,
        "error": result.error,
        "execution_time_ms": result.execution_time_ms,
        "cached": result.cached,
        "rows": [_row(row) for row in result.rows],
    }


def _row(row: "ResultRow") -> dict[str, Any]:
    data: dict[str, Any] = {
        "id": row.document.id,
        "path": row.document.path,
        "title": row.document.display_title,
    }
    if row.values is not None:
        data["values"] = {key: to_jsonable(value) for key, value in row.values.items()}
    if row.task is not None:
        data["task"] = {
            "text": row.task.text,
            "completed": row.task.completed,
            "line": row.task.line,
            "depth": row.task.depth,
        }
    return data


def to_jsonable(value: Any) -> Any:
    """Recursively convert a metadata value to JSON-compatible types."""
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(key): to_jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_jsonable(item) for item in value]
    return str(value)
