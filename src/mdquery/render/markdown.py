"""Markdown rendering of query results.

LIST results render as a bullet list of links, TABLE results as a pipe
table with a leading note column, TASK results as a checkbox list with a
link back to the source note. Every non-error rendering ends with a footer
line holding the row count and execution time.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from typing import TYPE_CHECKING, Any, Callable, Optional

from ..core.types import QueryKind

if TYPE_CHECKING:
    from ..core.protocols import LinkBuilder
    from ..core.types import Document, QueryResult, ResultRow

NULL_DISPLAY = "-"


def wikilink(document: "Document") -> str:
    """Default link builder: ``[[path|title]]``."""
    target = document.path[:-3] if document.path.lower().endswith(".md") else document.path
    return f"[[{target}|{document.display_title}]]"


def render_markdown(
    result: "QueryResult",
    *,
    link_builder: Optional["LinkBuilder"] = None,
    max_rows: int = 100,
) -> str:
    """Render a result as markdown.

    Args:
        result: Query result.
        link_builder: Turns a document into a link; wikilinks by default.
        max_rows: Rows shown before the remainder is summarised.

    Returns:
        Markdown text.
    """
    if result.error:
        return f"> **Error:** {result.error}"

    if not result.rows:
        return "_No results_"

    link = link_builder or wikilink
    shown = result.rows[:max_rows]

    if result.kind is QueryKind.TABLE:
        lines = _render_table(shown, result.columns or [], link)
    elif result.kind is QueryKind.TASK:
        lines = [_render_task(row, link) for row in shown]
    else:
        lines = [f"- {link(row.document)}" for row in shown]

    hidden = len(result.rows) - len(shown)
    if hidden > 0:
        lines.append("")
        lines.append(f"_+{hidden} more_")

    lines.append("")
    lines.append(render_footer(result))
    return "\n".join(lines)


def render_footer(result: "QueryResult") -> str:
    noun = "result" if len(result.rows) == 1 else "results"
    timing = "cached" if result.cached else f"{result.execution_time_ms:.1f} ms"
    return f"_{len(result.rows)} {noun} ({timing})_"


def _render_table(rows: list["ResultRow"], columns: list[str], link: Callable[["Document"], str]) -> list[str]:
    header = ["Note", *(format_column_name(column) for column in columns)]
    lines = [
        _table_line(header),
        _table_line(["---"] * len(header)),
    ]
    for row in rows:
        values = row.values or {}
        cells = [link(row.document), *(format_value(values.get(column)) for column in columns)]
        lines.append(_table_line(cells))
    return lines


def _render_task(row: "ResultRow", link: Callable[["Document"], str]) -> str:
    task = row.task
    if task is None:
        return f"- {link(row.document)}"
    indent = "  " * task.depth
    box = "x" if task.completed else " "
    return f"{indent}- [{box}] {task.text} ({link(row.document)})"


def _table_line(cells: list[str]) -> str:
    return "| " + " | ".join(cell.replace("|", "\\|") for cell in cells) + " |"


def format_column_name(name: str) -> str:
    """Display form of a column name.

    Example:
        >>> format_column_name("file.mtime")
        'Mtime'
        >>> format_column_name("dueDate")
        'Due Date'
    """
    name = re.sub(r"^file\.", "", name)
    name = re.sub(r"([a-z0-9])([A-Z])", r"\1 \2", name)
    name = re.sub(r"[._-]+", " ", name)
    return " ".join(word[:1].upper() + word[1:] for word in name.split())


def format_value(value: Any) -> str:
    """Display form of a cell value."""
    if value is None:
        return NULL_DISPLAY
    if isinstance(value, bool):
        return "✓" if value else "✗"
    if isinstance(value, datetime):
        if value.time() == datetime.min.time():
            return value.date().isoformat()
        return value.isoformat(sep=" ", timespec="minutes")
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        if not value:
            return NULL_DISPLAY
        return ", ".join(format_value(item) for item in value)
    if isinstance(value, dict):
        return ", ".join(f"{key}: {format_value(item)}" for key, item in value.items())
    return str(value).replace("\n", " ")
