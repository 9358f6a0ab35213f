"""Rendering of query results for display.

The engine itself never renders; hosts call these at their UI boundary and
pass a ``link_builder`` to control how notes are linked.
"""

from .markdown import format_column_name, format_value, render_footer, render_markdown, wikilink
from .serialize import render_json, to_jsonable

__all__ = [
    "format_column_name",
    "format_value",
    "render_footer",
    "render_json",
    "render_markdown",
    "to_jsonable",
    "wikilink",
]
