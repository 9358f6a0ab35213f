"""Type definitions for mdquery."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Mapping, Optional

if TYPE_CHECKING:
    from ..metadata.model import DocumentMetadata


class QueryKind(Enum):
    """Shape of a query result."""

    LIST = "LIST"
    TABLE = "TABLE"
    TASK = "TASK"


@dataclass(frozen=True)
class Document:
    """A note as supplied by the document store.

    The engine treats documents as read-only values. ``frontmatter`` may be
    supplied already parsed; when it is None the engine extracts it from
    ``content``.
    """

    id: str
    path: str  # Relative to the collection root, "/"-separated
    title: str = ""
    content: Optional[str] = None
    tags: list[str] = field(default_factory=list)
    outgoing_links: list[str] = field(default_factory=list)  # Document ids
    incoming_links: list[str] = field(default_factory=list)  # Document ids
    frontmatter: Optional[Mapping[str, Any]] = None
    created_at: Optional[datetime] = None
    modified_at: Optional[datetime] = None

    @property
    def folder(self) -> str:
        """Containing folder path, "" for documents at the root."""
        head, sep, _ = self.path.replace("\\", "/").strip("/").rpartition("/")
        return head if sep else ""

    @property
    def filename(self) -> str:
        """File name including extension."""
        return self.path.replace("\\", "/").rstrip("/").rpartition("/")[2]

    @property
    def name(self) -> str:
        """File name without a trailing .md extension."""
        filename = self.filename
        if filename.lower().endswith(".md"):
            return filename[:-3]
        return filename

    @property
    def display_title(self) -> str:
        """Title if present, otherwise the file name."""
        return self.title or self.name


@dataclass(frozen=True)
class TaskItem:
    """A checkbox line found in a document.

    Attributes:
        text: Task text after the checkbox.
        completed: True for [x] / [X].
        line: Zero-based line number in the document text.
        depth: Nesting level derived from indentation (0 = top level).
        marker: List marker as written ("-", "*", "+", "1." ...).
    """

    text: str
    completed: bool
    line: int
    depth: int = 0
    marker: str = "-"


@dataclass
class ResultRow:
    """One row of a query result."""

    document: Document
    metadata: "DocumentMetadata"
    values: Optional[dict[str, Any]] = None  # TABLE only
    task: Optional[TaskItem] = None  # TASK only


@dataclass
class QueryResult:
    """Outcome of running a query.

    A parse failure produces ``error`` with no rows. ``execution_time_ms`` is 0
    for results served from the cache, which also sets ``cached``.
    """

    kind: QueryKind
    rows: list[ResultRow] = field(default_factory=list)
    columns: Optional[list[str]] = None  # TABLE only
    error: Optional[str] = None
    execution_time_ms: float = 0.0
    cached: bool = False

    @property
    def ok(self) -> bool:
        """Whether the query ran without a parse error."""
        return self.error is None

    def __len__(self) -> int:
        return len(self.rows)
