"""Core metadata types.

``ExtractedMetadata`` is what an extractor pulls out of a document's text.
``DocumentMetadata`` is the resolved view a query evaluates against: file
facts, frontmatter, inline fields and computed values, addressed by dotted
field paths such as ``file.name`` or ``author.email``.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from typing import TYPE_CHECKING, Any, Mapping, Optional

from ..core.exceptions import EvaluationError

if TYPE_CHECKING:
    from ..core.types import Document, TaskItem


@dataclass
class ExtractedMetadata:
    """Metadata extracted from a document's text.

    Attributes:
        frontmatter: Frontmatter mapping with lowercased top-level keys.
        fields: Inline ``key:: value`` fields with lowercased keys.
        tags: Tags found in frontmatter and inline, as written (no leading #).
        links: Wikilink targets found in the body.
    """

    frontmatter: dict[str, Any] = field(default_factory=dict)
    fields: dict[str, Any] = field(default_factory=dict)
    tags: list[str] = field(default_factory=list)
    links: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class FileFacts:
    """Implicit facts about a document, exposed as ``file.*`` fields."""

    id: str
    name: str
    path: str
    folder: str
    ext: str
    title: str
    ctime: Optional[datetime]
    mtime: Optional[datetime]
    tags: list[str]
    outlinks: list[str]
    inlinks: list[str]

    @classmethod
    def from_document(cls, document: "Document") -> "FileFacts":
        """Build file facts from a document."""
        filename = document.filename
        _, dot, ext = filename.rpartition(".")
        return cls(
            id=document.id,
            name=document.name,
            path=document.path,
            folder=document.folder,
            ext=f".{ext}" if dot else "",
            title=document.display_title,
            ctime=document.created_at,
            mtime=document.modified_at,
            tags=list(document.tags),
            outlinks=list(document.outgoing_links),
            inlinks=list(document.incoming_links),
        )

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


# Names resolved when the document itself does not define them
_COMPUTED_FIELDS = {
    "today": lambda: date.today(),
    "now": lambda: datetime.now(),
}


@dataclass
class DocumentMetadata:
    """Resolved metadata for one document.

    Lookup order for a plain field name is frontmatter, then inline fields,
    then computed fields. ``file.*`` always addresses file facts and
    ``task.*`` addresses the current task on TASK rows.

    Attributes:
        file: Implicit file facts.
        frontmatter: Frontmatter with lowercased top-level keys.
        fields: Inline fields with lowercased keys.
        task: Task item when this metadata belongs to a TASK row.
    """

    file: FileFacts
    frontmatter: dict[str, Any] = field(default_factory=dict)
    fields: dict[str, Any] = field(default_factory=dict)
    task: Optional["TaskItem"] = None

    def with_task(self, task: "TaskItem") -> "DocumentMetadata":
        """Return a copy of this metadata bound to a task line."""
        return DocumentMetadata(
            file=self.file,
            frontmatter=self.frontmatter,
            fields=self.fields,
            task=task,
        )

    def has_field(self, name: str) -> bool:
        """Whether a plain (non file.*) field is defined by the document."""
        key = name.lower()
        return key in self.frontmatter or key in self.fields

    def resolve(self, path: str) -> Any:
        """Resolve a dotted field path to a value.

        Args:
            path: Field path such as ``status``, ``file.name`` or ``a.b.c``.

        Returns:
            The value, or None when any segment is absent.

        Raises:
            EvaluationError: If the path is malformed (empty segments).
        """
        segments = path.split(".")
        if not path or any(not segment for segment in segments):
            raise EvaluationError(f"Malformed field path: {path!r}")

        head, rest = segments[0].lower(), segments[1:]

        if head == "file":
            return _descend(self.file.as_dict(), rest)

        if head == "task" and self.task is not None:
            return _descend(asdict(self.task), rest)

        if head in self.frontmatter:
            return _descend(self.frontmatter[head], rest)

        if head in self.fields:
            return _descend(self.fields[head], rest)

        if head in _COMPUTED_FIELDS and not rest:
            return _COMPUTED_FIELDS[head]()

        return None


def _descend(value: Any, segments: list[str]) -> Any:
    """Walk the remaining path segments through mappings and lists."""
    for segment in segments:
        if isinstance(value, Mapping):
            value = _get_case_insensitive(value, segment)
        elif isinstance(value, (list, tuple)) and segment.isdigit():
            index = int(segment)
            value = value[index] if index < len(value) else None
        else:
            return None
        if value is None:
            return None
    return value


def _get_case_insensitive(mapping: Mapping[str, Any], key: str) -> Any:
    if key in mapping:
        return mapping[key]
    lowered = key.lower()
    for candidate, value in mapping.items():
        if str(candidate).lower() == lowered:
            return value
    return None


def lowercase_keys(mapping: Optional[Mapping[Any, Any]]) -> dict[str, Any]:
    """Copy a mapping with its top-level keys lowercased."""
    if not mapping:
        return {}
    return {str(key).lower(): value for key, value in mapping.items()}
