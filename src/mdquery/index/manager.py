"""Tag, folder, field and name indexes over a document collection.

Indexes are derived data: ``IndexManager.rebuild`` recomputes them from
scratch in one pass, and nothing edits them afterwards. Keys are normalized
on insert and again on lookup, so lookups are case-insensitive for tags and
tolerant of leading/trailing slashes for folders.
"""

from __future__ import annotations

import time
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Iterable, Optional

from loguru import logger

from ..metadata.extractor import MetadataCache, merge_tags

if TYPE_CHECKING:
    from ..core.types import Document


def normalize_tag(tag: str) -> str:
    """Lowercase a tag and strip whitespace and any leading '#'."""
    return tag.strip().lstrip("#").lower()


def normalize_folder(folder: str) -> str:
    """Normalize a folder path to '/'-separated with no outer slashes."""
    parts = [part for part in folder.replace("\\", "/").split("/") if part and part != "."]
    return "/".join(parts)


def folder_prefixes(folder: str) -> list[str]:
    """Every ancestor prefix of a folder, shortest first.

    Example:
        >>> folder_prefixes("A/B/C")
        ['A', 'A/B', 'A/B/C']
    """
    parts = normalize_folder(folder).split("/")
    if parts == [""]:
        return []
    return ["/".join(parts[: i + 1]) for i in range(len(parts))]


@dataclass
class Indexes:
    """Lookup tables built by ``IndexManager.rebuild``."""

    tags: dict[str, set[str]] = field(default_factory=dict)
    """Lowercase tag -> ids of documents carrying it."""

    folders: dict[str, set[str]] = field(default_factory=dict)
    """Folder prefix -> ids of documents anywhere below it."""

    fields: dict[str, set[str]] = field(default_factory=dict)
    """Lowercase frontmatter / inline-field key -> ids of documents defining it."""

    names: dict[str, str] = field(default_factory=dict)
    """Lowercase title, path, path without .md or id -> document id."""

    document_count: int = 0
    built_at: Optional[datetime] = None

    def lookup_tag(self, tag: str) -> set[str]:
        return self.tags.get(normalize_tag(tag), set())

    def lookup_folder(self, folder: str) -> set[str]:
        return self.folders.get(normalize_folder(folder), set())

    def lookup_field(self, name: str) -> set[str]:
        return self.fields.get(name.lower(), set())

    def resolve_name(self, name: str) -> Optional[str]:
        """Resolve a link target (title, path or id) to a document id."""
        key = name.strip().lower()
        if key in self.names:
            return self.names[key]
        return self.names.get(normalize_folder(key))


class IndexManager:
    """Builds ``Indexes`` for a document collection.

    Example:
        manager = IndexManager(metadata_cache)
        indexes = manager.rebuild(documents)
        indexes.lookup_tag("#Project")
    """

    def __init__(self, metadata_cache: Optional[MetadataCache] = None):
        """Initialize the manager.

        Args:
            metadata_cache: Source of extracted tags and fields. A private
                cache is created when omitted.
        """
        self._metadata_cache = metadata_cache if metadata_cache is not None else MetadataCache()

    @property
    def metadata_cache(self) -> MetadataCache:
        return self._metadata_cache

    def rebuild(self, documents: Iterable["Document"]) -> Indexes:
        """Build all indexes in a single pass over the documents.

        Args:
            documents: The full collection.

        Returns:
            Fresh Indexes.
        """
        start = time.perf_counter()

        tags: dict[str, set[str]] = defaultdict(set)
        folders: dict[str, set[str]] = defaultdict(set)
        fields: dict[str, set[str]] = defaultdict(set)
        exact_names: dict[str, str] = {}
        loose_names: dict[str, str] = {}
        count = 0

        for document in documents:
            count += 1
            extracted = self._metadata_cache.get(document)

            for tag in merge_tags(document.tags, extracted.tags):
                tags[normalize_tag(tag)].add(document.id)

            for prefix in folder_prefixes(document.folder):
                folders[prefix].add(document.id)

            for key in (*extracted.frontmatter, *extracted.fields):
                fields[str(key).lower()].add(document.id)

            exact, loose = _document_names(document)
            for name in exact:
                exact_names.setdefault(name, document.id)
            for name in loose:
                loose_names.setdefault(name, document.id)

        indexes = Indexes(
            tags=dict(tags),
            folders=dict(folders),
            fields=dict(fields),
            names={**loose_names, **exact_names},
            document_count=count,
            built_at=datetime.now(),
        )

        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.info(
            f"Indexes rebuilt: {count} documents, {len(indexes.tags)} tags, "
            f"{len(indexes.folders)} folders, {len(indexes.fields)} fields ({elapsed_ms:.1f}ms)"
        )
        return indexes


def _document_names(document: "Document") -> tuple[list[str], list[str]]:
    """Keys under which a link target may name this document.

    Returns:
        (exact, loose): id and path forms, then file name and title. Exact
        keys win over another document's loose keys.
    """
    path = normalize_folder(document.path).lower()
    exact = [document.id.lower(), path]
    if path.endswith(".md"):
        exact.append(path[:-3])
    loose = [document.name.lower()]
    if document.title:
        loose.append(document.title.strip().lower())
    return exact, loose
