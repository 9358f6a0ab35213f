"""Metadata extraction and the per-document metadata cache.

The cache keeps one ``ExtractedMetadata`` per document id together with the
document's modification marker, and only calls the extractor again when the
marker changes. Hosts that already hold parsed metadata for the whole
collection can pre-seed the cache in bulk.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Iterable, Optional

from loguru import logger

from ..core.exceptions import ExtractionError
from ..utils.hashing import digest
from .model import DocumentMetadata, ExtractedMetadata, FileFacts, lowercase_keys
from .parsing import (
    extract_inline_fields,
    extract_inline_tags,
    extract_tags_from_field,
    extract_wikilinks,
    parse_frontmatter,
)

if TYPE_CHECKING:
    from ..core.protocols import MetadataExtractor, TextReader
    from ..core.types import Document


class MarkdownMetadataExtractor:
    """Default extractor for Obsidian-style markdown.

    Extracts:
    - YAML frontmatter (top-level keys lowercased)
    - Tags from the ``tags``/``tag`` frontmatter fields and inline #tags
    - Inline ``key:: value`` fields from the body
    - ``[[wikilink]]`` targets from the body
    """

    tag_fields = ("tags", "tag")

    def extract(self, text: str) -> ExtractedMetadata:
        """Extract metadata from markdown text.

        Args:
            text: Full document content.

        Returns:
            ExtractedMetadata for the document.

        Raises:
            ExtractionError: If text is not a string.
        """
        if not isinstance(text, str):
            raise ExtractionError(f"Expected document text, got {type(text).__name__}")

        result = parse_frontmatter(text)
        frontmatter = lowercase_keys(result.data)

        tags: list[str] = []
        for field_name in self.tag_fields:
            if field_name in frontmatter:
                tags.extend(t.lstrip("#") for t in extract_tags_from_field(frontmatter[field_name]))
        tags.extend(extract_inline_tags(result.content))

        return ExtractedMetadata(
            frontmatter=frontmatter,
            fields=extract_inline_fields(result.content),
            tags=list(dict.fromkeys(tags)),
            links=extract_wikilinks(result.content),
        )


@dataclass
class _CacheSlot:
    marker: str
    metadata: ExtractedMetadata


class MetadataCache:
    """Cache of extracted metadata keyed by document id.

    An entry is reused as long as the document's modification marker is
    unchanged. The marker is ``modified_at`` when the store provides one and
    a hash of the content and supplied frontmatter otherwise.

    A ``Document.frontmatter`` supplied by the store takes precedence over
    frontmatter parsed from the text.

    Example:
        cache = MetadataCache()
        cache.prime(documents)           # optional bulk pre-seed
        meta = cache.build_metadata(doc)
        meta.resolve("status")
    """

    def __init__(
        self,
        extractor: Optional["MetadataExtractor"] = None,
        text_reader: Optional["TextReader"] = None,
    ):
        """Initialize the cache.

        Args:
            extractor: Extractor used on cache misses.
            text_reader: Fallback text source for documents loaded without content.
        """
        self._extractor = extractor or MarkdownMetadataExtractor()
        self._text_reader = text_reader
        self._slots: dict[str, _CacheSlot] = {}

    def __len__(self) -> int:
        return len(self._slots)

    def __contains__(self, document_id: object) -> bool:
        return document_id in self._slots

    def get(self, document: "Document") -> ExtractedMetadata:
        """Return extracted metadata for a document, extracting on a miss."""
        marker = modification_marker(document)
        slot = self._slots.get(document.id)
        if slot is not None and slot.marker == marker:
            return slot.metadata

        metadata = self._extract(document)
        self._slots[document.id] = _CacheSlot(marker=marker, metadata=metadata)
        return metadata

    def build_metadata(self, document: "Document") -> DocumentMetadata:
        """Build the resolved metadata a query evaluates against.

        File facts are rebuilt from the document on every call; only the
        text extraction is cached. ``file.tags`` merges the store's tags
        with the tags found in the text.
        """
        extracted = self.get(document)
        facts = FileFacts.from_document(document)
        return DocumentMetadata(
            file=replace(facts, tags=merge_tags(document.tags, extracted.tags)),
            frontmatter=extracted.frontmatter,
            fields=extracted.fields,
        )

    def prime(self, documents: Iterable["Document"]) -> int:
        """Extract metadata for every document not already cached.

        Returns:
            Number of documents that were extracted.
        """
        extracted = 0
        for document in documents:
            slot = self._slots.get(document.id)
            if slot is None or slot.marker != modification_marker(document):
                self.get(document)
                extracted += 1
        logger.debug(f"Metadata cache primed: {extracted} extracted, {len(self._slots)} cached")
        return extracted

    def seed(self, document: "Document", metadata: ExtractedMetadata) -> None:
        """Store externally parsed metadata for a document."""
        metadata.frontmatter = lowercase_keys(metadata.frontmatter)
        self._slots[document.id] = _CacheSlot(
            marker=modification_marker(document),
            metadata=metadata,
        )

    def invalidate(self, document_id: str | None = None) -> None:
        """Drop one document's entry, or every entry when no id is given."""
        if document_id is None:
            self._slots.clear()
        else:
            self._slots.pop(document_id, None)

    def prune(self, keep_ids: Iterable[str]) -> int:
        """Drop entries for documents that are no longer in the collection.

        Returns:
            Number of entries removed.
        """
        keep = set(keep_ids)
        stale = [doc_id for doc_id in self._slots if doc_id not in keep]
        for doc_id in stale:
            del self._slots[doc_id]
        return len(stale)

    def read_text(self, document: "Document") -> str:
        """Return document text from the document or the text reader."""
        if document.content is not None:
            return document.content
        if self._text_reader is None:
            return ""
        try:
            return self._text_reader.read_text(document.id)
        except (KeyError, OSError) as e:
            logger.warning(f"Cannot read text for document {document.id!r}: {e}")
            return ""

    def _extract(self, document: "Document") -> ExtractedMetadata:
        text = self.read_text(document)
        try:
            metadata = self._extractor.extract(text) if text else ExtractedMetadata()
        except Exception as e:
            logger.warning(f"Metadata extraction failed for {document.path!r}: {e}")
            metadata = ExtractedMetadata()

        if document.frontmatter is not None:
            metadata.frontmatter = lowercase_keys(document.frontmatter)
            tags: list[str] = []
            for field_name in MarkdownMetadataExtractor.tag_fields:
                tags.extend(extract_tags_from_field(metadata.frontmatter.get(field_name)))
            metadata.tags = merge_tags(tags, metadata.tags)
        return metadata


def merge_tags(*sources: Iterable[str]) -> list[str]:
    """Merge tag lists, dropping leading '#' and case-insensitive duplicates."""
    merged: dict[str, str] = {}
    for source in sources:
        for tag in source:
            bare = str(tag).strip().lstrip("#")
            if bare:
                merged.setdefault(bare.lower(), bare)
    return list(merged.values())


def modification_marker(document: "Document") -> str:
    """Marker that changes whenever a document's extractable content changes."""
    if document.modified_at is not None:
        return document.modified_at.isoformat()
    return digest(document.content or "", repr(document.frontmatter), sep="\x00")
