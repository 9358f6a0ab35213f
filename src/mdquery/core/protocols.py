"""Protocol definitions for the collaborators the engine depends on.

The query engine does not read files or parse frontmatter on its own terms;
the host application supplies these through narrow interfaces:

- TextReader: raw text access for documents whose content was not loaded
- MetadataExtractor: turns document text into frontmatter, fields and tags
- LinkBuilder: turns a document into a link at the rendering boundary

Example:
    class VaultReader:
        def __init__(self, root: Path):
            self._root = root

        def read_text(self, document_id: str) -> str:
            return (self._root / document_id).read_text(encoding="utf-8")

    engine = QueryEngine(text_reader=VaultReader(vault_root))
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from ..metadata.model import ExtractedMetadata
    from .types import Document


@runtime_checkable
class TextReader(Protocol):
    """Protocol for fetching a document's raw text by id."""

    def read_text(self, document_id: str) -> str:
        """Return the raw markdown text of a document.

        Raises:
            KeyError: If the document is unknown to the store.
        """
        ...


@runtime_checkable
class MetadataExtractor(Protocol):
    """Protocol for metadata extraction from document text.

    Example:
        class FrontmatterOnly:
            def extract(self, text: str) -> ExtractedMetadata:
                return ExtractedMetadata(frontmatter=parse_frontmatter(text).data)
    """

    def extract(self, text: str) -> "ExtractedMetadata":
        """Extract frontmatter, inline fields, tags and links from text."""
        ...


@runtime_checkable
class LinkBuilder(Protocol):
    """Protocol for building a rendered link to a document."""

    def __call__(self, document: "Document") -> str:
        ...
