"""Document metadata for query evaluation.

Submodules
----------
parsing
    Frontmatter, inline tags, inline fields and wikilinks
model
    ExtractedMetadata, FileFacts, DocumentMetadata (dotted-path resolution)
extractor
    MarkdownMetadataExtractor and the per-document MetadataCache

Example
-------
>>> from mdquery.metadata import MetadataCache
>>> cache = MetadataCache()
>>> meta = cache.build_metadata(document)
>>> meta.resolve("file.folder")
"""

from .extractor import MarkdownMetadataExtractor, MetadataCache, merge_tags, modification_marker
from .model import DocumentMetadata, ExtractedMetadata, FileFacts, lowercase_keys
from .parsing import (
    FrontmatterResult,
    extract_inline_fields,
    extract_inline_tags,
    extract_tags_from_field,
    extract_wikilinks,
    parse_frontmatter,
    remove_code_blocks,
)

__all__ = [
    # Model
    "DocumentMetadata",
    "ExtractedMetadata",
    "FileFacts",
    "lowercase_keys",
    # Extraction
    "MarkdownMetadataExtractor",
    "MetadataCache",
    "merge_tags",
    "modification_marker",
    # Parsing
    "FrontmatterResult",
    "extract_inline_fields",
    "extract_inline_tags",
    "extract_tags_from_field",
    "extract_wikilinks",
    "parse_frontmatter",
    "remove_code_blocks",
]
