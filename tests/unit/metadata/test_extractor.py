"""Tests for MarkdownMetadataExtractor and MetadataCache."""

from datetime import datetime
from unittest.mock import MagicMock

import pytest

from mdquery.core.exceptions import ExtractionError
from mdquery.metadata import (
    ExtractedMetadata,
    MarkdownMetadataExtractor,
    MetadataCache,
    merge_tags,
    modification_marker,
)

NOTE = """---
Title: Plan
tags: [project, "#planning"]
---
Body with #inline and [[Other Note]].
status:: active
"""


class TestMarkdownMetadataExtractor:
    """Tests for the default extractor."""

    def test_extract(self):
        """Should pull frontmatter, tags, inline fields and links."""
        metadata = MarkdownMetadataExtractor().extract(NOTE)

        assert metadata.frontmatter["title"] == "Plan"
        assert metadata.tags == ["project", "planning", "inline"]
        assert metadata.fields == {"status": "active"}
        assert metadata.links == ["Other Note"]

    def test_tag_field_string(self):
        """Should read a comma-separated tag field."""
        metadata = MarkdownMetadataExtractor().extract("---\ntag: a, b\n---\n")

        assert metadata.tags == ["a", "b"]

    def test_rejects_non_text(self):
        """Should raise ExtractionError for non-string input."""
        with pytest.raises(ExtractionError):
            MarkdownMetadataExtractor().extract(b"bytes")  # type: ignore[arg-type]


class TestMetadataCache:
    """Tests for MetadataCache."""

    def test_extracts_once_per_marker(self, document_factory):
        """Should reuse the entry while the modification marker is unchanged."""
        extractor = MagicMock()
        extractor.extract.return_value = ExtractedMetadata(frontmatter={"a": 1})
        cache = MetadataCache(extractor=extractor)
        doc = document_factory("n.md", "text", modified_at=datetime(2025, 1, 1))

        cache.get(doc)
        cache.get(doc)

        extractor.extract.assert_called_once_with("text")

    def test_reextracts_when_marker_changes(self, document_factory):
        """Should call the extractor again after the document changes."""
        extractor = MagicMock()
        extractor.extract.return_value = ExtractedMetadata()
        cache = MetadataCache(extractor=extractor)

        cache.get(document_factory("n.md", "v1", modified_at=datetime(2025, 1, 1)))
        cache.get(document_factory("n.md", "v2", modified_at=datetime(2025, 1, 2)))

        assert extractor.extract.call_count == 2

    def test_content_hash_marker(self, document_factory):
        """Should fall back to a content hash without modified_at."""
        first = modification_marker(document_factory("n.md", "one"))
        second = modification_marker(document_factory("n.md", "two"))

        assert first != second
        assert first == modification_marker(document_factory("n.md", "one"))

    def test_supplied_frontmatter_wins(self, document_factory):
        """Should prefer frontmatter supplied with the document."""
        cache = MetadataCache()
        doc = document_factory(
            "n.md",
            "---\nstatus: parsed\n---\n",
            frontmatter={"Status": "supplied", "tags": ["given"]},
        )

        metadata = cache.get(doc)

        assert metadata.frontmatter == {"status": "supplied", "tags": ["given"]}
        assert "given" in metadata.tags

    def test_build_metadata_merges_tags(self, document_factory):
        """Should combine store tags and text tags in file.tags."""
        cache = MetadataCache()
        doc = document_factory("A/n.md", "Hello #Inline", tags=["#store", "inline"])

        metadata = cache.build_metadata(doc)

        assert metadata.resolve("file.tags") == ["store", "inline"]
        assert metadata.resolve("file.folder") == "A"

    def test_text_reader_fallback(self, document_factory):
        """Should read text through the text reader when content is missing."""
        reader = MagicMock()
        reader.read_text.return_value = "---\nstatus: open\n---\n"
        cache = MetadataCache(text_reader=reader)

        metadata = cache.build_metadata(document_factory("n.md", doc_id="n1"))

        reader.read_text.assert_called_once_with("n1")
        assert metadata.resolve("status") == "open"

    def test_text_reader_missing_document(self, document_factory):
        """Should degrade to empty text when the reader cannot find a document."""
        reader = MagicMock()
        reader.read_text.side_effect = KeyError("n1")
        cache = MetadataCache(text_reader=reader)

        assert cache.read_text(document_factory("n.md", doc_id="n1")) == ""

    def test_extraction_failure_degrades(self, document_factory):
        """Should store empty metadata when the extractor fails."""
        extractor = MagicMock()
        extractor.extract.side_effect = ExtractionError("bad")
        cache = MetadataCache(extractor=extractor)

        metadata = cache.get(document_factory("n.md", "text"))

        assert metadata == ExtractedMetadata()

    def test_prime_counts_extractions(self, document_factory):
        """Should only extract documents that are not cached yet."""
        cache = MetadataCache()
        docs = [document_factory("a.md", "a"), document_factory("b.md", "b")]

        assert cache.prime(docs) == 2
        assert cache.prime(docs) == 0
        assert len(cache) == 2

    def test_seed(self, document_factory):
        """Should serve seeded metadata without extracting."""
        extractor = MagicMock()
        cache = MetadataCache(extractor=extractor)
        doc = document_factory("n.md", "text")

        cache.seed(doc, ExtractedMetadata(frontmatter={"Key": 1}))

        assert cache.get(doc).frontmatter == {"key": 1}
        extractor.extract.assert_not_called()

    def test_invalidate_and_prune(self, document_factory):
        """Should drop single entries, stale entries or everything."""
        cache = MetadataCache()
        cache.prime([document_factory(p, p) for p in ("a.md", "b.md", "c.md")])

        cache.invalidate("a.md")
        assert "a.md" not in cache

        assert cache.prune(["b.md"]) == 1
        assert list(("b.md" in cache, "c.md" in cache)) == [True, False]

        cache.invalidate()
        assert len(cache) == 0


class TestMergeTags:
    """Tests for merge_tags."""

    def test_dedupes_case_insensitively(self):
        """Should keep the first spelling of each tag."""
        assert merge_tags(["Project", "#a"], ["project", "b", " "]) == ["Project", "a", "b"]
