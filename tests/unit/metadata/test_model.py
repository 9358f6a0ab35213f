"""Tests for resolved document metadata."""

from datetime import date, datetime

import pytest

from mdquery.core.exceptions import EvaluationError
from mdquery.core.types import Document, TaskItem
from mdquery.metadata.model import DocumentMetadata, FileFacts, lowercase_keys


@pytest.fixture
def metadata() -> DocumentMetadata:
    """Metadata for a nested note with frontmatter and inline fields."""
    document = Document(
        id="n1",
        path="Work/Clients/acme.md",
        title="Acme",
        tags=["client"],
        outgoing_links=["n2"],
        modified_at=datetime(2025, 3, 1, 12, 0),
    )
    return DocumentMetadata(
        file=FileFacts.from_document(document),
        frontmatter={
            "status": "open",
            "author": {"Name": "Ada", "email": "ada@example.com"},
            "reviewers": ["bob", "cy"],
        },
        fields={"owner": "dana", "status": "ignored"},
    )


class TestFileFacts:
    """Tests for FileFacts.from_document."""

    def test_from_document(self):
        """Should derive name, folder and extension from the path."""
        facts = FileFacts.from_document(Document(id="x", path="A/B/c.md", tags=["t"]))

        assert facts.name == "c"
        assert facts.folder == "A/B"
        assert facts.ext == ".md"
        assert facts.title == "c"
        assert facts.tags == ["t"]

    def test_no_extension(self):
        """Should report an empty extension."""
        assert FileFacts.from_document(Document(id="x", path="README")).ext == ""


class TestResolve:
    """Tests for DocumentMetadata.resolve."""

    def test_file_fields(self, metadata):
        """Should expose file facts under file.*."""
        assert metadata.resolve("file.name") == "acme"
        assert metadata.resolve("file.folder") == "Work/Clients"
        assert metadata.resolve("FILE.Path") == "Work/Clients/acme.md"
        assert metadata.resolve("file.mtime") == datetime(2025, 3, 1, 12, 0)
        assert metadata.resolve("file.outlinks") == ["n2"]

    def test_frontmatter_before_inline_fields(self, metadata):
        """Should prefer frontmatter over inline fields."""
        assert metadata.resolve("status") == "open"
        assert metadata.resolve("owner") == "dana"

    def test_case_insensitive_head(self, metadata):
        """Should look up top-level names case-insensitively."""
        assert metadata.resolve("Status") == "open"

    def test_nested_mapping(self, metadata):
        """Should descend into mappings case-insensitively."""
        assert metadata.resolve("author.name") == "Ada"
        assert metadata.resolve("author.email") == "ada@example.com"

    def test_list_index(self, metadata):
        """Should index into lists with numeric segments."""
        assert metadata.resolve("reviewers.1") == "cy"
        assert metadata.resolve("reviewers.5") is None

    def test_missing(self, metadata):
        """Should return None for absent fields and paths."""
        assert metadata.resolve("priority") is None
        assert metadata.resolve("author.phone") is None
        assert metadata.resolve("status.deep") is None

    def test_computed_fields(self, metadata):
        """Should provide today and now when undefined."""
        assert metadata.resolve("today") == date.today()
        assert isinstance(metadata.resolve("now"), datetime)

    @pytest.mark.parametrize("path", ["", "a..b", ".a", "a."])
    def test_malformed_path(self, metadata, path):
        """Should raise EvaluationError for empty segments."""
        with pytest.raises(EvaluationError, match="Malformed"):
            metadata.resolve(path)

    def test_task_fields(self, metadata):
        """Should expose the bound task under task.*."""
        task = TaskItem(text="call", completed=True, line=4, depth=1)
        bound = metadata.with_task(task)

        assert bound.resolve("task.text") == "call"
        assert bound.resolve("task.completed") is True
        assert bound.resolve("task.depth") == 1
        assert bound.resolve("status") == "open"
        assert metadata.resolve("task.text") is None

    def test_has_field(self, metadata):
        """Should report frontmatter and inline keys only."""
        assert metadata.has_field("STATUS")
        assert metadata.has_field("owner")
        assert not metadata.has_field("file")


class TestLowercaseKeys:
    """Tests for lowercase_keys."""

    def test_lowercases_top_level_only(self):
        """Should leave nested keys untouched."""
        assert lowercase_keys({"A": {"B": 1}}) == {"a": {"B": 1}}

    def test_empty(self):
        """Should return an empty dict for None."""
        assert lowercase_keys(None) == {}
