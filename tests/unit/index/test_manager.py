"""Tests for IndexManager and Indexes."""

from mdquery.index.manager import (
    IndexManager,
    folder_prefixes,
    normalize_folder,
    normalize_tag,
)


class TestNormalization:
    """Tests for key normalization helpers."""

    def test_normalize_tag(self):
        assert normalize_tag(" #Project/Sub ") == "project/sub"

    def test_normalize_folder(self):
        assert normalize_folder("/A\\B/./C/") == "A/B/C"
        assert normalize_folder("") == ""

    def test_folder_prefixes(self):
        assert folder_prefixes("A/B/C") == ["A", "A/B", "A/B/C"]
        assert folder_prefixes("") == []


class TestRebuild:
    """Tests for IndexManager.rebuild."""

    def test_tag_index_correctness(self, project_documents, metadata_cache):
        """Every tag on a document should map back to the document."""
        indexes = IndexManager(metadata_cache).rebuild(project_documents)

        for document in project_documents:
            facts = metadata_cache.build_metadata(document).file
            for tag in facts.tags:
                assert document.id in indexes.tags[tag.lower()]

    def test_case_insensitive_tags(self, project_documents):
        """Should fold tags of any case into one key."""
        indexes = IndexManager().rebuild(project_documents)

        assert indexes.lookup_tag("#Project") == {"alpha", "beta", "inbox"}
        assert indexes.lookup_tag("PROJECT") == indexes.lookup_tag("project")
        assert indexes.lookup_tag("research") == {"beta"}
        assert indexes.lookup_tag("missing") == set()

    def test_store_tags_indexed(self, document_factory):
        """Should index tags supplied by the store as well as text tags."""
        indexes = IndexManager().rebuild([document_factory("n.md", "", tags=["#Given"])])

        assert indexes.lookup_tag("given") == {"n.md"}

    def test_folder_ancestor_property(self, document_factory):
        """A document at A/B/C.md should be under A and A/B."""
        indexes = IndexManager().rebuild([document_factory("A/B/C.md", "")])

        assert indexes.folders["A"] == {"A/B/C.md"}
        assert indexes.folders["A/B"] == {"A/B/C.md"}
        assert indexes.lookup_folder("/A/B/") == {"A/B/C.md"}
        assert "A/B/C.md" not in indexes.folders

    def test_root_documents_have_no_folder(self, project_documents):
        """Should not index root documents under any folder."""
        indexes = IndexManager().rebuild(project_documents)

        assert all("inbox" not in ids for ids in indexes.folders.values())
        assert indexes.lookup_folder("Projects") == {"alpha", "beta"}

    def test_field_index(self, project_documents):
        """Should index frontmatter and inline-field keys in lowercase."""
        indexes = IndexManager().rebuild(project_documents)

        assert indexes.lookup_field("Priority") == {"alpha", "beta", "old"}
        assert indexes.lookup_field("owner") == {"beta"}
        assert indexes.lookup_field("title") == {"alpha"}

    def test_names(self, project_documents):
        """Should resolve ids, paths, file names and titles."""
        indexes = IndexManager().rebuild(project_documents)

        assert indexes.resolve_name("Beta Notes") == "beta"
        assert indexes.resolve_name("projects/beta/notes") == "beta"
        assert indexes.resolve_name("Projects/Beta/notes.md") == "beta"
        assert indexes.resolve_name("plan") == "alpha"
        assert indexes.resolve_name("alpha") == "alpha"
        assert indexes.resolve_name("nowhere") is None

    def test_exact_names_win(self, document_factory):
        """An id should win over another document's title."""
        docs = [
            document_factory("a.md", "", doc_id="first", title="second"),
            document_factory("b.md", "", doc_id="second"),
        ]
        indexes = IndexManager().rebuild(docs)

        assert indexes.resolve_name("second") == "second"

    def test_counts(self, project_documents):
        """Should record the document count and build time."""
        indexes = IndexManager().rebuild(project_documents)

        assert indexes.document_count == 4
        assert indexes.built_at is not None

    def test_rebuild_reflects_changes(self, document_factory):
        """Should pick up a tag added between rebuilds."""
        manager = IndexManager()
        manager.rebuild([document_factory("n.md", "plain")])

        indexes = manager.rebuild([document_factory("n.md", "now #tagged")])

        assert indexes.lookup_tag("tagged") == {"n.md"}
