"""Pytest configuration and fixtures."""

from datetime import datetime

import pytest

from mdquery.core.types import Document
from mdquery.metadata import MetadataCache


def make_document(
    path: str,
    content: str | None = None,
    *,
    doc_id: str | None = None,
    title: str = "",
    tags: list[str] | None = None,
    frontmatter: dict | None = None,
    outgoing: list[str] | None = None,
    incoming: list[str] | None = None,
    modified_at: datetime | None = None,
) -> Document:
    """Build a Document with the id defaulting to its path."""
    return Document(
        id=doc_id or path,
        path=path,
        title=title,
        content=content,
        tags=tags or [],
        outgoing_links=outgoing or [],
        incoming_links=incoming or [],
        frontmatter=frontmatter,
        modified_at=modified_at,
    )


@pytest.fixture
def document_factory():
    """Provide the make_document helper to tests."""
    return make_document


@pytest.fixture
def metadata_cache() -> MetadataCache:
    """Provide an empty metadata cache."""
    return MetadataCache()


@pytest.fixture
def work_documents() -> list[Document]:
    """Two notes in different top-level folders with string frontmatter."""
    return [
        make_document(
            "Work/a.md",
            "# A\n",
            frontmatter={"status": "open", "due": "2025-01-01"},
        ),
        make_document(
            "Personal/b.md",
            "# B\n",
            frontmatter={"status": "done"},
        ),
    ]


@pytest.fixture
def project_documents() -> list[Document]:
    """A small collection exercising tags, folders, fields and links."""
    return [
        make_document(
            "Projects/Alpha/plan.md",
            "---\ntitle: Alpha Plan\nstatus: active\npriority: 5\ntags: [project, planning]\n---\n"
            "# Plan\n\n- [ ] write outline\n  - [x] collect notes\n- [X] kick off\n\nSee [[Beta Notes]].\n",
            doc_id="alpha",
            title="Alpha Plan",
            outgoing=["beta"],
        ),
        make_document(
            "Projects/Beta/notes.md",
            "---\nstatus: paused\npriority: 2\ntags: [PROJECT]\n---\n"
            "Notes with #research inline.\nowner:: dana\n",
            doc_id="beta",
            title="Beta Notes",
            incoming=["alpha"],
        ),
        make_document(
            "Archive/old.md",
            "---\nstatus: done\npriority: 1\n---\nNothing to see.\n",
            doc_id="old",
        ),
        make_document(
            "inbox.md",
            "Loose thought #Project\n\n1. [ ] file this\n",
            doc_id="inbox",
        ),
    ]
