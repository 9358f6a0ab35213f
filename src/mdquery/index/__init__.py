"""Collection indexes for candidate selection."""

from .manager import (
    IndexManager,
    Indexes,
    folder_prefixes,
    normalize_folder,
    normalize_tag,
)

__all__ = [
    "IndexManager",
    "Indexes",
    "folder_prefixes",
    "normalize_folder",
    "normalize_tag",
]
