"""Utility helpers for mdquery."""

from .hashing import digest, sha256_hash

__all__ = ["digest", "sha256_hash"]
