"""Digests used for query cache keys and document modification markers."""

import hashlib


def sha256_hash(content: str) -> str:
    """Hex SHA-256 digest of UTF-8 encoded text."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def digest(*parts: object, sep: str = ":") -> str:
    """Digest the string forms of several values joined by ``sep``.

    Example:
        >>> digest("LIST FROM #a", 12) == sha256_hash("LIST FROM #a:12")
        True
    """
    return sha256_hash(sep.join(str(part) for part in parts))
