"""Value normalization and comparison helpers.

Frontmatter values arrive as whatever YAML produced: strings, numbers,
booleans, dates, lists and nested mappings. Comparison treats them
case-insensitively and lines up dates written as strings with real dates.
"""

from __future__ import annotations

import re
from datetime import date, datetime, time, timezone
from typing import Any, Mapping

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_ISO_DATETIME = re.compile(r"^\d{4}-\d{2}-\d{2}[T ]\d{2}:\d{2}")


def normalize_value(value: Any) -> Any:
    """Normalize a value for comparison and sorting.

    - dates become naive datetimes at midnight
    - aware datetimes are converted to naive UTC
    - ISO date / datetime strings become datetimes
    - other strings are casefolded

    Args:
        value: Raw metadata or literal value.

    Returns:
        Comparable representation of the value.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            return value.astimezone(timezone.utc).replace(tzinfo=None)
        return value
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    if isinstance(value, str):
        parsed = parse_datetime(value)
        if parsed is not None:
            return normalize_value(parsed)
        return value.casefold()
    return value


def parse_datetime(value: str) -> datetime | None:
    """Parse an ISO date or datetime string, or return None."""
    text = value.strip()
    if not (_ISO_DATE.match(text) or _ISO_DATETIME.match(text)):
        return None
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return None


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def coerce_pair(left: Any, right: Any) -> tuple[Any, Any]:
    """Convert a numeric string to a number when the other side is a number."""
    if is_number(left) and isinstance(right, str):
        return left, _to_number(right, right)
    if is_number(right) and isinstance(left, str):
        return _to_number(left, left), right
    return left, right


def to_number(value: Any) -> int | float | None:
    """Convert a value to a number, or None if it is not numeric."""
    if is_number(value):
        return value
    if isinstance(value, bool) or value is None:
        return None
    return _to_number(str(value), None)


def _to_number(text: str, default: Any) -> Any:
    text = text.strip()
    try:
        return int(text)
    except ValueError:
        pass
    try:
        return float(text)
    except ValueError:
        return default


def truthy(value: Any) -> bool:
    """Truthiness used for bare fields and function results in WHERE."""
    if isinstance(value, str):
        return bool(value.strip())
    return bool(value)


def contains_value(container: Any, item: Any) -> bool:
    """Case-insensitive containment.

    Strings test for a substring, lists and tuples for an element and
    mappings for a key. A leading ``#`` is ignored when matching list
    elements so ``file.tags contains #project`` works for tags stored bare.
    """
    if container is None or item is None:
        return False

    if isinstance(container, str):
        return str(item).casefold() in container.casefold()

    if isinstance(container, (list, tuple, set, frozenset)):
        needle = _element_key(item)
        return any(_element_key(element) == needle for element in container)

    if isinstance(container, Mapping):
        needle = str(item).casefold()
        return any(str(key).casefold() == needle for key in container)

    return False


def _element_key(value: Any) -> Any:
    normalized = normalize_value(value)
    if isinstance(normalized, str):
        return normalized.lstrip("#")
    return normalized


def sort_key(value: Any) -> tuple[int, Any]:
    """Total ordering key for mixed-type values.

    Numbers sort before dates, dates before strings, strings before other
    values; None sorts after everything.
    """
    normalized = normalize_value(value)
    if normalized is None:
        return (4, 0)
    if is_number(normalized) or isinstance(normalized, bool):
        return (0, normalized)
    if isinstance(normalized, datetime):
        return (1, normalized)
    if isinstance(normalized, str):
        return (2, normalized)
    return (3, str(normalized).casefold())
