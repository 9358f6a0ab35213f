"""Markdown syntax scanners used by metadata extraction.

Everything here works on raw text and knows nothing about documents:
YAML frontmatter, inline ``#tags``, inline ``key:: value`` fields and
``[[wikilinks]]``. Code spans and fenced code are ignored by every scanner
except the frontmatter parser.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

import yaml
from loguru import logger


@dataclass
class FrontmatterResult:
    """A document split into its frontmatter mapping and body.

    Attributes:
        data: YAML mapping, empty when the document has no usable block.
        content: Text after the closing ``---`` (the whole text otherwise).
        has_frontmatter: Whether a valid block was split off.
        body_offset: Line number where ``content`` starts in the full text.
    """

    data: dict[str, Any]
    content: str
    has_frontmatter: bool
    body_offset: int = 0


_FRONTMATTER = re.compile(
    r"\A---[ \t]*\r?\n(?P<yaml>.*?)^---[ \t]*\r?$\n?",
    re.DOTALL | re.MULTILINE,
)

# A tag must follow whitespace, an opening bracket or a quote
_INLINE_TAG = re.compile(r"(?<![^\s(\[\"{])#(?P<tag>[A-Za-z][\w/-]*)")

_FENCED_CODE = re.compile(r"(```|~~~).*?\1", re.DOTALL)
_INLINE_CODE = re.compile(r"`[^`\n]+`")

_HASHTAG_RUN = re.compile(r"#\w+\s+#\w+")
_HASHTAG_WORD = re.compile(r"#?[\w/-]+")

# Full-line inline field, optionally inside a list item: "status:: open"
_LINE_FIELD_PATTERN = re.compile(
    r"^\s*(?:[-*+]\s+)?([A-Za-z_][\w-]*)::[ \t]*(.*?)\s*$",
)

# Bracketed inline field anywhere in a line: "[due:: 2024-05-01]"
_BRACKET_FIELD_PATTERN = re.compile(r"[\[(]([A-Za-z_][\w-]*)::[ \t]*([^\])]*?)\s*[\])]")

# [[Target]], [[Target|Alias]], [[Target#Heading]]
_WIKILINK_PATTERN = re.compile(r"!?\[\[([^\]|#]+)(?:#[^\]|]*)?(?:\|[^\]]*)?\]\]")


def parse_frontmatter(text: str) -> FrontmatterResult:
    """Split a leading ``---`` YAML block off markdown text.

    A block that is not valid YAML stays in the body and is reported as
    absent. YAML that loads to something other than a mapping is kept under
    the ``_raw`` key.

    Args:
        text: Full document text.

    Returns:
        FrontmatterResult for the text.

    Example:
        >>> block = parse_frontmatter("---\\nstatus: open\\n---\\nBody\\n")
        >>> block.data, block.content, block.body_offset
        ({'status': 'open'}, 'Body\\n', 3)
    """
    match = _FRONTMATTER.match(text)
    if match is None:
        return FrontmatterResult(data={}, content=text, has_frontmatter=False)

    try:
        loaded = yaml.safe_load(match.group("yaml"))
    except yaml.YAMLError as e:
        logger.debug(f"Ignoring malformed frontmatter: {e}")
        return FrontmatterResult(data={}, content=text, has_frontmatter=False)

    if loaded is None:
        data: dict[str, Any] = {}
    elif isinstance(loaded, dict):
        data = loaded
    else:
        data = {"_raw": loaded}

    end = match.end()
    return FrontmatterResult(
        data=data,
        content=text[end:],
        has_frontmatter=True,
        body_offset=text.count("\n", 0, end),
    )


def extract_inline_tags(content: str) -> list[str]:
    """Find ``#tag`` occurrences outside code, returned without the ``#``.

    A tag starts with a letter and continues with word characters, ``-``
    or ``/``, so ``# Heading``, ``#123`` and URL fragments never match.

    Example:
        >>> extract_inline_tags("Check #python and #rust/async code")
        ['python', 'rust/async']
    """
    return [match.group("tag") for match in _INLINE_TAG.finditer(remove_code_blocks(content))]


def extract_inline_fields(content: str) -> dict[str, Any]:
    """Extract ``key:: value`` inline fields from content.

    Keys are lowercased. A key that appears more than once collects its
    values into a list, in order of appearance. Scalar values that YAML
    recognises as numbers, booleans or dates are converted.

    Args:
        content: Document body (frontmatter already removed).

    Returns:
        Mapping of lowercase field name to value.

    Example:
        >>> extract_inline_fields("status:: open\\nSee [due:: 2024-05-01]")
        {'status': 'open', 'due': datetime.date(2024, 5, 1)}
    """
    fields: dict[str, Any] = {}

    for line in remove_code_blocks(content).splitlines():
        line_match = _LINE_FIELD_PATTERN.match(line)
        if line_match:
            _add_field(fields, line_match.group(1), line_match.group(2))
            continue
        for key, value in _BRACKET_FIELD_PATTERN.findall(line):
            _add_field(fields, key, value)

    return fields


def extract_wikilinks(content: str) -> list[str]:
    """Extract ``[[wikilink]]`` targets from content.

    Args:
        content: Document content to search.

    Returns:
        Link targets with heading anchors and aliases removed,
        deduplicated in order of appearance.
    """
    seen: dict[str, None] = {}
    for target in _WIKILINK_PATTERN.findall(remove_code_blocks(content)):
        target = target.strip()
        if target:
            seen.setdefault(target, None)
    return list(seen)


def remove_code_blocks(content: str) -> str:
    """Blank out fenced and inline code, keeping offsets and line breaks."""
    content = _FENCED_CODE.sub(_blank, content)
    return _INLINE_CODE.sub(_blank, content)


def extract_tags_from_field(value: Any) -> list[str]:
    """Normalize a frontmatter ``tags`` value to a list of strings.

    Accepts a YAML list, a comma-separated string, space-separated
    ``#hashtags`` or a single scalar.

    Example:
        >>> extract_tags_from_field("#a #b/c")
        ['a', 'b/c']
    """
    if value is None:
        return []

    if isinstance(value, (list, tuple)):
        items = [str(item).strip() for item in value if item is not None]
        return [item for item in items if item]

    text = str(value).strip()
    if "," in text:
        return [part.strip() for part in text.split(",") if part.strip()]
    if _HASHTAG_RUN.search(text):
        return [word.lstrip("#") for word in _HASHTAG_WORD.findall(text)]
    return [text] if text else []


def _blank(match: re.Match[str]) -> str:
    return "".join("\n" if ch == "\n" else " " for ch in match.group())


def _add_field(fields: dict[str, Any], key: str, raw_value: str) -> None:
    key = key.lower()
    value = _coerce_scalar(raw_value)
    if key not in fields:
        fields[key] = value
    elif isinstance(fields[key], list):
        fields[key].append(value)
    else:
        fields[key] = [fields[key], value]


def _coerce_scalar(raw: str) -> Any:
    """Convert a raw inline value to int/float/bool/date where YAML agrees."""
    raw = raw.strip()
    if not raw:
        return None
    try:
        parsed = yaml.safe_load(raw)
    except yaml.YAMLError:
        return raw
    if isinstance(parsed, (bool, int, float, date, datetime)):
        return parsed
    return raw
