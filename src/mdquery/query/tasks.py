"""Checkbox line scanner for TASK queries.

Recognised lines::

    - [ ] open task
    * [x] done task
      + [X] nested done task
    1. [ ] ordered task
    2) [ ] ordered task

Lines inside the frontmatter block and fenced code blocks are ignored, as
are checkboxes with no text after them.
"""

from __future__ import annotations

import re

from ..core.types import TaskItem
from ..metadata.parsing import parse_frontmatter

_TASK_PATTERN = re.compile(
    r"^(?P<indent>[ \t]*)(?P<marker>[-*+]|\d+[.)])[ \t]+\[(?P<state>[ xX])\][ \t]+(?P<text>\S.*?)\s*$"
)
_FENCE_PATTERN = re.compile(r"^[ \t]*(```|~~~)")


def scan_tasks(text: str, indent_width: int = 2, skip_code_blocks: bool = True) -> list[TaskItem]:
    """Find checkbox lines in document text.

    Args:
        text: Full document text, frontmatter included.
        indent_width: Spaces per nesting level; a tab counts as one level.
        skip_code_blocks: Ignore lines inside fenced code blocks.

    Returns:
        Tasks in document order. ``line`` is the zero-based line number in
        ``text``.

    Example:
        >>> [t.text for t in scan_tasks("- [ ] write\\n  - [x] review")]
        ['write', 'review']
    """
    if not text:
        return []

    width = max(indent_width, 1)
    start = parse_frontmatter(text).body_offset
    lines = text.splitlines()

    tasks: list[TaskItem] = []
    fence: str | None = None

    for number in range(start, len(lines)):
        line = lines[number]

        if skip_code_blocks:
            fence_match = _FENCE_PATTERN.match(line)
            if fence_match:
                if fence is None:
                    fence = fence_match.group(1)
                elif fence == fence_match.group(1):
                    fence = None
                continue
            if fence is not None:
                continue

        match = _TASK_PATTERN.match(line)
        if not match:
            continue

        indent = match.group("indent")
        columns = indent.count("\t") * width + indent.count(" ")
        tasks.append(
            TaskItem(
                text=match.group("text"),
                completed=match.group("state") in ("x", "X"),
                line=number,
                depth=columns // width,
                marker=match.group("marker"),
            )
        )

    return tasks
