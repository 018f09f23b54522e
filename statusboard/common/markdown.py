"""Markdown helpers: heading-delimited sections and pipe tables."""

from __future__ import annotations

import re
from collections.abc import Iterator

_HEADING_RE = re.compile(r"^(#{1,6})\s+(.*?)\s*#*\s*$")
_SEPARATOR_RE = re.compile(r"^\|?\s*:?-{2,}:?\s*(\|\s*:?-{2,}:?\s*)*\|?\s*$")


def heading_level(line: str) -> int:
    """Return the ATX heading level of ``line`` (0 if it is not a heading)."""
    m = _HEADING_RE.match(line.strip())
    return len(m.group(1)) if m else 0


def extract_section(markdown: str, heading: str) -> str | None:
    """Return the body of the first section whose heading matches ``heading``.

    ``heading`` is a regular expression matched (case-insensitively) against
    the start of the heading text.  The section runs until the next heading
    of the same or a higher level.  Returns None when no heading matches.
    """
    pattern = re.compile(heading, re.IGNORECASE)
    lines = markdown.splitlines()
    for i, line in enumerate(lines):
        m = _HEADING_RE.match(line.strip())
        if not m or not pattern.match(m.group(2)):
            continue
        level = len(m.group(1))
        body: list[str] = []
        for nxt in lines[i + 1:]:
            lvl = heading_level(nxt)
            if lvl and lvl <= level:
                break
            body.append(nxt)
        return "\n".join(body)
    return None


def is_separator_row(line: str) -> bool:
    """True for table separator rows like ``|---|:--:|``."""
    return bool(_SEPARATOR_RE.match(line.strip()))


def split_row(line: str) -> list[str]:
    """Split a pipe-table row into trimmed cells, keeping empty cells in place."""
    stripped = line.strip()
    if stripped.startswith("|"):
        stripped = stripped[1:]
    if stripped.endswith("|"):
        stripped = stripped[:-1]
    return [cell.strip() for cell in stripped.split("|")]


def iter_table_rows(section: str) -> Iterator[list[str]]:
    """Yield the body rows of every pipe table in ``section``.

    Separator rows and header rows (the row directly above a separator) are
    skipped.
    """
    lines = section.splitlines()
    for i, line in enumerate(lines):
        if not line.strip().startswith("|") or is_separator_row(line):
            continue
        following = lines[i + 1] if i + 1 < len(lines) else ""
        if following.strip().startswith("|") and is_separator_row(following):
            continue
        yield split_row(line)
