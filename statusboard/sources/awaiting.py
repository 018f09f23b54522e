"""Awaiting-responses adapter (notes/areas/awaiting-responses.md).

Only the ``## Active`` section is read.  Items are checklist lines, and the
indented lines under an item attach to it::

    - [ ] [2026-01-26 14:10] [Slack] Asked Dana for the signed SOW
      - Where to check: #deals channel
      - **Checked Jan 27 AM**: no reply yet, pinged again
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, replace
from typing import Any

from statusboard.common.markdown import heading_level
from statusboard.common.providers import DataProvider, fetch_text

logger = logging.getLogger("statusboard.awaiting")

TITLE_MAX = 80
STATUS_MAX = 60

_ITEM_RE = re.compile(r"^- \[ \] \[([^\]]+)\] \[([^\]]+)\] (.+)")
_WHERE_RE = re.compile(r"Where to check:\s*(.*)")
_CHECKED_RE = re.compile(r"\*\*Checked ([^*]+)\*\*:\s*(.+)")
_ACTIVE_RE = re.compile(r"^##\s+Active\b", re.IGNORECASE)
_CLOSED_RE = re.compile(r"^##\s+Closed\b", re.IGNORECASE)


@dataclass(frozen=True)
class AwaitingItem:
    date: str
    channel: str
    title: str
    where_to_check: str | None = None
    last_checked: str | None = None
    status: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date,
            "channel": self.channel,
            "title": self.title,
            "type": "awaiting",
            "whereToCheck": self.where_to_check,
            "lastChecked": self.last_checked,
            "status": self.status,
        }


def active_section(markdown: str) -> str | None:
    """Lines between ``## Active`` and ``## Closed`` (or the next level-1/2 heading)."""
    lines = markdown.splitlines()
    for i, line in enumerate(lines):
        if not _ACTIVE_RE.match(line.strip()):
            continue
        body: list[str] = []
        for nxt in lines[i + 1:]:
            if _CLOSED_RE.match(nxt.strip()) or 0 < heading_level(nxt) <= 2:
                break
            body.append(nxt)
        return "\n".join(body)
    return None


def parse_awaiting(markdown: str) -> list[AwaitingItem]:
    section = active_section(markdown)
    if section is None:
        return []

    items: list[AwaitingItem] = []
    current: AwaitingItem | None = None
    for line in section.splitlines():
        m = _ITEM_RE.match(line)
        if m:
            if current:
                items.append(current)
            current = AwaitingItem(date=m.group(1), channel=m.group(2), title=m.group(3)[:TITLE_MAX])
            continue
        if current is None:
            continue
        where = _WHERE_RE.search(line)
        if where:
            current = replace(current, where_to_check=where.group(1).strip())
            continue
        checked = _CHECKED_RE.search(line)
        if checked:
            current = replace(current, last_checked=checked.group(1),
                              status=checked.group(2)[:STATUS_MAX])
    if current:
        items.append(current)
    return items


def collect_awaiting(providers: dict[str, DataProvider]) -> list[AwaitingItem]:
    logger.info("Collecting awaiting responses...")
    try:
        items = parse_awaiting(fetch_text(providers, "awaiting_responses"))
    except Exception as exc:
        logger.warning("Failed to read awaiting responses: %s", exc)
        return []
    logger.info("Found %d awaiting responses", len(items))
    return items
