"""Recent daily logs (memory/YYYY-MM-DD.md) and the highlights inside them."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import date, timedelta
from pathlib import Path
from typing import Any

logger = logging.getLogger("statusboard.daily_logs")

RECENT_DAYS = 3
MAX_HIGHLIGHTS = 10
ACTION_MAX = 100

_TIMED_RE = re.compile(r"^[-*]\s+(\d{1,2}:\d{2}\s*(?:AM|PM)?):?\s+(.+)", re.IGNORECASE)
_HEADER_RE = re.compile(r"^##\s+(.+)")
_ROUTINE_HEADER_RE = re.compile(r"^(Morning|Afternoon|Evening|Notes)", re.IGNORECASE)


@dataclass(frozen=True)
class DailyLog:
    date: str
    title: str
    path: str
    highlights: list[dict[str, str]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"date": self.date, "title": self.title, "path": self.path, "highlights": self.highlights}


def extract_highlights(text: str, limit: int = MAX_HIGHLIGHTS) -> list[dict[str, str]]:
    """Timestamped bullets (``- 10:30 AM: ...``) and non-routine ``##`` headers."""
    found: list[dict[str, str]] = []
    for line in text.splitlines():
        timed = _TIMED_RE.match(line)
        if timed:
            found.append({"time": timed.group(1), "action": timed.group(2)[:ACTION_MAX]})
        header = _HEADER_RE.match(line)
        if header and not _ROUTINE_HEADER_RE.match(header.group(1)):
            found.append({"time": "log", "action": header.group(1)[:ACTION_MAX]})
    return found[:limit]


def collect_daily_logs(memory_dir: Path, today: date, days: int = RECENT_DAYS) -> list[DailyLog]:
    """The logs for ``today`` and the previous ``days - 1`` days that exist. Never raises."""
    logger.info("Collecting recent daily logs...")
    logs: list[DailyLog] = []
    for offset in range(days):
        date_str = (today - timedelta(days=offset)).isoformat()
        path = memory_dir / f"{date_str}.md"
        if not path.is_file():
            continue
        try:
            text = path.read_text(encoding="utf-8", errors="replace")
        except OSError as exc:
            logger.warning("Failed to read daily log %s: %s", path, exc)
            continue
        first = text.split("\n", 1)[0]
        title = re.sub(r"^#\s*", "", first).strip() or date_str
        logs.append(DailyLog(date=date_str, title=title, path=str(path), highlights=extract_highlights(text)))
    logger.info("Found %d recent logs", len(logs))
    return logs
