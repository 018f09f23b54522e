"""Bounded activity log: newest-first JSON array, capped at MAX_ACTIVITY_ITEMS."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from statusboard.common.state import load_json, save_json

logger = logging.getLogger("statusboard.activity")

MAX_ACTIVITY_ITEMS = 50


@dataclass(frozen=True)
class ActivityEntry:
    timestamp: str
    action: str
    details: str = ""
    source: str = "system"

    @classmethod
    def now(cls, action: str, details: str = "", source: str = "system",
            *, at: datetime | None = None) -> ActivityEntry:
        at = at or datetime.now(timezone.utc)
        return cls(timestamp=at.isoformat(timespec="milliseconds"), action=action, details=details, source=source)

    def to_dict(self) -> dict[str, str]:
        return {"timestamp": self.timestamp, "action": self.action, "details": self.details, "source": self.source}


def load_activity_log(path: Path) -> list[dict[str, Any]]:
    """Stored entries, newest first. Missing/corrupt file or non-list -> []."""
    data = load_json(path, [])
    if not isinstance(data, list):
        logger.warning("Activity log %s is not a JSON array, starting fresh", path)
        return []
    return [entry for entry in data if isinstance(entry, dict)]


def append_entry(entries: list[dict[str, Any]], entry: ActivityEntry,
                 max_items: int = MAX_ACTIVITY_ITEMS) -> list[dict[str, Any]]:
    """Return a new list with ``entry`` at the head, truncated to ``max_items``."""
    return [entry.to_dict(), *entries][:max_items]


def log_activity(path: Path, entry: ActivityEntry, max_items: int = MAX_ACTIVITY_ITEMS) -> list[dict[str, Any]]:
    """Read-modify-write one entry into the log file."""
    entries = append_entry(load_activity_log(path), entry, max_items)
    save_json(path, entries)
    logger.info("Logged activity: %s (%s)", entry.action, entry.details)
    return entries
