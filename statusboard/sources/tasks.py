"""Task manager adapter (Things 3 CLI, tab-separated output).

``things today`` prints a header row and then one task per line::

    uuid<TAB>title<TAB>project<TAB>area<TAB>tags<TAB>status

Trailing columns are frequently missing; they default to None.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from statusboard.common.providers import DataProvider, fetch_text

logger = logging.getLogger("statusboard.tasks")

PRIORITY_TASK_LIMIT = 3


@dataclass(frozen=True)
class Task:
    id: str
    title: str
    project: str | None = None
    area: str | None = None
    status: str = "incomplete"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "project": self.project,
            "area": self.area,
            "status": self.status,
        }


@dataclass(frozen=True)
class PriorityTask:
    title: str
    project: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"title": self.title, "project": self.project}


@dataclass(frozen=True)
class TaskCounts:
    today: int = 0
    inbox: int = 0

    @property
    def total(self) -> int:
        return self.today + self.inbox

    def to_dict(self) -> dict[str, int]:
        return {"today": self.today, "inbox": self.inbox, "total": self.total}


@dataclass
class TaskData:
    """Everything derived from the task manager in one run."""

    tasks: list[Task] = field(default_factory=list)
    priority: list[PriorityTask] = field(default_factory=list)
    counts: TaskCounts = field(default_factory=TaskCounts)


def _field(parts: list[str], index: int) -> str | None:
    if index >= len(parts):
        return None
    value = parts[index].strip()
    return value or None


def _rows(text: str) -> list[list[str]]:
    """Split output into tab-separated rows, skipping the header and short rows."""
    rows = []
    for line in text.strip().splitlines()[1:]:
        parts = line.split("\t")
        if len(parts) < 2:
            continue
        rows.append(parts)
    return rows


def parse_tasks(text: str) -> list[Task]:
    """Parse tab-separated task rows into Task records."""
    return [
        Task(
            id=_field(parts, 0) or "",
            title=_field(parts, 1) or "",
            project=_field(parts, 2),
            area=_field(parts, 3),
            status=_field(parts, 5) or "incomplete",
        )
        for parts in _rows(text)
    ]


def parse_priority_tasks(text: str, limit: int = PRIORITY_TASK_LIMIT) -> list[PriorityTask]:
    """Top ``limit`` rows of the today list; project falls back to the area column."""
    return [
        PriorityTask(title=_field(parts, 1) or "", project=_field(parts, 2) or _field(parts, 3))
        for parts in _rows(text)[:limit]
    ]


def count_rows(text: str) -> int:
    """Number of non-blank lines after the header."""
    return sum(1 for line in text.strip().splitlines()[1:] if line.strip())


def collect_tasks(providers: dict[str, DataProvider]) -> TaskData:
    """Fetch today + inbox lists. Each list fails independently; never raises."""
    logger.info("Collecting Things tasks...")
    data = TaskData()
    today = 0
    inbox = 0
    try:
        text = fetch_text(providers, "tasks_today")
        data.tasks = parse_tasks(text)
        data.priority = parse_priority_tasks(text)
        today = count_rows(text)
    except Exception as exc:
        logger.warning("Failed to get Things tasks: %s", exc)

    try:
        inbox = count_rows(fetch_text(providers, "tasks_inbox"))
    except Exception as exc:
        logger.warning("Failed to get inbox count: %s", exc)

    data.counts = TaskCounts(today=today, inbox=inbox)
    logger.info("Found %d tasks (today: %d, inbox: %d)", len(data.tasks), today, inbox)
    return data
