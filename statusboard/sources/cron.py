"""Scheduler report adapter.

Parses the fixed-width table printed by ``clawdbot cron list``::

    ID                                   Name                    Schedule                         Next       Last       Status
    0b6c...                              Morning brief           cron 0 7 * * *                   in 9h      15h ago    ok

Columns are sliced by character offset, not split on whitespace, because
names and schedules contain spaces.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from statusboard.common.providers import DataProvider, fetch_text

logger = logging.getLogger("statusboard.cron")

COLUMNS: dict[str, tuple[int, int]] = {
    "id": (0, 36),
    "name": (37, 61),
    "schedule": (61, 94),
    "next": (94, 105),
    "last": (105, 116),
    "status": (116, 126),
}

KNOWN_STATUSES = frozenset({"ok", "idle", "error", "running"})
NEVER_RUN_MARKERS = frozenset({"-", "never"})


def health_color(status: str, last_run: str) -> str:
    """error -> red, running -> blue, never run -> orange, anything else -> green."""
    if status == "error":
        return "red"
    if status == "running":
        return "blue"
    if last_run in NEVER_RUN_MARKERS:
        return "orange"
    return "green"


@dataclass(frozen=True)
class CronJob:
    id: str
    name: str
    schedule: str
    next_run: str
    last_run: str
    status: str

    @property
    def never_run(self) -> bool:
        return self.last_run in NEVER_RUN_MARKERS

    @property
    def health_color(self) -> str:
        return health_color(self.status, self.last_run)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "schedule": self.schedule,
            "nextRun": self.next_run,
            "lastRun": self.last_run,
            "status": self.status,
            "healthColor": self.health_color,
        }


def _column(line: str, key: str) -> str:
    start, end = COLUMNS[key]
    return line[start:end].strip()


def parse_cron_table(text: str) -> list[CronJob]:
    """Parse ``cron list`` output (header line first) into CronJob records.

    Rows whose id or name slice is blank are dropped.  Statuses outside
    ok/idle/error/running collapse to ``unknown``.
    """
    jobs: list[CronJob] = []
    for line in text.strip().splitlines()[1:]:
        job_id = _column(line, "id")
        name = _column(line, "name")
        if not job_id or not name:
            continue
        status = _column(line, "status").lower()
        jobs.append(CronJob(
            id=job_id,
            name=name,
            schedule=_column(line, "schedule"),
            next_run=_column(line, "next"),
            last_run=_column(line, "last"),
            status=status if status in KNOWN_STATUSES else "unknown",
        ))
    return jobs


def collect_crons(providers: dict[str, DataProvider]) -> list[CronJob]:
    """Fetch and parse the scheduler report. Never raises."""
    logger.info("Collecting cron status...")
    try:
        jobs = parse_cron_table(fetch_text(providers, "cron"))
    except Exception as exc:
        logger.warning("Failed to get cron status: %s", exc)
        return []
    logger.info("Found %d crons", len(jobs))
    return jobs
