"""Derived metrics: cron health, goal progress, deadline countdown, needs-attention list.

Pure functions over adapter output.  The rock -> goal category table is
configuration (``lifeos.goal_groups``); the defaults below mirror the
current life-vto.md:

    1 land client, 2 website, 8 guild         -> income
    3 LinkedIn, 5 speaking gig                -> income + freedom
    4 weight                                  -> body
    6 dates                                   -> relationship
    7 reach out to colleagues                 -> freedom
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone
from typing import Any

from statusboard.common.numbers import round_half_up
from statusboard.sources.awaiting import AwaitingItem
from statusboard.sources.cron import CronJob
from statusboard.sources.lifeos import LifeOSSource, Rock, ScorecardMetric
from statusboard.sources.tasks import PriorityTask

logger = logging.getLogger("statusboard.metrics")

DEFAULT_GOAL_GROUPS: dict[str, list[int]] = {
    "income": [1, 2, 3, 5, 8],
    "body": [4],
    "relationship": [6],
    "freedom": [3, 5, 7],
}

DEFAULT_GOAL_TARGETS: dict[str, str] = {
    "income": "$400K+ total, $150K+ non-WB",
    "body": "Hit 172-175 (cut)",
    "relationship": "Dating consistently OR in relationship",
    "freedom": "2+ multi-day sailing trips",
    "lifeQuality": "Perform at 3+ open mics",
}

DEFAULT_LIFE_QUALITY_PROGRESS = 60
DEFAULT_DEADLINE = "2026-03-31"

HEALTHY_STATUSES = frozenset({"ok", "idle"})


# ── Cron health ──────────────────────────────────────────────────────────────

@dataclass
class CronSummary:
    jobs: list[CronJob] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.jobs)

    @property
    def healthy(self) -> int:
        return sum(1 for j in self.jobs if j.status in HEALTHY_STATUSES)

    @property
    def errors(self) -> list[CronJob]:
        return [j for j in self.jobs if j.status == "error"]

    @property
    def never_run(self) -> list[CronJob]:
        return [j for j in self.jobs if j.never_run]

    @property
    def status(self) -> str:
        return "warning" if self.errors else "ok"


def summarize_crons(jobs: list[CronJob]) -> CronSummary:
    return CronSummary(jobs=list(jobs))


# ── Goal progress ────────────────────────────────────────────────────────────

def percent(done: int, total: int) -> int:
    """``done / total`` as a rounded integer percent; 0 when ``total`` is 0."""
    if total <= 0:
        return 0
    return round_half_up(done / total * 100)


def goal_progress(rocks: list[Rock], groups: dict[str, list[int]]) -> dict[str, int]:
    """Percent of done rocks per goal category. Empty categories report 0."""
    progress: dict[str, int] = {}
    for category, numbers in groups.items():
        members = [r for r in rocks if r.number in set(numbers)]
        progress[category] = percent(sum(1 for r in members if r.done), len(members))
    return progress


def days_until(deadline: date | str, now: datetime) -> int:
    """Whole days (rounded up) from ``now`` to midnight UTC of ``deadline``; negative once past."""
    if isinstance(deadline, str):
        deadline = date.fromisoformat(deadline)
    end = datetime.combine(deadline, time.min, tzinfo=timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return math.ceil((end - now).total_seconds() / 86400)


@dataclass
class LifeOS:
    rocks: list[Rock] = field(default_factory=list)
    scorecard: list[ScorecardMetric] = field(default_factory=list)
    goals: dict[str, dict[str, Any]] = field(default_factory=dict)
    days_until_deadline: int = 0

    @property
    def rocks_total(self) -> int:
        return len(self.rocks)

    @property
    def rocks_completed(self) -> int:
        return sum(1 for r in self.rocks if r.done)

    @property
    def rock_progress(self) -> int:
        return percent(self.rocks_completed, self.rocks_total)

    def progress(self, category: str) -> int:
        return int(self.goals.get(category, {}).get("progress", 0))

    def to_dict(self) -> dict[str, Any]:
        return {
            "rocks": [r.to_dict() for r in self.rocks],
            "scorecard": [m.to_dict() for m in self.scorecard],
            "goals": self.goals,
            "rockProgress": self.rock_progress,
            "rocksCompleted": self.rocks_completed,
            "rocksTotal": self.rocks_total,
            "daysUntilDeadline": self.days_until_deadline,
        }


def _days_left(lifeos_cfg: dict[str, Any], now: datetime) -> int:
    deadline = lifeos_cfg.get("deadline", DEFAULT_DEADLINE)
    try:
        return days_until(str(deadline), now)
    except ValueError:
        logger.warning("Invalid lifeos.deadline %r, using %s", deadline, DEFAULT_DEADLINE)
        return days_until(DEFAULT_DEADLINE, now)


def _life_quality_progress(lifeos_cfg: dict[str, Any]) -> int:
    raw = lifeos_cfg.get("life_quality_progress", DEFAULT_LIFE_QUALITY_PROGRESS)
    try:
        return int(raw)
    except (TypeError, ValueError):
        logger.warning("Invalid lifeos.life_quality_progress %r, using %d", raw, DEFAULT_LIFE_QUALITY_PROGRESS)
        return DEFAULT_LIFE_QUALITY_PROGRESS


def build_lifeos(source: LifeOSSource, cfg: dict[str, Any], now: datetime) -> LifeOS:
    """Combine parsed rocks/scorecard with the configured goal table."""
    lifeos_cfg = cfg.get("lifeos", {})
    groups = lifeos_cfg.get("goal_groups") or DEFAULT_GOAL_GROUPS
    targets = {**DEFAULT_GOAL_TARGETS, **(lifeos_cfg.get("goal_targets") or {})}

    goals: dict[str, dict[str, Any]] = {
        category: {"target": targets.get(category, ""), "progress": value}
        for category, value in goal_progress(source.rocks, groups).items()
    }
    goals["lifeQuality"] = {
        "target": targets.get("lifeQuality", ""),
        "progress": _life_quality_progress(lifeos_cfg),
    }

    return LifeOS(
        rocks=list(source.rocks),
        scorecard=list(source.scorecard),
        goals=goals,
        days_until_deadline=_days_left(lifeos_cfg, now),
    )


# ── Needs attention ──────────────────────────────────────────────────────────

PRIOR_NEEDS_KEPT = 2
FRESH_NEEDS_KEPT = 3
MAX_NEEDS = 5


def build_needs_items(awaiting: list[AwaitingItem], priority: list[PriorityTask]) -> list[dict[str, Any]]:
    """Fresh needs-attention items: awaiting responses first, then today's top tasks."""
    items: list[dict[str, Any]] = [
        {
            "type": "awaiting",
            "title": a.title,
            "context": a.status or f"Check: {a.channel}",
            "priority": "P2",
            "source": a.channel,
            "link": a.where_to_check,
        }
        for a in awaiting
    ]
    items.extend(
        {
            "type": "task",
            "title": t.title,
            "context": f"Project: {t.project}" if t.project else "Today task",
            "priority": "P1",
            "source": "Things",
        }
        for t in priority
    )
    return items


def merge_needs(prior: Any, fresh: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Hand-curated items stay on top: first 2 prior + first 3 fresh, at most 5."""
    kept = [item for item in prior if isinstance(item, dict)] if isinstance(prior, list) else []
    return [*kept[:PRIOR_NEEDS_KEPT], *fresh[:FRESH_NEEDS_KEPT]][:MAX_NEEDS]
