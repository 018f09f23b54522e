"""Life OS adapter: quarterly rocks and weekly scorecard from life-vto.md.

Both live in pipe tables under their own headings::

    ### 6. ROCKS
    | # | Rock                          | Owner  | Done |
    |---|-------------------------------|--------|------|
    | 1 | Land 1 new consulting client  | Jordan | ☐    |

    ### 7. WEEKLY SCORECARD
    | Metric        | Target | Actual |
    |---------------|--------|--------|
    | Outreach msgs | 10     | 7      |
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any

from statusboard.common.markdown import extract_section, iter_table_rows
from statusboard.common.providers import DataProvider, fetch_text

logger = logging.getLogger("statusboard.lifeos")

DEFAULT_ROCKS_HEADING = r"(?:\d+\.\s*)?ROCKS\b"
DEFAULT_SCORECARD_HEADING = r"(?:\d+\.\s*)?WEEKLY SCORECARD\b"

DONE_MARKS = ("☑", "✓", "✔", "✅")
DONE_WORDS = frozenset({"yes", "done"})

_ROCK_NUMBER_RE = re.compile(r"^\d+$")
_DASHES_RE = re.compile(r"^-+$")


@dataclass(frozen=True)
class Rock:
    number: int
    description: str
    owner: str
    done: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "number": self.number,
            "description": self.description,
            "owner": self.owner,
            "done": self.done,
        }


@dataclass(frozen=True)
class ScorecardMetric:
    name: str
    target: str = ""
    actual: str = ""

    def to_dict(self) -> dict[str, str]:
        return {"metric": self.name, "target": self.target, "actual": self.actual}


@dataclass
class LifeOSSource:
    rocks: list[Rock] = field(default_factory=list)
    scorecard: list[ScorecardMetric] = field(default_factory=list)


def is_done(cell: str) -> bool:
    """A status cell counts as done for a check mark or the words yes/done."""
    return any(mark in cell for mark in DONE_MARKS) or cell.strip().lower() in DONE_WORDS


def parse_rocks(markdown: str, heading: str = DEFAULT_ROCKS_HEADING) -> list[Rock]:
    """Rows of the rocks table that start with a positive integer, in source order."""
    section = extract_section(markdown, heading)
    if section is None:
        return []
    rocks: list[Rock] = []
    for cells in iter_table_rows(section):
        if len(cells) < 4 or not _ROCK_NUMBER_RE.match(cells[0]):
            continue
        number = int(cells[0])
        if number <= 0:
            continue
        rocks.append(Rock(number=number, description=cells[1], owner=cells[2], done=is_done(cells[3])))
    return rocks


def parse_scorecard(markdown: str, heading: str = DEFAULT_SCORECARD_HEADING) -> list[ScorecardMetric]:
    section = extract_section(markdown, heading)
    if section is None:
        return []
    metrics: list[ScorecardMetric] = []
    for cells in iter_table_rows(section):
        if len(cells) < 2 or not cells[0] or _DASHES_RE.match(cells[0]):
            continue
        metrics.append(ScorecardMetric(
            name=cells[0],
            target=cells[1],
            actual=cells[2] if len(cells) > 2 else "",
        ))
    return metrics


def collect_lifeos(providers: dict[str, DataProvider], cfg: dict[str, Any]) -> LifeOSSource:
    """Read life-vto.md and parse both tables. Never raises."""
    logger.info("Collecting Life OS data...")
    lifeos_cfg = cfg.get("lifeos", {})
    try:
        text = fetch_text(providers, "life_vto")
        source = LifeOSSource(
            rocks=parse_rocks(text, lifeos_cfg.get("rocks_heading", DEFAULT_ROCKS_HEADING)),
            scorecard=parse_scorecard(text, lifeos_cfg.get("scorecard_heading", DEFAULT_SCORECARD_HEADING)),
        )
    except Exception as exc:
        logger.warning("Failed to parse life-vto.md: %s", exc)
        return LifeOSSource()
    logger.info("Found %d rocks (%d done), %d scorecard metrics",
                len(source.rocks), sum(r.done for r in source.rocks), len(source.scorecard))
    return source
