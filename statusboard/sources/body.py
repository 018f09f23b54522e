"""Body metrics adapter (Oura stats script).

The provider prints one JSON object whose fields are pipe-packed strings::

    {"resilience": "adequate|52.2|49.2|40.6",
     "stress": "stressful|15300|5400",
     "vo2": "37|2026-01-26",
     "prevVo2": "36"}

Fields are decoded by position.  Missing or unparseable numbers become 0,
missing strings become "unknown".
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

from statusboard.common.errors import ParseMismatch
from statusboard.common.numbers import to_float, to_int
from statusboard.common.providers import DataProvider, fetch_text

logger = logging.getLogger("statusboard.body")

UNKNOWN = "unknown"


def vo2_trend(current: int, previous: int) -> str:
    if current > previous:
        return "↑"
    if current < previous:
        return "↓"
    return "→"


@dataclass(frozen=True)
class BodyMetrics:
    resilience_level: str = UNKNOWN
    sleep_recovery: float = 0.0
    daytime_recovery: float = 0.0
    stress_contribution: float = 0.0
    stress_summary: str = UNKNOWN
    stress_minutes: int = 0
    recovery_minutes: int = 0
    vo2_current: int = 0
    vo2_previous: int = 0
    vo2_date: str = ""

    @property
    def vo2_trend(self) -> str:
        return vo2_trend(self.vo2_current, self.vo2_previous)

    def to_dict(self) -> dict[str, Any]:
        return {
            "resilienceLevel": self.resilience_level,
            "sleepRecovery": self.sleep_recovery,
            "daytimeRecovery": self.daytime_recovery,
            "stressContribution": self.stress_contribution,
            "stressSummary": self.stress_summary,
            "stressMinutes": self.stress_minutes,
            "recoveryMinutes": self.recovery_minutes,
            "vo2Current": self.vo2_current,
            "vo2Previous": self.vo2_previous,
            "vo2Trend": self.vo2_trend,
            "vo2Date": self.vo2_date,
        }


def unpack(packed: Any, arity: int) -> list[str]:
    """Split a pipe-packed string into exactly ``arity`` trimmed fields."""
    parts = str(packed).split("|") if packed not in (None, "") else []
    parts = [p.strip() for p in parts[:arity]]
    return parts + [""] * (arity - len(parts))


def parse_body_metrics(text: str) -> BodyMetrics:
    data = json.loads(text.strip())
    if not isinstance(data, dict):
        raise ParseMismatch("body stats output is not a JSON object")

    level, sleep_rec, day_rec, stress_contrib = unpack(data.get("resilience"), 4)
    summary, stress_high, recovery_high = unpack(data.get("stress"), 3)
    vo2, vo2_date = unpack(data.get("vo2"), 2)

    return BodyMetrics(
        resilience_level=level or UNKNOWN,
        sleep_recovery=to_float(sleep_rec),
        daytime_recovery=to_float(day_rec),
        stress_contribution=to_float(stress_contrib),
        stress_summary=summary or UNKNOWN,
        stress_minutes=to_int(stress_high),
        recovery_minutes=to_int(recovery_high),
        vo2_current=to_int(vo2),
        vo2_previous=to_int(data.get("prevVo2")),
        vo2_date=vo2_date,
    )


def collect_body_metrics(providers: dict[str, DataProvider]) -> BodyMetrics:
    """Fetch and decode body metrics; the all-defaults record on any failure."""
    logger.info("Collecting Oura body stats...")
    try:
        metrics = parse_body_metrics(fetch_text(providers, "body_stats"))
    except Exception as exc:
        logger.warning("Failed to get Oura stats: %s", exc)
        return BodyMetrics()
    logger.info("Resilience: %s, Stress: %s, VO2: %d %s",
                metrics.resilience_level, metrics.stress_summary,
                metrics.vo2_current, metrics.vo2_trend)
    return metrics
