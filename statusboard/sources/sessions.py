"""Agent session adapter.

Combines ``clawdbot sessions list --json`` output (``{"sessions": [...]}``)
with the session store's label map (``{key: {"label": ...}}``) into
AgentSession records.
"""

from __future__ import annotations

import json
import logging
import math
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from dateutil import parser as dtparser

from statusboard.common.errors import ParseMismatch
from statusboard.common.numbers import round_half_up
from statusboard.common.providers import DataProvider, fetch_text

logger = logging.getLogger("statusboard.sessions")

UNKNOWN_AGE_MINUTES = 9999
ACTIVE_WITHIN_MINUTES = 30
MAIN_SESSION_KEY = "agent:main:main"

_AGE_RE = re.compile(r"(\d+)\s*(m|h|d)")
_AGE_UNITS = {"m": 1, "h": 60, "d": 60 * 24}


def parse_age(age: str | None) -> int:
    """Convert a relative age string to whole minutes.

    ``"just now"`` -> 0, ``"5m"`` -> 5, ``"2h ago"`` -> 120, ``"1d ago"`` -> 1440.
    Anything unrecognised maps to 9999 ("unknown / very old").
    """
    if not age or not isinstance(age, str):
        return UNKNOWN_AGE_MINUTES
    text = age.strip().lower()
    if text == "just now":
        return 0
    m = _AGE_RE.search(text)
    if not m:
        return UNKNOWN_AGE_MINUTES
    return int(m.group(1)) * _AGE_UNITS[m.group(2)]


def format_age(minutes: int) -> str:
    """Inverse of ``parse_age`` for display: 0 -> "just now", 90 -> "1h ago"."""
    if minutes >= 1440:
        return f"{minutes // 1440}d ago"
    if minutes >= 60:
        return f"{minutes // 60}h ago"
    if minutes >= 1:
        return f"{minutes}m"
    return "just now"


@dataclass(frozen=True)
class TokenUsage:
    used_tokens: int
    context_tokens: int

    @property
    def percent(self) -> int:
        return round_half_up(self.used_tokens / self.context_tokens * 100)

    def to_dict(self) -> dict[str, Any]:
        return {
            "used": f"{round_half_up(self.used_tokens / 1000)}k",
            "total": f"{round_half_up(self.context_tokens / 1000)}k",
            "percent": self.percent,
        }


@dataclass(frozen=True)
class AgentSession:
    key: str
    kind: str
    type: str
    name: str
    age_minutes: int
    model: str | None = None
    token_usage: TokenUsage | None = None

    @property
    def is_active(self) -> bool:
        return self.age_minutes < ACTIVE_WITHIN_MINUTES

    @property
    def age(self) -> str:
        return format_age(self.age_minutes)

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "kind": self.kind,
            "type": self.type,
            "name": self.name,
            "age": self.age,
            "lastActiveAgeMinutes": self.age_minutes,
            "model": self.model,
            "tokenUsage": self.token_usage.to_dict() if self.token_usage else None,
            "isActive": self.is_active,
        }


@dataclass
class AgentSummary:
    sessions: list[AgentSession] = field(default_factory=list)
    # The main session running the refresh is presumed alive when nothing
    # could be read.
    count: int = 1

    @property
    def active(self) -> list[AgentSession]:
        """Sessions worth showing: recently active, plus main and sub-agents."""
        return [s for s in self.sessions if s.is_active or s.type in ("main", "subagent")]

    def main_session(self) -> AgentSession | None:
        return next((s for s in self.sessions if s.key == MAIN_SESSION_KEY), None)


def parse_session_labels(text: str) -> dict[str, str]:
    """Extract ``{key: label}`` from the session store JSON."""
    data = json.loads(text)
    if not isinstance(data, dict):
        raise ParseMismatch("session store is not a JSON object")
    return {
        key: value["label"]
        for key, value in data.items()
        if isinstance(value, dict) and value.get("label")
    }


def _classify(key: str, own_label: str | None, labels: dict[str, str]) -> tuple[str, str]:
    """Return (type, display name) for a session key."""
    label = labels.get(key)
    if ":cron:" in key:
        return "cron", label or key.split(":cron:", 1)[1] or "Cron job"
    if ":subag" in key:
        return "subagent", label or "Sub-agent"
    if key == MAIN_SESSION_KEY:
        return "main", "Main session"
    if ":slack" in key:
        return "slack", label or "Slack session"
    return "unknown", own_label or key


def _updated_at(value: Any) -> datetime | None:
    """Parse ``updatedAt`` given as epoch milliseconds or an ISO string."""
    if value is None or value == "":
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    if isinstance(value, str):
        if value.strip().isdigit():
            return datetime.fromtimestamp(int(value) / 1000, tz=timezone.utc)
        parsed = dtparser.isoparse(value)
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed
    return None


def _age_minutes(raw: dict[str, Any], now: datetime) -> int:
    try:
        updated = _updated_at(raw.get("updatedAt"))
    except (ValueError, OverflowError, OSError):
        updated = None
    if updated is not None:
        return max(0, math.floor((now - updated).total_seconds() / 60))
    if raw.get("age"):
        return parse_age(str(raw["age"]))
    return 0


def _token_usage(raw: dict[str, Any]) -> TokenUsage | None:
    used = raw.get("totalTokens")
    total = raw.get("contextTokens")
    if not isinstance(used, (int, float)) or not isinstance(total, (int, float)):
        return None
    if used <= 0 or total <= 0:
        return None
    return TokenUsage(int(used), int(total))


def parse_sessions(text: str, labels: dict[str, str] | None = None, *,
                   now: datetime | None = None) -> list[AgentSession]:
    """Parse sessions JSON into AgentSession records."""
    now = now or datetime.now(timezone.utc)
    labels = labels or {}
    data = json.loads(text)
    if not isinstance(data, dict):
        raise ParseMismatch("sessions output is not a JSON object")

    sessions: list[AgentSession] = []
    for raw in data.get("sessions") or []:
        if not isinstance(raw, dict):
            continue
        key = str(raw.get("key") or "")
        agent_type, name = _classify(key, raw.get("label"), labels)
        sessions.append(AgentSession(
            key=key,
            kind=str(raw.get("kind") or "unknown"),
            type=agent_type,
            name=name,
            age_minutes=_age_minutes(raw, now),
            model=raw.get("model"),
            token_usage=_token_usage(raw),
        ))
    return sessions


def _load_labels(providers: dict[str, DataProvider]) -> dict[str, str]:
    try:
        return parse_session_labels(fetch_text(providers, "session_labels"))
    except Exception as exc:
        logger.debug("No session labels: %s", exc)
        return {}


def collect_agents(providers: dict[str, DataProvider], *, now: datetime | None = None) -> AgentSummary:
    """Fetch sessions and labels into an AgentSummary. Never raises."""
    logger.info("Checking active agents/sessions...")
    try:
        sessions = parse_sessions(fetch_text(providers, "sessions"), _load_labels(providers), now=now)
    except Exception as exc:
        logger.warning("Failed to get sessions: %s", exc)
        return AgentSummary()
    summary = AgentSummary(sessions=sessions, count=sum(1 for s in sessions if s.is_active))
    logger.info("Found %d sessions, %d active", len(sessions), summary.count)
    return summary
