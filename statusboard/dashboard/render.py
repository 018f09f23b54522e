"""HTML renderers for the managed dashboard fragments.

Every renderer is a pure function of already-parsed records.  Untrusted text
(task titles, agent names, scorecard cells, ...) goes through ``escape_html``
before it reaches the page.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone, tzinfo
from typing import Any

from dateutil import parser as dtparser
from dateutil import tz as dttz

from statusboard.analyzers.metrics import CronSummary, LifeOS
from statusboard.sources.body import BodyMetrics
from statusboard.sources.cron import CronJob
from statusboard.sources.sessions import AgentSummary
from statusboard.sources.system import SystemStatus
from statusboard.sources.tasks import Task, TaskData

logger = logging.getLogger("statusboard.render")

CRON_GRID_LIMIT = 12
ACTIVE_WORK_LIMIT = 4
AGENT_LIMIT = 5
ACTIVITY_LIMIT = 8
ACTIVITY_DETAILS_MAX = 50

AGENT_ICONS = {"main": "🎯", "subagent": "🔧", "cron": "⏰", "slack": "💬"}
NEEDS_ICONS = {"awaiting": "📨", "task": "✅"}

RESILIENCE_COLORS = {"strong": "green", "adequate": "green", "limited": "orange"}
STRESS_COLORS = {"restored": "green", "normal": "orange", "stressful": "red"}

_SCHEDULE_TIME_RE = re.compile(r"(\d+)\s+(\d+)")


@dataclass
class DashboardData:
    """Everything one refresh run knows, in the shape the renderers want."""

    now: datetime
    tz: tzinfo
    crons: CronSummary = field(default_factory=CronSummary)
    tasks: TaskData = field(default_factory=TaskData)
    agents: AgentSummary = field(default_factory=AgentSummary)
    body: BodyMetrics | None = None
    lifeos: LifeOS = field(default_factory=LifeOS)
    system: SystemStatus | None = None
    needs: list[dict[str, Any]] = field(default_factory=list)
    activity: list[dict[str, Any]] = field(default_factory=list)
    rocks_title: str = "🎯 Q1 2026 Rocks"


def get_timezone(name: str | None) -> tzinfo:
    """Resolve an IANA zone name; unknown names fall back to UTC."""
    zone = dttz.gettz(name) if name else None
    if zone is None:
        logger.warning("Unknown timezone %r, using UTC", name)
        return timezone.utc
    return zone


# ── Text helpers ─────────────────────────────────────────────────────────────

def escape_html(value: Any) -> str:
    """Escape ``& < > "`` for element content and attribute values."""
    if value is None or value == "":
        return ""
    return (str(value)
            .replace("&", "&amp;")
            .replace("<", "&lt;")
            .replace(">", "&gt;")
            .replace('"', "&quot;"))


def format_schedule(schedule: str | None) -> str:
    """Short schedule label for the cron grid.

    "in 9h" stays as is, a cron expression "0 7 * * *" becomes "7am",
    anything else is cut to 8 characters, empty becomes "-".
    """
    if not schedule:
        return "-"
    if schedule.startswith("in "):
        return schedule
    m = _SCHEDULE_TIME_RE.search(schedule)
    if m:
        hour = int(m.group(2))
        suffix = "pm" if hour >= 12 else "am"
        hour12 = hour - 12 if hour > 12 else (12 if hour == 0 else hour)
        return f"{hour12}{suffix}"
    return schedule[:8]


def _clock(moment: datetime) -> str:
    hour = moment.hour % 12 or 12
    return f"{hour}:{moment.minute:02d} {'PM' if moment.hour >= 12 else 'AM'}"


def format_updated(now: datetime, zone: tzinfo) -> str:
    """``Oct 16, 2026, 3:04 PM`` in ``zone``."""
    local = now.astimezone(zone)
    return f"{local:%b} {local.day}, {local.year}, {_clock(local)}"


def format_activity_time(timestamp: Any, zone: tzinfo) -> str:
    try:
        moment = dtparser.isoparse(str(timestamp))
    except (ValueError, OverflowError):
        return "unknown"
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return _clock(moment.astimezone(zone))


def _classes(*names: str) -> str:
    return " ".join(n for n in names if n)


def _muted(message: str) -> str:
    return f'          <div style="padding: 12px 0; color: var(--text-muted);">{message}</div>'


# ── System health row ────────────────────────────────────────────────────────

def render_crons_ok(crons: CronSummary) -> str:
    color = "orange" if crons.errors else "green"
    return f'<div class="{_classes("health-value", color)}">{crons.healthy}/{crons.total}</div>'


def render_blocked(crons: CronSummary) -> str:
    color = "red" if crons.errors else ""
    return f'<div class="{_classes("health-value", color)}">{len(crons.errors)}</div>'


# ── Body health ──────────────────────────────────────────────────────────────

def render_resilience(body: BodyMetrics) -> str:
    color = RESILIENCE_COLORS.get(body.resilience_level, "red")
    return (f'<div class="{_classes("health-value", color)}" id="resilience-value">'
            f'{escape_html(body.resilience_level)}</div>')


def render_stress(body: BodyMetrics) -> str:
    color = STRESS_COLORS.get(body.stress_summary, "")
    return (f'<div class="{_classes("health-value", color)}" id="stress-value">'
            f'{escape_html(body.stress_summary)}</div>')


def render_vo2(body: BodyMetrics) -> str:
    if body.vo2_current > 0:
        trend = body.vo2_trend
        color = {"↑": "var(--accent-green)", "↓": "var(--accent-orange)"}.get(trend, "var(--text-muted)")
        display = f'{body.vo2_current} <span style="font-size: 14px; color: {color};">{trend}</span>'
    else:
        display = "N/A"
    return f'<div class="health-value" id="vo2-value">{display}</div>'


# ── Cron grid ────────────────────────────────────────────────────────────────

def _cron_item(job: CronJob) -> str:
    if job.status == "error":
        health, tooltip = "error", "ERROR - Check logs"
    elif job.never_run:
        health, tooltip = "warning", "Never run"
    else:
        health, tooltip = "ok", f"Last: {job.last_run or 'never'}"
    warning = health == "warning"
    schedule = format_schedule(job.next_run or job.schedule)
    last_run = f" ({job.last_run})" if job.last_run and job.last_run != "-" else ""
    return (
        f'            <div class="cron-item" title="{escape_html(tooltip)}" style="{"opacity: 0.7;" if warning else ""}">\n'
        f'              <div class="cron-health {"ok" if warning else health}" '
        f'style="{"background: var(--accent-orange);" if warning else ""}"></div>\n'
        f'              <span class="cron-name">{escape_html(job.name)}</span>\n'
        f'              <span class="cron-schedule">{escape_html(schedule)}{escape_html(last_run)}</span>\n'
        f'            </div>'
    )


def render_cron_grid(jobs: list[CronJob]) -> str:
    items = [_cron_item(job) for job in jobs[:CRON_GRID_LIMIT]]
    return "\n" + "".join(item + "\n" for item in items) + "          "


# ── Work and agents ──────────────────────────────────────────────────────────

def _work_item(title: str, project: str, status_html: str, extra: str = "") -> str:
    return (
        f'          <div class="work-item">\n'
        f'            {status_html}\n'
        f'            <div class="work-info">\n'
        f'              <div class="work-title">{title}</div>\n'
        f'              <div class="work-project">{project}</div>\n'
        f'            </div>\n'
        f'{extra}'
        f'          </div>'
    )


def render_active_work(tasks: list[Task]) -> str:
    if not tasks:
        items = [_muted("No active tasks today")]
    else:
        bar = '            <div class="work-progress"><div class="work-progress-bar" style="width: 50%"></div></div>\n'
        items = [
            _work_item(escape_html(t.title), escape_html(t.area or t.project or "Personal"),
                       '<div class="work-status waiting"></div>', bar)
            for t in tasks[:ACTIVE_WORK_LIMIT]
        ]
    return "\n" + "\n".join(items) + "\n        "


def _agent_rows(agents: AgentSummary) -> list[str]:
    active = agents.active
    if not active:
        return [_muted("No active agents")]
    rows = []
    for session in active[:AGENT_LIMIT]:
        status = "running" if session.is_active else "waiting"
        tokens = f" ({session.token_usage.percent}% ctx)" if session.token_usage else ""
        icon = AGENT_ICONS.get(session.type, "🤖")
        rows.append(_work_item(
            f"{icon} {escape_html(session.name)}{escape_html(tokens)}",
            escape_html(session.age),
            f'<div class="work-status {status}"></div>',
        ))
    return rows


def _activity_rows(entries: list[dict[str, Any]], zone: tzinfo) -> list[str]:
    if not entries:
        return [_muted("No recent activity")]
    rows = []
    for entry in entries[:ACTIVITY_LIMIT]:
        details = str(entry.get("details") or "")
        suffix = f" — {escape_html(details[:ACTIVITY_DETAILS_MAX])}" if details else ""
        rows.append(_work_item(
            escape_html(entry.get("action")),
            escape_html(format_activity_time(entry.get("timestamp"), zone)) + suffix,
            '<div class="work-status" style="background: var(--accent-blue);"></div>',
        ))
    return rows


def render_agents_activity(agents: AgentSummary, activity: list[dict[str, Any]], zone: tzinfo) -> str:
    """The Active Agents card followed by the Activity Log card."""
    agent_card = (
        '<div class="card">\n'
        '          <div class="card-header">\n'
        '            <div class="card-title">🤖 Active Agents</div>\n'
        f'            <span class="badge green">{agents.count}</span>\n'
        '          </div>\n'
        + "\n".join(_agent_rows(agents)) + "\n"
        '        </div>'
    )
    activity_card = (
        '<div class="card">\n'
        '          <div class="card-header">\n'
        '            <div class="card-title">📜 Activity Log</div>\n'
        '          </div>\n'
        + "\n".join(_activity_rows(activity, zone)) + "\n"
        '        </div>'
    )
    return agent_card + "\n\n        " + activity_card


# ── Needs you ────────────────────────────────────────────────────────────────

def _need_item(item: dict[str, Any]) -> str:
    border = "var(--accent-red)" if item.get("priority") == "P1" else "var(--accent-orange)"
    icon = NEEDS_ICONS.get(item.get("type"), "📋")
    origin = item.get("source") or item.get("project") or item.get("type")
    return (
        f'          <div class="need-item" style="border-left-color: {border};">\n'
        f'            <h4>{escape_html(item.get("title"))}</h4>\n'
        f'            <p>{escape_html(item.get("context") or item.get("description") or "")}</p>\n'
        f'            <div class="need-meta">\n'
        f'              <span>{icon} {escape_html(origin)}</span>\n'
        f'              <span>⚡ {escape_html(item.get("priority") or "P2")}</span>\n'
        f'            </div>\n'
        f'          </div>'
    )


def render_needs_you(needs: list[dict[str, Any]]) -> str:
    return (
        '<div class="card needs-you">\n'
        '          <div class="card-header">\n'
        '            <div class="card-title">🔴 NEEDS YOU</div>\n'
        f'            <span class="badge">{len(needs)}</span>\n'
        '          </div>\n'
        + "".join(_need_item(item) + "\n" for item in needs)
        + '        </div>'
    )


# ── Static and status panels ─────────────────────────────────────────────────

QUICK_ACTIONS = (
    ("refresh", "🔄 Refresh Dashboard"),
    ("sessions", "🤖 Check Sessions"),
    ("things", "📋 Sync Things"),
    ("crons", "⏰ View Cron Logs"),
)


def render_quick_actions() -> str:
    buttons = "".join(
        f'            <button class="btn btn-approve" onclick="triggerAction(\'{action}\')" style="min-width: 140px;">\n'
        f'              {label}\n'
        f'            </button>\n'
        for action, label in QUICK_ACTIONS
    )
    return (
        '<div class="card" id="quick-actions" style="grid-column: 1 / -1;">\n'
        '          <div class="card-header">\n'
        '            <div class="card-title">⚡ Quick Actions</div>\n'
        '          </div>\n'
        '          <div style="display: flex; gap: 12px; flex-wrap: wrap;">\n'
        f'{buttons}'
        '          </div>\n'
        '        </div>'
    )


def context_color(percent: int) -> str:
    if percent > 80:
        return "red"
    if percent > 60:
        return "orange"
    return "green"


def _health_item(value: str, label: str, size: int, color: str = "") -> str:
    return (
        '            <div class="health-item">\n'
        f'              <div class="{_classes("health-value", color)}" style="font-size: {size}px;">{value}</div>\n'
        f'              <div class="health-label">{label}</div>\n'
        '            </div>\n'
    )


def render_system_status(system: SystemStatus) -> str:
    percent = system.context_percent or 0
    return (
        '<div class="card" id="system-status">\n'
        '          <div class="card-header">\n'
        '            <div class="card-title">🖥️ System Status</div>\n'
        '          </div>\n'
        '          <div style="display: grid; grid-template-columns: repeat(2, 1fr); gap: 12px;">\n'
        + _health_item(f"v{escape_html(system.agent_version)}", "Agent", 16)
        + _health_item(f"{percent}%", "Main Context", 20, context_color(percent))
        + _health_item(f"{system.memory_file_size_kb}KB", "Memory Files", 18)
        + _health_item(str(system.notes_file_count), "Notes Files", 18)
        + '          </div>\n'
        '        </div>'
    )


# ── Life OS ──────────────────────────────────────────────────────────────────

def render_goal_fill(css_class: str, progress: int) -> str:
    return f'<div class="goal-progress-fill {css_class}" style="width: {progress}%"></div>'


def deadline_badge_class(days: int) -> str:
    """Red (no modifier) inside 30 days, orange inside 45, blue otherwise."""
    if days <= 30:
        return ""
    if days <= 45:
        return "orange"
    return "blue"


def render_rocks(lifeos: LifeOS, title: str) -> str | None:
    if not lifeos.rocks:
        return None
    rows = "\n".join(
        '            <div class="milestone-item">\n'
        f'              <div class="{_classes("milestone-check", "done" if r.done else "")}"></div>\n'
        '              <div class="milestone-info">\n'
        f'                <div class="{_classes("milestone-name", "done" if r.done else "")}">{escape_html(r.description)}</div>\n'
        '              </div>\n'
        '            </div>'
        for r in lifeos.rocks
    )
    days = lifeos.days_until_deadline
    progress = lifeos.rock_progress
    return (
        '<div class="card" id="q1-rocks" style="grid-column: 1 / -1; background: linear-gradient(135deg, #0a1a1a 0%, '
        'var(--bg-secondary) 100%); border-color: var(--accent-purple); border-width: 2px;">\n'
        '          <div class="card-header">\n'
        f'            <div class="card-title" style="color: var(--accent-purple);">{escape_html(title)}</div>\n'
        '            <div style="display: flex; align-items: center; gap: 12px;">\n'
        f'              <span class="{_classes("badge", deadline_badge_class(days))}">{days}d left</span>\n'
        f'              <span class="{_classes("badge", "green" if lifeos.rocks_completed else "")}">'
        f'{lifeos.rocks_completed}/{lifeos.rocks_total}</span>\n'
        '            </div>\n'
        '          </div>\n'
        '          <div class="goal-progress-container" style="margin-bottom: 16px;">\n'
        '            <div class="goal-progress-header">\n'
        '              <span class="goal-progress-label">Overall Progress</span>\n'
        f'              <span class="goal-progress-value">{progress}%</span>\n'
        '            </div>\n'
        '            <div class="goal-progress-bar">\n'
        f'              <div class="goal-progress-fill" style="width: {progress}%; '
        'background: linear-gradient(90deg, var(--accent-purple), var(--accent-blue));"></div>\n'
        '            </div>\n'
        '          </div>\n'
        '          <div style="display: grid; grid-template-columns: 1fr 1fr; gap: 8px;">\n'
        f'{rows}\n'
        '          </div>\n'
        '        </div>'
    )


def render_scorecard(lifeos: LifeOS) -> str | None:
    if not lifeos.scorecard:
        return None
    rows = []
    for metric in lifeos.scorecard:
        actual = metric.actual.strip()
        has_value = bool(actual) and actual != "—"
        color = "var(--accent-green)" if has_value else "var(--text-muted)"
        rows.append(
            '            <div style="display: flex; justify-content: space-between; align-items: center; '
            'padding: 8px 0; border-bottom: 1px solid var(--border);">\n'
            f'              <span style="font-size: 14px;">{escape_html(metric.name)}</span>\n'
            '              <div style="display: flex; align-items: center; gap: 12px;">\n'
            f'                <span style="font-size: 12px; color: var(--text-muted);">Target: {escape_html(metric.target)}</span>\n'
            f'                <span style="font-size: 16px; font-weight: 600; color: {color};">{escape_html(actual or "—")}</span>\n'
            '              </div>\n'
            '            </div>'
        )
    return (
        '<div class="card" id="weekly-scorecard" style="grid-column: 1 / -1;">\n'
        '          <div class="card-header">\n'
        '            <div class="card-title">📊 Weekly Scorecard</div>\n'
        '            <span class="badge blue">This Week</span>\n'
        '          </div>\n'
        '          <div>\n'
        + "\n".join(rows) + "\n"
        '          </div>\n'
        '        </div>'
    )
