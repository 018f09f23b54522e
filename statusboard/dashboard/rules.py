"""The dashboard's anchor rules, in application order.

Locate patterns describe the hand-authored page.  Fragment spans are always
whole elements or element content, never part of a tag, so the markers can
only ever land where an HTML comment is legal.
"""

from __future__ import annotations

import re

from statusboard.dashboard.patcher import AnchorRule
from statusboard.dashboard.render import (
    format_updated,
    render_active_work,
    render_agents_activity,
    render_blocked,
    render_cron_grid,
    render_crons_ok,
    render_goal_fill,
    render_needs_you,
    render_quick_actions,
    render_resilience,
    render_rocks,
    render_scorecard,
    render_stress,
    render_system_status,
    render_vo2,
)

# Goal category -> CSS class of its progress bar.
GOAL_BARS: tuple[tuple[str, str], ...] = (
    ("income", "income"),
    ("body", "body"),
    ("relationship", "love"),
    ("freedom", "freedom"),
    ("lifeQuality", "joy"),
)

# Fragment markers that may sit between an element and a neighbour it is anchored to.
_MARKS = r"(?:\s*<!-- /?sb:[\w.-]+ -->)*"

_CARD = r'<div class="card">\s*<div class="card-header">\s*<div class="card-title">'
_CRON_CARD = r'<div class="card" style="grid-column: 1 / -1;">\s*<div class="card-header">\s*<div class="card-title">🔄 Cron Jobs'


def _health_count(label: str) -> re.Pattern[str]:
    return re.compile(rf'<div class="health-value[^"]*">(?P<body>\d+)</div>\s*<div class="health-label">{label}')


def _goal_rules(css_class: str, category: str) -> list[AnchorRule]:
    value = re.compile(
        r'<span class="goal-progress-value">(?P<body>\d+)%</span>'
        rf'(?=(?:(?!goal-progress-value)[\s\S])*?goal-progress-fill {css_class}")'
    )
    fill = re.compile(rf'<div class="goal-progress-fill {css_class}" style="width: \d+%"></div>')
    return [
        AnchorRule(f"goal-{category}-value", value, lambda d: str(d.lifeos.progress(category))),
        AnchorRule(f"goal-{category}-fill", fill,
                   lambda d: render_goal_fill(css_class, d.lifeos.progress(category))),
    ]


def build_rules() -> list[AnchorRule]:
    rules = [
        AnchorRule("updated-at", re.compile(r"Updated: [^<]+"),
                   lambda d: f"Updated: {format_updated(d.now, d.tz)}"),
        AnchorRule("crons-ok",
                   re.compile(r'<div class="health-value[^"]*">\d+/\d+</div>(?=\s*<div class="health-label">Crons OK)'),
                   lambda d: render_crons_ok(d.crons)),
        AnchorRule("agents-count", _health_count("Agents"), lambda d: str(d.agents.count)),
        AnchorRule("tasks-count", _health_count("Tasks"), lambda d: str(len(d.tasks.tasks))),
        AnchorRule("blocked-count",
                   re.compile(r'<div class="health-value[^"]*">\d+</div>(?=\s*<div class="health-label">Blocked)'),
                   lambda d: render_blocked(d.crons)),
        AnchorRule("resilience",
                   re.compile(r'<div class="health-value[^"]*" id="resilience-value">[^<]*</div>'),
                   lambda d: render_resilience(d.body) if d.body else None),
        AnchorRule("stress",
                   re.compile(r'<div class="health-value[^"]*" id="stress-value">[^<]*</div>'),
                   lambda d: render_stress(d.body) if d.body else None),
        AnchorRule("vo2",
                   re.compile(r'<div class="health-value[^"]*" id="vo2-value">[\s\S]*?</div>'),
                   lambda d: render_vo2(d.body) if d.body else None),
        AnchorRule("needs-badge",
                   re.compile(r'<div class="card-title">🔴 NEEDS YOU</div>\s*<span class="badge">(?P<body>\d+)</span>'),
                   lambda d: str(len(d.needs)),
                   superseded_by="needs-you"),
        AnchorRule("cron-badge",
                   re.compile(r'<div class="card-title">🔄 Cron Jobs</div>\s*<span class="badge[^"]*">(?P<body>\d+/\d+)</span>'),
                   lambda d: f"{d.crons.healthy}/{d.crons.total}"),
        AnchorRule("cron-grid",
                   re.compile(r'<div class="cron-grid">(?P<body>[\s\S]*?)</div>'
                              r'(?=\s*</div>\s*</div>\s*</div>\s*<!-- LIFE OS VIEW -->)'),
                   lambda d: render_cron_grid(d.crons.jobs)),
        AnchorRule("active-work",
                   re.compile(r'<div class="card-title">🏃 Active Work</div>\s*</div>(?P<body>[\s\S]*?)'
                              rf'(?=</div>\s*{_CARD}⏰ Coming Up)'),
                   lambda d: render_active_work(d.tasks.tasks)),
        AnchorRule("agents-activity",
                   re.compile(rf'{_CARD}🤖 Active Agents[\s\S]*?📜 Activity Log[\s\S]*?</div>(?=\s*{_CRON_CARD})'),
                   lambda d: render_agents_activity(d.agents, d.activity, d.tz),
                   insert_anchor=re.compile(_CRON_CARD)),
        AnchorRule("needs-you",
                   re.compile(r'<div class="card needs-you">[\s\S]*?</div>'
                              rf'(?={_MARKS}\s*<div class="card" id="approval-queue")'),
                   lambda d: render_needs_you(d.needs)),
        AnchorRule("quick-actions",
                   re.compile(rf'<div class="card" id="quick-actions"[\s\S]*?</div>(?=\s*{_CARD}📊 System Health)'),
                   lambda d: render_quick_actions(),
                   insert_anchor=re.compile(rf"{_CARD}📊 System Health")),
        AnchorRule("system-status",
                   re.compile(rf'<div class="card" id="system-status">[\s\S]*?</div>(?=\s*{_CARD}🏃 Active Work)'),
                   lambda d: render_system_status(d.system) if d.system else None,
                   insert_anchor=re.compile(rf"{_CARD}🏃 Active Work")),
    ]
    for category, css_class in GOAL_BARS:
        rules.extend(_goal_rules(css_class, category))
    rules.extend([
        AnchorRule("q1-rocks",
                   re.compile(r'<div class="card" id="q1-rocks"[\s\S]*?</div>'
                              rf'(?={_MARKS}\s*(?:<div class="card" id="weekly-scorecard"'
                              r'|</div>\s*</div>\s*<!-- LIFE OS VIEW))'),
                   lambda d: render_rocks(d.lifeos, d.rocks_title),
                   insert_anchor=re.compile(r"<!-- goals-grid end -->"),
                   insert_position="after"),
        AnchorRule("weekly-scorecard",
                   re.compile(r'<div class="card" id="weekly-scorecard"[\s\S]*?</div>'
                              rf'(?={_MARKS}\s*(?:</div>\s*</div>\s*<!-- LIFE OS VIEW end -->|<footer))'),
                   lambda d: render_scorecard(d.lifeos)),
    ])
    return rules


def rule_names() -> list[str]:
    return [rule.name for rule in build_rules()]
