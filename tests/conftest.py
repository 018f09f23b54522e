"""Shared fixtures: fake providers, canned source output, a temporary workspace."""

from __future__ import annotations

import json
import textwrap
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from statusboard.common.config import load_config
from statusboard.common.providers import ProviderResult

REPO_DIR = Path(__file__).resolve().parent.parent
FIXTURES_DIR = Path(__file__).resolve().parent / "fixtures"

# 3:04 PM in Los Angeles.
NOW = datetime(2026, 10, 16, 22, 4, tzinfo=timezone.utc)


class FakeProvider:
    """Deterministic stand-in for CommandProvider/FileProvider."""

    def __init__(self, name: str, text: str = "", error: str | None = None) -> None:
        self.name = name
        self.text = text
        self.error = error
        self.calls = 0

    def fetch(self) -> ProviderResult:
        self.calls += 1
        if self.error is not None:
            return ProviderResult(self.name, error=self.error)
        return ProviderResult(self.name, text=self.text)


def cron_row(job_id: str, name: str, schedule: str, next_run: str, last_run: str, status: str) -> str:
    """One line of ``cron list`` output at the scheduler's fixed column offsets."""
    return f"{job_id:<37}{name:<24}{schedule:<33}{next_run:<11}{last_run:<11}{status:<10}"


CRON_HEADER = cron_row("ID", "Name", "Schedule", "Next", "Last", "Status")

CRON_TABLE = "\n".join([
    CRON_HEADER,
    cron_row("0b6c1f7e-0000-4000-8000-000000000001", "Morning brief", "cron 0 7 * * *", "in 9h", "15h ago", "ok"),
    cron_row("0b6c1f7e-0000-4000-8000-000000000002", "Inbox sweep", "cron 30 14 * * *", "in 2h", "22h ago", "error"),
    cron_row("0b6c1f7e-0000-4000-8000-000000000003", "Weekly review", "cron 0 18 * * 0", "in 3d", "-", ""),
]) + "\n"

TASKS_TODAY = (
    "uuid\ttitle\tproject\tarea\ttags\tstatus\n"
    "T1\tShip invoice batch\tFinance\n"
    "T2\tCall the bank\t\tPersonal Admin\n"
    "T3\tDraft talk outline\tSpeaking\tCareer\twork\tincomplete\n"
    "T4\tWater the plants\n"
)

TASKS_INBOX = "uuid\ttitle\nI1\tRandom idea\nI2\tRead article\n"


def _epoch_ms(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


SESSIONS_JSON = json.dumps({
    "sessions": [
        {"key": "agent:main:main", "kind": "direct", "updatedAt": _epoch_ms(NOW - timedelta(minutes=2)),
         "model": "opus", "totalTokens": 50000, "contextTokens": 200000},
        {"key": "agent:main:cron:nightly-backup", "kind": "direct", "age": "2h ago"},
        {"key": "agent:main:subagent:abc", "kind": "spawn",
         "updatedAt": _epoch_ms(NOW - timedelta(minutes=45))},
        {"key": "agent:main:slack:C123", "kind": "group",
         "updatedAt": (NOW - timedelta(minutes=10)).isoformat()},
    ]
})

SESSION_LABELS = json.dumps({
    "agent:main:subagent:abc": {"label": "Research helper"},
    "agent:main:cron:nightly-backup": {"label": "Nightly backup"},
})

BODY_JSON = json.dumps({
    "resilience": "adequate|52.2|49.2|40.6",
    "stress": "stressful|15300|5400",
    "vo2": "37|2026-10-15",
    "prevVo2": "36",
})

LIFE_VTO = textwrap.dedent("""\
    # Life VTO

    ### 6. ROCKS
    | # | Rock | Owner | Done |
    |---|------|-------|------|
    | 1 | Land 1 new consulting client | Me | ✅ |
    | 2 | Launch website | Me | ☐ |
    | 3 | Post on LinkedIn weekly | Me | yes |
    | 4 | Cut to 175 | Me | ☐ |
    | 5 | Book a speaking gig | Me | ☐ |
    | 6 | Go on 4 dates | Me | done |
    | 7 | Reach out to 10 colleagues | Me | ☐ |
    | 8 | Start the guild | Me |  |

    ### 7. WEEKLY SCORECARD
    | Metric | Target | Actual |
    |--------|--------|--------|
    | Outreach msgs | 10 | 7 |
    | Workouts | 4 | |

    ### 8. ISSUES
    - none
""")

AWAITING_MD = textwrap.dedent("""\
    # Awaiting Responses

    ## Active

    - [ ] [2026-10-14 09:30] [Slack] Asked Dana for the signed SOW
      - Where to check: #deals channel
      - **Checked Oct 15 AM**: no reply yet, pinged again
    - [ ] [2026-10-15 16:00] [Email] Invoice question to accounting

    ## Closed

    - [x] [2026-10-01 10:00] [Email] Old thing
""")

APPROVAL_QUEUE = json.dumps({
    "pendingApproval": [
        {"id": "a1", "title": "Send proposal", "description": "To Acme", "addedAt": "2026-10-15T10:00:00Z"},
        "not an item",
    ]
})


def make_providers(**overrides: FakeProvider) -> dict[str, FakeProvider]:
    providers = {
        "cron": FakeProvider("cron", CRON_TABLE),
        "tasks_today": FakeProvider("tasks_today", TASKS_TODAY),
        "tasks_inbox": FakeProvider("tasks_inbox", TASKS_INBOX),
        "sessions": FakeProvider("sessions", SESSIONS_JSON),
        "session_labels": FakeProvider("session_labels", SESSION_LABELS),
        "agent_version": FakeProvider("agent_version", "clawdbot 2026.1.24\n"),
        "body_stats": FakeProvider("body_stats", BODY_JSON),
        "life_vto": FakeProvider("life_vto", LIFE_VTO),
        "awaiting_responses": FakeProvider("awaiting_responses", AWAITING_MD),
        "approval_queue": FakeProvider("approval_queue", APPROVAL_QUEUE),
    }
    providers.update(overrides)
    return providers


def failing_providers() -> dict[str, FakeProvider]:
    """Every source fails the way a missing binary or file would."""
    return {name: FakeProvider(name, error="unavailable") for name in make_providers()}


@pytest.fixture()
def sample_html() -> str:
    return (FIXTURES_DIR / "index.html").read_text(encoding="utf-8")


@pytest.fixture()
def providers() -> dict[str, FakeProvider]:
    return make_providers()


@pytest.fixture()
def workspace(tmp_path: Path, sample_html: str) -> Path:
    ws = tmp_path / "workspace"
    (ws / "dashboard").mkdir(parents=True)
    (ws / "dashboard" / "index.html").write_text(sample_html, encoding="utf-8")
    (ws / "memory").mkdir()
    (ws / "memory" / "2026-10-16.md").write_text(
        "# Thursday Oct 16\n\n## Morning\n- 9:15 AM: Reviewed inbox\n\n## Shipped the invoice batch\n",
        encoding="utf-8",
    )
    (ws / "notes" / "areas").mkdir(parents=True)
    (ws / "notes" / "areas" / "ideas.md").write_text("# Ideas\n", encoding="utf-8")
    return ws


@pytest.fixture()
def cfg(tmp_path: Path, workspace: Path) -> dict:
    config_file = tmp_path / "config.yaml"
    config_file.write_text(textwrap.dedent(f"""\
        workspace: {workspace}
        log_dir: {tmp_path}/logs
        timezone: America/Los_Angeles
        files:
          session_labels: {tmp_path}/sessions.json
    """), encoding="utf-8")
    return load_config(config_file)
