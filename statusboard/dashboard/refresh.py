"""Dashboard refresh: collect every source, patch index.html, update state.json.

One run, in order:

1. collect all sources through the provider registry (each isolated);
2. derive metrics (cron health, goal progress, needs-attention list);
3. load the snapshot and merge the fresh fields in memory;
4. parse the dashboard document and apply the anchor rules;
5. unless ``--dry-run``: write the document, the snapshot and one activity
   entry, each independently;
6. print a summary.

Usage:
    python -m statusboard.dashboard.refresh [--dry-run] [--config PATH]
"""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from statusboard.analyzers.metrics import (
    CronSummary,
    LifeOS,
    build_lifeos,
    build_needs_items,
    merge_needs,
    summarize_crons,
)
from statusboard.common.config import load_config, resolve_path, setup_logging
from statusboard.common.errors import PersistenceFailure
from statusboard.common.providers import DataProvider, build_providers
from statusboard.common.state import save_text
from statusboard.dashboard.document import Document
from statusboard.dashboard.patcher import PatchReport, apply_rules
from statusboard.dashboard.render import DashboardData, get_timezone
from statusboard.dashboard.rules import build_rules
from statusboard.sources.approvals import ApprovalItem, collect_approvals
from statusboard.sources.awaiting import AwaitingItem, collect_awaiting
from statusboard.sources.body import BodyMetrics, collect_body_metrics
from statusboard.sources.cron import collect_crons
from statusboard.sources.daily_logs import DailyLog, collect_daily_logs
from statusboard.sources.lifeos import collect_lifeos
from statusboard.sources.sessions import AgentSummary, collect_agents
from statusboard.sources.system import SystemStatus, collect_system_status
from statusboard.sources.tasks import TaskData, collect_tasks
from statusboard.store.activity_log import (
    MAX_ACTIVITY_ITEMS,
    ActivityEntry,
    load_activity_log,
    log_activity,
)
from statusboard.store.snapshot import load_snapshot, merge_snapshot, save_snapshot

logger = logging.getLogger("statusboard.refresh")

ACTIVE_WORK_SNAPSHOT_LIMIT = 5
PRIOR_NEEDS_KEY = "needsAttention"


@dataclass
class Collected:
    """Adapter output for one run, before any derivation."""

    crons: CronSummary = field(default_factory=CronSummary)
    tasks: TaskData = field(default_factory=TaskData)
    agents: AgentSummary = field(default_factory=AgentSummary)
    body: BodyMetrics = field(default_factory=BodyMetrics)
    lifeos: LifeOS = field(default_factory=LifeOS)
    awaiting: list[AwaitingItem] = field(default_factory=list)
    approvals: list[ApprovalItem] = field(default_factory=list)
    system: SystemStatus = field(default_factory=SystemStatus)
    logs: list[DailyLog] = field(default_factory=list)
    activity: list[dict[str, Any]] = field(default_factory=list)


def collect_all(providers: dict[str, DataProvider], cfg: dict[str, Any], now: datetime) -> Collected:
    """Run every adapter. None of them raises; failures leave their defaults."""
    agents = collect_agents(providers, now=now)
    local_today = now.astimezone(get_timezone(cfg.get("timezone"))).date()
    return Collected(
        crons=summarize_crons(collect_crons(providers)),
        tasks=collect_tasks(providers),
        agents=agents,
        body=collect_body_metrics(providers),
        lifeos=build_lifeos(collect_lifeos(providers, cfg), cfg, now),
        awaiting=collect_awaiting(providers),
        approvals=collect_approvals(providers),
        system=collect_system_status(
            providers,
            resolve_path(cfg, "memory_dir"),
            resolve_path(cfg, "notes_dir"),
            agents,
        ),
        logs=collect_daily_logs(resolve_path(cfg, "memory_dir"), local_today),
        activity=load_activity_log(resolve_path(cfg, "activity_log")),
    )


def build_snapshot_fields(
    collected: Collected,
    needs_items: list[dict[str, Any]],
    prior: dict[str, Any],
    now: datetime,
) -> dict[str, Any]:
    """The snapshot keys this updater owns, freshly computed."""
    crons = collected.crons
    tasks = collected.tasks.tasks
    agents = collected.agents
    stats = prior.get("stats") if isinstance(prior.get("stats"), dict) else {}

    return {
        "lastUpdated": now.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
        "health": {
            "crons": {"healthy": crons.healthy, "total": crons.total, "status": crons.status},
            "agents": {"active": agents.count, "idle": 0, "status": "ok"},
            "active": len(tasks),
            "blocked": len(crons.errors),
        },
        "crons": [
            {
                "name": job.name,
                "schedule": job.next_run or job.schedule,
                "health": "error" if job.status == "error" else "ok",
                "lastRun": job.last_run,
                "error": "See cron logs" if job.status == "error" else None,
            }
            for job in crons.jobs
        ],
        "agents": [
            {
                "key": s.key,
                "name": s.name,
                "type": s.type,
                "age": s.age,
                "tokenUsage": s.token_usage.to_dict() if s.token_usage else None,
                "isActive": s.is_active,
            }
            for s in agents.active
        ],
        "activeWork": [
            {
                "id": t.id,
                "title": t.title,
                "status": "waiting",
                "project": t.area or t.project or "Personal",
                "progress": 50,
            }
            for t in tasks[:ACTIVE_WORK_SNAPSHOT_LIMIT]
        ],
        "stats": {**stats, "cronJobsTotal": crons.total},
        "lifeOS": collected.lifeos.to_dict(),
        "taskCounts": collected.tasks.counts.to_dict(),
        "systemStatus": collected.system.to_dict(),
        "body": collected.body.to_dict(),
        "needsYouItems": needs_items,
        "awaitingResponses": [a.to_dict() for a in collected.awaiting],
        "approvals": [a.to_dict() for a in collected.approvals],
        "recentLogs": [log.to_dict() for log in collected.logs],
    }


def build_dashboard_data(
    collected: Collected,
    needs: list[dict[str, Any]],
    cfg: dict[str, Any],
    now: datetime,
) -> DashboardData:
    return DashboardData(
        now=now,
        tz=get_timezone(cfg.get("timezone")),
        crons=collected.crons,
        tasks=collected.tasks,
        agents=collected.agents,
        # The all-defaults record means the body stats could not be read.
        body=collected.body if collected.body != BodyMetrics() else None,
        lifeos=collected.lifeos,
        system=collected.system,
        needs=needs,
        activity=collected.activity,
        rocks_title=cfg.get("lifeos", {}).get("rocks_title", "🎯 Q1 2026 Rocks"),
    )


def patch_document(path: Path, data: DashboardData) -> tuple[str | None, PatchReport]:
    """Return (patched text, report); text is None when the document is missing or unreadable."""
    if not path.is_file():
        logger.warning("Dashboard document not found at %s, skipping HTML update", path)
        return None, PatchReport()
    logger.info("Updating dashboard HTML...")
    try:
        # Line endings and stray non-UTF-8 bytes round-trip unchanged through save_text.
        with open(path, encoding="utf-8", errors="surrogateescape", newline="") as fh:
            text = fh.read()
    except OSError as exc:
        logger.warning("Could not read dashboard document %s, skipping HTML update: %s", path, exc)
        return None, PatchReport()
    document = Document.parse(text)
    report = apply_rules(document, build_rules(), data)
    return document.serialize(), report


def _write(label: str, action, *args: Any) -> bool:
    """Run one persistence step; a failure is logged and reported as False."""
    try:
        action(*args)
    except PersistenceFailure as exc:
        logger.error("Failed to write %s: %s", label, exc)
        return False
    return True


def print_summary(collected: Collected, needs_items: list[dict[str, Any]], report: PatchReport) -> None:
    crons = collected.crons
    counts = collected.tasks.counts
    lifeos = collected.lifeos
    system = collected.system
    context = system.context_percent if system.context_percent is not None else "?"

    print()
    print("Summary:")
    print(f"  - Crons: {crons.healthy}/{crons.total} healthy")
    print(f"  - Tasks: {len(collected.tasks.tasks)} active (Today: {counts.today}, Inbox: {counts.inbox})")
    print(f"  - Agents: {collected.agents.count} running")
    print(f"  - Rocks: {lifeos.rocks_completed}/{lifeos.rocks_total} done ({lifeos.days_until_deadline}d left)")
    print(f"  - Needs You: {len(needs_items)} items")
    print(f"  - System: v{system.agent_version}, {context}% context")
    print(f"  - Errors: {len(crons.errors)}")
    if crons.errors:
        print(f"  - Failed crons: {', '.join(job.name for job in crons.errors)}")
    if report.skipped or report.failed:
        print(f"  - Rules skipped: {', '.join(report.skipped + report.failed)}")


def run(
    cfg: dict[str, Any],
    *,
    dry_run: bool = False,
    providers: dict[str, DataProvider] | None = None,
    now: datetime | None = None,
) -> dict[str, Any]:
    """One full refresh. Never raises on source, rule or write failures."""
    now = now or datetime.now(timezone.utc)
    providers = providers if providers is not None else build_providers(cfg)
    if dry_run:
        logger.info("DRY RUN: no files will be modified")

    collected = collect_all(providers, cfg, now)

    snapshot_path = resolve_path(cfg, "snapshot")
    prior = load_snapshot(snapshot_path)
    needs_items = build_needs_items(collected.awaiting, collected.tasks.priority)
    needs = merge_needs(prior.get(PRIOR_NEEDS_KEY), needs_items)
    snapshot = merge_snapshot(prior, build_snapshot_fields(collected, needs_items, prior, now))

    document_path = resolve_path(cfg, "document")
    html, report = patch_document(document_path, build_dashboard_data(collected, needs, cfg, now))

    result: dict[str, Any] = {
        "ok": True,
        "dry_run": dry_run,
        "document_written": False,
        "snapshot_written": False,
        "activity_written": False,
        "patch": report.to_dict(),
    }

    if dry_run:
        logger.info("[DRY RUN] Would update %s, %s and %s",
                    document_path.name, snapshot_path.name, resolve_path(cfg, "activity_log").name)
    else:
        if html is not None:
            result["document_written"] = _write("document", save_text, document_path, html)
            if result["document_written"]:
                logger.info("%s updated", document_path.name)
        result["snapshot_written"] = _write("snapshot", save_snapshot, snapshot_path, snapshot)

        crons = collected.crons
        entry = ActivityEntry.now(
            "Dashboard updated",
            f"{crons.healthy}/{crons.total} crons OK, {len(collected.tasks.tasks)} tasks, "
            f"{collected.agents.count} agents",
            "system",
            at=now,
        )
        max_items = int(cfg.get("limits", {}).get("activity_items", MAX_ACTIVITY_ITEMS))
        result["activity_written"] = _write(
            "activity log", log_activity, resolve_path(cfg, "activity_log"), entry, max_items,
        )

    print_summary(collected, needs_items, report)
    return result


def main() -> None:
    parser = argparse.ArgumentParser(description="Statusboard dashboard refresh")
    parser.add_argument("--dry-run", action="store_true", help="Collect and patch but write nothing")
    parser.add_argument("--config", help="Path to config.yaml")
    args = parser.parse_args()

    cfg = load_config(args.config)
    setup_logging(cfg)

    result = run(cfg, dry_run=args.dry_run)
    if not result.get("ok"):
        sys.exit(1)


if __name__ == "__main__":
    main()
