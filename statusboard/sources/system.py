"""System status: agent version, main-session context usage, memory/notes stats."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from statusboard.common.numbers import round_half_up
from statusboard.common.providers import DataProvider, fetch_text
from statusboard.sources.sessions import AgentSummary, TokenUsage

logger = logging.getLogger("statusboard.system")

_PROGRAM_PREFIX_RE = re.compile(r"^[A-Za-z][\w.-]*\s+(?=v?\d)")


@dataclass(frozen=True)
class SystemStatus:
    agent_version: str = "unknown"
    main_context: TokenUsage | None = None
    memory_file_size_kb: int = 0
    daily_logs_count: int = 0
    notes_file_count: int = 0

    @property
    def context_percent(self) -> int | None:
        return self.main_context.percent if self.main_context else None

    def to_dict(self) -> dict[str, Any]:
        return {
            "agentVersion": self.agent_version,
            "mainSessionContext": {
                "used": self.main_context.used_tokens,
                "total": self.main_context.context_tokens,
                "percent": self.main_context.percent,
            } if self.main_context else None,
            "memoryFileSize": self.memory_file_size_kb,
            "dailyLogsCount": self.daily_logs_count,
            "notesFileCount": self.notes_file_count,
        }


def parse_version(text: str) -> str:
    """``"clawdbot 2026.1.24"`` -> ``"2026.1.24"``; blank output -> ``"unknown"``."""
    first = text.strip().splitlines()[0].strip() if text.strip() else ""
    return _PROGRAM_PREFIX_RE.sub("", first) or "unknown"


def memory_stats(memory_dir: Path) -> tuple[int, int]:
    """(total size in KB, file count) of the ``*.md`` daily logs in ``memory_dir``."""
    files = [p for p in memory_dir.glob("*.md") if p.is_file()]
    total = sum(p.stat().st_size for p in files)
    return round_half_up(total / 1024), len(files)


def count_notes(notes_dir: Path) -> int:
    return sum(1 for p in notes_dir.rglob("*.md") if p.is_file())


def collect_system_status(
    providers: dict[str, DataProvider],
    memory_dir: Path,
    notes_dir: Path,
    agents: AgentSummary | None = None,
) -> SystemStatus:
    """Each probe fails on its own; never raises."""
    logger.info("Collecting system status...")
    version = "unknown"
    try:
        version = parse_version(fetch_text(providers, "agent_version"))
    except Exception as exc:
        logger.debug("Agent version unavailable: %s", exc)

    main = agents.main_session() if agents else None
    main_context = main.token_usage if main else None

    size_kb, logs_count = 0, 0
    try:
        size_kb, logs_count = memory_stats(memory_dir)
    except OSError as exc:
        logger.debug("Memory dir unreadable: %s", exc)

    notes_count = 0
    try:
        notes_count = count_notes(notes_dir)
    except OSError as exc:
        logger.debug("Notes dir unreadable: %s", exc)

    status = SystemStatus(
        agent_version=version,
        main_context=main_context,
        memory_file_size_kb=size_kb,
        daily_logs_count=logs_count,
        notes_file_count=notes_count,
    )
    logger.info("Agent: v%s, Context: %s%%, Memory: %dKB",
                version, status.context_percent if status.context_percent is not None else "?", size_kb)
    return status
