"""Snapshot store: the aggregate ``state.json`` read by the dashboard server.

Merge policy: every key this updater owns is replaced wholesale with the
freshly computed value; any other top-level key (hand-maintained lists such as
``needsAttention``, data written by other tools) is carried over untouched.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from statusboard.common.state import load_json, save_json

logger = logging.getLogger("statusboard.snapshot")

KNOWN_KEYS: tuple[str, ...] = (
    "lastUpdated",
    "health",
    "crons",
    "agents",
    "activeWork",
    "stats",
    "lifeOS",
    "taskCounts",
    "systemStatus",
    "body",
    "needsYouItems",
    "awaitingResponses",
    "approvals",
    "recentLogs",
)


def load_snapshot(path: Path) -> dict[str, Any]:
    """Return the persisted snapshot, or ``{}`` if it is missing, corrupt or not an object."""
    data = load_json(path, {})
    if not isinstance(data, dict):
        logger.warning("Snapshot %s is not a JSON object, starting fresh", path)
        return {}
    return data


def merge_snapshot(prior: dict[str, Any], partial: dict[str, Any]) -> dict[str, Any]:
    """Overwrite known keys present in ``partial``; leave everything else as it was."""
    merged = dict(prior)
    for key in KNOWN_KEYS:
        if key in partial:
            merged[key] = partial[key]
    ignored = set(partial) - set(KNOWN_KEYS)
    if ignored:
        logger.debug("Ignoring unknown snapshot keys: %s", sorted(ignored))
    return merged


def save_snapshot(path: Path, snapshot: dict[str, Any], *, dry_run: bool = False) -> bool:
    """Persist the merged snapshot. Returns False (and writes nothing) in dry-run mode."""
    if dry_run:
        logger.info("[DRY RUN] Would update %s", path.name)
        return False
    save_json(path, snapshot)
    logger.info("%s updated", path.name)
    return True


def merge_and_save(path: Path, prior: dict[str, Any], partial: dict[str, Any],
                   *, dry_run: bool = False) -> dict[str, Any]:
    """Merge ``partial`` over ``prior`` and persist it; returns the merged snapshot either way."""
    merged = merge_snapshot(prior, partial)
    save_snapshot(path, merged, dry_run=dry_run)
    return merged
