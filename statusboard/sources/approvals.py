"""Approval queue adapter (dashboard/approval-queue.json, ``pendingApproval`` array)."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

from statusboard.common.errors import ParseMismatch
from statusboard.common.providers import DataProvider, fetch_text

logger = logging.getLogger("statusboard.approvals")


@dataclass(frozen=True)
class ApprovalItem:
    id: str
    title: str
    description: str = ""
    added_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "type": "approval",
            "addedAt": self.added_at,
        }


def parse_approval_queue(text: str) -> list[ApprovalItem]:
    data = json.loads(text)
    if not isinstance(data, dict):
        raise ParseMismatch("approval queue is not a JSON object")
    items: list[ApprovalItem] = []
    for raw in data.get("pendingApproval") or []:
        if not isinstance(raw, dict):
            continue
        items.append(ApprovalItem(
            id=str(raw.get("id") or ""),
            title=str(raw.get("title") or ""),
            description=str(raw.get("description") or ""),
            added_at=raw.get("addedAt"),
        ))
    return items


def collect_approvals(providers: dict[str, DataProvider]) -> list[ApprovalItem]:
    logger.info("Collecting approval queue items...")
    try:
        items = parse_approval_queue(fetch_text(providers, "approval_queue"))
    except Exception as exc:
        logger.warning("Failed to read approval queue: %s", exc)
        return []
    logger.info("Found %d pending approvals", len(items))
    return items
