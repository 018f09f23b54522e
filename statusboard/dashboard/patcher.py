"""Apply anchor rules to a parsed dashboard document.

For each rule, in order:

1. a managed fragment named after the rule exists -> replace its body;
2. the locate pattern matches outside any managed fragment -> wrap that span
   (absorbing managed fragments that lie wholly inside it);
3. the insertion anchor matches -> insert a new fragment next to it;
4. otherwise the rule is skipped, or reported as superseded when the rule
   that absorbs its region already owns a fragment.

A rule whose renderer returns None has nothing to say this run and is skipped
before any of the above.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable

from statusboard.common.errors import AnchorNotFound
from statusboard.dashboard.document import Document

logger = logging.getLogger("statusboard.patcher")

REPLACED = "replaced"
LOCATED = "located"
INSERTED = "inserted"
NO_DATA = "no-data"


@dataclass(frozen=True)
class AnchorRule:
    name: str
    locate: re.Pattern[str] | None
    render: Callable[[Any], str | None]
    insert_anchor: re.Pattern[str] | None = None
    insert_position: str = "before"
    # Unmanaged text placed between an inserted fragment and its anchor.
    insert_padding: str = "\n\n        "
    # Rule whose fragment absorbs this one; once it exists this rule has nothing to host it.
    superseded_by: str | None = None


@dataclass
class PatchReport:
    applied: list[str] = field(default_factory=list)
    inserted: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    superseded: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, list[str]]:
        return {
            "applied": self.applied,
            "inserted": self.inserted,
            "skipped": self.skipped,
            "superseded": self.superseded,
            "failed": self.failed,
        }


def apply_rule(document: Document, rule: AnchorRule, data: Any) -> str:
    """Apply one rule in place and return what happened.

    Raises ``AnchorNotFound`` when nothing in the document can host the fragment.
    """
    body = rule.render(data)
    if body is None:
        return NO_DATA

    if document.replace(rule.name, body):
        return REPLACED

    if rule.locate is not None:
        span = document.search(rule.locate)
        if span is not None:
            document.wrap(span[0], span[1], rule.name, body)
            return LOCATED

    if rule.insert_anchor is not None:
        span = document.search(rule.insert_anchor)
        if span is not None:
            if rule.insert_position == "after":
                document.insert(span[1], rule.name, body, before=rule.insert_padding)
            else:
                document.insert(span[0], rule.name, body, after=rule.insert_padding)
            return INSERTED

    raise AnchorNotFound(f"no anchor for {rule.name}")


def apply_rules(document: Document, rules: list[AnchorRule], data: Any) -> PatchReport:
    """Run every rule inside its own guard; one bad rule never stops the rest."""
    report = PatchReport()
    for rule in rules:
        try:
            outcome = apply_rule(document, rule, data)
        except AnchorNotFound as exc:
            if rule.superseded_by is not None and rule.superseded_by in document:
                logger.debug("Rule %s superseded by %s", rule.name, rule.superseded_by)
                report.superseded.append(rule.name)
            else:
                logger.info("Skipping %s: %s", rule.name, exc)
                report.skipped.append(rule.name)
            continue
        except Exception as exc:
            logger.warning("Rule %s failed: %s", rule.name, exc)
            report.failed.append(rule.name)
            continue

        if outcome == NO_DATA:
            logger.debug("Rule %s has no data this run", rule.name)
            report.skipped.append(rule.name)
        elif outcome == INSERTED:
            logger.info("Inserted %s", rule.name)
            report.inserted.append(rule.name)
        else:
            logger.debug("Rule %s %s", rule.name, outcome)
            report.applied.append(rule.name)
    return report


def patch_text(text: str, rules: list[AnchorRule], data: Any) -> tuple[str, PatchReport]:
    """Parse, patch and serialize in one go."""
    document = Document.parse(text)
    report = apply_rules(document, rules, data)
    return document.serialize(), report
