"""JSON file persistence shared by the snapshot store and the activity log.

Every file is read tolerantly (missing or corrupt -> caller's default) and
written atomically through a sibling ``.tmp`` file.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from statusboard.common.errors import PersistenceFailure

logger = logging.getLogger("statusboard.state")


def load_json(path: Path | str, default: Any) -> Any:
    """Load a JSON document. Returns ``default`` if the file is missing or corrupt."""
    path = Path(path)
    if not path.exists():
        return default
    try:
        with open(path, encoding="utf-8") as fh:
            return json.load(fh)
    except (json.JSONDecodeError, UnicodeDecodeError, OSError) as exc:
        logger.warning("Corrupt state file %s, resetting: %s", path, exc)
        return default


def save_json(path: Path | str, data: Any) -> None:
    """Atomically write ``data`` as indented JSON."""
    path = Path(path)
    tmp = path.with_suffix(path.suffix + ".tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(tmp, "w", encoding="utf-8") as fh:
            json.dump(data, fh, indent=2, ensure_ascii=False, default=str)
        tmp.replace(path)
    except OSError as exc:
        raise PersistenceFailure(f"Could not write {path}: {exc}") from exc


def save_text(path: Path | str, text: str) -> None:
    """Atomically write a text document."""
    path = Path(path)
    tmp = path.with_suffix(path.suffix + ".tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(tmp, "w", encoding="utf-8", errors="surrogateescape", newline="") as fh:
            fh.write(text)
        tmp.replace(path)
    except OSError as exc:
        raise PersistenceFailure(f"Could not write {path}: {exc}") from exc
    logger.debug("Wrote %d bytes to %s", len(text), path)
