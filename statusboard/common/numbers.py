"""Lenient numeric helpers for human-authored and CLI-produced text."""

from __future__ import annotations

import math
import re
from typing import Any

_INT_RE = re.compile(r"^\s*([-+]?\d+)")
_FLOAT_RE = re.compile(r"^\s*([-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?)")


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives (2.5 -> 3)."""
    return int(math.floor(value + 0.5))


def to_int(value: Any, default: int = 0) -> int:
    """Parse the leading integer of ``value`` ("37.9" -> 37, "x" -> default)."""
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else default
    m = _INT_RE.match(str(value)) if value is not None else None
    return int(m.group(1)) if m else default


def to_float(value: Any, default: float = 0.0) -> float:
    """Parse the leading decimal number of ``value`` ("52.2%" -> 52.2, "" -> default)."""
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else default
    m = _FLOAT_RE.match(str(value)) if value is not None else None
    return float(m.group(1)) if m else default
