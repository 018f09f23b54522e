"""Error taxonomy for a refresh run.

None of these escape the orchestrator: adapters and patch rules catch them,
log, and fall back to their defaults.
"""

from __future__ import annotations


class StatusboardError(Exception):
    """Base class for all statusboard failures."""


class SourceUnavailable(StatusboardError):
    """A data provider could not deliver text (missing, timeout, non-zero exit)."""


class ParseMismatch(StatusboardError):
    """Source text did not have the expected shape."""


class AnchorNotFound(StatusboardError):
    """Neither the locate pattern nor the insertion anchor of a rule matched."""


class PersistenceFailure(StatusboardError):
    """An output file could not be written."""
