"""Data providers -- the only place raw text enters a refresh run.

Adapters never shell out or open files themselves; they ask a provider and
get back a ``ProviderResult``.  The orchestrator builds the default registry
from config, tests hand in fakes that satisfy the same protocol.
"""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from statusboard.common.config import command_timeout, resolve_path
from statusboard.common.errors import SourceUnavailable

logger = logging.getLogger("statusboard.providers")


@dataclass(frozen=True)
class ProviderResult:
    """Text delivered by a provider, or the reason it could not be delivered."""

    source: str
    text: str = ""
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> str:
        """Return the text, raising ``SourceUnavailable`` for a failed fetch."""
        if self.error is not None:
            raise SourceUnavailable(f"{self.source}: {self.error}")
        return self.text


@runtime_checkable
class DataProvider(Protocol):
    """Anything that can produce raw source text on demand."""

    name: str

    def fetch(self) -> ProviderResult:
        ...


class CommandProvider:
    """Run an external command and capture its stdout."""

    def __init__(self, name: str, argv: list[str], timeout: float = 10) -> None:
        self.name = name
        self.argv = list(argv)
        self.timeout = timeout

    def fetch(self) -> ProviderResult:
        try:
            result = subprocess.run(
                self.argv,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except FileNotFoundError:
            return ProviderResult(self.name, error=f"command not found: {self.argv[0]}")
        except subprocess.TimeoutExpired:
            return ProviderResult(self.name, error=f"timed out after {self.timeout:g}s")
        except OSError as exc:
            return ProviderResult(self.name, error=str(exc))

        if result.returncode != 0:
            stderr = (result.stderr or "").strip()[:200]
            return ProviderResult(self.name, error=f"exit {result.returncode}: {stderr}")
        return ProviderResult(self.name, text=result.stdout)

    def __repr__(self) -> str:
        return f"CommandProvider({self.name!r}, {self.argv!r})"


class FileProvider:
    """Read a UTF-8 text file."""

    def __init__(self, name: str, path: Path) -> None:
        self.name = name
        self.path = path

    def fetch(self) -> ProviderResult:
        if not self.path.is_file():
            return ProviderResult(self.name, error=f"file not found: {self.path}")
        try:
            return ProviderResult(self.name, text=self.path.read_text(encoding="utf-8", errors="replace"))
        except OSError as exc:
            return ProviderResult(self.name, error=str(exc))

    def __repr__(self) -> str:
        return f"FileProvider({self.name!r}, {str(self.path)!r})"


# Source name -> files key for file-backed sources.
FILE_SOURCES = {
    "approval_queue": "approval_queue",
    "life_vto": "life_vto",
    "awaiting_responses": "awaiting_responses",
    "session_labels": "session_labels",
}


def _resolve_argv(cfg: dict[str, Any], argv: list[str]) -> list[str]:
    """Anchor a relative script path (``scripts/foo.sh``) to the workspace."""
    if not argv or "/" not in argv[0]:
        return list(argv)
    head = Path(argv[0]).expanduser()
    if not head.is_absolute():
        head = Path(cfg["workspace"]).expanduser() / head
    return [str(head), *argv[1:]]


def build_providers(cfg: dict[str, Any]) -> dict[str, DataProvider]:
    """Build the default provider registry from config."""
    providers: dict[str, DataProvider] = {}
    for name, argv in cfg.get("commands", {}).items():
        if not argv:
            continue
        providers[name] = CommandProvider(name, _resolve_argv(cfg, list(argv)), command_timeout(cfg, name))
    for name, key in FILE_SOURCES.items():
        providers[name] = FileProvider(name, resolve_path(cfg, key))
    return providers


def fetch_text(providers: dict[str, DataProvider], name: str) -> str:
    """Fetch one source by name; raises ``SourceUnavailable`` on any failure."""
    provider = providers.get(name)
    if provider is None:
        raise SourceUnavailable(f"{name}: no provider configured")
    return provider.fetch().unwrap()
