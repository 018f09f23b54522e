"""Load and validate statusboard configuration from config.yaml."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger("statusboard")

REPO_DIR = Path(__file__).resolve().parent.parent.parent
DEFAULT_CONFIG_PATH = REPO_DIR / "config" / "config.yaml"

DEFAULT_FILES: dict[str, str] = {
    "document": "dashboard/index.html",
    "snapshot": "dashboard/state.json",
    "activity_log": "dashboard/activity-log.json",
    "approval_queue": "dashboard/approval-queue.json",
    "life_vto": "notes/projects/life-vto.md",
    "awaiting_responses": "notes/areas/awaiting-responses.md",
    "session_labels": "~/.clawdbot/agents/main/sessions/sessions.json",
    "memory_dir": "memory",
    "notes_dir": "notes",
}

DEFAULT_COMMANDS: dict[str, list[str]] = {
    "cron": ["clawdbot", "cron", "list"],
    "tasks_today": ["things", "today"],
    "tasks_inbox": ["things", "inbox"],
    "sessions": ["clawdbot", "sessions", "list", "--json", "--active", "60"],
    "agent_version": ["clawdbot", "--version"],
    "body_stats": ["scripts/get-oura-body-stats.sh"],
}

DEFAULT_TIMEOUTS: dict[str, float] = {
    "default": 10,
    "cron": 30,
    "tasks_today": 30,
    "agent_version": 5,
    "body_stats": 60,
}


def load_config(config_path: Path | str | None = None) -> dict[str, Any]:
    """Load configuration from YAML file, with env-var overrides.

    Environment variable overrides (if set):
        STATUSBOARD_WORKSPACE      -> workspace
        STATUSBOARD_DASHBOARD_DIR  -> dashboard_dir
        STATUSBOARD_LOG_DIR        -> log_dir
        STATUSBOARD_TIMEZONE       -> timezone
    """
    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path, encoding="utf-8") as fh:
        cfg: dict[str, Any] = yaml.safe_load(fh) or {}

    _env_override(cfg, "STATUSBOARD_WORKSPACE", "workspace")
    _env_override(cfg, "STATUSBOARD_DASHBOARD_DIR", "dashboard_dir")
    _env_override(cfg, "STATUSBOARD_LOG_DIR", "log_dir")
    _env_override(cfg, "STATUSBOARD_TIMEZONE", "timezone")

    _apply_defaults(cfg)
    _validate(cfg)
    return cfg


def _env_override(cfg: dict, env_key: str, *keys: str) -> None:
    """Override a nested config value from an environment variable."""
    val = os.environ.get(env_key)
    if val is None:
        return
    target = cfg
    for k in keys[:-1]:
        target = target.setdefault(k, {})
    target[keys[-1]] = val


def _apply_defaults(cfg: dict[str, Any]) -> None:
    """Fill in file, command and timeout tables the YAML leaves out."""
    files = cfg.setdefault("files", {})
    for key, value in DEFAULT_FILES.items():
        files.setdefault(key, value)
    dashboard_dir = cfg.get("dashboard_dir")
    if dashboard_dir:
        # dashboard_dir relocates the three dashboard outputs and the queue file
        for key in ("document", "snapshot", "activity_log", "approval_queue"):
            if files[key] == DEFAULT_FILES[key]:
                files[key] = str(Path(dashboard_dir) / Path(DEFAULT_FILES[key]).name)

    commands = cfg.setdefault("commands", {})
    for key, argv in DEFAULT_COMMANDS.items():
        commands.setdefault(key, list(argv))

    timeouts = cfg.setdefault("timeouts", {})
    for key, seconds in DEFAULT_TIMEOUTS.items():
        timeouts.setdefault(key, seconds)

    cfg.setdefault("timezone", "America/Los_Angeles")
    cfg.setdefault("log_level", "INFO")
    cfg.setdefault("lifeos", {})
    cfg.setdefault("limits", {})


def _validate(cfg: dict[str, Any]) -> None:
    """Validate that the workspace exists; warn about missing inputs."""
    if "workspace" not in cfg:
        raise ValueError("Config is missing required key: workspace")
    workspace = Path(cfg["workspace"]).expanduser()
    if not workspace.is_dir():
        raise ValueError(f"Workspace not found: {workspace}")

    for key in ("document", "life_vto", "awaiting_responses", "approval_queue"):
        path = resolve_path(cfg, key)
        if not path.is_file():
            logger.warning("%s not found at %s, adapter will return defaults", key, path)


def resolve_path(cfg: dict[str, Any], key: str) -> Path:
    """Return the absolute path for a ``files`` entry.

    Relative entries are resolved against ``cfg['workspace']``; ``~`` is expanded.
    """
    raw = Path(cfg["files"][key]).expanduser()
    if raw.is_absolute():
        return raw
    return Path(cfg["workspace"]).expanduser() / raw


def command_timeout(cfg: dict[str, Any], name: str) -> float:
    """Per-command timeout in seconds, falling back to ``timeouts.default``."""
    timeouts = cfg.get("timeouts", {})
    return float(timeouts.get(name, timeouts.get("default", 10)))


def setup_logging(cfg: dict[str, Any]) -> None:
    """Configure root logging: stderr + rotating file."""
    log_dir = Path(cfg.get("log_dir") or Path(cfg["workspace"]) / "logs").expanduser()
    log_dir.mkdir(parents=True, exist_ok=True)

    from logging.handlers import RotatingFileHandler

    fmt = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    root = logging.getLogger("statusboard")
    root.setLevel(getattr(logging, cfg.get("log_level", "INFO")))

    # stderr
    sh = logging.StreamHandler()
    sh.setFormatter(fmt)
    root.addHandler(sh)

    # rotating file
    fh = RotatingFileHandler(log_dir / "statusboard.log", maxBytes=5_000_000, backupCount=3)
    fh.setFormatter(fmt)
    root.addHandler(fh)
