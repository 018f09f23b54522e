from __future__ import annotations

import logging
import sys
from pathlib import Path

import pytest

from statusboard.common.config import (
    DEFAULT_COMMANDS,
    command_timeout,
    load_config,
    resolve_path,
    setup_logging,
)
from statusboard.common.errors import SourceUnavailable
from statusboard.common.providers import (
    CommandProvider,
    DataProvider,
    FileProvider,
    ProviderResult,
    build_providers,
    fetch_text,
)

from conftest import FakeProvider


def _write_config(tmp_path: Path, body: str) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(body, encoding="utf-8")
    return path


class TestLoadConfig:
    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.yaml")

    def test_missing_workspace_key(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError, match="workspace"):
            load_config(_write_config(tmp_path, "timezone: UTC\n"))

    def test_workspace_must_exist(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError, match="Workspace not found"):
            load_config(_write_config(tmp_path, f"workspace: {tmp_path}/gone\n"))

    def test_defaults_filled(self, tmp_path: Path) -> None:
        cfg = load_config(_write_config(tmp_path, f"workspace: {tmp_path}\n"))
        assert cfg["timezone"] == "America/Los_Angeles"
        assert cfg["commands"]["cron"] == DEFAULT_COMMANDS["cron"]
        assert resolve_path(cfg, "snapshot") == tmp_path / "dashboard" / "state.json"

    def test_env_overrides(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        other = tmp_path / "other"
        other.mkdir()
        monkeypatch.setenv("STATUSBOARD_WORKSPACE", str(other))
        monkeypatch.setenv("STATUSBOARD_TIMEZONE", "UTC")
        monkeypatch.setenv("STATUSBOARD_DASHBOARD_DIR", str(tmp_path / "site"))
        cfg = load_config(_write_config(tmp_path, f"workspace: {tmp_path}\n"))
        assert cfg["workspace"] == str(other)
        assert cfg["timezone"] == "UTC"
        assert resolve_path(cfg, "document") == tmp_path / "site" / "index.html"
        assert resolve_path(cfg, "life_vto") == other / "notes" / "projects" / "life-vto.md"

    def test_missing_inputs_only_warn(self, tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING, logger="statusboard"):
            load_config(_write_config(tmp_path, f"workspace: {tmp_path}\n"))
        assert "life_vto not found" in caplog.text

    def test_timeouts(self, tmp_path: Path) -> None:
        cfg = load_config(_write_config(tmp_path, f"workspace: {tmp_path}\ntimeouts:\n  default: 7\n"))
        assert command_timeout(cfg, "cron") == 30
        assert command_timeout(cfg, "sessions") == 7

    def test_setup_logging_creates_log_file(self, tmp_path: Path) -> None:
        cfg = load_config(_write_config(tmp_path, f"workspace: {tmp_path}\nlog_dir: {tmp_path}/logs\n"))
        root = logging.getLogger("statusboard")
        before = list(root.handlers)
        try:
            setup_logging(cfg)
            logging.getLogger("statusboard.test").info("hello")
            assert (tmp_path / "logs" / "statusboard.log").exists()
        finally:
            for handler in root.handlers[len(before):]:
                handler.close()
            root.handlers[:] = before


class TestProviders:
    def test_result_unwrap(self) -> None:
        assert ProviderResult("x", text="hi").unwrap() == "hi"
        with pytest.raises(SourceUnavailable, match="x: boom"):
            ProviderResult("x", error="boom").unwrap()

    def test_fake_satisfies_protocol(self) -> None:
        assert isinstance(FakeProvider("x"), DataProvider)

    def test_command_success(self) -> None:
        result = CommandProvider("py", [sys.executable, "-c", "print('ok')"]).fetch()
        assert result.ok
        assert result.text == "ok\n"

    def test_command_missing_binary(self) -> None:
        result = CommandProvider("ghost", ["definitely-not-a-real-binary-xyz"]).fetch()
        assert not result.ok
        assert "command not found" in result.error

    def test_command_nonzero_exit(self) -> None:
        script = "import sys; sys.stderr.write('bad'); sys.exit(3)"
        result = CommandProvider("fail", [sys.executable, "-c", script]).fetch()
        assert result.error == "exit 3: bad"

    def test_command_timeout(self) -> None:
        script = "import time; time.sleep(5)"
        result = CommandProvider("slow", [sys.executable, "-c", script], timeout=0.2).fetch()
        assert result.error == "timed out after 0.2s"

    def test_file_provider(self, tmp_path: Path) -> None:
        path = tmp_path / "notes.md"
        assert "file not found" in FileProvider("notes", path).fetch().error
        path.write_text("# Notes\n", encoding="utf-8")
        assert FileProvider("notes", path).fetch().text == "# Notes\n"

    def test_fetch_text_without_provider(self) -> None:
        with pytest.raises(SourceUnavailable, match="no provider configured"):
            fetch_text({}, "cron")

    def test_build_providers(self, tmp_path: Path) -> None:
        cfg = load_config(_write_config(tmp_path, f"workspace: {tmp_path}\ncommands:\n  tasks_inbox: []\n"))
        providers = build_providers(cfg)
        assert "tasks_inbox" not in providers
        assert isinstance(providers["cron"], CommandProvider)
        assert providers["body_stats"].argv == [str(tmp_path / "scripts" / "get-oura-body-stats.sh")]
        assert isinstance(providers["life_vto"], FileProvider)
        assert providers["life_vto"].path == tmp_path / "notes" / "projects" / "life-vto.md"
