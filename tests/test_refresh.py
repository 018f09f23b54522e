from __future__ import annotations

import json
from pathlib import Path

from statusboard.common.config import resolve_path
from statusboard.dashboard.document import Document
from statusboard.dashboard.refresh import build_snapshot_fields, collect_all, run
from statusboard.store.activity_log import load_activity_log

from conftest import NOW, failing_providers


def _read_json(path: Path):
    return json.loads(path.read_text(encoding="utf-8"))


class TestRun:
    def test_dry_run_writes_nothing(self, cfg, providers, sample_html: str) -> None:
        result = run(cfg, dry_run=True, providers=providers, now=NOW)

        assert result["dry_run"] is True
        assert not result["document_written"]
        assert not result["snapshot_written"]
        assert not result["activity_written"]
        assert resolve_path(cfg, "document").read_text(encoding="utf-8") == sample_html
        assert not resolve_path(cfg, "snapshot").exists()
        assert not resolve_path(cfg, "activity_log").exists()
        # The patch is still computed so a dry run shows what would change.
        assert "needs-you" in result["patch"]["applied"]

    def test_writes_document_snapshot_and_activity(self, cfg, providers) -> None:
        result = run(cfg, providers=providers, now=NOW)

        assert result["ok"]
        assert result["document_written"]
        assert result["snapshot_written"]
        assert result["activity_written"]

        html = resolve_path(cfg, "document").read_text(encoding="utf-8")
        assert "Updated: Oct 16, 2026, 3:04 PM" in html
        assert "sb:cron-grid" in html

        snapshot = _read_json(resolve_path(cfg, "snapshot"))
        assert snapshot["lastUpdated"] == "2026-10-16T22:04:00.000Z"
        assert snapshot["health"]["crons"] == {"healthy": 1, "total": 3, "status": "warning"}
        assert snapshot["stats"]["cronJobsTotal"] == 3

        entries = load_activity_log(resolve_path(cfg, "activity_log"))
        assert len(entries) == 1
        assert entries[0]["action"] == "Dashboard updated"
        assert entries[0]["details"].startswith("1/3 crons OK, 4 tasks, ")

    def test_unknown_snapshot_keys_survive(self, cfg, providers) -> None:
        snapshot_path = resolve_path(cfg, "snapshot")
        snapshot_path.write_text(json.dumps({
            "needsAttention": [{"title": "Hand-kept reminder"}],
            "custom": {"owner": "someone else"},
            "stats": {"streak": 4},
        }), encoding="utf-8")

        run(cfg, providers=providers, now=NOW)

        snapshot = _read_json(snapshot_path)
        assert snapshot["needsAttention"] == [{"title": "Hand-kept reminder"}]
        assert snapshot["custom"] == {"owner": "someone else"}
        assert snapshot["stats"] == {"streak": 4, "cronJobsTotal": 3}
        html = resolve_path(cfg, "document").read_text(encoding="utf-8")
        assert "Hand-kept reminder" in Document.parse(html).get("needs-you")

    def test_second_run_shows_first_runs_activity(self, cfg, providers) -> None:
        run(cfg, providers=providers, now=NOW)
        run(cfg, providers=providers, now=NOW)

        html = resolve_path(cfg, "document").read_text(encoding="utf-8")
        assert "Dashboard updated" in Document.parse(html).get("agents-activity")
        assert len(load_activity_log(resolve_path(cfg, "activity_log"))) == 2

    def test_missing_document_still_updates_state(self, cfg, providers) -> None:
        resolve_path(cfg, "document").unlink()

        result = run(cfg, providers=providers, now=NOW)

        assert result["document_written"] is False
        assert result["snapshot_written"]
        assert not resolve_path(cfg, "document").exists()

    def test_crlf_line_endings_survive(self, cfg, providers, sample_html: str) -> None:
        document = resolve_path(cfg, "document")
        document.write_bytes(sample_html.replace("\n", "\r\n").encode("utf-8"))

        result = run(cfg, providers=providers, now=NOW)

        assert result["document_written"]
        out = document.read_bytes()
        assert b"Hand-written note that must survive every refresh.</p>\r\n" in out
        assert b"<p>Dentist on Friday</p>\r\n" in out
        assert out.endswith(b"</body>\r\n</html>\r\n")
        assert b"Updated: Oct 16, 2026, 3:04 PM" in out

    def test_non_utf8_bytes_do_not_abort_the_run(self, cfg, providers, sample_html: str) -> None:
        document = resolve_path(cfg, "document")
        raw = sample_html.encode("utf-8").replace(b"Built by hand.", b"Built by hand \xe9.")
        document.write_bytes(raw)

        result = run(cfg, providers=providers, now=NOW)

        assert result["document_written"]
        assert result["snapshot_written"]
        assert result["activity_written"]
        out = document.read_bytes()
        assert b"<footer>Built by hand \xe9.</footer>" in out
        assert b"Updated: Oct 16, 2026, 3:04 PM" in out

    def test_absorbed_badge_is_not_reported_as_skipped(self, cfg, providers, capsys) -> None:
        run(cfg, providers=providers, now=NOW)
        capsys.readouterr()

        result = run(cfg, providers=providers, now=NOW)

        assert result["patch"]["superseded"] == ["needs-badge"]
        assert "needs-badge" not in result["patch"]["skipped"]
        assert "needs-badge" not in capsys.readouterr().out

    def test_failed_snapshot_write_is_isolated(self, cfg, providers) -> None:
        # A directory where the file should be makes the atomic rename fail.
        resolve_path(cfg, "snapshot").mkdir()

        result = run(cfg, providers=providers, now=NOW)

        assert result["snapshot_written"] is False
        assert result["document_written"]
        assert result["activity_written"]

    def test_all_sources_down(self, cfg) -> None:
        result = run(cfg, providers=failing_providers(), now=NOW)

        assert result["ok"]
        assert result["patch"]["failed"] == []
        snapshot = _read_json(resolve_path(cfg, "snapshot"))
        assert snapshot["health"]["crons"]["total"] == 0
        assert snapshot["crons"] == []

    def test_summary_is_printed(self, cfg, providers, capsys) -> None:
        run(cfg, dry_run=True, providers=providers, now=NOW)

        out = capsys.readouterr().out
        assert "Summary:" in out
        assert "  - Crons: 1/3 healthy" in out
        assert "  - Failed crons: Inbox sweep" in out
        assert "  - Errors: 1" in out


class TestSnapshotFields:
    def test_shapes(self, cfg, providers) -> None:
        collected = collect_all(providers, cfg, NOW)
        fields = build_snapshot_fields(collected, [], {}, NOW)

        assert fields["crons"][1] == {
            "name": "Inbox sweep",
            "schedule": "in 2h",
            "health": "error",
            "lastRun": "22h ago",
            "error": "See cron logs",
        }
        assert fields["crons"][0]["error"] is None
        assert len(fields["activeWork"]) == 4
        assert fields["activeWork"][0]["project"] == "Finance"
        assert fields["activeWork"][1]["project"] == "Personal Admin"
        assert fields["activeWork"][3]["project"] == "Personal"
        assert fields["health"]["blocked"] == 1
        assert fields["stats"] == {"cronJobsTotal": 3}

    def test_non_dict_prior_stats_is_replaced(self, cfg, providers) -> None:
        collected = collect_all(providers, cfg, NOW)
        fields = build_snapshot_fields(collected, [], {"stats": "broken"}, NOW)
        assert fields["stats"] == {"cronJobsTotal": 3}
