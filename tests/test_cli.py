"""
Tests for the org-gtd CLI (org_gtd/cli.py).
"""

import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest

from org_gtd.adapters import InMemoryAdapter
from org_gtd.cli import _sync_cmd, build_parser, main
from org_gtd.config import GtdConfig
from org_gtd.workspace import Workspace


class Args:
    """Minimal args namespace for testing CLI functions."""
    def __init__(self, **kwargs):
        for k, v in kwargs.items():
            setattr(self, k, v)


@pytest.fixture
def root(tmp_path, monkeypatch):
    for name in ("GTD_ROOT", "GTD_ZK_DIR", "CALENDAR_ENABLED", "REMINDERS_ENABLED"):
        monkeypatch.delenv(name, raising=False)
    gtd = tmp_path / "gtd"
    gtd.mkdir()
    (gtd / "Inbox.org").write_text("* NEXT Call dentist\n* DONE File taxes\n", encoding="utf-8")
    return gtd


def _run(root, *argv):
    main(["--root", str(root), *argv])


# ============================================================
# Commands
# ============================================================

def test_capture(root, capsys):
    _run(root, "capture", "Buy milk", "--tags", "errand", "--scheduled", "2026-02-16")
    out = capsys.readouterr().out
    assert "Captured: Buy milk" in out
    text = (root / "Inbox.org").read_text(encoding="utf-8")
    assert "* TODO Buy milk  :errand:" in text
    assert "SCHEDULED: <2026-02-16 Mon>" in text


def test_capture_duplicate_exits(root, capsys):
    with pytest.raises(SystemExit) as exc:
        _run(root, "capture", "call dentist")
    assert exc.value.code == 1
    assert "--force" in capsys.readouterr().out


def test_clarify_reports_skipped_fields(root, capsys):
    _run(root, "clarify", str(root / "Inbox.org"), "1", "--status", "WAITING", "--follow-up", "whenever")
    out = capsys.readouterr().out
    assert "Clarified" in out
    assert "Skipped follow_up" in out
    assert (root / "Inbox.org").read_text(encoding="utf-8").startswith("* WAITING Call dentist")


def test_clarify_needs_target(root, capsys):
    with pytest.raises(SystemExit):
        _run(root, "clarify", str(root / "Inbox.org"))
    assert "Provide a line number or --id" in capsys.readouterr().out


def test_archive_completed_dry_run(root, capsys):
    _run(root, "archive", "--dry-run")
    out = capsys.readouterr().out
    assert "Would archive 1 completed task(s)" in out
    assert "File taxes" in out
    assert not (root / "Archive.org").exists()


def test_archive_one(root, capsys):
    _run(root, "archive", str(root / "Inbox.org"), "--line", "1")
    assert "Archived 'Call dentist'" in capsys.readouterr().out
    assert (root / "Archive.org").exists()


def test_project(root, capsys):
    _run(root, "project", str(root / "Inbox.org"), "--line", "1", "--original", "keep")
    out = capsys.readouterr().out
    assert "Created project 'Call dentist'" in out
    assert (root / "Projects" / "call-dentist.org").exists()


def test_scan_json(root, capsys):
    _run(root, "scan", "--json")
    data = json.loads(capsys.readouterr().out)
    assert [t["title"] for t in data] == ["Call dentist"]


def test_scan_table(root, capsys):
    _run(root, "scan", "--all")
    out = capsys.readouterr().out
    assert "Call dentist" in out
    assert "File taxes" in out
    assert "2 task(s) found." in out


def test_duplicates_none(root, capsys):
    _run(root, "duplicates")
    assert "No duplicate TASK_IDs found." in capsys.readouterr().out


def test_destinations(root, capsys):
    _run(root, "destinations")
    lines = capsys.readouterr().out.splitlines()
    assert any(line.startswith("gtd") and line.endswith(" Inbox.org") for line in lines)


def test_audit(root, capsys):
    _run(root, "audit")
    out = capsys.readouterr().out
    assert f"{root / 'Inbox.org'}:1 [info] next_undated: NEXT without SCHEDULED or DEADLINE" in out
    assert "2 issue(s): 0 error, 0 warning, 2 info" in out


def test_audit_errors_exit(root, capsys):
    (root / "Inbox.org").write_text("* TODO Task\n:PROPERTIES:\n:TASK_ID: bogus\n:END:\n", encoding="utf-8")
    with pytest.raises(SystemExit) as exc:
        _run(root, "audit", "--json")
    assert exc.value.code == 1
    data = json.loads(capsys.readouterr().out)
    assert data["issues"][0]["code"] == "invalid_id"


def test_migrate_ids_dry_run(root, capsys):
    _run(root, "migrate-ids", "--dry-run")
    out = capsys.readouterr().out
    assert "Would update 2 heading(s)" in out
    assert f"  - Call dentist ({root / 'Inbox.org'}:1): assigned, linked" in out
    assert (root / "Inbox.org").read_text(encoding="utf-8") == "* NEXT Call dentist\n* DONE File taxes\n"


def test_migrate_ids(root, capsys):
    _run(root, "migrate-ids", str(root / "Inbox.org"))
    assert "Updated 2 heading(s)" in capsys.readouterr().out
    assert (root / "Inbox.org").read_text(encoding="utf-8").count(":TASK_ID: ") == 2


def test_sync_disabled(root, capsys):
    with pytest.raises(SystemExit):
        _run(root, "calendar", "export")
    assert "calendar sync is not enabled" in capsys.readouterr().out


def test_sync_export_with_adapter(root, capsys):
    workspace = Workspace(config=GtdConfig(root=root), reminders=InMemoryAdapter(name="reminders"))
    _sync_cmd("reminders")(Args(workspace=workspace, action="export", file=None))
    assert "1 created" in capsys.readouterr().out


# ============================================================
# Startup
# ============================================================

def test_missing_root(tmp_path, monkeypatch, capsys):
    monkeypatch.delenv("GTD_ROOT", raising=False)
    with pytest.raises(SystemExit):
        main(["scan"])
    assert "GTD_ROOT" in capsys.readouterr().out


def test_root_not_a_directory(tmp_path, capsys):
    with pytest.raises(SystemExit):
        main(["--root", str(tmp_path / "nope"), "scan"])
    assert "GTD root not found" in capsys.readouterr().out


def test_no_command_prints_help(capsys):
    with pytest.raises(SystemExit):
        main([])
    assert "usage" in capsys.readouterr().out.lower()


def test_parser_rejects_unknown_status():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["capture", "x", "--status", "DOING"])
