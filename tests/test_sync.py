"""
Tests for the sync layer: export/import/completion against the in-memory
adapter, and the Apple adapters with a fake osascript runner.
"""

import subprocess
import sys
from datetime import date
from pathlib import Path
from unittest.mock import patch

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest

from org_gtd.adapters import ExternalItem, InMemoryAdapter, SyncItem, SyncResult
from org_gtd.adapters.calendar import AppleCalendarAdapter
from org_gtd.adapters.osascript import OsaScriptRunner, parse_apple_date, quote, split_records
from org_gtd.adapters.reminders import AppleRemindersAdapter, status_for_priority
from org_gtd.adapters.sync import export_tasks, import_items, sync_completion
from org_gtd.config import GtdConfig
from org_gtd.document import Document
from org_gtd.workspace import Workspace


def _write(root: Path, rel: str, text: str) -> Path:
    path = root / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def _lines(path: Path):
    return path.read_text(encoding="utf-8").splitlines()


@pytest.fixture
def workspace(tmp_path):
    return Workspace(config=GtdConfig(root=tmp_path))


class _FakeRunner:
    """Records scripts and returns queued results (success "OK" when empty)."""

    def __init__(self, *results):
        self.results = list(results)
        self.scripts = []

    def run(self, script):
        self.scripts.append(script)
        if self.results:
            return self.results.pop(0)
        return SyncResult.success("OK")


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------

class TestExport:
    TEXT = (
        "* NEXT Call dentist\n"
        "SCHEDULED: <2026-02-16 Mon 10:00>\n"
        "* TODO Fail me\n"
        "DEADLINE: <2026-02-20 Fri>\n"
        "* WAITING No date\n"
        "* DONE Finished\n"
        "SCHEDULED: <2026-02-16 Mon>\n"
        "* SOMEDAY Maybe\n"
        "SCHEDULED: <2026-02-16 Mon>\n"
    )

    def test_create_and_write_back(self, workspace, tmp_path):
        path = _write(tmp_path, "Areas/work.org", self.TEXT)
        adapter = InMemoryAdapter(requires_date=True, fail_titles={"Fail me"})

        result = export_tasks(workspace, adapter)

        assert result["status"] == "partial"
        assert (result["created"], result["updated"], result["skipped"], result["failed"]) == (1, 0, 1, 1)
        assert len(result["errors"]) == 1
        assert "Fail me" not in [i.title for i in adapter.items.values()]
        assert adapter.items["memory-1"].scheduled_time == "10:00"
        assert _lines(path)[:6] == [
            "* NEXT Call dentist",
            ":PROPERTIES:",
            ":EVENT_ID: memory-1",
            ":CALENDAR: GTD",
            ":END:",
            "SCHEDULED: <2026-02-16 Mon 10:00>",
        ]

    def test_second_export_updates(self, workspace, tmp_path):
        _write(tmp_path, "Areas/work.org", self.TEXT)
        adapter = InMemoryAdapter(requires_date=True)

        first = export_tasks(workspace, adapter)
        second = export_tasks(workspace, adapter)

        assert first["created"] == 2
        assert second["created"] == 0
        assert second["updated"] == 2
        assert second["status"] == "success"
        assert len(adapter.items) == 2

    def test_ids_land_on_the_right_headings(self, workspace, tmp_path):
        path = _write(tmp_path, "a.org", "* TODO A\n* TODO B\nbody\n* TODO C\n")
        adapter = InMemoryAdapter()

        export_tasks(workspace, adapter)

        doc = Document.load(path)
        assert doc.heading_at(doc.find_by_property("EVENT_ID", "memory-1")).title == "A"
        assert doc.heading_at(doc.find_by_property("EVENT_ID", "memory-2")).title == "B"
        assert doc.heading_at(doc.find_by_property("EVENT_ID", "memory-3")).title == "C"
        assert "body" in doc.lines

    def test_single_file(self, workspace, tmp_path):
        _write(tmp_path, "a.org", "* TODO A\n")
        other = _write(tmp_path, "b.org", "* TODO B\n")
        adapter = InMemoryAdapter()

        result = export_tasks(workspace, adapter, file=str(tmp_path / "a.org"))

        assert result["created"] == 1
        assert _lines(other) == ["* TODO B"]

    def test_archive_and_projects_skipped(self, workspace, tmp_path):
        _write(tmp_path, "Archive.org", "* TODO Old\n")
        _write(tmp_path, "Projects/p.org", "* PROJECT Big [0/0]\n")
        result = export_tasks(workspace, InMemoryAdapter())
        assert result["created"] == 0


# ---------------------------------------------------------------------------
# Import
# ---------------------------------------------------------------------------

class TestImport:
    def _adapter(self):
        adapter = InMemoryAdapter()
        adapter.listed = [
            ExternalItem(
                "ev-1", "Dentist", container="Work", start=date(2026, 2, 16),
                start_time="10:00", location="Clinic", notes="Bring card",
            ),
            ExternalItem("ev-2", "Holiday", container="Work", start=date(2026, 2, 20), all_day=True),
            ExternalItem("ev-3", "Done thing", completed=True),
            ExternalItem("ev-4", "Known"),
            ExternalItem("ev-5", "   "),
        ]
        return adapter

    def test_new_items_go_to_inbox(self, workspace, tmp_path):
        _write(tmp_path, "a.org", "* TODO Known\n:PROPERTIES:\n:EVENT_ID: ev-4\n:END:\n")

        result = import_items(workspace, self._adapter())

        assert result["status"] == "success"
        assert result["imported"] == 2
        assert result["skipped"] == 3
        lines = _lines(tmp_path / "Inbox.org")
        assert lines[0] == "* TODO Dentist  :WORK:"
        assert ":EVENT_ID: ev-1" in lines
        assert ":CALENDAR: Work" in lines
        assert ":LOCATION: Clinic" in lines
        assert "SCHEDULED: <2026-02-16 Mon 10:00>" in lines
        assert "Bring card" in lines
        assert "* TODO Holiday  :WORK:" in lines
        assert "DEADLINE: <2026-02-20 Fri>" in lines

    def test_second_import_is_empty(self, workspace, tmp_path):
        adapter = self._adapter()
        import_items(workspace, adapter)
        before = (tmp_path / "Inbox.org").read_text(encoding="utf-8")

        result = import_items(workspace, adapter)

        assert result["imported"] == 0
        assert (tmp_path / "Inbox.org").read_text(encoding="utf-8") == before

    def test_nothing_to_import_leaves_no_inbox(self, workspace, tmp_path):
        result = import_items(workspace, InMemoryAdapter())
        assert result["imported"] == 0
        assert not (tmp_path / "Inbox.org").exists()


# ---------------------------------------------------------------------------
# Completion
# ---------------------------------------------------------------------------

class TestCompletion:
    def test_done_tasks_complete_their_items(self, workspace, tmp_path):
        _write(
            tmp_path,
            "a.org",
            "* DONE Paid\n:PROPERTIES:\n:EVENT_ID: memory-1\n:END:\n"
            "* DONE Unknown\n:PROPERTIES:\n:EVENT_ID: gone\n:END:\n"
            "* TODO Open\n:PROPERTIES:\n:EVENT_ID: memory-2\n:END:\n"
            "* DONE No id\n",
        )
        adapter = InMemoryAdapter()
        adapter.items = {"memory-1": SyncItem("Paid"), "memory-2": SyncItem("Open")}

        result = sync_completion(workspace, adapter)

        assert result["status"] == "partial"
        assert (result["completed"], result["failed"]) == (1, 1)
        assert adapter.completed == {"memory-1"}


# ---------------------------------------------------------------------------
# osascript
# ---------------------------------------------------------------------------

class TestOsaScriptRunner:
    def test_success(self):
        done = subprocess.CompletedProcess(args=[], returncode=0, stdout="uid-1\n", stderr="")
        with patch("subprocess.run", return_value=done) as run:
            result = OsaScriptRunner(timeout=5).run('return "uid-1"')
        assert result.ok
        assert result.external_id == "uid-1"
        args, kwargs = run.call_args
        assert args[0][:2] == ["osascript", "-e"]
        assert kwargs["timeout"] == 5

    def test_timeout(self):
        with patch("subprocess.run", side_effect=subprocess.TimeoutExpired(cmd="osascript", timeout=5)):
            result = OsaScriptRunner(timeout=5).run("delay 10")
        assert not result.ok
        assert "timed out" in result.error

    def test_non_zero_exit(self):
        failed = subprocess.CompletedProcess(args=[], returncode=1, stdout="", stderr="execution error\n")
        with patch("subprocess.run", return_value=failed):
            result = OsaScriptRunner().run("bad")
        assert not result.ok
        assert result.error == "execution error"

    def test_missing_executable(self):
        with patch("subprocess.run", side_effect=FileNotFoundError("osascript")):
            result = OsaScriptRunner().run("x")
        assert not result.ok


class TestAppleHelpers:
    @pytest.mark.parametrize(
        "text, expected",
        [
            ("2025-06-20", (date(2025, 6, 20), None)),
            ("Friday, June 20, 2025 at 09:00:00", (date(2025, 6, 20), "09:00")),
            ("Friday, June 20, 2025 at 3:15:00 PM", (date(2025, 6, 20), "15:15")),
            ("fredag den 20. juni 2025 kl. 09.30.00", (date(2025, 6, 20), "09:30")),
            ("20/06/2025 14:05", (date(2025, 6, 20), "14:05")),
            ("missing value", (None, None)),
            ("31. februar 2025", (None, None)),
        ],
    )
    def test_parse_apple_date(self, text, expected):
        assert parse_apple_date(text) == expected

    def test_quote(self):
        assert quote('say "hi"\nnow') == '"say \\"hi\\" now"'

    def test_split_records_drops_short_lines(self):
        output = "a§§§b§§§c\nshort\n\nd§§§e§§§f§§§extra\n"
        assert split_records(output, 3) == [["a", "b", "c"], ["d", "e", "f"]]

    @pytest.mark.parametrize("priority, status", [(9, "NEXT"), (5, "TODO"), (1, "SOMEDAY"), (0, "TODO")])
    def test_status_for_priority(self, priority, status):
        assert status_for_priority(priority) == status


class TestAppleCalendarAdapter:
    def test_timed_event(self):
        runner = _FakeRunner(SyncResult.success("uid-9"))
        adapter = AppleCalendarAdapter(runner, calendar_name="Work", event_duration=90)

        result = adapter.create_event(
            SyncItem("Dentist", scheduled=date(2026, 2, 16), scheduled_time="10:00", location="Clinic")
        )

        assert result.external_id == "uid-9"
        script = runner.scripts[0]
        assert 'tell calendar "Work"' in script
        assert "set allday event of newEvent to false" in script
        assert "set hours of endDate to 11" in script
        assert "set minutes of endDate to 30" in script
        assert 'set location of newEvent to "Clinic"' in script

    def test_deadline_is_all_day(self):
        runner = _FakeRunner(SyncResult.success("uid-1"))
        adapter = AppleCalendarAdapter(runner)
        adapter.create_event(SyncItem("Taxes", deadline=date(2026, 2, 28)))
        script = runner.scripts[0]
        assert "set allday event of newEvent to true" in script
        assert "set month of endDate to 3" in script
        assert "set day of endDate to 1" in script

    def test_no_date(self):
        runner = _FakeRunner()
        result = AppleCalendarAdapter(runner).create_event(SyncItem("Someday"))
        assert not result.ok
        assert runner.scripts == []

    def test_empty_uid_is_failure(self):
        runner = _FakeRunner(SyncResult.success(""))
        result = AppleCalendarAdapter(runner).create_event(SyncItem("X", deadline=date(2026, 2, 28)))
        assert not result.ok

    def test_update_keeps_id(self):
        runner = _FakeRunner()
        result = AppleCalendarAdapter(runner).update_event("uid-1", SyncItem("X", deadline=date(2026, 2, 28)))
        assert result.external_id == "uid-1"
        assert 'whose uid is "uid-1"' in runner.scripts[0]

    def test_list_events(self):
        listing = "Standup§§§Work§§§uid-1§§§§§§fredag den 20. juni 2025 kl. 09.30.00§§§false§§§Room 1\n"
        adapter = AppleCalendarAdapter(_FakeRunner(SyncResult.success(listing)))
        [item] = adapter.list_events()
        assert item.external_id == "uid-1"
        assert item.container == "Work"
        assert (item.start, item.start_time, item.all_day) == (date(2025, 6, 20), "09:30", False)
        assert item.location == "Room 1"
        assert item.notes is None

    def test_list_failure_is_empty(self):
        adapter = AppleCalendarAdapter(_FakeRunner(SyncResult.failure("boom")))
        assert adapter.list_events() == []


class TestAppleRemindersAdapter:
    def test_next_is_high_priority(self):
        runner = _FakeRunner(SyncResult.success("x-apple-reminder://1"))
        adapter = AppleRemindersAdapter(runner, list_name="Inbox")
        result = adapter.create_event(SyncItem("Pay rent", status="NEXT", deadline=date(2026, 3, 1)))
        assert result.external_id == "x-apple-reminder://1"
        script = runner.scripts[0]
        assert 'list "Inbox"' in script
        assert "set priority of newReminder to 9" in script
        assert "set due date of newReminder to dueDate" in script
        assert "set remind me date of newReminder to missing value" in script

    def test_list_and_import_status(self):
        listing = (
            "Pay rent§§§GTD§§§x-apple-reminder://1§§§Monthly§§§"
            "Friday, June 20, 2025 at 09:00:00§§§9§§§false\n"
        )
        adapter = AppleRemindersAdapter(_FakeRunner(SyncResult.success(listing)))
        [item] = adapter.list_events()
        assert item.title == "Pay rent"
        assert item.start == date(2025, 6, 20)
        assert item.notes == "Monthly"
        assert not item.completed
        assert adapter.import_status(item) == "NEXT"

    def test_complete(self):
        runner = _FakeRunner()
        result = AppleRemindersAdapter(runner).complete_event("x-apple-reminder://1")
        assert result.ok
        assert 'set completed of reminder id "x-apple-reminder://1" to true' in runner.scripts[0]
