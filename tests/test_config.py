"""
Tests for config.py and workspace.py.
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest

from org_gtd.adapters.calendar import AppleCalendarAdapter
from org_gtd.adapters.reminders import AppleRemindersAdapter
from org_gtd.config import GtdConfig
from org_gtd.workspace import NullLinker, Workspace, ZettelNoteLinker


class TestGtdConfig:
    def test_defaults(self, tmp_path):
        config = GtdConfig.from_env({"GTD_ROOT": str(tmp_path)})
        assert config.root == tmp_path
        assert config.inbox_path == tmp_path / "Inbox.org"
        assert config.archive_path == tmp_path / "Archive.org"
        assert config.projects_path == tmp_path / "Projects"
        assert config.exclude_dirs == frozenset({".git", ".trash", "node_modules"})
        assert config.sync_states == ("TODO", "NEXT", "WAITING")
        assert not config.calendar_enabled
        assert config.api_enabled
        assert config.api_port == 9410

    def test_overrides(self, tmp_path):
        config = GtdConfig.from_env(
            {
                "GTD_ROOT": str(tmp_path),
                "GTD_INBOX_FILE": "inbox.org",
                "EXCLUDE_DIRS": "build, ,cache",
                "GTD_SYNC_STATES": "NEXT",
                "CALENDAR_ENABLED": "yes",
                "REMINDERS_ENABLED": "0",
                "EVENT_DURATION": "30",
                "API_ENABLED": "false",
                "API_PORT": "8000",
            }
        )
        assert config.inbox_file == "inbox.org"
        assert config.exclude_dirs == frozenset({"build", "cache"})
        assert config.sync_states == ("NEXT",)
        assert config.calendar_enabled
        assert not config.reminders_enabled
        assert config.event_duration == 30
        assert not config.api_enabled
        assert config.api_port == 8000

    def test_root_required(self):
        with pytest.raises(ValueError):
            GtdConfig.from_env({})

    def test_bad_number(self, tmp_path):
        with pytest.raises(ValueError):
            GtdConfig.from_env({"GTD_ROOT": str(tmp_path), "API_PORT": "eighty"})


class TestWorkspace:
    def test_adapters_resolved_once(self, tmp_path):
        config = GtdConfig(root=tmp_path, calendar_enabled=True, calendar_name="Work")
        workspace = Workspace.from_config(config)
        assert isinstance(workspace.calendar, AppleCalendarAdapter)
        assert workspace.calendar.container == "Work"
        assert workspace.reminders is None
        assert workspace.adapter("calendar") is workspace.calendar
        assert workspace.adapter("reminders") is None
        assert workspace.adapter("fax") is None

    def test_reminders(self, tmp_path):
        config = GtdConfig(root=tmp_path, reminders_enabled=True, reminders_list="Inbox")
        workspace = Workspace.from_config(config)
        assert isinstance(workspace.reminders, AppleRemindersAdapter)
        assert workspace.reminders.container == "Inbox"

    def test_linker(self, tmp_path):
        assert isinstance(Workspace.from_config(GtdConfig(root=tmp_path)).linker, NullLinker)
        config = GtdConfig(root=tmp_path, zk_dir=tmp_path / "zk")
        assert isinstance(Workspace.from_config(config).linker, ZettelNoteLinker)

    def test_zettel_note_is_created_once(self, tmp_path):
        linker = ZettelNoteLinker(tmp_path / "zk")
        note = tmp_path / "zk" / "20250101120000.md"
        link = linker.link_for("20250101120000")
        assert link.endswith("[20250101120000.md]]")
        assert not note.exists()

        linker.create_note("20250101120000", "Read book")
        assert note.read_text(encoding="utf-8").startswith("# Read book\n")
        note.write_text("edited\n", encoding="utf-8")
        linker.create_note("20250101120000", "Read book")
        assert linker.link_for("20250101120000") == link
        assert note.read_text(encoding="utf-8") == "edited\n"

    def test_ids_are_unique(self, tmp_path):
        workspace = Workspace(config=GtdConfig(root=tmp_path))
        ids = {workspace.new_task_id() for _ in range(50)}
        assert len(ids) == 50
