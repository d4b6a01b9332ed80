"""
The Workspace: configuration plus the collaborators every command needs.

Built once at startup. Optional capabilities (note linker, calendar,
reminders) are resolved here and passed down; a missing one is a no-op
implementation or None, never checked again per call.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from org_gtd.adapters.base import SyncAdapter
from org_gtd.config import GtdConfig
from org_gtd.utils.ids import IdGenerator

log = logging.getLogger(__name__)


class NoteLinker(ABC):
    """Links a task to a note. The note itself is created only once the task is saved."""

    @abstractmethod
    def link_for(self, task_id: str) -> Optional[str]:
        """Return a ZK_NOTE property value, or None when no note is linked."""

    def create_note(self, task_id: str, title: str) -> None:
        """Create the linked note if it does not exist yet."""


class NullLinker(NoteLinker):
    def link_for(self, task_id: str) -> Optional[str]:
        return None


class ZettelNoteLinker(NoteLinker):
    """Keeps one markdown note per task id under a notes directory."""

    def __init__(self, notes_dir: Path):
        self.notes_dir = Path(notes_dir)

    def _path(self, task_id: str) -> Path:
        return self.notes_dir / f"{task_id}.md"

    def link_for(self, task_id: str) -> Optional[str]:
        path = self._path(task_id)
        return f"[[file:{path.as_posix()}][{path.name}]]"

    def create_note(self, task_id: str, title: str) -> None:
        path = self._path(task_id)
        if path.exists():
            return
        try:
            self.notes_dir.mkdir(parents=True, exist_ok=True)
            path.write_text(f"# {title}\n\nTask: [[zk:{task_id}]]\n", encoding="utf-8")
        except OSError as e:
            # The task is already saved; its ZK_NOTE points at a note to create by hand
            log.warning("Could not create note %s: %s", path, e)
            return
        log.info("Created note %s", path)


@dataclass
class Workspace:
    config: GtdConfig
    ids: IdGenerator = field(default_factory=IdGenerator)
    linker: NoteLinker = field(default_factory=NullLinker)
    calendar: Optional[SyncAdapter] = None
    reminders: Optional[SyncAdapter] = None

    @classmethod
    def from_config(cls, config: GtdConfig) -> "Workspace":
        """Resolve optional capabilities from the configuration."""
        from org_gtd.adapters.calendar import AppleCalendarAdapter
        from org_gtd.adapters.osascript import OsaScriptRunner
        from org_gtd.adapters.reminders import AppleRemindersAdapter

        linker: NoteLinker = ZettelNoteLinker(config.zk_dir) if config.zk_dir else NullLinker()
        runner = OsaScriptRunner(timeout=config.osascript_timeout)
        calendar = None
        if config.calendar_enabled:
            calendar = AppleCalendarAdapter(
                runner,
                calendar_name=config.calendar_name,
                event_duration=config.event_duration,
                deadline_as_allday=config.deadline_as_allday,
            )
        reminders = None
        if config.reminders_enabled:
            reminders = AppleRemindersAdapter(runner, list_name=config.reminders_list)
        return cls(config=config, linker=linker, calendar=calendar, reminders=reminders)

    def new_task_id(self) -> str:
        return self.ids.generate()

    def adapter(self, name: str) -> Optional[SyncAdapter]:
        """Look up an enabled adapter by name ("calendar" or "reminders")."""
        if name == "calendar":
            return self.calendar
        if name == "reminders":
            return self.reminders
        return None
