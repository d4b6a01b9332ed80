"""
Scanner output records.

A TaskRecord is a read-only snapshot of one heading. It is never written back:
mutations always reload the file through the document model, and any record
taken before that is stale.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional


class Container(str, Enum):
    INBOX = "inbox"
    PROJECT = "project"
    AREA = "area"
    ARCHIVE = "archive"
    OTHER = "other"


@dataclass
class TaskRecord:
    """One heading found by the document scanner."""

    path: Path
    line: int
    end_line: int
    title: str
    level: int = 1
    status: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    is_project: bool = False
    container: Container = Container.OTHER
    task_id: Optional[str] = None
    event_id: Optional[str] = None
    reminder_id: Optional[str] = None
    note_link: Optional[str] = None
    location: Optional[str] = None
    scheduled: Optional[date] = None
    scheduled_time: Optional[str] = None
    deadline: Optional[date] = None
    properties: Dict[str, str] = field(default_factory=dict)
    priority: int = 9
    urgency: Optional[str] = None

    @property
    def filename(self) -> str:
        return self.path.name

    @property
    def ref(self) -> str:
        """Editor reference in 'path:line' format."""
        return f"{self.path.as_posix()}:{self.line}"

    def to_dict(self) -> dict:
        """Serialize to a JSON-serializable dict."""
        return {
            "file": str(self.path),
            "filename": self.filename,
            "line": self.line,
            "end_line": self.end_line,
            "level": self.level,
            "status": self.status,
            "title": self.title,
            "tags": list(self.tags),
            "is_project": self.is_project,
            "container": self.container.value,
            "task_id": self.task_id,
            "event_id": self.event_id,
            "reminder_id": self.reminder_id,
            "note_link": self.note_link,
            "location": self.location,
            "scheduled": self.scheduled.isoformat() if self.scheduled else None,
            "scheduled_time": self.scheduled_time,
            "deadline": self.deadline.isoformat() if self.deadline else None,
            "properties": dict(self.properties),
            "priority": self.priority,
            "urgency": self.urgency,
        }
