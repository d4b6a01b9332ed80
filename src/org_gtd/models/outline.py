"""
Typed line model for org outline files.

The parser in parsers.outline classifies every raw line into one of these
values. The document model and scanner work exclusively with them; no other
module matches the outline syntax on its own.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import List, Optional, Tuple


class Status(str, Enum):
    TODO = "TODO"
    NEXT = "NEXT"
    WAITING = "WAITING"
    SOMEDAY = "SOMEDAY"
    DONE = "DONE"
    CANCELLED = "CANCELLED"


STATUS_KEYWORDS = frozenset(s.value for s in Status)
COMPLETED_STATUSES = frozenset({Status.DONE.value, Status.CANCELLED.value})

# Kind marker written by convert-to-project; not part of the status set
PROJECT_MARKER = "PROJECT"


class PlanningKind(str, Enum):
    SCHEDULED = "SCHEDULED"
    DEADLINE = "DEADLINE"


@dataclass
class Heading:
    """A parsed heading line: ``*+ [STATUS] [PROJECT] title [cookie] [:tags:]``."""

    level: int
    title: str
    status: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    project: bool = False
    cookie: Optional[str] = None

    @property
    def is_completed(self) -> bool:
        return self.status in COMPLETED_STATUSES


@dataclass
class DrawerStart:
    pass


@dataclass
class DrawerEnd:
    pass


@dataclass
class PropertyLine:
    key: str
    value: str


@dataclass
class PlanningEntry:
    """One ``KEYWORD: <timestamp>`` entry on a planning line."""

    kind: str
    timestamp: str
    date: Optional[date] = None
    time: Optional[str] = None


@dataclass
class ScheduleLine:
    """A planning line; may carry both a SCHEDULED and a DEADLINE entry."""

    entries: List[PlanningEntry] = field(default_factory=list)

    def get(self, kind: str) -> Optional[PlanningEntry]:
        for entry in self.entries:
            if entry.kind == kind:
                return entry
        return None


@dataclass
class LinkLine:
    """A dedicated identifier link line, e.g. ``ID:: [[zk:20250101120000]]``."""

    ids: List[str] = field(default_factory=list)


@dataclass
class Blank:
    pass


@dataclass
class Text:
    text: str


@dataclass
class Drawer:
    """Location of a property drawer, as 0-based line indices of its markers."""

    start: int
    end: int
    entries: List[Tuple[str, str]] = field(default_factory=list)
