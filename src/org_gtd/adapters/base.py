"""
External sync adapter interface.

An adapter mirrors task records into an outside store (a calendar, a reminder
list). The core only stores the identifier an adapter hands back, as an opaque
property value under the adapter's id_property.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from typing import List, Optional

from org_gtd.models.record import TaskRecord


@dataclass
class SyncItem:
    """The subset of a TaskRecord an adapter sees."""

    title: str
    status: Optional[str] = None
    scheduled: Optional[date] = None
    scheduled_time: Optional[str] = None
    deadline: Optional[date] = None
    location: Optional[str] = None
    description: Optional[str] = None
    external_id: Optional[str] = None

    @classmethod
    def from_record(cls, record: TaskRecord, external_id: Optional[str] = None) -> SyncItem:
        return cls(
            title=record.title,
            status=record.status,
            scheduled=record.scheduled,
            scheduled_time=record.scheduled_time,
            deadline=record.deadline,
            location=record.location,
            description=record.properties.get("DESCRIPTION"),
            external_id=external_id,
        )


@dataclass
class ExternalItem:
    """One event or reminder as listed by an adapter."""

    external_id: str
    title: str
    container: str = ""
    start: Optional[date] = None
    start_time: Optional[str] = None
    all_day: bool = False
    location: Optional[str] = None
    notes: Optional[str] = None
    priority: int = 0
    completed: bool = False


@dataclass
class SyncResult:
    """Either an external id (ok) or a failure reason."""

    ok: bool
    external_id: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def success(cls, external_id: Optional[str] = None) -> SyncResult:
        return cls(ok=True, external_id=external_id)

    @classmethod
    def failure(cls, error: str) -> SyncResult:
        return cls(ok=False, error=error)


class SyncAdapter(ABC):
    """
    Narrow interface to an external calendar or reminder store.

    Implementations never raise for a failed external call; they return a
    failed SyncResult so batch operations can continue.
    """

    name: str = "adapter"
    id_property: str = "EXTERNAL_ID"
    container_property: str = "EXTERNAL_LIST"
    requires_date: bool = False
    container: str = ""

    @abstractmethod
    def create_event(self, item: SyncItem) -> SyncResult:
        """Create an external item; the result carries its new id."""

    @abstractmethod
    def update_event(self, external_id: str, item: SyncItem) -> SyncResult:
        """Update an existing external item in place."""

    @abstractmethod
    def delete_event(self, external_id: str) -> SyncResult:
        """Delete an external item."""

    @abstractmethod
    def list_events(self) -> List[ExternalItem]:
        """List importable external items. Returns [] on failure."""

    def complete_event(self, external_id: str) -> SyncResult:
        """Mark an external item completed, where the store supports it."""
        return SyncResult.failure(f"{self.name} does not support completion")

    def import_status(self, item: ExternalItem) -> str:
        """GTD status for an imported item."""
        return "TODO"
