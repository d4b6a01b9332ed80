"""In-memory adapter, used offline and in tests."""

import itertools
from typing import Dict, List, Optional, Set

from org_gtd.adapters.base import ExternalItem, SyncAdapter, SyncItem, SyncResult


class InMemoryAdapter(SyncAdapter):
    """
    Keeps items in a dict. Titles listed in fail_titles make create/update
    fail, to exercise per-item error handling.
    """

    def __init__(
        self,
        name: str = "memory",
        id_property: str = "EVENT_ID",
        container_property: str = "CALENDAR",
        container: str = "GTD",
        requires_date: bool = False,
        fail_titles: Optional[Set[str]] = None,
    ):
        self.name = name
        self.id_property = id_property
        self.container_property = container_property
        self.container = container
        self.requires_date = requires_date
        self.fail_titles = set(fail_titles or ())
        self.items: Dict[str, SyncItem] = {}
        self.listed: List[ExternalItem] = []
        self.completed: Set[str] = set()
        self._ids = itertools.count(1)

    def create_event(self, item: SyncItem) -> SyncResult:
        if item.title in self.fail_titles:
            return SyncResult.failure(f"refused to create {item.title!r}")
        external_id = f"{self.name}-{next(self._ids)}"
        self.items[external_id] = item
        return SyncResult.success(external_id)

    def update_event(self, external_id: str, item: SyncItem) -> SyncResult:
        if item.title in self.fail_titles:
            return SyncResult.failure(f"refused to update {item.title!r}")
        if external_id not in self.items:
            return SyncResult.failure(f"no item {external_id}")
        self.items[external_id] = item
        return SyncResult.success(external_id)

    def delete_event(self, external_id: str) -> SyncResult:
        if self.items.pop(external_id, None) is None:
            return SyncResult.failure(f"no item {external_id}")
        return SyncResult.success(external_id)

    def list_events(self) -> List[ExternalItem]:
        return list(self.listed)

    def complete_event(self, external_id: str) -> SyncResult:
        if external_id not in self.items:
            return SyncResult.failure(f"no item {external_id}")
        self.completed.add(external_id)
        return SyncResult.success(external_id)
