"""
Document scanner.

Walks a GTD root and turns every heading into a TaskRecord. Read-only: records
are snapshots for listing, filtering, sorting and duplicate checks. Anything
that edits a file goes back through the Document model.

Containers are derived from the file's path relative to the root:
  - archive: "archive" or "deleted" anywhere in the relative path
  - inbox:   the configured inbox file name
  - project: under the configured projects directory
  - area:    under the configured areas directory
  - other:   everything else
"""

import logging
import re
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Callable, Iterable, Iterator, List, Optional, Set, Tuple

from org_gtd.config import GtdConfig
from org_gtd.document import Document
from org_gtd.errors import StructuralError
from org_gtd.models.outline import COMPLETED_STATUSES, PlanningKind, Status
from org_gtd.models.record import Container, TaskRecord
from org_gtd.parsers.outline import find_link_ids
from org_gtd.utils.dates import days_between

log = logging.getLogger(__name__)

OUTLINE_SUFFIX = ".org"

_STATUS_PRIORITY = {
    Status.NEXT.value: 1,
    Status.TODO.value: 2,
    Status.WAITING.value: 3,
}
PROJECT_PRIORITY = 2
INBOX_PRIORITY = 4
UNSTATED_PRIORITY = 5
SOMEDAY_PRIORITY = 6
COMPLETED_PRIORITY = 9

# (delta, label) from strongest to weakest
OVERDUE_DEADLINE = (-5, "OVERDUE")
DUE_TODAY = (-4, "DUE TODAY")
DUE_THIS_WEEK = (-3, "DUE SOON")
SCHEDULED_OVERDUE = (-2, "SCHED OVERDUE")
SCHEDULED_TODAY = (-1, "SCHED TODAY")
DUE_SOON_DAYS = 3


# ---------------------------------------------------------------------------
# File discovery and classification
# ---------------------------------------------------------------------------


def iter_outline_files(root: Path, exclude_dirs: Iterable[str] = ()) -> Iterator[Path]:
    """Yield every .org file under root, sorted, skipping excluded directory names."""
    excluded = set(exclude_dirs)
    if not root.is_dir():
        log.warning("GTD root %s is not a directory", root)
        return
    for path in sorted(root.rglob(f"*{OUTLINE_SUFFIX}")):
        if not path.is_file():
            continue
        rel = path.relative_to(root)
        if any(part in excluded for part in rel.parts[:-1]):
            continue
        yield path


def _relative(path: Path, root: Optional[Path]) -> Path:
    if root is not None:
        try:
            return path.relative_to(root)
        except ValueError:
            pass
    return path


def is_archived_path(path: Path, root: Optional[Path] = None) -> bool:
    """True when the path (relative to root) names an archive or deleted file."""
    rel = _relative(Path(path), root).as_posix().lower()
    return "archive" in rel or "deleted" in rel


def is_completed(status: Optional[str]) -> bool:
    return status in COMPLETED_STATUSES


def is_archive_file(path: Path, config: GtdConfig) -> bool:
    """True for archive or deleted paths and for the configured archive file, whatever its name."""
    if is_archived_path(path, config.root):
        return True
    return Path(path).resolve() == config.archive_path.resolve()


def active_outline_files(config: GtdConfig) -> List[Path]:
    """Outline files under the root that are not archives."""
    return [
        p for p in iter_outline_files(config.root, config.exclude_dirs) if not is_archive_file(p, config)
    ]


def classify_container(path: Path, config: GtdConfig) -> Container:
    if is_archive_file(path, config):
        return Container.ARCHIVE
    rel = _relative(path, config.root)
    if rel.name.lower() == config.inbox_file.lower():
        return Container.INBOX
    dirs = [p.lower() for p in rel.parts[:-1]]
    if config.projects_dir.lower() in dirs:
        return Container.PROJECT
    if config.areas_dir.lower() in dirs:
        return Container.AREA
    return Container.OTHER


# ---------------------------------------------------------------------------
# Priority
# ---------------------------------------------------------------------------


def base_priority(record: TaskRecord) -> int:
    """Status-derived priority: actionable states, then inbox, then someday."""
    status = record.status
    if is_completed(status):
        return COMPLETED_PRIORITY
    if status == Status.SOMEDAY.value:
        return SOMEDAY_PRIORITY
    if status in _STATUS_PRIORITY:
        return _STATUS_PRIORITY[status]
    if record.is_project:
        return PROJECT_PRIORITY
    if "someday" in record.filename.lower():
        return SOMEDAY_PRIORITY
    if record.container == Container.INBOX:
        return INBOX_PRIORITY
    return UNSTATED_PRIORITY


def urgency(
    scheduled: Optional[date], deadline: Optional[date], today: date
) -> Tuple[int, Optional[str]]:
    """
    Date-urgency delta and display label.

    The delta is the strongest one that applies; the label belongs to it.
    """
    candidates = []
    if deadline is not None:
        days = days_between(today, deadline)
        if days < 0:
            candidates.append(OVERDUE_DEADLINE)
        elif days == 0:
            candidates.append(DUE_TODAY)
        elif days <= 7:
            delta, label = DUE_THIS_WEEK
            candidates.append((delta, label if days <= DUE_SOON_DAYS else None))
    if scheduled is not None:
        days = days_between(today, scheduled)
        if days < 0:
            candidates.append(SCHEDULED_OVERDUE)
        elif days == 0:
            candidates.append(SCHEDULED_TODAY)
    if not candidates:
        return 0, None
    delta = min(c[0] for c in candidates)
    label = next((c[1] for c in sorted(candidates, key=lambda c: c[0]) if c[1]), None)
    return delta, label


def sort_actionable(records: List[TaskRecord]) -> List[TaskRecord]:
    """Sort by priority, then filename, then title."""
    return sorted(records, key=lambda r: (r.priority, r.filename, r.title))


# ---------------------------------------------------------------------------
# Record extraction
# ---------------------------------------------------------------------------


def records_from_document(
    doc: Document, config: GtdConfig, today: Optional[date] = None
) -> List[TaskRecord]:
    """One TaskRecord per heading in doc."""
    today = today or date.today()
    path = doc.path or Path("")
    container = classify_container(path, config)
    records: List[TaskRecord] = []

    for i, heading in doc.headings():
        try:
            props = doc.properties(i)
        except StructuralError as e:
            log.warning("%s: %s", path, e)
            props = {}

        scheduled = doc.get_schedule(i, PlanningKind.SCHEDULED.value)
        deadline = doc.get_schedule(i, PlanningKind.DEADLINE.value)
        section = doc.lines[i:doc.section_end(i)]
        links = [link for line in section for link in find_link_ids(line)]

        record = TaskRecord(
            path=path,
            line=i + 1,
            end_line=doc.subtree_end(i),
            title=heading.title,
            level=heading.level,
            status=heading.status,
            tags=list(heading.tags),
            is_project=heading.project,
            container=container,
            task_id=(props.get("TASK_ID") or "").strip() or None,
            event_id=props.get("EVENT_ID") or None,
            reminder_id=props.get("APPLE_ID") or None,
            note_link=props.get("ZK_NOTE") or (links[0] if links else None),
            location=props.get("LOCATION") or None,
            scheduled=scheduled.date if scheduled else None,
            scheduled_time=scheduled.time if scheduled else None,
            deadline=deadline.date if deadline else None,
            properties=props,
        )
        delta, label = urgency(record.scheduled, record.deadline, today)
        record.priority = base_priority(record) + delta
        record.urgency = label
        records.append(record)
    return records


# ---------------------------------------------------------------------------
# Scan
# ---------------------------------------------------------------------------


@dataclass
class ScanFilter:
    """
    Record filters.

    actionable_only drops archive/deleted files AND completed/cancelled
    headings; the two always go together.
    """

    actionable_only: bool = False
    statuses: Optional[Set[str]] = None
    include_projects: bool = True
    container: Optional[Container] = None
    file: Optional[Path] = None

    def matches(self, record: TaskRecord) -> bool:
        if self.actionable_only:
            if record.container == Container.ARCHIVE or is_completed(record.status):
                return False
        if self.statuses is not None and record.status not in self.statuses:
            return False
        if not self.include_projects and record.is_project:
            return False
        if self.container is not None and record.container != self.container:
            return False
        return True


def scan(
    root: Path,
    filters: Optional[ScanFilter] = None,
    *,
    config: Optional[GtdConfig] = None,
    exclude_dirs: Optional[Iterable[str]] = None,
    today: Optional[date] = None,
    cancel: Optional[Callable[[], bool]] = None,
) -> List[TaskRecord]:
    """
    Scan every outline file under root.

    Args:
        root: GTD root directory
        filters: Optional ScanFilter
        config: Container naming rules (defaults to GtdConfig(root))
        exclude_dirs: Directory names to skip (defaults to config.exclude_dirs)
        today: Reference date for urgency
        cancel: Checked between files; returning True stops the scan early

    Returns:
        Records in file order, then line order
    """
    root = Path(root)
    filters = filters or ScanFilter()
    config = config or GtdConfig(root=root)
    excluded = config.exclude_dirs if exclude_dirs is None else exclude_dirs

    if filters.file is not None:
        files: Iterable[Path] = [Path(filters.file)]
    else:
        files = iter_outline_files(root, excluded)

    records: List[TaskRecord] = []
    for path in files:
        if cancel is not None and cancel():
            log.info("Scan of %s cancelled", root)
            break
        if filters.actionable_only and is_archive_file(path, config):
            continue
        log.debug("Scanning %s", path)
        doc = Document.load(path)
        records.extend(r for r in records_from_document(doc, config, today) if filters.matches(r))
    return records


def scan_actionable(
    config: GtdConfig, today: Optional[date] = None, include_projects: bool = True
) -> List[TaskRecord]:
    """Open tasks outside archive files, in display order."""
    filters = ScanFilter(actionable_only=True, include_projects=include_projects)
    return sort_actionable(scan(config.root, filters, config=config, today=today))


def _normalize_title(title: str) -> str:
    return re.sub(r"\s+", " ", re.sub(r"[^\w\s]", "", title.lower())).strip()


def find_similar_task(config: GtdConfig, title: str) -> Optional[TaskRecord]:
    """An open, non-archived task whose normalized title equals title's."""
    wanted = _normalize_title(title)
    if not wanted:
        return None
    for record in scan(config.root, ScanFilter(actionable_only=True), config=config):
        if _normalize_title(record.title) == wanted:
            return record
    return None
