"""
Audit and ID migration.

audit_outlines reports hygiene problems without editing anything. Each issue
is {"file", "line", "title", "severity", "code", "message"}:

    structure           error    property drawer without :END:
    invalid_id          error    TASK_ID that is not a well-formed task ID
    duplicate_planning  error    more than one SCHEDULED or DEADLINE entry
    bad_timestamp       warning  planning or FOLLOW_UP stamp with a wrong weekday
    project_cookie      warning  PROJECT without an [n/m] progress cookie
    missing_id          info     open task without a TASK_ID
    next_undated        info     NEXT without SCHEDULED or DEADLINE
    waiting_context     info     WAITING without a follow-up date or WAITING_FOR

migrate_ids gives every task heading (one with a status or the PROJECT
marker) a valid TASK_ID and an ``ID::`` link. A valid ID is never rewritten,
so duplicated IDs are left for the duplicates report.
"""

import logging
import re
from collections import Counter
from pathlib import Path
from typing import List, Optional

from org_gtd.document import Document
from org_gtd.errors import OrgGtdError, StructuralError
from org_gtd.models.outline import Heading, PlanningKind, Status
from org_gtd.parsers.outline import find_link_ids, parse_planning
from org_gtd.parsers.scanner import active_outline_files, is_archive_file
from org_gtd.utils.dates import is_valid_org_timestamp
from org_gtd.utils.ids import normalize_task_id, task_id_timestamp
from org_gtd.workflow.common import error_result
from org_gtd.workspace import Workspace

log = logging.getLogger(__name__)

SEVERITIES = ("error", "warning", "info")

_PROGRESS_COOKIE_RE = re.compile(r"^\[\d+/\d+\]$")


def _target_files(workspace: Workspace, file: Optional[str]) -> List[Path]:
    return [Path(file)] if file else active_outline_files(workspace.config)


def _well_formed_id(raw: str) -> bool:
    normalized = normalize_task_id(raw)
    return normalized is not None and task_id_timestamp(normalized) is not None


# ---------------------------------------------------------------------------
# Audit
# ---------------------------------------------------------------------------


def audit_heading(doc: Document, start: int, heading: Heading) -> List[dict]:
    """Issues for one heading, without file information."""
    issues: List[dict] = []

    def add(severity: str, code: str, message: str) -> None:
        issues.append(
            {
                "line": start + 1,
                "title": heading.title,
                "severity": severity,
                "code": code,
                "message": message,
            }
        )

    try:
        props = doc.properties(start)
    except StructuralError as e:
        add("error", "structure", str(e))
        props = {}

    raw_id = (props.get("TASK_ID") or "").strip()
    if raw_id:
        if not _well_formed_id(raw_id):
            add("error", "invalid_id", f"Invalid TASK_ID {raw_id!r}")
    elif heading.status and not heading.is_completed:
        add("info", "missing_id", "Task has no TASK_ID")

    planned: Counter = Counter()
    for line in doc.lines[start + 1:doc.section_end(start)]:
        planning = parse_planning(line)
        if planning is None:
            continue
        for entry in planning.entries:
            planned[entry.kind] += 1
            if not is_valid_org_timestamp(entry.timestamp):
                message = f"{entry.kind} {entry.timestamp} is not a valid timestamp"
                add("warning", "bad_timestamp", message)
    for kind, count in sorted(planned.items()):
        if count > 1:
            add("error", "duplicate_planning", f"{count} {kind} entries")

    follow_up = props.get("FOLLOW_UP")
    if follow_up and not is_valid_org_timestamp(follow_up):
        add("warning", "bad_timestamp", f"FOLLOW_UP {follow_up} is not a valid timestamp")

    scheduled = planned[PlanningKind.SCHEDULED.value] > 0
    deadline = planned[PlanningKind.DEADLINE.value] > 0
    if heading.project and not _PROGRESS_COOKIE_RE.match(heading.cookie or ""):
        add("warning", "project_cookie", "PROJECT missing progress cookie [n/m]")
    if heading.status == Status.NEXT.value and not (scheduled or deadline):
        add("info", "next_undated", "NEXT without SCHEDULED or DEADLINE")
    if heading.status == Status.WAITING.value and not (
        scheduled or follow_up or props.get("WAITING_FOR")
    ):
        add("info", "waiting_context", "WAITING without a follow-up date or WAITING_FOR")
    return issues


def audit_outlines(workspace: Workspace, file: Optional[str] = None) -> dict:
    """
    Check one file, or every non-archive outline file under the root.

    Read-only. Returns a dict with the issues in file and line order and a
    per-severity summary.
    """
    if file and not Path(file).is_file():
        return error_result(f"File not found: {file}")
    files = _target_files(workspace, file)
    issues: List[dict] = []
    for path in files:
        doc = Document.load(path)
        for i, heading in doc.headings():
            for issue in audit_heading(doc, i, heading):
                issues.append({"file": str(path), **issue})

    summary = Counter(issue["severity"] for issue in issues)
    log.info("Audited %d file(s), %d issue(s)", len(files), len(issues))
    return {
        "status": "success",
        "files": len(files),
        "count": len(issues),
        "summary": {severity: summary.get(severity, 0) for severity in SEVERITIES},
        "issues": issues,
    }


# ---------------------------------------------------------------------------
# ID migration
# ---------------------------------------------------------------------------


def _section_link_id(doc: Document, start: int) -> Optional[str]:
    """First well-formed ID linked from the heading's own section."""
    for line in doc.lines[start:doc.section_end(start)]:
        for found in find_link_ids(line):
            if _well_formed_id(found):
                return found
    return None


def migrate_heading(workspace: Workspace, doc: Document, start: int) -> List[str]:
    """
    Give the heading a valid TASK_ID and an ID:: link.

    An existing ID is kept when valid, unwrapped when it is a wrapped valid
    ID, and otherwise replaced by the ID of a link in the section or a new
    one. Returns the actions taken ("assigned", "normalized", "replaced",
    "linked").
    """
    actions: List[str] = []
    raw_id = (doc.get_property(start, "TASK_ID") or "").strip()
    normalized = normalize_task_id(raw_id) if raw_id else None

    if normalized and _well_formed_id(normalized):
        task_id = normalized
        if normalized != raw_id:
            doc.set_property(start, "TASK_ID", task_id)
            actions.append("normalized")
    else:
        task_id = _section_link_id(doc, start) or workspace.new_task_id()
        doc.set_property(start, "TASK_ID", task_id)
        actions.append("replaced" if raw_id else "assigned")

    if doc.ensure_link(start, task_id):
        actions.append("linked")
    return actions


def migrate_ids(workspace: Workspace, file: Optional[str] = None, dry_run: bool = False) -> dict:
    """
    Assign or repair TASK_IDs and ID:: links across one file or the whole tree.

    Headings with a broken drawer are skipped and reported. With dry_run the
    changes are computed but no file is written. Line numbers refer to the
    migrated file.
    """
    if file and not Path(file).is_file():
        return error_result(f"File not found: {file}")
    if file and is_archive_file(Path(file), workspace.config):
        return error_result(f"{file} is an archive file")

    changes: List[dict] = []
    skipped: List[dict] = []
    written = 0
    try:
        for path in _target_files(workspace, file):
            doc = Document.load(path)
            i = 0
            # Inserted drawer and link lines are never headings, so a forward walk stays valid
            while i < len(doc.lines):
                heading = doc.heading_at(i)
                if heading is not None and (heading.status or heading.project):
                    try:
                        actions = migrate_heading(workspace, doc, i)
                    except StructuralError as e:
                        log.warning("%s: %s", path, e)
                        skipped.append(
                            {"file": str(path), "line": i + 1, "title": heading.title, "reason": str(e)}
                        )
                        actions = []
                    if actions:
                        changes.append(
                            {
                                "file": str(path),
                                "line": i + 1,
                                "title": heading.title,
                                "task_id": doc.get_property(i, "TASK_ID"),
                                "actions": actions,
                            }
                        )
                i += 1
            if doc.is_modified and not dry_run:
                doc.save()
                written += 1
    except (OrgGtdError, OSError) as e:
        return error_result(f"Migration failed: {e}", changes=changes)

    verb = "Would update" if dry_run else "Updated"
    log.info("%s %d heading(s) in %d file(s)", verb, len(changes), written)
    return {
        "status": "success",
        "dry_run": dry_run,
        "count": len(changes),
        "files_written": written,
        "changes": changes,
        "skipped": skipped,
        "message": f"{verb} {len(changes)} heading(s)",
    }
