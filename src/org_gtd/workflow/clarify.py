"""
Clarify: turn a heading (or a raw line) into a fully identified task.

find heading (or promote the line) → ensure drawer → ensure TASK_ID → set
status and fields → ensure identifier link → write back.
"""

import logging
from pathlib import Path
from typing import Dict, Optional

from org_gtd.document import Document
from org_gtd.errors import OrgGtdError
from org_gtd.utils.dates import to_timestamp
from org_gtd.workflow.common import error_result, resolve_heading
from org_gtd.workspace import Workspace

log = logging.getLogger(__name__)


def clarify(
    workspace: Workspace,
    file: str,
    line: Optional[int] = None,
    *,
    task_id: Optional[str] = None,
    status: Optional[str] = None,
    promote: bool = False,
    title: Optional[str] = None,
    scheduled: Optional[str] = None,
    deadline: Optional[str] = None,
    note: Optional[str] = None,
    expected_outcome: Optional[str] = None,
    next_action: Optional[str] = None,
    waiting_for: Optional[str] = None,
    follow_up: Optional[str] = None,
) -> dict:
    """
    Clarify the task at a 1-based line (or with a given TASK_ID).

    Fields that fail validation are reported under "failed" and skipped; the
    rest are still written ("partial"). Structural problems abort before any
    write ("error").
    """
    path = Path(file)
    doc = Document.load(path)

    try:
        if task_id:
            start = resolve_heading(doc, task_id=task_id)
        elif line is not None:
            start = doc.locate(line - 1, promote=promote, title=title, default_status=status or "TODO")
        else:
            return error_result("A line or task_id is required")

        doc.ensure_drawer(start)
        existing_id = (doc.get_property(start, "TASK_ID") or "").strip()
        tid = existing_id or workspace.new_task_id()
        if not existing_id:
            doc.set_property(start, "TASK_ID", tid)

        properties: Dict[str, str] = {}
        failed: Dict[str, str] = {}
        if expected_outcome:
            properties["EXPECTED_OUTCOME"] = expected_outcome
        if next_action:
            properties["NEXT_ACTION"] = next_action
        if waiting_for:
            properties["WAITING_FOR"] = waiting_for
        if follow_up:
            stamp = to_timestamp(follow_up)
            if stamp is None:
                failed["follow_up"] = f"invalid date {follow_up!r}"
            else:
                properties["FOLLOW_UP"] = stamp
        note_link = None
        if not doc.get_property(start, "ZK_NOTE"):
            note_link = workspace.linker.link_for(tid)
            if note_link:
                properties["ZK_NOTE"] = note_link

        report = doc.apply(
            start,
            status=status,
            properties=properties,
            scheduled=scheduled,
            deadline=deadline,
            note=note,
            link=tid,
        )
        failed.update(report.failed)
        doc.save()
    except (OrgGtdError, OSError) as e:
        return error_result(f"Clarify failed in {path}: {e}")
    if note_link:
        workspace.linker.create_note(tid, doc.heading_at(start).title)

    log.info("Clarified %s at %s:%d", tid, path, start + 1)
    return {
        "status": "partial" if failed else "success",
        "message": f"Clarified (ID {tid})",
        "task_id": tid,
        "file": str(path),
        "line": start + 1,
        "failed": failed,
    }
