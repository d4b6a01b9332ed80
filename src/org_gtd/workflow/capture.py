"""
Capture: append a new task to the inbox (or a given file).

The new heading gets a fresh TASK_ID, its STATUS mirror, optional AREA and
dates, and an identifier link line, all written through the document model.
"""

import logging
import re
from pathlib import Path
from typing import Iterable, Optional

from org_gtd.document import Document
from org_gtd.errors import OrgGtdError
from org_gtd.models.outline import STATUS_KEYWORDS, Heading
from org_gtd.parsers.outline import render_heading
from org_gtd.parsers.scanner import find_similar_task
from org_gtd.workflow.common import error_result
from org_gtd.workspace import Workspace

log = logging.getLogger(__name__)

_TAG_RE = re.compile(r"^[\w@#%]+$")


def capture(
    workspace: Workspace,
    title: str,
    *,
    status: str = "TODO",
    tags: Iterable[str] = (),
    scheduled: Optional[str] = None,
    deadline: Optional[str] = None,
    area: Optional[str] = None,
    file: Optional[str] = None,
    force: bool = False,
) -> dict:
    """
    Capture a task.

    Args:
        workspace: Configured workspace
        title: Task title (required)
        status: Initial status keyword
        tags: Heading tags
        scheduled: SCHEDULED date (YYYY-MM-DD[ HH:MM])
        deadline: DEADLINE date (YYYY-MM-DD)
        area: Stored in the AREA property
        file: Target file (defaults to the inbox)
        force: Capture even when a similar open task exists

    Returns:
        Dict with status ("success", "partial", "duplicate" or "error"),
        message, and on success task_id/file/line
    """
    title = (title or "").strip()
    if not title:
        return error_result("Title is required")
    if status not in STATUS_KEYWORDS:
        return error_result(f"Unknown status '{status}'")
    tags = [t.strip() for t in tags if t and t.strip()]
    bad_tags = [t for t in tags if not _TAG_RE.match(t)]
    if bad_tags:
        return error_result(f"Invalid tags: {', '.join(bad_tags)}")

    config = workspace.config
    if not force:
        similar = find_similar_task(config, title)
        if similar is not None:
            return {
                "status": "duplicate",
                "message": f"Similar task already exists: {similar.ref}",
                "existing": similar.to_dict(),
            }

    target = Path(file) if file else config.inbox_path
    doc = Document.load(target)
    start = doc.append_block([render_heading(Heading(level=1, title=title, status=status, tags=tags))])

    task_id = workspace.new_task_id()
    properties = {"TASK_ID": task_id}
    if area:
        properties["AREA"] = area
    note_link = workspace.linker.link_for(task_id)
    if note_link:
        properties["ZK_NOTE"] = note_link

    try:
        report = doc.apply(
            start,
            status=status,
            properties=properties,
            scheduled=scheduled,
            deadline=deadline,
            link=task_id,
        )
        doc.save()
    except (OrgGtdError, OSError) as e:
        return error_result(f"Could not capture into {target}: {e}")
    if note_link:
        workspace.linker.create_note(task_id, title)

    log.info("Captured '%s' as %s in %s", title, task_id, target)
    return {
        "status": "success" if report.ok else "partial",
        "message": f"Captured '{title}'",
        "task_id": task_id,
        "file": str(target),
        "line": start + 1,
        "failed": report.failed,
    }
