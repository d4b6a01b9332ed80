"""
Archive: move finished subtrees into the archive file.

Each archived subtree is wrapped in an entry heading:

    * <title> (task|project)
    :PROPERTIES:
    :SOURCE: [[file:<path>::<line>][<name>]]
    :DATE: <timestamp>
    :ARCHIVED_FROM_LINE: <line>
    :END:
    ** DONE <title>
    ...

The archive is saved before the source is trimmed.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Tuple

from org_gtd.document import Document
from org_gtd.errors import OrgGtdError
from org_gtd.models.outline import COMPLETED_STATUSES, Status
from org_gtd.parsers.outline import render_property
from org_gtd.parsers.scanner import active_outline_files, is_archive_file
from org_gtd.utils.dates import format_timestamp
from org_gtd.workflow.common import error_result, resolve_heading
from org_gtd.workspace import Workspace

log = logging.getLogger(__name__)


def archive_entry(doc: Document, start: int, source_line: int, now: datetime) -> List[str]:
    """Build the archive entry for the subtree at start."""
    heading = doc.heading_at(start)
    kind = "project" if heading.project else "task"
    path = doc.path or Path("")
    header = [
        f"* {heading.title} ({kind})",
        ":PROPERTIES:",
        render_property("SOURCE", f"[[file:{path.as_posix()}::{source_line}][{path.name}]]"),
        render_property("DATE", format_timestamp(now.date(), now.strftime("%H:%M"))),
        render_property("ARCHIVED_FROM_LINE", str(source_line)),
        ":END:",
    ]
    return header + Document.relevel(doc.subtree_lines(start), 2)


def _archive_subtree(
    workspace: Workspace,
    doc: Document,
    start: int,
    source_line: int,
    mark_done: bool,
    now: datetime,
) -> str:
    heading = doc.heading_at(start)
    if mark_done and not heading.is_completed:
        doc.set_status(start, Status.DONE.value)

    archive = Document.load(workspace.config.archive_path)
    archive.append_block(archive_entry(doc, start, source_line, now))
    archive.save()

    doc.remove_subtree(start)
    return heading.title


def archive_task(
    workspace: Workspace,
    file: str,
    *,
    task_id: Optional[str] = None,
    line: Optional[int] = None,
    mark_done: bool = True,
    now: Optional[datetime] = None,
) -> dict:
    """
    Archive one task subtree.

    Args:
        workspace: Configured workspace
        file: Source outline file
        task_id: TASK_ID of the task (takes precedence over line)
        line: 1-based line inside the task
        mark_done: Set DONE on an open task before archiving
        now: Timestamp for the DATE property (defaults to local now)

    Returns:
        Dict with status and message
    """
    path = Path(file)
    if is_archive_file(path, workspace.config):
        return error_result("Task is already in the archive file")

    doc = Document.load(path)
    now = now or datetime.now()
    try:
        start = resolve_heading(doc, task_id=task_id, line=line)
        title = _archive_subtree(workspace, doc, start, start + 1, mark_done, now)
        doc.save()
    except (OrgGtdError, OSError) as e:
        return error_result(f"Archive failed: {e}")

    log.info("Archived '%s' from %s", title, path)
    return {"status": "success", "message": f"Archived '{title}'", "title": title}


def _next_completed(doc: Document) -> Optional[int]:
    """
    Index of the first completed heading in document order.

    A completed heading nested under another completed one is never returned
    first: its ancestor comes earlier and is archived with its subtree.
    """
    for i, heading in doc.headings():
        if heading.status in COMPLETED_STATUSES:
            return i
    return None


def _completed_in(doc: Document) -> List[Tuple[int, str]]:
    """(1-based line, title) of every top-most completed subtree, without editing doc."""
    found = []
    i = 0
    while i < len(doc.lines):
        heading = doc.heading_at(i)
        if heading is not None and heading.status in COMPLETED_STATUSES:
            found.append((i + 1, heading.title))
            i = doc.subtree_end(i)
        else:
            i += 1
    return found


def archive_completed(
    workspace: Workspace,
    file: Optional[str] = None,
    dry_run: bool = False,
    now: Optional[datetime] = None,
) -> dict:
    """
    Archive every DONE/CANCELLED subtree in one file, or in every
    non-archived outline file under the root.
    """
    config = workspace.config
    if file:
        if is_archive_file(Path(file), config):
            return error_result(f"{file} is an archive file")
        files = [Path(file)]
    else:
        files = active_outline_files(config)

    now = now or datetime.now()
    archived: List[dict] = []
    try:
        for path in files:
            doc = Document.load(path)
            candidates = _completed_in(doc)
            if not candidates:
                continue
            if dry_run:
                archived.extend({"file": str(path), "line": n, "title": t} for n, t in candidates)
                continue

            # Line numbers refer to the file as it was before this pass
            removed: List[Tuple[int, int]] = []
            while True:
                start = _next_completed(doc)
                if start is None:
                    break
                original = start + sum(size for at, size in removed if at <= start)
                size = doc.subtree_end(start) - start
                title = _archive_subtree(workspace, doc, start, original + 1, False, now)
                removed.append((start, size))
                archived.append({"file": str(path), "line": original + 1, "title": title})
            doc.save()
    except (OrgGtdError, OSError) as e:
        return error_result(f"Archive failed: {e}", archived=archived)

    verb = "Would archive" if dry_run else "Archived"
    log.info("%s %d completed task(s)", verb, len(archived))
    return {
        "status": "success",
        "count": len(archived),
        "archived": archived,
        "message": f"{verb} {len(archived)} completed task(s)",
    }
