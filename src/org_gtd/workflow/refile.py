"""
Organize: list refile destinations and move a task subtree between files.

The destination is written before the source is trimmed, so a failure in
between leaves a copy in both files rather than losing the task.
"""

import logging
from pathlib import Path
from typing import List, Optional

from org_gtd.document import Document
from org_gtd.errors import OrgGtdError
from org_gtd.models.record import Container
from org_gtd.parsers.scanner import classify_container, iter_outline_files
from org_gtd.workflow.common import error_result, resolve_heading
from org_gtd.workspace import Workspace

log = logging.getLogger(__name__)

_CATEGORIES = {
    Container.PROJECT: "project",
    Container.AREA: "area",
}


def list_destinations(workspace: Workspace) -> List[dict]:
    """Non-archived outline files, categorized as gtd / project / area."""
    config = workspace.config
    destinations = []
    for path in iter_outline_files(config.root, config.exclude_dirs):
        container = classify_container(path, config)
        if container == Container.ARCHIVE:
            continue
        destinations.append(
            {
                "file": str(path),
                "name": path.relative_to(config.root).as_posix(),
                "category": _CATEGORIES.get(container, "gtd"),
            }
        )
    return destinations


def refile(
    workspace: Workspace,
    source: str,
    dest: str,
    *,
    task_id: Optional[str] = None,
    line: Optional[int] = None,
) -> dict:
    """Move a task subtree from source to the end of dest as a top-level heading."""
    src_path, dest_path = Path(source), Path(dest)
    if src_path.resolve() == dest_path.resolve():
        return error_result("Source and destination are the same file")

    src = Document.load(src_path)
    try:
        start = resolve_heading(src, task_id=task_id, line=line)
        title = src.heading_at(start).title
        block = Document.relevel(src.subtree_lines(start), 1)

        dst = Document.load(dest_path)
        first = dst.append_block(block)
        dst.save()

        src.remove_subtree(start)
        src.save()
    except (OrgGtdError, OSError) as e:
        return error_result(f"Refile failed: {e}")

    log.info("Refiled '%s' from %s to %s", title, src_path, dest_path)
    return {
        "status": "success",
        "message": f"Refiled '{title}' to {dest_path.name}",
        "file": str(dest_path),
        "line": first + 1,
    }
