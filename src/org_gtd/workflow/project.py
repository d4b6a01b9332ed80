"""
Convert a task into a project file.

The project lands in ``<projects_dir>[/<area>]/<slug>.org``:

    * PROJECT <title> [0/0]
    :PROPERTIES:
    :TASK_ID: <new id>
    :CONVERTED_FROM: <task id or file:line>
    :DESCRIPTION: <one line>
    :END:
    SCHEDULED: ... DEADLINE: ...        (copied from the task)
    ID:: [[zk:<new id>]]

    ** NEXT <first action>

What happens to the original task depends on ``original``:
  - move: it becomes the project's first NEXT action and leaves the source
  - done: it is marked DONE with a note linking the project
  - keep: it is left untouched
"""

import logging
import re
from pathlib import Path
from typing import Dict, Optional

from org_gtd.document import Document
from org_gtd.errors import OrgGtdError
from org_gtd.models.outline import Heading, PlanningKind, Status
from org_gtd.parsers.outline import render_heading
from org_gtd.workflow.common import error_result, resolve_heading
from org_gtd.workspace import Workspace

log = logging.getLogger(__name__)

ORIGINAL_MODES = ("move", "done", "keep")
PROJECT_COOKIE = "[0/0]"


def slugify(title: str) -> str:
    slug = re.sub(r"[^\w]+", "-", title.lower()).strip("-_")
    return slug or "project"


def _one_line(lines) -> Optional[str]:
    text = " ".join(line.strip() for line in lines if line.strip())
    return text or None


def project_path(workspace: Workspace, title: str, area: Optional[str] = None) -> Path:
    base = workspace.config.projects_path
    if area:
        base = base / area
    return base / f"{slugify(title)}.org"


def convert_to_project(
    workspace: Workspace,
    file: str,
    *,
    task_id: Optional[str] = None,
    line: Optional[int] = None,
    title: Optional[str] = None,
    description: Optional[str] = None,
    area: Optional[str] = None,
    original: str = "move",
    first_action: str = "First step",
) -> dict:
    """
    Create a project file from the task at line (or with task_id).

    Args:
        workspace: Configured workspace
        file: Source outline file
        task_id: TASK_ID of the task
        line: 1-based line inside the task
        title: Project title (defaults to the task title)
        description: One-line description (defaults to the task body)
        area: Subdirectory of the projects directory, also stored as AREA
        original: "move", "done" or "keep"
        first_action: Title of the NEXT action added when the task is not moved

    Returns:
        Dict with status, message, file and task_id
    """
    if original not in ORIGINAL_MODES:
        return error_result(f"Unknown mode '{original}', expected one of {', '.join(ORIGINAL_MODES)}")

    src_path = Path(file)
    src = Document.load(src_path)
    try:
        start = resolve_heading(src, task_id=task_id, line=line)
        heading = src.heading_at(start)
        if heading.project:
            return error_result(f"'{heading.title}' is already a project")

        project_title = (title or heading.title).strip()
        if not project_title:
            return error_result("Project title is required")
        dest = project_path(workspace, project_title, area)
        if dest.exists():
            return error_result(f"Project file already exists: {dest}")

        source_id = (src.get_property(start, "TASK_ID") or "").strip()
        scheduled = src.get_schedule(start, PlanningKind.SCHEDULED.value)
        deadline = src.get_schedule(start, PlanningKind.DEADLINE.value)

        new_id = workspace.new_task_id()
        properties: Dict[str, str] = {
            "TASK_ID": new_id,
            "CONVERTED_FROM": source_id or f"{src_path.as_posix()}:{start + 1}",
        }
        if area:
            properties["AREA"] = area
        note_link = workspace.linker.link_for(new_id)
        if note_link:
            properties["ZK_NOTE"] = note_link
        summary = _one_line([description]) if description else _one_line(src.body(start))
        if summary:
            properties["DESCRIPTION"] = summary

        project = Document(dest)
        top = project.append_block(
            [render_heading(Heading(level=1, title=project_title, project=True, cookie=PROJECT_COOKIE))]
        )
        report = project.apply(
            top,
            properties=properties,
            scheduled=scheduled.timestamp if scheduled else None,
            deadline=deadline.timestamp if deadline else None,
            link=new_id,
        )

        if original == "move":
            moved = Document(lines=Document.relevel(src.subtree_lines(start), 2))
            moved.set_status(0, Status.NEXT.value)
            project.append_block(moved.lines)
        else:
            project.append_block([render_heading(Heading(level=2, title=first_action, status=Status.NEXT.value))])

        project.save()

        if original == "move":
            src.remove_subtree(start)
            src.save()
        elif original == "done":
            src.set_status(start, Status.DONE.value)
            src.append_note(start, f"Converted to project [[file:{dest.as_posix()}][{project_title}]]")
            src.save()
    except (OrgGtdError, OSError) as e:
        return error_result(f"Convert failed: {e}")
    if note_link:
        workspace.linker.create_note(new_id, project_title)

    log.info("Converted '%s' to project %s", heading.title, dest)
    return {
        "status": "success" if report.ok else "partial",
        "message": f"Created project '{project_title}'",
        "file": str(dest),
        "task_id": new_id,
        "failed": report.failed,
    }
