"""
Handler functions shared by the MCP tools, the REST API and the CLI.

Each handle_* takes the Workspace plus keyword arguments and returns a
JSON-serializable dict (or list). Failures come back as {"error": message}.
"""

import logging
from pathlib import Path
from typing import List, Optional, Union

from org_gtd.adapters.sync import export_tasks, import_items, sync_completion
from org_gtd.models.record import Container
from org_gtd.parsers.scanner import ScanFilter, scan, sort_actionable
from org_gtd.utils.dates import parse_natural_date, to_timestamp
from org_gtd.utils.ids import find_all_duplicates, index_task_ids
from org_gtd.workflow import (
    archive_completed,
    archive_task,
    audit_outlines,
    capture,
    clarify,
    convert_to_project,
    list_destinations,
    migrate_ids,
    refile,
)
from org_gtd.workspace import Workspace

log = logging.getLogger(__name__)


def _date_arg(value: Optional[str]) -> Optional[str]:
    """Accept 'YYYY-MM-DD[ HH:MM]', '-' or natural input like 'tomorrow'."""
    if value is None or value == "-" or to_timestamp(value):
        return value
    return parse_natural_date(value) or value


def _split(value: Union[str, List[str], None]) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    return [part.strip() for part in value if part and part.strip()]


def _result(result: dict) -> dict:
    if result.get("status") == "error":
        return {"error": result["message"]}
    return result


# ---------------------------------------------------------------------------
# Read-only
# ---------------------------------------------------------------------------


def handle_scan(
    workspace: Workspace,
    *,
    status: Optional[str] = None,
    actionable: bool = True,
    include_projects: bool = True,
    container: Optional[str] = None,
    file: Optional[str] = None,
    limit: int = 200,
) -> Union[list, dict]:
    config = workspace.config
    try:
        wanted = Container(container) if container else None
    except ValueError:
        return {"error": f"Unknown container '{container}'"}
    statuses = set(_split(status)) or None
    filters = ScanFilter(
        actionable_only=actionable,
        statuses=statuses,
        include_projects=include_projects,
        container=wanted,
        file=Path(file) if file else None,
    )
    records = scan(config.root, filters, config=config)
    if actionable:
        records = sort_actionable(records)
    return [r.to_dict() for r in records[:limit]]


def handle_task_get(workspace: Workspace, *, task_id: str) -> dict:
    config = workspace.config
    index = index_task_ids(config.root, config.exclude_dirs)
    entries = index.get(task_id)
    if not entries:
        return {"error": f"Task '{task_id}' not found"}
    return {"task_id": task_id, "locations": entries}


def handle_duplicates(workspace: Workspace) -> dict:
    config = workspace.config
    duplicates = find_all_duplicates(config.root, config.exclude_dirs)
    return {"count": len(duplicates), "duplicates": duplicates}


def handle_destinations(workspace: Workspace) -> list:
    return list_destinations(workspace)


def handle_audit(workspace: Workspace, *, file: Optional[str] = None) -> dict:
    return _result(audit_outlines(workspace, file=file))


# ---------------------------------------------------------------------------
# Workflow commands
# ---------------------------------------------------------------------------


def handle_capture(
    workspace: Workspace,
    *,
    title: str,
    status: str = "TODO",
    tags: Union[str, List[str], None] = None,
    scheduled: Optional[str] = None,
    deadline: Optional[str] = None,
    area: Optional[str] = None,
    file: Optional[str] = None,
    force: bool = False,
) -> dict:
    return _result(
        capture(
            workspace,
            title,
            status=status,
            tags=_split(tags),
            scheduled=_date_arg(scheduled),
            deadline=_date_arg(deadline),
            area=area,
            file=file,
            force=force,
        )
    )


def handle_clarify(
    workspace: Workspace,
    *,
    file: str,
    line: Optional[int] = None,
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
    return _result(
        clarify(
            workspace,
            file,
            line,
            task_id=task_id,
            status=status,
            promote=promote,
            title=title,
            scheduled=_date_arg(scheduled),
            deadline=_date_arg(deadline),
            note=note,
            expected_outcome=expected_outcome,
            next_action=next_action,
            waiting_for=waiting_for,
            follow_up=_date_arg(follow_up),
        )
    )


def handle_refile(
    workspace: Workspace,
    *,
    source: str,
    dest: str,
    task_id: Optional[str] = None,
    line: Optional[int] = None,
) -> dict:
    return _result(refile(workspace, source, dest, task_id=task_id, line=line))


def handle_archive(
    workspace: Workspace,
    *,
    file: str,
    task_id: Optional[str] = None,
    line: Optional[int] = None,
    mark_done: bool = True,
) -> dict:
    return _result(archive_task(workspace, file, task_id=task_id, line=line, mark_done=mark_done))


def handle_archive_completed(
    workspace: Workspace, *, file: Optional[str] = None, dry_run: bool = False
) -> dict:
    return _result(archive_completed(workspace, file=file, dry_run=dry_run))


def handle_convert(
    workspace: Workspace,
    *,
    file: str,
    task_id: Optional[str] = None,
    line: Optional[int] = None,
    title: Optional[str] = None,
    description: Optional[str] = None,
    area: Optional[str] = None,
    original: str = "move",
) -> dict:
    return _result(
        convert_to_project(
            workspace,
            file,
            task_id=task_id,
            line=line,
            title=title,
            description=description,
            area=area,
            original=original,
        )
    )


def handle_migrate_ids(
    workspace: Workspace, *, file: Optional[str] = None, dry_run: bool = False
) -> dict:
    return _result(migrate_ids(workspace, file=file, dry_run=dry_run))


# ---------------------------------------------------------------------------
# Sync
# ---------------------------------------------------------------------------


def _adapter_or_error(workspace: Workspace, name: str):
    adapter = workspace.adapter(name)
    if adapter is None:
        return None, {"error": f"{name} sync is not enabled"}
    return adapter, None


def handle_export(workspace: Workspace, *, adapter: str, file: Optional[str] = None) -> dict:
    target, error = _adapter_or_error(workspace, adapter)
    if error:
        return error
    return export_tasks(workspace, target, file=file)


def handle_import(workspace: Workspace, *, adapter: str) -> dict:
    target, error = _adapter_or_error(workspace, adapter)
    if error:
        return error
    return _result(import_items(workspace, target))


def handle_complete(workspace: Workspace, *, adapter: str) -> dict:
    target, error = _adapter_or_error(workspace, adapter)
    if error:
        return error
    return sync_completion(workspace, target)
