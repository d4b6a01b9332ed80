"""
Sync operations between outline files and an adapter.

Export and completion read records from the scanner, then write ids back
through the document model. Each file is loaded once and its write-backs are
applied bottom-up, so earlier insertions never shift the lines of later ones.
"""

import logging
import re
from collections import defaultdict
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from org_gtd.adapters.base import ExternalItem, SyncAdapter, SyncItem
from org_gtd.document import Document
from org_gtd.errors import OrgGtdError
from org_gtd.models.outline import Heading, Status
from org_gtd.models.record import TaskRecord
from org_gtd.parsers.outline import render_heading
from org_gtd.parsers.scanner import ScanFilter, scan
from org_gtd.utils.dates import format_timestamp
from org_gtd.workspace import Workspace

log = logging.getLogger(__name__)


def _container_tag(name: str) -> Optional[str]:
    tag = re.sub(r"[^\w]", "", name).upper()
    return tag or None


def _write_back(
    path: Path, updates: List[Tuple[int, Dict[str, str]]], errors: List[str]
) -> None:
    """Apply property updates to one file, highest line first."""
    doc = Document.load(path)
    for line, props in sorted(updates, key=lambda u: u[0], reverse=True):
        try:
            report = doc.apply(line - 1, properties=props)
        except OrgGtdError as e:
            errors.append(f"{path.name}:{line}: {e}")
            continue
        errors.extend(f"{path.name}:{line}: {k}: {v}" for k, v in report.failed.items())
    try:
        doc.save()
    except OSError as e:
        errors.append(f"{path.name}: could not save ({e})")


def export_tasks(workspace: Workspace, adapter: SyncAdapter, file: Optional[str] = None) -> dict:
    """
    Create or update an external item for every open task in a sync state.

    Returns:
        Dict with status ("success" or "partial"), created, updated, skipped,
        failed and errors
    """
    config = workspace.config
    filters = ScanFilter(
        actionable_only=True,
        statuses=set(config.sync_states),
        include_projects=False,
        file=Path(file) if file else None,
    )
    records = scan(config.root, filters, config=config)

    created = updated = skipped = failed = 0
    errors: List[str] = []
    pending: Dict[Path, List[Tuple[int, Dict[str, str]]]] = defaultdict(list)

    for record in records:
        if adapter.requires_date and not (record.scheduled or record.deadline):
            skipped += 1
            continue
        existing = (record.properties.get(adapter.id_property) or "").strip()
        item = SyncItem.from_record(record, existing or None)
        result = adapter.update_event(existing, item) if existing else adapter.create_event(item)
        if not result.ok:
            failed += 1
            errors.append(f"{record.ref}: {result.error}")
            log.warning("%s export failed for %s: %s", adapter.name, record.ref, result.error)
            continue
        if existing:
            updated += 1
            if result.external_id and result.external_id != existing:
                pending[record.path].append((record.line, {adapter.id_property: result.external_id}))
            continue
        created += 1
        props = {adapter.id_property: result.external_id}
        if adapter.container:
            props[adapter.container_property] = adapter.container
        pending[record.path].append((record.line, props))

    for path, updates in pending.items():
        _write_back(path, updates, errors)

    log.info(
        "%s export: %d created, %d updated, %d skipped, %d failed",
        adapter.name, created, updated, skipped, failed,
    )
    return {
        "status": "partial" if errors else "success",
        "created": created,
        "updated": updated,
        "skipped": skipped,
        "failed": failed,
        "errors": errors,
    }


def _known_ids(workspace: Workspace, adapter: SyncAdapter) -> set:
    config = workspace.config
    records = scan(config.root, config=config)
    return {
        r.properties[adapter.id_property].strip()
        for r in records
        if r.properties.get(adapter.id_property)
    }


def _import_lines(
    workspace: Workspace, adapter: SyncAdapter, doc: Document, item: ExternalItem
) -> List[str]:
    status = adapter.import_status(item)
    tag = _container_tag(item.container) if item.container else None
    start = doc.append_block(
        [render_heading(Heading(level=1, title=item.title, status=status, tags=[tag] if tag else []))]
    )
    task_id = workspace.new_task_id()
    props = {"TASK_ID": task_id, adapter.id_property: item.external_id}
    if item.container:
        props[adapter.container_property] = item.container
    if item.location:
        props["LOCATION"] = item.location

    scheduled = deadline = None
    if item.start:
        if item.all_day or not item.start_time:
            deadline = format_timestamp(item.start)
        else:
            scheduled = format_timestamp(item.start, item.start_time)

    report = doc.apply(
        start,
        status=status,
        properties=props,
        scheduled=scheduled,
        deadline=deadline,
        note=item.notes if item.notes and item.notes.strip() else None,
        link=task_id,
    )
    return [f"{item.title}: {k}: {v}" for k, v in report.failed.items()]


def import_items(workspace: Workspace, adapter: SyncAdapter) -> dict:
    """
    Append external items not yet linked to any task to the inbox.

    Completed items and items whose id is already stored are skipped.
    """
    known = _known_ids(workspace, adapter)
    inbox = Document.load(workspace.config.inbox_path)

    imported = skipped = 0
    errors: List[str] = []
    for item in adapter.list_events():
        if item.completed or item.external_id in known or not item.title.strip():
            skipped += 1
            continue
        try:
            errors.extend(_import_lines(workspace, adapter, inbox, item))
        except OrgGtdError as e:
            errors.append(f"{item.title}: {e}")
            continue
        known.add(item.external_id)
        imported += 1

    if imported:
        try:
            inbox.save()
        except OSError as e:
            return {"status": "error", "message": f"Could not save inbox: {e}", "imported": 0, "skipped": skipped}

    log.info("%s import: %d imported, %d skipped", adapter.name, imported, skipped)
    return {
        "status": "partial" if errors else "success",
        "imported": imported,
        "skipped": skipped,
        "errors": errors,
    }


def sync_completion(workspace: Workspace, adapter: SyncAdapter) -> dict:
    """Mark the external item of every DONE task complete."""
    config = workspace.config
    records: List[TaskRecord] = scan(
        config.root, ScanFilter(statuses={Status.DONE.value}), config=config
    )
    completed = failed = 0
    errors: List[str] = []
    for record in records:
        external_id = (record.properties.get(adapter.id_property) or "").strip()
        if not external_id:
            continue
        result = adapter.complete_event(external_id)
        if result.ok:
            completed += 1
        else:
            failed += 1
            errors.append(f"{record.ref}: {result.error}")
            log.warning("%s completion failed for %s: %s", adapter.name, record.ref, result.error)

    log.info("%s completion: %d completed, %d failed", adapter.name, completed, failed)
    return {
        "status": "partial" if failed else "success",
        "completed": completed,
        "failed": failed,
        "errors": errors,
    }
