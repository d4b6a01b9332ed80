"""REST API routes for org-gtd."""

from typing import List, Optional

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel

from org_gtd.api.handlers import (
    handle_archive,
    handle_archive_completed,
    handle_audit,
    handle_capture,
    handle_clarify,
    handle_complete,
    handle_convert,
    handle_destinations,
    handle_duplicates,
    handle_export,
    handle_import,
    handle_migrate_ids,
    handle_refile,
    handle_scan,
    handle_task_get,
)


# ---------------------------------------------------------------------------
# Request body models
# ---------------------------------------------------------------------------


class CaptureBody(BaseModel):
    title: str
    status: str = "TODO"
    tags: List[str] = []
    scheduled: Optional[str] = None
    deadline: Optional[str] = None
    area: Optional[str] = None
    file: Optional[str] = None
    force: bool = False


class ClarifyBody(BaseModel):
    file: str
    line: Optional[int] = None
    task_id: Optional[str] = None
    status: Optional[str] = None
    promote: bool = False
    title: Optional[str] = None
    scheduled: Optional[str] = None
    deadline: Optional[str] = None
    note: Optional[str] = None
    expected_outcome: Optional[str] = None
    next_action: Optional[str] = None
    waiting_for: Optional[str] = None
    follow_up: Optional[str] = None


class RefileBody(BaseModel):
    source: str
    dest: str
    task_id: Optional[str] = None
    line: Optional[int] = None


class ArchiveBody(BaseModel):
    file: str
    task_id: Optional[str] = None
    line: Optional[int] = None
    mark_done: bool = True


class ArchiveCompletedBody(BaseModel):
    file: Optional[str] = None
    dry_run: bool = False


class ConvertBody(BaseModel):
    file: str
    task_id: Optional[str] = None
    line: Optional[int] = None
    title: Optional[str] = None
    description: Optional[str] = None
    area: Optional[str] = None
    original: str = "move"


class MigrateIdsBody(BaseModel):
    file: Optional[str] = None
    dry_run: bool = False


class ExportBody(BaseModel):
    file: Optional[str] = None


def _raise_for(result: dict) -> dict:
    if "error" in result:
        status_code = 404 if "not found" in result["error"] else 400
        raise HTTPException(status_code=status_code, detail=result["error"])
    return result


# ---------------------------------------------------------------------------
# Route registration
# ---------------------------------------------------------------------------


def register_routes(app_router: APIRouter, workspace) -> None:
    """Attach all REST routes that use the shared workspace."""

    # --- Read-only ---

    @app_router.get("/tasks")
    def list_tasks(
        status: Optional[str] = Query(None),
        actionable: bool = Query(True),
        include_projects: bool = Query(True),
        container: Optional[str] = Query(None),
        file: Optional[str] = Query(None),
        limit: int = Query(200),
    ):
        result = handle_scan(
            workspace,
            status=status,
            actionable=actionable,
            include_projects=include_projects,
            container=container,
            file=file,
            limit=limit,
        )
        if isinstance(result, dict):
            _raise_for(result)
        return result

    @app_router.get("/tasks/duplicates")
    def get_duplicates():
        return handle_duplicates(workspace)

    @app_router.get("/tasks/{task_id}")
    def get_task(task_id: str):
        result = handle_task_get(workspace, task_id=task_id)
        if "error" in result:
            raise HTTPException(status_code=404, detail=result["error"])
        return result

    @app_router.get("/destinations")
    def get_destinations():
        return handle_destinations(workspace)

    @app_router.get("/audit")
    def get_audit(file: Optional[str] = Query(None)):
        return _raise_for(handle_audit(workspace, file=file))

    # --- Workflow ---

    @app_router.post("/capture", status_code=201)
    def capture_task(body: CaptureBody):
        try:
            result = handle_capture(workspace, **body.model_dump())
        except Exception as e:
            raise HTTPException(status_code=400, detail=str(e))
        if result.get("status") == "duplicate":
            raise HTTPException(status_code=409, detail=result["message"])
        return _raise_for(result)

    @app_router.post("/clarify")
    def clarify_task(body: ClarifyBody):
        try:
            result = handle_clarify(workspace, **body.model_dump())
        except Exception as e:
            raise HTTPException(status_code=400, detail=str(e))
        return _raise_for(result)

    @app_router.post("/refile")
    def refile_task(body: RefileBody):
        return _raise_for(handle_refile(workspace, **body.model_dump()))

    @app_router.post("/archive")
    def archive_one(body: ArchiveBody):
        return _raise_for(handle_archive(workspace, **body.model_dump()))

    @app_router.post("/archive/completed")
    def archive_done(body: ArchiveCompletedBody):
        return _raise_for(handle_archive_completed(workspace, **body.model_dump()))

    @app_router.post("/projects", status_code=201)
    def convert_task(body: ConvertBody):
        return _raise_for(handle_convert(workspace, **body.model_dump()))

    @app_router.post("/migrate-ids")
    def migrate_task_ids(body: MigrateIdsBody):
        return _raise_for(handle_migrate_ids(workspace, **body.model_dump()))

    # --- Sync ---

    @app_router.post("/sync/{adapter}/export")
    def sync_export(adapter: str, body: ExportBody):
        return _raise_for(handle_export(workspace, adapter=adapter, file=body.file))

    @app_router.post("/sync/{adapter}/import")
    def sync_import(adapter: str):
        return _raise_for(handle_import(workspace, adapter=adapter))

    @app_router.post("/sync/{adapter}/complete")
    def sync_complete(adapter: str):
        return _raise_for(handle_complete(workspace, adapter=adapter))
