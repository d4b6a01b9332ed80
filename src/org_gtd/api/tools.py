"""MCP tool registration for org-gtd."""

import json
import logging
from typing import Optional

from mcp.server.fastmcp import FastMCP

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

log = logging.getLogger(__name__)


def register_tools(mcp: FastMCP, workspace) -> None:
    """Register all MCP tools onto the FastMCP instance."""

    # ------------------------------------------------------------------
    # Read-only tools
    # ------------------------------------------------------------------

    @mcp.tool()
    def gtd_scan(
        status: Optional[str] = None,
        actionable: bool = True,
        include_projects: bool = True,
        container: Optional[str] = None,
        file: Optional[str] = None,
        limit: int = 200,
    ) -> str:
        """
        List tasks across the GTD tree.

        With actionable=True (default), archive files and DONE/CANCELLED
        headings are left out and results come back in priority order:
        NEXT, then TODO and projects, then WAITING, inbox items, SOMEDAY.
        Overdue or imminent deadlines move a task up.

        Args:
            status: Comma-separated status keywords to include (e.g. "NEXT,TODO")
            actionable: Only open tasks outside archive files
            include_projects: Include PROJECT headings
            container: One of "inbox", "project", "area", "archive", "other"
            file: Restrict to a single .org file
            limit: Maximum number of results (default 200)

        Returns:
            JSON array of task records
        """
        return json.dumps(
            handle_scan(
                workspace,
                status=status,
                actionable=actionable,
                include_projects=include_projects,
                container=container,
                file=file,
                limit=limit,
            ),
            indent=2,
        )

    @mcp.tool()
    def gtd_task_get(task_id: str) -> str:
        """
        Find where a TASK_ID lives.

        Args:
            task_id: Timestamp identifier, e.g. "20250101120000" or "20250101120000a"

        Returns:
            JSON object with every file/line carrying the id, or error message
        """
        return json.dumps(handle_task_get(workspace, task_id=task_id), indent=2)

    @mcp.tool()
    def gtd_duplicates() -> str:
        """
        Report TASK_IDs used by more than one heading. Nothing is changed.

        Returns:
            JSON object with count and a map of id to locations
        """
        return json.dumps(handle_duplicates(workspace), indent=2)

    @mcp.tool()
    def gtd_destinations() -> str:
        """
        List files a task can be refiled to.

        Returns:
            JSON array of {file, name, category} where category is gtd, project or area
        """
        return json.dumps(handle_destinations(workspace), indent=2)

    @mcp.tool()
    def gtd_audit(file: Optional[str] = None) -> str:
        """
        Check outline files for GTD hygiene problems without changing them.

        Reports broken drawers, malformed TASK_IDs, open tasks without an ID,
        duplicate or wrong-weekday timestamps, projects without an [n/m]
        cookie, undated NEXT tasks and WAITING tasks without follow-up context.

        Args:
            file: Only this file (default: every non-archive file)

        Returns:
            JSON object with count, a per-severity summary and the issues
        """
        return json.dumps(handle_audit(workspace, file=file), indent=2)

    # ------------------------------------------------------------------
    # Workflow tools
    # ------------------------------------------------------------------

    @mcp.tool()
    def gtd_capture(
        title: str,
        status: str = "TODO",
        tags: Optional[str] = None,
        scheduled: Optional[str] = None,
        deadline: Optional[str] = None,
        area: Optional[str] = None,
        file: Optional[str] = None,
        force: bool = False,
    ) -> str:
        """
        Capture a new task into the inbox.

        The task gets a fresh TASK_ID and an ID:: link line. If an open task
        with the same title already exists the capture is refused with
        status "duplicate" unless force is set.

        Args:
            title: Task title
            status: TODO, NEXT, WAITING or SOMEDAY
            tags: Comma-separated tags
            scheduled: Scheduled date (ISO date, "YYYY-MM-DD HH:MM" or natural language)
            deadline: Deadline date (ISO date or natural language)
            area: Area of responsibility, stored as AREA
            file: Target .org file instead of the inbox
            force: Capture even if a similar task exists

        Returns:
            JSON object with status, task_id, file and line
        """
        try:
            return json.dumps(
                handle_capture(
                    workspace,
                    title=title,
                    status=status,
                    tags=tags,
                    scheduled=scheduled,
                    deadline=deadline,
                    area=area,
                    file=file,
                    force=force,
                ),
                indent=2,
            )
        except Exception as e:
            return json.dumps({"error": str(e)})

    @mcp.tool()
    def gtd_clarify(
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
    ) -> str:
        """
        Clarify a task: make sure it has a drawer, a TASK_ID and a link line,
        then set its status and fields.

        Fields that fail validation are listed under "failed"; the others are
        still written and the status is "partial".

        Args:
            file: Path to the .org file
            line: 1-based line inside the task
            task_id: TASK_ID of the task (instead of line)
            status: New status keyword
            promote: Turn a plain line into a heading when no heading is above it
            title: Heading text when promoting a blank line
            scheduled: SCHEDULED date, or "-" to remove it
            deadline: DEADLINE date, or "-" to remove it
            note: Text added below the task's metadata
            expected_outcome: EXPECTED_OUTCOME property
            next_action: NEXT_ACTION property
            waiting_for: WAITING_FOR property
            follow_up: FOLLOW_UP date

        Returns:
            JSON object with status, task_id and failed fields
        """
        try:
            return json.dumps(
                handle_clarify(
                    workspace,
                    file=file,
                    line=line,
                    task_id=task_id,
                    status=status,
                    promote=promote,
                    title=title,
                    scheduled=scheduled,
                    deadline=deadline,
                    note=note,
                    expected_outcome=expected_outcome,
                    next_action=next_action,
                    waiting_for=waiting_for,
                    follow_up=follow_up,
                ),
                indent=2,
            )
        except Exception as e:
            return json.dumps({"error": str(e)})

    @mcp.tool()
    def gtd_refile(
        source: str,
        dest: str,
        task_id: Optional[str] = None,
        line: Optional[int] = None,
    ) -> str:
        """
        Move a task and its children to the end of another file.

        Args:
            source: File the task is in
            dest: Destination file (see gtd_destinations)
            task_id: TASK_ID of the task
            line: 1-based line inside the task (instead of task_id)

        Returns:
            JSON object with status and the task's new location
        """
        return json.dumps(
            handle_refile(workspace, source=source, dest=dest, task_id=task_id, line=line),
            indent=2,
        )

    @mcp.tool()
    def gtd_archive(
        file: str,
        task_id: Optional[str] = None,
        line: Optional[int] = None,
        mark_done: bool = True,
    ) -> str:
        """
        Move a task into the archive file, marking it DONE first.

        Args:
            file: File the task is in
            task_id: TASK_ID of the task
            line: 1-based line inside the task (instead of task_id)
            mark_done: Set DONE on an open task before archiving

        Returns:
            JSON object with status and message
        """
        return json.dumps(
            handle_archive(workspace, file=file, task_id=task_id, line=line, mark_done=mark_done),
            indent=2,
        )

    @mcp.tool()
    def gtd_archive_completed(file: Optional[str] = None, dry_run: bool = False) -> str:
        """
        Archive every DONE or CANCELLED task.

        Args:
            file: Only this file (default: every non-archive file)
            dry_run: Report what would be archived without changing anything

        Returns:
            JSON object with count and archived tasks
        """
        return json.dumps(handle_archive_completed(workspace, file=file, dry_run=dry_run), indent=2)

    @mcp.tool()
    def gtd_convert_to_project(
        file: str,
        task_id: Optional[str] = None,
        line: Optional[int] = None,
        title: Optional[str] = None,
        description: Optional[str] = None,
        area: Optional[str] = None,
        original: str = "move",
    ) -> str:
        """
        Turn a task into its own project file.

        Args:
            file: File the task is in
            task_id: TASK_ID of the task
            line: 1-based line inside the task (instead of task_id)
            title: Project title (defaults to the task title)
            description: One-line description
            area: Subdirectory under the projects directory
            original: "move" (task becomes the first NEXT action), "done"
                      (task marked DONE with a link) or "keep"

        Returns:
            JSON object with status, the project file and its TASK_ID
        """
        return json.dumps(
            handle_convert(
                workspace,
                file=file,
                task_id=task_id,
                line=line,
                title=title,
                description=description,
                area=area,
                original=original,
            ),
            indent=2,
        )

    @mcp.tool()
    def gtd_migrate_ids(file: Optional[str] = None, dry_run: bool = False) -> str:
        """
        Give every task heading a valid TASK_ID and an ID:: link.

        Valid IDs are kept; wrapped IDs are unwrapped and malformed ones replaced.

        Args:
            file: Only this file (default: every non-archive file)
            dry_run: Report the changes without writing files

        Returns:
            JSON object with count, changes and skipped headings
        """
        return json.dumps(handle_migrate_ids(workspace, file=file, dry_run=dry_run), indent=2)

    # ------------------------------------------------------------------
    # Sync tools
    # ------------------------------------------------------------------

    @mcp.tool()
    def gtd_sync_export(adapter: str, file: Optional[str] = None) -> str:
        """
        Push open tasks to Calendar or Reminders and store the returned ids.

        Args:
            adapter: "calendar" or "reminders"
            file: Only export tasks from this file

        Returns:
            JSON object with created/updated/skipped/failed counts
        """
        return json.dumps(handle_export(workspace, adapter=adapter, file=file), indent=2)

    @mcp.tool()
    def gtd_sync_import(adapter: str) -> str:
        """
        Import events or reminders not yet linked to a task into the inbox.

        Args:
            adapter: "calendar" or "reminders"

        Returns:
            JSON object with imported and skipped counts
        """
        return json.dumps(handle_import(workspace, adapter=adapter), indent=2)

    @mcp.tool()
    def gtd_sync_complete(adapter: str) -> str:
        """
        Mark the external items of DONE tasks complete.

        Args:
            adapter: "reminders" (Calendar events cannot be completed)

        Returns:
            JSON object with completed and failed counts
        """
        return json.dumps(handle_complete(workspace, adapter=adapter), indent=2)
