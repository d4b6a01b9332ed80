"""
org-gtd - GTD workflow commands for org-mode files

Usage:
    org-gtd capture <title> [options]
    org-gtd clarify <file> [<line>] [options]
    org-gtd refile <source> <dest> (--id ID | --line N)
    org-gtd archive [<file>] [--id ID | --line N | --completed] [--dry-run]
    org-gtd project <file> (--id ID | --line N) [options]
    org-gtd scan [filters]
    org-gtd duplicates
    org-gtd destinations
    org-gtd audit [<file>] [--json]
    org-gtd migrate-ids [<file>] [--dry-run]
    org-gtd calendar {export,import}
    org-gtd reminders {export,import,complete}

Examples:
    org-gtd capture "Buy milk" --scheduled tomorrow --tags errand
    org-gtd clarify Inbox.org 3 --status NEXT --deadline friday
    org-gtd refile Inbox.org Projects/house.org --line 3
    org-gtd archive --completed --dry-run
    org-gtd project Inbox.org --line 3 --area home
    org-gtd --root ~/gtd scan --status NEXT
    org-gtd reminders export
    org-gtd migrate-ids --dry-run
"""

import argparse
import json
import logging
import os
import sys
from pathlib import Path

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
)
from org_gtd.config import GtdConfig
from org_gtd.models.outline import Status
from org_gtd.workspace import Workspace

log = logging.getLogger(__name__)


def _fail(message: str) -> None:
    print(f"Error: {message}")
    sys.exit(1)


def _check(result: dict) -> dict:
    if "error" in result:
        _fail(result["error"])
    return result


def _print_failed(result: dict) -> None:
    for field_name, reason in (result.get("failed") or {}).items():
        print(f"  Skipped {field_name}: {reason}")
    for error in result.get("errors") or []:
        print(f"  {error}")


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def capture_cmd(args):
    result = _check(
        handle_capture(
            args.workspace,
            title=args.title,
            status=args.status,
            tags=args.tags,
            scheduled=args.scheduled,
            deadline=args.deadline,
            area=args.area,
            file=args.file,
            force=args.force,
        )
    )
    if result["status"] == "duplicate":
        print(result["message"])
        print("Use --force to capture anyway.")
        sys.exit(1)
    print(f"Captured: {args.title}")
    print(f"  ID: {result['task_id']}")
    print(f"  File: {result['file']}:{result['line']}")
    _print_failed(result)


def clarify_cmd(args):
    if args.line is None and not args.id:
        _fail("Provide a line number or --id")
    result = _check(
        handle_clarify(
            args.workspace,
            file=args.file,
            line=args.line,
            task_id=args.id,
            status=args.status,
            promote=args.promote,
            title=args.title,
            scheduled=args.scheduled,
            deadline=args.deadline,
            note=args.note,
            expected_outcome=args.outcome,
            next_action=args.next_action,
            waiting_for=args.waiting_for,
            follow_up=args.follow_up,
        )
    )
    print(result["message"])
    _print_failed(result)


def refile_cmd(args):
    result = _check(
        handle_refile(args.workspace, source=args.source, dest=args.dest, task_id=args.id, line=args.line)
    )
    print(result["message"])


def archive_cmd(args):
    ws = args.workspace
    if args.completed or (args.id is None and args.line is None):
        result = _check(handle_archive_completed(ws, file=args.file, dry_run=args.dry_run))
        print(result["message"])
        for entry in result.get("archived", []):
            print(f"  - {entry['title']} ({entry['file']}:{entry['line']})")
        return
    if not args.file:
        _fail("Provide the file containing the task")
    result = _check(handle_archive(ws, file=args.file, task_id=args.id, line=args.line))
    print(result["message"])


def project_cmd(args):
    result = _check(
        handle_convert(
            args.workspace,
            file=args.file,
            task_id=args.id,
            line=args.line,
            title=args.title,
            description=args.description,
            area=args.area,
            original=args.original,
        )
    )
    print(result["message"])
    print(f"  File: {result['file']}")
    print(f"  ID: {result['task_id']}")
    _print_failed(result)


def scan_cmd(args):
    result = handle_scan(
        args.workspace,
        status=args.status,
        actionable=not args.all,
        include_projects=not args.no_projects,
        container=args.container,
        file=args.file,
        limit=args.limit,
    )
    if isinstance(result, dict):
        _check(result)
    if args.json:
        print(json.dumps(result, indent=2))
        return
    if not result:
        print("No tasks found matching filters.")
        return
    for record in result:
        status = record["status"] or "-"
        flag = f" [{record['urgency']}]" if record["urgency"] else ""
        print(f"{record['priority']:>3} {status:<9} {record['title']}{flag}  ({record['filename']}:{record['line']})")
    print(f"\n{len(result)} task(s) found.")


def duplicates_cmd(args):
    result = handle_duplicates(args.workspace)
    if not result["count"]:
        print("No duplicate TASK_IDs found.")
        return
    for task_id, locations in result["duplicates"].items():
        print(f"{task_id}:")
        for loc in locations:
            print(f"  - {loc['file']}:{loc['line']} {loc['title']}")
    print(f"\n{result['count']} duplicate id(s).")


def destinations_cmd(args):
    for dest in handle_destinations(args.workspace):
        print(f"{dest['category']:<8} {dest['name']}")


def audit_cmd(args):
    result = _check(handle_audit(args.workspace, file=args.file))
    if args.json:
        print(json.dumps(result, indent=2))
    else:
        for issue in result["issues"]:
            print(f"{issue['file']}:{issue['line']} [{issue['severity']}] {issue['code']}: {issue['message']}")
        summary = result["summary"]
        print(
            f"\n{result['count']} issue(s): {summary['error']} error, "
            f"{summary['warning']} warning, {summary['info']} info"
        )
    if result["summary"]["error"]:
        sys.exit(1)


def migrate_ids_cmd(args):
    result = _check(handle_migrate_ids(args.workspace, file=args.file, dry_run=args.dry_run))
    print(result["message"])
    for change in result["changes"]:
        print(f"  - {change['title']} ({change['file']}:{change['line']}): {', '.join(change['actions'])}")
    for skipped in result["skipped"]:
        print(f"  Skipped {skipped['file']}:{skipped['line']}: {skipped['reason']}")


def _sync_cmd(adapter_name: str):
    def run(args):
        ws = args.workspace
        if args.action == "export":
            result = _check(handle_export(ws, adapter=adapter_name, file=args.file))
            print(
                f"Exported to {adapter_name}: {result['created']} created, {result['updated']} updated, "
                f"{result['skipped']} skipped, {result['failed']} failed"
            )
        elif args.action == "import":
            result = _check(handle_import(ws, adapter=adapter_name))
            print(f"Imported from {adapter_name}: {result['imported']} new, {result['skipped']} skipped")
        else:
            result = _check(handle_complete(ws, adapter=adapter_name))
            print(f"Completed in {adapter_name}: {result['completed']}, {result['failed']} failed")
        _print_failed(result)
        if result.get("status") == "partial":
            sys.exit(1)

    return run


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def _add_target(p: argparse.ArgumentParser) -> None:
    p.add_argument("--id", help="TASK_ID of the task")
    p.add_argument("--line", type=int, help="1-based line inside the task")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="GTD workflow CLI for org-mode files",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--root", help="GTD root directory (default: $GTD_ROOT)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    subparsers = parser.add_subparsers(dest="command", help="Command to execute")
    statuses = [s.value for s in Status]

    # --- capture ---
    capture_p = subparsers.add_parser("capture", help="Capture a task into the inbox")
    capture_p.add_argument("title", help="Task title")
    capture_p.add_argument("--status", default="TODO", choices=statuses, help="Initial status")
    capture_p.add_argument("--tags", help="Comma-separated tags")
    capture_p.add_argument("--scheduled", help="Scheduled date (YYYY-MM-DD [HH:MM], today, friday, ...)")
    capture_p.add_argument("--deadline", help="Deadline date")
    capture_p.add_argument("--area", help="Area of responsibility")
    capture_p.add_argument("--file", help="Target file instead of the inbox")
    capture_p.add_argument("--force", action="store_true", help="Capture even if a similar task exists")
    capture_p.set_defaults(func=capture_cmd)

    # --- clarify ---
    clarify_p = subparsers.add_parser("clarify", help="Clarify a task in place")
    clarify_p.add_argument("file", help="Path to the .org file")
    clarify_p.add_argument("line", nargs="?", type=int, help="1-based line")
    clarify_p.add_argument("--id", help="TASK_ID instead of a line")
    clarify_p.add_argument("--status", choices=statuses, help="New status")
    clarify_p.add_argument("--promote", action="store_true", help="Turn a plain line into a heading")
    clarify_p.add_argument("--title", help="Heading text when promoting a blank line")
    clarify_p.add_argument("--scheduled", help="Scheduled date, or - to remove")
    clarify_p.add_argument("--deadline", help="Deadline date, or - to remove")
    clarify_p.add_argument("--note", help="Note to add under the task")
    clarify_p.add_argument("--outcome", help="Expected outcome")
    clarify_p.add_argument("--next-action", help="Next physical action")
    clarify_p.add_argument("--waiting-for", help="Who or what the task waits on")
    clarify_p.add_argument("--follow-up", help="Follow-up date")
    clarify_p.set_defaults(func=clarify_cmd)

    # --- refile ---
    refile_p = subparsers.add_parser("refile", help="Move a task to another file")
    refile_p.add_argument("source", help="File the task is in")
    refile_p.add_argument("dest", help="Destination file")
    _add_target(refile_p)
    refile_p.set_defaults(func=refile_cmd)

    # --- archive ---
    archive_p = subparsers.add_parser("archive", help="Archive a task, or all completed tasks")
    archive_p.add_argument("file", nargs="?", help="File the task is in")
    _add_target(archive_p)
    archive_p.add_argument("--completed", action="store_true", help="Archive every DONE/CANCELLED task")
    archive_p.add_argument("--dry-run", action="store_true", help="Preview without modifying")
    archive_p.set_defaults(func=archive_cmd)

    # --- project ---
    project_p = subparsers.add_parser("project", help="Convert a task into a project file")
    project_p.add_argument("file", help="File the task is in")
    _add_target(project_p)
    project_p.add_argument("--title", help="Project title")
    project_p.add_argument("--description", help="One-line description")
    project_p.add_argument("--area", help="Area subdirectory")
    project_p.add_argument("--original", default="move", choices=["move", "done", "keep"],
                           help="What happens to the original task (default: move)")
    project_p.set_defaults(func=project_cmd)

    # --- scan ---
    scan_p = subparsers.add_parser("scan", help="List tasks in priority order")
    scan_p.add_argument("--status", help="Comma-separated statuses")
    scan_p.add_argument("--all", action="store_true", help="Include archived and completed tasks")
    scan_p.add_argument("--no-projects", action="store_true", help="Leave out PROJECT headings")
    scan_p.add_argument("--container", choices=["inbox", "project", "area", "archive", "other"])
    scan_p.add_argument("--file", help="Only this file")
    scan_p.add_argument("--limit", type=int, default=200)
    scan_p.add_argument("--json", action="store_true", help="Print JSON records")
    scan_p.set_defaults(func=scan_cmd)

    # --- duplicates / destinations ---
    dup_p = subparsers.add_parser("duplicates", help="Report duplicate TASK_IDs")
    dup_p.set_defaults(func=duplicates_cmd)
    dest_p = subparsers.add_parser("destinations", help="List refile destinations")
    dest_p.set_defaults(func=destinations_cmd)

    # --- audit / migrate-ids ---
    audit_p = subparsers.add_parser("audit", help="Report GTD hygiene problems")
    audit_p.add_argument("file", nargs="?", help="Only this file")
    audit_p.add_argument("--json", action="store_true", help="Print the JSON report")
    audit_p.set_defaults(func=audit_cmd)
    migrate_p = subparsers.add_parser("migrate-ids", help="Assign or repair TASK_IDs and ID:: links")
    migrate_p.add_argument("file", nargs="?", help="Only this file")
    migrate_p.add_argument("--dry-run", action="store_true", help="Preview without modifying")
    migrate_p.set_defaults(func=migrate_ids_cmd)

    # --- sync ---
    for name, actions in (("calendar", ["export", "import"]), ("reminders", ["export", "import", "complete"])):
        sync_p = subparsers.add_parser(name, help=f"Sync with Apple {name.capitalize()}")
        sync_p.add_argument("action", choices=actions)
        sync_p.add_argument("--file", help="Only export tasks from this file")
        sync_p.set_defaults(func=_sync_cmd(name))

    return parser


def main(argv=None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if not hasattr(args, "func"):
        parser.print_help()
        sys.exit(1)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    environ = dict(os.environ)
    if args.root:
        environ["GTD_ROOT"] = args.root
    try:
        config = GtdConfig.from_env(environ)
    except ValueError as e:
        _fail(f"{e} (pass --root or set GTD_ROOT)")
    if not Path(config.root).is_dir():
        _fail(f"GTD root not found: {config.root}")

    args.workspace = Workspace.from_config(config)
    args.func(args)


if __name__ == "__main__":
    main()
