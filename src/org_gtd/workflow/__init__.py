from org_gtd.workflow.archive import archive_completed, archive_task
from org_gtd.workflow.audit import audit_outlines, migrate_ids
from org_gtd.workflow.capture import capture
from org_gtd.workflow.clarify import clarify
from org_gtd.workflow.project import convert_to_project
from org_gtd.workflow.refile import list_destinations, refile

__all__ = [
    "archive_completed",
    "archive_task",
    "audit_outlines",
    "capture",
    "clarify",
    "convert_to_project",
    "list_destinations",
    "migrate_ids",
    "refile",
]
