"""Helpers shared by the workflow commands."""

import logging
from typing import Optional

from org_gtd.document import Document
from org_gtd.errors import FieldValidationError, HeadingNotFoundError

log = logging.getLogger(__name__)


def resolve_heading(doc: Document, task_id: Optional[str] = None, line: Optional[int] = None) -> int:
    """
    Find a task by TASK_ID, or by 1-based line (nearest heading at or above).

    Raises:
        HeadingNotFoundError: nothing matches
        FieldValidationError: neither task_id nor line given
    """
    if task_id:
        start = doc.find_by_task_id(task_id)
        if start is None:
            raise HeadingNotFoundError(f"Task '{task_id}' not found in {doc.path}")
        return start
    if line is not None:
        return doc.locate(line - 1)
    raise FieldValidationError("task", "a task_id or line is required")


def error_result(message: str, **extra) -> dict:
    log.warning(message)
    return {"status": "error", "message": message, **extra}
