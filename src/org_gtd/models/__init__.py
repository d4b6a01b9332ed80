from .outline import (
    COMPLETED_STATUSES,
    PROJECT_MARKER,
    STATUS_KEYWORDS,
    Blank,
    Drawer,
    DrawerEnd,
    DrawerStart,
    Heading,
    LinkLine,
    PlanningEntry,
    PlanningKind,
    PropertyLine,
    ScheduleLine,
    Status,
    Text,
)
from .record import Container, TaskRecord

__all__ = [
    "COMPLETED_STATUSES",
    "PROJECT_MARKER",
    "STATUS_KEYWORDS",
    "Blank",
    "Drawer",
    "DrawerEnd",
    "DrawerStart",
    "Heading",
    "LinkLine",
    "PlanningEntry",
    "PlanningKind",
    "PropertyLine",
    "ScheduleLine",
    "Status",
    "Text",
    "Container",
    "TaskRecord",
]
