"""
Line classifier and renderer for the org outline subset.

Main API:
    classify(line)        → Heading | DrawerStart | DrawerEnd | PropertyLine
                            | ScheduleLine | LinkLine | Blank | Text
    parse_heading(line)   → Heading or None
    render_heading(h)     → str

Only headings, property drawers, tags, SCHEDULED/DEADLINE planning lines and
``[[zk:id]]`` link lines are understood. Everything else is Text and is never
rewritten.
"""

import re
from typing import List, Optional, Tuple, Union

from org_gtd.models.outline import (
    PROJECT_MARKER,
    STATUS_KEYWORDS,
    Blank,
    DrawerEnd,
    DrawerStart,
    Heading,
    LinkLine,
    PlanningEntry,
    PlanningKind,
    PropertyLine,
    ScheduleLine,
    Text,
)
from org_gtd.utils.dates import parse_timestamp, parse_timestamp_time

Line = Union[Heading, DrawerStart, DrawerEnd, PropertyLine, ScheduleLine, LinkLine, Blank, Text]

LINK_PREFIX = "ID::"

_HEADING_RE = re.compile(r"^(\*+) (.*)$")
_TAGS_RE = re.compile(r"\s+(:(?:[\w@#%]+:)+)\s*$")
_COOKIE_RE = re.compile(r"\s*(\[\d*/\d*\]|\[\d*%\])$")
_DRAWER_START_RE = re.compile(r"^\s*:PROPERTIES:\s*$", re.IGNORECASE)
_DRAWER_END_RE = re.compile(r"^\s*:END:\s*$", re.IGNORECASE)
_PROPERTY_RE = re.compile(r"^\s*:([^:\s]+):(?:\s+(.*?))?\s*$")
_PLANNING_RE = re.compile(r"(SCHEDULED|DEADLINE):\s*(<[^>]*>)")
_PLANNING_LINE_RE = re.compile(r"^\s*(?:SCHEDULED|DEADLINE):\s*<")
_LINK_RE = re.compile(r"\[\[zk:([^\]]+)\]\]")


# ---------------------------------------------------------------------------
# Headings
# ---------------------------------------------------------------------------


def heading_level(line: str) -> int:
    """Number of leading stars for a heading line, 0 otherwise."""
    m = _HEADING_RE.match(line)
    return len(m.group(1)) if m else 0


def split_heading_tags(text: str) -> Tuple[str, List[str]]:
    """Split ``title  :a:b:`` into ("title", ["a", "b"])."""
    m = _TAGS_RE.search(text)
    if not m:
        return text.strip(), []
    tags = [t for t in m.group(1).split(":") if t]
    return text[: m.start()].strip(), tags


def parse_heading(line: str) -> Optional[Heading]:
    m = _HEADING_RE.match(line)
    if not m:
        return None
    level = len(m.group(1))
    rest = m.group(2).strip()

    status = None
    first, _, remainder = rest.partition(" ")
    if first in STATUS_KEYWORDS:
        status = first
        rest = remainder.strip()

    project = False
    first, _, remainder = rest.partition(" ")
    if first == PROJECT_MARKER:
        project = True
        rest = remainder.strip()

    title, tags = split_heading_tags(rest)
    cookie = None
    cm = _COOKIE_RE.search(title)
    if cm:
        cookie = cm.group(1)
        title = title[: cm.start()].rstrip()

    return Heading(level=level, title=title, status=status, tags=tags, project=project, cookie=cookie)


def render_heading(heading: Heading) -> str:
    parts = ["*" * heading.level]
    if heading.status:
        parts.append(heading.status)
    if heading.project:
        parts.append(PROJECT_MARKER)
    if heading.title:
        parts.append(heading.title)
    if heading.cookie:
        parts.append(heading.cookie)
    line = " ".join(parts)
    if heading.tags:
        line += "  :" + ":".join(heading.tags) + ":"
    return line


def replace_status(line: str, status: Optional[str]) -> str:
    """
    Rewrite the status keyword of a heading line in place.

    Only the keyword changes; title, spacing and tags are left byte-for-byte.
    """
    m = _HEADING_RE.match(line)
    if not m:
        raise ValueError(f"Not a heading: {line!r}")
    stars, rest = m.group(1), m.group(2)
    first, sep, remainder = rest.partition(" ")
    if first in STATUS_KEYWORDS:
        rest = remainder if sep else ""
    if status:
        rest = f"{status} {rest}" if rest else status
    return f"{stars} {rest}"


def relevel_heading(line: str, delta: int) -> str:
    """Shift a heading's level by delta (never below 1). Non-headings pass through."""
    level = heading_level(line)
    if not level:
        return line
    return "*" * max(1, level + delta) + line[level:]


# ---------------------------------------------------------------------------
# Drawer, planning and link lines
# ---------------------------------------------------------------------------


def is_drawer_start(line: str) -> bool:
    return bool(_DRAWER_START_RE.match(line))


def is_drawer_end(line: str) -> bool:
    return bool(_DRAWER_END_RE.match(line))


def parse_property(line: str) -> Optional[Tuple[str, str]]:
    if is_drawer_start(line) or is_drawer_end(line):
        return None
    m = _PROPERTY_RE.match(line)
    if not m:
        return None
    return m.group(1), (m.group(2) or "")


def render_property(key: str, value: str) -> str:
    return f":{key}: {value}" if value else f":{key}:"


def is_planning_line(line: str) -> bool:
    return bool(_PLANNING_LINE_RE.match(line))


def parse_planning(line: str) -> Optional[ScheduleLine]:
    if not is_planning_line(line):
        return None
    entries = [
        PlanningEntry(
            kind=m.group(1),
            timestamp=m.group(2),
            date=parse_timestamp(m.group(2)),
            time=parse_timestamp_time(m.group(2)),
        )
        for m in _PLANNING_RE.finditer(line)
    ]
    return ScheduleLine(entries=entries)


def render_planning(kind: str, timestamp: str) -> str:
    return f"{PlanningKind(kind).value}: {timestamp}"


def replace_planning(line: str, kind: str, timestamp: Optional[str]) -> str:
    """
    Replace (or with timestamp=None, drop) one keyword's entry on a planning line.

    Returns the rewritten line, or "" when nothing is left on it.
    """
    pattern = re.compile(rf"{kind}:\s*<[^>]*>")
    if timestamp is None:
        remaining = pattern.sub("", line)
        return re.sub(r"\s{2,}", " ", remaining).strip()
    return pattern.sub(lambda _: render_planning(kind, timestamp), line, count=1)


def find_link_ids(line: str) -> List[str]:
    return _LINK_RE.findall(line)


def render_link(task_id: str) -> str:
    return f"{LINK_PREFIX} [[zk:{task_id}]]"


def is_link_line(line: str) -> bool:
    return line.lstrip().startswith(LINK_PREFIX) and bool(_LINK_RE.search(line))


# ---------------------------------------------------------------------------
# Classifier
# ---------------------------------------------------------------------------


def classify(line: str) -> Line:
    """Classify one raw line (without its newline)."""
    if not line.strip():
        return Blank()
    heading = parse_heading(line)
    if heading is not None:
        return heading
    if is_drawer_start(line):
        return DrawerStart()
    if is_drawer_end(line):
        return DrawerEnd()
    planning = parse_planning(line)
    if planning is not None:
        return planning
    if is_link_line(line):
        return LinkLine(ids=find_link_ids(line))
    prop = parse_property(line)
    if prop is not None:
        return PropertyLine(key=prop[0], value=prop[1])
    return Text(text=line)
