"""
Outline document model and mutation engine.

A Document is an org file held as a list of lines. Workflow commands edit it
in four steps:

    start = doc.locate(index, promote=...)      # Located
    doc.ensure_drawer(start)                    # DrawerEnsured
    doc.set_status(start, "NEXT") ...           # FieldsWritten
    doc.save()                                  # Persisted

Every step before save() works on the in-memory list only, so an aborted
command leaves the file untouched.

Indices are 0-based throughout this module. Helpers never cache a subtree's
end: each one recomputes bounds from the current lines, and every edit
happens below the heading it targets, so a heading's start index stays valid
for the whole mutation.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Optional, Tuple, Union

from org_gtd.errors import FieldValidationError, HeadingNotFoundError, StructuralError
from org_gtd.models.outline import STATUS_KEYWORDS, Drawer, Heading, PlanningEntry, PlanningKind
from org_gtd.parsers.outline import (
    find_link_ids,
    heading_level,
    is_drawer_end,
    is_drawer_start,
    is_link_line,
    is_planning_line,
    parse_heading,
    parse_planning,
    parse_property,
    relevel_heading,
    render_link,
    render_planning,
    render_property,
    replace_planning,
    replace_status,
)
from org_gtd.utils.dates import format_timestamp, to_timestamp

log = logging.getLogger(__name__)

REMOVE = "-"

DateInput = Union[date, str, None]


@dataclass
class MutationReport:
    """Outcome of Document.apply(): which fields were written, which were rejected."""

    applied: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed


class Document:
    """An org file as an ordered, mutable list of lines."""

    def __init__(
        self,
        path: Optional[Path] = None,
        lines: Optional[List[str]] = None,
        trailing_newline: bool = True,
    ):
        self.path = Path(path) if path else None
        self.lines: List[str] = list(lines or [])
        self.trailing_newline = trailing_newline
        self._original = list(self.lines)

    # ------------------------------------------------------------------
    # Load / save
    # ------------------------------------------------------------------

    @classmethod
    def from_text(cls, text: str, path: Optional[Path] = None) -> "Document":
        trailing = text.endswith("\n") or not text
        lines = text.splitlines()
        return cls(path, lines, trailing_newline=trailing)

    @classmethod
    def load(cls, path: Path) -> "Document":
        """
        Read a file. A missing or unreadable file yields an empty document
        bound to the same path.
        """
        path = Path(path)
        if not path.exists():
            log.debug("%s does not exist, starting empty", path)
            return cls(path)
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            log.warning("Could not read %s: %s", path, e)
            return cls(path)
        return cls.from_text(text, path)

    def text(self) -> str:
        body = "\n".join(self.lines)
        if self.lines and self.trailing_newline:
            body += "\n"
        return body

    @property
    def is_modified(self) -> bool:
        return self.lines != self._original

    def save(self, path: Optional[Path] = None) -> None:
        """Replace the file's contents with the in-memory lines. Raises OSError on failure."""
        target = Path(path) if path else self.path
        if target is None:
            raise ValueError("Document has no path to save to")
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.text(), encoding="utf-8")
        self.path = target
        self._original = list(self.lines)
        log.info("Wrote %s (%d lines)", target, len(self.lines))

    # ------------------------------------------------------------------
    # Read accessors
    # ------------------------------------------------------------------

    def heading_at(self, index: int) -> Optional[Heading]:
        if 0 <= index < len(self.lines):
            return parse_heading(self.lines[index])
        return None

    def headings(self) -> Iterator[Tuple[int, Heading]]:
        for i, line in enumerate(self.lines):
            heading = parse_heading(line)
            if heading is not None:
                yield i, heading

    def find_heading(self, index: int) -> Optional[int]:
        """Nearest heading at or above index."""
        i = min(index, len(self.lines) - 1)
        while i >= 0:
            if heading_level(self.lines[i]):
                return i
            i -= 1
        return None

    def _require_heading(self, start: int) -> int:
        level = heading_level(self.lines[start]) if 0 <= start < len(self.lines) else 0
        if not level:
            raise HeadingNotFoundError(f"Line {start + 1} is not a heading")
        return level

    def subtree_end(self, start: int) -> int:
        """Exclusive end of the subtree rooted at start."""
        level = self._require_heading(start)
        i = start + 1
        while i < len(self.lines):
            other = heading_level(self.lines[i])
            if other and other <= level:
                break
            i += 1
        return i

    def section_end(self, start: int) -> int:
        """Exclusive end of the heading's own lines, before its first child."""
        self._require_heading(start)
        i = start + 1
        while i < len(self.lines) and not heading_level(self.lines[i]):
            i += 1
        return i

    def subtree_lines(self, start: int) -> List[str]:
        return list(self.lines[start:self.subtree_end(start)])

    def find_drawer(self, start: int) -> Optional[Drawer]:
        """
        Locate the heading's property drawer.

        The drawer must follow the heading, optionally after blank and planning
        lines. Raises StructuralError if it is opened but never closed before
        the next heading.
        """
        end = self.section_end(start)
        i = start + 1
        while i < end and (not self.lines[i].strip() or is_planning_line(self.lines[i])):
            i += 1
        if i >= end or not is_drawer_start(self.lines[i]):
            return None
        entries: List[Tuple[str, str]] = []
        j = i + 1
        while j < end:
            if is_drawer_end(self.lines[j]):
                return Drawer(start=i, end=j, entries=entries)
            prop = parse_property(self.lines[j])
            if prop:
                entries.append(prop)
            j += 1
        raise StructuralError(f"Property drawer at line {i + 1} has no :END:")

    def properties(self, start: int) -> Dict[str, str]:
        """Drawer entries keyed by upper-cased name; the first occurrence wins."""
        drawer = self.find_drawer(start)
        result: Dict[str, str] = {}
        if drawer:
            for key, value in drawer.entries:
                result.setdefault(key.upper(), value)
        return result

    def get_property(self, start: int, key: str) -> Optional[str]:
        return self.properties(start).get(key.upper())

    def _find_planning(self, start: int, kind: str) -> Optional[int]:
        for i in range(start + 1, self.section_end(start)):
            planning = parse_planning(self.lines[i])
            if planning and planning.get(kind):
                return i
        return None

    def get_schedule(self, start: int, kind: str) -> Optional[PlanningEntry]:
        i = self._find_planning(start, kind)
        if i is None:
            return None
        return parse_planning(self.lines[i]).get(kind)

    def link_ids(self, start: int) -> List[str]:
        ids: List[str] = []
        for line in self.subtree_lines(start):
            ids.extend(find_link_ids(line))
        return ids

    def _metadata_end(self, start: int) -> int:
        """Index just past the heading's drawer, planning lines and link lines."""
        end = self.section_end(start)
        drawer = self.find_drawer(start)
        i = drawer.end + 1 if drawer else start + 1
        while i < end and (is_planning_line(self.lines[i]) or is_link_line(self.lines[i])):
            i += 1
        return i

    def body(self, start: int) -> List[str]:
        """Free text of the heading's own section, without surrounding blank lines."""
        lines = self.lines[self._metadata_end(start):self.section_end(start)]
        while lines and not lines[0].strip():
            lines.pop(0)
        while lines and not lines[-1].strip():
            lines.pop()
        return lines

    def find_by_predicate(self, predicate: Callable[[int, Heading], bool]) -> Optional[int]:
        for i, heading in self.headings():
            if predicate(i, heading):
                return i
        return None

    def find_by_property(self, key: str, value: str) -> Optional[int]:
        """First heading whose drawer has key == value. Malformed drawers are skipped."""

        def matches(i: int, _heading: Heading) -> bool:
            try:
                return self.get_property(i, key) == value
            except StructuralError as e:
                log.warning("%s: %s", self.path, e)
                return False

        return self.find_by_predicate(matches)

    def find_by_task_id(self, task_id: str) -> Optional[int]:
        return self.find_by_property("TASK_ID", task_id)

    # ------------------------------------------------------------------
    # Located
    # ------------------------------------------------------------------

    def locate(
        self,
        index: int,
        promote: bool = False,
        title: Optional[str] = None,
        default_status: str = "TODO",
    ) -> int:
        """
        Find the heading at or above index.

        With promote=True and no heading above, the line at index becomes a
        new top-level heading instead.

        Raises:
            HeadingNotFoundError: no heading and promotion not allowed
            FieldValidationError: promotion of a blank line without a title
        """
        found = self.find_heading(index)
        if found is not None:
            return found
        if not promote:
            raise HeadingNotFoundError(f"No heading at or above line {index + 1}")
        return self.promote(index, title=title, status=default_status)

    def promote(self, index: int, title: Optional[str] = None, status: str = "TODO") -> int:
        if status not in STATUS_KEYWORDS:
            raise FieldValidationError("status", f"unknown status {status!r}")
        if index < 0:
            raise HeadingNotFoundError(f"Line {index + 1} is out of range")
        raw = self.lines[index].strip() if index < len(self.lines) else ""
        text = raw or (title or "").strip()
        if not text:
            raise FieldValidationError("title", "a title is required to promote a blank line")
        while len(self.lines) <= index:
            self.lines.append("")
        self.lines[index] = f"* {status} {text}"
        if index + 1 >= len(self.lines) or self.lines[index + 1].strip():
            self.lines.insert(index + 1, "")
        log.debug("Promoted line %d to heading", index + 1)
        return index

    # ------------------------------------------------------------------
    # DrawerEnsured
    # ------------------------------------------------------------------

    def ensure_drawer(self, start: int) -> Drawer:
        """Return the heading's drawer, creating an empty one right after the heading."""
        drawer = self.find_drawer(start)
        if drawer is not None:
            return drawer
        self.lines[start + 1:start + 1] = [":PROPERTIES:", ":END:"]
        return Drawer(start=start + 1, end=start + 2)

    # ------------------------------------------------------------------
    # FieldsWritten
    # ------------------------------------------------------------------

    def set_property(self, start: int, key: str, value: str) -> None:
        """Update the first entry matching key (case-insensitive) or append one before :END:."""
        if not key or any(c.isspace() or c == ":" for c in key):
            raise FieldValidationError("property", f"invalid property name {key!r}")
        value = "" if value is None else str(value)
        if "\n" in value or "\r" in value:
            raise FieldValidationError(key, "property values must fit on one line")
        self._require_heading(start)

        drawer = self.ensure_drawer(start)
        for j in range(drawer.start + 1, drawer.end):
            prop = parse_property(self.lines[j])
            if prop and prop[0].upper() == key.upper():
                self.lines[j] = render_property(prop[0], value)
                return
        self.lines.insert(drawer.end, render_property(key, value))

    def set_status(self, start: int, status: str) -> None:
        """Rewrite the heading keyword and mirror it into the STATUS property."""
        if status not in STATUS_KEYWORDS:
            raise FieldValidationError("status", f"unknown status {status!r}")
        self._require_heading(start)
        self.lines[start] = replace_status(self.lines[start], status)
        self.set_property(start, "STATUS", status)

    def set_scheduled(self, start: int, value: DateInput, time: Optional[str] = None) -> None:
        self._set_planning(start, PlanningKind.SCHEDULED.value, value, time)

    def set_deadline(self, start: int, value: DateInput, time: Optional[str] = None) -> None:
        self._set_planning(start, PlanningKind.DEADLINE.value, value, time)

    def _planning_insert_point(self, start: int) -> int:
        end = self.section_end(start)
        existing = next(
            (i for i in range(start + 1, end) if is_planning_line(self.lines[i])), None
        )
        if existing is None:
            drawer = self.find_drawer(start)
            return drawer.end + 1 if drawer else start + 1
        i = existing
        while i < end and is_planning_line(self.lines[i]):
            i += 1
        return i

    def _set_planning(self, start: int, kind: str, value: DateInput, time: Optional[str]) -> None:
        """
        None leaves the entry alone, "-" removes it, anything else upserts it.

        The value is validated before any line changes.
        """
        if value is None:
            return
        field_name = kind.lower()
        self._require_heading(start)
        existing = self._find_planning(start, kind)

        if value == REMOVE:
            if existing is not None:
                remaining = replace_planning(self.lines[existing], kind, None)
                if remaining:
                    self.lines[existing] = remaining
                else:
                    del self.lines[existing]
            return

        try:
            stamp = format_timestamp(value, time) if isinstance(value, date) or time else to_timestamp(value)
        except ValueError as e:
            raise FieldValidationError(field_name, str(e)) from e
        if stamp is None:
            raise FieldValidationError(field_name, f"invalid date {value!r}")

        if existing is not None:
            self.lines[existing] = replace_planning(self.lines[existing], kind, stamp)
        else:
            self.lines.insert(self._planning_insert_point(start), render_planning(kind, stamp))

    def ensure_link(self, start: int, task_id: str) -> bool:
        """
        Make sure the subtree references task_id; insert an ``ID::`` line after
        the drawer if it does not. Returns True when a line was added.
        """
        if not task_id or any(c.isspace() or c in "[]" for c in task_id):
            raise FieldValidationError("link", f"invalid identifier {task_id!r}")
        if task_id in self.link_ids(start):
            return False
        end = self.section_end(start)
        drawer = self.find_drawer(start)
        i = drawer.end + 1 if drawer else start + 1
        while i < end and is_planning_line(self.lines[i]):
            i += 1
        self.lines.insert(i, render_link(task_id))
        return True

    def append_note(self, start: int, text: str) -> None:
        """Insert a note after the heading's metadata, followed by a blank separator."""
        if not text or not text.strip():
            raise FieldValidationError("note", "note is empty")
        note_lines = text.rstrip("\n").split("\n")
        for line in note_lines:
            if heading_level(line) or is_drawer_start(line) or is_drawer_end(line):
                raise FieldValidationError("note", "note would change the outline structure")
        self._require_heading(start)

        pos = self._metadata_end(start)
        self.lines[pos:pos] = note_lines
        after = pos + len(note_lines)
        if after >= len(self.lines) or self.lines[after].strip():
            self.lines.insert(after, "")

    def apply(
        self,
        start: int,
        *,
        status: Optional[str] = None,
        properties: Optional[Dict[str, str]] = None,
        scheduled: DateInput = None,
        deadline: DateInput = None,
        note: Optional[str] = None,
        link: Optional[str] = None,
    ) -> MutationReport:
        """
        Apply several field writes to one heading.

        A field that fails validation is reported and skipped; the others still
        apply. Structural errors propagate.
        """
        steps: List[Tuple[str, Callable[[], object]]] = []
        if status is not None:
            steps.append(("status", lambda: self.set_status(start, status)))
        for key, value in (properties or {}).items():
            steps.append((key, lambda k=key, v=value: self.set_property(start, k, v)))
        if scheduled is not None:
            steps.append(("scheduled", lambda: self.set_scheduled(start, scheduled)))
        if deadline is not None:
            steps.append(("deadline", lambda: self.set_deadline(start, deadline)))
        if note is not None:
            steps.append(("note", lambda: self.append_note(start, note)))
        if link is not None:
            steps.append(("link", lambda: self.ensure_link(start, link)))

        report = MutationReport()
        for name, step in steps:
            try:
                step()
            except FieldValidationError as e:
                log.warning("Skipped %s: %s", name, e.reason)
                report.failed[name] = e.reason
            else:
                report.applied.append(name)
        return report

    # ------------------------------------------------------------------
    # Subtree moves
    # ------------------------------------------------------------------

    def remove_subtree(self, start: int) -> List[str]:
        end = self.subtree_end(start)
        removed = self.lines[start:end]
        del self.lines[start:end]
        return removed

    def append_block(self, block: List[str]) -> int:
        """Append lines at end of file after a blank separator. Returns the block's first index."""
        if self.lines and self.lines[-1].strip():
            self.lines.append("")
        first = len(self.lines)
        self.lines.extend(block)
        return first

    @staticmethod
    def relevel(block: List[str], top_level: int) -> List[str]:
        """Shift every heading in block so the first one sits at top_level."""
        if not block:
            return []
        delta = top_level - heading_level(block[0])
        if delta == 0:
            return list(block)
        return [relevel_heading(line, delta) for line in block]
