"""
Task ID generation, validation and duplicate detection.

IDs are the UTC capture moment as ``YYYYMMDDHHMMSS``. A second call within the
same second gets a lowercase suffix (``a``..``z``, then ``aa``..``zz``) so IDs
stay unique and sortable within one process.
"""

import logging
import re
import string
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, List, Optional

log = logging.getLogger(__name__)

_ID_RE = re.compile(r"^\d{14}(?:[a-z]{1,2})?$")
_LEGACY_ID_RE = re.compile(r"^\d{14}-[A-Za-z0-9]{3}$")
_WRAPPED_RE = re.compile(r"\[\[zk:([^\]]+)\]\]")

_LETTERS = string.ascii_lowercase


def _suffix(n: int) -> str:
    """0 → '', 1 → 'a', 26 → 'z', 27 → 'aa', ... 702 → 'zz'."""
    if n <= 0:
        return ""
    if n <= 26:
        return _LETTERS[n - 1]
    n -= 27
    if n >= 26 * 26:
        raise ValueError("Too many task IDs generated within one second")
    return _LETTERS[n // 26] + _LETTERS[n % 26]


class IdGenerator:
    """Serialized generator of second-resolution task IDs."""

    def __init__(self):
        self._lock = threading.Lock()
        self._last_stamp: Optional[str] = None
        self._counter = 0

    def generate(self, now: Optional[datetime] = None) -> str:
        now = now or datetime.now(timezone.utc)
        if now.tzinfo is not None:
            now = now.astimezone(timezone.utc)
        stamp = now.strftime("%Y%m%d%H%M%S")
        with self._lock:
            if self._last_stamp is not None and stamp <= self._last_stamp:
                # Same second (or clock stepped back): keep the last stamp and bump
                stamp = self._last_stamp
                self._counter += 1
            else:
                self._last_stamp = stamp
                self._counter = 0
            return stamp + _suffix(self._counter)


def is_valid_task_id(task_id: Optional[str]) -> bool:
    if not task_id:
        return False
    return bool(_ID_RE.match(task_id) or _LEGACY_ID_RE.match(task_id))


def normalize_task_id(raw: Optional[str]) -> Optional[str]:
    """
    Strip whitespace and ``[[zk:...]]`` wrapping from an ID.

    Returns None when what remains is not a valid ID.
    """
    if not raw:
        return None
    value = raw.strip()
    m = _WRAPPED_RE.search(value)
    if m:
        value = m.group(1).strip()
    return value if is_valid_task_id(value) else None


def task_id_timestamp(task_id: str) -> Optional[datetime]:
    """The UTC capture moment encoded in an ID, or None."""
    if not is_valid_task_id(task_id):
        return None
    try:
        return datetime.strptime(task_id[:14], "%Y%m%d%H%M%S").replace(tzinfo=timezone.utc)
    except ValueError:
        return None


# ---------------------------------------------------------------------------
# Duplicate detection
# ---------------------------------------------------------------------------


def index_task_ids(root: Path, exclude_dirs: Iterable[str] = ()) -> Dict[str, List[dict]]:
    """
    Map every declared TASK_ID under root to its occurrences.

    Returns:
        {task_id: [{"file": str, "line": int, "title": str}, ...]}
    """
    from org_gtd.parsers.scanner import scan

    index: Dict[str, List[dict]] = {}
    for record in scan(root, exclude_dirs=exclude_dirs):
        if not record.task_id:
            continue
        index.setdefault(record.task_id, []).append(
            {"file": str(record.path), "line": record.line, "title": record.title}
        )
    return index


def find_all_duplicates(root: Path, exclude_dirs: Iterable[str] = ()) -> Dict[str, List[dict]]:
    """
    Report TASK_IDs declared by more than one heading under root.

    Report-only: nothing is renamed or merged.
    """
    duplicates = {
        task_id: entries
        for task_id, entries in index_task_ids(root, exclude_dirs).items()
        if len(entries) > 1
    }
    if duplicates:
        log.info("Found %d duplicated task IDs under %s", len(duplicates), root)
    return duplicates
