"""
osascript runner and AppleScript helpers shared by the Apple adapters.

Every call has a timeout. A hung, missing or failing osascript becomes a
failed SyncResult, never an exception.
"""

import logging
import re
import subprocess
from datetime import date
from typing import List, Optional, Tuple

from org_gtd.adapters.base import SyncResult

log = logging.getLogger(__name__)

FIELD_SEPARATOR = "§§§"

DEFAULT_EVENT_HOUR = 9

_MONTHS = {
    # English
    "january": 1, "february": 2, "march": 3, "april": 4, "may": 5, "june": 6,
    "july": 7, "august": 8, "september": 9, "october": 10, "november": 11, "december": 12,
    # Danish
    "januar": 1, "februar": 2, "marts": 3, "maj": 5, "juni": 6, "juli": 7, "oktober": 10,
}

_ISO_RE = re.compile(r"(\d{4})-(\d{2})-(\d{2})")
_DANISH_RE = re.compile(r"(\d{1,2})\.\s+([A-Za-zæøå]+)\s+(\d{4})")
_ENGLISH_RE = re.compile(r"([A-Za-z]+)\s+(\d{1,2}),\s+(\d{4})")
_NUMERIC_RE = re.compile(r"(\d{1,2})[./-](\d{1,2})[./-](\d{2,4})")
_TIME_RE = re.compile(r"(\d{1,2})[:.](\d{2})(?:[:.]\d{2})?(?:\s*([AaPp][Mm]))?\s*$")


class OsaScriptRunner:
    """Runs AppleScript source through ``osascript -e``."""

    def __init__(self, timeout: float = 30.0, executable: str = "osascript"):
        self.timeout = timeout
        self.executable = executable

    def run(self, script: str) -> SyncResult:
        """Run a script; a successful result carries its stripped stdout as external_id."""
        try:
            proc = subprocess.run(
                [self.executable, "-e", script],
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired:
            log.warning("osascript timed out after %.0fs", self.timeout)
            return SyncResult.failure(f"osascript timed out after {self.timeout:.0f}s")
        except OSError as e:
            log.warning("Could not run osascript: %s", e)
            return SyncResult.failure(f"could not run osascript: {e}")
        if proc.returncode != 0:
            message = proc.stderr.strip() or f"osascript exited with {proc.returncode}"
            log.warning("osascript failed: %s", message)
            return SyncResult.failure(message)
        return SyncResult.success(proc.stdout.strip())


def quote(text: Optional[str]) -> str:
    """AppleScript string literal."""
    value = (text or "").replace("\\", "\\\\").replace('"', '\\"')
    value = value.replace("\r", " ").replace("\n", " ")
    return f'"{value}"'


def date_statements(var: str, d: date, time: Optional[str] = None) -> List[str]:
    """
    Statements that set an AppleScript date variable field by field, so the
    result does not depend on the user's locale.
    """
    hours, minutes = DEFAULT_EVENT_HOUR, 0
    if time:
        hours, minutes = (int(p) for p in time.split(":"))
    return [
        f"set {var} to current date",
        f"set day of {var} to 1",
        f"set year of {var} to {d.year}",
        f"set month of {var} to {d.month}",
        f"set day of {var} to {d.day}",
        f"set hours of {var} to {hours}",
        f"set minutes of {var} to {minutes}",
        f"set seconds of {var} to 0",
    ]


def split_records(output: str, field_count: int) -> List[List[str]]:
    """Split listing output into records of exactly field_count fields."""
    records = []
    for line in output.splitlines():
        if not line.strip():
            continue
        parts = line.split(FIELD_SEPARATOR)
        if len(parts) < field_count:
            log.debug("Skipping short listing line: %r", line)
            continue
        records.append([p.strip() for p in parts[:field_count]])
    return records


def parse_apple_date(text: Optional[str]) -> Tuple[Optional[date], Optional[str]]:
    """
    Parse a date as AppleScript prints it.

    Handles ISO dates, English ("Friday, June 20, 2025 at 09:00:00"), Danish
    ("fredag den 20. juni 2025 kl. 09.00.00") and numeric day-first forms.

    Returns:
        (date, "HH:MM") where either part may be None
    """
    if not text or text in ("missing value", "NO_DATE"):
        return None, None
    parsed: Optional[date] = None

    m = _ISO_RE.search(text)
    if m:
        parsed = _safe_date(int(m.group(1)), int(m.group(2)), int(m.group(3)))
    if parsed is None:
        m = _DANISH_RE.search(text)
        if m and m.group(2).lower() in _MONTHS:
            parsed = _safe_date(int(m.group(3)), _MONTHS[m.group(2).lower()], int(m.group(1)))
    if parsed is None:
        m = _ENGLISH_RE.search(text)
        if m and m.group(1).lower() in _MONTHS:
            parsed = _safe_date(int(m.group(3)), _MONTHS[m.group(1).lower()], int(m.group(2)))
    if parsed is None:
        m = _NUMERIC_RE.search(text)
        if m:
            day, month, year = int(m.group(1)), int(m.group(2)), int(m.group(3))
            if year < 100:
                year += 2000
            if month > 12 and day <= 12:
                day, month = month, day
            parsed = _safe_date(year, month, day)

    time = None
    m = _TIME_RE.search(text)
    if m and parsed is not None:
        hours, minutes = int(m.group(1)), int(m.group(2))
        meridiem = (m.group(3) or "").lower()
        if meridiem == "pm" and hours < 12:
            hours += 12
        elif meridiem == "am" and hours == 12:
            hours = 0
        if hours < 24:
            time = f"{hours:02d}:{minutes:02d}"
    return parsed, time


def _safe_date(year: int, month: int, day: int) -> Optional[date]:
    try:
        return date(year, month, day)
    except ValueError:
        return None
