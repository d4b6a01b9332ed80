"""
Org timestamp utilities.

Timestamps have the form ``<YYYY-MM-DD Wkd>`` or ``<YYYY-MM-DD Wkd HH:MM>``.
Day arithmetic works on proleptic Gregorian ordinals so clock time and DST
never shift a result by a day.

Pure functions; parse_* helpers return None on bad input instead of raising.
"""

import re
from datetime import date, datetime, timedelta
from typing import Optional, Tuple, Union

WEEKDAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")

MIN_YEAR = 1900
MAX_YEAR = 2100

_DATE_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
_TIME_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")
_STAMP_RE = re.compile(
    r"<(\d{4}-\d{2}-\d{2})(?:\s+([A-Za-z]{2,3}))?(?:\s+(\d{1,2}:\d{2}))?[^>]*>"
)
_STRICT_STAMP_RE = re.compile(
    r"^<(\d{4}-\d{2}-\d{2}) ([A-Z][a-z]{2})(?: (\d{2}:\d{2}))?>$"
)
_BARE_RE = re.compile(r"^\s*(\d{4}-\d{2}-\d{2})(?:\s+(\d{1,2}:\d{2}))?\s*$")

DateLike = Union[date, str]


def parse_date(text: Optional[str]) -> Optional[date]:
    """
    Parse a strict ``YYYY-MM-DD`` string.

    Returns None for malformed text, out-of-range months or days (February
    respects leap years) and years outside 1900..2100.
    """
    if not text:
        return None
    m = _DATE_RE.match(text.strip())
    if not m:
        return None
    year, month, day = (int(g) for g in m.groups())
    if not MIN_YEAR <= year <= MAX_YEAR:
        return None
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _coerce_date(value: DateLike) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return parse_date(value)


def is_valid_time(text: Optional[str]) -> bool:
    return bool(text) and bool(_TIME_RE.match(text))


def weekday_of(d: date) -> str:
    """English weekday abbreviation used inside org timestamps."""
    return WEEKDAYS[d.weekday()]


def format_timestamp(d: DateLike, time: Optional[str] = None) -> str:
    """
    Render an org timestamp.

    Args:
        d: A date or a ``YYYY-MM-DD`` string
        time: Optional 24-hour ``HH:MM``

    Returns:
        ``<YYYY-MM-DD Wkd>`` or ``<YYYY-MM-DD Wkd HH:MM>``

    Raises:
        ValueError: if the date is invalid or time is not ``HH:MM``
    """
    parsed = _coerce_date(d)
    if parsed is None:
        raise ValueError(f"Invalid date: {d!r}")
    if time is not None and not is_valid_time(time):
        raise ValueError(f"Invalid time: {time!r}")
    body = f"{parsed.isoformat()} {weekday_of(parsed)}"
    if time:
        body += f" {time}"
    return f"<{body}>"


def _split_stamp(text: str) -> Optional[Tuple[str, Optional[str]]]:
    """Find a timestamp (or bare date) and return its (date, raw time) text."""
    m = _STAMP_RE.search(text)
    if m:
        return m.group(1), m.group(3)
    m = _BARE_RE.match(text)
    if m:
        return m.group(1), m.group(2)
    return None


def _normalize_time(raw: str) -> Optional[str]:
    hours, minutes = raw.split(":")
    normalized = f"{int(hours):02d}:{minutes}"
    return normalized if is_valid_time(normalized) else None


def parse_timestamp(text: Optional[str]) -> Optional[date]:
    """
    Extract the date from a timestamp, which may sit anywhere in the text.

    The weekday and time suffixes are optional. A bare ``YYYY-MM-DD`` is also
    accepted. Returns None when no valid date is present.
    """
    parts = _split_stamp(text) if text else None
    return parse_date(parts[0]) if parts else None


def parse_timestamp_time(text: Optional[str]) -> Optional[str]:
    """Return the ``HH:MM`` part of a timestamp, zero-padded, or None."""
    parts = _split_stamp(text) if text else None
    if not parts or not parts[1]:
        return None
    return _normalize_time(parts[1])


def is_valid_org_timestamp(text: Optional[str]) -> bool:
    """True for a well-formed timestamp whose weekday matches its date."""
    if not text:
        return False
    m = _STRICT_STAMP_RE.match(text.strip())
    if not m:
        return False
    parsed = parse_date(m.group(1))
    if parsed is None or weekday_of(parsed) != m.group(2):
        return False
    return m.group(3) is None or is_valid_time(m.group(3))


def to_timestamp(value: Optional[str]) -> Optional[str]:
    """
    Normalize user input into a rendered timestamp.

    Accepts ``YYYY-MM-DD``, ``YYYY-MM-DD HH:MM`` or an existing timestamp.
    A timestamp with a wrong weekday is re-rendered with the right one.
    """
    parts = _split_stamp(value) if value else None
    if not parts:
        return None
    parsed = parse_date(parts[0])
    if parsed is None:
        return None
    time = None
    if parts[1]:
        time = _normalize_time(parts[1])
        if time is None:
            return None
    return format_timestamp(parsed, time)


def days_between(a: date, b: date) -> int:
    """Signed day count, positive when b is after a."""
    return b.toordinal() - a.toordinal()


def is_before(a: date, b: date) -> bool:
    return days_between(a, b) > 0


def is_overdue(d: date, grace_days: int = 0, today: Optional[date] = None) -> bool:
    """True when more than grace_days have passed since d."""
    today = today or date.today()
    return days_between(d, today) > grace_days


def add_minutes(d: date, time: str, minutes: int) -> Tuple[date, str]:
    """Shift a date + ``HH:MM`` by minutes, rolling over midnight."""
    start = datetime.combine(d, datetime.strptime(time, "%H:%M").time())
    end = start + timedelta(minutes=minutes)
    return end.date(), end.strftime("%H:%M")


def parse_natural_date(date_str: Optional[str], today: Optional[date] = None) -> Optional[str]:
    """
    Parse user-friendly date input into ISO 8601 (YYYY-MM-DD).

    Supports:
    - ISO 8601: "2026-02-15"
    - Natural language: "today", "tomorrow", "Friday", "next Monday"
    - Relative: "in 3 days", "in 2 weeks"
    - Prose prefixes: "before March 15", "by Friday", "due Friday"

    Returns:
        ISO 8601 date string or None if unparseable
    """
    if not date_str:
        return None

    date_str = date_str.strip()
    today = today or date.today()

    if date_str.lower() in ("today", "now"):
        return today.isoformat()
    if date_str.lower() == "tomorrow":
        return (today + timedelta(days=1)).isoformat()

    for prefix in ("before ", "by ", "due ", "on "):
        if date_str.lower().startswith(prefix):
            date_str = date_str[len(prefix):].strip()

    strict = parse_date(date_str)
    if strict:
        return strict.isoformat()

    for fmt in ("%B %d", "%b %d", "%B %d, %Y", "%b %d, %Y"):
        try:
            parsed = datetime.strptime(date_str, fmt).date()
        except ValueError:
            continue
        if "%Y" not in fmt:
            parsed = parsed.replace(year=today.year)
            if parsed < today:
                parsed = parsed.replace(year=today.year + 1)
        return parsed.isoformat()

    day_names = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]
    date_lower = date_str.lower()
    is_next = date_lower.startswith("next ")
    if is_next:
        date_lower = date_lower[5:].strip()

    for i, day_name in enumerate(day_names):
        if date_lower == day_name:
            days_ahead = i - today.weekday()
            if days_ahead <= 0 or is_next:
                days_ahead += 7
            return (today + timedelta(days=days_ahead)).isoformat()

    relative_match = re.match(r"in (\d+) (days?|weeks?)", date_lower)
    if relative_match:
        amount = int(relative_match.group(1))
        unit = relative_match.group(2)
        delta = timedelta(weeks=amount) if unit.startswith("week") else timedelta(days=amount)
        return (today + delta).isoformat()

    return None
