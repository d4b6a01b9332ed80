"""
Tests for utils/dates.py.

Covers:
- parse_date: strict format, leap years, year range
- format_timestamp / parse_timestamp / to_timestamp
- weekday consistency of rendered timestamps
- day arithmetic: days_between, is_before, is_overdue, add_minutes
- parse_natural_date
"""

import sys
from datetime import date, timedelta
from pathlib import Path

# Add src to path so imports work without installation
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest

from org_gtd.utils.dates import (
    add_minutes,
    days_between,
    format_timestamp,
    is_before,
    is_overdue,
    is_valid_org_timestamp,
    parse_date,
    parse_natural_date,
    parse_timestamp,
    parse_timestamp_time,
    to_timestamp,
    weekday_of,
)


# ---------------------------------------------------------------------------
# parse_date
# ---------------------------------------------------------------------------

class TestParseDate:
    def test_valid(self):
        assert parse_date("2025-01-15") == date(2025, 1, 15)

    def test_leap_day(self):
        assert parse_date("2024-02-29") == date(2024, 2, 29)
        assert parse_date("2025-02-29") is None
        assert parse_date("1900-02-29") is None

    @pytest.mark.parametrize("text", ["", None, "2025-1-15", "2025-13-01", "2025-04-31", "not a date"])
    def test_invalid(self, text):
        assert parse_date(text) is None

    def test_year_range(self):
        assert parse_date("1899-12-31") is None
        assert parse_date("2101-01-01") is None
        assert parse_date("1900-01-01") == date(1900, 1, 1)
        assert parse_date("2100-12-31") == date(2100, 12, 31)


# ---------------------------------------------------------------------------
# Timestamps
# ---------------------------------------------------------------------------

class TestFormatTimestamp:
    def test_date_only(self):
        assert format_timestamp(date(2025, 1, 15)) == "<2025-01-15 Wed>"

    def test_with_time(self):
        assert format_timestamp(date(2025, 1, 15), "09:30") == "<2025-01-15 Wed 09:30>"

    def test_from_string(self):
        assert format_timestamp("2024-02-29") == "<2024-02-29 Thu>"

    def test_invalid_date_raises(self):
        with pytest.raises(ValueError):
            format_timestamp("2025-02-30")

    def test_invalid_time_raises(self):
        with pytest.raises(ValueError):
            format_timestamp(date(2025, 1, 15), "24:00")

    def test_weekday_matches_date_for_a_whole_year(self):
        d = date(2024, 1, 1)
        while d.year == 2024:
            stamp = format_timestamp(d)
            assert weekday_of(d) in stamp
            assert is_valid_org_timestamp(stamp)
            assert parse_timestamp(stamp) == d
            d += timedelta(days=1)


class TestParseTimestamp:
    def test_inside_planning_line(self):
        assert parse_timestamp("SCHEDULED: <2025-01-15 Wed 09:30>") == date(2025, 1, 15)

    def test_without_weekday(self):
        assert parse_timestamp("<2025-01-15>") == date(2025, 1, 15)

    def test_bare_date(self):
        assert parse_timestamp("2025-01-15") == date(2025, 1, 15)

    def test_invalid(self):
        assert parse_timestamp("<2025-02-30 Sun>") is None
        assert parse_timestamp("no date here") is None
        assert parse_timestamp(None) is None

    def test_time_is_zero_padded(self):
        assert parse_timestamp_time("<2025-01-15 Wed 9:05>") == "09:05"

    def test_no_time(self):
        assert parse_timestamp_time("<2025-01-15 Wed>") is None


class TestIsValidOrgTimestamp:
    def test_valid(self):
        assert is_valid_org_timestamp("<2025-01-15 Wed>")
        assert is_valid_org_timestamp("<2025-01-15 Wed 18:45>")

    def test_wrong_weekday(self):
        assert not is_valid_org_timestamp("<2025-01-15 Thu>")

    def test_malformed(self):
        assert not is_valid_org_timestamp("2025-01-15")
        assert not is_valid_org_timestamp("<2025-01-15 Wed 25:00>")
        assert not is_valid_org_timestamp("")


class TestToTimestamp:
    def test_date(self):
        assert to_timestamp("2025-01-15") == "<2025-01-15 Wed>"

    def test_date_and_time(self):
        assert to_timestamp("2025-01-15 9:30") == "<2025-01-15 Wed 09:30>"

    def test_fixes_weekday(self):
        assert to_timestamp("<2025-01-15 Thu>") == "<2025-01-15 Wed>"

    @pytest.mark.parametrize("value", ["tomorrow", "2025-02-30", "2025-01-15 25:00", "", None])
    def test_invalid(self, value):
        assert to_timestamp(value) is None


# ---------------------------------------------------------------------------
# Arithmetic
# ---------------------------------------------------------------------------

class TestDayArithmetic:
    def test_days_between_across_year(self):
        assert days_between(date(2024, 12, 31), date(2025, 1, 1)) == 1

    def test_days_between_is_antisymmetric(self):
        a, b = date(2024, 2, 28), date(2024, 3, 1)
        assert days_between(a, b) == 2
        assert days_between(b, a) == -2
        assert days_between(a, a) == 0

    def test_is_before(self):
        assert is_before(date(2025, 1, 1), date(2025, 1, 2))
        assert not is_before(date(2025, 1, 2), date(2025, 1, 2))

    def test_is_overdue(self):
        today = date(2025, 1, 11)
        assert is_overdue(date(2025, 1, 10), today=today)
        assert not is_overdue(date(2025, 1, 10), grace_days=1, today=today)
        assert not is_overdue(date(2025, 1, 11), today=today)

    def test_add_minutes_rolls_over_midnight(self):
        assert add_minutes(date(2025, 1, 15), "23:30", 60) == (date(2025, 1, 16), "00:30")

    def test_add_minutes_same_day(self):
        assert add_minutes(date(2025, 1, 15), "09:00", 45) == (date(2025, 1, 15), "09:45")


# ---------------------------------------------------------------------------
# parse_natural_date
# ---------------------------------------------------------------------------

class TestParseNaturalDate:
    TODAY = date(2026, 2, 13)  # a Friday

    def test_iso(self):
        assert parse_natural_date("2026-02-15", today=self.TODAY) == "2026-02-15"

    def test_today_tomorrow(self):
        assert parse_natural_date("today", today=self.TODAY) == "2026-02-13"
        assert parse_natural_date("tomorrow", today=self.TODAY) == "2026-02-14"

    def test_weekday_is_always_in_the_future(self):
        assert parse_natural_date("friday", today=self.TODAY) == "2026-02-20"
        assert parse_natural_date("Monday", today=self.TODAY) == "2026-02-16"

    def test_next_weekday(self):
        assert parse_natural_date("next monday", today=self.TODAY) == "2026-02-16"
        assert parse_natural_date("next friday", today=self.TODAY) == "2026-02-20"

    def test_relative(self):
        assert parse_natural_date("in 3 days", today=self.TODAY) == "2026-02-16"
        assert parse_natural_date("in 2 weeks", today=self.TODAY) == "2026-02-27"

    def test_prose_prefix(self):
        assert parse_natural_date("by March 15", today=self.TODAY) == "2026-03-15"

    def test_unparseable(self):
        assert parse_natural_date("whenever", today=self.TODAY) is None
        assert parse_natural_date("", today=self.TODAY) is None
