"""
Apple Calendar adapter (macOS, via osascript).

Events are created from SCHEDULED dates first, DEADLINE dates second.
A SCHEDULED date with a time becomes a timed event of event_duration minutes;
a date without a time, or a DEADLINE when deadline_as_allday is set, becomes
an all-day event.
"""

import logging
from datetime import date, timedelta
from typing import List, Optional, Tuple

from org_gtd.adapters.base import ExternalItem, SyncAdapter, SyncItem, SyncResult
from org_gtd.adapters.osascript import (
    FIELD_SEPARATOR,
    OsaScriptRunner,
    date_statements,
    parse_apple_date,
    quote,
    split_records,
)
from org_gtd.utils.dates import add_minutes

log = logging.getLogger(__name__)

_LIST_FIELDS = 7  # title, calendar, uid, notes, start, all-day, location


class AppleCalendarAdapter(SyncAdapter):
    name = "calendar"
    id_property = "EVENT_ID"
    container_property = "CALENDAR"
    requires_date = True

    def __init__(
        self,
        runner: OsaScriptRunner,
        calendar_name: str = "GTD",
        event_duration: int = 60,
        deadline_as_allday: bool = True,
        days_ahead: int = 90,
        excluded_calendars: Tuple[str, ...] = ("Birthdays", "Holidays"),
    ):
        self.runner = runner
        self.calendar_name = calendar_name
        self.container = calendar_name
        self.event_duration = event_duration
        self.deadline_as_allday = deadline_as_allday
        self.days_ahead = days_ahead
        self.excluded_calendars = excluded_calendars

    def _timing(self, item: SyncItem) -> Optional[Tuple[date, Optional[str], bool]]:
        """(start date, start time, all-day) for an item, or None without a date."""
        if item.scheduled:
            return item.scheduled, item.scheduled_time, item.scheduled_time is None
        if item.deadline:
            return item.deadline, None, self.deadline_as_allday
        return None

    def _property_statements(self, var: str, item: SyncItem) -> Optional[List[str]]:
        timing = self._timing(item)
        if timing is None:
            return None
        start, time, all_day = timing
        stmts = date_statements("startDate", start, time)
        if all_day:
            stmts += date_statements("endDate", start + timedelta(days=1), "00:00")
        else:
            end_day, end_time = add_minutes(start, time or "09:00", self.event_duration)
            stmts += date_statements("endDate", end_day, end_time)
        stmts += [
            f"set summary of {var} to {quote(item.title)}",
            f"set start date of {var} to startDate",
            f"set end date of {var} to endDate",
            f"set allday event of {var} to {'true' if all_day else 'false'}",
        ]
        if item.location:
            stmts.append(f"set location of {var} to {quote(item.location)}")
        if item.description:
            stmts.append(f"set description of {var} to {quote(item.description)}")
        return stmts

    def create_event(self, item: SyncItem) -> SyncResult:
        stmts = self._property_statements("newEvent", item)
        if stmts is None:
            return SyncResult.failure("No suitable date found")
        script = "\n".join(
            [
                'tell application "Calendar"',
                f"  tell calendar {quote(self.calendar_name)}",
                "    set newEvent to make new event at end of events with properties {summary:\"\"}",
                *("    " + s for s in stmts),
                "    return (uid of newEvent) as string",
                "  end tell",
                "end tell",
            ]
        )
        result = self.runner.run(script)
        if result.ok and not result.external_id:
            return SyncResult.failure("Calendar returned no event id")
        return result

    def update_event(self, external_id: str, item: SyncItem) -> SyncResult:
        stmts = self._property_statements("targetEvent", item)
        if stmts is None:
            return SyncResult.failure("No suitable date found")
        script = "\n".join(
            [
                'tell application "Calendar"',
                f"  tell calendar {quote(self.calendar_name)}",
                f"    set targetEvent to first event whose uid is {quote(external_id)}",
                *("    " + s for s in stmts),
                '    return "OK"',
                "  end tell",
                "end tell",
            ]
        )
        result = self.runner.run(script)
        return SyncResult.success(external_id) if result.ok else result

    def delete_event(self, external_id: str) -> SyncResult:
        script = "\n".join(
            [
                'tell application "Calendar"',
                f"  tell calendar {quote(self.calendar_name)}",
                f"    delete (first event whose uid is {quote(external_id)})",
                "  end tell",
                "end tell",
            ]
        )
        result = self.runner.run(script)
        return SyncResult.success(external_id) if result.ok else result

    def list_script(self) -> str:
        excluded = ", ".join(quote(c) for c in self.excluded_calendars)
        sep = quote(FIELD_SEPARATOR)
        return "\n".join(
            [
                'set output to ""',
                "set startWindow to current date",
                f"set endWindow to startWindow + ({self.days_ahead} * days)",
                'tell application "Calendar"',
                "  repeat with cal in calendars",
                "    set calName to name of cal",
                f"    if calName is not in {{{excluded}}} then",
                "      repeat with evt in (every event of cal whose start date >= startWindow and start date <= endWindow)",
                "        set evtNotes to description of evt",
                '        if evtNotes is missing value then set evtNotes to ""',
                "        set evtLocation to location of evt",
                '        if evtLocation is missing value then set evtLocation to ""',
                f"        set output to output & (summary of evt) & {sep} & calName & {sep} & (uid of evt) & {sep} & evtNotes & {sep} & ((start date of evt) as string) & {sep} & ((allday event of evt) as string) & {sep} & evtLocation & linefeed",
                "      end repeat",
                "    end if",
                "  end repeat",
                "end tell",
                "return output",
            ]
        )

    def list_events(self) -> List[ExternalItem]:
        result = self.runner.run(self.list_script())
        if not result.ok:
            log.warning("Could not list calendar events: %s", result.error)
            return []
        items = []
        for title, calendar, uid, notes, start_raw, all_day, location in split_records(
            result.external_id or "", _LIST_FIELDS
        ):
            start, start_time = parse_apple_date(start_raw)
            items.append(
                ExternalItem(
                    external_id=uid,
                    title=title,
                    container=calendar,
                    start=start,
                    start_time=start_time,
                    all_day=all_day.lower() == "true",
                    location=location or None,
                    notes=notes or None,
                )
            )
        return items
