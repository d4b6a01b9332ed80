"""
Apple Reminders adapter (macOS, via osascript).

DEADLINE maps to the reminder's due date, SCHEDULED to its remind-me date,
NEXT to high priority.
"""

import logging
from typing import List, Tuple

from org_gtd.adapters.base import ExternalItem, SyncAdapter, SyncItem, SyncResult
from org_gtd.adapters.osascript import (
    FIELD_SEPARATOR,
    OsaScriptRunner,
    date_statements,
    parse_apple_date,
    quote,
    split_records,
)

log = logging.getLogger(__name__)

HIGH_PRIORITY = 9
_LIST_FIELDS = 7  # title, list, id, body, due, priority, completed


def status_for_priority(priority: int) -> str:
    """Map an Apple priority (0-9) to a GTD status."""
    if priority >= 9:
        return "NEXT"
    if priority >= 5:
        return "TODO"
    if priority >= 1:
        return "SOMEDAY"
    return "TODO"


class AppleRemindersAdapter(SyncAdapter):
    name = "reminders"
    id_property = "APPLE_ID"
    container_property = "APPLE_LIST"

    def __init__(
        self,
        runner: OsaScriptRunner,
        list_name: str = "GTD",
        skip_completed: bool = True,
        excluded_lists: Tuple[str, ...] = ("Completed",),
    ):
        self.runner = runner
        self.list_name = list_name
        self.container = list_name
        self.skip_completed = skip_completed
        self.excluded_lists = excluded_lists

    def _field_statements(self, var: str, item: SyncItem) -> List[str]:
        stmts = [f"set name of {var} to {quote(item.title)}"]
        if item.deadline:
            stmts += date_statements("dueDate", item.deadline)
            stmts.append(f"set due date of {var} to dueDate")
        else:
            stmts.append(f"set due date of {var} to missing value")
        if item.scheduled:
            stmts += date_statements("remindDate", item.scheduled, item.scheduled_time)
            stmts.append(f"set remind me date of {var} to remindDate")
        else:
            stmts.append(f"set remind me date of {var} to missing value")
        priority = HIGH_PRIORITY if item.status == "NEXT" else 0
        stmts.append(f"set priority of {var} to {priority}")
        if item.description:
            stmts.append(f"set body of {var} to {quote(item.description)}")
        return stmts

    def create_event(self, item: SyncItem) -> SyncResult:
        script = "\n".join(
            [
                'tell application "Reminders"',
                f"  set targetList to list {quote(self.list_name)}",
                "  set newReminder to make new reminder at end of targetList",
                *("  " + s for s in self._field_statements("newReminder", item)),
                "  return (id of newReminder) as string",
                "end tell",
            ]
        )
        result = self.runner.run(script)
        if result.ok and not result.external_id:
            return SyncResult.failure("Reminders returned no id")
        return result

    def update_event(self, external_id: str, item: SyncItem) -> SyncResult:
        script = "\n".join(
            [
                'tell application "Reminders"',
                f"  set targetReminder to reminder id {quote(external_id)}",
                *("  " + s for s in self._field_statements("targetReminder", item)),
                '  return "OK"',
                "end tell",
            ]
        )
        result = self.runner.run(script)
        return SyncResult.success(external_id) if result.ok else result

    def delete_event(self, external_id: str) -> SyncResult:
        script = "\n".join(
            [
                'tell application "Reminders"',
                f"  delete reminder id {quote(external_id)}",
                "end tell",
            ]
        )
        result = self.runner.run(script)
        return SyncResult.success(external_id) if result.ok else result

    def complete_event(self, external_id: str) -> SyncResult:
        script = "\n".join(
            [
                'tell application "Reminders"',
                f"  set completed of reminder id {quote(external_id)} to true",
                '  return "OK"',
                "end tell",
            ]
        )
        result = self.runner.run(script)
        return SyncResult.success(external_id) if result.ok else result

    def import_status(self, item: ExternalItem) -> str:
        return status_for_priority(item.priority)

    def list_script(self) -> str:
        excluded = ", ".join(quote(name) for name in self.excluded_lists)
        sep = quote(FIELD_SEPARATOR)
        selector = " whose completed is false" if self.skip_completed else ""
        return "\n".join(
            [
                'set output to ""',
                'tell application "Reminders"',
                "  repeat with lst in lists",
                "    set listName to name of lst",
                f"    if listName is not in {{{excluded}}} then",
                f"      repeat with rem in (reminders of lst{selector})",
                "        set remBody to body of rem",
                '        if remBody is missing value then set remBody to ""',
                "        set dueText to \"NO_DATE\"",
                "        if due date of rem is not missing value then set dueText to ((due date of rem) as string)",
                f"        set output to output & (name of rem) & {sep} & listName & {sep} & (id of rem) & {sep} & remBody & {sep} & dueText & {sep} & ((priority of rem) as string) & {sep} & ((completed of rem) as string) & linefeed",
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
            log.warning("Could not list reminders: %s", result.error)
            return []
        items = []
        for title, list_name, rem_id, body, due_raw, priority, completed in split_records(
            result.external_id or "", _LIST_FIELDS
        ):
            due, _time = parse_apple_date(due_raw)
            try:
                prio = int(priority)
            except ValueError:
                prio = 0
            items.append(
                ExternalItem(
                    external_id=rem_id,
                    title=title,
                    container=list_name,
                    start=due,
                    all_day=True,
                    notes=body or None,
                    priority=prio,
                    completed=completed.lower() == "true",
                )
            )
        return items
