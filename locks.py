"""Holiday and bank holiday locks for a week.

Re-run ``apply_locks`` every time holiday or bank holiday data changes. Per
day, in priority order:

1. full-day personal holiday: day becomes ``holiday``, all work fields cleared
2. non-working bank holiday with no personal holiday: day becomes ``bankholiday``
3. half-day personal holiday: day is forced to ``yard`` and stays editable
4. nothing: the day is only normalised, so in-progress edits survive
"""

from __future__ import annotations

import logging
from dataclasses import replace

from models import LOCKED_MODES, BankHolidayInfo, DayEntry, HolidayInfo, Timesheet
from normalizer import default_day, normalize

logger = logging.getLogger(__name__)


def _locked_day(entry: DayEntry, mode: str, label: str | None) -> DayEntry:
    return normalize({"mode": mode, "dayNotes": entry.day_notes, "holidayLabel": label})


def resolve_day(
    day_name: str,
    entry: DayEntry,
    holiday: HolidayInfo | None,
    bank_holiday: BankHolidayInfo | None,
) -> DayEntry:
    has_holiday = bool(holiday and holiday.has_holiday)

    if has_holiday and not holiday.is_half_day:
        return _locked_day(entry, "holiday", holiday.label)

    if bank_holiday and bank_holiday.not_working and not has_holiday:
        return _locked_day(entry, "bankholiday", bank_holiday.name)

    if has_holiday:
        if entry.mode == "yard":
            data = entry.to_dict()
        else:
            data = default_day("Monday").to_dict()
            data["dayNotes"] = entry.day_notes
        data["halfHoliday"] = True
        data["halfHolidayLabel"] = holiday.label
        return normalize(data)

    if entry.mode in LOCKED_MODES:
        # The holiday behind this lock has gone away.
        released = default_day(day_name).to_dict()
        released["dayNotes"] = entry.day_notes
        return normalize(released)

    if entry.half_holiday:
        data = entry.to_dict()
        data["halfHoliday"] = False
        data["halfHolidayLabel"] = None
        return normalize(data)

    return normalize(entry)


def apply_locks(
    timesheet: Timesheet,
    holiday_by_day: dict[str, HolidayInfo] | None,
    bank_holiday_by_day: dict[str, BankHolidayInfo] | None,
) -> Timesheet:
    """Recompute every day's lock state. Idempotent; approved sheets are returned as-is."""
    if timesheet.is_approved:
        return timesheet
    holiday_by_day = holiday_by_day or {}
    bank_holiday_by_day = bank_holiday_by_day or {}

    days = {}
    for name, entry in timesheet.days.items():
        resolved = resolve_day(name, entry, holiday_by_day.get(name), bank_holiday_by_day.get(name))
        if resolved.mode != entry.mode:
            logger.debug("%s %s: %s -> %s", timesheet.key, name, entry.mode, resolved.mode)
        days[name] = resolved
    return replace(timesheet, days=days)
