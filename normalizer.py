"""Day entry normalisation and edit operations.

Every component that needs a structurally complete day goes through
``normalize``. Each mode has its own normaliser, dispatched by ``mode``, so
the defaults and the fields a mode keeps live in one place. Anything a mode
does not keep is reset to None/False/empty.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date

from models import (
    DEFAULT_YARD_END,
    DEFAULT_YARD_START,
    MODES,
    DayEntry,
    JobRef,
    Timesheet,
    YardSegment,
)
from utils import DAY_NAMES, WEEKDAY_NAMES, parse_iso_date

logger = logging.getLogger(__name__)

EDITABLE_MODES = ("yard", "travel", "onset", "off")

PRECALL_MIN = 15
PRECALL_MAX = 240

_MODE_ALIASES = {
    "on-set": "onset",
    "on set": "onset",
    "on_set": "onset",
    "bank holiday": "bankholiday",
    "bank_holiday": "bankholiday",
    "bank-holiday": "bankholiday",
}

# DayEntry attribute -> stored document key
FIELD_KEYS = {
    "mode": "mode",
    "yard_segments": "yardSegments",
    "leave_time": "leaveTime",
    "arrive_time": "arriveTime",
    "call_time": "callTime",
    "wrap_time": "wrapTime",
    "arrive_back": "arriveBack",
    "precall_duration": "precallDuration",
    "lunch_sup": "lunchSup",
    "travel_lunch_sup": "travelLunchSup",
    "travel_pd": "travelPD",
    "meal_sup": "mealSup",
    "night_shoot": "nightShoot",
    "overnight": "overnight",
    "day_notes": "dayNotes",
}


def _mode(value) -> str:
    mode = str(value or "yard").strip().lower()
    mode = _MODE_ALIASES.get(mode, mode)
    return mode if mode in MODES else "yard"


def _text(value) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _flag(data: dict, key: str, default: bool) -> bool:
    value = data.get(key)
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes")
    return bool(value)


def _precall(value) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not number.is_integer():
        return None
    minutes = int(number)
    if PRECALL_MIN <= minutes <= PRECALL_MAX:
        return minutes
    return None


def _segments(value) -> list[YardSegment] | None:
    if not isinstance(value, list):
        return None
    segments = []
    for item in value:
        if isinstance(item, YardSegment):
            segments.append(YardSegment(_text(item.start), _text(item.end)))
        elif isinstance(item, dict):
            segments.append(YardSegment(_text(item.get("start")), _text(item.get("end"))))
    return segments


def _normalize_yard(data: dict, entry: DayEntry) -> None:
    is_turnaround = _flag(data, "isTurnaround", False)
    segments = _segments(data.get("yardSegments"))
    if segments is None:
        # Turnaround days start with no blocks logged.
        segments = [] if is_turnaround else [YardSegment()]
    entry.yard_segments = segments
    entry.lunch_sup = _flag(data, "lunchSup", True) if segments else False
    entry.leave_time = _text(data.get("leaveTime"))
    entry.arrive_time = _text(data.get("arriveTime"))
    entry.arrive_back = _text(data.get("arriveBack"))
    entry.is_turnaround = is_turnaround
    if is_turnaround:
        entry.turnaround_job = JobRef.from_dict(data.get("turnaroundJob"))
    entry.half_holiday = _flag(data, "halfHoliday", False)
    if entry.half_holiday:
        entry.half_holiday_label = _text(data.get("halfHolidayLabel"))


def _normalize_travel(data: dict, entry: DayEntry) -> None:
    entry.leave_time = _text(data.get("leaveTime"))
    entry.arrive_time = _text(data.get("arriveTime"))
    entry.arrive_back = _text(data.get("arriveBack"))
    entry.travel_lunch_sup = _flag(data, "travelLunchSup", True)
    entry.travel_pd = _flag(data, "travelPD", False)
    entry.overnight = _flag(data, "overnight", False)


def _normalize_onset(data: dict, entry: DayEntry) -> None:
    entry.leave_time = _text(data.get("leaveTime"))
    entry.arrive_time = _text(data.get("arriveTime"))
    entry.call_time = _text(data.get("callTime"))
    entry.wrap_time = _text(data.get("wrapTime"))
    entry.arrive_back = _text(data.get("arriveBack"))
    entry.precall_duration = _precall(data.get("precallDuration"))
    entry.meal_sup = _flag(data, "mealSup", True)
    entry.night_shoot = _flag(data, "nightShoot", False)
    entry.overnight = _flag(data, "overnight", False)


def _normalize_off(data: dict, entry: DayEntry) -> None:
    pass


def _normalize_locked(data: dict, entry: DayEntry) -> None:
    entry.holiday_label = _text(data.get("holidayLabel"))


_NORMALIZERS = {
    "yard": _normalize_yard,
    "travel": _normalize_travel,
    "onset": _normalize_onset,
    "off": _normalize_off,
    "holiday": _normalize_locked,
    "bankholiday": _normalize_locked,
}


def normalize(raw) -> DayEntry:
    """Build a complete DayEntry from a stored record, a partial dict or a DayEntry.

    Total and idempotent: ``normalize(normalize(r)) == normalize(r)``.
    """
    if isinstance(raw, DayEntry):
        data = raw.to_dict()
    elif isinstance(raw, dict):
        data = raw
    else:
        data = {}

    mode = _mode(data.get("mode"))
    notes = data.get("dayNotes")
    entry = DayEntry(mode=mode, day_notes=notes if isinstance(notes, str) else "")
    _NORMALIZERS[mode](data, entry)
    return entry


def default_day(day_name: str) -> DayEntry:
    """A fresh day: yard 08:00-16:30 on weekdays, off at weekends."""
    if day_name not in WEEKDAY_NAMES:
        return normalize({"mode": "off"})
    return normalize({
        "mode": "yard",
        "leaveTime": DEFAULT_YARD_START,
        "arriveBack": DEFAULT_YARD_END,
    })


def new_timesheet(employee_code: str, week_start: date, employee_name: str | None = None) -> Timesheet:
    return Timesheet(
        employee_code=employee_code,
        week_start=week_start,
        days={name: default_day(name) for name in DAY_NAMES},
        employee_name=employee_name,
    )


def timesheet_from_dict(data: dict, employee_code: str | None = None, week_start: date | None = None) -> Timesheet:
    """Rebuild a Timesheet from a stored document, patching legacy or missing days."""
    stored_days = data.get("days") if isinstance(data.get("days"), dict) else {}
    days = {}
    for name in DAY_NAMES:
        raw = stored_days.get(name)
        days[name] = normalize(raw) if isinstance(raw, dict) else default_day(name)

    status = data.get("status")
    submitted = bool(data.get("submitted"))
    if not status and submitted:
        status = "submitted"

    return Timesheet(
        employee_code=str(data.get("employeeCode") or employee_code or ""),
        week_start=parse_iso_date(data.get("weekStart")) or week_start or date.today(),
        days=days,
        status=status,
        submitted=submitted,
        notes=str(data.get("notes") or ""),
        employee_name=data.get("employeeName"),
        submitted_at=data.get("submittedAt"),
        turnaround_credits=data.get("turnaroundCredits"),
        job_snapshot=data.get("jobSnapshot"),
    )


def with_day(timesheet: Timesheet, day_name: str, entry: DayEntry) -> Timesheet:
    """Copy of the timesheet with one day replaced."""
    return replace(timesheet, days={**timesheet.days, day_name: entry})


def can_edit(timesheet: Timesheet, day_name: str) -> bool:
    if timesheet.is_approved:
        logger.warning("Refusing edit to %s on approved timesheet %s", day_name, timesheet.key)
        return False
    if day_name not in timesheet.days:
        return False
    if timesheet.days[day_name].is_locked:
        logger.info("Refusing edit to locked day %s on %s", day_name, timesheet.key)
        return False
    return True


def update_day(timesheet: Timesheet, day_name: str, field: str, value) -> Timesheet:
    """Set one field of a day and re-normalise it.

    Returns the timesheet unchanged when the sheet is approved, the day is a
    holiday or bank holiday, or the field is not editable here. Turnaround
    fields go through the turnaround module so the credit cap is applied.
    """
    if not can_edit(timesheet, day_name):
        return timesheet
    key = FIELD_KEYS.get(field)
    if key is None:
        logger.warning("Field %r cannot be set with update_day", field)
        return timesheet

    current = timesheet.days[day_name]
    data = current.to_dict()

    if field == "mode":
        mode = _mode(value)
        if mode not in EDITABLE_MODES:
            return timesheet
        if current.half_holiday and mode != "yard":
            # The working half of a half-day holiday is logged as yard time.
            return timesheet
        if mode != current.mode:
            # The new mode starts from its own flag defaults.
            for key in ("lunchSup", "travelLunchSup", "travelPD", "mealSup", "nightShoot"):
                data[key] = None
        if mode == "yard" and current.mode != "yard":
            data["yardSegments"] = None
            data["leaveTime"] = current.leave_time or DEFAULT_YARD_START
            data["arriveBack"] = current.arrive_back or DEFAULT_YARD_END
        data["mode"] = mode
    elif field == "yard_segments":
        data["yardSegments"] = [
            seg.to_dict() if isinstance(seg, YardSegment) else seg for seg in (value or [])
        ]
    else:
        data[key] = value

    return with_day(timesheet, day_name, normalize(data))


def add_yard_segment(timesheet: Timesheet, day_name: str) -> Timesheet:
    """Append a segment starting where the last one finished."""
    if not can_edit(timesheet, day_name) or timesheet.days[day_name].mode != "yard":
        return timesheet
    entry = timesheet.days[day_name]
    last_end = entry.yard_segments[-1].end if entry.yard_segments else None
    segments = list(entry.yard_segments) + [YardSegment(last_end or DEFAULT_YARD_START, DEFAULT_YARD_END)]
    return update_day(timesheet, day_name, "yard_segments", segments)


def remove_yard_segment(timesheet: Timesheet, day_name: str, index: int) -> Timesheet:
    """Remove a segment; an ordinary yard day keeps at least one."""
    if not can_edit(timesheet, day_name) or timesheet.days[day_name].mode != "yard":
        return timesheet
    entry = timesheet.days[day_name]
    if not 0 <= index < len(entry.yard_segments):
        return timesheet
    if len(entry.yard_segments) <= 1 and not entry.is_turnaround:
        return timesheet
    segments = [seg for i, seg in enumerate(entry.yard_segments) if i != index]
    return update_day(timesheet, day_name, "yard_segments", segments)


def update_yard_segment(timesheet: Timesheet, day_name: str, index: int, field: str, value: str | None) -> Timesheet:
    if field not in ("start", "end"):
        return timesheet
    if not can_edit(timesheet, day_name) or timesheet.days[day_name].mode != "yard":
        return timesheet
    entry = timesheet.days[day_name]
    if not 0 <= index < len(entry.yard_segments):
        return timesheet
    segments = [
        replace(seg, **{field: value}) if i == index else seg
        for i, seg in enumerate(entry.yard_segments)
    ]
    return update_day(timesheet, day_name, "yard_segments", segments)

