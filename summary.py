"""Weekly hours summary."""

from __future__ import annotations

from models import BankHolidayInfo, DayEntry, HolidayInfo, Timesheet, WeekSummary
from normalizer import default_day, normalize
from utils import DAY_NAMES, duration


def compute_day_minutes(entry: DayEntry) -> int:
    """Worked minutes for one day, by mode."""
    if entry.mode == "yard":
        return sum(duration(seg.start, seg.end) for seg in entry.yard_segments)
    if entry.mode == "travel":
        return duration(entry.leave_time, entry.arrive_time)
    if entry.mode == "onset":
        if entry.call_time and entry.wrap_time:
            minutes = duration(entry.call_time, entry.wrap_time)
        else:
            start = entry.leave_time or entry.arrive_time or entry.call_time
            end = entry.arrive_back or entry.wrap_time
            minutes = duration(start, end)
        if entry.call_time and isinstance(entry.precall_duration, int):
            minutes += entry.precall_duration
        return minutes
    return 0


def summarize(
    timesheet: Timesheet,
    holiday_by_day: dict[str, HolidayInfo] | None = None,
    bank_holiday_by_day: dict[str, BankHolidayInfo] | None = None,
) -> WeekSummary:
    """Fold the seven days into totals. Does not modify the timesheet."""
    holiday_by_day = holiday_by_day or {}
    bank_holiday_by_day = bank_holiday_by_day or {}
    summary = WeekSummary()

    for name in DAY_NAMES:
        raw = timesheet.days.get(name)
        entry = normalize(raw) if raw is not None else default_day(name)
        minutes = compute_day_minutes(entry)
        summary.minutes_by_day[name] = minutes
        summary.total_minutes += minutes

        holiday = holiday_by_day.get(name)
        has_holiday = bool(holiday and holiday.has_holiday)
        half = entry.half_holiday or (has_holiday and holiday.is_half_day)
        full = entry.mode == "holiday" or (has_holiday and not holiday.is_half_day)
        bank = bank_holiday_by_day.get(name)
        bank_day = not has_holiday and (entry.mode == "bankholiday" or bool(bank and bank.not_working))

        if entry.mode == "yard":
            summary.yard_minutes += minutes
            summary.yard_days += 1
            summary.lunch_count += entry.lunch_sup
            summary.turnaround_count += entry.is_turnaround
        elif entry.mode == "travel":
            summary.travel_minutes += minutes
            summary.travel_days += 1
            summary.travel_lunch_count += entry.travel_lunch_sup
            summary.travel_pd_count += entry.travel_pd
        elif entry.mode == "onset":
            summary.onset_minutes += minutes
            summary.onset_days += 1
            summary.meal_sup_count += entry.meal_sup
            summary.night_shoot_count += entry.night_shoot
        elif entry.mode == "off":
            summary.off_days += 1

        summary.holiday_days += full and not half
        summary.half_holiday_days += half
        summary.bank_holiday_days += bank_day and not full
        summary.overnight_count += entry.overnight

    return summary
