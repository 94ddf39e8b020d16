"""Custom widgets for the timesheet application."""

from __future__ import annotations

from datetime import date, timedelta

from textual.widgets import Static
from rich.text import Text

from models import DayEntry, WeekSummary
from utils import format_duration

MODE_LABELS = {
    "yard": "Yard",
    "travel": "Travel",
    "onset": "On set",
    "off": "Off",
    "holiday": "Holiday",
    "bankholiday": "Bank hol",
}


def describe_times(entry: DayEntry) -> str:
    """Short text of the time fields that matter for the day's mode."""
    if entry.mode == "yard":
        if not entry.yard_segments:
            return "no blocks" if entry.is_turnaround else ""
        return ", ".join(f"{seg.start or '?'}-{seg.end or '?'}" for seg in entry.yard_segments)
    if entry.mode == "travel":
        return f"{entry.leave_time or '?'} > {entry.arrive_time or '?'}"
    if entry.mode == "onset":
        parts = []
        if entry.precall_duration:
            parts.append(f"pre {entry.precall_duration}m")
        parts.append(f"call {entry.call_time or '?'}")
        parts.append(f"wrap {entry.wrap_time or '?'}")
        if entry.arrive_back:
            parts.append(f"back {entry.arrive_back}")
        return " ".join(parts)
    if entry.mode in ("holiday", "bankholiday"):
        return entry.holiday_label or ""
    return ""


def describe_flags(entry: DayEntry) -> str:
    flags = []
    if entry.lunch_sup:
        flags.append("L")
    if entry.travel_lunch_sup:
        flags.append("TL")
    if entry.travel_pd:
        flags.append("PD")
    if entry.meal_sup:
        flags.append("M")
    if entry.night_shoot:
        flags.append("N")
    if entry.overnight:
        flags.append("O")
    if entry.is_turnaround:
        flags.append("TA" if entry.turnaround_job else "TA?")
    if entry.half_holiday:
        flags.append("½H")
    return " ".join(flags)


class WeekHeader(Static):
    """Employee, week range and status."""

    def update_display(self, employee: str, week_start: date, status: str | None, credits_left: int, credits_total: int):
        week_end = week_start + timedelta(days=6)
        text = Text()
        text.append(f"{employee}  ", style="bold")
        text.append(f"W/C {week_start.strftime('%a %d %b %Y')} - {week_end.strftime('%d %b')}")
        text.append(f"   [{(status or 'new').upper()}]", style="bold")
        if credits_total:
            text.append(f"   Turnaround {credits_left}/{credits_total}")
        self.update(text)


class WeeklySummary(Static):
    """Shows weekly hours breakdown and flag counts."""

    def update_display(self, summary: WeekSummary):
        text = Text()

        # Totals are never dimmed
        text.append(f"{'Total':>14}  {format_duration(summary.total_minutes):>8}  ({float(summary.total_hours):g}h)\n")

        for label, minutes, days in (
            ("Yard", summary.yard_minutes, summary.yard_days),
            ("Travel", summary.travel_minutes, summary.travel_days),
            ("On set", summary.onset_minutes, summary.onset_days),
        ):
            line = f"{label:>14}  {format_duration(minutes):>8}  ({days}d)\n"
            text.append(line, style="dim" if days == 0 else "")

        for label, count in (
            ("Off", summary.off_days),
            ("Holiday", summary.holiday_days),
            ("Half holiday", summary.half_holiday_days),
            ("Bank holiday", summary.bank_holiday_days),
        ):
            text.append(f"{label:>14}  {count:>8}d\n", style="dim" if count == 0 else "")

        flags = [
            ("Lunch", summary.lunch_count),
            ("Travel lunch", summary.travel_lunch_count),
            ("Meal sup", summary.meal_sup_count),
            ("PD", summary.travel_pd_count),
            ("Night", summary.night_shoot_count),
            ("Overnight", summary.overnight_count),
            ("Turnaround", summary.turnaround_count),
        ]
        for i, (label, count) in enumerate(flags):
            text.append(f"{label} {count}", style="dim" if count == 0 else "")
            if i < len(flags) - 1:
                text.append("  ")

        self.update(text)
