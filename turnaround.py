"""Turnaround credit ledger.

A night shoot earns one turnaround credit per calendar date, for 14 days.
The signal is free text: a saved day note containing "night shoot",
"nightshoot" or "night-shoot" in any case. Credits are spent one per yard day
marked as turnaround in the week being edited, and a week can never spend
more than the window holds.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable

from models import JobRef, Timesheet, TurnaroundCredits
from normalizer import normalize, with_day
from utils import get_week_start, parse_iso_date, week_dates

logger = logging.getLogger(__name__)

CREDIT_WINDOW_DAYS = 14
NIGHT_SHOOT_SIGNALS = ("night shoot", "nightshoot", "night-shoot")

REJECT_LOCKED = "locked"
REJECT_NOT_YARD = "not_yard"
REJECT_NO_CREDITS = "no_credits"
REJECT_EXHAUSTED = "exhausted"


@dataclass
class ToggleResult:
    timesheet: Timesheet
    accepted: bool
    reason: str | None = None
    code: str | None = None


def has_night_shoot_signal(notes) -> bool:
    if not isinstance(notes, str):
        return False
    text = notes.lower()
    return any(signal in text for signal in NIGHT_SHOOT_SIGNALS)


def credit_window(today: date) -> list[date]:
    """The 14 dates ending today, oldest first."""
    return [today - timedelta(days=n) for n in range(CREDIT_WINDOW_DAYS - 1, -1, -1)]


def credit_week_starts(today: date) -> list[date]:
    """Week starts that can hold a date in the window: this week and the two before."""
    current = get_week_start(today)
    return [current - timedelta(weeks=n) for n in range(3)]


def compute_credits(employee_code: str, today: date, saved_timesheets: Iterable[dict]) -> TurnaroundCredits:
    """Count night-shoot dates in the window across the employee's saved timesheet documents.

    ``saved_timesheets`` are stored documents as returned by storage, so the
    jobs stamped into each day at save time can be offered as turnaround jobs.
    """
    window = set(credit_window(today))
    week_starts = set(credit_week_starts(today))
    sources: dict[date, list[JobRef]] = {}

    for doc in saved_timesheets:
        if str(doc.get("employeeCode") or "") != employee_code:
            continue
        week_start = parse_iso_date(doc.get("weekStart"))
        if week_start not in week_starts:
            continue
        days = doc.get("days") if isinstance(doc.get("days"), dict) else {}
        for name, d in week_dates(week_start).items():
            raw = days.get(name)
            if d not in window or not isinstance(raw, dict):
                continue
            if not has_night_shoot_signal(raw.get("dayNotes")):
                continue
            jobs = sources.setdefault(d, [])
            for job in raw.get("jobs") or []:
                ref = JobRef.from_dict(job)
                if ref and ref.booking_id and all(j.booking_id != ref.booking_id for j in jobs):
                    ref.date_iso = d.isoformat()
                    jobs.append(ref)

    dates = sorted(sources)
    logger.debug("Turnaround credits for %s on %s: %s", employee_code, today, dates)
    return TurnaroundCredits(
        total=len(dates),
        source_dates=dates,
        source_jobs=[job for d in dates for job in sources[d]],
    )


def used_this_week(timesheet: Timesheet) -> int:
    return sum(1 for e in timesheet.days.values() if e.mode == "yard" and e.is_turnaround)


def remaining_credits(timesheet: Timesheet, credits: TurnaroundCredits | None) -> int:
    total = credits.total if credits else 0
    return max(0, total - used_this_week(timesheet))


def turnaround_job_options(credits: TurnaroundCredits | None) -> list[JobRef]:
    return list(credits.source_jobs) if credits else []


def _reject(timesheet: Timesheet, code: str, reason: str) -> ToggleResult:
    logger.info("Turnaround toggle rejected on %s: %s", timesheet.key, reason)
    return ToggleResult(timesheet=timesheet, accepted=False, reason=reason, code=code)


def toggle_turnaround(timesheet: Timesheet, day_name: str, credits: TurnaroundCredits | None) -> ToggleResult:
    """Flip a day's turnaround flag.

    Turning it off is always allowed and clears the chosen job. Turning it on
    needs a yard day and an unspent credit, and leaves the job unselected; the
    caller must pick one before the sheet can be saved.
    """
    if timesheet.is_approved:
        return _reject(timesheet, REJECT_LOCKED, "This timesheet has been approved and can no longer be changed.")
    entry = timesheet.days.get(day_name)
    if entry is None:
        return _reject(timesheet, REJECT_NOT_YARD, f"Unknown day {day_name!r}.")

    data = entry.to_dict()
    if entry.is_turnaround:
        data["isTurnaround"] = False
        data["turnaroundJob"] = None
        if not entry.yard_segments:
            data["yardSegments"] = None
            data["lunchSup"] = None
        return ToggleResult(timesheet=with_day(timesheet, day_name, normalize(data)), accepted=True)

    if entry.mode != "yard":
        return _reject(timesheet, REJECT_NOT_YARD, f"{day_name}: turnaround is only available on yard days.")
    total = credits.total if credits else 0
    if total <= 0:
        return _reject(timesheet, REJECT_NO_CREDITS, "No night shoot in the last 14 days, so there is no turnaround to use.")
    used = used_this_week(timesheet)
    if used >= total:
        return _reject(
            timesheet,
            REJECT_EXHAUSTED,
            f"All {total} turnaround credit(s) from the last 14 days are already used this week.",
        )

    data["isTurnaround"] = True
    data["turnaroundJob"] = None
    data["yardSegments"] = []
    data["lunchSup"] = False
    return ToggleResult(timesheet=with_day(timesheet, day_name, normalize(data)), accepted=True)


def select_turnaround_job(timesheet: Timesheet, day_name: str, job: JobRef | None) -> Timesheet:
    """Attach the originating job to a turnaround day."""
    entry = timesheet.days.get(day_name)
    if timesheet.is_approved or entry is None or entry.mode != "yard" or not entry.is_turnaround:
        return timesheet
    data = entry.to_dict()
    data["turnaroundJob"] = job.to_dict() if job else None
    return with_day(timesheet, day_name, normalize(data))
