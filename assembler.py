"""Build and validate the document written when a week is saved or submitted."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Iterable

from errors import LockedStateError, ValidationError
from models import (
    DEFAULT_YARD_END,
    DEFAULT_YARD_START,
    STATUS_DRAFT,
    STATUS_SUBMITTED,
    DayEntry,
    JobRef,
    Timesheet,
    TurnaroundCredits,
)
from normalizer import default_day, normalize, with_day
from utils import DAY_NAMES, WEEKDAY_NAMES, parse_time_of_day, week_dates

logger = logging.getLogger(__name__)


@dataclass
class ValidationResult:
    ok: bool
    errors: list[str] = field(default_factory=list)
    days: list[str] = field(default_factory=list)


def with_default_yard_times(timesheet: Timesheet) -> Timesheet:
    """Fill missing leave/arrive-back times on Monday-Friday yard days."""
    for name in WEEKDAY_NAMES:
        entry = timesheet.days.get(name)
        if entry is None or entry.mode != "yard":
            continue
        data = entry.to_dict()
        if not entry.leave_time:
            data["leaveTime"] = DEFAULT_YARD_START
        if not entry.arrive_back and not entry.arrive_time:
            data["arriveBack"] = DEFAULT_YARD_END
        timesheet = with_day(timesheet, name, normalize(data))
    return timesheet


def ends_next_day(entry: DayEntry) -> bool:
    """Whether a travel or on-set day finishes after midnight."""
    if entry.mode == "travel":
        pairs = [(entry.leave_time, entry.arrive_time), (entry.leave_time, entry.arrive_back)]
    elif entry.mode == "onset":
        pairs = [
            (entry.call_time, entry.wrap_time),
            (entry.leave_time or entry.arrive_time or entry.call_time, entry.arrive_back),
        ]
    else:
        return False
    for start, end in pairs:
        s, e = parse_time_of_day(start), parse_time_of_day(end)
        if s is not None and e is not None and e < s:
            return True
    return False


def _job_refs(jobs: Iterable) -> list[JobRef]:
    refs = []
    for job in jobs or []:
        ref = job if isinstance(job, JobRef) else JobRef.from_dict(job)
        if ref is not None:
            refs.append(ref)
    return refs


def build_job_snapshot(jobs_by_day: dict[str, list]) -> dict:
    """Denormalised job references for reporting."""
    by_day = {
        name: [
            {k: v for k, v in ref.to_dict().items() if k != "dateISO"}
            for ref in _job_refs(jobs_by_day.get(name, []))
        ]
        for name in DAY_NAMES
    }
    flat = [{"dayName": name, **job} for name in DAY_NAMES for job in by_day[name]]
    booking_ids = list(dict.fromkeys(job["bookingId"] for job in flat))
    job_numbers = list(dict.fromkeys(job["jobNumber"] for job in flat if job["jobNumber"]))
    return {
        "byDay": by_day,
        "flat": flat,
        "bookingIds": booking_ids,
        "jobNumbers": job_numbers,
        "bookingIdsByDay": {name: [job["bookingId"] for job in by_day[name]] for name in DAY_NAMES},
        "jobNumbersByDay": {
            name: [job["jobNumber"] for job in by_day[name] if job["jobNumber"]] for name in DAY_NAMES
        },
    }


def _timestamp(now: datetime | None) -> str:
    return (now or datetime.now(timezone.utc)).isoformat(timespec="seconds")


def prepare_for_save(
    timesheet: Timesheet,
    jobs_by_day: dict[str, list] | None,
    week_start: date,
    credits: TurnaroundCredits | None = None,
    submit: bool = False,
    now: datetime | None = None,
) -> dict:
    """Assemble the stored document for a save (draft) or submit.

    Raises LockedStateError for an approved timesheet.
    """
    if timesheet.is_approved:
        raise LockedStateError("This timesheet has been approved and can no longer be changed.")
    jobs_by_day = jobs_by_day or {}
    timesheet = with_default_yard_times(timesheet)
    dates = week_dates(week_start)

    days = {}
    for name in DAY_NAMES:
        raw = timesheet.days.get(name)
        entry = normalize(raw) if raw is not None else default_day(name)
        crosses = ends_next_day(entry)
        if crosses:
            entry.overnight = True
        refs = _job_refs(jobs_by_day.get(name, []))
        jobs = [{k: v for k, v in ref.to_dict().items() if k != "dateISO"} for ref in refs]
        day = entry.to_dict()
        day.update({
            "dateISO": dates[name].isoformat(),
            "jobs": jobs,
            "hasJob": bool(jobs),
            "bookingId": jobs[0]["bookingId"] if jobs else None,
            "jobNumber": (jobs[0]["jobNumber"] or None) if jobs else None,
            "endsNextDay": crosses,
        })
        days[name] = day

    snapshot = build_job_snapshot(jobs_by_day)
    stamp = _timestamp(now)
    payload = {
        "employeeCode": timesheet.employee_code,
        "employeeName": timesheet.employee_name,
        "weekStart": week_start.isoformat(),
        "days": days,
        "notes": timesheet.notes,
        "jobSnapshot": snapshot,
        "jobId": snapshot["bookingIds"][0] if len(snapshot["bookingIds"]) == 1 else None,
        "jobNumber": snapshot["jobNumbers"][0] if len(snapshot["jobNumbers"]) == 1 else None,
        "turnaroundCredits": (credits or TurnaroundCredits()).audit_dict(),
        "updatedAt": stamp,
    }
    already_submitted = timesheet.submitted or (timesheet.status or "").lower() == STATUS_SUBMITTED
    if submit:
        payload.update({"status": STATUS_SUBMITTED, "submitted": True, "submittedAt": stamp})
    elif already_submitted:
        payload.update({"status": STATUS_SUBMITTED, "submitted": True})
        if timesheet.submitted_at:
            payload["submittedAt"] = timesheet.submitted_at
    else:
        payload.update({"status": STATUS_DRAFT, "submitted": False})
    return payload


def validate(payload: dict) -> ValidationResult:
    """Check a prepared payload before anything is written.

    The credit cap is applied when a turnaround is switched on, so a week whose
    night shoot has since left the window still saves.
    """
    errors = []
    bad_days = []
    days = payload.get("days") or {}
    for name in DAY_NAMES:
        day = days.get(name) or {}
        if day.get("mode") != "yard" or not day.get("isTurnaround"):
            continue
        job = day.get("turnaroundJob") or {}
        if not job.get("bookingId"):
            errors.append(f"{name}: choose the job this turnaround day is for.")
            bad_days.append(name)

    return ValidationResult(ok=not errors, errors=errors, days=bad_days)


def ensure_valid(payload: dict) -> None:
    result = validate(payload)
    if not result.ok:
        logger.info("Validation failed for %s_%s: %s",
                    payload.get("employeeCode"), payload.get("weekStart"), result.errors)
        raise ValidationError(result.errors, day=result.days[0] if result.days else None)
