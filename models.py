from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from utils import DAY_NAMES, minutes_to_hours

MODES = ("yard", "travel", "onset", "off", "holiday", "bankholiday")
LOCKED_MODES = ("holiday", "bankholiday")

DEFAULT_YARD_START = "08:00"
DEFAULT_YARD_END = "16:30"

STATUS_DRAFT = "draft"
STATUS_SUBMITTED = "submitted"
STATUS_APPROVED = "approved"


@dataclass
class YardSegment:
    start: str | None = DEFAULT_YARD_START
    end: str | None = DEFAULT_YARD_END

    def to_dict(self) -> dict:
        return {"start": self.start, "end": self.end}


@dataclass
class JobRef:
    """A booking the employee was scheduled on."""

    booking_id: str
    job_number: str = ""
    client: str = ""
    location: str = ""
    date_iso: str | None = None

    @classmethod
    def from_dict(cls, data) -> JobRef | None:
        if not isinstance(data, dict):
            return None
        return cls(
            booking_id=str(data.get("bookingId") or data.get("id") or ""),
            job_number=str(data.get("jobNumber") or ""),
            client=str(data.get("client") or ""),
            location=str(data.get("location") or ""),
            date_iso=data.get("dateISO") or None,
        )

    def to_dict(self) -> dict:
        data = {
            "bookingId": self.booking_id,
            "jobNumber": self.job_number,
            "client": self.client,
            "location": self.location,
        }
        if self.date_iso:
            data["dateISO"] = self.date_iso
        return data


@dataclass
class DayEntry:
    """One employee's record for one day of the week."""

    mode: str = "yard"
    yard_segments: list[YardSegment] = field(default_factory=list)
    leave_time: str | None = None
    arrive_time: str | None = None
    call_time: str | None = None
    wrap_time: str | None = None
    arrive_back: str | None = None
    precall_duration: int | None = None
    lunch_sup: bool = False
    travel_lunch_sup: bool = False
    travel_pd: bool = False
    meal_sup: bool = False
    night_shoot: bool = False
    overnight: bool = False
    is_turnaround: bool = False
    turnaround_job: JobRef | None = None
    day_notes: str = ""
    half_holiday: bool = False
    half_holiday_label: str | None = None
    holiday_label: str | None = None

    @property
    def is_locked(self) -> bool:
        return self.mode in LOCKED_MODES

    def to_dict(self) -> dict:
        return {
            "mode": self.mode,
            "yardSegments": [seg.to_dict() for seg in self.yard_segments],
            "leaveTime": self.leave_time,
            "arriveTime": self.arrive_time,
            "callTime": self.call_time,
            "wrapTime": self.wrap_time,
            "arriveBack": self.arrive_back,
            "precallDuration": self.precall_duration,
            "lunchSup": self.lunch_sup,
            "travelLunchSup": self.travel_lunch_sup,
            "travelPD": self.travel_pd,
            "mealSup": self.meal_sup,
            "nightShoot": self.night_shoot,
            "overnight": self.overnight,
            "isTurnaround": self.is_turnaround,
            "turnaroundJob": self.turnaround_job.to_dict() if self.turnaround_job else None,
            "dayNotes": self.day_notes,
            "halfHoliday": self.half_holiday,
            "halfHolidayLabel": self.half_holiday_label,
            "holidayLabel": self.holiday_label,
        }


@dataclass
class TurnaroundCredits:
    """Night-shoot credits earned in the lookback window."""

    total: int = 0
    source_dates: list[date] = field(default_factory=list)
    source_jobs: list[JobRef] = field(default_factory=list)

    @property
    def eligible(self) -> bool:
        return self.total > 0

    def audit_dict(self) -> dict:
        return {
            "total": self.total,
            "sourcesLast14Days": [d.isoformat() for d in self.source_dates],
        }


@dataclass
class Timesheet:
    """One employee's week, keyed by (employee_code, week_start)."""

    employee_code: str
    week_start: date
    days: dict[str, DayEntry] = field(default_factory=dict)
    status: str | None = None
    submitted: bool = False
    notes: str = ""
    employee_name: str | None = None
    submitted_at: str | None = None
    turnaround_credits: dict | None = None
    job_snapshot: dict | None = None

    @property
    def key(self) -> str:
        return timesheet_key(self.employee_code, self.week_start)

    @property
    def is_approved(self) -> bool:
        return (self.status or "").lower() == STATUS_APPROVED

    def to_dict(self) -> dict:
        return {
            "employeeCode": self.employee_code,
            "employeeName": self.employee_name,
            "weekStart": self.week_start.isoformat(),
            "days": {name: self.days[name].to_dict() for name in DAY_NAMES if name in self.days},
            "status": self.status,
            "submitted": self.submitted,
            "submittedAt": self.submitted_at,
            "notes": self.notes,
            "turnaroundCredits": self.turnaround_credits,
            "jobSnapshot": self.job_snapshot,
        }


def timesheet_key(employee_code: str, week_start: date) -> str:
    return f"{employee_code}_{week_start.isoformat()}"


@dataclass
class HolidayInfo:
    """An approved personal holiday covering one day."""

    has_holiday: bool = False
    is_half_day: bool = False
    paid_status: str | None = None
    leave_type: str | None = None
    half_day_period: str | None = None

    @property
    def label(self) -> str:
        if self.is_half_day:
            if self.half_day_period:
                return f"Half day holiday ({self.half_day_period})"
            return "Half day holiday"
        if self.paid_status:
            return f"Holiday ({self.paid_status})"
        return "Holiday"


@dataclass
class BankHolidayInfo:
    name: str
    not_working: bool = True


@dataclass
class WeekSummary:
    """Read-only totals for a week."""

    minutes_by_day: dict[str, int] = field(default_factory=dict)
    total_minutes: int = 0
    yard_minutes: int = 0
    travel_minutes: int = 0
    onset_minutes: int = 0
    yard_days: int = 0
    travel_days: int = 0
    onset_days: int = 0
    off_days: int = 0
    holiday_days: int = 0
    half_holiday_days: int = 0
    bank_holiday_days: int = 0
    lunch_count: int = 0
    travel_lunch_count: int = 0
    meal_sup_count: int = 0
    travel_pd_count: int = 0
    night_shoot_count: int = 0
    overnight_count: int = 0
    turnaround_count: int = 0

    @property
    def total_hours(self) -> Decimal:
        return minutes_to_hours(self.total_minutes)


@dataclass
class Config:
    employee_code: str = ""
    employee_name: str = ""
    bank_holiday_region: str = "ENG"
