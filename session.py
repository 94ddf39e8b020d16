"""One employee's editing session for one week.

Storage calls are blocking sqlite reads and writes, so they run in a worker
thread and are awaited one at a time. Everything else is the pure core
operating on ``self.timesheet``.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date, datetime

import storage
from assembler import ensure_valid, prepare_for_save
from errors import CreditExceededError, LockedStateError, StorageError, ValidationError
from locks import apply_locks
from models import STATUS_APPROVED, BankHolidayInfo, HolidayInfo, JobRef, Timesheet, TurnaroundCredits, WeekSummary
from normalizer import (
    add_yard_segment,
    new_timesheet,
    remove_yard_segment,
    timesheet_from_dict,
    update_day,
    update_yard_segment,
)
from summary import summarize
from turnaround import (
    REJECT_EXHAUSTED,
    REJECT_LOCKED,
    REJECT_NO_CREDITS,
    ToggleResult,
    compute_credits,
    credit_week_starts,
    remaining_credits,
    select_turnaround_job,
    toggle_turnaround,
    turnaround_job_options,
)
from utils import get_week_start, week_dates

logger = logging.getLogger(__name__)

LOCKED_MESSAGE = "This timesheet has been approved and can no longer be changed."


class WeekSession:
    """Load, edit, save and submit one week."""

    def __init__(
        self,
        employee_code: str,
        week_start: date,
        employee_name: str | None = None,
        region: str = "ENG",
        today: date | None = None,
        store=storage,
    ):
        self.employee_code = employee_code
        self.employee_name = employee_name
        self.week_start = get_week_start(week_start)
        self.region = region
        self.today = today or date.today()
        self.store = store

        self.timesheet: Timesheet = new_timesheet(employee_code, self.week_start, employee_name)
        self.holidays: dict[str, HolidayInfo] = {}
        self.bank_holidays: dict[str, BankHolidayInfo] = {}
        self.jobs_by_day: dict[str, list[JobRef]] = {}
        self.credits = TurnaroundCredits()

    @property
    def dates(self) -> dict[str, date]:
        return week_dates(self.week_start)

    @property
    def is_locked(self) -> bool:
        return self.timesheet.is_approved

    @property
    def remaining_credits(self) -> int:
        return remaining_credits(self.timesheet, self.credits)

    async def _call(self, fn, *args):
        return await asyncio.to_thread(fn, *args)

    async def _optional(self, what: str, fn, *args, default):
        """Fetch external data, treating a storage failure as "none"."""
        try:
            result = await self._call(fn, *args)
        except StorageError as exc:
            logger.warning("Could not fetch %s for %s: %s", what, self.employee_code, exc)
            return default
        return result if result is not None else default

    async def load(self) -> Timesheet:
        """Load the stored week (or a fresh one) and all external data."""
        if self.employee_name is None:
            employee = await self._optional("employee", self.store.get_employee, self.employee_code, default={})
            self.employee_name = employee.get("name")

        doc = await self._call(self.store.load_timesheet, self.employee_code, self.week_start)
        if doc:
            self.timesheet = timesheet_from_dict(doc, self.employee_code, self.week_start)
            if not self.timesheet.employee_name:
                self.timesheet.employee_name = self.employee_name
        else:
            self.timesheet = new_timesheet(self.employee_code, self.week_start, self.employee_name)

        await self.refresh_external()
        return self.timesheet

    async def refresh_external(self) -> None:
        dates = list(self.dates.values())
        self.jobs_by_day = await self._optional(
            "job assignments", self.store.get_job_assignments, self.employee_code, dates, default={}
        )
        await self.refresh_credits()
        holidays = await self._optional(
            "holidays", self.store.get_approved_holidays, self.employee_code, dates, default={}
        )
        bank_holidays = await self._optional(
            "bank holidays", self.store.get_bank_holidays, self.region, dates, default={}
        )
        self.set_holidays(holidays, bank_holidays)

    async def refresh_credits(self) -> TurnaroundCredits:
        docs = await self._optional(
            "recent timesheets",
            self.store.get_recent_timesheets,
            self.employee_code,
            credit_week_starts(self.today),
            default=[],
        )
        self.credits = compute_credits(self.employee_code, self.today, docs)
        return self.credits

    def set_holidays(
        self,
        holidays: dict[str, HolidayInfo] | None,
        bank_holidays: dict[str, BankHolidayInfo] | None,
    ) -> Timesheet:
        """Replace holiday data and re-apply the locks straight away."""
        self.holidays = holidays or {}
        self.bank_holidays = bank_holidays or {}
        self.timesheet = apply_locks(self.timesheet, self.holidays, self.bank_holidays)
        return self.timesheet

    def _check_unlocked(self) -> None:
        if self.timesheet.is_approved:
            logger.warning("Edit refused, %s is approved", self.timesheet.key)
            raise LockedStateError(LOCKED_MESSAGE)

    # --- Edits ---

    def update_day(self, day_name: str, field: str, value) -> Timesheet:
        self._check_unlocked()
        self.timesheet = update_day(self.timesheet, day_name, field, value)
        return self.timesheet

    def add_yard_segment(self, day_name: str) -> Timesheet:
        self._check_unlocked()
        self.timesheet = add_yard_segment(self.timesheet, day_name)
        return self.timesheet

    def remove_yard_segment(self, day_name: str, index: int) -> Timesheet:
        self._check_unlocked()
        self.timesheet = remove_yard_segment(self.timesheet, day_name, index)
        return self.timesheet

    def update_yard_segment(self, day_name: str, index: int, field: str, value: str | None) -> Timesheet:
        self._check_unlocked()
        self.timesheet = update_yard_segment(self.timesheet, day_name, index, field, value)
        return self.timesheet

    def toggle_turnaround(self, day_name: str) -> ToggleResult:
        """Toggle turnaround, raising when the toggle is refused."""
        result = toggle_turnaround(self.timesheet, day_name, self.credits)
        if not result.accepted:
            if result.code == REJECT_LOCKED:
                raise LockedStateError(result.reason)
            if result.code in (REJECT_NO_CREDITS, REJECT_EXHAUSTED):
                raise CreditExceededError(result.reason)
            raise ValidationError([result.reason], day=day_name)
        self.timesheet = result.timesheet
        return result

    def turnaround_job_options(self) -> list[JobRef]:
        return turnaround_job_options(self.credits)

    def select_turnaround_job(self, day_name: str, job: JobRef | None) -> Timesheet:
        self._check_unlocked()
        self.timesheet = select_turnaround_job(self.timesheet, day_name, job)
        return self.timesheet

    def summary(self) -> WeekSummary:
        return summarize(self.timesheet, self.holidays, self.bank_holidays)

    # --- Save / submit ---

    async def save(self, submit: bool = False, now: datetime | None = None) -> dict:
        """Validate and write the week. On any failure nothing is written and state is kept."""
        self._check_unlocked()
        await self.refresh_credits()
        payload = prepare_for_save(
            self.timesheet, self.jobs_by_day, self.week_start, self.credits, submit=submit, now=now
        )
        payload["employeeName"] = payload.get("employeeName") or self.employee_name
        ensure_valid(payload)

        # Last gate before writing: the sheet may have been approved meanwhile.
        stored = await self._call(self.store.load_timesheet, self.employee_code, self.week_start)
        if stored and str(stored.get("status") or "").lower() == STATUS_APPROVED:
            self.timesheet = timesheet_from_dict(stored, self.employee_code, self.week_start)
            raise LockedStateError(LOCKED_MESSAGE)

        await self._call(self.store.save_timesheet, self.timesheet.key, payload, True)
        logger.info("%s %s", "Submitted" if submit else "Saved", self.timesheet.key)
        self.timesheet = timesheet_from_dict(payload, self.employee_code, self.week_start)
        # A night shoot saved just now earns its credit straight away.
        await self.refresh_credits()
        return payload

    async def submit(self, now: datetime | None = None) -> dict:
        return await self.save(submit=True, now=now)
