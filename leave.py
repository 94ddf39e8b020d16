"""Holiday request interpretation shared by the lock resolver and storage.

Holiday requests arrive as loosely typed documents (booleans sometimes stored
as "true" strings, several spellings for the paid flag). These helpers are the
single place that decides whether a request is approved, paid, or a half day
on a given date.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Iterable

from models import HolidayInfo
from utils import day_name_for, parse_iso_date


def _truthy(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return value is True or value == 1


def is_approved(record: dict) -> bool:
    return str(record.get("status") or "").strip().lower() == "approved"


def is_paid_holiday(record: dict) -> bool:
    """Only count a holiday as paid when it says so explicitly."""
    if record.get("isPaid") is True or record.get("paid") is True or record.get("paid") == 1:
        return True
    paid_status = str(record.get("paidStatus") or "").strip().lower()
    leave_type = str(record.get("leaveType") or record.get("type") or "").strip().lower()
    if "unpaid" in paid_status or "unpaid" in leave_type:
        return False
    return "paid" in paid_status or "paid" in leave_type


def holiday_range(record: dict) -> tuple[date, date] | None:
    start = parse_iso_date(record.get("startDate"))
    end = parse_iso_date(record.get("endDate")) or start
    if start is None or end is None or end < start:
        return None
    return start, end


def half_day_meta(record: dict, d: date) -> tuple[bool, str | None]:
    """Whether ``d`` is only half covered by the request, and which half (AM/PM)."""
    span = holiday_range(record)
    if span is None:
        return False, None
    start, end = span
    start_half = _truthy(record.get("startHalfDay")) or _truthy(record.get("halfDay"))
    end_half = _truthy(record.get("endHalfDay"))

    if start == end:
        is_half = start_half or end_half
    elif d == start:
        is_half = start_half
    elif d == end:
        is_half = end_half
    else:
        is_half = False

    if not is_half:
        return False, None
    own = record.get("startAMPM") if d == start else record.get("endAMPM")
    period = str(own or record.get("halfDayPeriod") or record.get("halfDayType") or "").strip().upper()
    return True, period if period in ("AM", "PM") else None


def holiday_info_for_dates(records: Iterable[dict], dates: Iterable[date]) -> dict[str, HolidayInfo]:
    """Per-weekday HolidayInfo for the approved requests covering ``dates``.

    A full-day request wins over a half-day one on the same date.
    """
    wanted = set(dates)
    result: dict[str, HolidayInfo] = {}
    for record in records:
        if not is_approved(record):
            continue
        span = holiday_range(record)
        if span is None:
            continue
        start, end = span
        d = max(start, min(wanted, default=start))
        last = min(end, max(wanted, default=end))
        while d <= last:
            if d in wanted:
                is_half, period = half_day_meta(record, d)
                info = HolidayInfo(
                    has_holiday=True,
                    is_half_day=is_half,
                    paid_status="Paid" if is_paid_holiday(record) else str(record.get("paidStatus") or "Unpaid"),
                    leave_type=str(record.get("leaveType") or record.get("paidStatus") or "Holiday"),
                    half_day_period=period,
                )
                name = day_name_for(d)
                existing = result.get(name)
                if existing is None or (existing.is_half_day and not info.is_half_day):
                    result[name] = info
            d += timedelta(days=1)
    return result
