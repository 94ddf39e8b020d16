"""Time arithmetic and week calculation utilities."""

from __future__ import annotations

import re
from datetime import date, timedelta
from decimal import Decimal

DAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]
WEEKDAY_NAMES = DAY_NAMES[:5]

MINUTES_PER_DAY = 24 * 60

_TIME_RE = re.compile(r"^(\d{2}):(\d{2})$")


def parse_time_of_day(val) -> int | None:
    """Parse a strict "HH:MM" string to minutes past midnight.

    Anything that is not a valid 24-hour time gives None rather than raising.
    """
    if not isinstance(val, str):
        return None
    match = _TIME_RE.match(val.strip())
    if not match:
        return None
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        return None
    return hours * 60 + minutes


def duration(start, end) -> int:
    """Minutes between two "HH:MM" times, wrapping past midnight if end < start."""
    s = parse_time_of_day(start)
    e = parse_time_of_day(end)
    if s is None or e is None:
        return 0
    if e < s:
        e += MINUTES_PER_DAY
    return e - s


def format_duration(minutes: int) -> str:
    """Render minutes as "Xh Ym", dropping a zero component."""
    minutes = int(minutes or 0)
    if minutes <= 0:
        return "0m"
    hours, mins = divmod(minutes, 60)
    if not hours:
        return f"{mins}m"
    if not mins:
        return f"{hours}h"
    return f"{hours}h {mins}m"


def minutes_to_hours(minutes: int) -> Decimal:
    """Minutes as decimal hours."""
    return (Decimal(int(minutes or 0)) / Decimal(60)).quantize(Decimal("0.01"))


def get_week_start(d: date) -> date:
    """Get the Monday that starts the week containing date d."""
    return d - timedelta(days=d.weekday())


def week_dates(week_start: date) -> dict[str, date]:
    """Map each weekday name to its calendar date for the week."""
    return {name: week_start + timedelta(days=i) for i, name in enumerate(DAY_NAMES)}


def day_name_for(d: date) -> str:
    return DAY_NAMES[d.weekday()]


def parse_iso_date(val) -> date | None:
    """Parse "YYYY-MM-DD" (optionally with a time part), None when unparseable."""
    if isinstance(val, date):
        return val
    if not isinstance(val, str) or not val:
        return None
    try:
        return date.fromisoformat(val.strip()[:10])
    except ValueError:
        return None
