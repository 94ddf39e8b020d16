from __future__ import annotations

import json
import logging
import os
import sqlite3
from datetime import date
from pathlib import Path

from errors import StorageError
from leave import holiday_info_for_dates
from models import BankHolidayInfo, Config, HolidayInfo, JobRef
from utils import day_name_for

logger = logging.getLogger(__name__)


def _get_db_path() -> Path:
    """Get database path from environment variable or default location."""
    if env_path := os.environ.get("TIMESHEET_DB"):
        return Path(env_path)
    return Path(__file__).parent / "data" / "timesheet.db"


DB_PATH = _get_db_path()


def get_connection() -> sqlite3.Connection:
    try:
        DB_PATH.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(DB_PATH)
    except (OSError, sqlite3.Error) as exc:
        raise StorageError(f"Could not open database {DB_PATH}: {exc}") from exc
    conn.row_factory = sqlite3.Row
    return conn


def init_db():
    """Create tables if they don't exist."""
    conn = get_connection()
    conn.executescript("""
        CREATE TABLE IF NOT EXISTS employees (
            user_code TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            data TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS bookings (
            id TEXT PRIMARY KEY,
            data TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS booking_employees (
            booking_id TEXT NOT NULL,
            user_code TEXT NOT NULL,
            PRIMARY KEY (booking_id, user_code)
        );

        CREATE TABLE IF NOT EXISTS holidays (
            id TEXT PRIMARY KEY,
            employee_code TEXT NOT NULL,
            data TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS timesheets (
            id TEXT PRIMARY KEY,
            employee_code TEXT NOT NULL,
            week_start TEXT NOT NULL,
            data TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS config (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL
        );

        CREATE INDEX IF NOT EXISTS idx_holidays_employee ON holidays(employee_code);
        CREATE INDEX IF NOT EXISTS idx_booking_employees_code ON booking_employees(user_code);
        CREATE INDEX IF NOT EXISTS idx_timesheets_employee ON timesheets(employee_code, week_start);
    """)
    conn.commit()
    conn.close()


def _execute(sql: str, params: tuple = (), fetch: str | None = None):
    """Run one statement, wrapping database failures in StorageError."""
    conn = get_connection()
    try:
        cursor = conn.execute(sql, params)
        if fetch == "one":
            result = cursor.fetchone()
        elif fetch == "all":
            result = cursor.fetchall()
        else:
            result = None
        conn.commit()
        return result
    except sqlite3.Error as exc:
        logger.error("Database error running %s: %s", sql.split()[0], exc)
        raise StorageError(str(exc)) from exc
    finally:
        conn.close()


def _load(row: sqlite3.Row | None) -> dict | None:
    if not row:
        return None
    try:
        return json.loads(row["data"])
    except json.JSONDecodeError as exc:
        raise StorageError(f"Corrupt document: {exc}") from exc


# --- Employees ---


def save_employee(user_code: str, name: str, **extra) -> None:
    data = {"userCode": user_code, "name": name, **extra}
    _execute(
        "INSERT OR REPLACE INTO employees (user_code, name, data) VALUES (?, ?, ?)",
        (user_code, name, json.dumps(data)),
    )


def get_employee(user_code: str) -> dict | None:
    """Get an employee by code: {"userCode", "name", ...}."""
    row = _execute("SELECT data FROM employees WHERE user_code = ?", (user_code,), fetch="one")
    return _load(row)


# --- Bookings ---


def save_booking(booking: dict) -> None:
    """Insert or update a booking.

    ``booking`` needs an ``id``, ``bookingDates`` (ISO dates) and ``employees``
    (dicts with ``userCode`` or ``name``; names are resolved to codes).
    """
    booking_id = str(booking["id"])
    conn = get_connection()
    try:
        codes = set()
        for emp in booking.get("employees") or []:
            if emp.get("userCode"):
                codes.add(emp["userCode"])
            elif emp.get("name"):
                row = conn.execute("SELECT user_code FROM employees WHERE name = ?", (emp["name"],)).fetchone()
                if row:
                    codes.add(row["user_code"])

        conn.execute("INSERT OR REPLACE INTO bookings (id, data) VALUES (?, ?)", (booking_id, json.dumps(booking)))
        conn.execute("DELETE FROM booking_employees WHERE booking_id = ?", (booking_id,))
        conn.executemany(
            "INSERT INTO booking_employees (booking_id, user_code) VALUES (?, ?)",
            [(booking_id, code) for code in sorted(codes)],
        )
        conn.commit()
    except sqlite3.Error as exc:
        conn.rollback()
        logger.error("Could not save booking %s: %s", booking_id, exc)
        raise StorageError(f"Could not save booking: {exc}") from exc
    finally:
        conn.close()


def get_job_assignments(employee_code: str, dates: list[date]) -> dict[str, list[JobRef]]:
    """Bookings the employee is scheduled on, grouped by weekday name."""
    rows = _execute(
        """
        SELECT b.id, b.data FROM bookings b
        JOIN booking_employees be ON be.booking_id = b.id
        WHERE be.user_code = ?
        ORDER BY b.id
        """,
        (employee_code,),
        fetch="all",
    )
    wanted = {d.isoformat(): d for d in dates}
    jobs: dict[str, list[JobRef]] = {day_name_for(d): [] for d in dates}
    for row in rows:
        booking = _load(row)
        for booking_date in booking.get("bookingDates") or []:
            if booking_date in wanted:
                jobs[day_name_for(wanted[booking_date])].append(JobRef(
                    booking_id=row["id"],
                    job_number=str(booking.get("jobNumber") or ""),
                    client=str(booking.get("client") or ""),
                    location=str(booking.get("location") or ""),
                    date_iso=booking_date,
                ))
    return jobs


# --- Holidays ---


def save_holiday(holiday_id: str, employee_code: str, record: dict) -> None:
    _execute(
        "INSERT OR REPLACE INTO holidays (id, employee_code, data) VALUES (?, ?, ?)",
        (holiday_id, employee_code, json.dumps({**record, "employeeCode": employee_code})),
    )


def get_holiday_records(employee_code: str) -> list[dict]:
    rows = _execute(
        "SELECT data FROM holidays WHERE employee_code = ? ORDER BY id",
        (employee_code,),
        fetch="all",
    )
    return [_load(row) for row in rows]


def get_approved_holidays(employee_code: str, dates: list[date]) -> dict[str, HolidayInfo]:
    """Approved personal holiday per weekday name for the given dates."""
    return holiday_info_for_dates(get_holiday_records(employee_code), dates)


def get_uk_holidays(year: int, region: str = "ENG") -> dict[date, str]:
    """Get UK bank holidays for a given year and region."""
    import holidays
    uk_holidays = holidays.UK(years=year, subdiv=region)  # type: ignore[attr-defined]
    return {d: name for d, name in uk_holidays.items()}


def get_bank_holidays(region: str, dates: list[date]) -> dict[str, BankHolidayInfo]:
    """Bank holidays falling on the given dates, keyed by weekday name."""
    by_date: dict[date, str] = {}
    try:
        for year in sorted({d.year for d in dates}):
            by_date.update(get_uk_holidays(year, region))
    except NotImplementedError as exc:
        raise StorageError(f"Unknown bank holiday region {region!r}") from exc
    return {
        day_name_for(d): BankHolidayInfo(name=by_date[d], not_working=True)
        for d in dates
        if d in by_date
    }


# --- Timesheets ---


def load_timesheet(employee_code: str, week_start: date) -> dict | None:
    """Get the stored document for one employee's week."""
    row = _execute(
        "SELECT data FROM timesheets WHERE id = ?",
        (f"{employee_code}_{week_start.isoformat()}",),
        fetch="one",
    )
    return _load(row)


def save_timesheet(key: str, payload: dict, merge: bool = True) -> None:
    """Write a timesheet document; with merge, top-level fields not in payload are kept."""
    conn = get_connection()
    try:
        data = dict(payload)
        if merge:
            row = conn.execute("SELECT data FROM timesheets WHERE id = ?", (key,)).fetchone()
            existing = _load(row)
            if existing:
                data = {**existing, **payload}
        conn.execute(
            """
            INSERT OR REPLACE INTO timesheets (id, employee_code, week_start, data)
            VALUES (?, ?, ?, ?)
            """,
            (key, data.get("employeeCode", ""), data.get("weekStart", ""), json.dumps(data)),
        )
        conn.commit()
    except sqlite3.Error as exc:
        logger.error("Could not save timesheet %s: %s", key, exc)
        raise StorageError(f"Could not save timesheet: {exc}") from exc
    finally:
        conn.close()


def set_timesheet_status(key: str, status: str) -> None:
    """Set the status field directly (used by the manager approval side)."""
    save_timesheet(key, {"status": status}, merge=True)


def get_recent_timesheets(employee_code: str, week_starts: list[date]) -> list[dict]:
    """Stored documents for the employee's given weeks."""
    if not week_starts:
        return []
    placeholders = ", ".join("?" for _ in week_starts)
    rows = _execute(
        f"""
        SELECT data FROM timesheets
        WHERE employee_code = ? AND week_start IN ({placeholders})
        ORDER BY week_start
        """,
        (employee_code, *[w.isoformat() for w in week_starts]),
        fetch="all",
    )
    return [_load(row) for row in rows]


# --- Config ---


def get_config() -> Config:
    """Load config from database."""
    rows = _execute("SELECT key, value FROM config", fetch="all")

    config = Config()
    for row in rows:
        if row["key"] == "employee_code":
            config.employee_code = row["value"]
        elif row["key"] == "employee_name":
            config.employee_name = row["value"]
        elif row["key"] == "bank_holiday_region":
            config.bank_holiday_region = row["value"]

    return config


def save_config(config: Config):
    """Save config to database."""
    conn = get_connection()
    conn.execute("INSERT OR REPLACE INTO config (key, value) VALUES (?, ?)",
                 ("employee_code", config.employee_code))
    conn.execute("INSERT OR REPLACE INTO config (key, value) VALUES (?, ?)",
                 ("employee_name", config.employee_name))
    conn.execute("INSERT OR REPLACE INTO config (key, value) VALUES (?, ?)",
                 ("bank_holiday_region", config.bank_holiday_region))
    conn.commit()
    conn.close()
