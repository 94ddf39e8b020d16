"""Shared fixtures for tests."""

from __future__ import annotations

import os
import sqlite3
import tempfile
from datetime import date
from pathlib import Path
from typing import Generator

import pytest

# Set up test database before importing storage
_test_db_fd, _test_db_path = tempfile.mkstemp(suffix=".db")
os.environ["TIMESHEET_DB"] = _test_db_path


@pytest.fixture(scope="session", autouse=True)
def setup_test_db() -> Generator[Path, None, None]:
    """Set up a test database for the entire test session."""
    import storage

    # Reinitialise storage module with test db path
    storage.DB_PATH = Path(_test_db_path)
    storage.init_db()

    yield Path(_test_db_path)

    # Cleanup
    os.close(_test_db_fd)
    os.unlink(_test_db_path)


@pytest.fixture
def db_connection(setup_test_db: Path) -> Generator[sqlite3.Connection, None, None]:
    """Provide a database connection for tests."""
    import storage

    conn = storage.get_connection()
    yield conn
    conn.close()


@pytest.fixture
def clean_db(setup_test_db: Path) -> Generator[None, None, None]:
    """Clean database tables before each test."""
    import storage

    conn = storage.get_connection()
    conn.execute("DELETE FROM employees")
    conn.execute("DELETE FROM bookings")
    conn.execute("DELETE FROM booking_employees")
    conn.execute("DELETE FROM holidays")
    conn.execute("DELETE FROM timesheets")
    conn.execute("DELETE FROM config")
    conn.commit()
    conn.close()

    yield


@pytest.fixture
def week_start() -> date:
    """A Monday used as the week under test."""
    return date(2026, 10, 19)


@pytest.fixture
def blank_week(week_start):
    """A fresh timesheet: yard Monday-Friday, off at the weekend."""
    from normalizer import new_timesheet

    return new_timesheet("E100", week_start, "Sam Carter")


@pytest.fixture
def approved_week(blank_week):
    """The blank week after a manager has approved it."""
    from dataclasses import replace

    return replace(blank_week, status="approved", submitted=True)


@pytest.fixture
def one_credit():
    """Credits earned from a single night shoot."""
    from models import JobRef, TurnaroundCredits

    return TurnaroundCredits(
        total=1,
        source_dates=[date(2026, 10, 9)],
        source_jobs=[JobRef("B7", "J-700", "Acme Films", "Docklands", "2026-10-09")],
    )


@pytest.fixture
def sample_config():
    """Create a sample Config for testing."""
    from models import Config

    return Config(
        employee_code="E100",
        employee_name="Sam Carter",
        bank_holiday_region="SCT",
    )
