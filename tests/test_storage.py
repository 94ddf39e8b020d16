"""Tests for storage.py - database operations."""

from __future__ import annotations

from datetime import date

import pytest

import storage
from errors import StorageError
from models import Config, JobRef
from utils import week_dates

WEEK_START = date(2026, 10, 19)
DATES = list(week_dates(WEEK_START).values())


class TestInitDb:
    """Tests for init_db function."""

    def test_creates_tables(self, db_connection):
        """Test that init_db creates the required tables."""
        for table in ("employees", "bookings", "booking_employees", "holidays", "timesheets", "config"):
            result = db_connection.execute(
                "SELECT name FROM sqlite_master WHERE type='table' AND name=?", (table,)
            ).fetchone()
            assert result is not None

    def test_creates_index(self, db_connection):
        """Test that init_db creates the timesheet index."""
        result = db_connection.execute(
            "SELECT name FROM sqlite_master WHERE type='index' AND name='idx_timesheets_employee'"
        ).fetchone()
        assert result is not None

    def test_idempotent(self, clean_db):
        """Test that init_db can be called multiple times safely."""
        storage.init_db()
        storage.init_db()


class TestEmployees:
    """Tests for employee records."""

    def test_save_and_get(self, clean_db):
        """Test an employee round trip."""
        storage.save_employee("E100", "Sam Carter", department="Lighting")
        assert storage.get_employee("E100") == {"userCode": "E100", "name": "Sam Carter", "department": "Lighting"}

    def test_missing(self, clean_db):
        """Test an unknown code gives None."""
        assert storage.get_employee("NOPE") is None


class TestJobAssignments:
    """Tests for bookings and job assignments."""

    def test_by_code(self, clean_db):
        """Test bookings are grouped by the weekday they fall on."""
        storage.save_booking({
            "id": "B1",
            "jobNumber": "J-100",
            "client": "Acme Films",
            "location": "Docklands",
            "bookingDates": ["2026-10-20", "2026-10-21", "2026-11-02"],
            "employees": [{"userCode": "E100"}],
        })
        jobs = storage.get_job_assignments("E100", DATES)
        assert set(jobs) == set(week_dates(WEEK_START))
        assert jobs["Tuesday"] == [JobRef("B1", "J-100", "Acme Films", "Docklands", "2026-10-20")]
        assert len(jobs["Wednesday"]) == 1
        assert jobs["Monday"] == []

    def test_by_name(self, clean_db):
        """Test employees listed by name are matched to their code."""
        storage.save_employee("E100", "Sam Carter")
        storage.save_booking({"id": "B2", "bookingDates": ["2026-10-19"], "employees": [{"name": "Sam Carter"}]})
        assert [j.booking_id for j in storage.get_job_assignments("E100", DATES)["Monday"]] == ["B2"]

    def test_other_employee(self, clean_db):
        """Test bookings for someone else are not returned."""
        storage.save_booking({"id": "B3", "bookingDates": ["2026-10-19"], "employees": [{"userCode": "E200"}]})
        assert storage.get_job_assignments("E100", DATES)["Monday"] == []

    def test_resave_replaces_crew(self, clean_db):
        """Test saving a booking again replaces who is on it."""
        storage.save_booking({"id": "B4", "bookingDates": ["2026-10-19"], "employees": [{"userCode": "E100"}]})
        storage.save_booking({"id": "B4", "bookingDates": ["2026-10-19"], "employees": [{"userCode": "E200"}]})
        assert storage.get_job_assignments("E100", DATES)["Monday"] == []

    def test_failed_crew_write_leaves_no_booking(self, clean_db, db_connection):
        """Test a booking is not stored without its crew when the crew write fails."""
        db_connection.execute(
            "CREATE TRIGGER fail_crew BEFORE INSERT ON booking_employees "
            "BEGIN SELECT RAISE(ABORT, 'crew write failed'); END"
        )
        db_connection.commit()
        try:
            with pytest.raises(StorageError):
                storage.save_booking({"id": "B5", "bookingDates": ["2026-10-19"], "employees": [{"userCode": "E100"}]})
        finally:
            db_connection.execute("DROP TRIGGER fail_crew")
            db_connection.commit()

        row = db_connection.execute("SELECT id FROM bookings WHERE id = 'B5'").fetchone()
        assert row is None


class TestHolidays:
    """Tests for holiday records."""

    def test_approved_only(self, clean_db):
        """Test approved requests are mapped onto the week."""
        storage.save_holiday("H1", "E100", {"status": "approved", "startDate": "2026-10-22", "endDate": "2026-10-23"})
        storage.save_holiday("H2", "E100", {"status": "pending", "startDate": "2026-10-19"})
        info = storage.get_approved_holidays("E100", DATES)
        assert set(info) == {"Thursday", "Friday"}

    def test_records_tagged(self, clean_db):
        """Test stored records carry the employee code."""
        storage.save_holiday("H1", "E100", {"status": "approved", "startDate": "2026-10-22"})
        assert storage.get_holiday_records("E100")[0]["employeeCode"] == "E100"


class TestBankHolidays:
    """Tests for bank holiday lookup."""

    def test_christmas(self):
        """Test Christmas week has Christmas Day and Boxing Day."""
        dates = list(week_dates(date(2025, 12, 22)).values())
        result = storage.get_bank_holidays("ENG", dates)
        assert "Thursday" in result
        assert "Friday" in result
        assert result["Thursday"].not_working

    def test_ordinary_week(self):
        """Test a week with no bank holidays."""
        assert storage.get_bank_holidays("ENG", DATES) == {}

    def test_unknown_region(self):
        """Test an unknown region is a storage error."""
        with pytest.raises(StorageError):
            storage.get_bank_holidays("XXX", DATES)


class TestTimesheets:
    """Tests for timesheet documents."""

    def test_save_and_load(self, clean_db):
        """Test a document round trip."""
        doc = {"employeeCode": "E100", "weekStart": "2026-10-19", "status": "draft", "days": {}}
        storage.save_timesheet("E100_2026-10-19", doc)
        assert storage.load_timesheet("E100", WEEK_START) == doc

    def test_load_missing(self, clean_db):
        """Test a week never saved gives None."""
        assert storage.load_timesheet("E100", WEEK_START) is None

    def test_merge_keeps_other_fields(self, clean_db):
        """Test a merge write keeps fields the payload does not mention."""
        storage.save_timesheet("E100_2026-10-19", {"employeeCode": "E100", "weekStart": "2026-10-19", "approvedBy": "M1"})
        storage.save_timesheet("E100_2026-10-19", {"status": "submitted"})
        doc = storage.load_timesheet("E100", WEEK_START)
        assert doc["approvedBy"] == "M1"
        assert doc["status"] == "submitted"

    def test_replace(self, clean_db):
        """Test a write without merge replaces the document."""
        storage.save_timesheet("E100_2026-10-19", {"employeeCode": "E100", "weekStart": "2026-10-19", "a": 1})
        storage.save_timesheet("E100_2026-10-19", {"employeeCode": "E100", "weekStart": "2026-10-19"}, merge=False)
        assert "a" not in storage.load_timesheet("E100", WEEK_START)

    def test_set_status(self, clean_db):
        """Test setting the status directly."""
        storage.save_timesheet("E100_2026-10-19", {"employeeCode": "E100", "weekStart": "2026-10-19"})
        storage.set_timesheet_status("E100_2026-10-19", "approved")
        assert storage.load_timesheet("E100", WEEK_START)["status"] == "approved"

    def test_recent(self, clean_db):
        """Test only the requested weeks of the employee are returned, oldest first."""
        for code, week in [("E100", "2026-10-12"), ("E100", "2026-10-05"), ("E100", "2026-09-28"), ("E200", "2026-10-12")]:
            storage.save_timesheet(f"{code}_{week}", {"employeeCode": code, "weekStart": week})
        docs = storage.get_recent_timesheets("E100", [date(2026, 10, 12), date(2026, 10, 5)])
        assert [d["weekStart"] for d in docs] == ["2026-10-05", "2026-10-12"]
        assert storage.get_recent_timesheets("E100", []) == []

    def test_corrupt_document(self, clean_db, db_connection):
        """Test unreadable JSON is reported as a storage error."""
        db_connection.execute(
            "INSERT INTO timesheets (id, employee_code, week_start, data) VALUES (?, ?, ?, ?)",
            ("E100_2026-10-19", "E100", "2026-10-19", "{not json"),
        )
        db_connection.commit()
        with pytest.raises(StorageError):
            storage.load_timesheet("E100", WEEK_START)


class TestConfig:
    """Tests for get_config and save_config functions."""

    def test_defaults(self, clean_db):
        """Test an empty config table gives defaults."""
        assert storage.get_config() == Config()

    def test_round_trip(self, clean_db, sample_config):
        """Test saving and loading config."""
        storage.save_config(sample_config)
        assert storage.get_config() == sample_config
