"""Tests for assembler.py - building and validating the saved document."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from assembler import (
    build_job_snapshot,
    ends_next_day,
    ensure_valid,
    prepare_for_save,
    validate,
    with_default_yard_times,
)
from errors import LockedStateError, ValidationError
from models import JobRef, TurnaroundCredits
from normalizer import normalize, update_day, with_day
from turnaround import select_turnaround_job, toggle_turnaround

NOW = datetime(2026, 10, 23, 17, 0, tzinfo=timezone.utc)
JOBS = {
    "Monday": [JobRef("B1", "J-100", "Acme Films", "Docklands", "2026-10-19")],
    "Tuesday": [{"bookingId": "B1", "jobNumber": "J-100"}, {"bookingId": "B2", "jobNumber": ""}],
}


class TestEndsNextDay:
    """Tests for ends_next_day function."""

    def test_onset_wrap_after_midnight(self):
        """Test a wrap earlier than call crosses midnight."""
        assert ends_next_day(normalize({"mode": "onset", "callTime": "20:00", "wrapTime": "04:00"}))

    def test_onset_same_day(self):
        """Test a normal day does not cross midnight."""
        assert not ends_next_day(normalize({"mode": "onset", "callTime": "07:00", "wrapTime": "19:00"}))

    def test_travel(self):
        """Test a late travel arrival crosses midnight."""
        assert ends_next_day(normalize({"mode": "travel", "leaveTime": "21:00", "arriveTime": "01:00"}))

    def test_yard_never(self):
        """Test yard days never cross midnight."""
        assert not ends_next_day(normalize({"mode": "yard", "yardSegments": [{"start": "22:00", "end": "02:00"}]}))


class TestWithDefaultYardTimes:
    """Tests for with_default_yard_times function."""

    def test_weekdays_only(self, blank_week):
        """Test missing yard times are filled Monday-Friday but not at weekends."""
        ts = with_day(blank_week, "Monday", normalize({"mode": "yard"}))
        ts = with_day(ts, "Saturday", normalize({"mode": "yard"}))
        ts = with_default_yard_times(ts)
        assert ts.days["Monday"].leave_time == "08:00"
        assert ts.days["Monday"].arrive_back == "16:30"
        assert ts.days["Saturday"].leave_time is None

    def test_keeps_user_times(self, blank_week):
        """Test times the user entered are not replaced."""
        ts = update_day(blank_week, "Monday", "leave_time", "07:15")
        assert with_default_yard_times(ts).days["Monday"].leave_time == "07:15"


class TestBuildJobSnapshot:
    """Tests for build_job_snapshot function."""

    def test_snapshot(self):
        """Test the denormalised job views."""
        snapshot = build_job_snapshot(JOBS)
        assert snapshot["bookingIds"] == ["B1", "B2"]
        assert snapshot["jobNumbers"] == ["J-100"]
        assert snapshot["bookingIdsByDay"]["Tuesday"] == ["B1", "B2"]
        assert snapshot["jobNumbersByDay"]["Wednesday"] == []
        assert snapshot["flat"][0] == {
            "dayName": "Monday", "bookingId": "B1", "jobNumber": "J-100",
            "client": "Acme Films", "location": "Docklands",
        }
        assert len(snapshot["flat"]) == 3


class TestPrepareForSave:
    """Tests for prepare_for_save function."""

    def test_draft(self, blank_week, week_start):
        """Test a plain save writes a draft with every day stamped."""
        payload = prepare_for_save(blank_week, JOBS, week_start, now=NOW)
        assert payload["status"] == "draft"
        assert payload["submitted"] is False
        assert payload["weekStart"] == "2026-10-19"
        assert payload["employeeCode"] == "E100"
        assert payload["updatedAt"] == "2026-10-23T17:00:00+00:00"
        monday = payload["days"]["Monday"]
        assert monday["dateISO"] == "2026-10-19"
        assert monday["hasJob"] is True
        assert monday["bookingId"] == "B1"
        assert monday["jobNumber"] == "J-100"
        assert "dateISO" not in monday["jobs"][0]
        assert payload["days"]["Sunday"]["hasJob"] is False
        assert payload["days"]["Sunday"]["bookingId"] is None

    def test_single_job_fields(self, blank_week, week_start):
        """Test top-level job fields are set only when there is exactly one job."""
        payload = prepare_for_save(blank_week, {"Monday": JOBS["Monday"]}, week_start, now=NOW)
        assert payload["jobId"] == "B1"
        assert payload["jobNumber"] == "J-100"
        payload = prepare_for_save(blank_week, JOBS, week_start, now=NOW)
        assert payload["jobId"] is None

    def test_submit(self, blank_week, week_start):
        """Test submitting stamps status and time."""
        payload = prepare_for_save(blank_week, {}, week_start, submit=True, now=NOW)
        assert payload["status"] == "submitted"
        assert payload["submitted"] is True
        assert payload["submittedAt"] == "2026-10-23T17:00:00+00:00"

    def test_resave_submitted_stays_submitted(self, blank_week, week_start):
        """Test saving an already submitted week does not demote it to draft."""
        from dataclasses import replace

        submitted = replace(blank_week, status="submitted", submitted=True, submitted_at="2026-10-20T09:00:00+00:00")
        payload = prepare_for_save(submitted, {}, week_start, now=NOW)
        assert payload["status"] == "submitted"
        assert payload["submittedAt"] == "2026-10-20T09:00:00+00:00"

    def test_overnight_set(self, blank_week, week_start):
        """Test a day ending after midnight is marked overnight."""
        ts = with_day(blank_week, "Wednesday", normalize({"mode": "onset", "callTime": "20:00", "wrapTime": "04:00"}))
        day = prepare_for_save(ts, {}, week_start, now=NOW)["days"]["Wednesday"]
        assert day["overnight"] is True
        assert day["endsNextDay"] is True

    def test_default_yard_times_applied(self, blank_week, week_start):
        """Test weekday yard days get default times in the document."""
        ts = with_day(blank_week, "Thursday", normalize({"mode": "yard"}))
        day = prepare_for_save(ts, {}, week_start, now=NOW)["days"]["Thursday"]
        assert day["leaveTime"] == "08:00"
        assert day["arriveBack"] == "16:30"

    def test_credit_audit(self, blank_week, week_start, one_credit):
        """Test the credit audit is recorded."""
        payload = prepare_for_save(blank_week, {}, week_start, one_credit, now=NOW)
        assert payload["turnaroundCredits"] == {"total": 1, "sourcesLast14Days": ["2026-10-09"]}

    def test_approved_raises(self, approved_week, week_start):
        """Test an approved week cannot be prepared."""
        with pytest.raises(LockedStateError):
            prepare_for_save(approved_week, {}, week_start)

    def test_input_not_modified(self, blank_week, week_start):
        """Test preparing leaves the timesheet as it was."""
        ts = with_day(blank_week, "Wednesday", normalize({"mode": "onset", "callTime": "20:00", "wrapTime": "04:00"}))
        prepare_for_save(ts, {}, week_start, now=NOW)
        assert ts.days["Wednesday"].overnight is False


class TestValidate:
    """Tests for validate and ensure_valid functions."""

    def test_valid_week(self, blank_week, week_start):
        """Test an ordinary week passes."""
        result = validate(prepare_for_save(blank_week, {}, week_start, now=NOW))
        assert result.ok
        assert result.errors == []

    def test_turnaround_needs_job(self, blank_week, week_start, one_credit):
        """Test a turnaround day without a job fails, naming the day."""
        ts = toggle_turnaround(blank_week, "Tuesday", one_credit).timesheet
        payload = prepare_for_save(ts, {}, week_start, one_credit, now=NOW)
        result = validate(payload)
        assert not result.ok
        assert result.days == ["Tuesday"]
        assert result.errors == ["Tuesday: choose the job this turnaround day is for."]
        with pytest.raises(ValidationError) as exc_info:
            ensure_valid(payload)
        assert exc_info.value.day == "Tuesday"

    def test_turnaround_with_job(self, blank_week, week_start, one_credit):
        """Test a turnaround day with its job passes."""
        ts = toggle_turnaround(blank_week, "Tuesday", one_credit).timesheet
        ts = select_turnaround_job(ts, "Tuesday", one_credit.source_jobs[0])
        ensure_valid(prepare_for_save(ts, {}, week_start, one_credit, now=NOW))

    def test_turnaround_after_credit_expired(self, blank_week, week_start):
        """Test a turnaround day with its job still saves once the credit window has moved on."""
        job = {"bookingId": "B7"}
        ts = with_day(blank_week, "Monday", normalize({"mode": "yard", "isTurnaround": True, "turnaroundJob": job}))
        payload = prepare_for_save(ts, {}, week_start, TurnaroundCredits(), now=NOW)
        result = validate(payload)
        assert result.ok
        assert result.errors == []
        ensure_valid(payload)
