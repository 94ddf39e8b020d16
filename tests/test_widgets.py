"""Tests for the widgets module."""

from __future__ import annotations

from datetime import date
from unittest.mock import MagicMock

from models import JobRef, WeekSummary
from normalizer import normalize
from widgets import WeekHeader, WeeklySummary, describe_flags, describe_times


class TestDescribeTimes:
    """Tests for describe_times function."""

    def test_yard(self):
        """Test yard blocks are listed."""
        entry = normalize({"mode": "yard", "yardSegments": [
            {"start": "08:00", "end": "12:00"}, {"start": "13:00", "end": None},
        ]})
        assert describe_times(entry) == "08:00-12:00, 13:00-?"

    def test_turnaround_without_blocks(self):
        """Test an empty turnaround day says so."""
        assert describe_times(normalize({"mode": "yard", "isTurnaround": True})) == "no blocks"

    def test_travel(self):
        """Test travel shows leave and arrive."""
        assert describe_times(normalize({"mode": "travel", "leaveTime": "06:00"})) == "06:00 > ?"

    def test_onset(self):
        """Test on-set shows pre-call, call, wrap and return."""
        entry = normalize({
            "mode": "onset", "precallDuration": 30, "callTime": "07:00", "wrapTime": "19:00", "arriveBack": "20:00",
        })
        assert describe_times(entry) == "pre 30m call 07:00 wrap 19:00 back 20:00"

    def test_holiday(self):
        """Test locked days show their label."""
        assert describe_times(normalize({"mode": "bankholiday", "holidayLabel": "Christmas Day"})) == "Christmas Day"

    def test_off(self):
        """Test off days are blank."""
        assert describe_times(normalize({"mode": "off"})) == ""


class TestDescribeFlags:
    """Tests for describe_flags function."""

    def test_default_yard(self):
        """Test a default yard day has a lunch supplement."""
        assert describe_flags(normalize({})) == "L"

    def test_onset(self):
        """Test on-set flags."""
        entry = normalize({"mode": "onset", "nightShoot": True, "overnight": True})
        assert describe_flags(entry) == "M N O"

    def test_turnaround(self):
        """Test a turnaround day shows whether its job is chosen."""
        entry = normalize({"mode": "yard", "isTurnaround": True})
        assert describe_flags(entry) == "TA?"
        entry = normalize({"mode": "yard", "isTurnaround": True, "turnaroundJob": JobRef("B1").to_dict()})
        assert describe_flags(entry) == "TA"

    def test_half_holiday(self):
        """Test the half-holiday mark."""
        entry = normalize({"mode": "yard", "halfHoliday": True})
        assert describe_flags(entry) == "L ½H"


class TestWeekHeader:
    """Tests for the WeekHeader widget."""

    def test_update_display(self):
        """Test the header shows employee, week and status."""
        header = WeekHeader()

        # Mock the update method since we can't render without an app
        header.update = MagicMock()

        header.update_display("Sam Carter", date(2026, 10, 19), "draft", 1, 2)

        header.update.assert_called_once()
        text = str(header.update.call_args[0][0])
        assert "Sam Carter" in text
        assert "19 Oct 2026" in text
        assert "[DRAFT]" in text
        assert "Turnaround 1/2" in text

    def test_new_week_without_credits(self):
        """Test a new week with no credits."""
        header = WeekHeader()
        header.update = MagicMock()

        header.update_display("E100", date(2026, 10, 19), None, 0, 0)

        text = str(header.update.call_args[0][0])
        assert "[NEW]" in text
        assert "Turnaround" not in text


class TestWeeklySummary:
    """Tests for the WeeklySummary widget."""

    def test_update_display(self):
        """Test the summary shows totals and counts."""
        widget = WeeklySummary()
        widget.update = MagicMock()

        summary = WeekSummary(total_minutes=2550, yard_minutes=2550, yard_days=5, off_days=2, lunch_count=5)
        widget.update_display(summary)

        widget.update.assert_called_once()
        text = str(widget.update.call_args[0][0])
        assert "42h 30m" in text
        assert "(42.5h)" in text
        assert "(5d)" in text
        assert "Lunch 5" in text
