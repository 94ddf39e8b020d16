"""Exceptions raised by the timesheet core and its storage layer."""

from __future__ import annotations


class TimesheetError(Exception):
    """Base class for errors surfaced to the user."""


class ValidationError(TimesheetError):
    """A timesheet failed validation; nothing was written."""

    def __init__(self, errors: list[str], day: str | None = None):
        self.errors = list(errors)
        self.day = day
        super().__init__("; ".join(self.errors))


class CreditExceededError(TimesheetError):
    """No turnaround credits left to enable another turnaround day."""


class LockedStateError(TimesheetError):
    """The timesheet has been approved and can no longer change."""


class StorageError(TimesheetError):
    """Reading or writing the document store failed."""
