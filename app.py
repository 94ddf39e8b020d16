#!/usr/bin/env python3
"""Weekly timesheet TUI."""

from __future__ import annotations

import logging
import os
from datetime import date, timedelta

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.widgets import DataTable, Footer

import storage
from errors import TimesheetError
from models import JobRef
from screens import ConfirmScreen, EditDayScreen, TurnaroundJobScreen
from session import WeekSession
from utils import DAY_NAMES, format_duration, get_week_start
from widgets import MODE_LABELS, WeekHeader, WeeklySummary, describe_flags, describe_times

logger = logging.getLogger(__name__)


class TimesheetApp(App):
    """One employee's week: view, edit, save and submit."""

    CSS = """
    Screen {
        background: $surface;
    }

    #week-header {
        height: auto;
        background: $primary;
        color: $text;
        padding: 0 1;
    }

    #week-table {
        height: 1fr;
        margin: 1 2;
    }

    #weekly-summary {
        height: auto;
        padding: 1 2;
        color: $text;
    }

    DataTable > .datatable--cursor {
        background: $secondary;
    }
    """

    BINDINGS = [
        Binding("q", "quit", "Quit"),
        Binding("left", "prev_week", "◄ Week", show=False),
        Binding("right", "next_week", "Week ►", show=False),
        Binding("e", "edit_day", "Edit"),
        Binding("a", "add_segment", "Add block"),
        Binding("x", "remove_segment", "Remove block"),
        Binding("t", "toggle_turnaround", "Turnaround"),
        Binding("j", "pick_turnaround_job", "TA job"),
        Binding("s", "save", "Save"),
        Binding("S", "submit", "Submit"),
    ]

    def __init__(self, employee_code: str, employee_name: str | None = None, region: str = "ENG",
                 week_start: date | None = None):
        super().__init__()
        storage.init_db()
        self.employee_code = employee_code
        self.employee_name = employee_name
        self.region = region
        self.session = self._new_session(week_start or date.today())

    def _new_session(self, d: date) -> WeekSession:
        return WeekSession(
            self.employee_code,
            get_week_start(d),
            employee_name=self.employee_name,
            region=self.region,
        )

    def compose(self) -> ComposeResult:
        yield WeekHeader(id="week-header")
        yield DataTable(id="week-table")
        yield WeeklySummary(id="weekly-summary")
        yield Footer()

    async def on_mount(self) -> None:
        table = self.query_one("#week-table", DataTable)
        table.cursor_type = "row"
        table.add_column("Day", width=4)
        table.add_column("Date", width=7)
        table.add_column("Mode", width=9)
        table.add_column("Times", width=34)
        table.add_column("Worked", width=8)
        table.add_column("Flags", width=14)
        table.add_column("Notes", width=30)
        await self._load_week()
        table.focus()

    async def _load_week(self) -> None:
        try:
            await self.session.load()
        except TimesheetError as exc:
            self.notify(f"Could not load timesheet: {exc}", severity="error")
        self._refresh_display()

    def _refresh_display(self) -> None:
        session = self.session
        summary = session.summary()

        header = self.query_one("#week-header", WeekHeader)
        header.update_display(
            session.employee_name or session.employee_code,
            session.week_start,
            session.timesheet.status,
            session.remaining_credits,
            session.credits.total,
        )

        table = self.query_one("#week-table", DataTable)
        current_row = table.cursor_row
        table.clear()
        for name, d in session.dates.items():
            entry = session.timesheet.days[name]
            table.add_row(
                name[:3],
                d.strftime("%d %b"),
                MODE_LABELS.get(entry.mode, entry.mode),
                describe_times(entry),
                format_duration(summary.minutes_by_day.get(name, 0)),
                describe_flags(entry),
                entry.day_notes,
                key=name,
            )
        if table.row_count:
            table.move_cursor(row=min(current_row, table.row_count - 1))

        self.query_one("#weekly-summary", WeeklySummary).update_display(summary)

    def _selected_day(self) -> str:
        table = self.query_one("#week-table", DataTable)
        return DAY_NAMES[max(0, min(table.cursor_row, 6))]

    def _run(self, fn, *args) -> bool:
        """Apply a session edit, showing any refusal to the user."""
        try:
            fn(*args)
        except TimesheetError as exc:
            self.notify(str(exc), severity="error")
            return False
        finally:
            self._refresh_display()
        return True

    # --- Navigation ---

    async def action_prev_week(self) -> None:
        self.session = self._new_session(self.session.week_start - timedelta(days=7))
        await self._load_week()

    async def action_next_week(self) -> None:
        self.session = self._new_session(self.session.week_start + timedelta(days=7))
        await self._load_week()

    # --- Editing ---

    def action_edit_day(self) -> None:
        day = self._selected_day()
        entry = self.session.timesheet.days[day]
        if self.session.is_locked:
            self.notify("This timesheet has been approved and is locked.", severity="warning")
            return
        if entry.is_locked:
            self.notify(f"{day} is {entry.holiday_label or entry.mode} and cannot be edited.", severity="warning")
            return

        def apply(changes: dict | None) -> None:
            if not changes:
                return
            for field, value in changes.items():
                if not self._run(self.session.update_day, day, field, value):
                    break

        self.push_screen(EditDayScreen(day, self.session.dates[day], entry), apply)

    def action_add_segment(self) -> None:
        self._run(self.session.add_yard_segment, self._selected_day())

    def action_remove_segment(self) -> None:
        day = self._selected_day()
        segments = self.session.timesheet.days[day].yard_segments
        self._run(self.session.remove_yard_segment, day, len(segments) - 1)

    def action_toggle_turnaround(self) -> None:
        day = self._selected_day()
        if self._run(self.session.toggle_turnaround, day) and self.session.timesheet.days[day].is_turnaround:
            self.action_pick_turnaround_job()

    def action_pick_turnaround_job(self) -> None:
        day = self._selected_day()
        if not self.session.timesheet.days[day].is_turnaround:
            self.notify(f"{day} is not a turnaround day", severity="warning")
            return
        options = self.session.turnaround_job_options()
        if not options:
            self.notify("No jobs recorded on the night shoot dates", severity="warning")
            return

        def apply(job: JobRef | None) -> None:
            if job is not None:
                self._run(self.session.select_turnaround_job, day, job)

        self.push_screen(TurnaroundJobScreen(day, options), apply)

    # --- Save / submit ---

    async def _write(self, submit: bool) -> None:
        try:
            await self.session.save(submit=submit)
        except TimesheetError as exc:
            logger.warning("%s failed for %s: %s", "Submit" if submit else "Save", self.session.timesheet.key, exc)
            self.notify(str(exc), severity="error")
        else:
            self.notify("Submitted for approval" if submit else "Saved as draft")
        self._refresh_display()

    async def action_save(self) -> None:
        await self._write(submit=False)

    def action_submit(self) -> None:
        async def do_submit(confirmed: bool | None) -> None:
            if confirmed:
                await self._write(submit=True)

        self.push_screen(ConfirmScreen("Submit this week for approval?"), do_submit)


def _configure_logging() -> None:
    log_path = os.environ.get("TIMESHEET_LOG") or str(storage.DB_PATH.with_suffix(".log"))
    logging.basicConfig(
        filename=log_path,
        level=os.environ.get("TIMESHEET_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main():
    import sys
    if len(sys.argv) > 1 and sys.argv[1] == "--db-info":
        from datetime import datetime
        db_path = storage.DB_PATH
        print(f"Database: {db_path}")
        if db_path.exists():
            mtime = datetime.fromtimestamp(db_path.stat().st_mtime)
            size = db_path.stat().st_size
            print(f"Modified: {mtime.strftime('%Y-%m-%d %H:%M:%S')}")
            print(f"Size: {size:,} bytes")
        else:
            print("Status: Does not exist (will be created on first run)")
        return

    storage.init_db()
    _configure_logging()
    config = storage.get_config()
    employee_code = sys.argv[1] if len(sys.argv) > 1 else config.employee_code
    if not employee_code:
        print("Usage: timesheet EMPLOYEE_CODE  (or set employee_code in config)")
        sys.exit(1)

    employee_name = config.employee_name if employee_code == config.employee_code else None
    app = TimesheetApp(employee_code, employee_name or None, config.bank_holiday_region)
    app.run()


if __name__ == "__main__":
    main()
