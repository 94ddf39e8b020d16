"""Modal screens for the timesheet application."""

from __future__ import annotations

from datetime import date

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.widgets import Button, Checkbox, DataTable, Input, Label
from textual.screen import ModalScreen

from models import DayEntry, JobRef, YardSegment
from normalizer import EDITABLE_MODES
from utils import parse_time_of_day


def parse_segments(val: str) -> list[YardSegment] | None:
    """Parse "08:00-12:00, 12:30-16:30" into segments; None if any part is invalid."""
    val = val.strip()
    if not val:
        return []
    segments = []
    for part in val.split(","):
        start, sep, end = part.strip().partition("-")
        start, end = start.strip(), end.strip()
        if not sep or parse_time_of_day(start) is None or parse_time_of_day(end) is None:
            return None
        segments.append(YardSegment(start, end))
    return segments


def without_stale_flags(entry: DayEntry, changes: dict) -> dict:
    """Drop the checkbox values when the mode changes so the new mode starts from its defaults."""
    if changes.get("mode", entry.mode) == entry.mode:
        return changes
    flags = {attr for _, _, attr in EditDayScreen.FLAG_FIELDS}
    return {field: value for field, value in changes.items() if field not in flags}


class ConfirmScreen(ModalScreen[bool]):
    """Yes/no dialog."""

    CSS = """
    ConfirmScreen {
        align: center middle;
    }

    #confirm-dialog {
        width: 56;
        height: auto;
        padding: 1 2;
        background: $surface;
        border: thick $warning;
    }

    #confirm-buttons {
        width: 100%;
        height: auto;
        margin-top: 1;
    }

    #confirm-buttons Button {
        width: 1fr;
        margin: 0 1;
    }
    """

    BINDINGS = [
        Binding("escape", "cancel", "Cancel"),
        Binding("y", "confirm", "Yes"),
        Binding("n", "cancel", "No"),
    ]

    def __init__(self, message: str):
        super().__init__()
        self.message = message

    def compose(self) -> ComposeResult:
        with Vertical(id="confirm-dialog"):
            yield Label(self.message)
            with Horizontal(id="confirm-buttons"):
                yield Button("Yes (Y)", variant="warning", id="yes")
                yield Button("No (N)", variant="default", id="no")

    def on_button_pressed(self, event: Button.Pressed) -> None:
        self.dismiss(event.button.id == "yes")

    def action_confirm(self) -> None:
        self.dismiss(True)

    def action_cancel(self) -> None:
        self.dismiss(False)


class EditDayScreen(ModalScreen[dict | None]):
    """Edit one day. Dismisses with {field: value} changes, mode first."""

    CSS = """
    EditDayScreen {
        align: center middle;
    }

    #edit-dialog {
        width: 84;
        height: auto;
        padding: 1 2;
        background: $surface;
        border: thick $primary;
    }

    #edit-title {
        width: 100%;
        text-align: center;
        text-style: bold;
        margin-bottom: 1;
    }

    .field-group {
        width: 1fr;
        height: auto;
        margin: 0 1 0 0;
    }

    .field-label {
        height: 1;
        color: $text-muted;
    }

    .field-row {
        width: 100%;
        height: auto;
        margin-bottom: 1;
    }

    .field-row Input {
        width: 100%;
    }

    #segments-group, #notes-group {
        width: 3fr;
    }

    #edit-buttons {
        width: 100%;
        height: auto;
        margin-top: 1;
        align: center middle;
    }

    #edit-buttons Button {
        width: auto;
        min-width: 12;
        margin: 0 2;
    }
    """

    BINDINGS = [
        Binding("escape", "cancel", "Cancel"),
    ]

    TIME_FIELDS = [
        ("leave-time", "Leave", "leave_time"),
        ("arrive-time", "Arrive", "arrive_time"),
        ("call-time", "Call", "call_time"),
        ("wrap-time", "Wrap", "wrap_time"),
        ("arrive-back", "Back", "arrive_back"),
    ]

    FLAG_FIELDS = [
        ("lunch-sup", "Lunch sup", "lunch_sup"),
        ("travel-lunch-sup", "Travel lunch", "travel_lunch_sup"),
        ("travel-pd", "Travel PD", "travel_pd"),
        ("meal-sup", "Meal sup", "meal_sup"),
        ("night-shoot", "Night shoot", "night_shoot"),
        ("overnight", "Overnight", "overnight"),
    ]

    def __init__(self, day_name: str, day_date: date, entry: DayEntry):
        super().__init__()
        self.day_name = day_name
        self.day_date = day_date
        self.entry = entry

    def compose(self) -> ComposeResult:
        entry = self.entry
        with Vertical(id="edit-dialog"):
            title = f"Edit {self.day_name} {self.day_date.strftime('%d %b %Y')}"
            if entry.half_holiday_label:
                title += f" - {entry.half_holiday_label}"
            yield Label(title, id="edit-title")

            with Horizontal(classes="field-row"):
                with Vertical(classes="field-group"):
                    yield Label("Mode", classes="field-label")
                    yield Input(value=entry.mode, placeholder="/".join(EDITABLE_MODES), id="mode")
                with Vertical(classes="field-group", id="segments-group"):
                    yield Label("Yard blocks (HH:MM-HH:MM, ...)", classes="field-label")
                    yield Input(
                        value=", ".join(f"{s.start or ''}-{s.end or ''}" for s in entry.yard_segments),
                        placeholder="08:00-16:30",
                        id="segments",
                    )

            with Horizontal(classes="field-row"):
                for field_id, label, attr in self.TIME_FIELDS:
                    with Vertical(classes="field-group"):
                        yield Label(label, classes="field-label")
                        yield Input(value=getattr(entry, attr) or "", placeholder="HH:MM", id=field_id)
                with Vertical(classes="field-group"):
                    yield Label("Pre-call (m)", classes="field-label")
                    yield Input(
                        value=str(entry.precall_duration) if entry.precall_duration else "",
                        placeholder="15-240",
                        id="precall",
                    )

            with Horizontal(classes="field-row"):
                for field_id, label, attr in self.FLAG_FIELDS:
                    yield Checkbox(label, getattr(entry, attr), id=field_id)

            with Horizontal(classes="field-row"):
                with Vertical(classes="field-group", id="notes-group"):
                    yield Label("Day notes", classes="field-label")
                    yield Input(value=entry.day_notes, id="notes")

            with Horizontal(id="edit-buttons"):
                yield Button("Save", variant="primary", id="save")
                yield Button("Cancel", variant="default", id="cancel")

    def on_mount(self) -> None:
        self.query_one("#mode", Input).focus()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "cancel":
            self.dismiss(None)
        elif event.button.id == "save":
            self._save_entry()

    def action_cancel(self) -> None:
        self.dismiss(None)

    def _save_entry(self) -> None:
        mode = self.query_one("#mode", Input).value.strip().lower()
        if mode not in EDITABLE_MODES:
            self.app.notify(f"Mode must be one of: {', '.join(EDITABLE_MODES)}", severity="error")
            return

        changes: dict = {"mode": mode}

        for field_id, label, attr in self.TIME_FIELDS:
            val = self.query_one(f"#{field_id}", Input).value.strip()
            if val and parse_time_of_day(val) is None:
                self.app.notify(f"{label}: use HH:MM", severity="error")
                return
            changes[attr] = val or None

        precall = self.query_one("#precall", Input).value.strip()
        if precall and not precall.isdigit():
            self.app.notify("Pre-call must be a number of minutes", severity="error")
            return
        changes["precall_duration"] = int(precall) if precall else None

        if mode == "yard":
            segments = parse_segments(self.query_one("#segments", Input).value)
            if segments is None:
                self.app.notify("Yard blocks: use HH:MM-HH:MM, separated by commas", severity="error")
                return
            changes["yard_segments"] = segments

        for field_id, label, attr in self.FLAG_FIELDS:
            changes[attr] = self.query_one(f"#{field_id}", Checkbox).value

        changes["day_notes"] = self.query_one("#notes", Input).value.strip()
        self.dismiss(without_stale_flags(self.entry, changes))


class TurnaroundJobScreen(ModalScreen[JobRef | None]):
    """Pick the night-shoot job a turnaround day is for."""

    CSS = """
    TurnaroundJobScreen {
        align: center middle;
    }

    #job-dialog {
        width: 80;
        height: 20;
        padding: 1 2;
        background: $surface;
        border: thick $primary;
    }

    #job-title {
        width: 100%;
        text-align: center;
        text-style: bold;
        margin-bottom: 1;
    }

    #job-table {
        height: 1fr;
    }
    """

    BINDINGS = [
        Binding("escape", "cancel", "Cancel"),
    ]

    def __init__(self, day_name: str, options: list[JobRef]):
        super().__init__()
        self.day_name = day_name
        self.options = options

    def compose(self) -> ComposeResult:
        with Vertical(id="job-dialog"):
            yield Label(f"Turnaround job for {self.day_name}", id="job-title")
            yield DataTable(id="job-table")

    def on_mount(self) -> None:
        table = self.query_one("#job-table", DataTable)
        table.cursor_type = "row"
        table.add_column("Night shoot", width=12)
        table.add_column("Job", width=10)
        table.add_column("Client", width=22)
        table.add_column("Location", width=22)
        for job in self.options:
            table.add_row(job.date_iso or "", job.job_number, job.client, job.location)
        table.focus()

    def on_data_table_row_selected(self, event: DataTable.RowSelected) -> None:
        self.action_select()

    def action_select(self) -> None:
        table = self.query_one("#job-table", DataTable)
        if not self.options:
            self.dismiss(None)
            return
        self.dismiss(self.options[table.cursor_row])

    def action_cancel(self) -> None:
        self.dismiss(None)
