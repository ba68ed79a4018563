#!/usr/bin/env python3
"""HabitFlow TUI: interactive terminal habit tracker powered by Textual."""

from __future__ import annotations

import logging
import sys
from datetime import datetime

from textual import on, work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical, VerticalScroll
from textual.reactive import reactive
from textual.widgets import DataTable, Footer, Header, Input, Label, Static

from habitflow import (
    Dashboard,
    HabitStore,
    Snapshot,
    StoreUnavailable,
    build_completion_sets,
    calendar_month,
    compute_dashboard,
    create_habit,
    delete_habit,
    lifetime_rates,
    load_settings,
    logs_dir,
    setup_logging,
    toggle_completion,
    write_export,
)

logger = logging.getLogger("habitflow.cli")

STATUS_MARKS = {"none": "·", "partial": "◐", "full": "●"}


# ── Stylesheet ─────────────────────────────────────────────────

CSS = """
Screen {
    background: $surface;
}

#main-layout {
    height: 1fr;
}

#left-pane {
    width: 2fr;
    min-width: 40;
    border-right: tall $primary-background-darken-2;
    padding: 0 1;
}

#right-pane {
    width: 1fr;
    min-width: 30;
    padding: 0 1;
}

.section-title {
    text-style: bold;
    color: $text;
    margin: 1 0 0 0;
    padding: 0 1;
}

#habits-table {
    height: 1fr;
}

#new-habit {
    height: 3;
    margin: 1 0 0 0;
}

#summary {
    height: auto;
    padding: 1 2;
    border: tall $primary-background-darken-2;
}

#message {
    height: auto;
    padding: 0 1;
    color: $text-muted;
    margin: 1 0 0 0;
}

.overlay-screen {
    padding: 1 2;
}

#rates-table, #calendar-table {
    height: 1fr;
}
"""


# ── Helpers ────────────────────────────────────────────────────


def _now(store: HabitStore) -> datetime:
    if store.tz is None:
        return datetime.now().astimezone()
    return datetime.now(store.tz)


def _summary_text(dash: Dashboard) -> str:
    return "\n".join(
        [
            f"Today:    {dash.today.percentage}%  ({dash.today.completed}/{dash.today.possible})",
            f"{dash.rolling.window_days}-day:   {dash.rolling.percentage}%",
            f"Month:    {dash.monthly.percentage}%  (avg {dash.monthly.average_completed:.1f}/day)",
            f"Streaks:  🔥 {dash.streaks.total}  (longest {dash.streaks.longest})",
            f"Active:   {dash.active_habits}/{dash.total_habits} habits",
        ]
    )


# ── Screens ────────────────────────────────────────────────────


class StatsScreen(Vertical):
    """Lifetime completion rate per habit."""

    def __init__(self, store: HabitStore, snapshot: Snapshot, **kwargs) -> None:
        super().__init__(**kwargs)
        self.store = store
        self.snapshot = snapshot

    def compose(self) -> ComposeResult:
        yield Label("Lifetime rates", classes="section-title")
        yield DataTable(id="rates-table")

    def on_mount(self) -> None:
        table: DataTable = self.query_one("#rates-table", DataTable)
        table.add_columns("", "Habit", "Done", "Days", "Expected", "Rate")
        sets = build_completion_sets(self.snapshot.habits, self.snapshot.completions, self.store.tz)
        for r in lifetime_rates(self.snapshot.habits, sets, _now(self.store), self.store.tz):
            table.add_row(
                r.icon,
                r.name,
                str(r.completion_count),
                str(r.days_alive),
                str(r.expected),
                f"{r.rate}%",
            )


class CalendarScreen(Vertical):
    """Current month heatmap."""

    def __init__(self, store: HabitStore, snapshot: Snapshot, **kwargs) -> None:
        super().__init__(**kwargs)
        self.store = store
        self.snapshot = snapshot

    def compose(self) -> ComposeResult:
        now = _now(self.store)
        yield Label(now.strftime("%B %Y") + f"   {STATUS_MARKS['none']} none  "
                    f"{STATUS_MARKS['partial']} partial  {STATUS_MARKS['full']} full",
                    classes="section-title")
        yield DataTable(id="calendar-table")

    def on_mount(self) -> None:
        now = _now(self.store)
        table: DataTable = self.query_one("#calendar-table", DataTable)
        table.add_columns("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")
        sets = build_completion_sets(self.snapshot.habits, self.snapshot.completions, self.store.tz)
        for week in calendar_month(self.snapshot.habits, sets, now.year, now.month):
            table.add_row(
                *[
                    "" if c is None else f"{int(c.date[-2:]):>2} {STATUS_MARKS[c.status]}"
                    for c in week
                ]
            )


# ── Main app ───────────────────────────────────────────────────


class HabitFlowApp(App):
    """HabitFlow: interactive terminal habit tracker."""

    TITLE = "HabitFlow"
    CSS = CSS
    AUTO_FOCUS = "#habits-table"

    BINDINGS = [
        Binding("space", "toggle_today", "Toggle"),
        Binding("a", "add_habit", "Add"),
        Binding("x", "delete_habit", "Delete"),
        Binding("h", "show_dashboard", "Habits"),
        Binding("s", "show_stats", "Stats"),
        Binding("c", "show_calendar", "Calendar"),
        Binding("e", "export", "Export"),
        Binding("r", "refresh", "Refresh"),
        Binding("escape", "blur_focus", "Back"),
        Binding("q", "quit", "Quit"),
    ]

    current_view: reactive[str] = reactive("dashboard")

    def __init__(self, store: HabitStore | None = None) -> None:
        super().__init__()
        self.store = store or HabitStore()
        self._snapshot = Snapshot()

    def compose(self) -> ComposeResult:
        yield Header()
        yield Horizontal(
            Vertical(
                Label("Habits", classes="section-title"),
                DataTable(id="habits-table", cursor_type="row"),
                Input(placeholder="new habit name… (enter to add)", id="new-habit"),
                id="left-pane",
            ),
            VerticalScroll(
                Label("Summary", classes="section-title"),
                Static(id="summary"),
                Static(id="message"),
                id="right-pane",
                can_focus=False,
            ),
            id="main-layout",
        )
        yield Footer()

    def on_mount(self) -> None:
        table = self.query_one("#habits-table", DataTable)
        table.add_columns("", "Habit", "Today", "Streak", "Rate")
        self._load_data()

    def _load_data(self) -> None:
        """Reload the snapshot and repopulate every widget."""
        snapshot, error = self.store.load_snapshot_or_empty()
        self._snapshot = snapshot
        settings = load_settings(self.store.root)
        now = _now(self.store)
        dash = compute_dashboard(
            snapshot.habits, snapshot.completions, now, self.store.tz,
            settings.rolling_window_days, settings.top_habits,
        )
        sets = build_completion_sets(snapshot.habits, snapshot.completions, self.store.tz)
        rates = {r.habit_id: r.rate for r in lifetime_rates(snapshot.habits, sets, now, self.store.tz)}

        table = self.query_one("#habits-table", DataTable)
        cursor = table.cursor_row
        table.clear()
        for h in snapshot.habits:
            table.add_row(
                h.icon,
                h.name,
                "✅" if dash.date in sets.get(h.id, set()) else "⬜",
                f"🔥 {dash.streaks.per_habit.get(h.id, 0)}",
                f"{rates.get(h.id, 0)}%",
                key=h.id,
            )
        if snapshot.habits:
            table.move_cursor(row=min(cursor, len(snapshot.habits) - 1))

        self.query_one("#summary", Static).update(_summary_text(dash))
        self.query_one("#message", Static).update(error or dash.message)
        self.sub_title = f"{dash.date}  🔥 {dash.streaks.total}  [{dash.today.percentage}%]"

    def _selected_habit_id(self) -> str | None:
        table = self.query_one("#habits-table", DataTable)
        if table.row_count == 0:
            return None
        row_key, _ = table.coordinate_to_cell_key(table.cursor_coordinate)
        return row_key.value

    # ── Actions ────────────────────────────────────────────────

    def action_toggle_today(self) -> None:
        habit_id = self._selected_habit_id()
        if habit_id is not None:
            self._do_toggle(habit_id)

    def action_add_habit(self) -> None:
        if self.current_view != "dashboard":
            self._switch_to("dashboard")
        self.query_one("#new-habit", Input).focus()

    def action_delete_habit(self) -> None:
        habit_id = self._selected_habit_id()
        if habit_id is not None:
            self._do_delete(habit_id)

    def action_show_dashboard(self) -> None:
        self._switch_to("dashboard")

    def action_show_stats(self) -> None:
        self._switch_to("dashboard" if self.current_view == "stats" else "stats")

    def action_show_calendar(self) -> None:
        self._switch_to("dashboard" if self.current_view == "calendar" else "calendar")

    def action_refresh(self) -> None:
        self._load_data()

    def action_blur_focus(self) -> None:
        if self.current_view != "dashboard":
            self._switch_to("dashboard")
        self.set_focus(self.query_one("#habits-table", DataTable))

    def action_export(self) -> None:
        self._do_export()

    @on(Input.Submitted, "#new-habit")
    def _on_new_habit(self, event: Input.Submitted) -> None:
        name = event.value.strip()
        if name:
            self._do_create(name)
        event.input.value = ""
        self.set_focus(self.query_one("#habits-table", DataTable))

    # ── Store writes (worker threads) ──────────────────────────

    def _report(self, error: Exception) -> None:
        logger.error("Store write failed: %s", error)
        self.call_from_thread(self.notify, str(error), title="Store error", severity="error")

    @work(thread=True, exclusive=True)
    def _do_toggle(self, habit_id: str) -> None:
        try:
            snapshot = self.store.load_snapshot()
            completed, errors = toggle_completion(snapshot, habit_id, _now(self.store), self.store.tz)
            if errors:
                self.call_from_thread(self.notify, "; ".join(errors), severity="warning")
                return
            self.store.save_snapshot(snapshot)
        except StoreUnavailable as e:
            self._report(e)
            return
        self.call_from_thread(self._load_data)

    @work(thread=True, exclusive=True)
    def _do_create(self, name: str) -> None:
        try:
            snapshot = self.store.load_snapshot()
            habit, errors = create_habit(snapshot, {"name": name}, _now(self.store))
            if errors:
                self.call_from_thread(self.notify, "; ".join(errors), severity="warning")
                return
            self.store.save_snapshot(snapshot)
        except StoreUnavailable as e:
            self._report(e)
            return
        self.call_from_thread(self.notify, f"Added {habit.icon} {habit.name}", title="Habit added")
        self.call_from_thread(self._load_data)

    @work(thread=True, exclusive=True)
    def _do_delete(self, habit_id: str) -> None:
        try:
            snapshot = self.store.load_snapshot()
            if not delete_habit(snapshot, habit_id):
                return
            self.store.save_snapshot(snapshot)
        except StoreUnavailable as e:
            self._report(e)
            return
        self.call_from_thread(self.notify, "Habit deleted", severity="information")
        self.call_from_thread(self._load_data)

    @work(thread=True)
    def _do_export(self) -> None:
        now = _now(self.store)
        path = self.store.root / "exports" / f"habitflow-{now.date().isoformat()}.json"
        try:
            write_export(path, self.store.load_snapshot(), now)
        except (StoreUnavailable, OSError) as e:
            self._report(e)
            return
        self.call_from_thread(self.notify, str(path), title="Exported")

    # ── View switching via overlay ─────────────────────────────

    def _switch_to(self, view: str) -> None:
        main = self.query_one("#main-layout", Horizontal)

        for old in self.query(".overlay-screen"):
            old.remove()

        show_panes = view == "dashboard"
        self.query_one("#left-pane").display = show_panes
        self.query_one("#right-pane").display = show_panes

        if view == "stats":
            main.mount(StatsScreen(self.store, self._snapshot, classes="overlay-screen"))
        elif view == "calendar":
            main.mount(CalendarScreen(self.store, self._snapshot, classes="overlay-screen"))
        self.current_view = view


# ── Entry point ────────────────────────────────────────────────


def main() -> None:
    store = HabitStore()
    if not store.root.exists():
        print(f"Workspace not found: {store.root}")
        print("Set HABITFLOW_ROOT to your habit workspace.")
        sys.exit(1)

    setup_logging(log_dir=logs_dir(store.root), console=False)
    HabitFlowApp(store).run()


if __name__ == "__main__":
    main()
