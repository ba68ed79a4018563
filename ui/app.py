from __future__ import annotations

import logging
import os
from datetime import datetime
from typing import Any

from fastapi import Body, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse

from habitflow import (
    HabitStore,
    InvalidHabits,
    Snapshot,
    StoreUnavailable,
    build_completion_sets,
    calendar_month,
    compute_dashboard,
    create_habit,
    delete_habit,
    export_snapshot,
    find_habit,
    lifetime_rates,
    load_settings,
    logs_dir,
    parse_import,
    set_completion_dates,
    setup_logging,
    toggle_completion,
    update_habit,
)

logger = logging.getLogger("habitflow.ui")


# ── HTML helpers ──────────────────────────────────────────────

def _escape(s: str) -> str:
    return (
        s.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
    )


# ── App ───────────────────────────────────────────────────────

MAX_WINDOW_DAYS = 366

app = FastAPI(title="HabitFlow", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=[os.environ.get("HABITFLOW_FRONTEND_ORIGIN", "*")],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(StoreUnavailable)
def store_unavailable_handler(request: Request, exc: StoreUnavailable) -> JSONResponse:
    return JSONResponse(status_code=503, content={"detail": str(exc)})


def _store() -> HabitStore:
    return HabitStore()


def _now(store: HabitStore) -> datetime:
    if store.tz is None:
        return datetime.now().astimezone()
    return datetime.now(store.tz)


def _require_habit(snapshot: Snapshot, habit_id: str) -> None:
    if not find_habit(snapshot, habit_id):
        raise HTTPException(status_code=404, detail=f"Habit not found: {habit_id}")


def _bad_request(errors: list[str]) -> HTTPException:
    return HTTPException(status_code=400, detail="; ".join(errors))


@app.get("/api/health")
def api_health() -> dict[str, Any]:
    return {"ok": True, "time": datetime.now().astimezone().isoformat(timespec="seconds")}


# ── Habits ────────────────────────────────────────────────────

@app.get("/api/habits")
def api_list_habits() -> dict[str, Any]:
    snapshot = _store().load_snapshot()
    return {"habits": [h.to_dict() for h in snapshot.habits]}


@app.post("/api/habits")
def api_create_habit(payload: dict[str, Any] = Body(...)) -> dict[str, Any]:
    """Create a habit; id, createdAt, color and icon are filled in when absent."""
    store = _store()
    snapshot = store.load_snapshot()
    habit, errors = create_habit(snapshot, payload, _now(store))
    if errors:
        raise _bad_request(errors)
    store.save_snapshot(snapshot)
    logger.info("Created habit %s (%s)", habit.id, habit.name)
    return {"ok": True, "habit": habit.to_dict()}


@app.put("/api/habits")
def api_replace_habits(payload: Any = Body(...)) -> dict[str, Any]:
    """Replace the whole habit collection (upsert, delete absent, cascade)."""
    items = payload.get("habits") if isinstance(payload, dict) else payload
    if not isinstance(items, list) or not all(isinstance(i, dict) for i in items):
        raise HTTPException(status_code=400, detail="Expected a list of habits")
    missing = [i for i, item in enumerate(items) if item.get("id") in (None, "")]
    if missing:
        raise _bad_request([f"habits[{i}]: Missing required field: id" for i in missing])
    try:
        habits = _store().replace_habits(items)
    except InvalidHabits as e:
        raise _bad_request(e.errors) from e
    return {"ok": True, "habits": [h.to_dict() for h in habits]}


@app.get("/api/habits/{habit_id}")
def api_get_habit(habit_id: str) -> dict[str, Any]:
    snapshot = _store().load_snapshot()
    habit = find_habit(snapshot, habit_id)
    if habit is None:
        raise HTTPException(status_code=404, detail=f"Habit not found: {habit_id}")
    return {"habit": habit.to_dict(), "completions": snapshot.completions.get(habit_id, [])}


@app.put("/api/habits/{habit_id}")
def api_update_habit(habit_id: str, payload: dict[str, Any] = Body(...)) -> dict[str, Any]:
    store = _store()
    snapshot = store.load_snapshot()
    _require_habit(snapshot, habit_id)
    updated, errors = update_habit(snapshot, habit_id, payload)
    if errors:
        raise _bad_request(errors)
    store.save_snapshot(snapshot)
    return {"ok": True, "habit": updated.to_dict() if updated else None}


@app.delete("/api/habits/{habit_id}")
def api_delete_habit(habit_id: str) -> dict[str, Any]:
    """Delete a habit and its completion record."""
    store = _store()
    snapshot = store.load_snapshot()
    if not delete_habit(snapshot, habit_id):
        raise HTTPException(status_code=404, detail=f"Habit not found: {habit_id}")
    store.save_snapshot(snapshot)
    logger.info("Deleted habit %s", habit_id)
    return {"ok": True, "habitId": habit_id}


@app.post("/api/habits/{habit_id}/toggle-completion")
def api_toggle_completion(habit_id: str, payload: dict[str, Any] = Body(default={})) -> dict[str, Any]:
    """Toggle one day for a habit; the day defaults to today."""
    store = _store()
    snapshot = store.load_snapshot()
    _require_habit(snapshot, habit_id)
    day = payload.get("date") or _now(store)
    completed, errors = toggle_completion(snapshot, habit_id, day, store.tz)
    if errors:
        raise _bad_request(errors)
    saved = store.save_snapshot(snapshot)
    return {
        "ok": True,
        "habitId": habit_id,
        "completed": completed,
        "completions": saved.completions.get(habit_id, []),
    }


# ── Completions ───────────────────────────────────────────────

@app.get("/api/completions")
def api_get_completions() -> dict[str, Any]:
    return {"completions": _store().load_snapshot().completions}


@app.put("/api/completions")
def api_replace_completions(payload: dict[str, Any] = Body(...)) -> dict[str, Any]:
    mapping = payload.get("completions", payload)
    if not isinstance(mapping, dict):
        raise HTTPException(status_code=400, detail="Expected a mapping of habit id to dates")
    return {"ok": True, "completions": _store().replace_completions(mapping)}


@app.get("/api/completions/{habit_id}")
def api_get_habit_completions(habit_id: str) -> dict[str, Any]:
    snapshot = _store().load_snapshot()
    _require_habit(snapshot, habit_id)
    return {"habitId": habit_id, "dates": snapshot.completions.get(habit_id, [])}


@app.put("/api/completions/{habit_id}")
def api_set_habit_completions(habit_id: str, payload: Any = Body(...)) -> dict[str, Any]:
    dates = payload.get("dates") if isinstance(payload, dict) else payload
    if not isinstance(dates, list):
        raise HTTPException(status_code=400, detail="Expected a list of dates")
    store = _store()
    snapshot = store.load_snapshot()
    _require_habit(snapshot, habit_id)
    keys, errors = set_completion_dates(snapshot, habit_id, dates, store.tz)
    if errors:
        raise _bad_request(errors)
    store.save_snapshot(snapshot)
    return {"ok": True, "habitId": habit_id, "dates": keys}


# ── Export / import ───────────────────────────────────────────

@app.get("/api/data/export")
def api_export() -> dict[str, Any]:
    store = _store()
    return export_snapshot(store.load_snapshot(), _now(store))


@app.post("/api/data/import")
def api_import(payload: Any = Body(...)) -> dict[str, Any]:
    """Replace all data with an export document."""
    store = _store()
    snapshot, errors = parse_import(payload, store.tz)
    if errors or snapshot is None:
        raise _bad_request(errors or ["Invalid data format"])
    store.save_snapshot(snapshot)
    logger.info("Imported %d habits", len(snapshot.habits))
    return {"ok": True, "habits": len(snapshot.habits)}


# ── Statistics ────────────────────────────────────────────────

@app.get("/api/stats")
def api_stats(days: int | None = None, top: int | None = None) -> dict[str, Any]:
    """Dashboard statistics. Serves zeros with storeError when the store is down."""
    store = _store()
    settings = load_settings(store.root)
    window = min(settings.rolling_window_days, MAX_WINDOW_DAYS) if days is None else days
    if not 1 <= window <= MAX_WINDOW_DAYS:
        raise HTTPException(status_code=400, detail=f"days must be between 1 and {MAX_WINDOW_DAYS}")
    top_n = settings.top_habits if top is None else max(0, top)

    snapshot, error = store.load_snapshot_or_empty()
    dashboard = compute_dashboard(
        snapshot.habits, snapshot.completions, _now(store), store.tz, window, top_n
    )
    result = dashboard.to_dict()
    if error:
        result["storeError"] = error
    return result


@app.get("/api/stats/habits")
def api_habit_rates(top: int | None = None) -> dict[str, Any]:
    """Lifetime completion rate per habit, best first."""
    store = _store()
    snapshot, error = store.load_snapshot_or_empty()
    sets = build_completion_sets(snapshot.habits, snapshot.completions, store.tz)
    rates = lifetime_rates(snapshot.habits, sets, _now(store), store.tz)
    if top is not None:
        rates = rates[: max(0, top)]
    result: dict[str, Any] = {"habits": [r.to_dict() for r in rates]}
    if error:
        result["storeError"] = error
    return result


@app.get("/api/calendar")
def api_calendar(year: int | None = None, month: int | None = None) -> dict[str, Any]:
    """Month heatmap in Sunday-first weeks; defaults to the current month."""
    store = _store()
    today = _now(store).date()
    year = today.year if year is None else year
    month = today.month if month is None else month
    if not 1 <= month <= 12 or not 1 <= year <= 9999:
        raise HTTPException(status_code=400, detail=f"Invalid month: {year}-{month}")

    snapshot, error = store.load_snapshot_or_empty()
    sets = build_completion_sets(snapshot.habits, snapshot.completions, store.tz)
    weeks = calendar_month(snapshot.habits, sets, year, month)
    result: dict[str, Any] = {
        "year": year,
        "month": month,
        "weeks": [[c.to_dict() if c else None for c in week] for week in weeks],
    }
    if error:
        result["storeError"] = error
    return result


# ── Dashboard page ────────────────────────────────────────────

_STATUS_COLORS = {"none": "#2a2f3a", "partial": "#3b82f6", "full": "#22c55e"}


@app.get("/", response_class=HTMLResponse)
def index() -> HTMLResponse:
    store = _store()
    now = _now(store)
    settings = load_settings(store.root)
    snapshot, error = store.load_snapshot_or_empty()
    dash = compute_dashboard(
        snapshot.habits, snapshot.completions, now, store.tz,
        settings.rolling_window_days, settings.top_habits,
    )
    sets = build_completion_sets(snapshot.habits, snapshot.completions, store.tz)
    weeks = calendar_month(snapshot.habits, sets, now.year, now.month)

    habit_rows = []
    for h in snapshot.habits:
        done = dash.date in sets.get(h.id, set())
        streak = dash.streaks.per_habit.get(h.id, 0)
        habit_rows.append(
            f"""<tr><td>{_escape(h.icon)}</td><td>{_escape(h.name)}</td>
            <td>{'✅' if done else '⬜'}</td><td>\U0001f525 {streak}</td></tr>"""
        )

    top_rows = "".join(
        f"<li>{_escape(r.icon)} {_escape(r.name)} <b>{r.rate}%</b></li>" for r in dash.top_habits
    )

    cal_rows = []
    for week in weeks:
        cells = []
        for c in week:
            if c is None:
                cells.append("<td></td>")
            else:
                color = _STATUS_COLORS[c.status]
                cells.append(
                    f'<td title="{c.completed}/{c.total}" style="background:{color}">{int(c.date[-2:])}</td>'
                )
        cal_rows.append("<tr>" + "".join(cells) + "</tr>")

    error_html = (
        f'<div class="error">⚠ {_escape(error)}</div>' if error else ""
    )

    html = f"""<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8" />
  <meta name="viewport" content="width=device-width, initial-scale=1" />
  <title>HabitFlow</title>
  <style>
    body {{ font-family: system-ui, sans-serif; background:#11141b; color:#e5e7eb; margin:0 }}
    .container {{ max-width: 880px; margin: 0 auto; padding: 24px }}
    .grid {{ display:grid; grid-template-columns: repeat(auto-fit, minmax(180px, 1fr)); gap:12px }}
    .card {{ background:#1a1f2b; border-radius:10px; padding:14px; margin-bottom:12px }}
    .big {{ font-size: 28px; font-weight: 700 }}
    .muted {{ color:#9ca3af }} .small {{ font-size: 13px }}
    .error {{ color:#ff6b6b; background:rgba(255,107,107,0.1); padding:8px; border-radius:6px }}
    table {{ border-collapse: collapse; width:100% }} td {{ padding:6px; text-align:center }}
  </style>
</head>
<body>
  <div class="container">
    <header>
      <h1>HabitFlow</h1>
      <div class="muted small">{_escape(dash.date)} · {_escape(dash.message)}</div>
      {error_html}
    </header>

    <section class="grid">
      <div class="card"><div class="muted small">Today</div>
        <div class="big">{dash.today.percentage}%</div>
        <div class="muted small">{dash.today.completed}/{dash.today.possible} habits</div></div>
      <div class="card"><div class="muted small">Last {dash.rolling.window_days} days</div>
        <div class="big">{dash.rolling.percentage}%</div></div>
      <div class="card"><div class="muted small">This month</div>
        <div class="big">{dash.monthly.percentage}%</div></div>
      <div class="card"><div class="muted small">Streaks</div>
        <div class="big">\U0001f525 {dash.streaks.total}</div>
        <div class="muted small">longest {dash.streaks.longest}</div></div>
    </section>

    <section class="card">
      <h2>Habits</h2>
      <table>{''.join(habit_rows) if habit_rows else '<tr><td class="muted">No habits yet.</td></tr>'}</table>
    </section>

    <section class="card">
      <h2>Top habits</h2>
      <ol>{top_rows or '<li class="muted">(none)</li>'}</ol>
    </section>

    <section class="card">
      <h2>{now.strftime('%B %Y')}</h2>
      <table>
        <tr class="muted small"><td>Sun</td><td>Mon</td><td>Tue</td><td>Wed</td><td>Thu</td><td>Fri</td><td>Sat</td></tr>
        {''.join(cal_rows)}
      </table>
    </section>
    <footer class="muted small"><code>{_escape(str(store.root))}</code></footer>
  </div>
</body>
</html>"""
    return HTMLResponse(html)


def main() -> None:
    import uvicorn

    store = _store()
    setup_logging(log_dir=logs_dir(store.root))
    host = os.environ.get("HABITFLOW_HOST", "127.0.0.1")
    port = int(os.environ.get("HABITFLOW_PORT", "4000"))
    logger.info("Serving HabitFlow from %s on %s:%d", store.root, host, port)
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    main()
