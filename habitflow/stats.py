"""Aggregate statistics for HabitFlow.

Computes completion rates over three windows plus per-habit lifetime
rates, the calendar heatmap, and the dashboard bundle that the HTTP API
and the TUI render.

The rolling window and the month use different averaging on purpose:

- rolling: every day gets its own rate (completed / possible, 0 when no
  habit existed yet) and the rates are averaged with equal weight, so a
  1/1 day and a 0/10 day average to 50%;
- monthly: completed counts are summed over the month, divided by the
  number of days, then by the current habit count.

All functions take an explicit ``now``; none of them read the clock.
Percentages use half-up rounding.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from datetime import date, datetime, tzinfo
from typing import AbstractSet, Any

from habitflow.completions import build_completion_sets
from habitflow.datekey import (
    date_keys_back,
    days_between,
    local_date,
    month_date_keys,
    parse_date_key,
    to_date_key,
)
from habitflow.models import (
    CalendarDay,
    Dashboard,
    DayTally,
    Habit,
    HabitRate,
    MonthlyAverage,
    RateSummary,
    RollingAverage,
)
from habitflow.streaks import streak_summary

DEFAULT_WINDOW_DAYS = 14
DEFAULT_TOP_N = 3

CompletionSets = Mapping[str, AbstractSet[str]]
Anchor = datetime | date | str


def js_round(value: float) -> int:
    """Round half up, the way the dashboard has always displayed percentages."""
    return int(math.floor(value + 0.5))


def _percent(part: float, whole: float) -> int:
    if whole <= 0:
        return 0
    return js_round(part / whole * 100)


def creation_day(habit: Habit, tz: tzinfo | None = None) -> date | None:
    """Local day a habit was created, or None when unknown or unreadable."""
    if habit.created_at in (None, ""):
        return None
    key = to_date_key(habit.created_at, tz)
    return parse_date_key(key) if key else None


# ── Single day ────────────────────────────────────────────────


def today_ratio(
    habits: Iterable[Habit], sets: CompletionSets, now: Anchor, tz: tzinfo | None = None
) -> RateSummary:
    """Share of habits completed on the anchor day."""
    habits = list(habits)
    key = local_date(now, tz).isoformat()
    completed = sum(1 for h in habits if key in sets.get(h.id, ()))
    return RateSummary(
        percentage=_percent(completed, len(habits)),
        completed=completed,
        possible=len(habits),
    )


# ── Rolling window ────────────────────────────────────────────


def daily_tallies(
    habits: Iterable[Habit],
    sets: CompletionSets,
    day_keys: Iterable[str],
    tz: tzinfo | None = None,
) -> dict[str, DayTally]:
    """Completed and possible counts for each given day.

    A habit is possible on a day once it exists; habits without a readable
    creation date count on every day.
    """
    created = [(h, creation_day(h, tz)) for h in habits]
    tallies: dict[str, DayTally] = {}
    for key in day_keys:
        day = parse_date_key(key)
        existing = [h for h, c in created if c is None or day is None or c <= day]
        tallies[key] = DayTally(
            date=key,
            completed=sum(1 for h in existing if key in sets.get(h.id, ())),
            possible=len(existing),
        )
    return tallies


def _count(value: Any) -> int:
    if isinstance(value, bool):
        return int(value)
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return 0
    if not math.isfinite(number):
        return 0
    return max(0, int(number))


def coerce_tallies(raw: Any, tz: tzinfo | None = None) -> dict[str, DayTally]:
    """Read externally supplied per-day counts.

    Accepts a list of ``{date, completedCount, possibleCount}`` objects or a
    mapping of date to ``{completedCount, possibleCount}``. Entries with an
    unreadable date are dropped; unreadable counts become 0.
    """
    if isinstance(raw, Mapping):
        items = [(k, v) for k, v in raw.items()]
    elif isinstance(raw, (list, tuple)):
        items = [(item.get("date"), item) for item in raw if isinstance(item, Mapping)]
    else:
        return {}

    tallies: dict[str, DayTally] = {}
    for raw_date, entry in items:
        key = to_date_key(raw_date, tz)
        if key is None:
            continue
        entry = entry if isinstance(entry, Mapping) else {}
        tallies[key] = DayTally(
            date=key,
            completed=_count(entry.get("completedCount")),
            possible=_count(entry.get("possibleCount")),
        )
    return tallies


def average_daily_rates(
    tallies: Mapping[str, DayTally],
    now: Anchor,
    window_days: int = DEFAULT_WINDOW_DAYS,
    tz: tzinfo | None = None,
) -> RollingAverage:
    """Equal-weight mean of the daily rates over the window ending on ``now``.

    Days missing from ``tallies`` count as 0/0 (rate 0).
    """
    if window_days < 1:
        raise ValueError("window_days must be at least 1")

    keys = date_keys_back(local_date(now, tz), window_days)
    days = [tallies.get(key) or DayTally(date=key) for key in keys]
    average = sum(d.rate() for d in days) / window_days
    return RollingAverage(
        window_days=window_days,
        percentage=js_round(max(0.0, min(1.0, average)) * 100),
        total_completed=sum(d.completed for d in days),
        total_possible=sum(d.possible for d in days),
        days=days,
    )


def rolling_average(
    habits: Iterable[Habit],
    sets: CompletionSets,
    now: Anchor,
    window_days: int = DEFAULT_WINDOW_DAYS,
    tz: tzinfo | None = None,
) -> RollingAverage:
    """Rolling N-day average completion rate ending today (inclusive)."""
    if window_days < 1:
        raise ValueError("window_days must be at least 1")
    anchor = local_date(now, tz)
    keys = date_keys_back(anchor, window_days)
    return average_daily_rates(daily_tallies(habits, sets, keys, tz), anchor, window_days)


# ── Calendar month ────────────────────────────────────────────


def monthly_average(
    habits: Iterable[Habit], sets: CompletionSets, now: Anchor, tz: tzinfo | None = None
) -> MonthlyAverage:
    """Average completed habits per day over the anchor's month, as a share of all habits."""
    habits = list(habits)
    anchor = local_date(now, tz)
    keys = month_date_keys(anchor.year, anchor.month)
    daily = [sum(1 for h in habits if key in sets.get(h.id, ())) for key in keys]
    total = sum(daily)
    average = total / len(keys)
    return MonthlyAverage(
        year=anchor.year,
        month=anchor.month,
        days_in_month=len(keys),
        habit_count=len(habits),
        total_completed=total,
        average_completed=average,
        percentage=_percent(average, len(habits)),
        daily_completed=daily,
    )


# ── Per-habit lifetime ────────────────────────────────────────


def lifetime_rates(
    habits: Iterable[Habit], sets: CompletionSets, now: Anchor, tz: tzinfo | None = None
) -> list[HabitRate]:
    """Lifetime completion rate per habit, best first.

    expected = days alive (inclusive, at least 1) x frequency per day;
    rate = unique completed days / expected, capped at 100. Ties keep the
    input order.
    """
    today = local_date(now, tz)
    rates = []
    for habit in habits:
        created = creation_day(habit, tz) or today
        days_alive = max(1, days_between(created, today))
        expected = days_alive * max(1, habit.frequency_per_day)
        unique_days = len(sets.get(habit.id, ()))
        rates.append(
            HabitRate(
                habit_id=habit.id,
                name=habit.name,
                icon=habit.icon,
                completion_count=unique_days,
                days_alive=days_alive,
                expected=expected,
                rate=min(100, _percent(unique_days, expected)),
            )
        )
    return sorted(rates, key=lambda r: r.rate, reverse=True)


def top_habits(
    habits: Iterable[Habit],
    sets: CompletionSets,
    now: Anchor,
    n: int = DEFAULT_TOP_N,
    tz: tzinfo | None = None,
) -> list[HabitRate]:
    return lifetime_rates(habits, sets, now, tz)[: max(0, n)]


# ── Calendar heatmap ──────────────────────────────────────────


def day_status(habits: Iterable[Habit], sets: CompletionSets, day_key: str) -> CalendarDay:
    """Heatmap cell for one day: none, partial or full completion."""
    habits = list(habits)
    completed = sum(1 for h in habits if day_key in sets.get(h.id, ()))
    if completed == 0:
        status = "none"
    elif completed == len(habits):
        status = "full"
    else:
        status = "partial"
    return CalendarDay(date=day_key, status=status, completed=completed, total=len(habits))


def calendar_month(
    habits: Iterable[Habit], sets: CompletionSets, year: int, month: int
) -> list[list[CalendarDay | None]]:
    """Month grid in Sunday-first weeks, padded with None outside the month."""
    habits = list(habits)
    keys = month_date_keys(year, month)
    first = date(year, month, 1)
    cells: list[CalendarDay | None] = [None] * ((first.weekday() + 1) % 7)
    cells.extend(day_status(habits, sets, key) for key in keys)
    while len(cells) % 7:
        cells.append(None)
    return [cells[i : i + 7] for i in range(0, len(cells), 7)]


# ── Dashboard ─────────────────────────────────────────────────


def motivational_message(percentage: int, habit_count: int) -> str:
    """One-line encouragement keyed off today's completion percentage."""
    if percentage == 100 and habit_count > 0:
        return "\U0001f389 Amazing! All habits completed today!"
    if percentage >= 75:
        return "\U0001f680 Great progress! Keep it up!"
    if percentage >= 50:
        return "\U0001f4aa You're doing well! Stay consistent!"
    if percentage >= 25:
        return "\U0001f31f Good start! Every step counts!"
    return "\U0001f331 Every journey begins with a single step!"


def compute_dashboard(
    habits: Iterable[Habit],
    raw_completions: Any,
    now: Anchor,
    tz: tzinfo | None = None,
    window_days: int = DEFAULT_WINDOW_DAYS,
    top_n: int = DEFAULT_TOP_N,
) -> Dashboard:
    """Build completion sets once and compute every dashboard statistic."""
    habits = list(habits)
    sets = build_completion_sets(habits, raw_completions, tz)
    anchor = local_date(now, tz)

    today = today_ratio(habits, sets, anchor)
    return Dashboard(
        date=anchor.isoformat(),
        total_habits=len(habits),
        active_habits=sum(1 for h in habits if sets.get(h.id)),
        today=today,
        streaks=streak_summary(habits, sets, anchor),
        rolling=rolling_average(habits, sets, anchor, window_days, tz),
        monthly=monthly_average(habits, sets, anchor),
        top_habits=top_habits(habits, sets, anchor, top_n, tz),
        message=motivational_message(today.percentage, len(habits)),
    )
