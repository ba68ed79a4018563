"""Streak calculation for HabitFlow."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import date, datetime, timedelta, tzinfo
from typing import AbstractSet

from habitflow.datekey import local_date
from habitflow.models import Habit, StreakSummary


def current_streak(
    completion_set: AbstractSet[str],
    now: datetime | date | str,
    tz: tzinfo | None = None,
) -> int:
    """Count consecutive completed days ending yesterday.

    Rules:
    - The anchor day itself (today) never counts, completed or not
    - Counting starts at anchor - 1 and walks back one day at a time
    - The first missing day ends the streak
    """
    if not completion_set:
        return 0

    current = local_date(now, tz) - timedelta(days=1)
    streak = 0
    while current.isoformat() in completion_set:
        streak += 1
        current -= timedelta(days=1)
    return streak


def streak_summary(
    habits: Iterable[Habit],
    sets: Mapping[str, AbstractSet[str]],
    now: datetime | date | str,
    tz: tzinfo | None = None,
) -> StreakSummary:
    """Current streak for every habit plus their sum and maximum."""
    anchor = local_date(now, tz)
    per_habit = {h.id: current_streak(sets.get(h.id, set()), anchor) for h in habits}
    values = list(per_habit.values())
    return StreakSummary(
        per_habit=per_habit,
        total=sum(values),
        longest=max(values) if values else 0,
    )
