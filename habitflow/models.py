"""Typed dataclasses for the HabitFlow data model.

All models use from_dict/to_dict for JSON/YAML serialization.
camelCase in JSON is mapped to snake_case in Python.
Unknown keys are ignored; missing keys use defaults.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


def _positive_int(value: Any, default: int = 1) -> int:
    if isinstance(value, bool):
        return default
    try:
        n = int(value)
    except (TypeError, ValueError, OverflowError):
        return default
    return n if n >= 1 else default


# ── Settings ──────────────────────────────────────────────────


@dataclass
class Settings:
    timezone: str | None = None
    rolling_window_days: int = 14
    top_habits: int = 3

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Settings:
        if not d or not isinstance(d, dict):
            return cls()
        tz = d.get("timezone")
        return cls(
            timezone=str(tz) if tz else None,
            rolling_window_days=_positive_int(d.get("rolling_window_days"), 14),
            top_habits=_positive_int(d.get("top_habits"), 3),
        )

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "rolling_window_days": self.rolling_window_days,
            "top_habits": self.top_habits,
        }
        if self.timezone:
            d["timezone"] = self.timezone
        return d


# ── Habits ────────────────────────────────────────────────────


@dataclass
class Habit:
    id: str = ""
    name: str = ""
    description: str = ""
    created_at: str | float | None = None  # ISO-8601 string; legacy records may hold epoch numbers
    color: str = ""
    icon: str = ""
    frequency_per_day: int = 1

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Habit:
        if not d or not isinstance(d, dict):
            return cls()
        created = d.get("createdAt", d.get("created_at"))
        if created is not None and not isinstance(created, (str, int, float)):
            created = str(created)
        return cls(
            id=str(d["id"]) if d.get("id") is not None else "",
            name=str(d.get("name", "") or ""),
            description=str(d.get("description", "") or ""),
            created_at=created,
            color=str(d.get("color", "") or ""),
            icon=str(d.get("icon", "") or ""),
            frequency_per_day=_positive_int(d.get("frequencyPerDay", d.get("frequency_per_day")), 1),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "createdAt": self.created_at,
            "color": self.color,
            "icon": self.icon,
            "frequencyPerDay": self.frequency_per_day,
        }


@dataclass
class Snapshot:
    """Habits plus their completion records, as loaded from or sent to a store."""

    habits: list[Habit] = field(default_factory=list)
    completions: dict[str, list[str]] = field(default_factory=dict)

    def habit_ids(self) -> list[str]:
        return [h.id for h in self.habits]

    def to_dict(self) -> dict[str, Any]:
        return {
            "habits": [h.to_dict() for h in self.habits],
            "completions": {k: list(v) for k, v in self.completions.items()},
        }


# ── Statistics ────────────────────────────────────────────────


@dataclass
class RateSummary:
    percentage: int = 0
    completed: int = 0
    possible: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "percentage": self.percentage,
            "completed": self.completed,
            "possible": self.possible,
        }


@dataclass
class DayTally:
    date: str = ""
    completed: int = 0
    possible: int = 0

    def rate(self) -> float:
        """Completion rate for the day, capped at 1.0; 0 when nothing was possible."""
        if self.possible <= 0:
            return 0.0
        return min(1.0, self.completed / self.possible)

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date,
            "completedCount": self.completed,
            "possibleCount": self.possible,
        }


@dataclass
class RollingAverage:
    window_days: int = 14
    percentage: int = 0
    total_completed: int = 0
    total_possible: int = 0
    days: list[DayTally] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "windowDays": self.window_days,
            "percentage": self.percentage,
            "totalCompleted": self.total_completed,
            "totalPossible": self.total_possible,
            "days": [d.to_dict() for d in self.days],
        }


@dataclass
class MonthlyAverage:
    year: int = 0
    month: int = 0
    days_in_month: int = 0
    habit_count: int = 0
    total_completed: int = 0
    average_completed: float = 0.0
    percentage: int = 0
    daily_completed: list[int] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "year": self.year,
            "month": self.month,
            "daysInMonth": self.days_in_month,
            "habitCount": self.habit_count,
            "totalCompleted": self.total_completed,
            "averageCompleted": round(self.average_completed, 3),
            "percentage": self.percentage,
            "dailyCompleted": self.daily_completed,
        }


@dataclass
class HabitRate:
    habit_id: str = ""
    name: str = ""
    icon: str = ""
    completion_count: int = 0
    days_alive: int = 1
    expected: int = 1
    rate: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "habitId": self.habit_id,
            "name": self.name,
            "icon": self.icon,
            "completionCount": self.completion_count,
            "daysAlive": self.days_alive,
            "expected": self.expected,
            "completionRate": self.rate,
        }


@dataclass
class StreakSummary:
    per_habit: dict[str, int] = field(default_factory=dict)
    total: int = 0
    longest: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "perHabit": dict(self.per_habit),
            "total": self.total,
            "longest": self.longest,
        }


@dataclass
class CalendarDay:
    date: str = ""
    status: str = "none"  # none, partial, full
    completed: int = 0
    total: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date,
            "status": self.status,
            "completed": self.completed,
            "total": self.total,
        }


@dataclass
class Dashboard:
    date: str = ""
    total_habits: int = 0
    active_habits: int = 0
    today: RateSummary = field(default_factory=RateSummary)
    streaks: StreakSummary = field(default_factory=StreakSummary)
    rolling: RollingAverage = field(default_factory=RollingAverage)
    monthly: MonthlyAverage = field(default_factory=MonthlyAverage)
    top_habits: list[HabitRate] = field(default_factory=list)
    message: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date,
            "totalHabits": self.total_habits,
            "activeHabits": self.active_habits,
            "today": self.today.to_dict(),
            "streaks": self.streaks.to_dict(),
            "rolling": self.rolling.to_dict(),
            "monthly": self.monthly.to_dict(),
            "topHabits": [h.to_dict() for h in self.top_habits],
            "message": self.message,
        }
