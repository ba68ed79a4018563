"""Tests for habitflow/streaks.py: streaks count back from yesterday."""

from datetime import date, datetime, timedelta, timezone

from habitflow.completions import build_completion_sets
from habitflow.models import Habit
from habitflow.streaks import current_streak, streak_summary


def test_empty_set_has_no_streak():
    assert current_streak(set(), "2024-03-15") == 0


def test_yesterday_and_day_before():
    done = {"2024-03-14", "2024-03-13"}
    assert current_streak(done, "2024-03-15") == 2


def test_today_does_not_add_to_streak():
    done = {"2024-03-15", "2024-03-14", "2024-03-13"}
    assert current_streak(done, "2024-03-15") == 2


def test_only_today_completed_is_zero():
    assert current_streak({"2024-03-15"}, "2024-03-15") == 0


def test_gap_ends_streak():
    # created D=2024-03-10, done D, D+1, D+3; evaluated on D+4
    done = {"2024-03-10", "2024-03-11", "2024-03-13"}
    assert current_streak(done, "2024-03-14") == 1


def test_missing_yesterday_is_zero():
    assert current_streak({"2024-03-13", "2024-03-12"}, "2024-03-15") == 0


def test_streak_crosses_month_boundary():
    done = {"2024-02-28", "2024-02-29", "2024-03-01"}
    assert current_streak(done, date(2024, 3, 2)) == 3


def test_anchor_uses_local_day():
    plus_9 = timezone(timedelta(hours=9))
    now = datetime(2024, 3, 14, 20, 0, tzinfo=timezone.utc)  # 2024-03-15 05:00 local
    assert current_streak({"2024-03-14"}, now, plus_9) == 1
    assert current_streak({"2024-03-14"}, now, timezone.utc) == 0


def test_streak_summary(habits):
    sets = build_completion_sets(
        habits, {"h1": ["2024-03-12", "2024-03-13", "2024-03-14"], "h2": ["2024-03-14"]}
    )
    summary = streak_summary(habits, sets, "2024-03-15")
    assert summary.per_habit == {"h1": 3, "h2": 1}
    assert summary.total == 4
    assert summary.longest == 3


def test_streak_summary_without_habits():
    summary = streak_summary([], {}, "2024-03-15")
    assert summary.total == 0
    assert summary.longest == 0


def test_streak_summary_habit_without_record():
    summary = streak_summary([Habit(id="x", name="X")], {}, "2024-03-15")
    assert summary.per_habit == {"x": 0}
