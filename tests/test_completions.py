"""Tests for habitflow/completions.py: shape detection, extraction, builder."""

from datetime import timedelta, timezone

from habitflow.completions import (
    build_completion_sets,
    completion_map,
    extract_date_value,
    extract_habit_id,
    prune_orphans,
    toggle_date,
)

UTC = timezone.utc


def test_empty_input_gives_empty_set_per_habit(habits):
    sets = build_completion_sets(habits, {})
    assert sets == {"h1": set(), "h2": set()}


def test_none_and_unsupported_input(habits):
    assert build_completion_sets(habits, None) == {"h1": set(), "h2": set()}
    assert build_completion_sets(habits, "junk") == {"h1": set(), "h2": set()}


def test_map_shape_with_mixed_entries(habits):
    raw = {
        "h1": [
            "2024-03-14",
            {"date": "2024-03-13"},
            {"completedAt": "2024-03-12T10:00:00Z"},
            {"timestamp": 1710504000000},
            "2024-03-14",
        ],
        "h2": [{"created_at": "2024-03-11T09:00:00+00:00"}],
    }
    sets = build_completion_sets(habits, raw, UTC)
    assert sets["h1"] == {"2024-03-12", "2024-03-13", "2024-03-14", "2024-03-15"}
    assert sets["h2"] == {"2024-03-11"}


def test_flat_shape(habits):
    raw = [
        {"habitId": "h1", "date": "2024-03-14"},
        {"habit_id": "h2", "completedAt": "2024-03-13T08:00:00Z"},
        {"habit": {"id": "h1"}, "date": "2024-03-10"},
        {"habit": "h2", "ts": 1710417600},
    ]
    sets = build_completion_sets(habits, raw, UTC)
    assert sets["h1"] == {"2024-03-10", "2024-03-14"}
    assert sets["h2"] == {"2024-03-13", "2024-03-14"}


def test_orphans_and_malformed_entries_are_dropped(habits):
    raw = {
        "h1": ["2024-03-14", "garbage", None, {"note": "no date"}, 42.5e20],
        "ghost": ["2024-03-14"],
        "h2": "not a list",
    }
    sets = build_completion_sets(habits, raw, UTC)
    assert sets == {"h1": {"2024-03-14"}, "h2": set()}


def test_out_of_range_epoch_numbers_are_dropped(habits):
    raw = {"h1": [10**400, -1e20, 1e20, "2024-03-01"], "h2": [{"date": 10**400}]}
    sets = build_completion_sets(habits, raw, UTC)
    assert sets == {"h1": {"2024-03-01"}, "h2": set()}


def test_flat_entries_without_habit_reference_are_dropped(habits):
    raw = [{"date": "2024-03-14"}, "2024-03-14", {"habitId": ["h1"], "date": "2024-03-14"}]
    assert build_completion_sets(habits, raw) == {"h1": set(), "h2": set()}


def test_numeric_habit_ids_match_string_ids():
    sets = build_completion_sets([{"id": 7}], [{"habitId": 7, "date": "2024-03-14"}])
    assert sets == {"7": {"2024-03-14"}}


def test_timezone_moves_late_completion_to_next_day(habits):
    plus_3 = timezone(timedelta(hours=3))
    sets = build_completion_sets(habits, {"h1": ["2024-03-14T22:30:00Z"]}, plus_3)
    assert sets["h1"] == {"2024-03-15"}


def test_extract_date_value_priority():
    entry = {"createdAt": "2024-01-01", "date": "2024-02-02", "completedAt": "2024-03-03"}
    assert extract_date_value(entry) == "2024-02-02"
    assert extract_date_value({"ts": 5}) == 5
    assert extract_date_value("2024-01-01") == "2024-01-01"


def test_extract_habit_id():
    assert extract_habit_id({"habitId": "a", "habit_id": "b"}) == "a"
    assert extract_habit_id({"habit": {"id": 3}}) == "3"
    assert extract_habit_id({"habit": "x"}) == "x"
    assert extract_habit_id({"date": "2024-01-01"}) is None
    assert extract_habit_id("h1") is None


def test_completion_map_sorts_and_dedupes():
    assert completion_map({"h1": {"2024-03-02", "2024-03-01"}}) == {"h1": ["2024-03-01", "2024-03-02"]}


def test_toggle_date_adds_then_removes_without_mutating():
    original = {"h1": ["2024-03-01"]}
    added, completed = toggle_date(original, "h1", "2024-03-02")
    assert completed is True
    assert added["h1"] == ["2024-03-01", "2024-03-02"]
    assert original == {"h1": ["2024-03-01"]}

    removed, completed = toggle_date(added, "h1", "2024-03-01")
    assert completed is False
    assert removed["h1"] == ["2024-03-02"]


def test_toggle_date_creates_missing_record():
    result, completed = toggle_date({}, "h9", "2024-03-02")
    assert completed is True
    assert result == {"h9": ["2024-03-02"]}


def test_prune_orphans():
    pruned = prune_orphans({"h1": ["2024-03-01"], "gone": ["2024-03-01"], "h2": None}, ["h1", "h2"])
    assert pruned == {"h1": ["2024-03-01"], "h2": []}
