"""Completion-set building and completion-map helpers for HabitFlow.

Raw completion data has arrived in several shapes over the life of the
app, and all of them must keep loading:

- map shape: ``{habitId: [entry, ...]}`` where an entry is a date-like
  scalar or an object holding the date under one of several field names;
- flat shape: ``[{habitId: ..., date: ...}, ...]`` where every entry
  carries its own habit reference.

``build_completion_sets`` detects the shape, extracts dates with the
matching extractor and normalizes every date through ``to_date_key``.
Malformed entries and entries for unknown habits are dropped, never raised.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from datetime import tzinfo
from typing import Any

from habitflow.datekey import to_date_key
from habitflow.models import Habit

logger = logging.getLogger(__name__)

DATE_FIELDS = ("date", "completedAt", "completed_at", "timestamp", "ts", "createdAt", "created_at")
HABIT_ID_FIELDS = ("habitId", "habit_id")

_SEQUENCE_TYPES = (list, tuple, set, frozenset)


# ── Shape detection ───────────────────────────────────────────


def is_map_shape(raw: Any) -> bool:
    return isinstance(raw, Mapping)


def is_flat_shape(raw: Any) -> bool:
    return isinstance(raw, (list, tuple))


# ── Field extraction ──────────────────────────────────────────


def _first_present(entry: Mapping[str, Any], fields: Iterable[str]) -> Any:
    for name in fields:
        value = entry.get(name)
        if value is not None:
            return value
    return None


def extract_date_value(entry: Any) -> Any:
    """Pull the date-like value out of a completion entry.

    Objects are searched in DATE_FIELDS order; when none is set the whole
    entry is returned (and will fail normalization unless it is itself
    date-like).
    """
    if isinstance(entry, Mapping):
        value = _first_present(entry, DATE_FIELDS)
        return entry if value is None else value
    return entry


def extract_habit_id(entry: Any) -> str | None:
    """Habit reference of a flat-shape entry, or None if it has none."""
    if not isinstance(entry, Mapping):
        return None
    value = _first_present(entry, HABIT_ID_FIELDS)
    if value is None:
        habit = entry.get("habit")
        if isinstance(habit, Mapping):
            value = habit.get("id")
        elif habit is not None and not isinstance(habit, _SEQUENCE_TYPES):
            value = habit
    if value is None or isinstance(value, (Mapping, *_SEQUENCE_TYPES)):
        return None
    return str(value)


def _habit_id(habit: Habit | Mapping[str, Any]) -> str:
    if isinstance(habit, Mapping):
        return str(habit.get("id", ""))
    return str(habit.id)


# ── Builder ───────────────────────────────────────────────────


def _pairs_from_map(raw: Mapping[Any, Any]) -> Iterable[tuple[str, Any]]:
    for habit_id, entries in raw.items():
        if not isinstance(entries, _SEQUENCE_TYPES):
            continue
        for entry in entries:
            yield str(habit_id), extract_date_value(entry)


def _pairs_from_flat(raw: Iterable[Any]) -> Iterable[tuple[str | None, Any]]:
    for entry in raw:
        yield extract_habit_id(entry), extract_date_value(entry)


def build_completion_sets(
    habits: Iterable[Habit | Mapping[str, Any]],
    raw: Any,
    tz: tzinfo | None = None,
) -> dict[str, set[str]]:
    """Build one set of date keys per known habit id.

    Every habit gets an entry, empty when it has no usable completions.
    """
    sets: dict[str, set[str]] = {_habit_id(h): set() for h in habits}

    if is_map_shape(raw):
        pairs: Iterable[tuple[str | None, Any]] = _pairs_from_map(raw)
    elif is_flat_shape(raw):
        pairs = _pairs_from_flat(raw)
    else:
        if raw is not None:
            logger.debug("Ignoring completions of unsupported type %s", type(raw).__name__)
        return sets

    dropped = orphaned = 0
    for habit_id, value in pairs:
        if habit_id is None:
            dropped += 1
            continue
        if habit_id not in sets:
            orphaned += 1
            continue
        key = to_date_key(value, tz)
        if key is None:
            dropped += 1
            continue
        sets[habit_id].add(key)

    if dropped or orphaned:
        logger.debug(
            "Completion build dropped %d malformed and %d orphaned entries", dropped, orphaned
        )
    return sets


# ── Completion map helpers ────────────────────────────────────


def completion_map(sets: Mapping[str, Iterable[str]]) -> dict[str, list[str]]:
    """Storage form of completion sets: sorted, de-duplicated date lists."""
    return {habit_id: sorted(set(keys)) for habit_id, keys in sets.items()}


def toggle_date(
    completions: Mapping[str, Any], habit_id: str, day_key: str
) -> tuple[dict[str, list[str]], bool]:
    """Toggle ``day_key`` for one habit.

    Returns a new completion map and whether the day is now completed.
    The input mapping is not modified.
    """
    result: dict[str, list[str]] = {
        k: list(v) if isinstance(v, _SEQUENCE_TYPES) else [] for k, v in completions.items()
    }
    dates = result.get(habit_id, [])
    if day_key in dates:
        result[habit_id] = [d for d in dates if d != day_key]
        return result, False
    result[habit_id] = dates + [day_key]
    return result, True


def prune_orphans(completions: Mapping[str, Any], habit_ids: Iterable[str]) -> dict[str, list[str]]:
    """Keep only the records of known habits; a non-list record becomes empty."""
    known = set(habit_ids)
    return {
        str(k): list(v) if isinstance(v, _SEQUENCE_TYPES) else []
        for k, v in completions.items()
        if str(k) in known
    }
