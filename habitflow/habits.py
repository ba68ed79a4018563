"""Habit CRUD, validation and completion toggling for HabitFlow.

These functions edit a ``Snapshot`` in place; callers load a fresh
snapshot from the store, apply one operation and save it back.
"""

from __future__ import annotations

import random
from collections.abc import Iterable
from datetime import datetime, tzinfo
from typing import Any

from habitflow.completions import toggle_date
from habitflow.datekey import to_date_key
from habitflow.models import Habit, Snapshot


# ── Validation ────────────────────────────────────────────────


EDITABLE_FIELDS = {"name", "description", "color", "icon", "frequencyPerDay"}
DEFAULT_COLOR = "bg-sky-500"
ICONS = ["\U0001f4a7", "\U0001f3c3", "\U0001f4da", "\U0001f3b5", "\U0001f34e",
         "\U0001f9d8", "\U0001f4bb", "\U0001f3a8", "\U0001f3cb\ufe0f", "\U0001f6cf\ufe0f"]


def validate_habit(habit: dict[str, Any]) -> list[str]:
    """Validate habit schema and return list of errors (empty if valid)."""
    errors = []
    habit_id = habit.get("id")
    if habit_id is None or not str(habit_id).strip():
        errors.append("Missing required field: id")
    name = habit.get("name")
    if not isinstance(name, str) or not name.strip():
        errors.append("Missing required field: name")
    if "description" in habit and habit["description"] is not None and not isinstance(habit["description"], str):
        errors.append("description must be a string")
    if "frequencyPerDay" in habit:
        freq = habit["frequencyPerDay"]
        if isinstance(freq, bool) or not isinstance(freq, int) or freq < 1:
            errors.append("frequencyPerDay must be a positive integer")
    return errors


# ── CRUD ──────────────────────────────────────────────────────


def find_habit(snapshot: Snapshot, habit_id: str) -> Habit | None:
    """Find a habit by ID."""
    for h in snapshot.habits:
        if h.id == habit_id:
            return h
    return None


def new_habit_id(existing_ids: Iterable[str], now: datetime) -> str:
    """Millisecond-timestamp ID, bumped until it is unused."""
    taken = set(existing_ids)
    candidate = int(now.timestamp() * 1000)
    while str(candidate) in taken:
        candidate += 1
    return str(candidate)


def create_habit(
    snapshot: Snapshot, habit_data: dict[str, Any], now: datetime
) -> tuple[Habit, list[str]]:
    """Create a habit and its empty completion record. Returns (habit, errors)."""
    data = dict(habit_data)
    if data.get("id") is None:
        data["id"] = new_habit_id(snapshot.habit_ids(), now)
    data["id"] = str(data["id"])

    errors = validate_habit(data)
    if errors:
        return Habit(), errors

    if find_habit(snapshot, data["id"]):
        return Habit(), [f"Habit ID already exists: {data['id']}"]

    data["name"] = data["name"].strip()
    data["description"] = (data.get("description") or "").strip()
    data.setdefault("createdAt", now.isoformat())
    if not data.get("color"):
        data["color"] = DEFAULT_COLOR
    if not data.get("icon"):
        data["icon"] = random.choice(ICONS)

    habit = Habit.from_dict(data)
    snapshot.habits.append(habit)
    snapshot.completions.setdefault(habit.id, [])
    return habit, []


def update_habit(
    snapshot: Snapshot, habit_id: str, updates: dict[str, Any]
) -> tuple[Habit | None, list[str]]:
    """Update the editable fields of a habit. Returns (updated_habit, errors).

    ``id`` and ``createdAt`` are immutable; other unknown keys are ignored.
    """
    habit = find_habit(snapshot, habit_id)
    if not habit:
        return None, [f"Habit not found: {habit_id}"]

    habit_dict = habit.to_dict()
    habit_dict.update({k: v for k, v in updates.items() if k in EDITABLE_FIELDS})

    errors = validate_habit(habit_dict)
    if errors:
        return None, errors

    habit_dict["name"] = habit_dict["name"].strip()
    updated = Habit.from_dict(habit_dict)
    for i, h in enumerate(snapshot.habits):
        if h.id == habit_id:
            snapshot.habits[i] = updated
            break
    return updated, []


def delete_habit(snapshot: Snapshot, habit_id: str) -> bool:
    """Remove a habit together with its completion record."""
    for i, h in enumerate(snapshot.habits):
        if h.id == habit_id:
            snapshot.habits.pop(i)
            snapshot.completions.pop(habit_id, None)
            return True
    return False


# ── Completions ───────────────────────────────────────────────


def toggle_completion(
    snapshot: Snapshot, habit_id: str, day: Any, tz: tzinfo | None = None
) -> tuple[bool | None, list[str]]:
    """Mark or unmark a habit for a day. Returns (completed_now, errors)."""
    if not find_habit(snapshot, habit_id):
        return None, [f"Habit not found: {habit_id}"]
    key = to_date_key(day, tz)
    if key is None:
        return None, [f"Invalid date: {day!r}"]
    snapshot.completions, completed = toggle_date(snapshot.completions, habit_id, key)
    return completed, []


def set_completion_dates(
    snapshot: Snapshot, habit_id: str, dates: Iterable[Any], tz: tzinfo | None = None
) -> tuple[list[str] | None, list[str]]:
    """Replace a habit's completion dates. Unreadable dates are dropped."""
    if not find_habit(snapshot, habit_id):
        return None, [f"Habit not found: {habit_id}"]
    keys = sorted({k for k in (to_date_key(d, tz) for d in dates) if k})
    snapshot.completions[habit_id] = keys
    return keys, []
