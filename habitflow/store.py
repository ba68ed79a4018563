"""File-backed habit and completion store for HabitFlow.

Two JSON documents live under ``<root>/data``:

- ``habits.json``       ``{"habits": [Habit, ...]}``
- ``completions.json``  ``{"completions": {habitId: [DateKey, ...]}}``

Each file is written atomically, but a replace touching both files is
not atomic across the pair. Readers therefore treat a missing completion
record as empty and ignore records whose habit no longer exists.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Mapping
from datetime import tzinfo
from pathlib import Path
from typing import Any

from habitflow.completions import build_completion_sets, completion_map
from habitflow.datekey import to_date_key
from habitflow.fileio import read_json, write_json_atomic
from habitflow.habits import validate_habit
from habitflow.models import Habit, Snapshot
from habitflow.workspace import completions_path, get_user_timezone, habits_path, workspace_root

logger = logging.getLogger(__name__)


class StoreUnavailable(Exception):
    """The habit or completion documents could not be read or written."""


class InvalidHabits(ValueError):
    """A replace-all payload holds habits that fail validation."""

    def __init__(self, errors: list[str]) -> None:
        super().__init__("; ".join(errors))
        self.errors = errors


class HabitStore:
    """Load-all / replace-all access to the habit and completion documents."""

    def __init__(self, root: Path | None = None, tz: tzinfo | None = None) -> None:
        self.root = root or workspace_root()
        self.tz = tz if tz is not None else get_user_timezone(self.root)
        self.habits_file = habits_path(self.root)
        self.completions_file = completions_path(self.root)

    # ── Raw document access ──────────────────────────────────

    def _read(self, path: Path) -> dict[str, Any]:
        try:
            return read_json(path)
        except (OSError, json.JSONDecodeError) as e:
            logger.error("Failed to read %s: %s", path, e)
            raise StoreUnavailable(f"Cannot read {path.name}: {e}") from e

    def _write(self, path: Path, data: dict[str, Any]) -> None:
        try:
            write_json_atomic(path, data)
        except OSError as e:
            logger.error("Failed to write %s: %s", path, e)
            raise StoreUnavailable(f"Cannot write {path.name}: {e}") from e

    # ── Loading ──────────────────────────────────────────────

    def load_habits(self) -> list[Habit]:
        """All stored habits in stored order; records without an id are skipped."""
        raw = self._read(self.habits_file).get("habits", [])
        if not isinstance(raw, list):
            logger.warning("habits.json holds %s instead of a list", type(raw).__name__)
            return []
        habits = [Habit.from_dict(h) for h in raw if isinstance(h, dict)]
        return [h for h in habits if h.id]

    def load_completions(self) -> Any:
        """Completion data exactly as stored (may be a legacy shape)."""
        return self._read(self.completions_file).get("completions", {})

    def load_snapshot(self) -> Snapshot:
        """Habits plus canonical completion lists, one per habit."""
        habits = self.load_habits()
        sets = build_completion_sets(habits, self.load_completions(), self.tz)
        return Snapshot(habits=habits, completions=completion_map(sets))

    def load_snapshot_or_empty(self) -> tuple[Snapshot, str | None]:
        """Like load_snapshot, but degrade to an empty snapshot on store failure."""
        try:
            return self.load_snapshot(), None
        except StoreUnavailable as e:
            logger.warning("Store unavailable, serving empty snapshot: %s", e)
            return Snapshot(), str(e)

    # ── Replacing ────────────────────────────────────────────

    def _normalize_dates(self, dates: Any) -> list[str]:
        if not isinstance(dates, (list, tuple, set)):
            return []
        return sorted({k for k in (to_date_key(d, self.tz) for d in dates) if k})

    def _write_habits(self, habits: list[Habit]) -> None:
        self._write(self.habits_file, {"habits": [h.to_dict() for h in habits]})

    def _write_completions(self, completions: Mapping[str, Any], habit_ids: Iterable[str]) -> dict[str, list[str]]:
        known = list(habit_ids)
        cleaned = {
            str(k): self._normalize_dates(v) for k, v in completions.items() if str(k) in known
        }
        self._write(self.completions_file, {"completions": cleaned})
        return cleaned

    def replace_habits(self, items: Iterable[Habit | Mapping[str, Any]]) -> list[Habit]:
        """Replace the habit collection.

        Incoming records are merged over the stored habit with the same id
        (upsert); stored habits absent from ``items`` are deleted together
        with their completion records, and new habits get an empty record.
        Raises InvalidHabits, before anything is written, when a merged
        record fails validation.
        """
        existing = {h.id: h.to_dict() for h in self.load_habits()}
        merged: dict[str, dict[str, Any]] = {}
        for item in items:
            data = item.to_dict() if isinstance(item, Habit) else dict(item)
            habit_id = data.get("id")
            if habit_id is None or not str(habit_id).strip():
                logger.warning("Skipping habit without id: %r", data.get("name"))
                continue
            habit_id = str(habit_id)
            base = merged.get(habit_id) or existing.get(habit_id, {})
            merged[habit_id] = {**base, **data, "id": habit_id}

        errors = [f"habits[{hid}]: {e}" for hid, d in merged.items() for e in validate_habit(d)]
        if errors:
            raise InvalidHabits(errors)

        habits = [Habit.from_dict(d) for d in merged.values()]
        removed = set(existing) - set(merged)
        added = set(merged) - set(existing)

        completions = completion_map(build_completion_sets(habits, self.load_completions(), self.tz))
        self._write_habits(habits)
        self._write_completions(completions, merged)
        logger.info(
            "Replaced habits: %d total, %d added, %d removed", len(habits), len(added), len(removed)
        )
        return habits

    def replace_completions(self, mapping: Mapping[str, Any]) -> dict[str, list[str]]:
        """Replace every completion record.

        Dates are normalized to date keys; records for unknown habits are
        dropped, and habits missing from ``mapping`` lose their record.
        """
        habit_ids = [h.id for h in self.load_habits()]
        cleaned = self._write_completions(mapping, habit_ids)
        logger.info("Replaced completions for %d habits", len(cleaned))
        return cleaned

    def save_snapshot(self, snapshot: Snapshot) -> Snapshot:
        """Write a full snapshot: habits first, then their completion records."""
        ids = snapshot.habit_ids()
        completions = {hid: snapshot.completions.get(hid, []) for hid in ids}
        self._write_habits(snapshot.habits)
        cleaned = self._write_completions(completions, ids)
        return Snapshot(habits=list(snapshot.habits), completions=cleaned)
