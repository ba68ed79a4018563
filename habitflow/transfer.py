"""Export and import of the whole habit data set.

Export documents look like::

    {"habits": [...], "completions": {habitId: [DateKey, ...]},
     "exportDate": "2024-03-01T12:00:00.000Z", "version": "1.0"}

Imports accept the same document; ``exportDate`` and ``version`` are
informational and not checked.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from datetime import datetime, timezone, tzinfo
from pathlib import Path
from typing import Any

from habitflow.completions import build_completion_sets, completion_map
from habitflow.fileio import read_json, write_json_atomic
from habitflow.habits import validate_habit
from habitflow.models import Habit, Snapshot

logger = logging.getLogger(__name__)

EXPORT_VERSION = "1.0"


def _iso_utc(now: datetime) -> str:
    if now.tzinfo is None:
        now = now.astimezone()
    stamp = now.astimezone(timezone.utc).isoformat(timespec="milliseconds")
    return stamp.replace("+00:00", "Z")


def export_snapshot(snapshot: Snapshot, now: datetime) -> dict[str, Any]:
    """Serialize a snapshot as an export document stamped with ``now``."""
    data = snapshot.to_dict()
    data["exportDate"] = _iso_utc(now)
    data["version"] = EXPORT_VERSION
    return data


def parse_import(payload: Any, tz: tzinfo | None = None) -> tuple[Snapshot | None, list[str]]:
    """Validate an import document. Returns (snapshot, errors).

    Completion records for habits not in the document are dropped and
    habits without a record get an empty one.
    """
    if not isinstance(payload, Mapping):
        return None, ["Invalid data format"]
    raw_habits = payload.get("habits")
    raw_completions = payload.get("completions")
    if not isinstance(raw_habits, list) or not isinstance(raw_completions, Mapping):
        return None, ["Invalid data format"]

    errors: list[str] = []
    seen: set[str] = set()
    for i, item in enumerate(raw_habits):
        if not isinstance(item, Mapping):
            errors.append(f"habits[{i}]: must be an object")
            continue
        errors.extend(f"habits[{i}]: {e}" for e in validate_habit(dict(item)))
        habit_id = item.get("id")
        if habit_id is not None:
            if str(habit_id) in seen:
                errors.append(f"habits[{i}]: duplicate id {habit_id}")
            seen.add(str(habit_id))
    if errors:
        return None, errors

    habits = [Habit.from_dict(dict(item)) for item in raw_habits]
    sets = build_completion_sets(habits, raw_completions, tz)
    dropped = [k for k in raw_completions if str(k) not in sets]
    if dropped:
        logger.info("Import dropped completion records for %d unknown habits", len(dropped))
    return Snapshot(habits=habits, completions=completion_map(sets)), []


# ── Files ─────────────────────────────────────────────────────


def write_export(path: Path, snapshot: Snapshot, now: datetime) -> dict[str, Any]:
    """Write an export document to ``path`` and return it."""
    data = export_snapshot(snapshot, now)
    write_json_atomic(path, data)
    logger.info("Exported %d habits to %s", len(snapshot.habits), path)
    return data


def read_import(path: Path, tz: tzinfo | None = None) -> tuple[Snapshot | None, list[str]]:
    """Read and validate an export document from ``path``."""
    try:
        payload = read_json(path)
    except (OSError, json.JSONDecodeError) as e:
        return None, [f"Cannot read {path}: {e}"]
    if not payload:
        return None, [f"No data in {path}"]
    return parse_import(payload, tz)
