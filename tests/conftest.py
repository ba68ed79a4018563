"""Shared test fixtures for HabitFlow tests."""

from __future__ import annotations

import json
import os
from datetime import datetime, timezone
from pathlib import Path

import pytest
import yaml

from habitflow.models import Habit

# Fixed "now" used across tests: Friday 2024-03-15, noon UTC.
NOW = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def habits() -> list[Habit]:
    return [
        Habit(id="h1", name="Drink water", created_at="2024-03-01T08:00:00+00:00", icon="\U0001f4a7"),
        Habit(id="h2", name="Read", created_at="2024-03-10T08:00:00+00:00", icon="\U0001f4da"),
    ]


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """Create a temporary workspace with settings and seeded habit data."""
    root = tmp_path / "workspace"
    (root / "data").mkdir(parents=True)

    settings = {"timezone": "UTC", "rolling_window_days": 14, "top_habits": 3}
    (root / "settings.yaml").write_text(
        yaml.dump(settings, default_flow_style=False), encoding="utf-8"
    )

    habits = {
        "habits": [
            {
                "id": "h1",
                "name": "Drink water",
                "description": "8 glasses",
                "createdAt": "2024-03-01T08:00:00.000Z",
                "color": "bg-sky-500",
                "icon": "\U0001f4a7",
                "frequencyPerDay": 1,
            },
            {
                "id": "h2",
                "name": "Read",
                "description": "",
                "createdAt": "2024-03-10T08:00:00.000Z",
                "color": "bg-emerald-500",
                "icon": "\U0001f4da",
                "frequencyPerDay": 1,
            },
        ]
    }
    (root / "data" / "habits.json").write_text(json.dumps(habits, indent=2), encoding="utf-8")

    completions = {
        "completions": {
            "h1": ["2024-03-12", "2024-03-13", "2024-03-14"],
            "h2": ["2024-03-14"],
        }
    }
    (root / "data" / "completions.json").write_text(
        json.dumps(completions, indent=2), encoding="utf-8"
    )

    os.environ["HABITFLOW_ROOT"] = str(root)
    yield root
    if "HABITFLOW_ROOT" in os.environ:
        del os.environ["HABITFLOW_ROOT"]
