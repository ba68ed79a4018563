"""Workspace root, timezone, settings and path helpers for HabitFlow."""

from __future__ import annotations

import logging
import os
from datetime import datetime, tzinfo
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml

from habitflow.fileio import read_yaml, write_yaml_atomic
from habitflow.models import Settings

logger = logging.getLogger(__name__)


def workspace_root() -> Path:
    """Get the workspace root directory (contains settings.yaml and data/)."""
    return Path(
        os.environ.get("HABITFLOW_ROOT", str(Path.home() / "habitflow"))
    ).expanduser().resolve()


# ── Path helpers ──────────────────────────────────────────────

def settings_path(root: Path | None = None) -> Path:
    if root is None:
        root = workspace_root()
    return root / "settings.yaml"


def habits_path(root: Path | None = None) -> Path:
    if root is None:
        root = workspace_root()
    return root / "data" / "habits.json"


def completions_path(root: Path | None = None) -> Path:
    if root is None:
        root = workspace_root()
    return root / "data" / "completions.json"


def logs_dir(root: Path | None = None) -> Path:
    if root is None:
        root = workspace_root()
    return root / "logs"


# ── Settings & time ───────────────────────────────────────────

def load_settings(root: Path | None = None) -> Settings:
    """Load settings.yaml; a missing or unreadable file yields defaults."""
    try:
        data = read_yaml(settings_path(root))
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Ignoring unreadable settings file: %s", e)
        data = {}
    return Settings.from_dict(data)


def save_settings(settings: Settings, root: Path | None = None) -> None:
    write_yaml_atomic(settings_path(root), settings.to_dict())


def get_user_timezone(root: Path | None = None) -> tzinfo | None:
    """Get the workspace timezone.

    Returns None when no (valid) timezone is configured, which the date
    helpers interpret as the system-local zone.
    """
    name = load_settings(root).timezone
    if not name:
        return None
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown timezone %r in settings; using system local time", name)
        return None


def now_local(root: Path | None = None) -> datetime:
    """Get current datetime in the workspace timezone."""
    tz = get_user_timezone(root)
    if tz is None:
        return datetime.now().astimezone()
    return datetime.now(tz)


def today_str(root: Path | None = None) -> str:
    """Get today's date key (YYYY-MM-DD) in the workspace timezone."""
    return now_local(root).date().isoformat()
