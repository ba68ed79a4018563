"""JSON/YAML document reads and locked atomic writes for the HabitFlow workspace."""

from __future__ import annotations

import fcntl
import json
import os
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import yaml


def read_text(path: Path) -> str:
    """Read a text file, returning empty string if missing."""
    if not path.exists():
        return ""
    return path.read_text(encoding="utf-8")


def read_json(path: Path) -> dict[str, Any]:
    """Read a JSON document, returning empty dict if missing or blank.

    A document whose top level is not an object is treated as empty.
    Decode errors propagate so callers can tell "missing" from "corrupt".
    """
    text = read_text(path)
    if not text.strip():
        return {}
    data = json.loads(text)
    return data if isinstance(data, dict) else {}


def read_yaml(path: Path) -> dict[str, Any]:
    """Read a YAML file, returning empty dict if missing or empty."""
    text = read_text(path)
    if not text.strip():
        return {}
    result = yaml.safe_load(text)
    return result if isinstance(result, dict) else {}


LOCK_NAME = ".habitflow.lock"


@contextmanager
def directory_lock(directory: Path) -> Iterator[None]:
    """Hold an exclusive flock on ``directory``'s lock file.

    The API server and the TUI may write the same data directory; writers
    take turns on this lock. Readers never lock, since every replace is a
    single rename.
    """
    directory.mkdir(parents=True, exist_ok=True)
    with open(directory / LOCK_NAME, "a", encoding="utf-8") as lock:
        fcntl.flock(lock.fileno(), fcntl.LOCK_EX)
        try:
            yield
        finally:
            fcntl.flock(lock.fileno(), fcntl.LOCK_UN)


def _atomic_write(path: Path, content: str, suffix: str) -> None:
    """Write ``content`` to a fsynced sibling temp file, then rename it over ``path``."""
    with directory_lock(path.parent):
        fd, temp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{path.stem}_", suffix=suffix)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            os.replace(temp_path, path)
        except BaseException:
            Path(temp_path).unlink(missing_ok=True)
            raise


def write_json_atomic(path: Path, data: dict[str, Any]) -> None:
    """Atomic JSON write, pretty-printed with a trailing newline."""
    _atomic_write(path, json.dumps(data, indent=2, ensure_ascii=False) + "\n", suffix=".json.tmp")


def write_yaml_atomic(path: Path, data: dict[str, Any]) -> None:
    """Atomic YAML write, keeping key order."""
    content = yaml.dump(data, default_flow_style=False, allow_unicode=True, sort_keys=False)
    _atomic_write(path, content, suffix=".yaml.tmp")
