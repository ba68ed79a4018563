"""Tests for habitflow/workspace.py, fileio.py and logconfig.py."""

import json
import logging
import os
import threading
import time
from pathlib import Path

import pytest

from habitflow.fileio import (
    LOCK_NAME,
    directory_lock,
    read_json,
    read_yaml,
    write_json_atomic,
    write_yaml_atomic,
)
from habitflow.logconfig import setup_logging
from habitflow.models import Settings
from habitflow.workspace import (
    get_user_timezone,
    load_settings,
    now_local,
    save_settings,
    settings_path,
    today_str,
    workspace_root,
)


def test_workspace_root_from_env(workspace):
    assert workspace_root() == workspace.resolve()


def test_workspace_root_default(monkeypatch):
    monkeypatch.delenv("HABITFLOW_ROOT", raising=False)
    assert workspace_root() == (Path.home() / "habitflow").resolve()


def test_load_settings(workspace):
    settings = load_settings(workspace)
    assert settings.timezone == "UTC"
    assert settings.rolling_window_days == 14


def test_load_settings_invalid_yaml(tmp_path):
    (tmp_path / "settings.yaml").write_text("timezone: [unclosed", encoding="utf-8")
    assert load_settings(tmp_path) == Settings()


def test_save_settings(tmp_path):
    save_settings(Settings(timezone="Asia/Tokyo", rolling_window_days=7), tmp_path)
    assert read_yaml(settings_path(tmp_path))["rolling_window_days"] == 7
    assert load_settings(tmp_path).timezone == "Asia/Tokyo"


def test_unknown_timezone_falls_back_to_system_local(tmp_path):
    save_settings(Settings(timezone="Mars/Olympus_Mons"), tmp_path)
    assert get_user_timezone(tmp_path) is None
    assert now_local(tmp_path).tzinfo is not None


def test_today_str_format(workspace):
    assert len(today_str(workspace)) == 10


def test_read_json_missing_blank_and_non_object(tmp_path):
    assert read_json(tmp_path / "missing.json") == {}
    (tmp_path / "blank.json").write_text("  \n", encoding="utf-8")
    assert read_json(tmp_path / "blank.json") == {}
    (tmp_path / "list.json").write_text("[1, 2]", encoding="utf-8")
    assert read_json(tmp_path / "list.json") == {}


def test_read_json_corrupt_raises(tmp_path):
    (tmp_path / "bad.json").write_text("{", encoding="utf-8")
    with pytest.raises(json.JSONDecodeError):
        read_json(tmp_path / "bad.json")


def test_atomic_writes_leave_no_temp_files(tmp_path):
    write_json_atomic(tmp_path / "nested" / "a.json", {"x": "\U0001f4a7"})
    write_yaml_atomic(tmp_path / "nested" / "b.yaml", {"y": 1})
    assert read_json(tmp_path / "nested" / "a.json") == {"x": "\U0001f4a7"}
    assert read_yaml(tmp_path / "nested" / "b.yaml") == {"y": 1}
    assert sorted(os.listdir(tmp_path / "nested")) == [LOCK_NAME, "a.json", "b.yaml"]


def test_directory_lock_serializes_writers(tmp_path):
    order = []

    def writer(n):
        with directory_lock(tmp_path):
            order.append(("start", n))
            time.sleep(0.05)
            order.append(("end", n))

    threads = [threading.Thread(target=writer, args=(n,)) for n in range(3)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    # no writer starts while another holds the lock
    assert [kind for kind, _ in order] == ["start", "end"] * 3
    assert all(order[i][1] == order[i + 1][1] for i in range(0, 6, 2))


def test_failed_write_keeps_previous_document(tmp_path):
    path = tmp_path / "a.json"
    write_json_atomic(path, {"v": 1})
    with pytest.raises(TypeError):
        write_json_atomic(path, {"v": object()})
    assert read_json(path) == {"v": 1}
    assert sorted(os.listdir(tmp_path)) == [LOCK_NAME, "a.json"]


def test_setup_logging_file_handler(tmp_path, monkeypatch):
    monkeypatch.setenv("HABITFLOW_LOG_LEVEL", "debug")
    logger = setup_logging(log_dir=tmp_path / "logs", console=False)
    try:
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1
        logging.getLogger("habitflow.test").debug("hello")
        logger.handlers[0].flush()
        assert "hello" in (tmp_path / "logs" / "habitflow.log").read_text(encoding="utf-8")
    finally:
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()
        logger.setLevel(logging.NOTSET)
