"""Logging setup for HabitFlow entry points (HTTP server and TUI)."""

from __future__ import annotations

import logging
import logging.handlers
import os
from pathlib import Path

LOGGER_NAME = "habitflow"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(
    level: str | None = None, log_dir: Path | None = None, console: bool = True
) -> logging.Logger:
    """Configure the ``habitflow`` logger.

    Level comes from the argument, then HABITFLOW_LOG_LEVEL, then INFO.
    A console handler is attached unless ``console`` is false (the TUI owns
    the terminal); a rotating file handler is added when ``log_dir`` is
    given. Calling this again replaces the handlers.
    """
    level_name = (level or os.environ.get("HABITFLOW_LOG_LEVEL") or "INFO").upper()
    numeric = getattr(logging, level_name, logging.INFO)
    if not isinstance(numeric, int):
        numeric = logging.INFO

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(numeric)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    if console:
        stream = logging.StreamHandler()
        stream.setLevel(numeric)
        stream.setFormatter(formatter)
        logger.addHandler(stream)

    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_dir / "habitflow.log",
            maxBytes=1024 * 1024,
            backupCount=3,
            encoding="utf-8",
        )
        file_handler.setLevel(numeric)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
