"""
Runtime configuration.

All settings come from environment variables and are read at call time,
so tests (and the CLI) can override them without re-importing modules:

    COURSESCHEDULE_DATA_DIR      directory holding the JSON store
    COURSESCHEDULE_LOG_LEVEL     logging level name (default WARNING)
    COURSESCHEDULE_HTTP_TIMEOUT  seconds for remote CSV downloads (default 30)
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

PACKAGE_DIR = Path(__file__).resolve().parent

STORE_FILENAME = "schedule_store.json"

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(message)s"


def data_dir() -> Path:
    """
    Return the directory of the persisted store.

    Defaults to data/processed inside the package, next to the code.
    """
    override = os.environ.get("COURSESCHEDULE_DATA_DIR", "").strip()
    if override:
        return Path(override).expanduser()
    return PACKAGE_DIR / "data" / "processed"


def default_store_path() -> Path:
    return data_dir() / STORE_FILENAME


def http_timeout() -> float:
    raw = os.environ.get("COURSESCHEDULE_HTTP_TIMEOUT", "").strip()
    try:
        return float(raw) if raw else 30.0
    except ValueError:
        return 30.0


def log_level() -> int:
    name = os.environ.get("COURSESCHEDULE_LOG_LEVEL", "WARNING").strip().upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.WARNING


def configure_logging(level: int | None = None) -> None:
    """
    Install a single stream handler on the package logger.

    Called by the CLI only; library code just uses module-level loggers.
    """
    logger = logging.getLogger("courseschedule")
    logger.setLevel(level if level is not None else log_level())
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
