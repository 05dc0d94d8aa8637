# src/smart_tasks/logging_setup.py

from __future__ import annotations

"""
Logging for the console app.

Three destinations:
- stderr: app messages at the configured level; background sync and
  third-party loggers only at ERROR+ (sync failures already reach the user
  through the engine's error slot and the [SYNC] line);
- <data_dir>/smart_tasks.log: everything at the configured level;
- <data_dir>/sync.log: every record of the sync engine and the remote
  sources at DEBUG, tagged with the operation and task id the engine
  attaches via `extra=`.
"""

import logging
import sys
from pathlib import Path

APP_LOGGER = "smart_tasks"
SYNC_LOGGERS: tuple[str, ...] = ("smart_tasks.tasks.sync_engine", "smart_tasks.remote.")

APP_LOG_FILE = "smart_tasks.log"
SYNC_LOG_FILE = "sync.log"

_DATEFMT = "%Y-%m-%d %H:%M:%S"
_APP_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s"
_SYNC_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)s op=%(op)s task=%(task_id)s %(name)s: %(message)s"


def level_from_name(name: str | int, default: int = logging.INFO) -> int:
    """'debug' / 'WARNING' / 10 -> logging level; unknown names fall back to `default`."""
    if isinstance(name, int):
        return name
    level = logging.getLevelName(str(name).strip().upper())
    return level if isinstance(level, int) else default


def _is_sync_record(record: logging.LogRecord) -> bool:
    return record.name.startswith(SYNC_LOGGERS)


class _ConsoleNoiseFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        if record.name.startswith(APP_LOGGER + ".") and not _is_sync_record(record):
            return True
        return record.levelno >= logging.ERROR


class _SyncContextFilter(logging.Filter):
    """Pass only sync records; fill op/task_id for calls made without `extra=`."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not _is_sync_record(record):
            return False
        if not hasattr(record, "op"):
            record.op = "-"
        if not hasattr(record, "task_id"):
            record.task_id = "-"
        return True


def setup_logging(*, log_dir: str | Path = ".local/smart_tasks", level: str | int = logging.INFO) -> None:
    """
    Install the console, app-file and sync-file handlers on the root logger.

    Call once, before the first log call. Existing root handlers are replaced.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    app_level = level_from_name(level)

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for h in list(root.handlers):
        root.removeHandler(h)

    app_fmt = logging.Formatter(_APP_FORMAT, datefmt=_DATEFMT)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(app_level)
    console.setFormatter(app_fmt)
    console.addFilter(_ConsoleNoiseFilter())
    root.addHandler(console)

    app_file = logging.FileHandler(log_dir / APP_LOG_FILE, encoding="utf-8")
    app_file.setLevel(app_level)
    app_file.setFormatter(app_fmt)
    root.addHandler(app_file)

    sync_file = logging.FileHandler(log_dir / SYNC_LOG_FILE, encoding="utf-8")
    sync_file.setLevel(logging.DEBUG)
    sync_file.setFormatter(logging.Formatter(_SYNC_FORMAT, datefmt=_DATEFMT))
    sync_file.addFilter(_SyncContextFilter())
    root.addHandler(sync_file)

    logging.captureWarnings(True)

    # httpx logs every request at INFO.
    for name in ("httpx", "httpcore", "asyncio"):
        logging.getLogger(name).setLevel(logging.WARNING)
