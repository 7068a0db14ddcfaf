from __future__ import annotations

import logging
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

from .settings import Settings

LOG_FILENAME = "clean_notes.log"
# Scheduled runs happen on the scheduler thread, manual ones on the caller's.
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(threadName)s | %(name)s | %(message)s"
SERVER_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")


def log_file_for(settings: Settings) -> Path:
    """`CLEAN_LOG_DIR/clean_notes.log`; a relative dir is taken from the CWD, like `.env`."""
    log_dir = Path(settings.CLEAN_LOG_DIR)
    if not log_dir.is_absolute():
        log_dir = Path.cwd() / log_dir
    return log_dir / LOG_FILENAME


def _level(settings: Settings) -> int:
    level = logging.getLevelName(str(settings.CLEAN_LOG_LEVEL or "").strip().upper())
    return level if isinstance(level, int) else logging.INFO


def setup_logging(settings: Settings, *, console: bool = True, server: bool = False) -> Path:
    """Route every record to a nightly-rotated file (and optionally stderr).

    Root handlers are replaced, not added to. With `server=True` uvicorn's
    loggers feed the same handlers and per-request access lines are muted.
    Returns the log file path.
    """

    log_file = log_file_for(settings)
    log_file.parent.mkdir(parents=True, exist_ok=True)
    level = _level(settings)
    formatter = logging.Formatter(LOG_FORMAT)

    handlers: list[logging.Handler] = [
        TimedRotatingFileHandler(
            log_file,
            when="midnight",
            backupCount=max(0, int(settings.CLEAN_LOG_BACKUP_COUNT)),
            encoding="utf-8",
        )
    ]
    if console:
        handlers.append(logging.StreamHandler())
    for handler in handlers:
        handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers = handlers
    root.setLevel(level)

    if server:
        for name in SERVER_LOGGERS:
            lg = logging.getLogger(name)
            lg.handlers = []
            lg.propagate = True
        logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    logging.getLogger("clean_notes").info(
        "Logging to %s (level=%s, server=%s)", log_file, logging.getLevelName(level), server
    )
    return log_file
