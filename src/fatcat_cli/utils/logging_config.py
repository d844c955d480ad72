# src/fatcat_cli/utils/logging_config.py
"""
Centralized logging configuration for fatcat-cli.

Usage:
    from fatcat_cli.utils.logging_config import configure_logging

    # once, at CLI startup; verbosity is the number of -v flags
    configure_logging(verbosity=2)

Modules log through the standard library:

    logger = logging.getLogger(__name__)

Configuration via environment variables:
    FATCAT_CLI_LOG_LEVEL: DEBUG, INFO, WARNING, ERROR, CRITICAL (overrides -v)
    FATCAT_CLI_LOG_FILE: also write log records to this file (rotated)
    FATCAT_CLI_LOG_MAX_BYTES: Max size per log file in bytes (default: 10MB)
    FATCAT_CLI_LOG_BACKUP_COUNT: Number of backup files to keep (default: 5)
"""

from __future__ import annotations

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

# Default configuration
DEFAULT_LOG_LEVEL = "ERROR"
DEFAULT_MAX_BYTES = 10 * 1024 * 1024  # 10 MB
DEFAULT_BACKUP_COUNT = 5
DEFAULT_FORMAT = "[%(levelname)s] %(name)s:%(lineno)d - %(message)s"
FILE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s:%(lineno)d - %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# -v count -> level
VERBOSITY_LEVELS = {
    0: "ERROR",
    1: "WARNING",
    2: "INFO",
}

# HTTP client libraries are chatty; keep them quiet even at -vvv
QUIET_LOGGERS = ("urllib3", "requests")

_HANDLER_MARK = "_fatcat_cli_handler"


def _get_config() -> dict:
    """Get logging configuration from environment variables."""
    return {
        "level": os.environ.get("FATCAT_CLI_LOG_LEVEL", "").strip().upper() or None,
        "file": os.environ.get("FATCAT_CLI_LOG_FILE", "").strip() or None,
        "max_bytes": int(os.environ.get("FATCAT_CLI_LOG_MAX_BYTES", DEFAULT_MAX_BYTES)),
        "backup_count": int(os.environ.get("FATCAT_CLI_LOG_BACKUP_COUNT", DEFAULT_BACKUP_COUNT)),
    }


def level_for_verbosity(verbosity: int) -> str:
    if verbosity < 0:
        return "CRITICAL"
    return VERBOSITY_LEVELS.get(verbosity, "DEBUG")


def _mark(handler: logging.Handler) -> logging.Handler:
    setattr(handler, _HANDLER_MARK, True)
    return handler


def configure_logging(verbosity: int = 0, log_file: Optional[str] = None) -> str:
    """
    Configure the root logger for a CLI run and return the effective level.

    Args:
        verbosity: Number of -v flags (0 errors only, 1 warnings, 2 info, 3+ debug)
        log_file: Optional path of a rotating log file (overrides FATCAT_CLI_LOG_FILE)
    """
    config = _get_config()
    level = config["level"] or level_for_verbosity(verbosity)

    root = logging.getLogger()
    # re-configuring (tests, repeated run_cli calls) replaces our own handlers only
    for handler in list(root.handlers):
        if getattr(handler, _HANDLER_MARK, False):
            root.removeHandler(handler)
            handler.close()

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(logging.Formatter(DEFAULT_FORMAT))
    root.addHandler(_mark(stream_handler))

    file_path = log_file or config["file"]
    if file_path:
        path = Path(file_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            filename=str(path),
            maxBytes=config["max_bytes"],
            backupCount=config["backup_count"],
            encoding="utf-8",
        )
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, DEFAULT_DATE_FORMAT))
        root.addHandler(_mark(file_handler))

    root.setLevel(level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.ERROR)
    return level
