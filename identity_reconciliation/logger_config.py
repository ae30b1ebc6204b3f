"""
Logging setup shared by the CLI and the HTTP server.

One dictConfig covers the root logger, the ``identity_reconciliation``
package loggers and uvicorn's loggers, so ``serve`` writes request and
reconciliation logs through the same handlers. uvicorn must be started with
``log_config=None`` or it replaces this configuration with its own.

Environment Variables:
    LOG_LEVEL: DEBUG, INFO, WARNING, ERROR or CRITICAL (case-insensitive).
               Defaults to INFO if not set or invalid.
    IDENTITY_LOG_FILE: Optional rotating log file (read by config.Config).

Usage:
    from identity_reconciliation.logger_config import setup_logging
    setup_logging(level=logging.DEBUG, log_file="/var/log/identity.log")
"""

import logging
import logging.config
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

PACKAGE_LOGGER = "identity_reconciliation"
SERVER_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUP_COUNT = 5


def get_log_level(name: Optional[str] = None) -> int:
    """
    Resolve a level name to a logging constant.

    Args:
        name: Level name such as "debug". If None, reads LOG_LEVEL.

    Returns:
        Logging level constant, or logging.INFO if the name is unknown.
    """
    if name is None:
        name = os.getenv("LOG_LEVEL", "INFO")
    level = logging.getLevelName(name.strip().upper())
    # getLevelName returns "Level X" for names it doesn't know
    return level if isinstance(level, int) else logging.INFO


def build_logging_config(
    level: int, log_file: Optional[Union[str, Path]] = None
) -> Dict[str, Any]:
    """Build the dictConfig mapping for the given level and optional log file."""
    handlers: Dict[str, Dict[str, Any]] = {
        "console": {
            "class": "logging.StreamHandler",
            "level": level,
            "formatter": "standard",
            "stream": "ext://sys.stdout",
        },
    }
    if log_file:
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": level,
            "formatter": "standard",
            "filename": str(log_file),
            "maxBytes": LOG_FILE_MAX_BYTES,
            "backupCount": LOG_FILE_BACKUP_COUNT,
            "encoding": "utf-8",
        }

    # Listed loggers lose any handlers of their own and propagate to root
    loggers = {PACKAGE_LOGGER: {"level": level, "propagate": True}}
    for name in SERVER_LOGGERS:
        loggers[name] = {"level": level, "propagate": True}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {"format": LOG_FORMAT, "datefmt": LOG_DATE_FORMAT},
        },
        "handlers": handlers,
        "loggers": loggers,
        "root": {"level": level, "handlers": list(handlers)},
    }


def setup_logging(
    level: Optional[int] = None,
    log_file: Optional[Union[str, Path]] = None,
) -> None:
    """
    Configure logging for the CLI and the API server.

    Safe to call more than once; each call replaces the previous handlers.

    Args:
        level: Logging level. If None, reads LOG_LEVEL (default: INFO).
        log_file: Optional file to also write logs to, rotated at 10 MB.
                  Its parent directory is created if missing.
    """
    if level is None:
        level = get_log_level()

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)

    logging.config.dictConfig(build_logging_config(level, log_file))
