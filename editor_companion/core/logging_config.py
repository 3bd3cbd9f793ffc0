"""Logging setup for the bridge inside a host process.

The host owns the root logger, so handlers are only ever attached to the
``editor_companion`` namespace logger. Records still propagate to whatever
the host configured; the rotating file in the work directory is an extra
copy that survives reloads.
"""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import List, Optional, Union

from .logging_utils import LOGGER_NAMESPACE

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"
LOG_MAX_BYTES = 512 * 1024
LOG_BACKUP_COUNT = 2

# Set on handlers installed here so a reload replaces them instead of stacking.
_OWNED_ATTR = "_editor_companion_owned"


def coerce_level(level: Union[int, str]) -> int:
    if isinstance(level, str):
        value = logging.getLevelName(level.strip().upper())
        if not isinstance(value, int):
            raise ValueError(f"Unknown log level '{level}'")
        return value
    return int(level)


def _owned_handlers(logger: logging.Logger) -> List[logging.Handler]:
    return [h for h in logger.handlers if getattr(h, _OWNED_ATTR, False)]


def configure_logging(
    level: Union[int, str] = logging.INFO,
    *,
    console: bool = False,
    log_file: Optional[Union[str, Path]] = None,
    max_bytes: int = LOG_MAX_BYTES,
    backup_count: int = LOG_BACKUP_COUNT,
) -> logging.Logger:
    """(Re)configure the bridge's namespace logger and return it.

    Safe to call on every host reload: handlers from a previous call are
    closed and replaced, handlers added by anyone else are left alone.
    An unknown level name falls back to INFO.
    """
    try:
        numeric_level = coerce_level(level)
    except ValueError:
        numeric_level = logging.INFO

    bridge_logger = logging.getLogger(LOGGER_NAMESPACE)
    for handler in _owned_handlers(bridge_logger):
        bridge_logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT)
    handlers: List[logging.Handler] = []

    if console:
        handlers.append(logging.StreamHandler(sys.stderr))

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(RotatingFileHandler(
            log_path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        ))

    for handler in handlers:
        handler.setLevel(numeric_level)
        handler.setFormatter(formatter)
        setattr(handler, _OWNED_ATTR, True)
        bridge_logger.addHandler(handler)

    bridge_logger.setLevel(numeric_level)
    return bridge_logger


__all__ = ["configure_logging", "coerce_level", "LOG_FORMAT", "LOG_DATEFMT"]
