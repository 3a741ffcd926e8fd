"""
Logging configuration using loguru.

The engines log through ``from loguru import logger`` directly. Apps call
setup_logging() once at startup (the CLI does this from config) to pick the
level and an optional rotating log file for migration history.
"""

from __future__ import annotations

import os
import sys
from typing import Any

from loguru import logger

_CONSOLE_FORMAT = "<level>[{level.name}]</level> {message}"
_FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level} | {name}:{function} | {message}"


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    fmt: str = _CONSOLE_FORMAT,
    rotation: str = "10 MB",
    retention: str = "30 days",
) -> None:
    """
    Configure loguru with console and optional file output.

    Args:
        level: Minimum log level (DEBUG, INFO, WARNING, ERROR).
        log_file: Path to log file. If None, only logs to stderr.
        fmt: Loguru format string for the console sink.
        rotation: Log file rotation size.
        retention: How long to keep rotated logs.
    """
    logger.remove()
    logger.add(sys.stderr, level=level.upper(), format=fmt)

    if log_file:
        logger.add(
            log_file,
            level=level.upper(),
            format=_FILE_FORMAT,
            rotation=rotation,
            retention=retention,
        )


def setup_logging_from_config(config: Any) -> None:
    """Apply the ``logging.level`` / ``logging.file`` config keys."""
    log_file = config.get("logging.file") or None
    setup_logging(
        level=str(config.get("logging.level", "WARNING") or "WARNING"),
        log_file=os.path.expanduser(log_file) if log_file else None,
    )
