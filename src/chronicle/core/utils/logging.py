"""
Logging configuration using loguru.

Call setup_logging() at process start (the CLI does), or configure_from()
with a Config object. Library modules just ``from loguru import logger``.
"""

import os
import sys
from typing import Any

from loguru import logger

CONSOLE_FORMAT = "<level>[{level.name}]</level> <cyan>{name}</cyan> {message}"
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level} | {name}:{line} | {message}"


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    fmt: str = CONSOLE_FORMAT,
    rotation: str = "10 MB",
    retention: str = "7 days",
) -> None:
    """
    Replace loguru's sinks with a stderr sink and, optionally, a rotating file.

    Args:
        level: Minimum log level (DEBUG, INFO, WARNING, ERROR).
        log_file: Path to log file. If None, only logs to stderr.
        fmt: Loguru format string for the console sink.
        rotation: Log file rotation size.
        retention: How long to keep rotated logs.
    """
    logger.remove()
    logger.add(sys.stderr, level=level, format=fmt)
    if log_file:
        os.makedirs(os.path.dirname(os.path.abspath(log_file)), exist_ok=True)
        logger.add(log_file, level=level, format=FILE_FORMAT, rotation=rotation, retention=retention)


def resolve_log_file(config: Any) -> str | None:
    """``logging.file`` with a bare file name placed under ``paths.log_dir``."""
    log_file = config.get("logging.file") or None
    if not log_file:
        return None
    log_file = os.path.expanduser(str(log_file))
    log_dir = config.get("paths.log_dir")
    if log_dir and not os.path.dirname(log_file):
        return os.path.join(os.path.expanduser(str(log_dir)), log_file)
    return log_file


def configure_from(config: Any, verbose: bool = False) -> None:
    """Apply the ``logging`` section of a Config. ``verbose`` forces DEBUG."""
    level = "DEBUG" if verbose else str(config.get("logging.level", "WARNING")).upper()
    setup_logging(level=level, log_file=resolve_log_file(config))
