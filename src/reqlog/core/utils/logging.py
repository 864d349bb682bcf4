"""
Logging setup for the reqlog CLI.

Library modules only do ``from loguru import logger``. The CLI calls
setup_logging() once at startup to pick the level and sinks; skipped files,
stale document headers and backups are reported through it.
"""

import sys
from pathlib import Path

from loguru import logger

CONSOLE_FORMAT = "<level>{level: <8}</level> {message}"
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level} | {name}:{line} | {message}"


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    fmt: str = CONSOLE_FORMAT,
    rotation: str = "10 MB",
    retention: str = "7 days",
) -> list[int]:
    """
    Replace loguru's sinks with a stderr sink and an optional rotating file.

    Args:
        level: Minimum log level name, any case (debug, INFO, ...).
        log_file: Path to a log file; its directory is created. None logs
            to stderr only.
        fmt: Loguru format string for the stderr sink.
        rotation: Log file rotation size.
        retention: How long to keep rotated logs.

    Returns:
        Handler ids of the sinks added.
    """
    level = level.upper()
    logger.remove()
    handler_ids = [logger.add(sys.stderr, level=level, format=fmt, backtrace=False, diagnose=False)]

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handler_ids.append(
            logger.add(
                log_file,
                level=level,
                format=FILE_FORMAT,
                rotation=rotation,
                retention=retention,
                encoding="utf-8",
            )
        )
    return handler_ids
