#!/usr/bin/env python3
"""Logging configuration using loguru for kai."""

import contextlib
from datetime import datetime
from pathlib import Path
from typing import Literal

from loguru import logger
from rich.logging import RichHandler

# Track file handler ID so we can avoid duplicates
_file_handler_id: int | None = None

# Default log format for files
LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def setup_logging(level: LogLevel = "INFO") -> None:
    """Configure the console sink.

    File logging is added separately with ``add_file_handler`` once the output
    directory of a run is known.

    Args:
        level: Minimum log level to display.
    """
    # Remove default handler
    logger.remove()

    # At INFO, only kai's own messages are shown; other libraries need WARNING+
    console_filter = {"kai": "INFO", "": "WARNING"} if level == "INFO" else None

    logger.add(
        RichHandler(markup=True, show_time=False, show_level=True, show_path=False),
        format="{message}",
        level=level,
        filter=console_filter,
    )


def get_logger(name: str | None = None):
    """Get a logger instance.

    Args:
        name: Optional name for the logger context.

    Returns:
        Configured logger instance.
    """
    if name:
        return logger.bind(name=name)
    return logger


def get_log_path(output_dir: Path | str) -> Path:
    """Generate timestamped log file path.

    Args:
        output_dir: Directory where log file will be created.

    Returns:
        Path to the log file with format: kai_YYYYMMDD_HHMMSS.log
    """
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return Path(output_dir) / f"kai_{timestamp}.log"


def add_file_handler(log_path: Path | str, level: LogLevel = "DEBUG") -> int:
    """Add a file handler to the logger.

    Only one file handler is active at a time, so repeated invocations in the
    same interpreter (tests, notebooks) do not duplicate log lines.

    Args:
        log_path: Path to the log file.
        level: Minimum log level for file logging.

    Returns:
        Handler ID that can be used to remove the handler later.
    """
    global _file_handler_id

    if _file_handler_id is not None:
        with contextlib.suppress(ValueError):
            logger.remove(_file_handler_id)

    log_path = Path(log_path)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    _file_handler_id = logger.add(
        str(log_path),
        format=LOG_FORMAT,
        level=level,
        rotation="10 MB",
        retention="7 days",
        compression="gz",
    )

    return _file_handler_id
