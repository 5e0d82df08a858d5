"""Logging and small helpers shared across searchable."""

import os
import sys
from pathlib import Path
from typing import Optional

from loguru import logger

LOG_FILE_NAME = "searchable.log"


def setup_logging(
    log_level: str = "INFO",
    log_to_file: bool = False,
    log_to_stdout: bool = False,
    log_dir: Optional[Path] = None,
) -> None:
    """Configure loguru sinks for the host application.

    The library never calls this on import; hosts (and the test suite) opt in.

    Args:
        log_level: Minimum level for every sink
        log_to_file: Write a rotating log file under log_dir
        log_to_stdout: Write to stdout instead of stderr
        log_dir: Directory for the log file, defaults to the config directory
    """
    logger.remove()

    if log_to_file:
        directory = log_dir or Path(
            os.getenv("SEARCHABLE_CONFIG_DIR", Path.home() / ".searchable")
        )
        directory.mkdir(parents=True, exist_ok=True)
        logger.add(
            directory / LOG_FILE_NAME,
            level=log_level,
            rotation="10 MB",
            retention="10 days",
            backtrace=True,
            diagnose=False,
            enqueue=True,
        )

    if log_to_stdout:
        logger.add(sys.stdout, level=log_level, backtrace=True, diagnose=False)
    elif not log_to_file:
        logger.add(sys.stderr, level=log_level, backtrace=True, diagnose=False)

    logger.debug(f"Logging configured at level {log_level}")


def relevance_label(field: str, suffix: str) -> str:
    """Build an output column label for a field's relevance expression.

    "users.name" with suffix "_relevance" becomes "users_name_relevance".
    """
    return f"{field.replace('.', '_')}{suffix}"
