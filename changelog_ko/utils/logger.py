"""Logging utilities."""

import sys
from pathlib import Path
from typing import Optional

from loguru import logger as loguru_logger

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{extra[component]}</cyan> - <level>{message}</level>"
)


def setup_logger(
    name: str = "changelog_ko",
    level: str = "INFO",
    log_file: Optional[str] = None
):
    """
    Configure loguru sinks for the process.

    Args:
        name: Component name bound to the returned logger
        level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional log file path

    Returns:
        Logger bound to ``name``
    """
    loguru_logger.remove()
    loguru_logger.configure(extra={"component": "changelog_ko"})

    loguru_logger.add(sys.stderr, level=level.upper(), format=CONSOLE_FORMAT)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        loguru_logger.add(
            log_file,
            level=level.upper(),
            rotation="10 MB",
            retention="1 week"
        )

    return get_logger(name)


def get_logger(name: str = "changelog_ko"):
    """Get a logger bound to a component name without touching sinks."""
    return loguru_logger.bind(component=name)
