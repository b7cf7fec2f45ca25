"""Logging setup: Rich console output plus a daily rotating log file.

Modules log through ``logging.getLogger(__name__)``; this module only
attaches handlers to the package logger, once, at application start.

Usage::

    from doctype_classifier.log import configure_logging
    configure_logging("INFO", "Logs")
"""

from __future__ import annotations

import logging
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

PACKAGE_LOGGER = "doctype_classifier"
FILE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_FILE_NAME = "log_.log"


def configure_logging(
    level: str | int = "INFO",
    log_directory: Optional[str | Path] = None,
) -> logging.Logger:
    """Configure the package logger.

    Calling it again replaces the handlers installed by the previous call.

    Args:
        level: Level name (``"DEBUG"``, ``"INFO"``, ...) or number.
        log_directory: Directory for the rotating log file; console only
            if ``None``.

    Returns:
        The package logger.
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console = RichHandler(
        console=Console(stderr=True),
        level=level,
        rich_tracebacks=True,
        show_time=True,
        show_path=False,
        markup=False,
    )
    console.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    logger.addHandler(console)

    if log_directory is not None:
        directory = Path(log_directory)
        directory.mkdir(parents=True, exist_ok=True)
        file_handler = TimedRotatingFileHandler(
            directory / LOG_FILE_NAME,
            when="midnight",
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
        logger.addHandler(file_handler)

    return logger
