"""Logging for the grocery planner: Rich on stderr, optional plain log file.

Command output (grocery lists, JSON) goes to stdout; everything logged
and the normalizer spinner share stderr_console so they never interleave
with it.
"""

from __future__ import annotations

import logging
from pathlib import Path

from rich.console import Console
from rich.status import Status

LOGGER_NAME = "grocery_planner"
FILE_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"

stderr_console = Console(stderr=True)


def parse_level(level: str) -> int:
    """Map a --log-level name to a logging level, INFO when unknown."""
    value = logging.getLevelName(level.upper())
    return value if isinstance(value, int) else logging.INFO


def setup_logging(level: str = "info", log_file: Path | None = None) -> logging.Logger:
    """Route grocery_planner logs to stderr_console, and to log_file at DEBUG."""
    from rich.logging import RichHandler

    console_level = parse_level(level)
    logger = logging.getLogger(LOGGER_NAME)
    logger.handlers.clear()

    rich_handler = RichHandler(
        console=stderr_console,
        show_path=False,
        markup=False,
        rich_tracebacks=True,
    )
    rich_handler.setLevel(console_level)
    logger.addHandler(rich_handler)

    if log_file is None:
        logger.setLevel(console_level)
        return logger

    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
    logger.addHandler(file_handler)
    # The file keeps debug detail even when the console is quieter
    logger.setLevel(logging.DEBUG)
    return logger


def normalizer_status(line_count: int) -> Status:
    """Spinner shown on stderr while the normalizer runs."""
    return stderr_console.status(f"Normalizzazione di {line_count} ingredienti...")
