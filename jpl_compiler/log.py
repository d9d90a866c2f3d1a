"""
Logging setup for jplc.

Library modules only call logging.getLogger(__name__); the CLI calls
setup_logging() once to attach a rich console handler (stderr) and,
optionally, a log file that captures everything at DEBUG.
"""

from __future__ import annotations
import logging
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "jpl_compiler"

FILE_FORMAT = "%(asctime)s | %(levelname)-7s | %(name)s | %(funcName)s:%(lineno)d | %(message)s"
FILE_DATEFMT = "%Y-%m-%d %H:%M:%S"


def setup_logging(
    console_level: int = logging.WARNING,
    log_file: Optional[Path] = None,
) -> logging.Logger:
    """Configure and return the package logger."""
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    # ── Console handler: stderr, so stdout stays clean for -S / program output ──
    ch = RichHandler(
        console=Console(stderr=True),
        level=console_level,
        show_time=False,
        show_path=False,
        markup=False,
        rich_tracebacks=True,
    )
    logger.addHandler(ch)

    # ── File handler: captures everything (DEBUG+) ──
    if log_file is not None:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(str(log_file), encoding="utf-8")
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=FILE_DATEFMT))
        logger.addHandler(fh)
        logger.debug("Log file: %s", log_file)

    logger.propagate = False
    return logger
