"""
LC-3 Virtual Machine — Logging Setup

Console logs go to stderr through rich so the emulated program keeps
stdout to itself. An optional log file captures everything at DEBUG.

Log file format:
  2026-01-19 10:00:00 | INFO    | lc3vm.loader | load_image:52 | Loaded ...
"""

import logging
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "lc3vm"

FILE_FORMAT = "%(asctime)s | %(levelname)-7s | %(name)s | %(funcName)s:%(lineno)d | %(message)s"
FILE_DATEFMT = "%Y-%m-%d %H:%M:%S"


def _level_for(verbosity: int, quiet: bool) -> int:
    if quiet:
        return logging.ERROR
    if verbosity <= 0:
        return logging.WARNING
    if verbosity == 1:
        return logging.INFO
    return logging.DEBUG


def setup_logging(
    verbosity: int = 0,
    quiet: bool = False,
    log_file: Optional[Path] = None,
) -> logging.Logger:
    """Configure and return the package logger.

    verbosity: 0 → WARNING, 1 (-v) → INFO, 2+ (-vv) → DEBUG
    quiet:     ERROR only on the console
    log_file:  also write DEBUG+ to this file
    """
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.DEBUG)
    logger.propagate = False

    console_level = _level_for(verbosity, quiet)

    # ── Console handler ──
    ch = RichHandler(
        console=Console(stderr=True),
        level=console_level,
        show_time=True,
        show_path=False,
        markup=False,
        rich_tracebacks=True,
    )
    logger.addHandler(ch)

    # ── File handler: captures everything (DEBUG+) ──
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(str(log_path), encoding="utf-8")
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=FILE_DATEFMT))
        logger.addHandler(fh)
        logger.debug("Log file: %s", log_path)
    elif console_level > logging.DEBUG:
        # Skip building per-instruction records nobody will see
        logger.setLevel(console_level)

    return logger
