"""
Logging setup for the generator CLI.

stdout carries the generated fragments, so every handler here writes to
stderr or to a file. Console output goes through rich; the optional log file
gets the full DEBUG stream with caller info.
"""

from __future__ import annotations
import logging
from pathlib import Path
from typing import Optional, Union

from rich.console import Console
from rich.logging import RichHandler

from .errors import ConfigError

__all__ = ['LOGGER_NAME', 'setup_logging', 'verbosity_level']

LOGGER_NAME = "opgen"

FILE_FORMAT = "%(asctime)s | %(levelname)-7s | %(name)s | %(funcName)s:%(lineno)d | %(message)s"
FILE_DATEFMT = "%Y-%m-%d %H:%M:%S"


def verbosity_level(verbose: int = 0, quiet: bool = False) -> int:
    """Map -v / -q counts to a console level."""
    if quiet:
        return logging.ERROR
    if verbose == 0:
        return logging.WARNING
    if verbose == 1:
        return logging.INFO
    return logging.DEBUG


def setup_logging(
    console_level: int = logging.WARNING,
    log_file: Optional[Union[str, Path]] = None,
    name: str = LOGGER_NAME,
) -> logging.Logger:
    """Configure and return the package logger.

    Calling it again replaces the handlers, so the CLI can be run several
    times in one process (tests do this).
    """
    logger = logging.getLogger(name)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.DEBUG if log_file else console_level)
    logger.propagate = False

    # ── Console handler: stderr only ──
    ch = RichHandler(
        console=Console(stderr=True),
        level=console_level,
        show_time=False,
        show_path=False,
        markup=False,
        rich_tracebacks=True,
    )
    ch.setLevel(console_level)
    logger.addHandler(ch)

    # ── File handler: captures everything (DEBUG+) ──
    if log_file:
        log_path = Path(log_file)
        try:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            fh = logging.FileHandler(str(log_path), encoding="utf-8")
        except OSError as e:
            raise ConfigError(f"Cannot open log file: {e}", str(log_path)) from e
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=FILE_DATEFMT))
        logger.addHandler(fh)
        logger.debug("Log file: %s", log_path)

    return logger
