"""
Logging setup for appi.

All modules log through children of the "appi" logger (appi.sources,
appi.upgrade, ...). The console handler writes to stderr so listings and
menus on stdout stay clean; an optional file handler records everything.
"""

import logging
import os
import sys
from pathlib import Path
from typing import Optional


ROOT_LOGGER = "appi"
CONSOLE_FORMAT = "%(levelname_colored)s %(message)s"
FILE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
FILE_DATEFMT = "%Y-%m-%d %H:%M:%S"

_logger: Optional[logging.Logger] = None


def _wants_color(stream) -> bool:
    if os.environ.get("NO_COLOR"):
        return False
    return hasattr(stream, "isatty") and stream.isatty()


def _resolve_level(level: Optional[str], verbose: bool, quiet: bool) -> int:
    if verbose:
        return logging.DEBUG
    if quiet:
        return logging.WARNING
    name = (level or os.environ.get("APPI_LOG_LEVEL") or "INFO").upper()
    resolved = logging.getLevelName(name)
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown log level: {name}")
    return resolved


def setup_logging(
    level: Optional[str] = None,
    log_file: Optional[str] = None,
    verbose: bool = False,
    quiet: bool = False,
    propagate: bool = False,
) -> logging.Logger:
    """
    Configure the "appi" logger.

    Args:
        level: Log level name; defaults to $APPI_LOG_LEVEL, then INFO
        log_file: Also write DEBUG and up to this file
        verbose: Force DEBUG (wins over quiet)
        quiet: Force WARNING and drop the console handler
        propagate: Let records reach the root logger (pytest caplog)

    Returns:
        The configured logger
    """
    global _logger

    effective = _resolve_level(level, verbose, quiet)
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(effective)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if not quiet:
        console = logging.StreamHandler(sys.stderr)
        console.setLevel(effective)
        console.setFormatter(ColoredFormatter(CONSOLE_FORMAT, use_colors=_wants_color(sys.stderr)))
        logger.addHandler(console)

    if log_file:
        path = Path(log_file).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=FILE_DATEFMT))
        logger.addHandler(file_handler)

    logger.propagate = propagate
    _logger = logger
    return logger


def get_logger() -> logging.Logger:
    """The "appi" logger, set up with defaults on first use."""
    global _logger
    if _logger is None:
        _logger = setup_logging()
    return _logger


class ColoredFormatter(logging.Formatter):
    """
    Console formatter that prefixes each message with a colored symbol.

    Without colors the plain level name is used instead.
    """

    STYLES = {
        "DEBUG": ("\033[36m", "·"),
        "INFO": ("\033[32m", "✓"),
        "WARNING": ("\033[33m", "!"),
        "ERROR": ("\033[31m", "✗"),
        "CRITICAL": ("\033[1;31m", "✗"),
    }
    RESET = "\033[0m"

    def __init__(self, fmt: str, use_colors: bool = True):
        super().__init__(fmt)
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        if self.use_colors and record.levelname in self.STYLES:
            color, symbol = self.STYLES[record.levelname]
            record.levelname_colored = f"{color}{symbol}{self.RESET}"
        else:
            record.levelname_colored = record.levelname
        return super().format(record)
