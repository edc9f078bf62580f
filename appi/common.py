"""
Common utilities shared across appi modules.
"""

from __future__ import annotations

import os


def is_debug_enabled() -> bool:
    """True when APPI_DEBUG=1 is set."""
    return os.environ.get("APPI_DEBUG", "0") == "1"


def vlog(msg: str, verbose: bool = False) -> None:
    """
    Log verbose message using structured logging.

    Args:
        msg: Message to log
        verbose: Whether verbose mode is enabled
    """
    if verbose or is_debug_enabled():
        from .logging_config import get_logger
        get_logger().info(msg)
