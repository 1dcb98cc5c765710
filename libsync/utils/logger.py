"""
Safe logging utility for language-server plugin context.

LSP STDIO Transport:
- STDOUT: Reserved for JSON-RPC messages ONLY
- STDERR: May be used for logging

A host that runs libsync inside a stdio language-server process must never
write log lines to stdout, so configure_logging() routes every record to
stderr. Debug output is enabled with LIBSYNC_DEBUG=true.
"""

import os
import sys

from loguru import logger as loguru_logger

_LOG_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>"
)

_handler_id: int | None = None


def is_debug_enabled() -> bool:
    """Check if debug mode is enabled."""
    return os.environ.get("LIBSYNC_DEBUG", "").lower() == "true"


def configure_logging(level: str | None = None) -> int:
    """
    Route all libsync logging to stderr.

    Replaces the previous libsync sink if one was installed, so calling it
    twice does not duplicate output.

    Args:
        level: Explicit level name. Defaults to DEBUG when LIBSYNC_DEBUG is
            set, INFO otherwise.

    Returns:
        The loguru handler id of the installed sink.
    """
    global _handler_id

    if level is None:
        level = "DEBUG" if is_debug_enabled() else "INFO"

    if _handler_id is not None:
        try:
            loguru_logger.remove(_handler_id)
        except ValueError:
            pass
    else:
        # Drop loguru's default stderr sink so records are not emitted twice
        loguru_logger.remove()

    _handler_id = loguru_logger.add(sys.stderr, level=level, format=_LOG_FORMAT)
    return _handler_id


# Export loguru logger for direct use
logger = loguru_logger
