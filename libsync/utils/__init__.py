"""Utility helpers for libsync."""

from libsync.utils.logger import configure_logging, logger
from libsync.utils.paths import normalize_path, path_contains, uri_to_path

__all__ = [
    "configure_logging",
    "logger",
    "normalize_path",
    "path_contains",
    "uri_to_path",
]
