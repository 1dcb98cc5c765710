"""Shared types for libsync."""

from libsync.types.errors import (
    ClientPushError,
    ConfigurationError,
    ErrorCode,
    ErrorContext,
    ErrorSeverity,
    LibSyncError,
)

__all__ = [
    "ClientPushError",
    "ConfigurationError",
    "ErrorCode",
    "ErrorContext",
    "ErrorSeverity",
    "LibSyncError",
]
