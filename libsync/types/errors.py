"""
Error handling system for libsync.

Most failure modes in libsync are normal outcomes (an unresolvable module is
a cached negative result, a non-matching line is skipped). The errors below
cover what is left: bad configuration and a client that fails while its
settings are being pushed.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, IntEnum
from typing import Any

from libsync.constants import utcnow


class ErrorCode(IntEnum):
    """Internal error codes for categorization."""

    # Configuration Errors (4000-4999)
    INVALID_CONFIG = 4001
    CONFIG_VALIDATION_FAILED = 4003

    # Client/Transport Errors (5000-5999)
    CLIENT_PUSH_FAILED = 5001


class ErrorSeverity(str, Enum):
    """Error severity levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass
class ErrorContext:
    """Context information for an error."""

    operation: str | None = None
    component: str | None = None
    client_id: int | str | None = None
    timestamp: datetime = field(default_factory=utcnow)
    additional_info: dict[str, Any] = field(default_factory=dict)


class LibSyncError(Exception):
    """Base error class for libsync."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        user_message: str | None = None,
        severity: str = ErrorSeverity.MEDIUM,
        context: ErrorContext | None = None,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.severity = severity
        self.user_message = user_message or message
        self.context = context or ErrorContext()
        self.original_error = original_error

    def get_formatted_message(self) -> str:
        """Get a formatted error message for display to users."""
        parts = [
            f"[Error] {self.user_message}",
            f"   Code: {self.code.value}",
        ]
        if self.context.operation:
            parts.append(f"   Operation: {self.context.operation}")
        if self.context.component:
            parts.append(f"   Component: {self.context.component}")
        if self.context.client_id is not None:
            parts.append(f"   Client: {self.context.client_id}")
        return "\n".join(parts)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return {
            "name": self.__class__.__name__,
            "code": self.code.value,
            "message": str(self),
            "user_message": self.user_message,
            "severity": self.severity,
            "context": {
                "operation": self.context.operation,
                "component": self.context.component,
                "client_id": self.context.client_id,
                "timestamp": self.context.timestamp.isoformat(),
                "additional_info": self.context.additional_info,
            },
            "original_error": str(self.original_error) if self.original_error else None,
        }


class ConfigurationError(LibSyncError):
    """Invalid libsync configuration."""

    def __init__(
        self,
        message: str,
        field_name: str | None = None,
        code: ErrorCode = ErrorCode.CONFIG_VALIDATION_FAILED,
    ) -> None:
        super().__init__(
            code,
            message,
            user_message=f"Invalid libsync configuration: {message}",
            severity=ErrorSeverity.HIGH,
            context=ErrorContext(
                operation="validate_config",
                component="config",
                additional_info={"field": field_name} if field_name else {},
            ),
        )
        self.field_name = field_name


class ClientPushError(LibSyncError):
    """A language-server client failed while receiving a settings push."""

    def __init__(self, client_id: int | str, original_error: Exception) -> None:
        super().__init__(
            ErrorCode.CLIENT_PUSH_FAILED,
            f"Settings push to client {client_id} failed: {original_error}",
            user_message="Could not update the language server library settings",
            severity=ErrorSeverity.MEDIUM,
            context=ErrorContext(
                operation="push_settings",
                component="lsp_settings",
                client_id=client_id,
            ),
            original_error=original_error,
        )
        self.client_id = client_id
