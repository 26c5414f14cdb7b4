"""Centralized error definitions for SecureWatch.

Every failure inside the notification engine maps onto one of these types.
None of them is fatal: the engine logs them and keeps its last known good
local state. Only configuration errors reach the user, through the CLI.

Usage:
    from securewatch.errors import TransientFetchError

    try:
        payload = await client.fetch_notifications(limit=20)
    except TransientFetchError as e:
        logger.warning(f"Falling back to dashboard alerts: {e}")
"""

from __future__ import annotations

from securewatch.errors.user_messages import (
    format_error_for_cli,
    get_recovery_suggestion,
    get_user_message,
)


# =============================================================================
# Base Error
# =============================================================================


class SecureWatchError(Exception):
    """Base exception for all SecureWatch errors.

    Attributes:
        code: Error code, also the key of the user message catalog
        details: Context for logs and CLI output (operation, id, status)
    """

    code: str = "SECUREWATCH_ERROR"
    default_message: str = "An unexpected error occurred"

    def __init__(self, message: str | None = None, *, details: dict | None = None) -> None:
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)


# =============================================================================
# Remote Errors
# =============================================================================


class TransientFetchError(SecureWatchError):
    """A notification or alert feed could not be fetched.

    Covers transport failures and non-2xx responses. Triggers the fallback
    source or a no-op refresh; never surfaced as a blocking error.
    """

    code = "TRANSIENT_FETCH_ERROR"
    default_message = "Failed to fetch notifications"

    def __init__(
        self,
        message: str | None = None,
        *,
        source: str | None = None,
        status_code: int | None = None,
        **kwargs,
    ) -> None:
        details = kwargs.pop("details", None) or {}
        if source:
            details["source"] = source
        if status_code is not None:
            details["status_code"] = status_code
        super().__init__(message, details=details, **kwargs)
        self.source = source
        self.status_code = status_code


class MutationRejected(SecureWatchError):
    """The remote side did not confirm an optimistic local change."""

    code = "MUTATION_REJECTED"
    default_message = "The server rejected the change"

    def __init__(
        self,
        message: str | None = None,
        *,
        operation: str | None = None,
        notification_id: str | None = None,
        status_code: int | None = None,
        **kwargs,
    ) -> None:
        details = kwargs.pop("details", None) or {}
        if operation:
            details["operation"] = operation
        if notification_id:
            details["notification_id"] = notification_id
        if status_code is not None:
            details["status_code"] = status_code
        super().__init__(message, details=details, **kwargs)
        self.operation = operation
        self.notification_id = notification_id
        self.status_code = status_code


# =============================================================================
# Local Errors
# =============================================================================


class PersistenceError(SecureWatchError):
    """Local durable storage is unavailable or holds unreadable data."""

    code = "PERSISTENCE_ERROR"
    default_message = "Local storage is unavailable"

    def __init__(self, message: str | None = None, *, key: str | None = None, **kwargs) -> None:
        details = kwargs.pop("details", None) or {}
        if key:
            details["key"] = key
        super().__init__(message, details=details, **kwargs)
        self.key = key


class ConfigurationError(SecureWatchError):
    """Engine configuration is invalid."""

    code = "CONFIGURATION_ERROR"
    default_message = "Configuration error"


__all__ = [
    "SecureWatchError",
    "TransientFetchError",
    "MutationRejected",
    "PersistenceError",
    "ConfigurationError",
    "get_user_message",
    "get_recovery_suggestion",
    "format_error_for_cli",
]
