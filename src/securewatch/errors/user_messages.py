"""User-friendly error messages for SecureWatch.

Maps error codes to human-readable messages and recovery suggestions so the
CLI never prints raw transport errors.
"""

from __future__ import annotations

from typing import Any


# =============================================================================
# Error Message Catalog
# =============================================================================

ERROR_MESSAGES: dict[str, str] = {
    "TRANSIENT_FETCH_ERROR": "Notifications could not be fetched right now.",
    "MUTATION_REJECTED": "The server did not accept the change. Your view was restored.",
    "PERSISTENCE_ERROR": "Dismissed alerts could not be saved. They will be kept for this session only.",
    "CONFIGURATION_ERROR": "There's a configuration issue.",
    "SECUREWATCH_ERROR": "An unexpected error occurred. Please try again.",
    "UNKNOWN_ERROR": "Something went wrong. Please try again.",
}


# =============================================================================
# Recovery Suggestions
# =============================================================================

RECOVERY_SUGGESTIONS: dict[str, str] = {
    "TRANSIENT_FETCH_ERROR": "Check that the SecureWatch API is reachable (SECUREWATCH_API_URL).",
    "MUTATION_REJECTED": "Refresh with: securewatch notifications list",
    "PERSISTENCE_ERROR": "Check disk space and permissions of the storage directory.",
    "CONFIGURATION_ERROR": "Check the config file or SECUREWATCH_* environment variables.",
    "SECUREWATCH_ERROR": "If this persists, please report the issue.",
    "UNKNOWN_ERROR": "Try again. Report if the issue continues.",
}


# =============================================================================
# Helper Functions
# =============================================================================


def _error_code(error: Any) -> str:
    if hasattr(error, "code"):
        return error.code
    if isinstance(error, str):
        return error
    return type(error).__name__.upper()


def get_user_message(error: Any) -> str:
    """Get user-friendly message for an error.

    Args:
        error: The error (can be Exception or error code string)

    Returns:
        User-friendly error message
    """
    return ERROR_MESSAGES.get(_error_code(error), ERROR_MESSAGES["UNKNOWN_ERROR"])


def get_recovery_suggestion(error: Any) -> str:
    """Get recovery suggestion for an error."""
    return RECOVERY_SUGGESTIONS.get(_error_code(error), RECOVERY_SUGGESTIONS["UNKNOWN_ERROR"])


def format_error_for_cli(error: Any) -> str:
    """Format error for CLI output."""
    message = get_user_message(error)
    suggestion = get_recovery_suggestion(error)
    code = getattr(error, "code", "ERROR")

    lines = [
        f"Error [{code}]: {message}",
        "",
        f"Suggestion: {suggestion}",
    ]

    if getattr(error, "details", None):
        lines.append("")
        lines.append("Details:")
        for key, value in error.details.items():
            # Don't expose credentials
            if key not in ("password", "token", "auth_token"):
                lines.append(f"  {key}: {value}")

    return "\n".join(lines)
