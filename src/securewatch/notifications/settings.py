"""User notification preferences.

In-memory only: channel toggles, per-category toggles and a quiet-hours
window. Updates are shallow merges; nested values are replaced whole.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields, replace
from datetime import datetime, time
from typing import Any, Dict, Optional

from securewatch.notifications.models import NotificationCategory

logger = logging.getLogger(__name__)


def _default_categories() -> Dict[str, bool]:
    return {category.value: True for category in NotificationCategory}


@dataclass(frozen=True)
class QuietHours:
    """Time window in which notifications should stay quiet.

    Attributes:
        enabled: Whether quiet hours apply
        start_time: Start of the window (HH:MM)
        end_time: End of the window (HH:MM)
    """

    enabled: bool = False
    start_time: str = "22:00"
    end_time: str = "08:00"

    def is_active(self, now: Optional[datetime] = None) -> bool:
        """Check if the quiet-hours window covers ``now`` (local time)."""
        if not self.enabled:
            return False

        current_time = (now or datetime.now()).time()
        try:
            start = time.fromisoformat(self.start_time)
            end = time.fromisoformat(self.end_time)
        except ValueError:
            return False

        # Handle overnight windows (e.g., 22:00 to 08:00)
        if start > end:
            return current_time >= start or current_time <= end
        return start <= current_time <= end

    def to_dict(self) -> Dict[str, Any]:
        return {
            "enabled": self.enabled,
            "start_time": self.start_time,
            "end_time": self.end_time,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "QuietHours":
        return cls(
            enabled=data.get("enabled", False),
            start_time=data.get("start_time", data.get("startTime", "22:00")),
            end_time=data.get("end_time", data.get("endTime", "08:00")),
        )


@dataclass(frozen=True)
class NotificationSettings:
    """User notification preferences.

    Attributes:
        email_enabled: Receive notifications by email
        in_app_enabled: Show notifications in the app
        critical_only: Only surface critical notifications
        categories: Enabled flag per notification category
        quiet_hours: Quiet-hours window
    """

    email_enabled: bool = True
    in_app_enabled: bool = True
    critical_only: bool = False
    categories: Dict[str, bool] = field(default_factory=_default_categories)
    quiet_hours: QuietHours = field(default_factory=QuietHours)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "email_enabled": self.email_enabled,
            "in_app_enabled": self.in_app_enabled,
            "critical_only": self.critical_only,
            "categories": dict(self.categories),
            "quiet_hours": self.quiet_hours.to_dict(),
        }


# Field names used by the web client
_CAMEL_CASE_ALIASES = {
    "emailEnabled": "email_enabled",
    "inAppEnabled": "in_app_enabled",
    "criticalOnly": "critical_only",
    "quietHours": "quiet_hours",
}


class SettingsStore:
    """Holds the current NotificationSettings and applies partial updates."""

    def __init__(self, settings: Optional[NotificationSettings] = None):
        self._settings = settings or NotificationSettings()
        self._field_names = {f.name for f in fields(NotificationSettings)}

    @property
    def settings(self) -> NotificationSettings:
        return self._settings

    def update(self, **changes: Any) -> NotificationSettings:
        """Shallow-merge ``changes`` into the current settings.

        Unknown keys are ignored. Nested values (``categories``,
        ``quiet_hours``) replace the previous value entirely.

        Returns:
            The updated settings
        """
        accepted: Dict[str, Any] = {}
        for key, value in changes.items():
            name = _CAMEL_CASE_ALIASES.get(key, key)
            if name not in self._field_names:
                logger.warning(f"Ignoring unknown notification setting: {key}")
                continue
            if name == "quiet_hours" and isinstance(value, dict):
                value = QuietHours.from_dict(value)
            elif name == "categories":
                value = dict(value)
            accepted[name] = value

        if accepted:
            self._settings = replace(self._settings, **accepted)
            logger.debug(f"Updated notification settings: {sorted(accepted)}")
        return self._settings
