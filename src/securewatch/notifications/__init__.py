"""Notification and alert reconciliation engine.

Keeps a local view of notifications and toasts, synchronized against the
SecureWatch notification service with a dashboard-alert fallback.
"""

from securewatch.notifications.config import EngineConfig, get_engine_config, load_engine_config
from securewatch.notifications.dismissals import DismissalStore
from securewatch.notifications.engine import NotificationEngine, create_engine
from securewatch.notifications.models import (
    Notification,
    NotificationCategory,
    NotificationPriority,
    NotificationType,
    Provenance,
    Toast,
    ToastKind,
)
from securewatch.notifications.settings import NotificationSettings, QuietHours, SettingsStore
from securewatch.notifications.sources import NotificationSource, NotificationSourceClient
from securewatch.notifications.storage import JsonFileStorage, KeyValueStorage, MemoryStorage

__all__ = [
    "NotificationEngine",
    "create_engine",
    "EngineConfig",
    "get_engine_config",
    "load_engine_config",
    "DismissalStore",
    "Notification",
    "NotificationCategory",
    "NotificationPriority",
    "NotificationType",
    "Provenance",
    "Toast",
    "ToastKind",
    "NotificationSettings",
    "QuietHours",
    "SettingsStore",
    "NotificationSource",
    "NotificationSourceClient",
    "JsonFileStorage",
    "KeyValueStorage",
    "MemoryStorage",
]
