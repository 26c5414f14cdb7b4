"""Notification engine: the surface UI collaborators talk to.

Key features:
- Canonical notification list synchronized with the notification service
- Fallback to dashboard alerts while the service is unavailable
- Optimistic mark-read / remove with rollback or resync
- Cross-session dismissal of fallback alerts
- Expiring toasts and in-memory preferences
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional

from securewatch.notifications.config import EngineConfig
from securewatch.notifications.dismissals import DismissalStore
from securewatch.notifications.models import (
    Notification,
    NotificationCategory,
    NotificationPriority,
    NotificationType,
    Toast,
    ToastKind,
)
from securewatch.notifications.mutations import MutationCoordinator
from securewatch.notifications.poller import Poller
from securewatch.notifications.reconciliation import Clock, NotificationFeed
from securewatch.notifications.settings import NotificationSettings, SettingsStore
from securewatch.notifications.sources import NotificationSource, NotificationSourceClient
from securewatch.notifications.storage import JsonFileStorage, KeyValueStorage
from securewatch.notifications.toasts import ToastScheduler

logger = logging.getLogger(__name__)


class NotificationEngine:
    """Client-side notification state with remote synchronization.

    All collaborators are injected, so tests can substitute fakes for the
    remote source, the storage and the clock.

    Usage:
        engine = NotificationEngine(source=client, storage=JsonFileStorage())
        async with engine:
            await engine.mark_as_read("42")
            print(engine.unread_count)
    """

    def __init__(
        self,
        source: NotificationSource,
        storage: Optional[KeyValueStorage] = None,
        *,
        config: Optional[EngineConfig] = None,
        clock: Optional[Clock] = None,
        id_factory: Optional[Callable[[], str]] = None,
        settings: Optional[NotificationSettings] = None,
    ):
        """Initialize notification engine.

        Args:
            source: Remote notification and alert source
            storage: Durable storage for dismissed alerts (in-memory if omitted)
            config: Engine configuration (defaults if omitted)
            clock: Returns the current time
            id_factory: Generates ids for local notifications
            settings: Initial notification preferences
        """
        self.config = config or EngineConfig()
        self._source = source

        self.dismissals = DismissalStore(
            storage,
            max_entries=self.config.dismissal_limit,
            retain=self.config.dismissal_retain,
        )
        self.feed = NotificationFeed(
            source,
            self.dismissals,
            fetch_limit=self.config.fetch_limit,
            max_entries=self.config.max_notifications,
            clock=clock,
        )
        self.mutations = MutationCoordinator(
            self.feed,
            source,
            self.dismissals,
            id_factory=id_factory,
            clock=clock,
        )
        self.poller = Poller(self.refresh_notifications, interval=self.config.poll_interval_seconds)
        self.toast_scheduler = ToastScheduler(
            default_duration_ms=self.config.default_toast_duration_ms,
            id_factory=id_factory,
        )
        self.settings_store = SettingsStore(settings)

        logger.info(
            f"NotificationEngine initialized "
            f"(poll={self.config.poll_interval_seconds}s, "
            f"dismissed={len(self.dismissals)})"
        )

    # -------------------------------------------------------------------------
    # Read-only state
    # -------------------------------------------------------------------------

    @property
    def notifications(self) -> List[Notification]:
        return self.feed.notifications

    @property
    def unread_count(self) -> int:
        return self.feed.unread_count

    @property
    def toasts(self) -> List[Toast]:
        return self.toast_scheduler.toasts

    @property
    def settings(self) -> NotificationSettings:
        return self.settings_store.settings

    @property
    def loading(self) -> bool:
        return self.feed.loading

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def start(self) -> None:
        """Start background polling (first refresh runs immediately)."""
        if self.feed.closed:
            logger.warning("NotificationEngine was stopped; not restarting")
            return
        await self.poller.start()

    async def stop(self) -> None:
        """Tear down: stop polling, cancel toast timers, drop late results."""
        await self.poller.stop()
        cancelled = self.toast_scheduler.close()
        self.feed.close()
        logger.info(f"NotificationEngine stopped ({cancelled} toast timers cancelled)")

    async def __aenter__(self) -> "NotificationEngine":
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.stop()

    # -------------------------------------------------------------------------
    # Notification actions
    # -------------------------------------------------------------------------

    async def refresh_notifications(self) -> bool:
        return await self.feed.refresh()

    async def mark_as_read(self, notification_id: str) -> bool:
        return await self.mutations.mark_as_read(notification_id)

    async def mark_all_as_read(self) -> bool:
        return await self.mutations.mark_all_as_read()

    async def remove_notification(self, notification_id: str) -> bool:
        return await self.mutations.remove_notification(notification_id)

    def add_notification(
        self,
        title: str,
        message: str,
        *,
        type: NotificationType = NotificationType.INFO,
        priority: NotificationPriority = NotificationPriority.MEDIUM,
        category: NotificationCategory = NotificationCategory.SYSTEM,
        action_url: Optional[str] = None,
        employee_id: Optional[str] = None,
        violation_id: Optional[str] = None,
    ) -> Optional[Notification]:
        return self.mutations.add_notification(
            title=title,
            message=message,
            type=type,
            priority=priority,
            category=category,
            action_url=action_url,
            employee_id=employee_id,
            violation_id=violation_id,
        )

    async def clear_dismissed_alerts(self) -> int:
        """Forget all dismissals and refresh so dismissed alerts reappear.

        Returns:
            Number of dismissals cleared
        """
        count = self.dismissals.clear()
        await self.refresh_notifications()
        return count

    # -------------------------------------------------------------------------
    # Toasts and settings
    # -------------------------------------------------------------------------

    def add_toast(
        self,
        message: str,
        *,
        kind: ToastKind = ToastKind.INFO,
        title: Optional[str] = None,
        duration: Optional[int] = None,
    ) -> Optional[Toast]:
        return self.toast_scheduler.add_toast(
            Toast(message=message, kind=kind, title=title, duration=duration)
        )

    def remove_toast(self, toast_id: str) -> bool:
        return self.toast_scheduler.remove_toast(toast_id)

    def update_settings(self, **changes: Any) -> NotificationSettings:
        return self.settings_store.update(**changes)

    def get_status(self) -> Dict[str, Any]:
        """Get engine status.

        Returns:
            Status dictionary
        """
        return {
            "notifications": len(self.feed.notifications),
            "unread_notifications": self.unread_count,
            "loading": self.loading,
            "dismissed_alerts": len(self.dismissals),
            "toasts": len(self.toast_scheduler.toasts),
            "poller": self.poller.get_status(),
            "quiet_hours_active": self.settings.quiet_hours.is_active(),
            "stopped": self.feed.closed,
        }


def create_engine(config: EngineConfig, **kwargs: Any) -> NotificationEngine:
    """Build an engine wired to the HTTP API and file storage from ``config``."""
    client = NotificationSourceClient(
        config.api_base_url,
        timeout=config.request_timeout,
        auth_token=config.auth_token.get_secret_value() if config.auth_token else None,
    )
    storage = JsonFileStorage(config.storage_dir)
    return NotificationEngine(client, storage, config=config, **kwargs)
