"""Optimistic user mutations on the canonical notification list.

Every user action is a command object holding two pure transitions over the
notification list: ``commit`` (applied immediately) and ``compensate``
(applied if the server rejects the change). Bulk and delete operations
cannot be compensated item by item, so they resync through a refresh.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, ClassVar, List, Optional, Sequence

from securewatch.errors import MutationRejected
from securewatch.notifications.dismissals import DismissalStore
from securewatch.notifications.models import (
    Notification,
    NotificationCategory,
    NotificationPriority,
    NotificationType,
    Provenance,
    TimeBasedIdFactory,
)
from securewatch.notifications.reconciliation import Clock, NotificationFeed, utc_now
from securewatch.notifications.sources import NotificationSource

logger = logging.getLogger(__name__)


class FailurePolicy(str, Enum):
    """What to do when the server rejects an optimistic change."""

    REVERT = "revert"  # Apply the compensating transition
    RESYNC = "resync"  # Refresh from the server


class Mutation(ABC):
    """A local state transition paired with its compensation."""

    operation: ClassVar[str]
    policy: ClassVar[FailurePolicy]
    notification_id: Optional[str] = None

    @abstractmethod
    def commit(self, notifications: Sequence[Notification]) -> List[Notification]:
        """Return the list with the change applied."""

    def compensate(self, notifications: Sequence[Notification]) -> List[Notification]:
        """Return the list with the change undone."""
        return list(notifications)


@dataclass(frozen=True)
class MarkRead(Mutation):
    notification_id: str

    operation: ClassVar[str] = "mark_as_read"
    policy: ClassVar[FailurePolicy] = FailurePolicy.REVERT

    def commit(self, notifications: Sequence[Notification]) -> List[Notification]:
        return [n.with_read(True) if n.id == self.notification_id else n for n in notifications]

    def compensate(self, notifications: Sequence[Notification]) -> List[Notification]:
        return [n.with_read(False) if n.id == self.notification_id else n for n in notifications]


@dataclass(frozen=True)
class MarkAllRead(Mutation):
    operation: ClassVar[str] = "mark_all_as_read"
    policy: ClassVar[FailurePolicy] = FailurePolicy.RESYNC

    def commit(self, notifications: Sequence[Notification]) -> List[Notification]:
        return [n.with_read(True) for n in notifications]


@dataclass(frozen=True)
class Remove(Mutation):
    notification_id: str

    operation: ClassVar[str] = "remove_notification"
    policy: ClassVar[FailurePolicy] = FailurePolicy.RESYNC

    def commit(self, notifications: Sequence[Notification]) -> List[Notification]:
        return [n for n in notifications if n.id != self.notification_id]


@dataclass(frozen=True)
class Prepend(Mutation):
    notification: Notification

    operation: ClassVar[str] = "add_notification"
    policy: ClassVar[FailurePolicy] = FailurePolicy.REVERT

    @property
    def notification_id(self) -> str:  # type: ignore[override]
        return self.notification.id

    def commit(self, notifications: Sequence[Notification]) -> List[Notification]:
        return [self.notification] + [n for n in notifications if n.id != self.notification.id]

    def compensate(self, notifications: Sequence[Notification]) -> List[Notification]:
        return [n for n in notifications if n.id != self.notification.id]


class MutationCoordinator:
    """Applies user actions optimistically and confirms them remotely.

    Handles:
    - mark one / mark all as read
    - removal, including permanent dismissal of fallback alerts
    - locally raised notifications
    """

    def __init__(
        self,
        feed: NotificationFeed,
        source: NotificationSource,
        dismissals: DismissalStore,
        *,
        id_factory: Optional[Callable[[], str]] = None,
        clock: Optional[Clock] = None,
    ):
        self._feed = feed
        self._source = source
        self._dismissals = dismissals
        self._id_factory = id_factory or TimeBasedIdFactory()
        self._clock = clock or utc_now

    async def mark_as_read(self, notification_id: str) -> bool:
        """Mark one notification read.

        Only server-issued notifications are confirmed remotely; a rejected
        confirmation flips the flag back for that notification alone.

        Returns:
            True if the change stands
        """
        target = self._feed.get(notification_id)
        if target is None:
            logger.debug(f"mark_as_read: unknown notification {notification_id}")
            return False

        mutation = MarkRead(notification_id)
        if not self._feed.apply(mutation):
            return False
        if target.provenance is not Provenance.SERVER:
            return True

        return await self._confirm(
            mutation, lambda: self._source.mark_notification_read(notification_id)
        )

    async def mark_all_as_read(self) -> bool:
        """Mark every notification read; resync from the server on rejection."""
        mutation = MarkAllRead()
        if not self._feed.apply(mutation):
            return False
        return await self._confirm(mutation, self._source.mark_all_notifications_read)

    async def remove_notification(self, notification_id: str) -> bool:
        """Remove a notification from the list.

        Fallback alerts are dismissed permanently. Server notifications are
        deleted remotely; if that fails the list is resynced rather than
        restored.
        """
        target = self._feed.get(notification_id)
        if target is None:
            logger.debug(f"remove_notification: unknown notification {notification_id}")
            return False

        mutation = Remove(notification_id)
        if not self._feed.apply(mutation):
            return False

        if target.provenance is Provenance.FALLBACK:
            self._dismissals.add(notification_id)
            logger.info(f"Dismissed alert {notification_id}")
            return True
        if target.provenance is Provenance.LOCAL:
            return True

        return await self._confirm(
            mutation, lambda: self._source.delete_notification(notification_id)
        )

    def add_notification(
        self,
        *,
        title: str,
        message: str,
        type: NotificationType = NotificationType.INFO,
        priority: NotificationPriority = NotificationPriority.MEDIUM,
        category: NotificationCategory = NotificationCategory.SYSTEM,
        action_url: Optional[str] = None,
        employee_id: Optional[str] = None,
        violation_id: Optional[str] = None,
    ) -> Optional[Notification]:
        """Raise a locally originated notification at the top of the list."""
        notification = Notification(
            id=self._id_factory(),
            type=type,
            title=title,
            message=message,
            timestamp=self._clock().isoformat(),
            read=False,
            priority=priority,
            category=category,
            provenance=Provenance.LOCAL,
            action_url=action_url,
            employee_id=employee_id,
            violation_id=violation_id,
        )
        if not self._feed.apply(Prepend(notification)):
            return None
        return notification

    async def _confirm(self, mutation: Mutation, call: Callable[[], Awaitable[None]]) -> bool:
        target = mutation.notification_id or "all notifications"
        token = self._feed.hold(mutation)
        confirmed = False
        try:
            await call()
            confirmed = True
        except MutationRejected as e:
            logger.error(f"Failed to {mutation.operation.replace('_', ' ')} ({target}): {e}")
        except Exception as e:
            logger.error(f"Unexpected error during {mutation.operation} ({target}): {e}")
        finally:
            self._feed.release(token, confirmed=confirmed)

        if confirmed:
            return True

        if mutation.policy is FailurePolicy.REVERT:
            self._feed.compensate(mutation)
        else:
            await self._feed.refresh()
        return False
