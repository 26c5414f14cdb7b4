"""Reconciliation of remote feeds into the canonical notification list.

The primary notification feed is authoritative: when it answers, it replaces
the list outright. When it fails, dashboard alerts are normalized into
fallback notifications and merged into the list, skipping anything the user
dismissed.

Refreshes may overlap with each other and with optimistic mutations:
- a refresh result older than the last applied one is discarded
- mutations awaiting confirmation, or confirmed while a refresh was in
  flight, are re-applied on top of every refresh result
- nothing is written once the feed is closed
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Callable, Dict, Iterable, List, Optional, Tuple

from securewatch.errors import TransientFetchError
from securewatch.notifications.dismissals import DismissalStore
from securewatch.notifications.models import (
    Notification,
    NotificationCategory,
    NotificationPriority,
    NotificationType,
    Provenance,
    coerce_enum,
    fallback_id,
)
from securewatch.notifications.sources import NotificationSource

if TYPE_CHECKING:
    from securewatch.notifications.mutations import Mutation

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Normalization
# =============================================================================


def _field(record: Dict[str, Any], snake: str, camel: str) -> Optional[Any]:
    value = record.get(snake)
    if value is None:
        value = record.get(camel)
    return str(value) if value is not None else None


def normalize_server_record(record: Dict[str, Any]) -> Notification:
    """Convert a notification service record into a Notification.

    Raises:
        ValueError: If the record has no id
    """
    if record.get("id") is None:
        raise ValueError("notification record has no id")

    timestamp = record.get("timestamp") or ""
    if isinstance(timestamp, datetime):
        timestamp = timestamp.isoformat()

    return Notification(
        id=str(record["id"]),
        type=coerce_enum(NotificationType, record.get("type"), NotificationType.INFO),
        title=record.get("title") or "",
        message=record.get("message") or "",
        timestamp=str(timestamp),
        read=bool(record.get("read", False)),
        priority=coerce_enum(NotificationPriority, record.get("priority"), NotificationPriority.MEDIUM),
        category=coerce_enum(NotificationCategory, record.get("category"), NotificationCategory.SYSTEM),
        provenance=Provenance.SERVER,
        action_url=_field(record, "action_url", "actionUrl"),
        employee_id=_field(record, "employee_id", "employeeId"),
        violation_id=_field(record, "violation_id", "violationId"),
    )


def normalize_server_records(records: Iterable[Dict[str, Any]]) -> List[Notification]:
    """Normalize a primary feed page, skipping malformed and duplicate records."""
    notifications: List[Notification] = []
    seen = set()
    for record in records:
        try:
            notification = normalize_server_record(record)
        except (ValueError, TypeError, AttributeError) as e:
            logger.warning(f"Skipping malformed notification record: {e}")
            continue
        if notification.id in seen:
            continue
        seen.add(notification.id)
        notifications.append(notification)
    return notifications


def normalize_fallback_records(records: Iterable[Dict[str, Any]], now: datetime) -> List[Notification]:
    """Convert dashboard alerts into fallback notifications.

    Alerts carry no timestamp or read state: every alert is unread and
    stamped with ``now``. Alerts without an id are keyed by their position.
    """
    notifications: List[Notification] = []
    seen = set()
    timestamp = now.isoformat()
    for index, record in enumerate(records):
        if not isinstance(record, dict):
            logger.warning(f"Skipping malformed dashboard alert at index {index}")
            continue

        source_id = record.get("id")
        notification_id = fallback_id(source_id if source_id not in (None, "") else index)
        if notification_id in seen:
            continue
        seen.add(notification_id)

        alert_type = record.get("type")
        if alert_type == "critical":
            notification_type = NotificationType.CRITICAL
        elif alert_type == "warning":
            notification_type = NotificationType.WARNING
        else:
            notification_type = NotificationType.INFO

        notifications.append(Notification(
            id=notification_id,
            type=notification_type,
            title=record.get("title") or "",
            message=record.get("message") or "",
            timestamp=timestamp,
            read=False,
            priority=coerce_enum(
                NotificationPriority, record.get("priority"), NotificationPriority.MEDIUM
            ),
            category=NotificationCategory.SECURITY,
            provenance=Provenance.FALLBACK,
        ))
    return notifications


def merge_fallback(
    current: List[Notification],
    fetched: List[Notification],
    dismissals: DismissalStore,
    max_entries: int,
) -> List[Notification]:
    """Merge freshly fetched fallback notifications into ``current``.

    Non-fallback entries are kept. The fallback subset becomes the fetched
    alerts followed by previously seen alerts this fetch did not return.
    Dismissed ids are dropped from both. Alerts seen before keep their read
    flag and first-seen timestamp. The result is capped at ``max_entries``.
    """
    previous = {n.id: n for n in current if n.is_fallback}

    fresh: List[Notification] = []
    fetched_ids = set()
    for notification in fetched:
        if dismissals.contains(notification.id) or notification.id in fetched_ids:
            continue
        fetched_ids.add(notification.id)
        earlier = previous.get(notification.id)
        if earlier is not None:
            notification = replace(notification, read=earlier.read, timestamp=earlier.timestamp)
        fresh.append(notification)

    retained = [
        n for n in current
        if n.is_fallback and n.id not in fetched_ids and not dismissals.contains(n.id)
    ]
    others = [n for n in current if not n.is_fallback]

    return (fresh + retained + others)[:max_entries]


# =============================================================================
# Feed
# =============================================================================


class NotificationFeed:
    """Owner of the canonical notification list.

    Only this class and the mutation coordinator change the list. The unread
    count is always derived from it.

    Usage:
        feed = NotificationFeed(client, DismissalStore(storage))
        await feed.refresh()
        feed.unread_count
    """

    def __init__(
        self,
        source: NotificationSource,
        dismissals: DismissalStore,
        *,
        fetch_limit: int = 20,
        max_entries: int = 50,
        clock: Optional[Clock] = None,
    ):
        """Initialize feed.

        Args:
            source: Remote notification and alert source
            dismissals: Record of dismissed fallback alerts
            fetch_limit: Page size requested from the primary feed
            max_entries: Cap on the list after local additions and merges
            clock: Returns the current time (defaults to UTC now)
        """
        self._source = source
        self._dismissals = dismissals
        self._fetch_limit = fetch_limit
        self._max_entries = max_entries
        self._clock = clock or utc_now

        self._notifications: List[Notification] = []
        self._pending: Dict[int, "Mutation"] = {}
        self._confirmed: List[Tuple[int, "Mutation"]] = []
        self._tokens = itertools.count()
        self._sequence = 0
        self._applied_sequence = 0
        self._in_flight = 0
        self._closed = False

    # -------------------------------------------------------------------------
    # Read-only view
    # -------------------------------------------------------------------------

    @property
    def notifications(self) -> List[Notification]:
        return list(self._notifications)

    @property
    def unread_count(self) -> int:
        return sum(1 for n in self._notifications if not n.read)

    @property
    def loading(self) -> bool:
        return self._in_flight > 0

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def max_entries(self) -> int:
        return self._max_entries

    def get(self, notification_id: str) -> Optional[Notification]:
        for notification in self._notifications:
            if notification.id == notification_id:
                return notification
        return None

    # -------------------------------------------------------------------------
    # Mutation support
    # -------------------------------------------------------------------------

    def apply(self, mutation: "Mutation") -> bool:
        """Apply a mutation's committed transition to the list."""
        if self._closed:
            logger.debug(f"Ignoring {mutation.operation} after close")
            return False
        self._notifications = mutation.commit(self._notifications)[: self._max_entries]
        return True

    def compensate(self, mutation: "Mutation") -> bool:
        """Apply a mutation's compensating transition to the list."""
        if self._closed:
            logger.debug(f"Ignoring rollback of {mutation.operation} after close")
            return False
        self._notifications = mutation.compensate(self._notifications)
        return True

    def hold(self, mutation: "Mutation") -> int:
        """Register a mutation awaiting remote confirmation."""
        token = next(self._tokens)
        self._pending[token] = mutation
        return token

    def release(self, token: int, confirmed: bool = False) -> None:
        """Settle a held mutation.

        Confirmed mutations stay visible to refreshes already in flight,
        whose results may predate the confirmation.
        """
        mutation = self._pending.pop(token, None)
        if mutation is not None and confirmed and self._in_flight:
            self._confirmed.append((self._sequence, mutation))

    # -------------------------------------------------------------------------
    # Refresh
    # -------------------------------------------------------------------------

    async def refresh(self) -> bool:
        """Fetch the remote feeds and reconcile the canonical list.

        Never raises for feed failures: when both sources fail the list is
        left unchanged.

        Returns:
            True if a feed result was applied
        """
        if self._closed:
            return False

        self._sequence += 1
        sequence = self._sequence
        self._in_flight += 1
        try:
            try:
                records = await self._source.fetch_notifications(self._fetch_limit)
            except TransientFetchError as e:
                logger.warning(f"Notifications API failed, falling back to dashboard alerts: {e}")
            else:
                fetched = normalize_server_records(records)
                return self._commit(sequence, lambda current: fetched, "notifications")

            try:
                alerts = await self._source.fetch_dashboard_alerts()
            except TransientFetchError as e:
                logger.error(f"Failed to fetch notifications: {e}")
                return False

            fallback = normalize_fallback_records(alerts, self._clock())
            return self._commit(
                sequence,
                lambda current: merge_fallback(current, fallback, self._dismissals, self._max_entries),
                "dashboard_alerts",
            )
        finally:
            self._in_flight -= 1
            if not self._in_flight:
                self._confirmed.clear()

    def _commit(
        self,
        sequence: int,
        build: Callable[[List[Notification]], List[Notification]],
        source: str,
    ) -> bool:
        if self._closed:
            logger.debug(f"Ignoring {source} result after close")
            return False
        if sequence < self._applied_sequence:
            logger.debug(f"Discarding stale {source} result (refresh {sequence})")
            return False

        updated = build(self._notifications)
        for confirmed_at, mutation in self._confirmed:
            if confirmed_at >= sequence:
                updated = mutation.commit(updated)
        for mutation in self._pending.values():
            updated = mutation.commit(updated)

        self._notifications = updated
        self._applied_sequence = sequence
        logger.debug(
            f"Applied {source} result: {len(updated)} notifications, "
            f"{self.unread_count} unread"
        )
        return True

    def close(self) -> None:
        """Stop accepting writes; late results are dropped."""
        self._closed = True
        self._pending.clear()
        self._confirmed.clear()
