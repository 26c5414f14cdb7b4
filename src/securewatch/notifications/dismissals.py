"""Persistent record of dismissed fallback alerts.

A dismissed fallback alert must never be shown again, across sessions,
until the record is cleared. The record is bounded: once it grows past
``max_entries`` only the ``retain`` most recently added ids are kept.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from securewatch.errors import PersistenceError
from securewatch.notifications.storage import KeyValueStorage, MemoryStorage

logger = logging.getLogger(__name__)

DISMISSED_ALERTS_KEY = "dismissedAlerts"


class DismissalStore:
    """Insertion-ordered set of dismissed alert ids backed by durable storage.

    The in-memory set is authoritative for the session. Storage failures are
    logged and otherwise ignored.

    Usage:
        store = DismissalStore(JsonFileStorage())
        store.add("alert-critical_violations")
        store.contains("alert-critical_violations")  # True
    """

    MAX_ENTRIES = 100
    RETAIN_ENTRIES = 50

    def __init__(
        self,
        storage: Optional[KeyValueStorage] = None,
        *,
        max_entries: int = MAX_ENTRIES,
        retain: int = RETAIN_ENTRIES,
        key: str = DISMISSED_ALERTS_KEY,
    ):
        """Initialize the store and load any persisted record.

        Args:
            storage: Durable key/value storage (in-memory if omitted)
            max_entries: Size above which the record is trimmed
            retain: Number of most recent ids kept after trimming
            key: Storage key of the record
        """
        if retain > max_entries:
            raise ValueError("retain must not exceed max_entries")

        self._storage = storage if storage is not None else MemoryStorage()
        self._max_entries = max_entries
        self._retain = retain
        self._key = key
        # dict preserves insertion order: oldest first
        self._ids: Dict[str, None] = {}

        self._load()
        if self._cleanup():
            self._save()

        logger.info(f"DismissalStore initialized ({len(self._ids)} dismissed alerts)")

    def _load(self) -> None:
        try:
            stored = self._storage.load(self._key)
        except PersistenceError as e:
            logger.warning(f"Failed to load dismissed alerts: {e}")
            return

        if stored is None:
            return
        if not isinstance(stored, list):
            logger.warning(f"Ignoring malformed dismissed alert record ({type(stored).__name__})")
            return

        self._ids = dict.fromkeys(str(item) for item in stored)

    def _save(self) -> None:
        try:
            self._storage.persist(self._key, list(self._ids))
        except PersistenceError as e:
            logger.warning(f"Failed to save dismissed alerts: {e}")

    def _cleanup(self) -> bool:
        """Trim to the most recent ids once the bound is exceeded."""
        if len(self._ids) <= self._max_entries:
            return False

        recent = list(self._ids)[-self._retain:]
        logger.debug(f"Trimming dismissed alerts from {len(self._ids)} to {len(recent)}")
        self._ids = dict.fromkeys(recent)
        return True

    def add(self, alert_id: str) -> None:
        """Record ``alert_id`` as dismissed and persist the record."""
        self._ids[alert_id] = None
        self._cleanup()
        self._save()

    def contains(self, alert_id: str) -> bool:
        return alert_id in self._ids

    def __contains__(self, alert_id: str) -> bool:
        return self.contains(alert_id)

    def __len__(self) -> int:
        return len(self._ids)

    def ids(self) -> List[str]:
        """Dismissed ids, oldest first."""
        return list(self._ids)

    def clear(self) -> int:
        """Forget every dismissal and drop the persisted record.

        Returns:
            Number of ids cleared
        """
        count = len(self._ids)
        self._ids = {}
        try:
            self._storage.remove(self._key)
        except PersistenceError as e:
            logger.warning(f"Failed to remove dismissed alert record: {e}")

        logger.info(f"Cleared {count} dismissed alerts")
        return count
