"""Transient toast messages with timed expiry.

Toasts live outside the notification list: they are never persisted,
de-duplicated or capped. Each one owns a one-shot timer that removes it
after its duration.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from typing import Callable, Dict, List, Optional

from securewatch.notifications.models import TimeBasedIdFactory, Toast

logger = logging.getLogger(__name__)


class ToastScheduler:
    """Holds the visible toasts and their expiry timers.

    Must be used from inside a running event loop.
    """

    DEFAULT_DURATION_MS = 5000

    def __init__(
        self,
        default_duration_ms: int = DEFAULT_DURATION_MS,
        id_factory: Optional[Callable[[], str]] = None,
    ):
        self._default_duration_ms = default_duration_ms
        self._id_factory = id_factory or TimeBasedIdFactory()
        self._toasts: List[Toast] = []
        self._timers: Dict[str, asyncio.TimerHandle] = {}
        self._closed = False

    @property
    def toasts(self) -> List[Toast]:
        return list(self._toasts)

    @property
    def pending_timers(self) -> int:
        return len(self._timers)

    def add_toast(self, toast: Toast) -> Optional[Toast]:
        """Show a toast and schedule its removal.

        Args:
            toast: Toast to show; ``id`` and a missing ``duration`` are filled in

        Returns:
            The toast as stored, or None once the scheduler is closed
        """
        loop = asyncio.get_running_loop()
        if self._closed:
            logger.debug(f"Ignoring toast after close: {toast.message}")
            return None
        scheduled = replace(
            toast,
            id=self._id_factory(),
            duration=toast.duration or self._default_duration_ms,
        )
        self._toasts.append(scheduled)
        self._timers[scheduled.id] = loop.call_later(
            scheduled.duration / 1000, self._expire, scheduled.id
        )

        logger.debug(f"Toast {scheduled.id} added ({scheduled.kind.value}, {scheduled.duration}ms)")
        return scheduled

    def _expire(self, toast_id: str) -> None:
        self._timers.pop(toast_id, None)
        self.remove_toast(toast_id)

    def remove_toast(self, toast_id: str) -> bool:
        """Remove a toast now; removing an unknown toast is a no-op.

        Returns:
            True if a toast was removed
        """
        timer = self._timers.pop(toast_id, None)
        if timer is not None:
            timer.cancel()

        remaining = [t for t in self._toasts if t.id != toast_id]
        removed = len(remaining) != len(self._toasts)
        self._toasts = remaining
        return removed

    def close(self) -> int:
        """Cancel every outstanding timer and refuse new toasts.

        Returns:
            Number of timers cancelled
        """
        self._closed = True
        count = len(self._timers)
        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()
        return count
