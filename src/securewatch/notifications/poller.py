"""Background polling of the notification feeds."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

logger = logging.getLogger(__name__)


class Poller:
    """Runs a refresh immediately on start and then on a fixed interval.

    At most one polling task exists at a time: starting a running poller
    does nothing.

    Example:
        poller = Poller(feed.refresh, interval=30)
        await poller.start()
        ...
        await poller.stop()
    """

    def __init__(
        self,
        refresh: Callable[[], Awaitable[Any]],
        interval: float = 30.0,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        """Initialize poller.

        Args:
            refresh: Coroutine function invoked on every tick
            interval: Seconds between refreshes
            sleep: Awaitable delay between ticks
        """
        if interval <= 0:
            raise ValueError("interval must be positive")
        self._refresh = refresh
        self._interval = interval
        self._sleep = sleep
        self._task: Optional[asyncio.Task] = None
        self._ticks = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def interval(self) -> float:
        return self._interval

    async def start(self) -> bool:
        """Start polling.

        Returns:
            True if a new polling task was created
        """
        if self.running:
            logger.debug("Poller already running")
            return False

        self._task = asyncio.create_task(self._poll_loop())
        logger.info(f"Poller started (interval={self._interval}s)")
        return True

    async def stop(self) -> None:
        """Cancel the polling task and wait for it to finish."""
        task = self._task
        self._task = None
        if task is None:
            return

        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

        logger.info(f"Poller stopped after {self._ticks} refreshes")

    async def _poll_loop(self) -> None:
        try:
            while True:
                self._ticks += 1
                try:
                    await self._refresh()
                except Exception as e:
                    logger.error(f"Scheduled refresh failed: {e}")
                await self._sleep(self._interval)
        except asyncio.CancelledError:
            logger.debug("Poll loop cancelled")
            raise

    def get_status(self) -> Dict[str, Any]:
        return {
            "running": self.running,
            "interval_seconds": self._interval,
            "ticks": self._ticks,
        }
