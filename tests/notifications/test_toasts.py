"""Tests for toast scheduling."""

from __future__ import annotations

import asyncio

import pytest

from securewatch.notifications.models import Toast, ToastKind
from securewatch.notifications.toasts import ToastScheduler


def _scheduler() -> ToastScheduler:
    ids = iter(range(1, 1000))
    return ToastScheduler(id_factory=lambda: f"toast-{next(ids)}")


@pytest.mark.asyncio()
async def test_toast_expires_after_duration() -> None:
    scheduler = _scheduler()

    toast = scheduler.add_toast(Toast(message="Saved", kind=ToastKind.SUCCESS, duration=100))
    assert [t.id for t in scheduler.toasts] == [toast.id]

    await asyncio.sleep(0.2)

    assert scheduler.toasts == []
    assert scheduler.pending_timers == 0


@pytest.mark.asyncio()
async def test_default_duration_is_applied() -> None:
    scheduler = _scheduler()

    toast = scheduler.add_toast(Toast(message="Hello"))

    assert toast.duration == 5000
    assert toast.id == "toast-1"
    scheduler.close()


@pytest.mark.asyncio()
async def test_manual_removal_cancels_timer_and_is_idempotent() -> None:
    scheduler = _scheduler()
    toast = scheduler.add_toast(Toast(message="Hello", duration=100))

    assert scheduler.remove_toast(toast.id) is True
    assert scheduler.pending_timers == 0
    assert scheduler.remove_toast(toast.id) is False

    await asyncio.sleep(0.15)
    assert scheduler.toasts == []


@pytest.mark.asyncio()
async def test_toasts_expire_independently() -> None:
    scheduler = _scheduler()
    short = scheduler.add_toast(Toast(message="short", duration=50))
    long = scheduler.add_toast(Toast(message="long", duration=10_000))

    await asyncio.sleep(0.15)

    assert [t.id for t in scheduler.toasts] == [long.id]
    assert short.id != long.id
    scheduler.close()


@pytest.mark.asyncio()
async def test_close_cancels_all_timers() -> None:
    scheduler = _scheduler()
    scheduler.add_toast(Toast(message="a", duration=50))
    scheduler.add_toast(Toast(message="b", duration=50))

    assert scheduler.close() == 2

    await asyncio.sleep(0.1)
    assert len(scheduler.toasts) == 2
    assert scheduler.pending_timers == 0


def test_add_toast_requires_running_loop() -> None:
    with pytest.raises(RuntimeError):
        _scheduler().add_toast(Toast(message="no loop"))


@pytest.mark.asyncio()
async def test_add_toast_after_close_schedules_nothing() -> None:
    scheduler = _scheduler()
    scheduler.close()

    assert scheduler.add_toast(Toast(message="late", duration=50)) is None

    assert scheduler.toasts == []
    assert scheduler.pending_timers == 0
