"""Tests for optimistic mutations."""

from __future__ import annotations

import asyncio

import httpx
import pytest

from securewatch.notifications.dismissals import DismissalStore
from securewatch.notifications.models import (
    NotificationCategory,
    NotificationType,
    Provenance,
)
from securewatch.notifications.mutations import (
    FailurePolicy,
    MarkAllRead,
    MarkRead,
    MutationCoordinator,
    Prepend,
    Remove,
)
from securewatch.notifications.reconciliation import NotificationFeed
from tests.notifications.fakes import FIXED_NOW, FakeSource, alert_record, server_record, settle


async def _load_server(feed: NotificationFeed, source: FakeSource, *ids: int) -> None:
    source.notifications = [server_record(i) for i in ids]
    await feed.refresh()


async def _load_alerts(feed: NotificationFeed, source: FakeSource, *ids: int) -> None:
    source.primary_down = True
    source.alerts = [alert_record(i) for i in ids]
    await feed.refresh()


def _assert_unread_matches(feed: NotificationFeed) -> None:
    assert feed.unread_count == len([n for n in feed.notifications if not n.read])


def test_failure_policies() -> None:
    assert MarkRead.policy is FailurePolicy.REVERT
    assert Prepend.policy is FailurePolicy.REVERT
    assert MarkAllRead.policy is FailurePolicy.RESYNC
    assert Remove.policy is FailurePolicy.RESYNC


# =============================================================================
# Mark as read
# =============================================================================


@pytest.mark.asyncio()
async def test_mark_as_read_confirms_server_notification(
    feed: NotificationFeed, source: FakeSource, coordinator: MutationCoordinator
) -> None:
    await _load_server(feed, source, 1, 2)

    assert await coordinator.mark_as_read("1") is True

    assert feed.get("1").read is True
    assert feed.unread_count == 1
    assert ("mark_notification_read", "1") in source.calls
    _assert_unread_matches(feed)


@pytest.mark.asyncio()
async def test_rejected_mark_as_read_reverts_only_that_notification(
    feed: NotificationFeed, source: FakeSource, coordinator: MutationCoordinator
) -> None:
    await _load_server(feed, source, 1, 2)
    await coordinator.mark_as_read("2")

    source.reject_mutations = True
    assert await coordinator.mark_as_read("1") is False

    assert feed.get("1").read is False
    assert feed.get("2").read is True
    assert feed.unread_count == 1


@pytest.mark.asyncio()
async def test_mark_as_read_on_fallback_alert_stays_local(
    feed: NotificationFeed, source: FakeSource, coordinator: MutationCoordinator
) -> None:
    await _load_alerts(feed, source, 1)
    source.reject_mutations = True

    assert await coordinator.mark_as_read("alert-1") is True

    assert feed.get("alert-1").read is True
    assert source.count("mark_notification_read") == 0


@pytest.mark.asyncio()
async def test_mark_as_read_unknown_id(
    feed: NotificationFeed, source: FakeSource, coordinator: MutationCoordinator
) -> None:
    await _load_server(feed, source, 1)

    assert await coordinator.mark_as_read("404") is False
    assert source.count("mark_notification_read") == 0


# =============================================================================
# Mark all as read
# =============================================================================


@pytest.mark.asyncio()
async def test_mark_all_as_read(
    feed: NotificationFeed, source: FakeSource, coordinator: MutationCoordinator
) -> None:
    await _load_server(feed, source, 1, 2, 3)

    assert await coordinator.mark_all_as_read() is True

    assert feed.unread_count == 0
    assert all(n.read for n in feed.notifications)
    assert source.count("mark_all_notifications_read") == 1


@pytest.mark.asyncio()
async def test_rejected_mark_all_resyncs_from_server(
    feed: NotificationFeed, source: FakeSource, coordinator: MutationCoordinator
) -> None:
    await _load_server(feed, source, 1, 2)
    source.notifications = [server_record(1), server_record(2, read=True)]
    source.reject_mutations = True
    fetches = source.count("fetch_notifications")

    assert await coordinator.mark_all_as_read() is False

    assert source.count("fetch_notifications") == fetches + 1
    assert feed.unread_count == 1
    assert feed.get("2").read is True
    _assert_unread_matches(feed)


# =============================================================================
# Remove
# =============================================================================


@pytest.mark.asyncio()
async def test_removed_fallback_alert_is_dismissed_until_cleared(
    feed: NotificationFeed,
    source: FakeSource,
    dismissals: DismissalStore,
    coordinator: MutationCoordinator,
) -> None:
    await _load_alerts(feed, source, 1, 2)

    assert await coordinator.remove_notification("alert-1") is True

    assert [n.id for n in feed.notifications] == ["alert-2"]
    assert dismissals.contains("alert-1")
    assert source.count("delete_notification") == 0

    for _ in range(3):
        await feed.refresh()
    assert [n.id for n in feed.notifications] == ["alert-2"]

    dismissals.clear()
    await feed.refresh()
    assert sorted(n.id for n in feed.notifications) == ["alert-1", "alert-2"]


@pytest.mark.asyncio()
async def test_remove_server_notification_deletes_remotely(
    feed: NotificationFeed, source: FakeSource, coordinator: MutationCoordinator
) -> None:
    await _load_server(feed, source, 1, 2)

    assert await coordinator.remove_notification("1") is True

    assert [n.id for n in feed.notifications] == ["2"]
    assert ("delete_notification", "1") in source.calls


@pytest.mark.asyncio()
async def test_rejected_delete_resyncs_from_server(
    feed: NotificationFeed, source: FakeSource, coordinator: MutationCoordinator
) -> None:
    await _load_server(feed, source, 1, 2)
    source.reject_mutations = True

    assert await coordinator.remove_notification("1") is False

    assert [n.id for n in feed.notifications] == ["1", "2"]


@pytest.mark.asyncio()
async def test_remove_unknown_id_changes_nothing(
    feed: NotificationFeed, source: FakeSource, dismissals: DismissalStore, coordinator: MutationCoordinator
) -> None:
    await _load_server(feed, source, 1)

    assert await coordinator.remove_notification("alert-9") is False

    assert [n.id for n in feed.notifications] == ["1"]
    assert not dismissals.contains("alert-9")
    assert source.count("delete_notification") == 0


# =============================================================================
# Local notifications
# =============================================================================


@pytest.mark.asyncio()
async def test_add_notification_prepends_local_entry(
    feed: NotificationFeed, source: FakeSource, coordinator: MutationCoordinator
) -> None:
    await _load_server(feed, source, 1)

    notification = coordinator.add_notification(
        title="Export finished",
        message="Weekly report is ready",
        type=NotificationType.INFO,
        category=NotificationCategory.USER,
    )

    assert notification is not None
    assert notification.id == "1000000"
    assert notification.provenance is Provenance.LOCAL
    assert notification.timestamp == FIXED_NOW.isoformat()
    assert notification.read is False
    assert [n.id for n in feed.notifications] == ["1000000", "1"]
    assert feed.unread_count == 2


@pytest.mark.asyncio()
async def test_add_notification_keeps_list_capped(
    feed: NotificationFeed, coordinator: MutationCoordinator
) -> None:
    for i in range(feed.max_entries + 1):
        coordinator.add_notification(title=f"n{i}", message="")

    notifications = feed.notifications
    assert len(notifications) == 50
    assert notifications[0].title == "n50"
    assert notifications[-1].title == "n1"
    _assert_unread_matches(feed)


@pytest.mark.asyncio()
async def test_remove_local_notification_makes_no_remote_call(
    feed: NotificationFeed, source: FakeSource, coordinator: MutationCoordinator
) -> None:
    notification = coordinator.add_notification(title="Local", message="m")

    assert await coordinator.remove_notification(notification.id) is True

    assert feed.notifications == []
    assert source.count("delete_notification") == 0


@pytest.mark.asyncio()
async def test_mutations_ignored_after_close(
    feed: NotificationFeed, source: FakeSource, coordinator: MutationCoordinator
) -> None:
    await _load_server(feed, source, 1)
    feed.close()

    assert coordinator.add_notification(title="late", message="") is None
    assert await coordinator.mark_as_read("1") is False
    assert await coordinator.mark_all_as_read() is False
    assert feed.get("1").read is False


# =============================================================================
# Interleaving with refresh
# =============================================================================


@pytest.mark.asyncio()
async def test_pending_mutation_survives_concurrent_refresh(
    feed: NotificationFeed, source: FakeSource, coordinator: MutationCoordinator
) -> None:
    await _load_server(feed, source, 1, 2)
    source.mutation_gate = asyncio.Event()

    task = asyncio.create_task(coordinator.mark_as_read("1"))
    await settle()
    assert feed.get("1").read is True

    # Server has not recorded the change yet
    await feed.refresh()
    assert feed.get("1").read is True
    assert feed.unread_count == 1

    source.mutation_gate.set()
    assert await task is True
    assert feed.get("1").read is True


@pytest.mark.asyncio()
async def test_mutation_confirmed_during_refresh_is_replayed(
    feed: NotificationFeed, source: FakeSource, coordinator: MutationCoordinator
) -> None:
    await _load_server(feed, source, 1, 2)
    gate = source.hold_next_fetch()
    refresh = asyncio.create_task(feed.refresh())
    await settle()

    assert await coordinator.mark_as_read("1") is True

    gate.set()
    assert await refresh is True
    assert feed.get("1").read is True
    assert feed.unread_count == 1


@pytest.mark.asyncio()
async def test_pending_removal_survives_concurrent_refresh(
    feed: NotificationFeed, source: FakeSource, coordinator: MutationCoordinator
) -> None:
    await _load_server(feed, source, 1, 2)
    source.mutation_gate = asyncio.Event()

    task = asyncio.create_task(coordinator.remove_notification("1"))
    await settle()
    await feed.refresh()

    assert [n.id for n in feed.notifications] == ["2"]

    source.mutation_gate.set()
    assert await task is True


# =============================================================================
# Unexpected source failures
# =============================================================================


@pytest.mark.asyncio()
async def test_unexpected_error_on_mark_as_read_reverts(
    feed: NotificationFeed, source: FakeSource, coordinator: MutationCoordinator
) -> None:
    await _load_server(feed, source, 1, 2)
    source.mutation_error = httpx.InvalidURL("Invalid non-printable ASCII character in URL")

    assert await coordinator.mark_as_read("1") is False

    assert feed.get("1").read is False
    assert feed.unread_count == 2


@pytest.mark.asyncio()
async def test_unexpected_error_on_delete_resyncs(
    feed: NotificationFeed, source: FakeSource, coordinator: MutationCoordinator
) -> None:
    await _load_server(feed, source, 1, 2)
    source.mutation_error = RuntimeError("transport closed")

    assert await coordinator.remove_notification("1") is False

    assert [n.id for n in feed.notifications] == ["1", "2"]
