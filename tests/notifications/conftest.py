"""Fixtures for notification engine tests."""

from __future__ import annotations

import pytest

from securewatch.notifications.dismissals import DismissalStore
from securewatch.notifications.mutations import MutationCoordinator
from securewatch.notifications.reconciliation import NotificationFeed
from securewatch.notifications.storage import MemoryStorage
from tests.notifications.fakes import FIXED_NOW, FakeSource


@pytest.fixture
def source() -> FakeSource:
    return FakeSource()


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def dismissals(storage: MemoryStorage) -> DismissalStore:
    return DismissalStore(storage)


@pytest.fixture
def feed(source: FakeSource, dismissals: DismissalStore) -> NotificationFeed:
    return NotificationFeed(source, dismissals, clock=lambda: FIXED_NOW)


@pytest.fixture
def coordinator(feed: NotificationFeed, source: FakeSource, dismissals: DismissalStore) -> MutationCoordinator:
    ids = iter(range(1_000_000, 2_000_000))
    return MutationCoordinator(
        feed,
        source,
        dismissals,
        id_factory=lambda: str(next(ids)),
        clock=lambda: FIXED_NOW,
    )
