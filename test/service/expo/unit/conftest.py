"""
Conftest for coordinator unit tests - real in-memory adapters, no FastAPI app.
"""

from unittest.mock import MagicMock

import pytest

from src.platform.state.document_store import InMemoryDocumentStore
from src.platform.state.resource_lock import ResourceLockRegistry
from src.service.expo.app.command.booking_coordinator import BookingCoordinator
from src.service.expo.driven_adapter.repo.bookable_resource_repo_impl import (
    BookableResourceRepoImpl,
)
from src.service.expo.driven_adapter.repo.expo_repo_impl import ExpoRepoImpl
from src.service.expo.driven_adapter.repo.notification_repo_impl import NotificationRepoImpl
from test.shared.fakes import RecordingDispatcher


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def resource_repo(store: InMemoryDocumentStore) -> BookableResourceRepoImpl:
    return BookableResourceRepoImpl(store=store)


@pytest.fixture
def expo_repo(store: InMemoryDocumentStore) -> ExpoRepoImpl:
    return ExpoRepoImpl(store=store)


@pytest.fixture
def notification_repo(store: InMemoryDocumentStore) -> NotificationRepoImpl:
    return NotificationRepoImpl(store=store)


@pytest.fixture
def dispatcher() -> RecordingDispatcher:
    return RecordingDispatcher()


@pytest.fixture
def mock_metrics() -> MagicMock:
    return MagicMock()


@pytest.fixture
def coordinator(
    resource_repo: BookableResourceRepoImpl,
    expo_repo: ExpoRepoImpl,
    notification_repo: NotificationRepoImpl,
    dispatcher: RecordingDispatcher,
    mock_metrics: MagicMock,
) -> BookingCoordinator:
    return BookingCoordinator(
        resource_repo=resource_repo,
        expo_repo=expo_repo,
        notification_repo=notification_repo,
        event_dispatcher=dispatcher,
        resource_lock=ResourceLockRegistry(timeout_seconds=1.0),
        metrics=mock_metrics,
        busy_retry_attempts=3,
        busy_retry_base_delay=0.0,
    )
