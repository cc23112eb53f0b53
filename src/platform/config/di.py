"""
https://python-dependency-injector.ets-labs.org/index.html
https://python-dependency-injector.ets-labs.org/examples/fastapi.html
"""

from dependency_injector import containers, providers

from src.platform.config.core_setting import Settings
from src.platform.metrics.booking_metrics import metrics as booking_metrics
from src.platform.state.document_store import InMemoryDocumentStore
from src.platform.state.kvrocks_document_store import KvrocksDocumentStore
from src.platform.state.resource_lock import ResourceLockRegistry
from src.service.expo.driven_adapter.channel.event_dispatcher_impl import EventDispatcherImpl
from src.service.expo.driven_adapter.repo.bookable_resource_repo_impl import (
    BookableResourceRepoImpl,
)
from src.service.expo.driven_adapter.repo.expo_repo_impl import ExpoRepoImpl
from src.service.expo.driven_adapter.repo.notification_repo_impl import NotificationRepoImpl
from src.service.expo.driving_adapter.http_controller.auth.jwt_auth import JwtAuth
from src.service.expo.driving_adapter.websocket.channel_websocket_service import (
    ChannelWebSocketService,
)


class Container(containers.DeclarativeContainer):
    # Configuration
    config_service = providers.Singleton(Settings)

    # Storage shared by every repository (Kvrocks in deployments, in-memory for tests)
    document_store = providers.Selector(
        config_service.provided.DOCUMENT_STORE_BACKEND,
        kvrocks=providers.Singleton(
            KvrocksDocumentStore,
            key_prefix=config_service.provided.DOCUMENT_STORE_KEY_PREFIX,
        ),
        memory=providers.Singleton(InMemoryDocumentStore),
    )

    # Repositories
    expo_repo = providers.Singleton(ExpoRepoImpl, store=document_store)
    bookable_resource_repo = providers.Singleton(BookableResourceRepoImpl, store=document_store)
    notification_repo = providers.Singleton(NotificationRepoImpl, store=document_store)

    # Per-resource critical sections for the capacity ledger
    resource_lock = providers.Singleton(
        ResourceLockRegistry,
        timeout_seconds=config_service.provided.LEDGER_LOCK_TIMEOUT_SECONDS,
    )

    # Prometheus collectors register globally, so the module instance is shared
    metrics = providers.Object(booking_metrics)

    # Push channel fan-out
    event_dispatcher = providers.Singleton(
        EventDispatcherImpl,
        buffer_size=config_service.provided.DISPATCHER_SUBSCRIBER_BUFFER_SIZE,
        metrics=metrics,
    )

    # Auth service
    jwt_auth = providers.Singleton(JwtAuth)

    channel_websocket_service = providers.Singleton(
        ChannelWebSocketService,
        jwt_auth=jwt_auth,
        dispatcher=event_dispatcher,
    )


container = Container()


def cleanup() -> None:
    container.reset_singletons()
