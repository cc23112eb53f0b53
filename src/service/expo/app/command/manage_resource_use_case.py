from typing import Self

from dependency_injector.wiring import Provide, inject
from fastapi import Depends

from src.platform.config.core_setting import settings
from src.platform.config.di import Container
from src.platform.exception.exceptions import (
    ForbiddenError,
    NotFoundError,
    ResourceBusyError,
    ServiceBusyError,
)
from src.platform.logging.loguru_io import Logger
from src.service.expo.app.interface.i_bookable_resource_repo import IBookableResourceRepo
from src.service.expo.app.interface.i_event_dispatcher import IEventDispatcher
from src.service.expo.app.interface.i_expo_repo import IExpoRepo
from src.service.expo.app.interface.i_resource_lock import IResourceLock, resource_lock_key
from src.service.expo.domain.capacity_ledger import CapacityLedger
from src.service.expo.domain.entity.bookable_resource_entity import BookableResource
from src.service.expo.domain.entity.user_entity import UserEntity
from src.service.shared_kernel.domain.enum import ResourceKind


class ManageResourceUseCase:
    """Close (terminal) or delete a booth/session. Both run inside the resource's critical section."""

    def __init__(
        self,
        *,
        expo_repo: IExpoRepo,
        resource_repo: IBookableResourceRepo,
        resource_lock: IResourceLock,
        event_dispatcher: IEventDispatcher,
    ) -> None:
        self.expo_repo = expo_repo
        self.resource_repo = resource_repo
        self.resource_lock = resource_lock
        self.event_dispatcher = event_dispatcher

    @classmethod
    @inject
    def depends(
        cls,
        expo_repo: IExpoRepo = Depends(Provide[Container.expo_repo]),
        resource_repo: IBookableResourceRepo = Depends(Provide[Container.bookable_resource_repo]),
        resource_lock: IResourceLock = Depends(Provide[Container.resource_lock]),
        event_dispatcher: IEventDispatcher = Depends(Provide[Container.event_dispatcher]),
    ) -> Self:
        return cls(
            expo_repo=expo_repo,
            resource_repo=resource_repo,
            resource_lock=resource_lock,
            event_dispatcher=event_dispatcher,
        )

    async def _get_managed(
        self, *, resource_id: str, kind: ResourceKind, requester: UserEntity
    ) -> BookableResource:
        resource = await self.resource_repo.get_by_id(resource_id=resource_id)
        if not resource or resource.kind != kind:
            raise NotFoundError(f'{kind.value.capitalize()} not found')

        expo = await self.expo_repo.get_by_id(expo_id=resource.parent_event_id)
        if not expo:
            raise NotFoundError('Expo not found')
        if not expo.is_managed_by(user_id=requester.id, is_admin=requester.is_admin):
            raise ForbiddenError(f'Not authorized to manage this {kind}')
        return resource

    async def _broadcast(self, *, resource: BookableResource, action: str) -> None:
        await self.event_dispatcher.publish_to_topics(
            topics=[resource.id, resource.parent_event_id],
            message_type=resource.kind.update_message_type,
            payload={
                'action': action,
                'resourceKind': resource.kind.value,
                'resourceId': resource.id,
                'expoId': resource.parent_event_id,
                'resource': resource.to_snapshot_dict(),
            },
        )

    @Logger.io
    async def close_resource(
        self, *, resource_id: str, kind: ResourceKind, requester: UserEntity
    ) -> BookableResource:
        await self._get_managed(resource_id=resource_id, kind=kind, requester=requester)
        try:
            async with self.resource_lock.hold(key=resource_lock_key(resource_id)):
                current = await self.resource_repo.get_by_id(resource_id=resource_id)
                if not current:
                    raise NotFoundError(f'{kind.value.capitalize()} not found')
                ledger = CapacityLedger(current)
                if not ledger.close():
                    return current
                saved = await self.resource_repo.save(resource=ledger.status())
                await self._broadcast(resource=saved, action='closed')
                return saved
        except ResourceBusyError as e:
            raise ServiceBusyError(
                f'{kind.value.capitalize()} is busy, please retry',
                retry_after_seconds=settings.LEDGER_BUSY_RETRY_AFTER_SECONDS,
            ) from e

    @Logger.io
    async def delete_resource(
        self, *, resource_id: str, kind: ResourceKind, requester: UserEntity
    ) -> None:
        await self._get_managed(resource_id=resource_id, kind=kind, requester=requester)
        try:
            async with self.resource_lock.hold(key=resource_lock_key(resource_id)):
                current = await self.resource_repo.get_by_id(resource_id=resource_id)
                if not current:
                    raise NotFoundError(f'{kind.value.capitalize()} not found')
                current.validate_can_be_deleted()
                await self.resource_repo.delete(resource_id=resource_id)
                await self._broadcast(resource=current, action='deleted')
        except ResourceBusyError as e:
            raise ServiceBusyError(
                f'{kind.value.capitalize()} is busy, please retry',
                retry_after_seconds=settings.LEDGER_BUSY_RETRY_AFTER_SECONDS,
            ) from e
