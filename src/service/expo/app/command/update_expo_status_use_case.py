from typing import Self

from dependency_injector.wiring import Provide, inject
from fastapi import Depends

from src.platform.channel.channel_config import ChannelConfig
from src.platform.config.di import Container
from src.platform.exception.exceptions import ForbiddenError, NotFoundError
from src.platform.logging.loguru_io import Logger
from src.service.expo.app.interface.i_event_dispatcher import IEventDispatcher
from src.service.expo.app.interface.i_expo_repo import IExpoRepo
from src.service.expo.domain.entity.expo_entity import Expo
from src.service.expo.domain.entity.user_entity import UserEntity
from src.service.expo.domain.enum import ExpoStatus


class UpdateExpoStatusUseCase:
    def __init__(self, *, expo_repo: IExpoRepo, event_dispatcher: IEventDispatcher) -> None:
        self.expo_repo = expo_repo
        self.event_dispatcher = event_dispatcher

    @classmethod
    @inject
    def depends(
        cls,
        expo_repo: IExpoRepo = Depends(Provide[Container.expo_repo]),
        event_dispatcher: IEventDispatcher = Depends(Provide[Container.event_dispatcher]),
    ) -> Self:
        return cls(expo_repo=expo_repo, event_dispatcher=event_dispatcher)

    @Logger.io
    async def update_status(
        self, *, expo_id: str, new_status: ExpoStatus, requester: UserEntity
    ) -> Expo:
        """
        Publish, start, complete or cancel an expo

        Raises:
            NotFoundError: Unknown expo
            ForbiddenError: Requester neither owns the expo nor is an admin
            DomainError: Transition not allowed from the current status
        """
        expo = await self.expo_repo.get_by_id(expo_id=expo_id)
        if not expo:
            raise NotFoundError('Expo not found')
        if not expo.is_managed_by(user_id=requester.id, is_admin=requester.is_admin):
            raise ForbiddenError('Not authorized to update this expo')

        updated = expo.change_status(new_status)
        if updated is expo:
            return expo

        saved = await self.expo_repo.save(expo=updated)
        await self.event_dispatcher.publish_to_topics(
            topics=[saved.id],
            message_type=ChannelConfig.MessageType.EXPO_UPDATE,
            payload={'action': 'status_changed', 'expoId': saved.id, 'status': saved.status.value},
        )
        return saved
