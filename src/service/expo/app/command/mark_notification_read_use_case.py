from typing import Self

from dependency_injector.wiring import Provide, inject
from fastapi import Depends

from src.platform.config.di import Container
from src.platform.exception.exceptions import NotFoundError
from src.platform.logging.loguru_io import Logger
from src.service.expo.app.interface.i_notification_repo import INotificationRepo
from src.service.expo.domain.entity.notification_entity import Notification


class MarkNotificationReadUseCase:
    def __init__(self, *, notification_repo: INotificationRepo) -> None:
        self.notification_repo = notification_repo

    @classmethod
    @inject
    def depends(
        cls,
        notification_repo: INotificationRepo = Depends(Provide[Container.notification_repo]),
    ) -> Self:
        return cls(notification_repo=notification_repo)

    @Logger.io
    async def mark_as_read(self, *, notification_id: str, recipient_id: str) -> Notification:
        notification = await self.notification_repo.get_by_id(notification_id=notification_id)
        # Someone else's notification looks exactly like a missing one
        if not notification or notification.recipient_id != recipient_id:
            raise NotFoundError('Notification not found')

        updated = notification.mark_as_read()
        if updated is notification:
            return notification
        return await self.notification_repo.save(notification=updated)
