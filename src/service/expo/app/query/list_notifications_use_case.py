from typing import List, Optional, Self

from dependency_injector.wiring import Provide, inject
from fastapi import Depends

from src.platform.config.di import Container
from src.platform.logging.loguru_io import Logger
from src.service.expo.app.interface.i_notification_repo import INotificationRepo
from src.service.expo.domain.entity.notification_entity import Notification
from src.service.expo.domain.enum import NotificationStatus


class ListNotificationsUseCase:
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
    async def list_notifications(
        self, *, recipient_id: str, status: Optional[NotificationStatus] = None
    ) -> List[Notification]:
        return await self.notification_repo.list_for_recipient(
            recipient_id=recipient_id, status=status
        )
