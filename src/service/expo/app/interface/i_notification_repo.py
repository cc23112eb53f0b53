from abc import ABC, abstractmethod
from typing import List, Optional

from src.service.expo.domain.entity.notification_entity import Notification
from src.service.expo.domain.enum import NotificationStatus


class INotificationRepo(ABC):
    @abstractmethod
    async def create(self, *, notification: Notification) -> Notification:
        pass

    @abstractmethod
    async def get_by_id(self, *, notification_id: str) -> Optional[Notification]:
        pass

    @abstractmethod
    async def save(self, *, notification: Notification) -> Notification:
        pass

    @abstractmethod
    async def list_for_recipient(
        self, *, recipient_id: str, status: Optional[NotificationStatus] = None
    ) -> List[Notification]:
        """Newest first."""
        pass
