from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from src.service.expo.domain.entity.notification_entity import Notification
from src.service.expo.domain.enum import NotificationStatus, NotificationType


class NotificationResponse(BaseModel):
    id: str
    type: NotificationType
    title: str
    message: str
    expo_id: Optional[str] = None
    related_resource_id: Optional[str] = None
    status: NotificationStatus
    created_at: Optional[datetime] = None
    read_at: Optional[datetime] = None

    @classmethod
    def from_entity(cls, notification: Notification) -> 'NotificationResponse':
        return cls(
            id=notification.id,
            type=notification.type,
            title=notification.title,
            message=notification.message,
            expo_id=notification.expo_id,
            related_resource_id=notification.related_resource_id,
            status=notification.status,
            created_at=notification.created_at,
            read_at=notification.read_at,
        )
