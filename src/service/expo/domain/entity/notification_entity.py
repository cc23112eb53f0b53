from datetime import datetime, timezone
from typing import Optional

import attrs
import uuid_utils

from src.service.expo.domain.enum import NotificationStatus, NotificationType


@attrs.define
class Notification:
    id: str
    recipient_id: str
    type: NotificationType
    title: str
    message: str
    expo_id: Optional[str] = None
    related_resource_id: Optional[str] = None
    status: NotificationStatus = NotificationStatus.UNREAD
    created_at: Optional[datetime] = None
    read_at: Optional[datetime] = None

    @classmethod
    def create(
        cls,
        *,
        recipient_id: str,
        type: NotificationType,
        title: str,
        message: str,
        expo_id: Optional[str] = None,
        related_resource_id: Optional[str] = None,
    ) -> 'Notification':
        return cls(
            id=str(uuid_utils.uuid7()),
            recipient_id=recipient_id,
            type=type,
            title=title,
            message=message,
            expo_id=expo_id,
            related_resource_id=related_resource_id,
            created_at=datetime.now(timezone.utc),
        )

    def to_payload(self) -> dict:
        return {
            'id': self.id,
            'type': self.type.value,
            'title': self.title,
            'message': self.message,
            'expoId': self.expo_id,
            'relatedResourceId': self.related_resource_id,
            'status': self.status.value,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
        }

    def mark_as_read(self) -> 'Notification':
        if self.status == NotificationStatus.READ:
            return self
        return attrs.evolve(
            self, status=NotificationStatus.READ, read_at=datetime.now(timezone.utc)
        )
