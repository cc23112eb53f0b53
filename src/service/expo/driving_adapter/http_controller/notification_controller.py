from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from src.platform.logging.loguru_io import Logger
from src.service.expo.app.command.mark_notification_read_use_case import (
    MarkNotificationReadUseCase,
)
from src.service.expo.app.query.list_notifications_use_case import ListNotificationsUseCase
from src.service.expo.domain.entity.user_entity import UserEntity
from src.service.expo.domain.enum import NotificationStatus
from src.service.expo.driving_adapter.http_controller.auth.role_auth import get_current_user
from src.service.expo.driving_adapter.http_controller.schema.notification_schema import (
    NotificationResponse,
)


router = APIRouter()


@router.get('')
@Logger.io
async def list_my_notifications(
    status_filter: Optional[NotificationStatus] = Query(None, alias='status'),
    current_user: UserEntity = Depends(get_current_user),
    use_case: ListNotificationsUseCase = Depends(ListNotificationsUseCase.depends),
) -> List[NotificationResponse]:
    """Durable record of promotions and other pushes the client may have missed while offline."""
    notifications = await use_case.list_notifications(
        recipient_id=current_user.id, status=status_filter
    )
    return [NotificationResponse.from_entity(n) for n in notifications]


@router.patch('/{notification_id}/read')
@Logger.io
async def mark_notification_read(
    notification_id: str,
    current_user: UserEntity = Depends(get_current_user),
    use_case: MarkNotificationReadUseCase = Depends(MarkNotificationReadUseCase.depends),
) -> NotificationResponse:
    notification = await use_case.mark_as_read(
        notification_id=notification_id, recipient_id=current_user.id
    )
    return NotificationResponse.from_entity(notification)
