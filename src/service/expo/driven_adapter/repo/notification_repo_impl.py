from typing import Any, Dict, List, Optional

from src.platform.logging.loguru_io import Logger
from src.platform.state.document_store import DocumentStore
from src.service.expo.app.interface.i_notification_repo import INotificationRepo
from src.service.expo.domain.entity.notification_entity import Notification
from src.service.expo.domain.enum import NotificationStatus, NotificationType


COLLECTION = 'notifications'


class NotificationRepoImpl(INotificationRepo):
    def __init__(self, *, store: DocumentStore) -> None:
        self.store = store

    @staticmethod
    def _to_document(notification: Notification) -> Dict[str, Any]:
        return {
            'id': notification.id,
            'recipient_id': notification.recipient_id,
            'type': notification.type.value,
            'title': notification.title,
            'message': notification.message,
            'expo_id': notification.expo_id,
            'related_resource_id': notification.related_resource_id,
            'status': notification.status.value,
            'created_at': notification.created_at,
            'read_at': notification.read_at,
        }

    @staticmethod
    def _to_entity(document: Dict[str, Any]) -> Notification:
        return Notification(
            id=document['id'],
            recipient_id=document['recipient_id'],
            type=NotificationType(document['type']),
            title=document['title'],
            message=document['message'],
            expo_id=document.get('expo_id'),
            related_resource_id=document.get('related_resource_id'),
            status=NotificationStatus(document['status']),
            created_at=document.get('created_at'),
            read_at=document.get('read_at'),
        )

    @Logger.io
    async def create(self, *, notification: Notification) -> Notification:
        return self._to_entity(
            await self.store.insert(COLLECTION, self._to_document(notification))
        )

    @Logger.io
    async def get_by_id(self, *, notification_id: str) -> Optional[Notification]:
        document = await self.store.get(COLLECTION, notification_id)
        return self._to_entity(document) if document else None

    @Logger.io
    async def save(self, *, notification: Notification) -> Notification:
        return self._to_entity(
            await self.store.replace(COLLECTION, self._to_document(notification))
        )

    @Logger.io
    async def list_for_recipient(
        self, *, recipient_id: str, status: Optional[NotificationStatus] = None
    ) -> List[Notification]:
        documents = await self.store.find(
            COLLECTION,
            lambda doc: doc['recipient_id'] == recipient_id
            and (status is None or doc['status'] == status.value),
        )
        # uuid7 ids sort by creation time
        return [self._to_entity(doc) for doc in sorted(documents, key=lambda d: d['id'], reverse=True)]
