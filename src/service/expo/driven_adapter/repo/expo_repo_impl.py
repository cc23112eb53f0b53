from typing import Any, Dict, Optional

from src.platform.logging.loguru_io import Logger
from src.platform.state.document_store import DocumentStore
from src.service.expo.app.interface.i_expo_repo import IExpoRepo
from src.service.expo.domain.entity.expo_entity import Expo, ExpoSettings, ExpoStatistics
from src.service.expo.domain.enum import ExpoStatus


COLLECTION = 'expos'


class ExpoRepoImpl(IExpoRepo):
    def __init__(self, *, store: DocumentStore) -> None:
        self.store = store

    @staticmethod
    def _to_document(expo: Expo) -> Dict[str, Any]:
        return {
            'id': expo.id,
            'title': expo.title,
            'organizer_id': expo.organizer_id,
            'status': expo.status.value,
            'description': expo.description,
            'settings': {
                'allow_booth_sharing': expo.settings.allow_booth_sharing,
                'max_booths_per_exhibitor': expo.settings.max_booths_per_exhibitor,
            },
            'statistics': {
                'registered_exhibitors': expo.statistics.registered_exhibitors,
                'registered_attendees': expo.statistics.registered_attendees,
            },
            'created_at': expo.created_at,
            'updated_at': expo.updated_at,
        }

    @staticmethod
    def _to_entity(document: Dict[str, Any]) -> Expo:
        return Expo(
            id=document['id'],
            title=document['title'],
            organizer_id=document['organizer_id'],
            status=ExpoStatus(document['status']),
            description=document.get('description', ''),
            settings=ExpoSettings(**document.get('settings', {})),
            statistics=ExpoStatistics(**document.get('statistics', {})),
            created_at=document.get('created_at'),
            updated_at=document.get('updated_at'),
        )

    @Logger.io
    async def create(self, *, expo: Expo) -> Expo:
        return self._to_entity(await self.store.insert(COLLECTION, self._to_document(expo)))

    @Logger.io
    async def get_by_id(self, *, expo_id: str) -> Optional[Expo]:
        document = await self.store.get(COLLECTION, expo_id)
        return self._to_entity(document) if document else None

    @Logger.io
    async def save(self, *, expo: Expo) -> Expo:
        # Counters are owned by increment_statistic; never overwrite them from a stale entity
        current = await self.store.get(COLLECTION, expo.id)
        document = self._to_document(expo)
        if current:
            document['statistics'] = current['statistics']
        return self._to_entity(await self.store.replace(COLLECTION, document))

    @Logger.io
    async def increment_statistic(self, *, expo_id: str, field: str, amount: int) -> int:
        return await self.store.increment(COLLECTION, expo_id, f'statistics.{field}', amount)
