"""
Bookable Resource Repository Implementation - document store backed

Documents mirror the persisted layout of the booking core: holders and
waitlist are plain arrays, and ``(parent_event_id, kind, resource_number)``
is a unique index so an expo cannot define the same booth twice.
"""

from typing import Any, Dict, List, Optional

from src.platform.logging.loguru_io import Logger
from src.platform.state.document_store import DocumentStore
from src.service.expo.app.interface.i_bookable_resource_repo import IBookableResourceRepo
from src.service.expo.domain.entity.bookable_resource_entity import BookableResource
from src.service.shared_kernel.domain.enum import ResourceKind


COLLECTION = 'bookable_resources'


class BookableResourceRepoImpl(IBookableResourceRepo):
    def __init__(self, *, store: DocumentStore) -> None:
        self.store = store
        self.store.create_unique_index(COLLECTION, ('parent_event_id', 'kind', 'resource_number'))

    @staticmethod
    def _to_document(resource: BookableResource) -> Dict[str, Any]:
        return {
            'id': resource.id,
            'parent_event_id': resource.parent_event_id,
            'kind': resource.kind.value,
            'resource_number': resource.resource_number,
            'capacity': resource.capacity,
            'holders': list(resource.holders),
            'waitlist': list(resource.waitlist),
            'allow_sharing': resource.allow_sharing,
            'allow_waitlist': resource.allow_waitlist,
            'is_closed': resource.is_closed,
            'status': resource.status.value,  # denormalized for listing filters
            'title': resource.title,
            'created_by': resource.created_by,
            'created_at': resource.created_at,
            'updated_at': resource.updated_at,
        }

    @staticmethod
    def _to_entity(document: Dict[str, Any]) -> BookableResource:
        return BookableResource(
            id=document['id'],
            parent_event_id=document['parent_event_id'],
            kind=ResourceKind(document['kind']),
            resource_number=document['resource_number'],
            capacity=document['capacity'],
            holders=document['holders'],
            waitlist=document['waitlist'],
            allow_sharing=document['allow_sharing'],
            allow_waitlist=document['allow_waitlist'],
            is_closed=document['is_closed'],
            title=document.get('title', ''),
            created_by=document.get('created_by', ''),
            created_at=document.get('created_at'),
            updated_at=document.get('updated_at'),
        )

    @Logger.io
    async def create(self, *, resource: BookableResource) -> BookableResource:
        return self._to_entity(await self.store.insert(COLLECTION, self._to_document(resource)))

    @Logger.io
    async def get_by_id(self, *, resource_id: str) -> Optional[BookableResource]:
        document = await self.store.get(COLLECTION, resource_id)
        return self._to_entity(document) if document else None

    @Logger.io
    async def save(self, *, resource: BookableResource) -> BookableResource:
        return self._to_entity(await self.store.replace(COLLECTION, self._to_document(resource)))

    @Logger.io
    async def delete(self, *, resource_id: str) -> bool:
        return await self.store.delete(COLLECTION, resource_id)

    @Logger.io
    async def list_held_by(
        self, *, parent_event_id: str, kind: ResourceKind, holder_id: str
    ) -> List[BookableResource]:
        documents = await self.store.find(
            COLLECTION,
            lambda doc: doc['parent_event_id'] == parent_event_id
            and doc['kind'] == kind.value
            and holder_id in doc['holders'],
        )
        return [self._to_entity(doc) for doc in documents]

    @Logger.io
    async def list_by_expo(
        self, *, parent_event_id: str, kind: Optional[ResourceKind] = None
    ) -> List[BookableResource]:
        documents = await self.store.find(
            COLLECTION,
            lambda doc: doc['parent_event_id'] == parent_event_id
            and (kind is None or doc['kind'] == kind.value),
        )
        return sorted(
            (self._to_entity(doc) for doc in documents), key=lambda r: r.resource_number
        )
