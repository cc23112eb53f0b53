"""
Bookable Resource Repository Interface

Booths and sessions share one collection; ``kind`` tells them apart.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from src.service.expo.domain.entity.bookable_resource_entity import BookableResource
from src.service.shared_kernel.domain.enum import ResourceKind


class IBookableResourceRepo(ABC):
    @abstractmethod
    async def create(self, *, resource: BookableResource) -> BookableResource:
        """
        Persist a new resource

        Raises:
            ConflictError: When the expo already has a resource with the same number
        """
        pass

    @abstractmethod
    async def get_by_id(self, *, resource_id: str) -> Optional[BookableResource]:
        pass

    @abstractmethod
    async def save(self, *, resource: BookableResource) -> BookableResource:
        pass

    @abstractmethod
    async def delete(self, *, resource_id: str) -> bool:
        pass

    @abstractmethod
    async def list_held_by(
        self, *, parent_event_id: str, kind: ResourceKind, holder_id: str
    ) -> List[BookableResource]:
        """Resources of ``kind`` in the expo where ``holder_id`` currently holds a slot."""
        pass

    @abstractmethod
    async def list_by_expo(
        self, *, parent_event_id: str, kind: Optional[ResourceKind] = None
    ) -> List[BookableResource]:
        pass
