from typing import List, Optional, Self

from dependency_injector.wiring import Provide, inject
from fastapi import Depends

from src.platform.config.di import Container
from src.platform.exception.exceptions import NotFoundError
from src.platform.logging.loguru_io import Logger
from src.service.expo.app.interface.i_bookable_resource_repo import IBookableResourceRepo
from src.service.expo.domain.entity.bookable_resource_entity import BookableResource
from src.service.shared_kernel.domain.enum import ResourceKind


class GetResourceUseCase:
    """
    Read-only snapshots. Readers never enter the resource critical section, so a
    snapshot may trail an in-flight booking by one transition but is always
    internally consistent.
    """

    def __init__(self, *, resource_repo: IBookableResourceRepo) -> None:
        self.resource_repo = resource_repo

    @classmethod
    @inject
    def depends(
        cls,
        resource_repo: IBookableResourceRepo = Depends(Provide[Container.bookable_resource_repo]),
    ) -> Self:
        return cls(resource_repo=resource_repo)

    @Logger.io
    async def get_resource(self, *, resource_id: str, kind: ResourceKind) -> BookableResource:
        resource = await self.resource_repo.get_by_id(resource_id=resource_id)
        if not resource or resource.kind != kind:
            raise NotFoundError(f'{kind.value.capitalize()} not found')
        return resource

    @Logger.io
    async def list_by_expo(
        self, *, expo_id: str, kind: Optional[ResourceKind] = None
    ) -> List[BookableResource]:
        return await self.resource_repo.list_by_expo(parent_event_id=expo_id, kind=kind)
