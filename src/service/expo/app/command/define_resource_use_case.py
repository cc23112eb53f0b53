from typing import Optional, Self

from dependency_injector.wiring import Provide, inject
from fastapi import Depends

from src.platform.config.di import Container
from src.platform.exception.exceptions import ForbiddenError, NotFoundError
from src.platform.logging.loguru_io import Logger
from src.service.expo.app.interface.i_bookable_resource_repo import IBookableResourceRepo
from src.service.expo.app.interface.i_expo_repo import IExpoRepo
from src.service.expo.domain.entity.bookable_resource_entity import BookableResource
from src.service.expo.domain.entity.user_entity import UserEntity
from src.service.shared_kernel.domain.enum import ResourceKind


class DefineResourceUseCase:
    """Organizers define the booths and sessions of their expo."""

    def __init__(self, *, expo_repo: IExpoRepo, resource_repo: IBookableResourceRepo) -> None:
        self.expo_repo = expo_repo
        self.resource_repo = resource_repo

    @classmethod
    @inject
    def depends(
        cls,
        expo_repo: IExpoRepo = Depends(Provide[Container.expo_repo]),
        resource_repo: IBookableResourceRepo = Depends(Provide[Container.bookable_resource_repo]),
    ) -> Self:
        return cls(expo_repo=expo_repo, resource_repo=resource_repo)

    async def _ensure_managed_expo(
        self, *, expo_id: str, requester: UserEntity, kind: ResourceKind
    ) -> None:
        expo = await self.expo_repo.get_by_id(expo_id=expo_id)
        if not expo:
            raise NotFoundError('Expo not found')
        if not expo.is_managed_by(user_id=requester.id, is_admin=requester.is_admin):
            raise ForbiddenError(f'Not authorized to create {kind}s for this expo')

    @Logger.io
    async def define_booth(
        self,
        *,
        expo_id: str,
        booth_number: str,
        requester: UserEntity,
        capacity: int = 1,
        allow_sharing: bool = False,
        allow_waitlist: bool = False,
        title: str = '',
    ) -> BookableResource:
        await self._ensure_managed_expo(expo_id=expo_id, requester=requester, kind=ResourceKind.BOOTH)
        booth = BookableResource.create(
            parent_event_id=expo_id,
            kind=ResourceKind.BOOTH,
            resource_number=booth_number,
            capacity=capacity,
            allow_sharing=allow_sharing,
            allow_waitlist=allow_waitlist,
            title=title,
            created_by=requester.id,
        )
        return await self.resource_repo.create(resource=booth)

    @Logger.io
    async def define_session(
        self,
        *,
        expo_id: str,
        title: str,
        requester: UserEntity,
        max_attendees: Optional[int] = None,
        allow_waitlist: bool = True,
        session_number: Optional[str] = None,
    ) -> BookableResource:
        await self._ensure_managed_expo(
            expo_id=expo_id, requester=requester, kind=ResourceKind.SESSION
        )
        session = BookableResource.create(
            parent_event_id=expo_id,
            kind=ResourceKind.SESSION,
            resource_number=session_number or title,
            capacity=max_attendees,
            # Attendees always share a session; only the seat count limits them
            allow_sharing=True,
            allow_waitlist=allow_waitlist,
            title=title,
            created_by=requester.id,
        )
        return await self.resource_repo.create(resource=session)
