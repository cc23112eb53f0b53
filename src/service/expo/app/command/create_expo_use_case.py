from typing import Self

from dependency_injector.wiring import Provide, inject
from fastapi import Depends

from src.platform.config.di import Container
from src.platform.logging.loguru_io import Logger
from src.service.expo.app.interface.i_expo_repo import IExpoRepo
from src.service.expo.domain.entity.expo_entity import Expo


class CreateExpoUseCase:
    def __init__(self, *, expo_repo: IExpoRepo) -> None:
        self.expo_repo = expo_repo

    @classmethod
    @inject
    def depends(cls, expo_repo: IExpoRepo = Depends(Provide[Container.expo_repo])) -> Self:
        return cls(expo_repo=expo_repo)

    @Logger.io
    async def create_expo(
        self,
        *,
        organizer_id: str,
        title: str,
        description: str = '',
        allow_booth_sharing: bool = False,
        max_booths_per_exhibitor: int = 1,
    ) -> Expo:
        expo = Expo.create(
            title=title,
            organizer_id=organizer_id,
            description=description,
            allow_booth_sharing=allow_booth_sharing,
            max_booths_per_exhibitor=max_booths_per_exhibitor,
        )
        return await self.expo_repo.create(expo=expo)
