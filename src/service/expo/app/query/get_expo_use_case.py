from typing import Self

from dependency_injector.wiring import Provide, inject
from fastapi import Depends

from src.platform.config.di import Container
from src.platform.exception.exceptions import NotFoundError
from src.platform.logging.loguru_io import Logger
from src.service.expo.app.interface.i_expo_repo import IExpoRepo
from src.service.expo.domain.entity.expo_entity import Expo


class GetExpoUseCase:
    def __init__(self, *, expo_repo: IExpoRepo) -> None:
        self.expo_repo = expo_repo

    @classmethod
    @inject
    def depends(cls, expo_repo: IExpoRepo = Depends(Provide[Container.expo_repo])) -> Self:
        return cls(expo_repo=expo_repo)

    @Logger.io
    async def get_expo(self, *, expo_id: str) -> Expo:
        expo = await self.expo_repo.get_by_id(expo_id=expo_id)
        if not expo:
            raise NotFoundError('Expo not found')
        return expo
