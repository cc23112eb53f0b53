from abc import ABC, abstractmethod
from typing import Optional

from src.service.expo.domain.entity.expo_entity import Expo


class IExpoRepo(ABC):
    @abstractmethod
    async def create(self, *, expo: Expo) -> Expo:
        pass

    @abstractmethod
    async def get_by_id(self, *, expo_id: str) -> Optional[Expo]:
        pass

    @abstractmethod
    async def save(self, *, expo: Expo) -> Expo:
        pass

    @abstractmethod
    async def increment_statistic(self, *, expo_id: str, field: str, amount: int) -> int:
        """Atomic counter update on ``statistics.<field>``; returns the new value."""
        pass
