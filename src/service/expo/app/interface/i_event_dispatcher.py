"""
Event Dispatcher Interface

Fan-out of committed booking events to connected push-channel subscribers.
Delivery is best-effort: publishing never waits on a subscriber and keeps
no backlog for subscribers that are offline.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable

from src.service.expo.domain.domain_event.booking_event import BookingEvent


class IEventDispatcher(ABC):
    @abstractmethod
    async def publish(self, event: BookingEvent) -> int:
        """
        Push ``event`` to subscribers of its resource or its expo

        Returns:
            Number of subscribers the frame was handed to
        """
        pass

    @abstractmethod
    async def publish_to_topics(
        self, *, topics: Iterable[str], message_type: str, payload: Dict[str, Any]
    ) -> int:
        pass

    @abstractmethod
    async def publish_to_user(
        self, *, user_id: str, message_type: str, payload: Dict[str, Any]
    ) -> int:
        pass
