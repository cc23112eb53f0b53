"""Bookable Resource Kind Enum"""

from enum import StrEnum


class ResourceKind(StrEnum):
    BOOTH = 'booth'
    SESSION = 'session'

    @property
    def update_message_type(self) -> str:
        """Push channel frame type that carries events for this kind of resource."""
        return f'{self.value}_update'
