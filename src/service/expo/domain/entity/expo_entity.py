from datetime import datetime, timezone
from typing import Optional

import attrs
import uuid_utils

from src.platform.exception.exceptions import DomainError
from src.platform.logging.loguru_io import Logger
from src.service.expo.domain.enum import ExpoStatus


BOOKABLE_STATUSES = frozenset({ExpoStatus.PUBLISHED, ExpoStatus.ACTIVE})

# Allowed status moves; completed and cancelled are terminal
_STATUS_TRANSITIONS: dict[ExpoStatus, frozenset[ExpoStatus]] = {
    ExpoStatus.DRAFT: frozenset({ExpoStatus.PUBLISHED, ExpoStatus.CANCELLED}),
    ExpoStatus.PUBLISHED: frozenset({ExpoStatus.DRAFT, ExpoStatus.ACTIVE, ExpoStatus.CANCELLED}),
    ExpoStatus.ACTIVE: frozenset({ExpoStatus.COMPLETED, ExpoStatus.CANCELLED}),
    ExpoStatus.COMPLETED: frozenset(),
    ExpoStatus.CANCELLED: frozenset(),
}


@attrs.define
class ExpoSettings:
    allow_booth_sharing: bool = False
    max_booths_per_exhibitor: int = 1


@attrs.define
class ExpoStatistics:
    registered_exhibitors: int = 0
    registered_attendees: int = 0


@attrs.define
class Expo:
    id: str
    title: str
    organizer_id: str
    status: ExpoStatus = ExpoStatus.DRAFT
    description: str = ''
    settings: ExpoSettings = attrs.field(factory=ExpoSettings)
    statistics: ExpoStatistics = attrs.field(factory=ExpoStatistics)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    @Logger.io
    def create(
        cls,
        *,
        title: str,
        organizer_id: str,
        description: str = '',
        allow_booth_sharing: bool = False,
        max_booths_per_exhibitor: int = 1,
    ) -> 'Expo':
        if not title.strip():
            raise DomainError('Expo title is required')
        if max_booths_per_exhibitor < 1:
            raise DomainError('max_booths_per_exhibitor must be at least 1')

        now = datetime.now(timezone.utc)
        return cls(
            id=str(uuid_utils.uuid7()),
            title=title.strip(),
            organizer_id=organizer_id,
            description=description,
            settings=ExpoSettings(
                allow_booth_sharing=allow_booth_sharing,
                max_booths_per_exhibitor=max_booths_per_exhibitor,
            ),
            created_at=now,
            updated_at=now,
        )

    @property
    def is_bookable(self) -> bool:
        return self.status in BOOKABLE_STATUSES

    def is_managed_by(self, *, user_id: str, is_admin: bool = False) -> bool:
        return is_admin or self.organizer_id == user_id

    @Logger.io
    def change_status(self, new_status: ExpoStatus) -> 'Expo':
        """
        Move the expo to ``new_status``

        Raises:
            DomainError: When the move is not allowed from the current status
        """
        if new_status == self.status:
            return self
        if new_status not in _STATUS_TRANSITIONS[self.status]:
            raise DomainError(f'Cannot change expo status from {self.status} to {new_status}')
        return attrs.evolve(self, status=new_status, updated_at=datetime.now(timezone.utc))
