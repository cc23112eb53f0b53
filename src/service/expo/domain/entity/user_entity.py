from enum import Enum

import attrs

from src.platform.exception.exceptions import ForbiddenError


class UserRole(str, Enum):
    ADMIN = 'admin'
    ORGANIZER = 'organizer'
    EXHIBITOR = 'exhibitor'
    ATTENDEE = 'attendee'


@attrs.define
class UserEntity:
    """Caller identity rebuilt from the bearer token (users are managed elsewhere)."""

    id: str
    email: str = ''
    name: str = ''
    role: UserRole = UserRole.ATTENDEE
    is_active: bool = True

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def validate_active(self) -> None:
        if not self.is_active:
            raise ForbiddenError('User is inactive')
