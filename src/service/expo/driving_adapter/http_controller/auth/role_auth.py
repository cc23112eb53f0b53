from typing import Optional

from dependency_injector.wiring import Provide, inject
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from opentelemetry import trace

from src.platform.config.di import Container
from src.platform.exception.exceptions import ForbiddenError
from src.service.expo.domain.entity.user_entity import UserEntity, UserRole
from src.service.expo.driving_adapter.http_controller.auth.jwt_auth import JwtAuth


bearer_scheme = HTTPBearer(auto_error=False)


class RoleAuthStrategy:
    @staticmethod
    def can_manage_expos(user: UserEntity) -> bool:
        return user.role in (UserRole.ORGANIZER, UserRole.ADMIN)

    @staticmethod
    def can_book_booths(user: UserEntity) -> bool:
        return user.role == UserRole.EXHIBITOR


@inject
async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    jwt_auth: JwtAuth = Depends(Provide[Container.jwt_auth]),
) -> UserEntity:
    """Caller from the bearer token (stateless, no DB query)."""
    return jwt_auth.get_current_user_info_from_jwt(credentials.credentials if credentials else None)


async def require_organizer(current_user: UserEntity = Depends(get_current_user)) -> UserEntity:
    if not RoleAuthStrategy.can_manage_expos(current_user):
        raise ForbiddenError('Only organizers can perform this action')
    return current_user


async def require_exhibitor(current_user: UserEntity = Depends(get_current_user)) -> UserEntity:
    tracer = trace.get_tracer(__name__)
    with tracer.start_as_current_span(
        'auth.require_exhibitor',
        attributes={'user.id': current_user.id, 'user.role': current_user.role.value},
    ):
        if not RoleAuthStrategy.can_book_booths(current_user):
            raise ForbiddenError('Only exhibitors can book booths')
        return current_user
