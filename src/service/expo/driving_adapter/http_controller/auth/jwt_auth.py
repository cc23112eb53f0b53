"""
Bearer token verification

Credentials are issued by the identity service; this side only verifies the
signature and rebuilds the caller from the claims (no user lookup).
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt

from src.platform.config.core_setting import settings
from src.platform.exception.exceptions import AuthenticationError
from src.service.expo.domain.entity.user_entity import UserEntity, UserRole


class JwtAuth:
    def __init__(self) -> None:
        self.secret = settings.SECRET_KEY.get_secret_value()
        self.algorithm = settings.ALGORITHM
        self.token_expire_minutes = settings.ACCESS_TOKEN_EXPIRE_MINUTES

    def create_jwt_token(self, user_entity: UserEntity) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            'sub': user_entity.id,
            'exp': now + timedelta(minutes=self.token_expire_minutes),
            'iat': now,
            'email': user_entity.email,
            'name': user_entity.name,
            'role': user_entity.role.value,
            'is_active': user_entity.is_active,
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def decode_jwt_token(self, token: str) -> Dict[str, Any]:
        try:
            return jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except jwt.PyJWTError as e:
            raise AuthenticationError('Invalid token') from e

    def get_current_user_info_from_jwt(self, token: Optional[str]) -> UserEntity:
        if not token:
            raise AuthenticationError('Not authenticated')

        payload = self.decode_jwt_token(token)

        user_id = payload.get('sub')
        role = payload.get('role')
        if not user_id or not role:
            raise AuthenticationError('Invalid token')
        try:
            user_role = UserRole(role)
        except ValueError as e:
            raise AuthenticationError('Invalid token') from e

        # Rebuild UserEntity from JWT payload (no DB query)
        user_entity = UserEntity(
            id=str(user_id),
            email=payload.get('email', ''),
            name=payload.get('name', ''),
            role=user_role,
            is_active=payload.get('is_active', True),
        )
        user_entity.validate_active()
        return user_entity
