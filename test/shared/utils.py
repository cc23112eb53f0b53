from typing import Any, Dict, Optional

from fastapi.testclient import TestClient

from src.service.expo.domain.entity.user_entity import UserEntity, UserRole
from src.service.expo.driving_adapter.http_controller.auth.jwt_auth import JwtAuth
from test.route_constant import BOOTH_BASE, EXPO_BASE, EXPO_STATUS, SESSION_BASE
from test.util_constant import DEFAULT_BOOTH_NUMBER, DEFAULT_EXPO_TITLE, DEFAULT_SESSION_TITLE


def make_user_token(*, user_id: str, role: str, is_active: bool = True) -> str:
    user = UserEntity(
        id=user_id,
        email=f'{user_id}@test.com',
        name=user_id,
        role=UserRole(role),
        is_active=is_active,
    )
    return JwtAuth().create_jwt_token(user)


def auth_headers(token: str) -> Dict[str, str]:
    return {'Authorization': f'Bearer {token}'}


def assert_response_status(response, expected_status: int, message: str | None = None):
    response_text = getattr(response, 'text', getattr(response, 'content', 'N/A'))
    assert response.status_code == expected_status, (
        message or f'Expected {expected_status}, got {response.status_code}: {response_text}'
    )


def create_expo(
    client: TestClient,
    headers: Dict[str, str],
    *,
    title: str = DEFAULT_EXPO_TITLE,
    publish: bool = True,
    allow_booth_sharing: bool = False,
    max_booths_per_exhibitor: int = 1,
) -> Dict[str, Any]:
    response = client.post(
        EXPO_BASE,
        json={
            'title': title,
            'allow_booth_sharing': allow_booth_sharing,
            'max_booths_per_exhibitor': max_booths_per_exhibitor,
        },
        headers=headers,
    )
    assert_response_status(response, 201, 'Failed to create expo')
    expo = response.json()['expo']

    if publish:
        response = client.patch(
            EXPO_STATUS.format(expo_id=expo['id']), json={'status': 'published'}, headers=headers
        )
        assert_response_status(response, 200, 'Failed to publish expo')
        expo = response.json()['expo']
    return expo


def create_booth(
    client: TestClient,
    headers: Dict[str, str],
    *,
    expo_id: str,
    booth_number: str = DEFAULT_BOOTH_NUMBER,
    capacity: int = 1,
    allow_sharing: bool = False,
    allow_waitlist: bool = False,
) -> Dict[str, Any]:
    response = client.post(
        BOOTH_BASE,
        json={
            'expo_id': expo_id,
            'booth_number': booth_number,
            'capacity': capacity,
            'allow_sharing': allow_sharing,
            'allow_waitlist': allow_waitlist,
        },
        headers=headers,
    )
    assert_response_status(response, 201, 'Failed to create booth')
    return response.json()['booth']


def create_session(
    client: TestClient,
    headers: Dict[str, str],
    *,
    expo_id: str,
    title: str = DEFAULT_SESSION_TITLE,
    max_attendees: Optional[int] = None,
    allow_waitlist: bool = True,
) -> Dict[str, Any]:
    response = client.post(
        SESSION_BASE,
        json={
            'expo_id': expo_id,
            'title': title,
            'max_attendees': max_attendees,
            'allow_waitlist': allow_waitlist,
        },
        headers=headers,
    )
    assert_response_status(response, 201, 'Failed to create session')
    return response.json()['session']
