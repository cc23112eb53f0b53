from typing import Any, Dict

from fastapi.testclient import TestClient
import pytest

from src.service.expo.domain.entity.user_entity import UserRole
from test.route_constant import EXPO_GET, EXPO_SESSIONS, SESSION_CANCEL, SESSION_GET, SESSION_REGISTER
from test.shared.utils import (
    assert_response_status,
    auth_headers,
    create_expo,
    create_session,
    make_user_token,
)


def _attendee_headers(user_id: str) -> Dict[str, str]:
    return auth_headers(make_user_token(user_id=user_id, role=UserRole.ATTENDEE.value))


@pytest.mark.integration
class TestSessionRegistrationApi:
    def test_attendee_registers_for_open_session(
        self,
        client: TestClient,
        organizer_user: Dict[str, Any],
        attendee_user: Dict[str, Any],
    ) -> None:
        expo = create_expo(client, organizer_user['headers'])
        session = create_session(client, organizer_user['headers'], expo_id=expo['id'])

        response = client.post(
            SESSION_REGISTER.format(session_id=session['id']), headers=attendee_user['headers']
        )

        assert_response_status(response, 202)
        body = response.json()
        assert body['message'] == 'Successfully registered for session'
        assert body['session']['registeredAttendees'] == [attendee_user['id']]
        assert body['session']['maxAttendees'] is None

        expo_after = client.get(EXPO_GET.format(expo_id=expo['id'])).json()
        assert expo_after['statistics']['registered_attendees'] == 1

    def test_full_session_waitlists_then_promotes(
        self, client: TestClient, organizer_user: Dict[str, Any]
    ) -> None:
        # Given: two seats, three attendees
        expo = create_expo(client, organizer_user['headers'])
        session = create_session(
            client, organizer_user['headers'], expo_id=expo['id'], max_attendees=2
        )
        u1, u2, u3 = (_attendee_headers(f'u{i}') for i in (1, 2, 3))
        for headers in (u1, u2):
            assert_response_status(
                client.post(SESSION_REGISTER.format(session_id=session['id']), headers=headers),
                202,
            )

        waiting = client.post(SESSION_REGISTER.format(session_id=session['id']), headers=u3)
        assert_response_status(waiting, 202)
        assert waiting.json()['message'] == 'Added to waitlist'
        assert waiting.json()['session']['waitlist'] == ['u3']

        # When: u1 leaves
        response = client.post(SESSION_CANCEL.format(session_id=session['id']), headers=u1)

        # Then: u3 takes the seat
        assert_response_status(response, 200)
        assert response.json()['message'] == 'Registration cancelled successfully'
        after = client.get(SESSION_GET.format(session_id=session['id'])).json()
        assert after['registeredAttendees'] == ['u2', 'u3']
        assert after['waitlist'] == []

    def test_double_registration_is_rejected(
        self,
        client: TestClient,
        organizer_user: Dict[str, Any],
        attendee_user: Dict[str, Any],
    ) -> None:
        expo = create_expo(client, organizer_user['headers'])
        session = create_session(client, organizer_user['headers'], expo_id=expo['id'])
        url = SESSION_REGISTER.format(session_id=session['id'])
        client.post(url, headers=attendee_user['headers'])

        response = client.post(url, headers=attendee_user['headers'])

        assert_response_status(response, 409)
        assert response.json() == {'message': 'Already registered for this session'}

    def test_full_session_without_waitlist_is_at_capacity(
        self,
        client: TestClient,
        organizer_user: Dict[str, Any],
    ) -> None:
        expo = create_expo(client, organizer_user['headers'])
        session = create_session(
            client,
            organizer_user['headers'],
            expo_id=expo['id'],
            max_attendees=1,
            allow_waitlist=False,
        )
        url = SESSION_REGISTER.format(session_id=session['id'])
        client.post(url, headers=_attendee_headers('u1'))

        response = client.post(url, headers=_attendee_headers('u2'))

        assert_response_status(response, 409)
        assert response.json() == {'message': 'Session is at full capacity'}

    def test_cancel_when_not_registered(
        self,
        client: TestClient,
        organizer_user: Dict[str, Any],
        attendee_user: Dict[str, Any],
    ) -> None:
        expo = create_expo(client, organizer_user['headers'])
        session = create_session(client, organizer_user['headers'], expo_id=expo['id'])

        response = client.post(
            SESSION_CANCEL.format(session_id=session['id']), headers=attendee_user['headers']
        )

        assert_response_status(response, 400)
        assert response.json() == {'message': 'You are not registered for this session'}

    def test_sessions_are_listed_per_expo(
        self, client: TestClient, organizer_user: Dict[str, Any]
    ) -> None:
        expo = create_expo(client, organizer_user['headers'])
        create_session(client, organizer_user['headers'], expo_id=expo['id'], title='Keynote')
        create_session(client, organizer_user['headers'], expo_id=expo['id'], title='Panel')

        sessions = client.get(EXPO_SESSIONS.format(expo_id=expo['id'])).json()

        assert sorted(s['title'] for s in sessions) == ['Keynote', 'Panel']
