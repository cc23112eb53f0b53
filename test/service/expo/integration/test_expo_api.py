from typing import Any, Dict

from fastapi.testclient import TestClient
import pytest

from test.route_constant import BOOTH_BASE, EXPO_BASE, EXPO_GET, EXPO_STATUS
from test.shared.utils import (
    assert_response_status,
    auth_headers,
    create_booth,
    create_expo,
    make_user_token,
)
from test.util_constant import ANOTHER_ORGANIZER_ID


@pytest.mark.integration
class TestExpoApi:
    def test_organizer_creates_draft_expo(
        self, client: TestClient, organizer_user: Dict[str, Any]
    ) -> None:
        response = client.post(
            EXPO_BASE,
            json={'title': 'Robotics Expo', 'max_booths_per_exhibitor': 2},
            headers=organizer_user['headers'],
        )

        assert_response_status(response, 201)
        expo = response.json()['expo']
        assert expo['status'] == 'draft'
        assert expo['organizer_id'] == organizer_user['id']
        assert expo['settings'] == {'allow_booth_sharing': False, 'max_booths_per_exhibitor': 2}

    def test_exhibitor_cannot_create_expo(
        self, client: TestClient, exhibitor_user: Dict[str, Any]
    ) -> None:
        response = client.post(
            EXPO_BASE, json={'title': 'Robotics Expo'}, headers=exhibitor_user['headers']
        )

        assert_response_status(response, 403)

    def test_status_follows_allowed_transitions(
        self, client: TestClient, organizer_user: Dict[str, Any]
    ) -> None:
        expo = create_expo(client, organizer_user['headers'], publish=False)
        url = EXPO_STATUS.format(expo_id=expo['id'])

        invalid = client.patch(url, json={'status': 'completed'}, headers=organizer_user['headers'])
        assert_response_status(invalid, 400)

        for status in ('published', 'active', 'completed'):
            response = client.patch(url, json={'status': status}, headers=organizer_user['headers'])
            assert_response_status(response, 200)
            assert response.json()['expo']['status'] == status

    def test_other_organizer_cannot_manage_expo(
        self, client: TestClient, organizer_user: Dict[str, Any]
    ) -> None:
        expo = create_expo(client, organizer_user['headers'], publish=False)
        stranger = auth_headers(make_user_token(user_id=ANOTHER_ORGANIZER_ID, role='organizer'))

        status_change = client.patch(
            EXPO_STATUS.format(expo_id=expo['id']), json={'status': 'published'}, headers=stranger
        )
        booth = client.post(
            BOOTH_BASE,
            json={'expo_id': expo['id'], 'booth_number': 'Z-1'},
            headers=stranger,
        )

        assert_response_status(status_change, 403)
        assert_response_status(booth, 403)

    def test_admin_can_manage_any_expo(
        self, client: TestClient, organizer_user: Dict[str, Any]
    ) -> None:
        expo = create_expo(client, organizer_user['headers'], publish=False)
        admin = auth_headers(make_user_token(user_id='admin-1', role='admin'))

        response = client.patch(
            EXPO_STATUS.format(expo_id=expo['id']), json={'status': 'published'}, headers=admin
        )

        assert_response_status(response, 200)

    def test_duplicate_booth_number_conflicts(
        self, client: TestClient, organizer_user: Dict[str, Any]
    ) -> None:
        expo = create_expo(client, organizer_user['headers'])
        create_booth(client, organizer_user['headers'], expo_id=expo['id'], booth_number='A-1')

        response = client.post(
            BOOTH_BASE,
            json={'expo_id': expo['id'], 'booth_number': 'A-1'},
            headers=organizer_user['headers'],
        )

        assert_response_status(response, 409)

    def test_unknown_expo_is_not_found(self, client: TestClient) -> None:
        response = client.get(EXPO_GET.format(expo_id='missing'))

        assert_response_status(response, 404)
        assert response.json() == {'message': 'Expo not found'}

    def test_inactive_token_is_forbidden(self, client: TestClient) -> None:
        headers = auth_headers(
            make_user_token(user_id='gone-1', role='organizer', is_active=False)
        )

        response = client.post(EXPO_BASE, json={'title': 'Nope'}, headers=headers)

        assert_response_status(response, 403)

    def test_health_and_metrics_endpoints(self, client: TestClient) -> None:
        assert client.get('/health').json() == {'status': 'healthy', 'service': 'Expo Booking'}
        metrics = client.get('/metrics')
        assert_response_status(metrics, 200)
        assert 'expo_booking_outcomes_total' in metrics.text
