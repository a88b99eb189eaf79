import pytest
from fastapi.testclient import TestClient

from ambitiouscare.database import get_db
from ambitiouscare.main import app


@pytest.fixture
def client(db_session):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()


def auth_header(token: str) -> dict:
    return {'Authorization': f'Bearer {token}'}


def test_root_reports_running(client) -> None:
    response = client.get('/')

    assert response.status_code == 200
    assert response.json() == {'status': 'AmbitiousCare API Running'}


def test_booking_flow_over_http(client) -> None:
    therapist = client.post(
        '/auth/register',
        json={'email': 'dana@example.com', 'full_name': 'Dana', 'role': 'therapist'},
    ).json()
    patient = client.post(
        '/auth/register',
        json={'email': 'pat@example.com', 'full_name': 'Pat'},
    ).json()
    therapist_id = therapist['profile']['id']

    directory = client.get('/therapists')
    assert [entry['id'] for entry in directory.json()] == [therapist_id]

    check = client.get(
        f'/availability/therapists/{therapist_id}/check',
        params={'date': '2030-01-07', 'start_time': '10:00', 'end_time': '11:00'},
    )
    assert check.status_code == 200
    assert check.json()['is_available'] is True

    booked = client.post(
        '/appointments',
        json={
            'therapist_id': therapist_id,
            'title': 'First session',
            'start_time': '2030-01-07T10:00:00',
            'end_time': '2030-01-07T11:00:00',
        },
        headers=auth_header(patient['access_token']),
    )
    assert booked.status_code == 201
    assert booked.json()['status'] == 'pending'

    conflict = client.post(
        '/appointments',
        json={
            'therapist_id': therapist_id,
            'title': 'Second session',
            'start_time': '2030-01-07T10:30:00',
            'end_time': '2030-01-07T11:30:00',
        },
        headers=auth_header(patient['access_token']),
    )
    assert conflict.status_code == 409

    confirmed = client.patch(
        f"/appointments/{booked.json()['id']}/status",
        json={'status': 'confirmed'},
        headers=auth_header(therapist['access_token']),
    )
    assert confirmed.status_code == 200
    assert confirmed.json()['status'] == 'confirmed'

    slots = client.get(
        f'/availability/therapists/{therapist_id}/slots',
        params={'date': '2030-01-07'},
    ).json()
    booked_starts = [slot['start_time'] for slot in slots if slot['is_booked']]
    assert booked_starts == ['10:00:00']


def test_patient_cannot_manage_availability(client) -> None:
    patient = client.post(
        '/auth/register',
        json={'email': 'pat@example.com', 'full_name': 'Pat'},
    ).json()

    response = client.get('/availability/me', headers=auth_header(patient['access_token']))

    assert response.status_code == 403


def test_missing_token_is_rejected(client) -> None:
    response = client.get('/appointments/patient')

    assert response.status_code in (401, 403)
