from datetime import datetime, time

import pytest
from fastapi import HTTPException
from pydantic import ValidationError

from ambitiouscare.models.appointment import Appointment, AppointmentStatus
from ambitiouscare.models.availability import TherapistAvailability
from ambitiouscare.models.user import ROLE_THERAPIST
from ambitiouscare.routes.appointment_routes import (
    BookAppointmentRequest,
    UpdateAppointmentStatusRequest,
    book_appointment,
    cancel_appointment,
    list_patient_appointments,
    list_therapist_appointments,
    update_appointment_status,
)

FUTURE_MONDAY_10 = datetime(2030, 1, 7, 10, 0)
FUTURE_MONDAY_11 = datetime(2030, 1, 7, 11, 0)


@pytest.fixture
def available_therapist(db_session, therapist):
    db_session.add(
        TherapistAvailability(
            therapist_id=therapist.id,
            day_of_week=1,
            start_time=time(9, 0),
            end_time=time(17, 0),
        )
    )
    db_session.commit()
    return therapist


def booking_request(therapist_id: str, start: datetime = FUTURE_MONDAY_10, end: datetime = FUTURE_MONDAY_11):
    return BookAppointmentRequest(
        therapist_id=therapist_id,
        title=' First session ',
        description='   ',
        start_time=start,
        end_time=end,
    )


def test_book_appointment_request_normalizes_text() -> None:
    request = booking_request('t-1')

    assert request.title == 'First session'
    assert request.description is None


def test_book_appointment_request_requires_title() -> None:
    with pytest.raises(ValidationError):
        BookAppointmentRequest(therapist_id='t-1', title='  ', start_time=FUTURE_MONDAY_10, end_time=FUTURE_MONDAY_11)


@pytest.mark.parametrize(
    ('raw', 'expected'),
    [
        ('confirmed', AppointmentStatus.CONFIRMED),
        (' Cancelled ', AppointmentStatus.CANCELED),
        ('canceled', AppointmentStatus.CANCELED),
    ],
)
def test_status_request_normalizes_spelling(raw: str, expected: AppointmentStatus) -> None:
    assert UpdateAppointmentStatusRequest(status=raw).status is expected


def test_status_request_rejects_unknown_status() -> None:
    with pytest.raises(ValidationError):
        UpdateAppointmentStatusRequest(status='archived')


def test_book_appointment_returns_pending(db_session, patient, available_therapist) -> None:
    response = book_appointment(booking_request(available_therapist.id), current_user=patient, db=db_session)

    assert response.status == 'pending'
    assert response.effective_status == 'pending'
    assert response.title == 'First session'
    assert response.start_time == FUTURE_MONDAY_10


def test_book_appointment_conflict_returns_409(db_session, patient, available_therapist) -> None:
    book_appointment(booking_request(available_therapist.id), current_user=patient, db=db_session)

    with pytest.raises(HTTPException) as exception_info:
        book_appointment(
            booking_request(available_therapist.id, datetime(2030, 1, 7, 10, 30), datetime(2030, 1, 7, 11, 30)),
            current_user=patient,
            db=db_session,
        )

    assert exception_info.value.status_code == 409


def test_book_appointment_outside_hours_returns_409(db_session, patient, available_therapist) -> None:
    with pytest.raises(HTTPException) as exception_info:
        book_appointment(
            booking_request(available_therapist.id, datetime(2030, 1, 7, 8, 0), datetime(2030, 1, 7, 9, 0)),
            current_user=patient,
            db=db_session,
        )

    assert exception_info.value.status_code == 409


def test_book_appointment_in_past_returns_400(db_session, patient, available_therapist) -> None:
    with pytest.raises(HTTPException) as exception_info:
        book_appointment(
            booking_request(available_therapist.id, datetime(2020, 1, 6, 10, 0), datetime(2020, 1, 6, 11, 0)),
            current_user=patient,
            db=db_session,
        )

    assert exception_info.value.status_code == 400
    assert exception_info.value.detail == 'Appointments must be scheduled in the future.'


def test_book_appointment_unknown_therapist_returns_404(db_session, patient) -> None:
    with pytest.raises(HTTPException) as exception_info:
        book_appointment(booking_request('missing'), current_user=patient, db=db_session)

    assert exception_info.value.status_code == 404
    assert exception_info.value.detail == 'Therapist not found.'


def test_listings_are_scoped_to_current_user(db_session, patient, available_therapist, make_profile) -> None:
    book_appointment(booking_request(available_therapist.id), current_user=patient, db=db_session)
    other_therapist = make_profile(ROLE_THERAPIST, 'other@example.com')

    assert len(list_patient_appointments(current_user=patient, db=db_session)) == 1
    assert len(list_therapist_appointments(current_user=available_therapist, db=db_session)) == 1
    assert list_therapist_appointments(current_user=other_therapist, db=db_session) == []


def test_listing_reports_lazy_completion(db_session, patient, therapist) -> None:
    db_session.add(
        Appointment(
            patient_id=patient.id,
            therapist_id=therapist.id,
            title='Past session',
            start_time=datetime(2024, 3, 4, 10, 0),
            end_time=datetime(2024, 3, 4, 11, 0),
            status='confirmed',
        )
    )
    db_session.commit()

    [response] = list_patient_appointments(current_user=patient, db=db_session)

    assert response.status == 'confirmed'
    assert response.effective_status == 'completed'


def test_update_status_flow(db_session, patient, available_therapist) -> None:
    booked = book_appointment(booking_request(available_therapist.id), current_user=patient, db=db_session)

    confirmed = update_appointment_status(
        booked.id,
        UpdateAppointmentStatusRequest(status='confirmed'),
        current_user=available_therapist,
        db=db_session,
    )
    assert confirmed.status == 'confirmed'

    with pytest.raises(HTTPException) as exception_info:
        update_appointment_status(
            booked.id,
            UpdateAppointmentStatusRequest(status='pending'),
            current_user=available_therapist,
            db=db_session,
        )

    assert exception_info.value.status_code == 409


def test_update_status_by_other_therapist_returns_403(db_session, patient, available_therapist, make_profile) -> None:
    other = make_profile(ROLE_THERAPIST, 'other@example.com')
    booked = book_appointment(booking_request(available_therapist.id), current_user=patient, db=db_session)

    with pytest.raises(HTTPException) as exception_info:
        update_appointment_status(
            booked.id,
            UpdateAppointmentStatusRequest(status='confirmed'),
            current_user=other,
            db=db_session,
        )

    assert exception_info.value.status_code == 403


def test_patient_cancel_reopens_slot(db_session, patient, available_therapist) -> None:
    booked = book_appointment(booking_request(available_therapist.id), current_user=patient, db=db_session)

    canceled = cancel_appointment(booked.id, current_user=patient, db=db_session)
    rebooked = book_appointment(booking_request(available_therapist.id), current_user=patient, db=db_session)

    assert canceled.status == 'canceled'
    assert rebooked.status == 'pending'


def test_cancel_twice_returns_409(db_session, patient, available_therapist) -> None:
    booked = book_appointment(booking_request(available_therapist.id), current_user=patient, db=db_session)
    cancel_appointment(booked.id, current_user=patient, db=db_session)

    with pytest.raises(HTTPException) as exception_info:
        cancel_appointment(booked.id, current_user=patient, db=db_session)

    assert exception_info.value.status_code == 409


def test_listings_embed_the_other_party(db_session, patient, available_therapist) -> None:
    available_therapist.specialization = 'Anxiety'
    db_session.commit()
    book_appointment(booking_request(available_therapist.id), current_user=patient, db=db_session)

    [for_patient] = list_patient_appointments(current_user=patient, db=db_session)
    [for_therapist] = list_therapist_appointments(current_user=available_therapist, db=db_session)

    assert for_patient.therapist.id == available_therapist.id
    assert for_patient.therapist.full_name == 'Dana Therapist'
    assert for_patient.therapist.specialization == 'Anxiety'
    assert for_therapist.patient.id == patient.id
    assert for_therapist.patient.full_name == 'Pat Patient'
