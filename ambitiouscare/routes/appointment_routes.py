from datetime import datetime

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from ambitiouscare.auth.dependencies import require_patient, require_therapist
from ambitiouscare.database import get_db
from ambitiouscare.models.appointment import Appointment, AppointmentStatus
from ambitiouscare.models.user import Profile
from ambitiouscare.routes.errors import database_unavailable, ensure_database_ready, http_error_for
from ambitiouscare.scheduling import booking
from ambitiouscare.scheduling.errors import SchedulingError
from ambitiouscare.scheduling.timeutils import now_in_scheduling_zone

router = APIRouter(tags=['appointments'])

MAX_TITLE_LENGTH = 200
MAX_DESCRIPTION_LENGTH = 2000


class BookAppointmentRequest(BaseModel):
    therapist_id: str
    title: str
    description: str | None = None
    start_time: datetime
    end_time: datetime

    @field_validator('title')
    @classmethod
    def validate_title(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Title is required.')
        if len(normalized) > MAX_TITLE_LENGTH:
            raise ValueError(f'Title must be {MAX_TITLE_LENGTH} characters or fewer.')
        return normalized

    @field_validator('description')
    @classmethod
    def validate_description(cls, value: str | None) -> str | None:
        if value is None:
            return None

        normalized = value.strip()
        if not normalized:
            return None

        if len(normalized) > MAX_DESCRIPTION_LENGTH:
            raise ValueError(f'Description must be {MAX_DESCRIPTION_LENGTH} characters or fewer.')

        return normalized


class UpdateAppointmentStatusRequest(BaseModel):
    status: AppointmentStatus

    @field_validator('status', mode='before')
    @classmethod
    def normalize_status(cls, value):
        if isinstance(value, str):
            try:
                return AppointmentStatus.parse(value)
            except ValueError as exc:
                raise ValueError('Invalid appointment status.') from exc
        return value


class AppointmentPartyResponse(BaseModel):
    id: str
    full_name: str | None = None
    specialization: str | None = None
    role: str

    class Config:
        from_attributes = True


class AppointmentResponse(BaseModel):
    id: str
    patient_id: str
    therapist_id: str
    title: str
    description: str | None = None
    start_time: datetime
    end_time: datetime
    status: str
    effective_status: str
    created_at: datetime | None = None
    updated_at: datetime | None = None
    patient: AppointmentPartyResponse | None = None
    therapist: AppointmentPartyResponse | None = None


def _party(profile: Profile | None) -> AppointmentPartyResponse | None:
    if profile is None:
        return None
    return AppointmentPartyResponse.model_validate(profile)


def to_response(appointment: Appointment, now: datetime | None = None) -> AppointmentResponse:
    return AppointmentResponse(
        id=appointment.id,
        patient_id=appointment.patient_id,
        therapist_id=appointment.therapist_id,
        title=appointment.title,
        description=appointment.description,
        start_time=appointment.start_time,
        end_time=appointment.end_time,
        status=appointment.status,
        effective_status=booking.effective_status(appointment, now),
        created_at=appointment.created_at,
        updated_at=appointment.updated_at,
        patient=_party(appointment.patient),
        therapist=_party(appointment.therapist),
    )


@router.post('', response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def book_appointment(
    data: BookAppointmentRequest,
    current_user: Profile = Depends(require_patient),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        appointment = booking.book_appointment(
            db,
            patient_id=current_user.id,
            therapist_id=data.therapist_id,
            title=data.title,
            description=data.description,
            start_time=data.start_time,
            end_time=data.end_time,
        )
    except SchedulingError as exc:
        raise http_error_for(exc) from exc

    return to_response(appointment)


@router.get('/patient', response_model=list[AppointmentResponse])
def list_patient_appointments(
    current_user: Profile = Depends(require_patient),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        appointments = db.query(Appointment).options(
            joinedload(Appointment.therapist),
        ).filter(
            Appointment.patient_id == current_user.id,
        ).order_by(Appointment.start_time.asc()).all()
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    now = now_in_scheduling_zone()
    return [to_response(appointment, now) for appointment in appointments]


@router.get('/therapist', response_model=list[AppointmentResponse])
def list_therapist_appointments(
    current_user: Profile = Depends(require_therapist),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        appointments = db.query(Appointment).options(
            joinedload(Appointment.patient),
        ).filter(
            Appointment.therapist_id == current_user.id,
        ).order_by(Appointment.start_time.asc()).all()
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    now = now_in_scheduling_zone()
    return [to_response(appointment, now) for appointment in appointments]


@router.patch('/{appointment_id}/status', response_model=AppointmentResponse)
def update_appointment_status(
    appointment_id: str,
    data: UpdateAppointmentStatusRequest,
    current_user: Profile = Depends(require_therapist),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        appointment = booking.update_appointment_status(db, appointment_id, data.status, current_user)
    except SchedulingError as exc:
        raise http_error_for(exc) from exc

    return to_response(appointment)


@router.post('/{appointment_id}/cancel', response_model=AppointmentResponse)
def cancel_appointment(
    appointment_id: str,
    current_user: Profile = Depends(require_patient),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        appointment = booking.cancel_appointment(db, appointment_id, current_user)
    except SchedulingError as exc:
        raise http_error_for(exc) from exc

    return to_response(appointment)
