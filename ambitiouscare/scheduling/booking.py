"""Booking writes and appointment status changes.

Booking writes for one therapist are serialized: an in-process lock keyed by
therapist id covers threads of this worker, and a row lock on the therapist's
profile covers other workers sharing the same Postgres database. The
availability check only counts as a guarantee inside that critical section.
"""

import logging
from datetime import datetime
from threading import Lock
from weakref import WeakValueDictionary

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ambitiouscare.database import APPOINTMENT_EXCLUSION_CONSTRAINT
from ambitiouscare.models.appointment import Appointment, AppointmentStatus
from ambitiouscare.models.user import ROLE_THERAPIST, Profile
from ambitiouscare.scheduling.errors import (
    DataAccessError,
    InvalidTimeRangeError,
    NotFoundError,
    PermissionDeniedError,
    SchedulingError,
    SlotUnavailableError,
    StatusTransitionError,
)
from ambitiouscare.scheduling.resolver import is_slot_available
from ambitiouscare.scheduling.store import SqlAlchemySchedulingStore
from ambitiouscare.scheduling.timeutils import now_in_scheduling_zone, to_scheduling_time

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
    AppointmentStatus.PENDING: {AppointmentStatus.CONFIRMED, AppointmentStatus.CANCELED},
    AppointmentStatus.CONFIRMED: {AppointmentStatus.COMPLETED, AppointmentStatus.CANCELED},
    AppointmentStatus.CANCELED: set(),
    AppointmentStatus.COMPLETED: set(),
}

_registry_lock = Lock()
# Entries disappear once no booking holds or waits on the lock.
_therapist_locks: "WeakValueDictionary[str, Lock]" = WeakValueDictionary()


def get_therapist_lock(therapist_id: str) -> Lock:
    with _registry_lock:
        lock = _therapist_locks.get(therapist_id)
        if lock is None:
            lock = Lock()
            _therapist_locks[therapist_id] = lock
        return lock


def _violated_constraint(exc: IntegrityError) -> str | None:
    diag = getattr(exc.orig, 'diag', None)
    return getattr(diag, 'constraint_name', None)


def _lock_therapist_row(db: Session, therapist_id: str) -> Profile:
    therapist = db.query(Profile).filter(
        Profile.id == therapist_id,
        Profile.role == ROLE_THERAPIST,
    ).with_for_update().first()
    if therapist is None:
        raise NotFoundError('Therapist not found.')
    return therapist


def validate_booking_range(start_time: datetime, end_time: datetime, now: datetime) -> None:
    if end_time <= start_time:
        raise InvalidTimeRangeError('End time must be after start time.')
    if start_time.date() != end_time.date():
        raise InvalidTimeRangeError('Appointments must start and end on the same day.')
    if start_time <= now:
        raise InvalidTimeRangeError('Appointments must be scheduled in the future.')


def book_appointment(
    db: Session,
    patient_id: str,
    therapist_id: str,
    title: str,
    start_time: datetime,
    end_time: datetime,
    description: str | None = None,
    now: datetime | None = None,
) -> Appointment:
    """Create a pending appointment if the therapist is free for the whole range."""
    start_time = to_scheduling_time(start_time).replace(second=0, microsecond=0)
    end_time = to_scheduling_time(end_time).replace(second=0, microsecond=0)
    validate_booking_range(start_time, end_time, now or now_in_scheduling_zone())

    with get_therapist_lock(therapist_id):
        try:
            _lock_therapist_row(db, therapist_id)

            available = is_slot_available(
                SqlAlchemySchedulingStore(db),
                therapist_id,
                start_time.date(),
                start_time.time(),
                end_time.time(),
            )
            if not available:
                raise SlotUnavailableError('This time slot is not available. Please choose another slot.')

            appointment = Appointment(
                patient_id=patient_id,
                therapist_id=therapist_id,
                title=title,
                description=description,
                start_time=start_time,
                end_time=end_time,
                status=AppointmentStatus.PENDING.value,
            )
            db.add(appointment)
            db.commit()
        except IntegrityError as exc:
            db.rollback()
            if _violated_constraint(exc) == APPOINTMENT_EXCLUSION_CONSTRAINT:
                raise SlotUnavailableError('This time slot was just booked. Please choose another slot.') from exc
            logger.error('Integrity error while booking with therapist %s: %s', therapist_id, exc.orig)
            raise DataAccessError('Could not book appointment.') from exc
        except SQLAlchemyError as exc:
            db.rollback()
            raise DataAccessError('Could not book appointment.') from exc
        except SchedulingError:
            db.rollback()
            raise

    db.refresh(appointment)
    logger.info(
        'Appointment %s requested with therapist %s on %s from %s to %s',
        appointment.id, therapist_id, start_time.date(), start_time.time(), end_time.time(),
    )
    return appointment


def effective_status(appointment: Appointment, now: datetime | None = None) -> str:
    """Report confirmed appointments whose end has passed as completed."""
    now = now or now_in_scheduling_zone()
    if appointment.status == AppointmentStatus.CONFIRMED.value and appointment.end_time <= now:
        return AppointmentStatus.COMPLETED.value
    return appointment.status


def transition_status(appointment: Appointment, new_status: AppointmentStatus) -> None:
    current = AppointmentStatus.parse(appointment.status)
    if new_status not in ALLOWED_TRANSITIONS[current]:
        raise StatusTransitionError(f'Cannot change appointment status from {current.value} to {new_status.value}.')
    appointment.status = new_status.value
    appointment.updated_at = datetime.now()


def _get_appointment(db: Session, appointment_id: str) -> Appointment:
    try:
        appointment = db.query(Appointment).filter(Appointment.id == appointment_id).first()
    except SQLAlchemyError as exc:
        raise DataAccessError('Could not load appointment.') from exc
    if appointment is None:
        raise NotFoundError('Appointment not found.')
    return appointment


def _commit_status(db: Session, appointment: Appointment) -> Appointment:
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise DataAccessError('Could not update appointment.') from exc
    db.refresh(appointment)
    return appointment


def update_appointment_status(
    db: Session,
    appointment_id: str,
    new_status: AppointmentStatus,
    therapist: Profile,
) -> Appointment:
    """Therapist-driven status change on one of their own appointments."""
    appointment = _get_appointment(db, appointment_id)
    if appointment.therapist_id != therapist.id:
        raise PermissionDeniedError('Only the assigned therapist can update this appointment.')

    previous = appointment.status
    transition_status(appointment, new_status)
    _commit_status(db, appointment)
    logger.info('Changed appointment %s status from %s to %s', appointment.id, previous, appointment.status)
    return appointment


def cancel_appointment(db: Session, appointment_id: str, patient: Profile) -> Appointment:
    """Patient-driven cancellation of one of their own appointments."""
    appointment = _get_appointment(db, appointment_id)
    if appointment.patient_id != patient.id:
        raise PermissionDeniedError('Only the patient who booked this appointment can cancel it.')

    transition_status(appointment, AppointmentStatus.CANCELED)
    _commit_status(db, appointment)
    logger.info('Patient %s canceled appointment %s', patient.id, appointment.id)
    return appointment
