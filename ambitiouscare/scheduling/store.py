"""Read access to availability rules and appointments.

The resolver only depends on the two ``list_*`` methods, so tests and other
callers can pass any object that provides them.
"""

import logging
from typing import Iterable, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ambitiouscare.models.appointment import Appointment
from ambitiouscare.models.availability import TherapistAvailability
from ambitiouscare.scheduling.errors import DataAccessError

logger = logging.getLogger(__name__)


class SchedulingStore(Protocol):
    def list_availability(
        self, therapist_id: str, day_of_week: int, is_available: bool = True
    ) -> list[TherapistAvailability]:
        ...

    def list_appointments(self, therapist_id: str, statuses: Iterable[str]) -> list[Appointment]:
        ...


class SqlAlchemySchedulingStore:
    """``SchedulingStore`` backed by an ORM session."""

    def __init__(self, db: Session):
        self.db = db

    def list_availability(
        self, therapist_id: str, day_of_week: int, is_available: bool = True
    ) -> list[TherapistAvailability]:
        try:
            return self.db.query(TherapistAvailability).filter(
                TherapistAvailability.therapist_id == therapist_id,
                TherapistAvailability.day_of_week == day_of_week,
                TherapistAvailability.is_available.is_(is_available),
            ).order_by(TherapistAvailability.start_time.asc()).all()
        except SQLAlchemyError as exc:
            logger.error('Error checking availability for therapist %s: %s', therapist_id, exc)
            raise DataAccessError('Could not load therapist availability.') from exc

    def list_appointments(self, therapist_id: str, statuses: Iterable[str]) -> list[Appointment]:
        # Not bounded by date; callers filter by day.
        try:
            return self.db.query(Appointment).filter(
                Appointment.therapist_id == therapist_id,
                Appointment.status.in_(list(statuses)),
            ).order_by(Appointment.start_time.asc()).all()
        except SQLAlchemyError as exc:
            logger.error('Error checking existing appointments for therapist %s: %s', therapist_id, exc)
            raise DataAccessError('Could not load existing appointments.') from exc
