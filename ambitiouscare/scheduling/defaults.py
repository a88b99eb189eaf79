import logging

from sqlalchemy.orm import Session

from ambitiouscare.core import config
from ambitiouscare.models.availability import TherapistAvailability
from ambitiouscare.scheduling.timeutils import parse_time_of_day, require_ordered

logger = logging.getLogger(__name__)

DAYS_OF_WEEK = {
    0: 'Sunday',
    1: 'Monday',
    2: 'Tuesday',
    3: 'Wednesday',
    4: 'Thursday',
    5: 'Friday',
    6: 'Saturday',
}


def generate_default_availability(therapist_id: str) -> list[TherapistAvailability]:
    start_time = parse_time_of_day(config.DEFAULT_AVAILABILITY_START)
    end_time = parse_time_of_day(config.DEFAULT_AVAILABILITY_END)
    require_ordered(start_time, end_time)

    return [
        TherapistAvailability(
            therapist_id=therapist_id,
            day_of_week=day,
            start_time=start_time,
            end_time=end_time,
            is_available=True,
        )
        for day in config.DEFAULT_AVAILABILITY_DAYS
    ]


def seed_default_availability(therapist_id: str, db: Session) -> list[TherapistAvailability]:
    """Add the default weekly schedule to the session. The caller commits."""
    slots = generate_default_availability(therapist_id)
    db.add_all(slots)
    logger.info('Created default availability for therapist %s (%d slots)', therapist_id, len(slots))
    return slots
