"""Availability resolution for therapist bookings.

A request is bookable when its time-of-day range sits entirely inside one of
the therapist's available weekly windows for that weekday and does not
overlap any pending or confirmed appointment on the same date.
"""

import logging
from dataclasses import dataclass
from datetime import date, time

from ambitiouscare.models.appointment import ACTIVE_STATUSES, Appointment
from ambitiouscare.models.availability import TherapistAvailability
from ambitiouscare.scheduling.store import SchedulingStore
from ambitiouscare.scheduling.timeutils import (
    day_of_week,
    minutes_from_day_start,
    minutes_since_midnight,
    parse_time_of_day,
    ranges_overlap,
    require_ordered,
    time_from_minutes,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DaySlot:
    start_time: time
    end_time: time
    is_booked: bool


def _fits_window(start_minutes: int, end_minutes: int, window: TherapistAvailability) -> bool:
    return (
        minutes_since_midnight(window.start_time) <= start_minutes
        and end_minutes <= minutes_since_midnight(window.end_time)
    )


def _appointments_on(store: SchedulingStore, therapist_id: str, slot_date: date) -> list[Appointment]:
    appointments = store.list_appointments(therapist_id, ACTIVE_STATUSES)
    return [appointment for appointment in appointments if appointment.start_time.date() == slot_date]


def _booked_ranges(appointments: list[Appointment], slot_date: date) -> list[tuple[int, int]]:
    return [
        (
            minutes_from_day_start(appointment.start_time, slot_date),
            minutes_from_day_start(appointment.end_time, slot_date),
        )
        for appointment in appointments
    ]


def is_slot_available(
    store: SchedulingStore,
    therapist_id: str,
    slot_date: date,
    start_time: time | str,
    end_time: time | str,
) -> bool:
    """Return whether ``[start_time, end_time)`` on ``slot_date`` can be booked.

    Raises ``InvalidTimeRangeError`` when the range is empty or reversed and
    ``DataAccessError`` when the store cannot be read.
    """
    requested_start = parse_time_of_day(start_time)
    requested_end = parse_time_of_day(end_time)
    require_ordered(requested_start, requested_end)

    start_minutes = minutes_since_midnight(requested_start)
    end_minutes = minutes_since_midnight(requested_end)

    windows = store.list_availability(therapist_id, day_of_week(slot_date), is_available=True)
    if not any(_fits_window(start_minutes, end_minutes, window) for window in windows):
        logger.debug(
            'Time slot %s-%s on %s is outside availability of therapist %s',
            requested_start, requested_end, slot_date, therapist_id,
        )
        return False

    appointments = _appointments_on(store, therapist_id, slot_date)
    logger.debug('Found %d active appointments for therapist %s on %s', len(appointments), therapist_id, slot_date)

    for appointment, (booked_start, booked_end) in zip(appointments, _booked_ranges(appointments, slot_date)):
        if ranges_overlap(start_minutes, end_minutes, booked_start, booked_end):
            logger.debug(
                'Requested %s-%s on %s conflicts with appointment %s',
                requested_start, requested_end, slot_date, appointment.id,
            )
            return False

    return True


def list_day_slots(
    store: SchedulingStore,
    therapist_id: str,
    slot_date: date,
    slot_minutes: int = 60,
) -> list[DaySlot]:
    """Split every available window for the date's weekday into fixed-length slots.

    A trailing piece shorter than ``slot_minutes`` is dropped. Slots shared by
    overlapping windows are listed once.
    """
    if slot_minutes <= 0:
        raise ValueError('slot_minutes must be positive.')

    windows = store.list_availability(therapist_id, day_of_week(slot_date), is_available=True)
    if not windows:
        return []

    booked = _booked_ranges(_appointments_on(store, therapist_id, slot_date), slot_date)

    starts: set[int] = set()
    for window in windows:
        current = minutes_since_midnight(window.start_time)
        window_end = minutes_since_midnight(window.end_time)
        while current + slot_minutes <= window_end:
            starts.add(current)
            current += slot_minutes

    slots: list[DaySlot] = []
    for start in sorted(starts):
        end = start + slot_minutes
        is_booked = any(ranges_overlap(start, end, booked_start, booked_end) for booked_start, booked_end in booked)
        slots.append(
            DaySlot(
                start_time=time_from_minutes(start),
                end_time=time_from_minutes(end),
                is_booked=is_booked,
            )
        )

    return slots