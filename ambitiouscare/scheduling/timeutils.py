from datetime import date, datetime, time
from zoneinfo import ZoneInfo

from ambitiouscare.core import config
from ambitiouscare.scheduling.errors import InvalidTimeRangeError

MINUTES_PER_DAY = 24 * 60


def _whole_minute(value: time) -> time:
    if value.second:
        raise InvalidTimeRangeError(f'Time of day {value.isoformat()} is not a whole minute.')
    return value.replace(microsecond=0)


def parse_time_of_day(value: time | str) -> time:
    """Accept a ``time`` or an ``HH:MM`` / ``HH:MM:SS`` string on a whole minute."""
    if isinstance(value, time):
        return _whole_minute(value)

    normalized = value.strip()
    for time_format in ('%H:%M:%S', '%H:%M'):
        try:
            parsed = datetime.strptime(normalized, time_format).time()
        except ValueError:
            continue
        return _whole_minute(parsed)

    raise InvalidTimeRangeError(f'Invalid time of day: {value!r}. Expected HH:MM.')


def minutes_since_midnight(value: time) -> int:
    return value.hour * 60 + value.minute


def time_from_minutes(minutes: int) -> time:
    return time(minutes // 60, minutes % 60)


def minutes_from_day_start(moment: datetime, day: date) -> int:
    """Minutes between midnight of ``day`` and ``moment``; may fall outside [0, 1440)."""
    delta = moment - datetime.combine(day, time.min)
    return int(delta.total_seconds() // 60)


def day_of_week(day: date) -> int:
    """0 = Sunday .. 6 = Saturday."""
    return (day.weekday() + 1) % 7


def ranges_overlap(start_a: int, end_a: int, start_b: int, end_b: int) -> bool:
    # Half-open ranges: back-to-back ranges do not overlap.
    return start_a < end_b and end_a > start_b


def require_ordered(start: time, end: time) -> None:
    if end <= start:
        raise InvalidTimeRangeError('End time must be after start time.')


def to_scheduling_time(moment: datetime) -> datetime:
    """Convert an aware datetime into the naive scheduling zone; naive values pass through."""
    if moment.tzinfo is None:
        return moment
    return moment.astimezone(ZoneInfo(config.SCHEDULING_TIMEZONE)).replace(tzinfo=None)


def now_in_scheduling_zone() -> datetime:
    """Current wall-clock time in the scheduling zone, naive like stored timestamps."""
    return datetime.now(ZoneInfo(config.SCHEDULING_TIMEZONE)).replace(tzinfo=None)
