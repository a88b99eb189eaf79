"""Errors raised by the scheduling layer.

Routers translate these into HTTP responses; nothing here is retried.
"""


class SchedulingError(Exception):
    """Base class for scheduling failures."""


class DataAccessError(SchedulingError):
    """The data store was unreachable or a query failed."""


class InvalidTimeRangeError(SchedulingError, ValueError):
    """A requested range is malformed, e.g. it ends before it starts."""


class NotFoundError(SchedulingError):
    """A referenced therapist, slot or appointment does not exist."""


class SlotUnavailableError(SchedulingError):
    """The requested range is outside availability or conflicts with a booking."""


class StatusTransitionError(SchedulingError):
    """An appointment cannot move from its current status to the requested one."""


class PermissionDeniedError(SchedulingError):
    """The acting user may not change this appointment or slot."""
