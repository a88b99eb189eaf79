from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError

from ambitiouscare.database import ensure_appointment_schema, ensure_availability_schema
from ambitiouscare.scheduling.errors import (
    DataAccessError,
    InvalidTimeRangeError,
    NotFoundError,
    PermissionDeniedError,
    SchedulingError,
    SlotUnavailableError,
    StatusTransitionError,
)

DATABASE_UNAVAILABLE_DETAIL = 'Database unavailable. Verify DATABASE_URL and Postgres credentials.'

_STATUS_CODES = {
    InvalidTimeRangeError: status.HTTP_400_BAD_REQUEST,
    PermissionDeniedError: status.HTTP_403_FORBIDDEN,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    SlotUnavailableError: status.HTTP_409_CONFLICT,
    StatusTransitionError: status.HTTP_409_CONFLICT,
    DataAccessError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def database_unavailable() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=DATABASE_UNAVAILABLE_DETAIL,
    )


def http_error_for(exc: SchedulingError) -> HTTPException:
    if isinstance(exc, DataAccessError):
        return database_unavailable()

    for error_type, status_code in _STATUS_CODES.items():
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=str(exc))

    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


def ensure_database_ready() -> None:
    try:
        ensure_availability_schema()
        ensure_appointment_schema()
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc
