from datetime import date, datetime, time

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from pydantic import BaseModel, Field, model_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ambitiouscare.auth.dependencies import require_therapist
from ambitiouscare.core import config
from ambitiouscare.core.cache import availability_tag, query_cache
from ambitiouscare.database import get_db
from ambitiouscare.models.availability import TherapistAvailability
from ambitiouscare.models.user import ROLE_THERAPIST, Profile
from ambitiouscare.routes.errors import database_unavailable, ensure_database_ready, http_error_for
from ambitiouscare.scheduling.defaults import seed_default_availability
from ambitiouscare.scheduling.errors import SchedulingError
from ambitiouscare.scheduling.resolver import is_slot_available, list_day_slots
from ambitiouscare.scheduling.store import SqlAlchemySchedulingStore

router = APIRouter(tags=['availability'])

MAX_SLOT_MINUTES = 8 * 60


class AvailabilitySlotRequest(BaseModel):
    day_of_week: int = Field(ge=0, le=6)
    start_time: time
    end_time: time
    is_available: bool = True

    @model_validator(mode='after')
    def validate_time_order(self) -> 'AvailabilitySlotRequest':
        if self.end_time <= self.start_time:
            raise ValueError('End time must be after start time.')
        return self


class AvailabilitySlotUpdateRequest(BaseModel):
    day_of_week: int | None = Field(default=None, ge=0, le=6)
    start_time: time | None = None
    end_time: time | None = None
    is_available: bool | None = None


class DayAvailabilityRequest(BaseModel):
    start_time: time
    end_time: time
    is_available: bool

    @model_validator(mode='after')
    def validate_time_order(self) -> 'DayAvailabilityRequest':
        if self.end_time <= self.start_time:
            raise ValueError('End time must be after start time.')
        return self


class AvailabilitySlotResponse(BaseModel):
    id: str
    therapist_id: str
    day_of_week: int
    start_time: time
    end_time: time
    is_available: bool
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class SlotCheckResponse(BaseModel):
    therapist_id: str
    date: date
    start_time: time
    end_time: time
    is_available: bool


class DaySlotResponse(BaseModel):
    date: date
    start_time: time
    end_time: time
    is_booked: bool


def _list_own_slots(therapist_id: str, db: Session) -> list[TherapistAvailability]:
    return db.query(TherapistAvailability).filter(
        TherapistAvailability.therapist_id == therapist_id,
    ).order_by(
        TherapistAvailability.day_of_week.asc(),
        TherapistAvailability.start_time.asc(),
    ).all()


def _get_own_slot(slot_id: str, therapist_id: str, db: Session) -> TherapistAvailability:
    slot = db.query(TherapistAvailability).filter(
        TherapistAvailability.id == slot_id,
        TherapistAvailability.therapist_id == therapist_id,
    ).first()

    if not slot:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail='Availability slot not found.',
        )

    return slot


def _require_therapist_exists(therapist_id: str, db: Session) -> None:
    therapist = db.query(Profile.id).filter(
        Profile.id == therapist_id,
        Profile.role == ROLE_THERAPIST,
    ).first()
    if therapist is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail='Therapist not found.',
        )


def _commit_and_invalidate(therapist_id: str, db: Session) -> None:
    db.commit()
    query_cache.invalidate(availability_tag(therapist_id))


@router.get('/me', response_model=list[AvailabilitySlotResponse])
def list_my_availability(
    current_user: Profile = Depends(require_therapist),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        slots = _list_own_slots(current_user.id, db)

        if not slots:
            slots = seed_default_availability(current_user.id, db)
            _commit_and_invalidate(current_user.id, db)
            for slot in slots:
                db.refresh(slot)

        return slots
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.post('/me', response_model=AvailabilitySlotResponse, status_code=status.HTTP_201_CREATED)
def add_availability_slot(
    data: AvailabilitySlotRequest,
    current_user: Profile = Depends(require_therapist),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        slot = TherapistAvailability(
            therapist_id=current_user.id,
            day_of_week=data.day_of_week,
            start_time=data.start_time,
            end_time=data.end_time,
            is_available=data.is_available,
        )
        db.add(slot)
        _commit_and_invalidate(current_user.id, db)
        db.refresh(slot)

        return slot
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.put('/me/{slot_id}', response_model=AvailabilitySlotResponse)
def update_availability_slot(
    slot_id: str,
    data: AvailabilitySlotUpdateRequest,
    current_user: Profile = Depends(require_therapist),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        slot = _get_own_slot(slot_id, current_user.id, db)

        for field, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
            setattr(slot, field, value)

        if slot.end_time <= slot.start_time:
            db.rollback()
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail='End time must be after start time.',
            )

        _commit_and_invalidate(current_user.id, db)
        db.refresh(slot)

        return slot
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.delete('/me/{slot_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_availability_slot(
    slot_id: str,
    current_user: Profile = Depends(require_therapist),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        slot = _get_own_slot(slot_id, current_user.id, db)
        db.delete(slot)
        _commit_and_invalidate(current_user.id, db)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.put('/me/days/{day_of_week}', response_model=AvailabilitySlotResponse)
def update_day_availability(
    data: DayAvailabilityRequest,
    day_of_week: int = Path(ge=0, le=6),
    current_user: Profile = Depends(require_therapist),
    db: Session = Depends(get_db),
):
    """Set the hours for one weekday, updating its first slot or creating one."""
    ensure_database_ready()

    try:
        slot = db.query(TherapistAvailability).filter(
            TherapistAvailability.therapist_id == current_user.id,
            TherapistAvailability.day_of_week == day_of_week,
        ).order_by(TherapistAvailability.start_time.asc()).first()

        if slot is None:
            slot = TherapistAvailability(therapist_id=current_user.id, day_of_week=day_of_week)
            db.add(slot)

        slot.start_time = data.start_time
        slot.end_time = data.end_time
        slot.is_available = data.is_available

        _commit_and_invalidate(current_user.id, db)
        db.refresh(slot)

        return slot
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.get('/therapists/{therapist_id}', response_model=list[AvailabilitySlotResponse])
def list_therapist_availability(therapist_id: str, db: Session = Depends(get_db)):
    ensure_database_ready()

    def load() -> list[dict]:
        _require_therapist_exists(therapist_id, db)
        slots = db.query(TherapistAvailability).filter(
            TherapistAvailability.therapist_id == therapist_id,
            TherapistAvailability.is_available.is_(True),
        ).order_by(
            TherapistAvailability.day_of_week.asc(),
            TherapistAvailability.start_time.asc(),
        ).all()
        return [AvailabilitySlotResponse.model_validate(slot).model_dump(mode='json') for slot in slots]

    try:
        return query_cache.get_or_load(
            f'availability:list:{therapist_id}',
            load,
            tags=[availability_tag(therapist_id)],
        )
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.get('/therapists/{therapist_id}/check', response_model=SlotCheckResponse)
def check_slot_availability(
    therapist_id: str,
    slot_date: date = Query(..., alias='date'),
    start_time: time = Query(...),
    end_time: time = Query(...),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        available = is_slot_available(SqlAlchemySchedulingStore(db), therapist_id, slot_date, start_time, end_time)
    except SchedulingError as exc:
        raise http_error_for(exc) from exc

    return SlotCheckResponse(
        therapist_id=therapist_id,
        date=slot_date,
        start_time=start_time,
        end_time=end_time,
        is_available=available,
    )


@router.get('/therapists/{therapist_id}/slots', response_model=list[DaySlotResponse])
def list_therapist_day_slots(
    therapist_id: str,
    slot_date: date = Query(..., alias='date'),
    slot_minutes: int = Query(default=config.DEFAULT_SLOT_MINUTES, ge=5, le=MAX_SLOT_MINUTES),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        slots = list_day_slots(SqlAlchemySchedulingStore(db), therapist_id, slot_date, slot_minutes)
    except SchedulingError as exc:
        raise http_error_for(exc) from exc

    return [
        DaySlotResponse(date=slot_date, start_time=slot.start_time, end_time=slot.end_time, is_booked=slot.is_booked)
        for slot in slots
    ]
