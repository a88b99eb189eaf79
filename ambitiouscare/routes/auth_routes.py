"""Profile registration and token issuing.

Credential checks belong to the hosted identity provider; this router only
records the profile that an authenticated sign-up produced and hands back a
bearer token for the scheduling API.
"""

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ambitiouscare.auth import jwt_handler
from ambitiouscare.auth.dependencies import get_current_user
from ambitiouscare.core.cache import THERAPISTS_TAG, query_cache
from ambitiouscare.database import get_db
from ambitiouscare.models.user import ROLE_PATIENT, ROLE_THERAPIST, USER_ROLES, Profile
from ambitiouscare.routes.errors import database_unavailable
from ambitiouscare.scheduling.defaults import seed_default_availability

router = APIRouter(tags=['auth'])

logger = logging.getLogger(__name__)


class RegisterRequest(BaseModel):
    email: str
    full_name: str
    role: str = ROLE_PATIENT
    specialization: str | None = None

    @field_validator('email')
    @classmethod
    def validate_email(cls, value: str) -> str:
        normalized = value.strip().lower()
        if not normalized or '@' not in normalized:
            raise ValueError('A valid email is required.')
        return normalized

    @field_validator('full_name')
    @classmethod
    def validate_full_name(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Full name is required.')
        return normalized

    @field_validator('role')
    @classmethod
    def validate_role(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in USER_ROLES:
            raise ValueError('Invalid role.')
        return normalized


class ProfileResponse(BaseModel):
    id: str
    email: str
    full_name: str | None = None
    role: str
    specialization: str | None = None
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = 'bearer'
    profile: ProfileResponse


@router.post('/register', response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
def register(data: RegisterRequest, db: Session = Depends(get_db)):
    try:
        if db.query(Profile.id).filter(Profile.email == data.email).first():
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail='An account with this email already exists.',
            )

        profile = Profile(
            email=data.email,
            full_name=data.full_name,
            role=data.role,
            specialization=data.specialization,
        )
        db.add(profile)
        db.flush()

        if profile.role == ROLE_THERAPIST:
            seed_default_availability(profile.id, db)

        db.commit()
        db.refresh(profile)
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail='An account with this email already exists.',
        ) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc

    if profile.role == ROLE_THERAPIST:
        query_cache.invalidate(THERAPISTS_TAG)

    logger.info('Registered %s profile %s', profile.role, profile.id)
    token = jwt_handler.issue_profile_token(profile.id, role=profile.role)
    return TokenResponse(access_token=token, profile=ProfileResponse.model_validate(profile))


@router.get('/me', response_model=ProfileResponse)
def me(current_user: Profile = Depends(get_current_user)):
    return current_user
