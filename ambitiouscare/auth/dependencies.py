from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jwt import PyJWTError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ambitiouscare.auth import jwt_handler
from ambitiouscare.database import get_db
from ambitiouscare.models.user import ROLE_PATIENT, ROLE_THERAPIST, Profile

security = HTTPBearer()


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> Profile:
    token = credentials.credentials
    try:
        claims = jwt_handler.read_profile_token(token)
    except PyJWTError as exc:
        raise HTTPException(status_code=401, detail="Invalid token") from exc

    if not claims.profile_id:
        raise HTTPException(status_code=401, detail="Invalid token subject")

    try:
        user = db.query(Profile).filter(Profile.id == claims.profile_id).first()
    except SQLAlchemyError as exc:
        raise HTTPException(status_code=503, detail="Database unavailable.") from exc
    if user is None:
        raise HTTPException(status_code=401, detail="User not found")
    if claims.role and claims.role != user.role:
        raise HTTPException(status_code=401, detail="Token role is out of date")
    return user


def require_therapist(current_user: Profile = Depends(get_current_user)) -> Profile:
    if current_user.role != ROLE_THERAPIST:
        raise HTTPException(status_code=403, detail="Only therapists can perform this action.")
    return current_user


def require_patient(current_user: Profile = Depends(get_current_user)) -> Profile:
    if current_user.role != ROLE_PATIENT:
        raise HTTPException(status_code=403, detail="Only patients can perform this action.")
    return current_user
