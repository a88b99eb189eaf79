from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ambitiouscare.core.cache import THERAPISTS_TAG, query_cache
from ambitiouscare.database import get_db
from ambitiouscare.models.user import ROLE_THERAPIST, Profile
from ambitiouscare.routes.auth_routes import ProfileResponse
from ambitiouscare.routes.errors import database_unavailable

router = APIRouter(tags=['therapists'])


@router.get('', response_model=list[ProfileResponse])
def list_therapists(db: Session = Depends(get_db)):
    def load() -> list[dict]:
        therapists = db.query(Profile).filter(
            Profile.role == ROLE_THERAPIST,
        ).order_by(Profile.full_name.asc()).all()
        return [ProfileResponse.model_validate(therapist).model_dump(mode='json') for therapist in therapists]

    try:
        return query_cache.get_or_load('therapists:list', load, tags=[THERAPISTS_TAG])
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc
