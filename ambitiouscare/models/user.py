"""Profile model definitions."""

import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, String
from ambitiouscare.database import Base


ROLE_PATIENT = "patient"
ROLE_THERAPIST = "therapist"
ROLE_EXPERT = "expert"
USER_ROLES = (ROLE_PATIENT, ROLE_THERAPIST, ROLE_EXPERT)


class Profile(Base):
    """Represents an application user: a patient, therapist or expert."""
    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String, unique=True, index=True, nullable=False)
    full_name = Column(String)
    role = Column(String, nullable=False, default=ROLE_PATIENT)
    specialization = Column(String)
    created_at = Column(DateTime, default=datetime.now)

    @property
    def is_therapist(self) -> bool:
        return self.role == ROLE_THERAPIST
