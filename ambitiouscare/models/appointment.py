"""Appointment model definitions."""

import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import Column, DateTime, ForeignKey, String
from sqlalchemy.orm import relationship

from ambitiouscare.database import Base
from ambitiouscare.models.user import Profile


class AppointmentStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELED = "canceled"
    COMPLETED = "completed"

    @classmethod
    def parse(cls, value: str) -> "AppointmentStatus":
        normalized = value.strip().lower()
        if normalized == "cancelled":
            normalized = cls.CANCELED.value
        return cls(normalized)


# Statuses that hold a therapist's time.
ACTIVE_STATUSES = (AppointmentStatus.PENDING.value, AppointmentStatus.CONFIRMED.value)


class Appointment(Base):
    """A booked (or requested) session between a patient and a therapist."""
    __tablename__ = "appointments"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    patient_id = Column(String(36), ForeignKey("profiles.id"), nullable=False, index=True)
    therapist_id = Column(String(36), ForeignKey("profiles.id"), nullable=False, index=True)
    title = Column(String, nullable=False)
    description = Column(String)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    status = Column(String, nullable=False, default=AppointmentStatus.PENDING.value)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    patient = relationship(Profile, foreign_keys=[patient_id])
    therapist = relationship(Profile, foreign_keys=[therapist_id])
