"""Appointment model definitions."""

import uuid

from sqlalchemy import Column, DateTime, String, func
from telehealth.database import Base

SCHEDULED = "scheduled"
COMPLETED = "completed"
CANCELLED = "cancelled"

APPOINTMENT_STATUSES = (SCHEDULED, COMPLETED, CANCELLED)


def new_appointment_id() -> str:
    return uuid.uuid4().hex


class Appointment(Base):
    """Represents a booked appointment."""
    __tablename__ = "appointments"

    id = Column(String, primary_key=True, default=new_appointment_id)
    doctor_id = Column(String, nullable=False, index=True)
    patient_id = Column(String, nullable=False, index=True)
    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=False)
    status = Column(String, nullable=False, default=SCHEDULED)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
