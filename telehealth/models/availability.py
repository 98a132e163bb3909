"""Availability model definitions."""

from sqlalchemy import JSON, Column, Date, Integer, String
from telehealth.database import Base


class AvailabilityDay(Base):
    """The open time slots a doctor has published for one calendar date."""
    __tablename__ = "availabilities"

    id = Column(String, primary_key=True)  # "{doctor_id}_{iso_date}"
    doctor_id = Column(String, nullable=False, index=True)
    date = Column(Date, nullable=False)
    time_slots = Column(JSON, nullable=False, default=list)
    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}
