"""User model definitions."""

from sqlalchemy import Column, String
from telehealth.database import Base

PATIENT_ROLE = "patient"
DOCTOR_ROLE = "doctor"
ADMIN_ROLE = "admin"

PENDING_VERIFICATION = "pending"
APPROVED = "approved"
REJECTED = "rejected"


class User(Base):
    """Represents an identity asserted by the external auth provider."""
    __tablename__ = "users"

    id = Column(String, primary_key=True)
    email = Column(String, unique=True, index=True)
    full_name = Column(String)
    role = Column(String, nullable=False)  # patient/doctor/admin
    # Doctors stay pending until an admin approves them.
    verification_status = Column(String, nullable=True)

    @property
    def is_approved_doctor(self) -> bool:
        return self.role == DOCTOR_ROLE and self.verification_status == APPROVED
