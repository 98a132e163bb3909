"""Appointment ledger - the record of booked appointments and their status."""

import logging
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from telehealth.core.errors import AppointmentNotFound, BookingValidationError, InvalidStatusTransition
from telehealth.models.appointment import (
    APPOINTMENT_STATUSES,
    CANCELLED,
    COMPLETED,
    SCHEDULED,
    Appointment,
    new_appointment_id,
)
from telehealth.services.time_slots import TimeSlot

logger = logging.getLogger(__name__)

STATUS_TRANSITIONS = {
    SCHEDULED: {COMPLETED, CANCELLED},
    COMPLETED: set(),
    CANCELLED: set(),
}


def can_transition(current_status: str, new_status: str) -> bool:
    return new_status in STATUS_TRANSITIONS.get(current_status, set())


class AppointmentLedger:
    """Appointment rows through an explicitly passed session. Never commits."""

    def __init__(self, db: Session):
        self.db = db

    def create(self, doctor_id: str, patient_id: str, slot: TimeSlot) -> Appointment:
        """Insert a scheduled appointment.

        No uniqueness check happens here: removing the slot from availability in
        the same transaction is what prevents double-booking. The id and
        creation time are assigned here so the row is complete before commit.
        """
        appointment = Appointment(
            id=new_appointment_id(),
            doctor_id=doctor_id,
            patient_id=patient_id,
            start_time=slot.start_time,
            end_time=slot.end_time,
            status=SCHEDULED,
            created_at=datetime.now(timezone.utc),
        )
        self.db.add(appointment)
        return appointment

    def get(self, appointment_id: str) -> Appointment:
        appointment = self.db.get(Appointment, appointment_id)
        if appointment is None:
            raise AppointmentNotFound()
        return appointment

    def list_by_doctor(self, doctor_id: str) -> list[Appointment]:
        return (
            self.db.query(Appointment)
            .filter(Appointment.doctor_id == doctor_id)
            .order_by(Appointment.start_time.asc())
            .all()
        )

    def list_by_patient(self, patient_id: str) -> list[Appointment]:
        return (
            self.db.query(Appointment)
            .filter(Appointment.patient_id == patient_id)
            .order_by(Appointment.start_time.asc())
            .all()
        )

    def update_status(self, appointment_id: str, new_status: str) -> Appointment:
        normalized_status = (new_status or "").strip().lower()
        if normalized_status not in APPOINTMENT_STATUSES:
            raise BookingValidationError(f"Unknown appointment status: {new_status!r}.")

        appointment = self.get(appointment_id)
        if not can_transition(appointment.status, normalized_status):
            raise InvalidStatusTransition(
                f"Cannot change appointment from {appointment.status} to {normalized_status}."
            )

        logger.info("Appointment %s: %s -> %s", appointment.id, appointment.status, normalized_status)
        appointment.status = normalized_status
        return appointment
