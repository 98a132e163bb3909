"""
Booking orchestrator.

One booking attempt is one transaction: read the doctor's availability day,
check the slot is still open, then remove the slot and insert the appointment.
Every read happens before any write so the attempt can be retried as a whole
when the database reports a conflicting concurrent write.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from telehealth.core import config
from telehealth.core.errors import (
    AvailabilityNotFound,
    BookingError,
    BookingValidationError,
    ConcurrentConflict,
    SlotUnavailable,
)
from telehealth.models.appointment import Appointment
from telehealth.services.appointment_ledger import AppointmentLedger
from telehealth.services.availability_store import AvailabilityStore
from telehealth.services.time_slots import TimeSlot, slots_from_documents, validate_slot

logger = logging.getLogger(__name__)

# Postgres serialization_failure and deadlock_detected.
RETRYABLE_SQLSTATES = {"40001", "40P01"}


def is_write_conflict(exc: Exception) -> bool:
    if isinstance(exc, StaleDataError):
        return True
    if isinstance(exc, DBAPIError):
        orig = exc.orig
        if getattr(orig, "pgcode", None) in RETRYABLE_SQLSTATES:
            return True
        if getattr(orig, "sqlstate", None) in RETRYABLE_SQLSTATES:
            return True
        return "database is locked" in str(orig)
    return False


def detached_copy(appointment: Appointment) -> Appointment:
    """A session-free copy of a pending appointment with all columns loaded."""
    return Appointment(
        **{column.key: getattr(appointment, column.key) for column in Appointment.__table__.columns}
    )


@dataclass
class BookingResult:
    appointment: Optional[Appointment] = None
    error: Optional[BookingError] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.appointment is not None

    @property
    def appointment_id(self) -> Optional[str]:
        return self.appointment.id if self.appointment is not None else None

    @property
    def error_kind(self) -> Optional[str]:
        return self.error.kind if self.error is not None else None

    @property
    def retryable(self) -> bool:
        return bool(self.error is not None and self.error.retryable)


class BookingOrchestrator:
    """Runs booking attempts against sessions produced by ``session_factory``.

    Holds no state shared between requests; mutual exclusion comes entirely from
    the database.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        max_retries: int | None = None,
        slot_duration_minutes: int | None = None,
    ):
        self.session_factory = session_factory
        self.max_retries = config.BOOKING_MAX_RETRIES if max_retries is None else max_retries
        self.slot_duration_minutes = (
            config.SLOT_DURATION_MINUTES if slot_duration_minutes is None else slot_duration_minutes
        )
        if self.max_retries < 1:
            raise ValueError("max_retries must be at least 1.")
        if self.slot_duration_minutes <= 0:
            raise ValueError("slot_duration_minutes must be positive.")

    def book(self, doctor_id: str, patient_id: str, slot: TimeSlot) -> BookingResult:
        try:
            self._validate_request(doctor_id, patient_id, slot)
        except BookingError as exc:
            return BookingResult(error=exc)

        for attempt in range(1, self.max_retries + 1):
            with self.session_factory() as db:
                try:
                    appointment = self._attempt(db, doctor_id, patient_id, slot)
                except BookingError as exc:
                    db.rollback()
                    logger.info(
                        "Booking rejected for doctor %s at %s: %s",
                        doctor_id,
                        slot.start_time.isoformat(),
                        exc.kind,
                    )
                    return BookingResult(error=exc)
                except (StaleDataError, DBAPIError) as exc:
                    db.rollback()
                    if not is_write_conflict(exc):
                        raise
                    logger.warning(
                        "Booking conflict for doctor %s at %s (attempt %d/%d)",
                        doctor_id,
                        slot.start_time.isoformat(),
                        attempt,
                        self.max_retries,
                    )
                    continue

            logger.info(
                "Booked appointment %s for patient %s with doctor %s at %s",
                appointment.id,
                patient_id,
                doctor_id,
                slot.start_time.isoformat(),
            )
            return BookingResult(appointment=appointment)

        return BookingResult(error=ConcurrentConflict())

    def _validate_request(self, doctor_id: str, patient_id: str, slot: TimeSlot) -> None:
        if not (doctor_id or "").strip():
            raise BookingValidationError("Doctor id is required.")
        if not (patient_id or "").strip():
            raise BookingValidationError("Patient id is required.")
        if doctor_id == patient_id:
            raise BookingValidationError("A doctor cannot book an appointment with themselves.")
        validate_slot(slot, self.slot_duration_minutes)

    def _attempt(self, db: Session, doctor_id: str, patient_id: str, slot: TimeSlot) -> Appointment:
        store = AvailabilityStore(db)
        ledger = AppointmentLedger(db)
        day = slot.day

        # Reads.
        record = store.get_record(doctor_id, day, for_update=True)
        if record is None:
            raise AvailabilityNotFound()

        open_slots = slots_from_documents(record.time_slots)
        matched = next((current for current in open_slots if current == slot), None)
        if matched is None:
            raise SlotUnavailable()

        # Writes.
        store.remove_slot(doctor_id, day, matched)
        appointment = ledger.create(doctor_id, patient_id, matched)

        # Nothing may touch the database once the commit has succeeded.
        booked = detached_copy(appointment)
        db.commit()
        return booked
