"""Availability store - per doctor, per UTC date, the set of open slots."""

import logging
from datetime import date
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from telehealth.core.errors import AvailabilityNotFound, SlotUnavailable
from telehealth.models.availability import AvailabilityDay
from telehealth.services.time_slots import (
    TimeSlot,
    availability_day_key,
    slots_from_documents,
    validate_day_slots,
)

logger = logging.getLogger(__name__)


class AvailabilityStore:
    """Keyed access to AvailabilityDay rows through an explicitly passed session.

    The store never commits; the caller owns the transaction.
    """

    def __init__(self, db: Session):
        self.db = db

    def get_record(self, doctor_id: str, day: date, for_update: bool = False) -> Optional[AvailabilityDay]:
        query = self.db.query(AvailabilityDay).filter(
            AvailabilityDay.id == availability_day_key(doctor_id, day)
        )
        if for_update:
            # Row lock where supported; the version column still catches
            # conflicts on backends that ignore FOR UPDATE (SQLite).
            query = query.with_for_update()
        return query.first()

    def get_day(self, doctor_id: str, day: date) -> list[TimeSlot]:
        record = self.get_record(doctor_id, day)
        if record is None:
            return []
        return slots_from_documents(record.time_slots)

    def replace_day(self, doctor_id: str, day: date, slots: Iterable[TimeSlot]) -> AvailabilityDay:
        """Overwrite the whole day. Slots missing from ``slots`` are discarded."""
        validated = validate_day_slots(day, slots)
        documents = [slot.to_document() for slot in validated]

        record = self.get_record(doctor_id, day)
        if record is None:
            record = AvailabilityDay(
                id=availability_day_key(doctor_id, day),
                doctor_id=doctor_id,
                date=day,
                time_slots=documents,
            )
            self.db.add(record)
        else:
            record.time_slots = documents

        logger.info("Replacing availability for doctor %s on %s with %d slots", doctor_id, day, len(documents))
        return record

    def remove_slot(self, doctor_id: str, day: date, slot: TimeSlot) -> AvailabilityDay:
        """Drop exactly one slot, matched by start time.

        Reuses the row already loaded in this session, so calling this after
        ``get_record(..., for_update=True)`` issues no further read.
        """
        record = self.db.get(AvailabilityDay, availability_day_key(doctor_id, day))
        if record is None:
            raise AvailabilityNotFound()

        current_slots = slots_from_documents(record.time_slots)
        if slot not in current_slots:
            raise SlotUnavailable()

        # Assign a new list so the JSON column is flagged dirty.
        record.time_slots = [
            current.to_document() for current in current_slots if current != slot
        ]
        return record
