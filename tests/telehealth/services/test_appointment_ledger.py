from datetime import datetime, timezone

import pytest

from telehealth.core.errors import AppointmentNotFound, BookingValidationError, InvalidStatusTransition
from telehealth.models.appointment import CANCELLED, COMPLETED, SCHEDULED
from telehealth.services.appointment_ledger import AppointmentLedger, can_transition
from telehealth.services.time_slots import TimeSlot, to_utc


def slot_at(hour: int, minute: int = 0) -> TimeSlot:
    start = datetime(2024, 7, 1, hour, minute, tzinfo=timezone.utc)
    end_hour, end_minute = divmod(hour * 60 + minute + 30, 60)
    return TimeSlot(start_time=start, end_time=datetime(2024, 7, 1, end_hour, end_minute, tzinfo=timezone.utc))


def test_create_inserts_scheduled_appointment_with_generated_id(db) -> None:
    ledger = AppointmentLedger(db)

    appointment = ledger.create('doc-1', 'pat-a', slot_at(9, 0))
    db.commit()
    db.refresh(appointment)

    assert appointment.id
    assert appointment.status == SCHEDULED
    assert to_utc(appointment.start_time) == slot_at(9, 0).start_time
    assert to_utc(appointment.end_time) == slot_at(9, 0).end_time
    assert appointment.created_at is not None


def test_create_does_not_enforce_uniqueness(db) -> None:
    ledger = AppointmentLedger(db)

    first = ledger.create('doc-1', 'pat-a', slot_at(9, 0))
    second = ledger.create('doc-1', 'pat-b', slot_at(9, 0))
    db.commit()

    assert first.id != second.id
    assert len(ledger.list_by_doctor('doc-1')) == 2


def test_list_by_doctor_and_patient_filter_and_order(db) -> None:
    ledger = AppointmentLedger(db)
    ledger.create('doc-1', 'pat-a', slot_at(10, 0))
    ledger.create('doc-1', 'pat-b', slot_at(9, 0))
    ledger.create('doc-2', 'pat-a', slot_at(11, 0))
    db.commit()

    doctor_starts = [to_utc(item.start_time) for item in ledger.list_by_doctor('doc-1')]
    patient_doctors = [item.doctor_id for item in ledger.list_by_patient('pat-a')]

    assert doctor_starts == [slot_at(9, 0).start_time, slot_at(10, 0).start_time]
    assert patient_doctors == ['doc-1', 'doc-2']


def test_get_raises_for_unknown_id(db) -> None:
    with pytest.raises(AppointmentNotFound):
        AppointmentLedger(db).get('missing')


@pytest.mark.parametrize('new_status', [COMPLETED, CANCELLED])
def test_update_status_moves_scheduled_to_terminal_state(db, new_status: str) -> None:
    ledger = AppointmentLedger(db)
    appointment = ledger.create('doc-1', 'pat-a', slot_at(9, 0))
    db.commit()

    updated = ledger.update_status(appointment.id, new_status)
    db.commit()

    assert updated.status == new_status


def test_update_status_rejects_leaving_terminal_state(db) -> None:
    ledger = AppointmentLedger(db)
    appointment = ledger.create('doc-1', 'pat-a', slot_at(9, 0))
    db.commit()
    ledger.update_status(appointment.id, CANCELLED)
    db.commit()

    with pytest.raises(InvalidStatusTransition):
        ledger.update_status(appointment.id, COMPLETED)


def test_update_status_rejects_unknown_status(db) -> None:
    ledger = AppointmentLedger(db)
    appointment = ledger.create('doc-1', 'pat-a', slot_at(9, 0))
    db.commit()

    with pytest.raises(BookingValidationError):
        ledger.update_status(appointment.id, 'rescheduled')


def test_can_transition_table() -> None:
    assert can_transition(SCHEDULED, COMPLETED)
    assert can_transition(SCHEDULED, CANCELLED)
    assert not can_transition(SCHEDULED, SCHEDULED)
    assert not can_transition(COMPLETED, CANCELLED)
    assert not can_transition(CANCELLED, SCHEDULED)
