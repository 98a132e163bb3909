from datetime import date, datetime

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from telehealth.auth.dependencies import get_current_user, require_identity
from telehealth.core.errors import BookingError, BookingValidationError
from telehealth.database import get_db
from telehealth.models.user import DOCTOR_ROLE, User
from telehealth.services.availability_store import AvailabilityStore
from telehealth.services.time_slots import TimeSlot, to_utc

router = APIRouter(tags=['availability'])

DATABASE_UNAVAILABLE_DETAIL = 'Database unavailable. Verify DATABASE_URL and database credentials.'


class TimeSlotPayload(BaseModel):
    start_time: datetime
    end_time: datetime

    @field_validator('start_time', 'end_time')
    @classmethod
    def normalize_to_utc(cls, value: datetime) -> datetime:
        return to_utc(value)

    def to_slot(self) -> TimeSlot:
        return TimeSlot(start_time=self.start_time, end_time=self.end_time)

    @classmethod
    def from_slot(cls, slot: TimeSlot) -> 'TimeSlotPayload':
        return cls(start_time=slot.start_time, end_time=slot.end_time)


class ReplaceAvailabilityRequest(BaseModel):
    time_slots: list[TimeSlotPayload]


class AvailabilityDayResponse(BaseModel):
    doctor_id: str
    date: date
    time_slots: list[TimeSlotPayload]


def booking_error_to_http(exc: BookingError) -> HTTPException:
    status_codes = {
        'availability_not_found': status.HTTP_404_NOT_FOUND,
        'appointment_not_found': status.HTTP_404_NOT_FOUND,
        'slot_unavailable': status.HTTP_409_CONFLICT,
        'invalid_status_transition': status.HTTP_409_CONFLICT,
        'concurrent_conflict': status.HTTP_503_SERVICE_UNAVAILABLE,
        'validation_error': status.HTTP_400_BAD_REQUEST,
    }
    return HTTPException(
        status_code=status_codes.get(exc.kind, status.HTTP_400_BAD_REQUEST),
        detail={'kind': exc.kind, 'message': exc.message, 'retryable': exc.retryable},
    )


def database_unavailable() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=DATABASE_UNAVAILABLE_DETAIL,
    )


def build_day_response(doctor_id: str, day: date, slots: list[TimeSlot]) -> AvailabilityDayResponse:
    return AvailabilityDayResponse(
        doctor_id=doctor_id,
        date=day,
        time_slots=[TimeSlotPayload.from_slot(slot) for slot in slots],
    )


@router.get('/{doctor_id}/{day}', response_model=AvailabilityDayResponse)
def get_availability(
    doctor_id: str,
    day: date,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    del current_user

    try:
        slots = AvailabilityStore(db).get_day(doctor_id, day)
    except BookingError as exc:
        raise booking_error_to_http(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    return build_day_response(doctor_id, day, slots)


@router.put('/{doctor_id}/{day}', response_model=AvailabilityDayResponse)
def replace_availability(
    doctor_id: str,
    day: date,
    data: ReplaceAvailabilityRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    require_identity(
        current_user,
        doctor_id,
        DOCTOR_ROLE,
        'Doctors can only publish their own availability.',
    )
    if not current_user.is_approved_doctor:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail='Doctor account has not been approved.',
        )

    try:
        slots = [payload.to_slot() for payload in data.time_slots]
        store = AvailabilityStore(db)
        store.replace_day(doctor_id, day, slots)
        db.commit()
        saved_slots = store.get_day(doctor_id, day)
    except BookingValidationError as exc:
        db.rollback()
        raise booking_error_to_http(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc

    return build_day_response(doctor_id, day, saved_slots)
