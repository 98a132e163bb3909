from datetime import datetime

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from telehealth.auth.dependencies import get_current_user, require_identity
from telehealth.core.errors import BookingError
from telehealth.database import get_session_factory
from telehealth.models.user import PATIENT_ROLE, User
from telehealth.routes.availability_routes import (
    TimeSlotPayload,
    booking_error_to_http,
    database_unavailable,
)
from telehealth.services.booking import BookingOrchestrator
from telehealth.services.time_slots import to_utc

router = APIRouter(tags=['bookings'])


class CreateBookingRequest(BaseModel):
    doctor_id: str
    patient_id: str
    slot: TimeSlotPayload

    @field_validator('doctor_id', 'patient_id')
    @classmethod
    def validate_identifier(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Identifier is required.')
        return normalized


class BookingResponse(BaseModel):
    appointment_id: str
    doctor_id: str
    patient_id: str
    start_time: datetime
    end_time: datetime
    status: str


@router.post('', response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
def create_booking(
    data: CreateBookingRequest,
    current_user: User = Depends(get_current_user),
    session_factory: sessionmaker = Depends(get_session_factory),
):
    require_identity(
        current_user,
        data.patient_id,
        PATIENT_ROLE,
        'Patients can only book appointments for themselves.',
    )

    try:
        slot = data.slot.to_slot()
    except BookingError as exc:
        raise booking_error_to_http(exc) from exc

    try:
        result = BookingOrchestrator(session_factory).book(data.doctor_id, data.patient_id, slot)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    if not result.ok:
        raise booking_error_to_http(result.error)

    appointment = result.appointment
    return BookingResponse(
        appointment_id=appointment.id,
        doctor_id=appointment.doctor_id,
        patient_id=appointment.patient_id,
        start_time=to_utc(appointment.start_time),
        end_time=to_utc(appointment.end_time),
        status=appointment.status,
    )
