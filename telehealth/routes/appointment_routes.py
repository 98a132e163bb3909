from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from telehealth.auth.dependencies import get_current_user, is_admin
from telehealth.core.errors import BookingError
from telehealth.database import get_db
from telehealth.models.appointment import APPOINTMENT_STATUSES, CANCELLED, COMPLETED, Appointment
from telehealth.models.user import DOCTOR_ROLE, PATIENT_ROLE, User
from telehealth.routes.availability_routes import booking_error_to_http, database_unavailable
from telehealth.services.appointment_ledger import AppointmentLedger
from telehealth.services.time_slots import to_utc

router = APIRouter(tags=['appointments'])


class AppointmentResponse(BaseModel):
    id: str
    doctor_id: str
    patient_id: str
    start_time: datetime
    end_time: datetime
    status: str
    created_at: datetime | None = None


class UpdateStatusRequest(BaseModel):
    status: str

    @field_validator('status')
    @classmethod
    def validate_status(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in APPOINTMENT_STATUSES:
            raise ValueError('Invalid appointment status.')
        return normalized


def to_response(appointment: Appointment) -> AppointmentResponse:
    return AppointmentResponse(
        id=appointment.id,
        doctor_id=appointment.doctor_id,
        patient_id=appointment.patient_id,
        start_time=to_utc(appointment.start_time),
        end_time=to_utc(appointment.end_time),
        status=appointment.status,
        created_at=to_utc(appointment.created_at) if appointment.created_at else None,
    )


def allowed_status_changes(user: User, appointment: Appointment) -> set[str]:
    if is_admin(user):
        return {COMPLETED, CANCELLED}
    if user.role == DOCTOR_ROLE and user.id == appointment.doctor_id:
        return {COMPLETED, CANCELLED}
    if user.role == PATIENT_ROLE and user.id == appointment.patient_id:
        return {CANCELLED}
    return set()


@router.get('/doctor/{doctor_id}', response_model=list[AppointmentResponse])
def list_doctor_appointments(
    doctor_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if not is_admin(current_user) and not (current_user.role == DOCTOR_ROLE and current_user.id == doctor_id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail='Only the doctor or an admin can view these appointments.',
        )

    try:
        appointments = AppointmentLedger(db).list_by_doctor(doctor_id)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    return [to_response(appointment) for appointment in appointments]


@router.get('/patient/{patient_id}', response_model=list[AppointmentResponse])
def list_patient_appointments(
    patient_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if not is_admin(current_user) and not (current_user.role == PATIENT_ROLE and current_user.id == patient_id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail='Only the patient or an admin can view these appointments.',
        )

    try:
        appointments = AppointmentLedger(db).list_by_patient(patient_id)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    return [to_response(appointment) for appointment in appointments]


@router.patch('/{appointment_id}/status', response_model=AppointmentResponse)
def update_appointment_status(
    appointment_id: str,
    data: UpdateStatusRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ledger = AppointmentLedger(db)

    try:
        appointment = ledger.get(appointment_id)

        if data.status not in allowed_status_changes(current_user, appointment):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail='You are not allowed to make this status change.',
            )

        appointment = ledger.update_status(appointment_id, data.status)
        db.commit()
        db.refresh(appointment)
    except BookingError as exc:
        db.rollback()
        raise booking_error_to_http(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc

    return to_response(appointment)
