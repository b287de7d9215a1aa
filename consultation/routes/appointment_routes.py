from datetime import datetime

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, field_validator
from sqlalchemy.orm import Session

from consultation.models.appointment import Appointment
from consultation.models.enums import AppointmentStatus
from consultation.routes.dependencies import get_db, get_engine, resolve_party, unwrap
from consultation.scheduling.engine import SchedulingEngine

router = APIRouter(tags=['appointments'])

MAX_SUBJECT_LENGTH = 120
MAX_DURATION_MINUTES = 480


class CreateAppointmentRequest(BaseModel):
    student_username: str
    staff_username: str
    subject: str
    duration_minutes: int

    @field_validator('student_username', 'staff_username')
    @classmethod
    def validate_username(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Username is required.')
        return normalized

    @field_validator('subject')
    @classmethod
    def validate_subject(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Subject is required.')
        if len(normalized) > MAX_SUBJECT_LENGTH:
            raise ValueError(f'Subject must be {MAX_SUBJECT_LENGTH} characters or fewer.')
        return normalized

    @field_validator('duration_minutes')
    @classmethod
    def validate_duration(cls, value: int) -> int:
        if value <= 0:
            raise ValueError('Duration must be a positive number of minutes.')
        if value > MAX_DURATION_MINUTES:
            raise ValueError(f'Duration must be {MAX_DURATION_MINUTES} minutes or fewer.')
        return value


class UpdateStatusRequest(BaseModel):
    status: AppointmentStatus

    @field_validator('status', mode='before')
    @classmethod
    def normalize_status(cls, value):
        if isinstance(value, str):
            return value.strip().upper()
        return value


class SetPriorityRequest(BaseModel):
    is_priority: bool


class AppointmentResponse(BaseModel):
    id: int
    student_username: str
    staff_username: str
    subject: str
    duration_minutes: int
    scheduled_at: datetime
    ends_at: datetime
    status: AppointmentStatus
    is_priority: bool


def to_response(appointment: Appointment) -> AppointmentResponse:
    return AppointmentResponse(
        id=appointment.id,
        student_username=appointment.student_id,
        staff_username=appointment.staff_id,
        subject=appointment.subject,
        duration_minutes=appointment.duration_minutes,
        scheduled_at=appointment.scheduled_at,
        ends_at=appointment.ends_at,
        status=appointment.status,
        is_priority=appointment.is_priority,
    )


@router.post('', response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def book_appointment(
    data: CreateAppointmentRequest,
    db: Session = Depends(get_db),
    engine: SchedulingEngine = Depends(get_engine),
):
    student = resolve_party(db, data.student_username)
    staff = resolve_party(db, data.staff_username)
    appointment = unwrap(engine.book_appointment(student, staff, data.subject, data.duration_minutes))
    return to_response(appointment)


@router.get('/users/{username}', response_model=list[AppointmentResponse])
def list_user_appointments(username: str, engine: SchedulingEngine = Depends(get_engine)):
    return [to_response(appointment) for appointment in engine.list_user_appointments(username.strip())]


@router.get('/{appointment_id}', response_model=AppointmentResponse)
def get_appointment(appointment_id: int, engine: SchedulingEngine = Depends(get_engine)):
    return to_response(unwrap(engine.get_appointment(appointment_id)))


@router.delete('/{appointment_id}', status_code=status.HTTP_204_NO_CONTENT)
def cancel_appointment(appointment_id: int, engine: SchedulingEngine = Depends(get_engine)):
    unwrap(engine.cancel_appointment(appointment_id))


@router.post('/{appointment_id}/complete', response_model=AppointmentResponse)
def complete_appointment(appointment_id: int, engine: SchedulingEngine = Depends(get_engine)):
    unwrap(engine.complete_current(appointment_id))
    return to_response(unwrap(engine.get_appointment(appointment_id)))


@router.put('/{appointment_id}/status', response_model=AppointmentResponse)
def update_appointment_status(
    appointment_id: int,
    data: UpdateStatusRequest,
    engine: SchedulingEngine = Depends(get_engine),
):
    unwrap(engine.update_status(appointment_id, data.status))
    return to_response(unwrap(engine.get_appointment(appointment_id)))


@router.put('/{appointment_id}/priority', response_model=AppointmentResponse)
def set_appointment_priority(
    appointment_id: int,
    data: SetPriorityRequest,
    engine: SchedulingEngine = Depends(get_engine),
):
    unwrap(engine.set_priority(appointment_id, data.is_priority))
    return to_response(unwrap(engine.get_appointment(appointment_id)))
