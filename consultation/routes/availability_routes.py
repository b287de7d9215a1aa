from datetime import date, datetime, time

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, field_validator
from sqlalchemy.orm import Session

from consultation.routes.dependencies import get_db, get_engine, resolve_party, unwrap
from consultation.scheduling.engine import SchedulingEngine

router = APIRouter(tags=['availability'])


def normalize_username(value: str) -> str:
    normalized = value.strip()
    if not normalized:
        raise ValueError('Staff username is required.')
    return normalized


class SlotRequest(BaseModel):
    staff_username: str
    date: date
    start_time: time
    end_time: time

    @field_validator('staff_username')
    @classmethod
    def validate_staff_username(cls, value: str) -> str:
        return normalize_username(value)

    @field_validator('start_time', 'end_time')
    @classmethod
    def drop_seconds(cls, value: time) -> time:
        return value.replace(second=0, microsecond=0)


class MarkSlotRequest(SlotRequest):
    marked_available: bool


class DefaultWeekRequest(BaseModel):
    staff_username: str
    days: int | None = None

    @field_validator('staff_username')
    @classmethod
    def validate_staff_username(cls, value: str) -> str:
        return normalize_username(value)

    @field_validator('days')
    @classmethod
    def validate_days(cls, value: int | None) -> int | None:
        if value is not None and not 1 <= value <= 28:
            raise ValueError('Days must be between 1 and 28.')
        return value


class SlotResponse(BaseModel):
    staff_id: str
    date: date
    start: time
    end: time
    start_datetime: datetime
    end_datetime: datetime
    duration_minutes: int
    marked_available: bool
    is_available: bool
    is_booked: bool
    booked_appointment_id: int | None = None

    class Config:
        from_attributes = True


@router.post('/slots', response_model=SlotResponse, status_code=status.HTTP_201_CREATED)
def add_slot(
    data: SlotRequest,
    db: Session = Depends(get_db),
    engine: SchedulingEngine = Depends(get_engine),
):
    staff = resolve_party(db, data.staff_username)
    return unwrap(engine.add_availability(staff, data.date, data.start_time, data.end_time))


@router.delete('/slots', status_code=status.HTTP_204_NO_CONTENT)
def remove_slot(
    staff_username: str = Query(...),
    slot_date: date = Query(..., alias='date'),
    start_time: time = Query(...),
    end_time: time = Query(...),
    db: Session = Depends(get_db),
    engine: SchedulingEngine = Depends(get_engine),
):
    staff = resolve_party(db, staff_username)
    unwrap(engine.remove_availability(staff, slot_date, start_time, end_time))


@router.put('/slots/marked', response_model=SlotResponse)
def mark_slot(
    data: MarkSlotRequest,
    db: Session = Depends(get_db),
    engine: SchedulingEngine = Depends(get_engine),
):
    staff = resolve_party(db, data.staff_username)
    return unwrap(
        engine.set_slot_marked_available(staff, data.date, data.start_time, data.end_time, data.marked_available)
    )


@router.post('/default-week', response_model=list[SlotResponse], status_code=status.HTTP_201_CREATED)
def open_default_week(
    data: DefaultWeekRequest,
    db: Session = Depends(get_db),
    engine: SchedulingEngine = Depends(get_engine),
):
    staff = resolve_party(db, data.staff_username)
    if data.days is None:
        return unwrap(engine.open_default_week(staff))
    return unwrap(engine.open_default_week(staff, days=data.days))


@router.get('/slots', response_model=list[SlotResponse])
def list_slots(
    staff_username: str = Query(...),
    slot_date: date = Query(..., alias='date'),
    engine: SchedulingEngine = Depends(get_engine),
):
    return engine.list_slots(staff_username.strip(), slot_date)


@router.get('/open', response_model=list[SlotResponse])
def list_open_slots(
    staff_username: str = Query(...),
    slot_date: date = Query(..., alias='date'),
    engine: SchedulingEngine = Depends(get_engine),
):
    return engine.list_available(staff_username.strip(), slot_date)
