from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from consultation.routes.appointment_routes import AppointmentResponse, to_response
from consultation.routes.dependencies import get_db, get_engine, resolve_party, unwrap
from consultation.scheduling.engine import SchedulingEngine

router = APIRouter(tags=['queues'])


class QueueResponse(BaseModel):
    staff_username: str
    size: int
    estimated_wait_minutes: int
    priority: list[AppointmentResponse]
    regular: list[AppointmentResponse]


@router.get('/{staff_username}', response_model=QueueResponse)
def get_queue(staff_username: str, engine: SchedulingEngine = Depends(get_engine)):
    snapshot = engine.queue_snapshot(staff_username.strip())
    return QueueResponse(
        staff_username=snapshot.staff_id,
        size=snapshot.size,
        estimated_wait_minutes=snapshot.estimated_wait_minutes,
        priority=[to_response(appointment) for appointment in snapshot.priority],
        regular=[to_response(appointment) for appointment in snapshot.regular],
    )


@router.post('/{staff_username}/next', response_model=AppointmentResponse)
def start_next(
    staff_username: str,
    db: Session = Depends(get_db),
    engine: SchedulingEngine = Depends(get_engine),
):
    staff = resolve_party(db, staff_username)
    if not staff.is_staff:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail='Only professors and counselors have a queue.',
        )
    return to_response(unwrap(engine.start_next(staff.username)))
