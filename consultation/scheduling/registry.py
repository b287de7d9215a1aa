"""Appointment registry: the single source of truth for appointment records."""

import itertools
import logging
from threading import Lock

from consultation.core.errors import ConflictError, ErrorCode
from consultation.models.appointment import Appointment
from consultation.models.enums import ALLOWED_TRANSITIONS, AppointmentStatus

logger = logging.getLogger(__name__)


class IdGenerator:
    """Strictly increasing appointment ids. Ids are never handed out twice."""

    def __init__(self, start: int = 1):
        self._counter = itertools.count(start)
        self._lock = Lock()

    def next_id(self) -> int:
        with self._lock:
            return next(self._counter)


def validate_transition(current: AppointmentStatus, new: AppointmentStatus) -> None:
    if new not in ALLOWED_TRANSITIONS[current]:
        raise ConflictError(
            f'Cannot move an appointment from {current.value} to {new.value}.',
            ErrorCode.INVALID_TRANSITION,
        )


class AppointmentRegistry:
    def __init__(self) -> None:
        self._appointments: dict[int, Appointment] = {}
        self._lock = Lock()

    def __len__(self) -> int:
        return len(self._appointments)

    def __contains__(self, appointment_id: int) -> bool:
        return appointment_id in self._appointments

    def add(self, appointment: Appointment) -> None:
        with self._lock:
            if appointment.id in self._appointments:
                raise ConflictError(f'Appointment #{appointment.id} is already registered.', ErrorCode.CONSISTENCY)
            self._appointments[appointment.id] = appointment

    def remove(self, appointment_id: int) -> Appointment | None:
        with self._lock:
            return self._appointments.pop(appointment_id, None)

    def get(self, appointment_id: int) -> Appointment | None:
        return self._appointments.get(appointment_id)

    def all(self) -> list[Appointment]:
        with self._lock:
            return list(self._appointments.values())

    def for_staff(self, staff_id: str, status: AppointmentStatus | None = None) -> list[Appointment]:
        """Appointments held with one staff member, ascending by scheduled time."""
        appointments = [
            appointment for appointment in self.all()
            if appointment.staff_id == staff_id and (status is None or appointment.status is status)
        ]
        return sorted(appointments, key=lambda appointment: (appointment.scheduled_at, appointment.id))

    def for_user(self, username: str) -> list[Appointment]:
        appointments = [appointment for appointment in self.all() if appointment.involves(username)]
        return sorted(appointments, key=lambda appointment: (appointment.scheduled_at, appointment.id))

    def has_active(self, student_id: str, staff_id: str) -> bool:
        return any(
            appointment.student_id == student_id
            and appointment.staff_id == staff_id
            and appointment.status.is_active
            for appointment in self.all()
        )

    def in_progress_for(self, staff_id: str) -> Appointment | None:
        for appointment in self.all():
            if appointment.staff_id == staff_id and appointment.status is AppointmentStatus.IN_PROGRESS:
                return appointment
        return None
