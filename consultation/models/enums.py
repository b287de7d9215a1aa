"""Closed enumerations for roles and appointment lifecycle states."""

from enum import Enum


class Role(str, Enum):
    STUDENT = 'STUDENT'
    PROFESSOR = 'PROFESSOR'
    COUNSELOR = 'COUNSELOR'

    @classmethod
    def parse(cls, value: str) -> 'Role':
        return cls(value.strip().upper())

    @property
    def is_staff(self) -> bool:
        return self in (Role.PROFESSOR, Role.COUNSELOR)


class AppointmentStatus(str, Enum):
    PENDING = 'PENDING'
    IN_PROGRESS = 'IN_PROGRESS'
    COMPLETED = 'COMPLETED'
    CANCELLED = 'CANCELLED'

    @property
    def is_active(self) -> bool:
        return self in (AppointmentStatus.PENDING, AppointmentStatus.IN_PROGRESS)

    @property
    def is_terminal(self) -> bool:
        return self in (AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED)


ALLOWED_TRANSITIONS = {
    AppointmentStatus.PENDING: frozenset({
        AppointmentStatus.IN_PROGRESS,
        AppointmentStatus.COMPLETED,
        AppointmentStatus.CANCELLED,
    }),
    AppointmentStatus.IN_PROGRESS: frozenset({
        AppointmentStatus.COMPLETED,
        AppointmentStatus.CANCELLED,
    }),
    AppointmentStatus.COMPLETED: frozenset(),
    AppointmentStatus.CANCELLED: frozenset(),
}
