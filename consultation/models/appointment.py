"""Appointment records owned by the appointment registry."""

from dataclasses import dataclass
from datetime import datetime, timedelta

from consultation.models.availability import SlotKey
from consultation.models.enums import AppointmentStatus
from consultation.models.party import Party


@dataclass(eq=False)
class Appointment:
    """Represents a scheduled consultation between a student and a staff member."""

    id: int
    student: Party
    staff: Party
    scheduled_at: datetime
    duration_minutes: int
    subject: str
    status: AppointmentStatus = AppointmentStatus.PENDING
    is_priority: bool = False
    slot_key: SlotKey | None = None

    @property
    def student_id(self) -> str:
        return self.student.username

    @property
    def staff_id(self) -> str:
        return self.staff.username

    @property
    def ends_at(self) -> datetime:
        return self.scheduled_at + timedelta(minutes=self.duration_minutes)

    def involves(self, username: str) -> bool:
        return username in (self.student.username, self.staff.username)

    def __repr__(self) -> str:
        return (
            f'Appointment(#{self.id} {self.student_id}->{self.staff_id} '
            f'{self.scheduled_at:%Y-%m-%d %H:%M} {self.status.value}'
            f'{" priority" if self.is_priority else ""})'
        )
