"""Time slot records held by the in-memory slot store."""

from dataclasses import dataclass
from datetime import date, datetime, time
from typing import NamedTuple


class SlotKey(NamedTuple):
    """Identity of a slot; booking state is not part of it."""

    staff_id: str
    date: date
    start: time
    end: time


@dataclass(eq=False)
class TimeSlot:
    """A bookable interval on one staff member's calendar."""

    staff_id: str
    date: date
    start: time
    end: time
    marked_available: bool = True
    booked_appointment_id: int | None = None

    @property
    def key(self) -> SlotKey:
        return SlotKey(self.staff_id, self.date, self.start, self.end)

    @property
    def start_datetime(self) -> datetime:
        return datetime.combine(self.date, self.start)

    @property
    def end_datetime(self) -> datetime:
        return datetime.combine(self.date, self.end)

    @property
    def duration_minutes(self) -> int:
        return int((self.end_datetime - self.start_datetime).total_seconds() // 60)

    @property
    def is_booked(self) -> bool:
        return self.booked_appointment_id is not None

    @property
    def is_available(self) -> bool:
        return self.marked_available and self.booked_appointment_id is None

    def overlaps(self, start: time, end: time) -> bool:
        return start < self.end and end > self.start

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TimeSlot):
            return NotImplemented
        return self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)

    def __repr__(self) -> str:
        if self.booked_appointment_id is not None:
            state = f'booked by #{self.booked_appointment_id}'
        elif self.marked_available:
            state = 'available'
        else:
            state = 'marked unavailable'
        return (
            f'TimeSlot({self.staff_id} {self.date.isoformat()} '
            f'{self.start:%H:%M}-{self.end:%H:%M}, {state})'
        )
