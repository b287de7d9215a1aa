"""Per-staff, per-date calendar of bookable time slots."""

import bisect
import logging
from datetime import date, datetime, time, timedelta
from threading import Lock
from typing import Iterator

from consultation.core import config
from consultation.core.errors import ConflictError, ErrorCode, NotFoundError, ValidationError
from consultation.models.appointment import Appointment
from consultation.models.availability import SlotKey, TimeSlot

logger = logging.getLogger(__name__)


class TimeSlotStore:
    """Keeps each staff member's slots sorted by start time.

    Callers are expected to hold the staff member's lock for mutations; the
    internal lock only guards the shape of the nested maps.
    """

    def __init__(self, min_lead_minutes: int = config.MIN_SLOT_LEAD_MINUTES):
        self.min_lead = timedelta(minutes=min_lead_minutes)
        self._schedules: dict[str, dict[date, list[TimeSlot]]] = {}
        self._index: dict[SlotKey, TimeSlot] = {}
        self._lock = Lock()

    def add_availability(self, staff_id: str, slot_date: date, start: time, end: time, now: datetime) -> TimeSlot:
        if end <= start:
            raise ValidationError(
                f'End time {end:%H:%M} must be after start time {start:%H:%M}.',
                ErrorCode.INVALID_RANGE,
            )

        start_at = datetime.combine(slot_date, start)
        if start_at <= now + self.min_lead:
            raise ValidationError(
                f'Cannot add a slot starting at {start_at:%Y-%m-%d %H:%M}; it must start '
                f'more than {int(self.min_lead.total_seconds() // 60)} minute(s) from now.',
                ErrorCode.PAST_START,
            )

        with self._lock:
            slots = self._schedules.setdefault(staff_id, {}).setdefault(slot_date, [])
            for existing in slots:
                if existing.overlaps(start, end):
                    raise ConflictError(
                        f'Slot {start:%H:%M}-{end:%H:%M} overlaps existing slot '
                        f'{existing.start:%H:%M}-{existing.end:%H:%M} on {slot_date.isoformat()}.',
                        ErrorCode.OVERLAP,
                    )

            slot = TimeSlot(staff_id=staff_id, date=slot_date, start=start, end=end)
            starts = [existing.start for existing in slots]
            slots.insert(bisect.bisect_left(starts, start), slot)
            self._index[slot.key] = slot

        logger.info('Added slot %s', slot)
        return slot

    def remove_availability(self, staff_id: str, slot_date: date, start: time, end: time) -> TimeSlot:
        key = SlotKey(staff_id, slot_date, start, end)

        with self._lock:
            slot = self._index.get(key)
            if slot is None:
                raise NotFoundError(
                    f'No slot {start:%H:%M}-{end:%H:%M} on {slot_date.isoformat()} for {staff_id}.',
                )
            if slot.is_booked:
                raise ConflictError(
                    f'Slot {start:%H:%M}-{end:%H:%M} on {slot_date.isoformat()} is booked by '
                    f'appointment #{slot.booked_appointment_id}.',
                    ErrorCode.SLOT_BOOKED,
                )

            schedule = self._schedules[staff_id]
            slots = schedule[slot_date]
            slots.remove(slot)
            del self._index[key]
            if not slots:
                del schedule[slot_date]

        logger.info('Removed slot %s', slot)
        return slot

    def list_slots(self, staff_id: str, slot_date: date) -> list[TimeSlot]:
        with self._lock:
            return list(self._schedules.get(staff_id, {}).get(slot_date, []))

    def list_available(self, staff_id: str, slot_date: date, reference_time: datetime) -> list[TimeSlot]:
        return [
            slot for slot in self.list_slots(staff_id, slot_date)
            if slot.is_available and slot.start_datetime > reference_time
        ]

    def scheduled_dates(self, staff_id: str, from_date: date | None = None) -> list[date]:
        with self._lock:
            dates = sorted(self._schedules.get(staff_id, {}))
        if from_date is None:
            return dates
        return [slot_date for slot_date in dates if slot_date >= from_date]

    def iter_slots(self, staff_id: str, from_date: date) -> Iterator[TimeSlot]:
        """Yield slots in ascending (date, start) order from ``from_date`` on."""
        for slot_date in self.scheduled_dates(staff_id, from_date):
            yield from self.list_slots(staff_id, slot_date)

    def set_marked_available(self, key: SlotKey, marked_available: bool) -> TimeSlot:
        slot = self._index.get(key)
        if slot is None:
            raise NotFoundError(f'No slot {key.start:%H:%M}-{key.end:%H:%M} on {key.date.isoformat()} for {key.staff_id}.')
        slot.marked_available = marked_available
        return slot

    @staticmethod
    def can_accommodate(slot: TimeSlot, duration_minutes: int) -> bool:
        return duration_minutes > 0 and slot.is_available and slot.duration_minutes >= duration_minutes

    def book(self, slot: TimeSlot, appointment: Appointment) -> None:
        if not self.can_accommodate(slot, appointment.duration_minutes):
            if slot.is_booked:
                raise ConflictError(
                    f'{slot!r} cannot take appointment #{appointment.id}.',
                    ErrorCode.SLOT_BOOKED,
                )
            raise ConflictError(
                f'{slot!r} ({slot.duration_minutes} min) cannot accommodate appointment '
                f'#{appointment.id} ({appointment.duration_minutes} min).',
                ErrorCode.NO_SLOT_AVAILABLE,
            )
        slot.booked_appointment_id = appointment.id

    def rebind(self, slot: TimeSlot, appointment: Appointment) -> None:
        """Put a booking back onto ``slot`` during rollback. The administrative mark is not checked."""
        if slot.is_booked and slot.booked_appointment_id != appointment.id:
            raise ConflictError(
                f'{slot!r} cannot take appointment #{appointment.id}.',
                ErrorCode.SLOT_BOOKED,
            )
        if slot.duration_minutes < appointment.duration_minutes:
            raise ConflictError(
                f'{slot!r} ({slot.duration_minutes} min) cannot accommodate appointment '
                f'#{appointment.id} ({appointment.duration_minutes} min).',
                ErrorCode.NO_SLOT_AVAILABLE,
            )
        slot.booked_appointment_id = appointment.id

    def free(self, slot: TimeSlot) -> None:
        slot.booked_appointment_id = None

    def slot_for(self, appointment: Appointment) -> TimeSlot | None:
        """The slot the appointment is bound to, or None if the binding is gone."""
        if appointment.slot_key is None:
            return None
        slot = self._index.get(appointment.slot_key)
        if slot is None or slot.booked_appointment_id != appointment.id:
            return None
        return slot
