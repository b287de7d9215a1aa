"""Scheduling engine: the only component that mutates slots, registry and queues together."""

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

from consultation.core import config
from consultation.core.errors import (
    ConflictError,
    ConsistencyError,
    EligibilityError,
    ErrorCode,
    NotFoundError,
    SchedulingError,
    ValidationError,
)
from consultation.core.results import OperationResult
from consultation.models.appointment import Appointment
from consultation.models.availability import SlotKey, TimeSlot
from consultation.models.enums import AppointmentStatus, Role
from consultation.models.party import Party
from consultation.scheduling.clock import Clock, SystemClock
from consultation.scheduling.locks import StaffLocks
from consultation.scheduling.notifications import NotificationLog
from consultation.scheduling.promotion import PriorityPromotion
from consultation.scheduling.queue import QueueManager
from consultation.scheduling.registry import AppointmentRegistry, IdGenerator, validate_transition
from consultation.scheduling.timeslots import TimeSlotStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QueueSnapshot:
    staff_id: str
    size: int
    estimated_wait_minutes: int
    priority: list[Appointment]
    regular: list[Appointment]


class SchedulingEngine:
    def __init__(
        self,
        clock: Clock | None = None,
        notifications: NotificationLog | None = None,
        lock_scope: str = config.SCHEDULER_LOCK_SCOPE,
        min_lead_minutes: int = config.MIN_SLOT_LEAD_MINUTES,
        advising_subject: str = config.ADVISING_SUBJECT,
        time_format: str = config.NOTIFICATION_TIME_FORMAT,
    ):
        self.clock = clock or SystemClock()
        self.notifications = notifications or NotificationLog(self.clock)
        self.slots = TimeSlotStore(min_lead_minutes=min_lead_minutes)
        self.registry = AppointmentRegistry()
        self.ids = IdGenerator()
        self.locks = StaffLocks(lock_scope)
        self.advising_subject = advising_subject
        self.time_format = time_format
        self._queues: dict[str, QueueManager] = {}

    def _format(self, moment: datetime) -> str:
        return moment.strftime(self.time_format)

    def _notify(self, party: Party, message: str) -> None:
        self.notifications.notify(party.username, message)

    def queue_for(self, staff_id: str) -> QueueManager | None:
        return self._queues.get(staff_id)

    def _queue_of(self, staff_id: str) -> QueueManager:
        """The staff member's queue, created on first booking."""
        queue = self._queues.get(staff_id)
        if queue is None:
            queue = self._queues.setdefault(staff_id, QueueManager(staff_id))
        return queue

    @staticmethod
    def _require_staff(staff: Party | None) -> Party:
        if staff is None or not staff.is_staff:
            raise EligibilityError('A professor or counselor is required.', ErrorCode.INVALID_PARTY)
        return staff

    # --- Availability ---

    def add_availability(self, staff: Party, slot_date: date, start: time, end: time) -> OperationResult[TimeSlot]:
        try:
            staff = self._require_staff(staff)
            with self.locks.hold(staff.username):
                slot = self.slots.add_availability(staff.username, slot_date, start, end, self.clock.now())
        except SchedulingError as exc:
            logger.info('Add availability rejected for %s on %s: %s', getattr(staff, 'username', None), slot_date, exc.message)
            return OperationResult.failure(exc)

        self._notify(staff, f'Availability added: {slot_date.isoformat()} from {start:%H:%M} to {end:%H:%M}.')
        return OperationResult.success(slot)

    def remove_availability(self, staff: Party, slot_date: date, start: time, end: time) -> OperationResult[TimeSlot]:
        try:
            staff = self._require_staff(staff)
            with self.locks.hold(staff.username):
                slot = self.slots.remove_availability(staff.username, slot_date, start, end)
        except SchedulingError as exc:
            logger.info('Remove availability rejected for %s on %s: %s', getattr(staff, 'username', None), slot_date, exc.message)
            return OperationResult.failure(exc)

        self._notify(staff, f'Availability removed: {slot_date.isoformat()} from {start:%H:%M} to {end:%H:%M}.')
        return OperationResult.success(slot)

    def set_slot_marked_available(
        self,
        staff: Party,
        slot_date: date,
        start: time,
        end: time,
        marked_available: bool,
    ) -> OperationResult[TimeSlot]:
        try:
            staff = self._require_staff(staff)
            with self.locks.hold(staff.username):
                slot = self.slots.set_marked_available(SlotKey(staff.username, slot_date, start, end), marked_available)
        except SchedulingError as exc:
            return OperationResult.failure(exc)
        return OperationResult.success(slot)

    def open_default_week(
        self,
        staff: Party,
        days: int = config.DEFAULT_SLOT_DAYS,
        hours: tuple[tuple[int, int], ...] = config.DEFAULT_SLOT_HOURS,
    ) -> OperationResult[list[TimeSlot]]:
        """Add the default hourly slots for the next ``days`` days, skipping any that cannot be added."""
        try:
            staff = self._require_staff(staff)
        except SchedulingError as exc:
            return OperationResult.failure(exc)

        created: list[TimeSlot] = []
        today = self.clock.now().date()
        with self.locks.hold(staff.username):
            for offset in range(days):
                slot_date = today + timedelta(days=offset)
                for start_hour, end_hour in hours:
                    start = time(start_hour, 0)
                    end = time(end_hour, 0) if end_hour < 24 else time(23, 59)
                    try:
                        created.append(
                            self.slots.add_availability(staff.username, slot_date, start, end, self.clock.now())
                        )
                    except (ValidationError, ConflictError) as exc:
                        logger.debug('Skipping default slot for %s: %s', staff.username, exc.message)

        logger.info('Opened %d default slots for %s', len(created), staff.username)
        return OperationResult.success(created)

    def list_slots(self, staff_id: str, slot_date: date) -> list[TimeSlot]:
        return self.slots.list_slots(staff_id, slot_date)

    def list_available(self, staff_id: str, slot_date: date, reference_time: datetime | None = None) -> list[TimeSlot]:
        return self.slots.list_available(staff_id, slot_date, reference_time or self.clock.now())

    # --- Booking ---

    def _check_eligibility(self, student: Party | None, staff: Party | None, subject: str, duration_minutes: int) -> None:
        if student is None or student.role is not Role.STUDENT:
            raise EligibilityError('A student is required to book an appointment.', ErrorCode.INVALID_PARTY)
        self._require_staff(staff)
        if duration_minutes <= 0:
            raise ValidationError(f'Duration must be positive, got {duration_minutes}.', ErrorCode.INVALID_DURATION)
        if not subject or not subject.strip():
            raise ValidationError('A subject is required to book an appointment.', ErrorCode.INVALID_SUBJECT)

        if staff.role is Role.PROFESSOR:
            if not staff.can_teach(subject):
                raise EligibilityError(f"{staff.name} does not teach '{subject}'.")
            if not student.is_enrolled_in(subject):
                raise EligibilityError(f"{student.name} is not enrolled in '{subject}'.")
        elif subject.strip().lower() != self.advising_subject.lower():
            logger.info("Booking non-advising subject '%s' with counselor %s", subject, staff.username)

    def _find_slot(self, staff_id: str, duration_minutes: int, now: datetime) -> TimeSlot | None:
        for slot in self.slots.iter_slots(staff_id, now.date()):
            if self.slots.can_accommodate(slot, duration_minutes) and slot.start_datetime > now:
                return slot
        return None

    def book_appointment(
        self,
        student: Party,
        staff: Party,
        subject: str,
        duration_minutes: int,
    ) -> OperationResult[Appointment]:
        logger.info(
            'Booking request: student=%s staff=%s subject=%s duration=%s',
            getattr(student, 'username', None),
            getattr(staff, 'username', None),
            subject,
            duration_minutes,
        )
        try:
            self._check_eligibility(student, staff, subject, duration_minutes)
        except SchedulingError as exc:
            logger.info('Booking rejected: %s', exc.message)
            return OperationResult.failure(exc)

        with self.locks.hold(staff.username):
            if self.registry.has_active(student.username, staff.username):
                error = ConflictError(
                    f'{student.name} already has an active appointment with {staff.name}.',
                    ErrorCode.DUPLICATE_ACTIVE_BOOKING,
                )
                logger.info('Booking rejected: %s', error.message)
                return OperationResult.failure(error)

            now = self.clock.now()
            slot = self._find_slot(staff.username, duration_minutes, now)
            if slot is None:
                error = ConflictError(
                    f'No available slot with {staff.name} can fit {duration_minutes} minutes.',
                    ErrorCode.NO_SLOT_AVAILABLE,
                )
                logger.info('Booking rejected: %s', error.message)
                return OperationResult.failure(error)

            appointment = Appointment(
                id=self.ids.next_id(),
                student=student,
                staff=staff,
                scheduled_at=slot.start_datetime,
                duration_minutes=duration_minutes,
                subject=subject,
                slot_key=slot.key,
            )
            try:
                self.slots.book(slot, appointment)
                self.registry.add(appointment)
                self._queue_of(staff.username).enqueue(appointment)
            except Exception as exc:
                logger.exception('Finalizing appointment #%s failed; rolling back', appointment.id)
                if slot.booked_appointment_id == appointment.id:
                    self.slots.free(slot)
                if self.registry.get(appointment.id) is appointment:
                    self.registry.remove(appointment.id)
                self._queue_of(staff.username).remove(appointment)
                if isinstance(exc, SchedulingError):
                    return OperationResult.failure(exc)
                return OperationResult.failure(ConsistencyError(f'Could not finalize booking: {exc}'))

        when = self._format(appointment.scheduled_at)
        self._notify(student, f'Appointment booked with {staff.name} for {subject} on {when}.')
        self._notify(staff, f'New appointment booked by {student.name} for {subject} on {when}.')
        logger.info('Booked appointment %r in %r', appointment, slot)
        return OperationResult.success(appointment)

    # --- Cancellation and lifecycle ---

    def cancel_appointment(self, appointment_id: int) -> OperationResult[bool]:
        appointment = self.registry.get(appointment_id)
        if appointment is None:
            return OperationResult.failure(NotFoundError(f'Appointment #{appointment_id} not found.'))

        with self.locks.hold(appointment.staff_id):
            if self.registry.get(appointment_id) is not appointment:
                return OperationResult.failure(NotFoundError(f'Appointment #{appointment_id} not found.'))

            self.registry.remove(appointment_id)
            self._queue_of(appointment.staff_id).remove(appointment)
            slot = self.slots.slot_for(appointment)
            if slot is not None:
                self.slots.free(slot)
            elif appointment.status.is_active:
                logger.warning('No bound slot to free for cancelled appointment %r', appointment)

        when = self._format(appointment.scheduled_at)
        self._notify(
            appointment.student,
            f"Your appointment with {appointment.staff.name} for '{appointment.subject}' on {when} has been cancelled.",
        )
        self._notify(
            appointment.staff,
            f"Your appointment with {appointment.student.name} for '{appointment.subject}' on {when} has been cancelled.",
        )
        logger.info('Cancelled appointment #%s', appointment_id)
        return OperationResult.success(True)

    def start_next(self, staff_id: str) -> OperationResult[Appointment]:
        queue = self.queue_for(staff_id)
        if queue is None:
            return OperationResult.failure(NotFoundError(f'The queue for {staff_id} is empty.', ErrorCode.QUEUE_EMPTY))

        with self.locks.hold(staff_id):
            current = self.registry.in_progress_for(staff_id)
            if current is not None:
                logger.info('Staff %s is already in consultation #%s', staff_id, current.id)
                return OperationResult.failure(
                    ConflictError(f'{staff_id} is already in a consultation.', ErrorCode.STAFF_BUSY)
                )

            appointment = queue.dequeue_next()
            if appointment is None:
                return OperationResult.failure(NotFoundError(f'The queue for {staff_id} is empty.', ErrorCode.QUEUE_EMPTY))

            if self.registry.get(appointment.id) is not appointment:
                logger.error('Queued appointment %r is missing from the registry', appointment)
                return OperationResult.failure(
                    ConsistencyError(f'Queued appointment #{appointment.id} is not registered.')
                )

            appointment.status = AppointmentStatus.IN_PROGRESS

        self._notify(
            appointment.student,
            f"Your consultation with {appointment.staff.name} regarding '{appointment.subject}' is starting now.",
        )
        logger.info('Started appointment #%s for %s', appointment.id, staff_id)
        return OperationResult.success(appointment)

    def update_status(self, appointment_id: int, new_status: AppointmentStatus) -> OperationResult[bool]:
        appointment = self.registry.get(appointment_id)
        if appointment is None:
            return OperationResult.failure(NotFoundError(f'Appointment #{appointment_id} not found.'))

        with self.locks.hold(appointment.staff_id):
            old_status = appointment.status
            if old_status is new_status:
                return OperationResult.success(True)

            try:
                validate_transition(old_status, new_status)
                if new_status is AppointmentStatus.IN_PROGRESS:
                    current = self.registry.in_progress_for(appointment.staff_id)
                    if current is not None:
                        raise ConflictError(f'{appointment.staff_id} is already in a consultation.', ErrorCode.STAFF_BUSY)
            except SchedulingError as exc:
                logger.info('Status update for #%s rejected: %s', appointment_id, exc.message)
                return OperationResult.failure(exc)

            appointment.status = new_status
            queue = self._queue_of(appointment.staff_id)
            if new_status is AppointmentStatus.IN_PROGRESS:
                queue.remove(appointment)
            elif new_status.is_terminal:
                slot = self.slots.slot_for(appointment)
                if slot is not None:
                    self.slots.free(slot)
                else:
                    logger.warning('No bound slot to free for appointment %r', appointment)
                appointment.slot_key = None
                queue.remove(appointment)

        logger.info('Appointment #%s moved from %s to %s', appointment_id, old_status.value, new_status.value)
        self._notify_transition(appointment, new_status)
        return OperationResult.success(True)

    def _notify_transition(self, appointment: Appointment, new_status: AppointmentStatus) -> None:
        when = self._format(appointment.scheduled_at)
        staff = appointment.staff
        student = appointment.student
        if new_status is AppointmentStatus.IN_PROGRESS:
            self._notify(
                student,
                f"Your consultation with {staff.name} regarding '{appointment.subject}' is starting now.",
            )
        elif new_status is AppointmentStatus.COMPLETED:
            self._notify(
                student,
                f"Your consultation with {staff.name} regarding '{appointment.subject}' on {when} is complete.",
            )
        elif new_status is AppointmentStatus.CANCELLED:
            self._notify(
                student,
                f"Your appointment with {staff.name} for '{appointment.subject}' on {when} has been cancelled.",
            )
            self._notify(
                staff,
                f"Appointment with {student.name} for '{appointment.subject}' on {when} has been cancelled.",
            )

    def complete_current(self, appointment_id: int) -> OperationResult[bool]:
        return self.update_status(appointment_id, AppointmentStatus.COMPLETED)

    # --- Priority ---

    def set_priority(self, appointment_id: int, is_priority: bool) -> OperationResult[bool]:
        appointment = self.registry.get(appointment_id)
        if appointment is None:
            return OperationResult.failure(NotFoundError(f'Appointment #{appointment_id} not found.'))

        with self.locks.hold(appointment.staff_id):
            if appointment.status is not AppointmentStatus.PENDING:
                return OperationResult.failure(
                    ConflictError(
                        f'Only pending appointments can change priority (#{appointment_id} is {appointment.status.value}).',
                        ErrorCode.NOT_PENDING,
                    )
                )
            if appointment.is_priority == is_priority:
                return OperationResult.success(True)

            promotion = PriorityPromotion(
                self.slots,
                self.registry,
                self._queue_of(appointment.staff_id),
                self.notifications,
                self.time_format,
            )
            try:
                if is_priority:
                    promotion.promote(appointment)
                else:
                    promotion.demote(appointment)
            except SchedulingError as exc:
                logger.error('Priority change for appointment #%s failed: %s', appointment_id, exc.message)
                return OperationResult.failure(exc)

        logger.info('Appointment #%s priority set to %s', appointment_id, is_priority)
        return OperationResult.success(True)

    # --- Read-only views ---

    def get_appointment(self, appointment_id: int) -> OperationResult[Appointment]:
        appointment = self.registry.get(appointment_id)
        if appointment is None:
            return OperationResult.failure(NotFoundError(f'Appointment #{appointment_id} not found.'))
        return OperationResult.success(appointment)

    def list_user_appointments(self, username: str) -> list[Appointment]:
        return self.registry.for_user(username)

    def queue_size(self, staff_id: str) -> int:
        queue = self.queue_for(staff_id)
        return queue.size() if queue is not None else 0

    def estimated_wait(self, staff_id: str) -> int:
        queue = self.queue_for(staff_id)
        return queue.estimated_wait() if queue is not None else 0

    def queue_snapshot(self, staff_id: str) -> QueueSnapshot:
        queue = self.queue_for(staff_id)
        if queue is None:
            return QueueSnapshot(staff_id=staff_id, size=0, estimated_wait_minutes=0, priority=[], regular=[])

        with self.locks.hold(staff_id):
            return QueueSnapshot(
                staff_id=staff_id,
                size=queue.size(),
                estimated_wait_minutes=queue.estimated_wait(),
                priority=queue.priority_entries,
                regular=queue.regular_entries,
            )
