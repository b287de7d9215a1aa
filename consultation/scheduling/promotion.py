"""Priority promotion by rotating slot bindings inside a staff member's shift group.

Promoting the appointment ranked ``T`` among its staff member's pending
appointments (ascending by time) moves it into the slot of the earliest one,
while each earlier appointment slides into the slot of the appointment that
followed it. The set of occupied slots is unchanged; only bindings rotate.

All methods assume the caller holds the staff member's lock for the whole
call, rollback included.
"""

import logging
from dataclasses import dataclass
from datetime import datetime

from consultation.core import config
from consultation.core.errors import ConflictError, ConsistencyError
from consultation.models.appointment import Appointment
from consultation.models.availability import TimeSlot
from consultation.models.enums import AppointmentStatus
from consultation.scheduling.notifications import NotificationSink
from consultation.scheduling.queue import QueueManager
from consultation.scheduling.registry import AppointmentRegistry
from consultation.scheduling.timeslots import TimeSlotStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MemberSnapshot:
    """Pre-operation state of one shift group member."""

    appointment: Appointment
    scheduled_at: datetime
    slot: TimeSlot
    is_priority: bool


class PriorityPromotion:
    def __init__(
        self,
        slots: TimeSlotStore,
        registry: AppointmentRegistry,
        queue: QueueManager,
        notifier: NotificationSink,
        time_format: str = config.NOTIFICATION_TIME_FORMAT,
    ):
        self.slots = slots
        self.registry = registry
        self.queue = queue
        self.notifier = notifier
        self.time_format = time_format

    def demote(self, target: Appointment) -> None:
        if not self.queue.set_priority_queue(target, False):
            raise ConsistencyError(
                f'Appointment #{target.id} is pending but missing from the queue of {target.staff_id}.',
            )
        self.notifier.notify(
            target.student_id,
            f'The high priority status for your appointment with {target.staff.name} on '
            f'{target.scheduled_at.strftime(self.time_format)} has been removed.',
        )

    def promote(self, target: Appointment) -> None:
        pending = self.registry.for_staff(target.staff_id, AppointmentStatus.PENDING)
        target_index = next(
            (index for index, appointment in enumerate(pending) if appointment.id == target.id),
            None,
        )
        if target_index is None:
            raise ConsistencyError(f'Pending appointment #{target.id} is missing from the pending list of {target.staff_id}.')

        if target_index == 0:
            logger.info('Appointment #%s is already the earliest pending; flag only', target.id)
            self._move_to_priority_queue(target)
            self._notify_priority(target)
            return

        group = pending[:target_index + 1]
        logger.info(
            'Promoting appointment #%s over shift group %s',
            target.id,
            [appointment.id for appointment in group],
        )

        snapshots = self._snapshot(group)
        self._free(snapshots)

        try:
            messages = self._reassign(snapshots)
        except Exception as exc:
            logger.exception('Priority reassignment failed for appointment #%s; rolling back', target.id)
            restored = self._rollback(snapshots)
            if not restored:
                logger.error('Rollback for appointment #%s left the shift group inconsistent: %s', target.id, snapshots)
            raise ConsistencyError(
                f'Could not promote appointment #{target.id}: {exc}',
            ) from exc

        for recipient, message in messages:
            self.notifier.notify(recipient, message)

    def _snapshot(self, group: list[Appointment]) -> list[MemberSnapshot]:
        snapshots = []
        for appointment in group:
            slot = self.slots.slot_for(appointment)
            if slot is None:
                logger.error(
                    'No bound slot for appointment #%s (key %s); promotion aborted',
                    appointment.id,
                    appointment.slot_key,
                )
                raise ConsistencyError(f'Cannot locate the time slot of appointment #{appointment.id}.')
            snapshots.append(
                MemberSnapshot(
                    appointment=appointment,
                    scheduled_at=appointment.scheduled_at,
                    slot=slot,
                    is_priority=appointment.is_priority,
                )
            )
        return snapshots

    def _free(self, snapshots: list[MemberSnapshot]) -> None:
        for snapshot in snapshots:
            if self.slots.slot_for(snapshot.appointment) is not snapshot.slot:
                logger.error(
                    'Appointment #%s is no longer bound to %r; promotion aborted',
                    snapshot.appointment.id,
                    snapshot.slot,
                )
                raise ConsistencyError(
                    f'Appointment #{snapshot.appointment.id} moved away from its slot during promotion.',
                )

        for snapshot in snapshots:
            self.slots.free(snapshot.slot)

    def _reassign(self, snapshots: list[MemberSnapshot]) -> list[tuple[str, str]]:
        messages: list[tuple[str, str]] = []

        for mover, provider in zip(snapshots, snapshots[1:]):
            appointment = mover.appointment
            self._bind(appointment, provider)
            messages.append((
                appointment.student_id,
                f'Your appointment time with {appointment.staff.name} was adjusted to '
                f'{appointment.scheduled_at.strftime(self.time_format)} due to a queue priority change.',
            ))

        target = snapshots[-1].appointment
        self._bind(target, snapshots[0])
        self._move_to_priority_queue(target)
        messages.append((target.student_id, self._priority_message(target)))
        return messages

    def _bind(self, appointment: Appointment, destination: MemberSnapshot) -> None:
        slot = destination.slot
        # Every group slot was freed first, so this checks the mark and length.
        self.slots.book(slot, appointment)
        appointment.scheduled_at = destination.scheduled_at
        appointment.slot_key = slot.key

    def _rollback(self, snapshots: list[MemberSnapshot]) -> bool:
        restored = True

        # Release misplaced bindings first so no member's original slot is
        # still held by another member when it is re-booked.
        for snapshot in snapshots:
            current = self.slots.slot_for(snapshot.appointment)
            if current is not None and current is not snapshot.slot:
                self.slots.free(current)

        for snapshot in snapshots:
            appointment = snapshot.appointment
            appointment.scheduled_at = snapshot.scheduled_at
            appointment.is_priority = snapshot.is_priority
            appointment.slot_key = snapshot.slot.key

            occupant = snapshot.slot.booked_appointment_id
            if occupant == appointment.id:
                pass
            elif occupant is None:
                try:
                    self.slots.rebind(snapshot.slot, appointment)
                except ConflictError:
                    logger.exception('Could not re-book %r for appointment #%s', snapshot.slot, appointment.id)
                    restored = False
            else:
                logger.error(
                    'Original slot %r of appointment #%s is occupied by unexpected appointment #%s',
                    snapshot.slot,
                    appointment.id,
                    occupant,
                )
                restored = False

            queued_as_priority = self.queue.is_priority_queued(appointment)
            if queued_as_priority is not None and queued_as_priority != snapshot.is_priority:
                self.queue.set_priority_queue(appointment, snapshot.is_priority)

        return restored

    def _move_to_priority_queue(self, target: Appointment) -> None:
        if not self.queue.set_priority_queue(target, True):
            raise ConsistencyError(
                f'Appointment #{target.id} is pending but missing from the queue of {target.staff_id}.',
            )

    def _priority_message(self, target: Appointment) -> str:
        return (
            f'Your appointment with {target.staff.name} at '
            f'{target.scheduled_at.strftime(self.time_format)} is now high priority.'
        )

    def _notify_priority(self, target: Appointment) -> None:
        self.notifier.notify(target.student_id, self._priority_message(target))
