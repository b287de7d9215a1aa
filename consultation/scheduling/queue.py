"""Two-class FIFO wait queue kept per staff member."""

from collections import deque

from consultation.models.appointment import Appointment


class QueueManager:
    """Priority entries are always served before regular ones."""

    def __init__(self, staff_id: str):
        self.staff_id = staff_id
        self._priority: deque[Appointment] = deque()
        self._regular: deque[Appointment] = deque()

    def enqueue(self, appointment: Appointment) -> None:
        if appointment.is_priority:
            self._priority.append(appointment)
        else:
            self._regular.append(appointment)

    def dequeue_next(self) -> Appointment | None:
        if self._priority:
            return self._priority.popleft()
        if self._regular:
            return self._regular.popleft()
        return None

    def remove(self, appointment: Appointment) -> bool:
        for sub_queue in (self._priority, self._regular):
            for entry in sub_queue:
                if entry.id == appointment.id:
                    sub_queue.remove(entry)
                    return True
        return False

    def set_priority_queue(self, appointment: Appointment, is_priority: bool) -> bool:
        if not self.remove(appointment):
            return False
        appointment.is_priority = is_priority
        self.enqueue(appointment)
        return True

    def is_priority_queued(self, appointment: Appointment) -> bool | None:
        """True/False for the sub-queue holding the appointment, None if absent."""
        if any(entry.id == appointment.id for entry in self._priority):
            return True
        if any(entry.id == appointment.id for entry in self._regular):
            return False
        return None

    def __contains__(self, appointment: Appointment) -> bool:
        return self.is_priority_queued(appointment) is not None

    def size(self) -> int:
        return len(self._priority) + len(self._regular)

    def is_empty(self) -> bool:
        return not self._priority and not self._regular

    def estimated_wait(self) -> int:
        return sum(entry.duration_minutes for entry in self._priority) + sum(
            entry.duration_minutes for entry in self._regular
        )

    @property
    def priority_entries(self) -> list[Appointment]:
        return list(self._priority)

    @property
    def regular_entries(self) -> list[Appointment]:
        return list(self._regular)
