"""Error taxonomy shared by the scheduling engine and the HTTP layer."""

from enum import Enum


class ErrorCode(str, Enum):
    INVALID_PARTY = 'invalid_party'
    INVALID_DURATION = 'invalid_duration'
    INVALID_SUBJECT = 'invalid_subject'
    SUBJECT_NOT_ELIGIBLE = 'subject_not_eligible'
    DUPLICATE_ACTIVE_BOOKING = 'duplicate_active_booking'
    NO_SLOT_AVAILABLE = 'no_slot_available'
    NOT_FOUND = 'not_found'
    INVALID_TRANSITION = 'invalid_transition'
    NOT_PENDING = 'not_pending'
    STAFF_BUSY = 'staff_busy'
    QUEUE_EMPTY = 'queue_empty'
    OVERLAP = 'overlap'
    PAST_START = 'past_start'
    INVALID_RANGE = 'invalid_range'
    SLOT_BOOKED = 'slot_booked'
    CONSISTENCY = 'consistency'


class SchedulingError(Exception):
    """Base class for every failure the engine reports."""

    default_code = ErrorCode.CONSISTENCY

    def __init__(self, message: str, code: ErrorCode | None = None):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code

    def __repr__(self) -> str:
        return f'{type(self).__name__}(code={self.code.value!r}, message={self.message!r})'


class ValidationError(SchedulingError):
    """Malformed input such as a non-positive duration or an inverted range."""

    default_code = ErrorCode.INVALID_DURATION


class EligibilityError(SchedulingError):
    """Role, subject or enrollment mismatch."""

    default_code = ErrorCode.SUBJECT_NOT_ELIGIBLE


class ConflictError(SchedulingError):
    """Request clashes with current state (overlap, duplicate booking, booked slot)."""

    default_code = ErrorCode.OVERLAP


class NotFoundError(SchedulingError):
    default_code = ErrorCode.NOT_FOUND


class ConsistencyError(SchedulingError):
    """An internal invariant between slots, registry and queues does not hold."""

    default_code = ErrorCode.CONSISTENCY
