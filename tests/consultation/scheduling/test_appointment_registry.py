from datetime import datetime

import pytest

from consultation.core.errors import ConflictError, ErrorCode
from consultation.models.appointment import Appointment
from consultation.models.enums import AppointmentStatus, Role
from consultation.models.party import Party
from consultation.scheduling.registry import AppointmentRegistry, IdGenerator, validate_transition

PROF = Party(username='prof', name='Prof', role=Role.PROFESSOR, subjects=frozenset({'X'}))
COUNSELOR = Party(username='counselor', name='Counselor', role=Role.COUNSELOR)


def make_appointment(appointment_id: int, student: str, staff: Party, hour: int, **fields) -> Appointment:
    return Appointment(
        id=appointment_id,
        student=Party(username=student, name=student, role=Role.STUDENT, subjects=frozenset({'X'})),
        staff=staff,
        scheduled_at=datetime(2026, 1, 5, hour, 0),
        duration_minutes=30,
        subject='X',
        **fields,
    )


def test_id_generator_is_strictly_increasing() -> None:
    ids = IdGenerator()

    assert [ids.next_id() for _ in range(4)] == [1, 2, 3, 4]


@pytest.mark.parametrize(
    ('current', 'new'),
    [
        (AppointmentStatus.PENDING, AppointmentStatus.IN_PROGRESS),
        (AppointmentStatus.PENDING, AppointmentStatus.COMPLETED),
        (AppointmentStatus.PENDING, AppointmentStatus.CANCELLED),
        (AppointmentStatus.IN_PROGRESS, AppointmentStatus.COMPLETED),
        (AppointmentStatus.IN_PROGRESS, AppointmentStatus.CANCELLED),
    ],
)
def test_validate_transition_accepts_lifecycle_moves(current: AppointmentStatus, new: AppointmentStatus) -> None:
    validate_transition(current, new)


@pytest.mark.parametrize(
    ('current', 'new'),
    [
        (AppointmentStatus.IN_PROGRESS, AppointmentStatus.PENDING),
        (AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED),
        (AppointmentStatus.COMPLETED, AppointmentStatus.IN_PROGRESS),
        (AppointmentStatus.CANCELLED, AppointmentStatus.COMPLETED),
        (AppointmentStatus.CANCELLED, AppointmentStatus.PENDING),
    ],
)
def test_validate_transition_rejects_moves_out_of_order(current: AppointmentStatus, new: AppointmentStatus) -> None:
    with pytest.raises(ConflictError) as exception_info:
        validate_transition(current, new)

    assert exception_info.value.code is ErrorCode.INVALID_TRANSITION


def test_for_staff_sorts_by_time_and_filters_status() -> None:
    registry = AppointmentRegistry()
    late = make_appointment(1, 'amy', PROF, 11)
    early = make_appointment(2, 'ben', PROF, 9)
    running = make_appointment(3, 'cat', PROF, 10, status=AppointmentStatus.IN_PROGRESS)
    other = make_appointment(4, 'dan', COUNSELOR, 8)
    for appointment in (late, early, running, other):
        registry.add(appointment)

    assert registry.for_staff('prof') == [early, running, late]
    assert registry.for_staff('prof', AppointmentStatus.PENDING) == [early, late]
    assert registry.in_progress_for('prof') is running
    assert registry.in_progress_for('counselor') is None


def test_for_user_covers_students_and_staff() -> None:
    registry = AppointmentRegistry()
    first = make_appointment(1, 'amy', PROF, 11)
    second = make_appointment(2, 'amy', COUNSELOR, 9)
    registry.add(first)
    registry.add(second)

    assert registry.for_user('amy') == [second, first]
    assert registry.for_user('prof') == [first]
    assert registry.for_user('nobody') == []


def test_has_active_ignores_finished_appointments() -> None:
    registry = AppointmentRegistry()
    registry.add(make_appointment(1, 'amy', PROF, 9, status=AppointmentStatus.COMPLETED))
    assert not registry.has_active('amy', 'prof')

    registry.add(make_appointment(2, 'amy', PROF, 10, status=AppointmentStatus.IN_PROGRESS))
    assert registry.has_active('amy', 'prof')
    assert not registry.has_active('amy', 'counselor')


def test_add_rejects_duplicate_ids() -> None:
    registry = AppointmentRegistry()
    registry.add(make_appointment(1, 'amy', PROF, 9))

    with pytest.raises(ConflictError):
        registry.add(make_appointment(1, 'ben', PROF, 10))

    assert len(registry) == 1


def test_remove_returns_none_when_absent() -> None:
    registry = AppointmentRegistry()
    appointment = make_appointment(1, 'amy', PROF, 9)
    registry.add(appointment)

    assert registry.remove(1) is appointment
    assert registry.remove(1) is None
    assert 1 not in registry
