import os
from datetime import date, datetime, time

import pytest

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')

from consultation.models.enums import Role  # noqa: E402
from consultation.models.party import Party  # noqa: E402
from consultation.scheduling.clock import FixedClock  # noqa: E402
from consultation.scheduling.engine import SchedulingEngine  # noqa: E402

MONDAY = date(2026, 1, 5)
TUESDAY = date(2026, 1, 6)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(datetime(2026, 1, 5, 8, 0))


@pytest.fixture
def engine(clock: FixedClock) -> SchedulingEngine:
    return SchedulingEngine(clock=clock, lock_scope='staff')


@pytest.fixture
def professor() -> Party:
    return Party(username='prof', name='Prof. Ada', role=Role.PROFESSOR, subjects=frozenset({'X', 'Math'}))


@pytest.fixture
def counselor() -> Party:
    return Party(username='counselor', name='Counselor Bo', role=Role.COUNSELOR)


@pytest.fixture
def make_student():
    def factory(username: str, *subjects: str) -> Party:
        return Party(
            username=username,
            name=username.capitalize(),
            role=Role.STUDENT,
            subjects=frozenset(subjects or ('X',)),
        )

    return factory


@pytest.fixture
def morning_slots(engine: SchedulingEngine, professor: Party):
    """Three free one-hour slots at 09:00, 10:00 and 11:00 on Monday."""
    slots = []
    for hour in (9, 10, 11):
        result = engine.add_availability(professor, MONDAY, time(hour, 0), time(hour + 1, 0))
        assert result.ok
        slots.append(result.value)
    return slots
