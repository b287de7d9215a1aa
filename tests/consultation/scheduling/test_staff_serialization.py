import threading
from datetime import date, datetime, time

import pytest

from consultation.core.errors import ErrorCode
from consultation.scheduling.engine import SchedulingEngine
from consultation.scheduling.timeslots import TimeSlotStore

MONDAY = date(2026, 1, 5)


def run_together(workers: int, target) -> None:
    barrier = threading.Barrier(workers)

    def run(index: int) -> None:
        barrier.wait(timeout=5)
        target(index)

    threads = [threading.Thread(target=run, args=(index,)) for index in range(workers)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=10)
    assert not any(thread.is_alive() for thread in threads)


@pytest.mark.parametrize('lock_scope', ['staff', 'global'])
def test_concurrent_bookings_never_share_a_slot(clock, professor, make_student, lock_scope: str) -> None:
    engine = SchedulingEngine(clock=clock, lock_scope=lock_scope)
    for hour in range(9, 17):
        engine.add_availability(professor, MONDAY, time(hour, 0), time(hour + 1, 0))
    results = {}

    def book(index: int) -> None:
        results[index] = engine.book_appointment(make_student(f'student{index}'), professor, 'X', 30)

    run_together(10, book)

    booked = [result.value for result in results.values() if result.ok]
    rejected = [result.code for result in results.values() if not result.ok]
    assert len(booked) == 8
    assert rejected == [ErrorCode.NO_SLOT_AVAILABLE] * 2
    assert len({appointment.id for appointment in booked}) == 8

    bindings = [slot.booked_appointment_id for slot in engine.list_slots('prof', MONDAY)]
    assert sorted(bindings) == sorted(appointment.id for appointment in booked)
    assert len(engine.registry) == len([binding for binding in bindings if binding is not None])
    assert engine.queue_size('prof') == 8
    for appointment in booked:
        assert engine.slots.slot_for(appointment).start_datetime == appointment.scheduled_at


def test_concurrent_cancellations_free_each_slot_once(engine, professor, make_student) -> None:
    for hour in range(9, 15):
        engine.add_availability(professor, MONDAY, time(hour, 0), time(hour + 1, 0))
    appointments = [
        engine.book_appointment(make_student(f'student{index}'), professor, 'X', 30).value
        for index in range(6)
    ]
    results = {}

    def cancel(index: int) -> None:
        results[index] = engine.cancel_appointment(appointments[index % 3].id)

    run_together(6, cancel)

    assert sorted(result.ok for result in results.values()) == [False, False, False, True, True, True]
    assert len(engine.registry) == 3
    assert engine.queue_for('prof').regular_entries == appointments[3:]
    assert [slot.is_booked for slot in engine.list_slots('prof', MONDAY)] == [False] * 3 + [True] * 3


def test_booking_waits_for_a_promotion_paused_mid_swap(
    engine, professor, make_student, monkeypatch: pytest.MonkeyPatch
) -> None:
    for hour in (9, 10, 11, 13):
        engine.add_availability(professor, MONDAY, time(hour, 0), time(hour + 1, 0))
    a1, a2, a3 = [
        engine.book_appointment(make_student(username), professor, 'X', 30).value
        for username in ('amy', 'ben', 'cat')
    ]

    mid_swap = threading.Event()
    resume = threading.Event()
    original_book = TimeSlotStore.book

    def paused_book(self, slot, appointment):
        if appointment.id == a1.id and not mid_swap.is_set():
            # Every slot of the shift group is free at this point.
            mid_swap.set()
            resume.wait(timeout=5)
        return original_book(self, slot, appointment)

    monkeypatch.setattr(TimeSlotStore, 'book', paused_book)
    results = {}
    promoter = threading.Thread(target=lambda: results.update(promotion=engine.set_priority(a3.id, True)))
    booker = threading.Thread(
        target=lambda: results.update(booking=engine.book_appointment(make_student('dan'), professor, 'X', 30))
    )

    promoter.start()
    assert mid_swap.wait(timeout=5)
    booker.start()
    booker.join(timeout=0.2)
    assert booker.is_alive()
    assert 'booking' not in results

    resume.set()
    promoter.join(timeout=5)
    booker.join(timeout=5)

    assert results['promotion'].ok
    assert (a3.scheduled_at, a1.scheduled_at, a2.scheduled_at) == (
        datetime(2026, 1, 5, 9, 0), datetime(2026, 1, 5, 10, 0), datetime(2026, 1, 5, 11, 0),
    )
    assert results['booking'].value.scheduled_at == datetime(2026, 1, 5, 13, 0)
    assert [slot.booked_appointment_id for slot in engine.list_slots('prof', MONDAY)] == [
        a3.id, a1.id, a2.id, results['booking'].value.id,
    ]
