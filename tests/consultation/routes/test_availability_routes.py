from datetime import date, time

import pytest
from fastapi import HTTPException
from pydantic import ValidationError

from consultation.routes.availability_routes import (
    DefaultWeekRequest,
    MarkSlotRequest,
    SlotRequest,
    add_slot,
    list_open_slots,
    list_slots,
    mark_slot,
    open_default_week,
    remove_slot,
)

MONDAY = date(2026, 1, 5)


def slot_request(start: int, end: int, username: str = 'prof') -> SlotRequest:
    return SlotRequest(staff_username=username, date=MONDAY, start_time=time(start, 0), end_time=time(end, 0))


def test_slot_request_strips_username_and_seconds() -> None:
    request = SlotRequest(staff_username='  prof ', date=MONDAY, start_time=time(9, 0, 30), end_time=time(10, 0))

    assert request.staff_username == 'prof'
    assert request.start_time == time(9, 0)


def test_slot_request_rejects_blank_username() -> None:
    with pytest.raises(ValidationError):
        SlotRequest(staff_username='   ', date=MONDAY, start_time=time(9, 0), end_time=time(10, 0))


@pytest.mark.parametrize('days', [0, 29])
def test_default_week_request_rejects_out_of_range_days(days: int) -> None:
    with pytest.raises(ValidationError):
        DefaultWeekRequest(staff_username='prof', days=days)


def test_add_slot_returns_created_slot(identity_db, engine) -> None:
    slot = add_slot(slot_request(9, 10), db=identity_db, engine=engine)

    assert slot.staff_id == 'prof'
    assert slot.duration_minutes == 60
    assert [entry.start for entry in list_slots(staff_username='prof', slot_date=MONDAY, engine=engine)] == [time(9, 0)]


def test_add_slot_rejects_unknown_user(identity_db, engine) -> None:
    with pytest.raises(HTTPException) as exception_info:
        add_slot(slot_request(9, 10, username='nobody'), db=identity_db, engine=engine)

    assert exception_info.value.status_code == 404
    assert exception_info.value.detail == 'User nobody not found.'


def test_add_slot_rejects_unknown_role(identity_db, engine) -> None:
    with pytest.raises(HTTPException) as exception_info:
        add_slot(slot_request(9, 10, username='janitor'), db=identity_db, engine=engine)

    assert exception_info.value.status_code == 422


def test_add_slot_rejects_students(identity_db, engine) -> None:
    with pytest.raises(HTTPException) as exception_info:
        add_slot(slot_request(9, 10, username='amy'), db=identity_db, engine=engine)

    assert exception_info.value.status_code == 403
    assert exception_info.value.detail['code'] == 'invalid_party'


@pytest.mark.parametrize(
    ('start', 'end', 'status_code', 'code'),
    [
        (11, 10, 400, 'invalid_range'),
        (7, 8, 400, 'past_start'),
        (9, 11, 409, 'overlap'),
    ],
)
def test_add_slot_maps_store_errors(identity_db, engine, start: int, end: int, status_code: int, code: str) -> None:
    add_slot(slot_request(10, 11), db=identity_db, engine=engine)

    with pytest.raises(HTTPException) as exception_info:
        add_slot(slot_request(start, end), db=identity_db, engine=engine)

    assert exception_info.value.status_code == status_code
    assert exception_info.value.detail['code'] == code


def test_remove_slot_frees_the_interval(identity_db, engine) -> None:
    add_slot(slot_request(9, 10), db=identity_db, engine=engine)

    remove_slot(
        staff_username='prof',
        slot_date=MONDAY,
        start_time=time(9, 0),
        end_time=time(10, 0),
        db=identity_db,
        engine=engine,
    )

    assert list_slots(staff_username='prof', slot_date=MONDAY, engine=engine) == []


def test_remove_slot_returns_not_found_when_missing(identity_db, engine) -> None:
    with pytest.raises(HTTPException) as exception_info:
        remove_slot(
            staff_username='prof',
            slot_date=MONDAY,
            start_time=time(9, 0),
            end_time=time(10, 0),
            db=identity_db,
            engine=engine,
        )

    assert exception_info.value.status_code == 404


def test_mark_slot_hides_it_from_open_slots(identity_db, engine) -> None:
    add_slot(slot_request(9, 10), db=identity_db, engine=engine)
    add_slot(slot_request(10, 11), db=identity_db, engine=engine)

    marked = mark_slot(
        MarkSlotRequest(
            staff_username='prof',
            date=MONDAY,
            start_time=time(9, 0),
            end_time=time(10, 0),
            marked_available=False,
        ),
        db=identity_db,
        engine=engine,
    )

    assert marked.marked_available is False
    open_slots = list_open_slots(staff_username='prof', slot_date=MONDAY, engine=engine)
    assert [slot.start for slot in open_slots] == [time(10, 0)]


def test_open_default_week_creates_slots_for_each_day(identity_db, engine) -> None:
    created = open_default_week(DefaultWeekRequest(staff_username='counselor', days=2), db=identity_db, engine=engine)

    assert created
    assert {slot.date for slot in created} <= {MONDAY, date(2026, 1, 6)}
    assert all(slot.staff_id == 'counselor' for slot in created)
