import asyncio
from datetime import datetime, timedelta

import pytest
import pytz

from fakes import identity, jpeg

from smart_attendance.errors import DuplicateExternalCode, InvalidEnrollment, UserNotFound
from smart_attendance.utils.db import AttendanceLog


def run(coro):
    return asyncio.run(coro)


def backdate(store, record_id, ts):
    db = store.session_factory()
    try:
        row = db.query(AttendanceLog).filter(AttendanceLog.record_id == record_id).one()
        row.ts = ts
        db.commit()
    finally:
        db.close()


def test_create_and_list_users(store):
    first = run(store.create_user("Ana Torres", "E1", [jpeg(10), jpeg(20), jpeg(30)]))
    second = run(store.create_user("  Luis Rojas ", " E2 ", [jpeg(40)]))

    users = run(store.list_users())

    assert users == [first, second]
    assert first.gallery == (jpeg(10), jpeg(20), jpeg(30))
    assert first.thumbnail == jpeg(10)
    assert second.name == "Luis Rojas"
    assert second.employee_id == "E2"
    assert first.id != second.id


def test_duplicate_employee_id_is_rejected(store):
    run(store.create_user("Ana Torres", "E1", [jpeg()]))

    with pytest.raises(DuplicateExternalCode) as excinfo:
        run(store.create_user("Someone Else", "E1", [jpeg(50)]))

    assert excinfo.value.employee_id == "E1"
    assert str(excinfo.value) == "An employee with this ID is already registered."
    assert len(run(store.list_users())) == 1


@pytest.mark.parametrize("name, employee_id, images", [
    ("", "E1", ["img"]),
    ("   ", "E1", ["img"]),
    ("Ana", "", ["img"]),
    ("Ana", "E1", []),
    ("Ana", "E1", ["", None]),
])
def test_incomplete_enrollment_is_rejected(store, name, employee_id, images):
    with pytest.raises(InvalidEnrollment):
        run(store.create_user(name, employee_id, images))
    assert run(store.list_users()) == []


def test_get_and_delete_user(store):
    user = run(store.create_user("Ana Torres", "E1", [jpeg()]))

    assert run(store.get_user(user.id)) == user

    run(store.delete_user(user.id))

    assert run(store.list_users()) == []
    with pytest.raises(UserNotFound):
        run(store.get_user(user.id))
    with pytest.raises(UserNotFound):
        run(store.delete_user(user.id))


def test_employee_id_is_free_again_after_delete(store):
    user = run(store.create_user("Ana Torres", "E1", [jpeg()]))
    run(store.delete_user(user.id))

    again = run(store.create_user("Ana Torres", "E1", [jpeg(99)]))

    assert again.id != user.id


def test_append_records_snapshot_identity(store):
    user = run(store.create_user("Ana Torres", "E1", [jpeg()]))

    record = run(store.append_attendance_record(user))

    assert record.user_id == user.id
    assert record.user_name == "Ana Torres"
    assert record.employee_id == "E1"
    assert record.timestamp.tzinfo is not None
    assert abs(datetime.now(pytz.utc) - record.timestamp) < timedelta(minutes=1)
    assert run(store.list_attendance_records()) == [record]


def test_records_survive_user_deletion(store):
    user = run(store.create_user("Ana Torres", "E1", [jpeg()]))
    record = run(store.append_attendance_record(user))

    run(store.delete_user(user.id))

    assert run(store.list_attendance_records()) == [record]


def test_records_are_listed_in_append_order(store):
    a, b = identity("A"), identity("B")
    appended = [run(store.append_attendance_record(who)) for who in (a, b, a)]

    assert run(store.list_attendance_records()) == appended


def test_record_time_window_and_limit(store):
    who = identity("A")
    base = datetime(2024, 3, 1, 8, 0, 0)
    records = []
    for hour in range(4):
        record = run(store.append_attendance_record(who))
        backdate(store, record.id, base + timedelta(hours=hour))
        records.append(record.id)

    since = pytz.utc.localize(base + timedelta(hours=1))
    until = pytz.utc.localize(base + timedelta(hours=2))

    windowed = run(store.list_attendance_records(since=since, until=until))
    assert [r.id for r in windowed] == records[1:3]

    # a non-UTC bound is compared in UTC
    lima = pytz.timezone("America/Lima")
    since_lima = (base + timedelta(hours=2)).replace(tzinfo=pytz.utc).astimezone(lima)
    assert [r.id for r in run(store.list_attendance_records(since=since_lima))] == records[2:]

    newest = run(store.list_attendance_records(limit=2))
    assert [r.id for r in newest] == records[2:]
