import pytest

from app.core.exceptions import ConflictError, NotFoundError
from app.schemas.timetable import Day, Session, SessionCreate, SessionUpdate
from app.services.session_store import SessionStore


def session_payload(day="Monday", start="09:00", end="10:00", class_ref="CSE-A", room="101", **extra):
    return SessionCreate(classId=class_ref, dayOfWeek=day, startTime=start, endTime=end, roomNumber=room, **extra)


def test_create_assigns_id_and_lists_in_week_order(store):
    later = store.create(session_payload(day="Tuesday", start="09:00", end="10:00"))
    earlier = store.create(session_payload(day="Monday", start="14:00", end="15:00"))
    first = store.create(session_payload(day="Monday", start="09:00", end="10:00"))

    assert later.id and earlier.id != later.id
    assert [item.id for item in store.list_all()] == [first.id, earlier.id, later.id]
    assert [item.id for item in store.list_by_day(Day.monday)] == [first.id, earlier.id]
    assert store.count == 3


def test_overlap_is_rejected_and_store_unchanged(store):
    existing = store.create(session_payload(start="09:30", end="10:30"))

    with pytest.raises(ConflictError) as exc_info:
        store.create(session_payload(start="10:15", end="11:15", class_ref="CSE-B"))

    assert exc_info.value.status_code == 409
    assert exc_info.value.blocking.id == existing.id
    assert exc_info.value.details["conflict"]["id"] == existing.id
    assert len(store) == 1


def test_touching_sessions_are_allowed(store):
    store.create(session_payload(start="09:00", end="10:00"))
    store.create(session_payload(start="10:00", end="11:00", class_ref="CSE-B"))
    assert store.count == 2


def test_off_grid_session_outside_slot_catalog_is_accepted(store):
    session = store.create(session_payload(start="10:15", end="11:15"))
    assert store.get(session.id).start_time == "10:15"


def test_replace_revalidates_and_rechecks_conflicts(store):
    moving = store.create(session_payload(start="09:00", end="10:00"))
    store.create(session_payload(start="14:00", end="15:00", class_ref="CSE-B"))

    updated = store.replace(moving.id, SessionUpdate(roomNumber="202", title="Algorithms"))
    assert updated.room == "202"
    assert updated.title == "Algorithms"
    assert store.get(moving.id) is updated

    with pytest.raises(ConflictError):
        store.replace(moving.id, {"start_time": "14:30", "end_time": "15:30"})
    assert store.get(moving.id).start_time == "09:00"


def test_replace_rejects_session_that_breaks_duration_rule(store):
    session = store.create(session_payload())
    with pytest.raises(ValueError):
        store.replace(session.id, {"end_time": "11:00"})
    assert store.get(session.id).end_time == "10:00"


def test_get_and_delete_missing_session(store):
    with pytest.raises(NotFoundError):
        store.get("missing")
    with pytest.raises(NotFoundError):
        store.delete("missing")
    assert store.find("missing") is None


def test_transaction_restores_snapshot_on_error(store):
    kept = store.create(session_payload())

    with pytest.raises(ConflictError):
        with store.transaction():
            store.delete(kept.id)
            store.create(session_payload(start="14:00", end="15:00"))
            store.create(session_payload(start="14:30", end="15:30"))

    assert [item.id for item in store.list_all()] == [kept.id]


def test_load_rejects_overlapping_collection():
    sessions = [
        Session(id="a", classId="CSE-A", dayOfWeek="Monday", startTime="09:00", endTime="10:00", roomNumber="1"),
        Session(id="b", classId="CSE-B", dayOfWeek="Monday", startTime="09:30", endTime="10:30", roomNumber="2"),
    ]
    with pytest.raises(ConflictError):
        SessionStore(sessions)

    store = SessionStore(sessions[:1])
    assert store.find_at(Day.monday, "09:00", "10:00").id == "a"
    assert store.find_at(Day.monday, "09:30", "10:30") is None


def test_failed_load_keeps_previous_contents():
    kept = Session(id="keep", classId="CSE-A", dayOfWeek="Friday", startTime="09:00", endTime="10:00", roomNumber="1")
    store = SessionStore([kept])
    duplicated = [
        Session(id="a", classId="CSE-A", dayOfWeek="Monday", startTime="09:00", endTime="10:00", roomNumber="1"),
        Session(id="a", classId="CSE-A", dayOfWeek="Tuesday", startTime="09:00", endTime="10:00", roomNumber="1"),
    ]

    with pytest.raises(ValueError):
        store.load(duplicated)

    assert [item.id for item in store.list_all()] == ["keep"]
