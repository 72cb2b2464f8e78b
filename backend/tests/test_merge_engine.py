import pytest

from app.core.exceptions import ConflictError, InvalidMergeError, InvalidSplitError
from app.schemas.timetable import Day, Session, SessionCreate, SessionType, SessionUpdate
from app.services.merge_engine import MergeEngine, merge_candidates
from app.services.session_store import SessionStore


def session_payload(day="Monday", start="09:00", end="10:00", class_ref="CSE-A", room="101", **extra):
    return SessionCreate(classId=class_ref, dayOfWeek=day, startTime=start, endTime=end, roomNumber=room, **extra)


@pytest.fixture
def engine(store):
    return MergeEngine(store)


def test_merge_combines_listed_block(engine, store):
    first = store.create(session_payload(start="11:15", end="12:15", sessionType="tutorial"))
    second = store.create(session_payload(start="12:15", end="13:15"))

    merged = engine.merge(first.id, second.id)

    assert merged.id == first.id
    assert merged.is_merged
    assert merged.merged_with == second.id
    assert (merged.start_time, merged.end_time) == ("11:15", "13:15")
    assert merged.session_type == SessionType.lab
    assert merged.pre_merge_type == SessionType.tutorial
    assert merged.custom_label == "11:15 - 13:15 (Lab Session)"
    assert store.count == 1
    assert second.id not in store


def test_merge_keeps_earlier_session_regardless_of_argument_order(engine, store):
    first = store.create(session_payload(start="14:00", end="15:00"))
    second = store.create(session_payload(start="15:00", end="16:00"))

    merged = engine.merge(second.id, first.id, custom_label="Networks Lab")

    assert merged.id == first.id
    assert merged.merged_with == second.id
    assert merged.display_label == "Networks Lab"


def test_merge_rejects_pairs_outside_the_block_table(engine, store):
    late = store.create(session_payload(start="15:00", end="16:00"))
    latest = store.create(session_payload(start="16:00", end="17:00"))
    before_break = store.create(session_payload(day="Tuesday", start="10:00", end="11:00"))
    after_break = store.create(session_payload(day="Tuesday", start="11:15", end="12:15"))

    with pytest.raises(InvalidMergeError) as exc_info:
        engine.merge(late.id, latest.id)
    assert exc_info.value.message.startswith("Can only merge schedules for continuous 2-hour blocks")

    with pytest.raises(InvalidMergeError):
        engine.merge(before_break.id, after_break.id)
    assert store.count == 4


def test_merge_rejects_off_grid_session(engine, store):
    off_grid = store.create(session_payload(start="10:15", end="11:15"))
    other = store.create(session_payload(start="09:00", end="10:00"))

    with pytest.raises(InvalidMergeError):
        engine.merge(other.id, off_grid.id)
    assert store.get(off_grid.id).is_merged is False


def test_merge_rejects_different_classes(engine, store):
    first = store.create(session_payload(start="09:00", end="10:00", class_ref="CSE-A"))
    second = store.create(session_payload(start="10:00", end="11:00", class_ref="CSE-B"))

    with pytest.raises(InvalidMergeError) as exc_info:
        engine.merge(first.id, second.id)
    assert exc_info.value.message == "Can only merge schedules for the same class"
    assert store.count == 2


def test_merge_rejects_already_merged_and_self(engine, store):
    first = store.create(session_payload(start="09:00", end="10:00"))
    second = store.create(session_payload(start="10:00", end="11:00"))
    lone = store.create(session_payload(start="14:00", end="15:00"))
    merged = engine.merge(first.id, second.id)

    with pytest.raises(InvalidMergeError):
        engine.merge(merged.id, lone.id)
    with pytest.raises(InvalidMergeError):
        engine.merge(lone.id, lone.id)


def test_split_restores_both_halves(engine, store):
    first = store.create(session_payload(start="09:00", end="10:00", sessionType="practical", title="Physics"))
    second = store.create(session_payload(start="10:00", end="11:00"))
    merged = engine.merge(first.id, second.id)

    restored_first, restored_second = engine.split(merged.id)

    assert restored_first.id == first.id
    assert restored_second.id == second.id
    assert (restored_first.start_time, restored_first.end_time) == ("09:00", "10:00")
    assert (restored_second.start_time, restored_second.end_time) == ("10:00", "11:00")
    for half in (restored_first, restored_second):
        assert not half.is_merged
        assert half.merged_with is None
        assert half.custom_label is None
        assert half.session_type == SessionType.practical
        assert half.class_ref == "CSE-A"
        assert half.room == "101"
    assert store.count == 2


def test_split_rejects_unmerged_session(engine, store):
    session = store.create(session_payload())
    with pytest.raises(InvalidSplitError):
        engine.split(session.id)


def test_auto_merge_on_create_matches_manual_merge(store):
    engine = MergeEngine(store)
    engine.create_session(session_payload(day="Wednesday", start="14:00", end="15:00"))
    auto = engine.create_session(session_payload(day="Wednesday", start="15:00", end="16:00"))

    manual_engine = MergeEngine(SessionStore())
    a = manual_engine.create_session(session_payload(day="Wednesday", start="14:00", end="15:00"), auto_merge=False)
    b = manual_engine.create_session(session_payload(day="Wednesday", start="15:00", end="16:00"), auto_merge=False)
    manual = manual_engine.merge(a.id, b.id)

    assert auto.is_merged and manual.is_merged
    ignored = {"id", "merged_with"}
    assert auto.model_dump(exclude=ignored) == manual.model_dump(exclude=ignored)
    assert store.count == 1


def test_auto_merge_skips_other_class_and_disabled_policy(engine, store):
    engine.create_session(session_payload(start="09:00", end="10:00", class_ref="CSE-A"))
    other = engine.create_session(session_payload(start="10:00", end="11:00", class_ref="CSE-B"))
    assert not other.is_merged

    engine.create_session(session_payload(day="Friday", start="09:00", end="10:00"))
    kept = engine.create_session(session_payload(day="Friday", start="10:00", end="11:00"), auto_merge=False)
    assert not kept.is_merged
    assert store.count == 4


def test_assigning_class_triggers_auto_merge(engine, store):
    first = engine.create_session(session_payload(start="11:15", end="12:15", class_ref="CSE-A"))
    second = engine.create_session(session_payload(start="12:15", end="13:15", class_ref="CSE-B"))

    merged = engine.assign_class(second.id, "CSE-A")

    assert merged.is_merged
    assert merged.id == first.id
    assert merged.merged_with == second.id


def test_assigning_class_to_merged_lab_is_rejected(engine, store):
    engine.create_session(session_payload(start="09:00", end="10:00"))
    merged = engine.create_session(session_payload(start="10:00", end="11:00"))

    with pytest.raises(InvalidMergeError):
        engine.assign_class(merged.id, "CSE-B")


def test_update_cannot_move_merged_lab(engine, store):
    engine.create_session(session_payload(start="09:00", end="10:00"))
    merged = engine.create_session(session_payload(start="10:00", end="11:00"))

    with pytest.raises(InvalidMergeError):
        engine.update_session(merged.id, SessionUpdate(dayOfWeek="Tuesday"))
    relabelled = engine.update_session(merged.id, SessionUpdate(customLabel="OS Lab", roomNumber="Lab-2"))
    assert relabelled.display_label == "OS Lab"
    assert relabelled.is_merged


def test_split_conflict_leaves_lab_intact(engine, store):
    first = store.create(session_payload(start="14:00", end="15:00"))
    second = store.create(session_payload(start="15:00", end="16:00"))
    merged = engine.merge(first.id, second.id)

    # A booking persisted elsewhere that clashes with the second half only.
    intruder = Session(
        id="intruder", classId="CSE-B", dayOfWeek="Monday", startTime="15:30", endTime="16:30", roomNumber="9"
    )
    store._sessions[intruder.id] = intruder
    snapshot = store.list_all()

    with pytest.raises(ConflictError) as exc_info:
        engine.split(merged.id)
    assert exc_info.value.blocking.id == "intruder"
    assert store.list_all() == snapshot
    assert store.get(merged.id).is_merged


def test_merge_candidates_are_deterministic():
    def make(session_id, day, start, end, class_ref="CSE-A"):
        return Session(id=session_id, classId=class_ref, dayOfWeek=day, startTime=start, endTime=end, roomNumber="1")

    sessions = [
        make("t2", "Tuesday", "10:00", "11:00"),
        make("m6", "Monday", "15:00", "16:00"),
        make("t1", "Tuesday", "09:00", "10:00"),
        make("m5", "Monday", "14:00", "15:00"),
        make("x", "Monday", "09:00", "10:00", class_ref="CSE-B"),
        make("y", "Monday", "10:00", "11:00", class_ref="CSE-C"),
    ]

    candidates = merge_candidates(sessions)
    assert [(item.day, item.first.id, item.second.id) for item in candidates] == [
        (Day.monday, "m5", "m6"),
        (Day.tuesday, "t1", "t2"),
    ]
    assert merge_candidates(list(reversed(sessions))) == candidates


def test_merge_all_merges_every_candidate(engine, store):
    for day in ("Monday", "Tuesday"):
        engine.create_session(session_payload(day=day, start="09:00", end="10:00"), auto_merge=False)
        engine.create_session(session_payload(day=day, start="10:00", end="11:00"), auto_merge=False)

    merged = engine.merge_all()

    assert len(merged) == 2
    assert all(item.is_merged for item in store.list_all())
    assert engine.candidates() == []


def test_create_weekly_is_atomic(engine, store):
    items = [
        session_payload(start="09:00", end="10:00"),
        session_payload(start="10:00", end="11:00"),
        session_payload(start="10:30", end="11:30", class_ref="CSE-B"),
    ]
    with pytest.raises(ConflictError):
        engine.create_weekly(items)
    assert store.count == 0


def test_create_weekly_returns_merged_labs(engine, store):
    created = engine.create_weekly(
        [
            session_payload(start="09:00", end="10:00"),
            session_payload(start="10:00", end="11:00"),
            session_payload(start="16:00", end="17:00"),
        ]
    )
    assert len(created) == 2
    assert sorted(item.is_merged for item in created) == [False, True]
    assert store.count == 2


def test_empty_custom_label_is_kept_as_given(engine, store):
    first = store.create(session_payload(start="09:00", end="10:00"))
    second = store.create(session_payload(start="10:00", end="11:00"))

    merged = engine.merge(first.id, second.id, custom_label="")

    assert merged.custom_label == ""
