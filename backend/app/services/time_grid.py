from __future__ import annotations

from app.schemas.timetable import Day, SlotKind, TimeSlot

# Published daily schedule: six teaching periods split by a refreshment break
# and a lunch break, plus a late period that is never part of a lab block.
DEFAULT_TIME_SLOTS: tuple[TimeSlot, ...] = (
    TimeSlot(id="1", start="09:00", end="10:00", kind=SlotKind.class_period, label="09:00-10:00"),
    TimeSlot(id="2", start="10:00", end="11:00", kind=SlotKind.class_period, label="10:00-11:00"),
    TimeSlot(
        id="break1",
        start="11:00",
        end="11:15",
        kind=SlotKind.break_period,
        label="11:00-11:15 (Refreshment Break)",
    ),
    TimeSlot(id="3", start="11:15", end="12:15", kind=SlotKind.class_period, label="11:15-12:15"),
    TimeSlot(id="4", start="12:15", end="13:15", kind=SlotKind.class_period, label="12:15-13:15"),
    TimeSlot(
        id="break2",
        start="13:15",
        end="14:00",
        kind=SlotKind.break_period,
        label="13:15-14:00 (Lunch Break)",
    ),
    TimeSlot(id="5", start="14:00", end="15:00", kind=SlotKind.class_period, label="14:00-15:00"),
    TimeSlot(id="6", start="15:00", end="16:00", kind=SlotKind.class_period, label="15:00-16:00"),
    TimeSlot(id="7", start="16:00", end="17:00", kind=SlotKind.class_period, label="16:00-17:00"),
)

DAYS: tuple[Day, ...] = tuple(Day)


def time_slots() -> list[TimeSlot]:
    return sorted(DEFAULT_TIME_SLOTS, key=lambda slot: slot.start_minutes)


def class_slots() -> list[TimeSlot]:
    return [slot for slot in time_slots() if not slot.is_break]


def break_slots() -> list[TimeSlot]:
    return [slot for slot in time_slots() if slot.is_break]


def days() -> list[Day]:
    return list(DAYS)


def slot_by_id(slot_id: str) -> TimeSlot | None:
    for slot in DEFAULT_TIME_SLOTS:
        if slot.id == slot_id:
            return slot
    return None


def find_slot(start: str, end: str) -> TimeSlot | None:
    for slot in DEFAULT_TIME_SLOTS:
        if slot.start == start and slot.end == end:
            return slot
    return None


def next_slot(slot: TimeSlot) -> TimeSlot | None:
    ordered = time_slots()
    index = ordered.index(slot)
    if index + 1 < len(ordered):
        return ordered[index + 1]
    return None


def previous_slot(slot: TimeSlot) -> TimeSlot | None:
    ordered = time_slots()
    index = ordered.index(slot)
    if index > 0:
        return ordered[index - 1]
    return None
