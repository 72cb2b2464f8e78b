from __future__ import annotations

from collections.abc import Iterable, Sequence

from app.schemas.timetable import Day, GridCell, Session, TimeSlot, WeeklyGrid
from app.services import time_grid
from app.services.conflict_service import slots_overlap


def _covered_slots(session: Session, time_slots: Sequence[TimeSlot]) -> int:
    return sum(
        1
        for slot in time_slots
        if session.start_minutes <= slot.start_minutes and slot.end_minutes <= session.end_minutes
    )


def _touches(session: Session, slot: TimeSlot) -> bool:
    return slots_overlap(session.start_minutes, session.end_minutes, slot.start_minutes, slot.end_minutes)


def _resolve_cell(day: Day, slot: TimeSlot, day_sessions: list[Session], time_slots: Sequence[TimeSlot]) -> GridCell:
    # Exact match covers plain sessions and the anchor row of a merged lab.
    for session in day_sessions:
        if session.start_time == slot.start and session.end_time == slot.end:
            return GridCell(day=day, slot_id=slot.id, kind="session", session=session, row_span=1)
    for session in day_sessions:
        if session.start_time == slot.start:
            return GridCell(
                day=day,
                slot_id=slot.id,
                kind="session",
                session=session,
                row_span=max(1, _covered_slots(session, time_slots)),
            )

    # The absorbed half of a lab no longer has a row of its own.
    for session in day_sessions:
        if session.is_merged and session.start_minutes <= slot.start_minutes and slot.end_minutes <= session.end_minutes:
            return GridCell(day=day, slot_id=slot.id, kind="spanned", spanned_by=session.id, row_span=0)

    if slot.is_break:
        return GridCell(day=day, slot_id=slot.id, kind="break")

    # Off-grid sessions: the first class slot they touch carries them, later ones are occupied.
    for session in day_sessions:
        if not _touches(session, slot):
            continue
        first_touched = next(item for item in time_slots if not item.is_break and _touches(session, item))
        anchored = any(item.start == session.start_time for item in time_slots)
        if first_touched.id == slot.id and not anchored:
            return GridCell(day=day, slot_id=slot.id, kind="session", session=session, row_span=1)
        return GridCell(day=day, slot_id=slot.id, kind="spanned", spanned_by=session.id, row_span=0)

    return GridCell(day=day, slot_id=slot.id, kind="empty")


def project_grid(
    sessions: Iterable[Session],
    time_slots: Sequence[TimeSlot] | None = None,
    days: Sequence[Day] | None = None,
) -> WeeklyGrid:
    """Lay sessions out on the day x slot grid the UI renders."""
    slots = list(time_slots) if time_slots is not None else time_grid.time_slots()
    grid_days = list(days) if days is not None else time_grid.days()

    by_day: dict[Day, list[Session]] = {day: [] for day in grid_days}
    for session in sessions:
        if session.day in by_day:
            by_day[session.day].append(session)

    cells = {
        day: [_resolve_cell(day, slot, by_day[day], slots) for slot in slots]
        for day in grid_days
    }
    return WeeklyGrid(days=grid_days, time_slots=slots, cells=cells)
