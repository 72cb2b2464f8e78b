from collections import defaultdict
from collections.abc import Collection, Iterable
from typing import Dict, List

from app.schemas.conflict import ConflictDetail, ConflictReport
from app.schemas.timetable import Day, Session, parse_time_to_minutes


def slots_overlap(start_a: int, end_a: int, start_b: int, end_b: int) -> bool:
    # Half-open intervals: a session ending at 10:00 does not clash with one starting at 10:00.
    return start_a < end_b and start_b < end_a


def find_conflicts(
    day: Day,
    start: str,
    end: str,
    sessions: Iterable[Session],
    exclude_ids: Collection[str] = (),
) -> List[Session]:
    start_minutes = parse_time_to_minutes(start)
    end_minutes = parse_time_to_minutes(end)
    return [
        existing
        for existing in sessions
        if existing.day == day
        and existing.id not in exclude_ids
        and slots_overlap(existing.start_minutes, existing.end_minutes, start_minutes, end_minutes)
    ]


def find_conflict(
    day: Day,
    start: str,
    end: str,
    sessions: Iterable[Session],
    exclude_ids: Collection[str] = (),
) -> Session | None:
    start_minutes = parse_time_to_minutes(start)
    end_minutes = parse_time_to_minutes(end)
    for existing in sessions:
        if existing.day != day or existing.id in exclude_ids:
            continue
        if slots_overlap(existing.start_minutes, existing.end_minutes, start_minutes, end_minutes):
            return existing
    return None


def has_conflict(
    day: Day,
    start: str,
    end: str,
    sessions: Iterable[Session],
    exclude_ids: Collection[str] = (),
) -> bool:
    return find_conflict(day, start, end, sessions, exclude_ids) is not None


def describe_conflict(day: Day, start: str, end: str, existing: Session) -> str:
    return (
        f"You already have a class scheduled on {day.value} from {start} to {end}: "
        f"{existing.display_label} [{existing.class_ref}] in Room {existing.room} "
        f"({existing.session_type.value}, {existing.start_time}-{existing.end_time})"
    )


def detect_conflicts(sessions: Iterable[Session]) -> ConflictReport:
    conflicts: List[ConflictDetail] = []

    slots_by_day: Dict[Day, List[Session]] = defaultdict(list)
    for session in sessions:
        slots_by_day[session.day].append(session)

    # Pairwise within a day; a teacher's week is small enough for O(n^2) per day.
    for day in Day:
        day_sessions = sorted(slots_by_day.get(day, []), key=lambda item: (item.start_minutes, item.id))
        n = len(day_sessions)
        for i in range(n):
            s1 = day_sessions[i]
            for j in range(i + 1, n):
                s2 = day_sessions[j]
                if s2.start_minutes >= s1.end_minutes:
                    break
                conflicts.append(ConflictDetail(
                    id=f"overlap-{s1.id}-{s2.id}",
                    day=day,
                    description=(
                        f"Overlap on {day.value}: {s1.class_ref} {s1.start_time}-{s1.end_time} "
                        f"and {s2.class_ref} {s2.start_time}-{s2.end_time}"
                    ),
                    affected_sessions=[s1.id, s2.id],
                ))

    return ConflictReport(conflicts=conflicts)
