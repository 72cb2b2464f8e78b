import logging

from fastapi import APIRouter, Depends, Query, status

from app.api.deps import get_teacher_schedule
from app.core.config import Settings, get_settings
from app.schemas.conflict import ConflictCheckRequest, ConflictCheckResult, ConflictReport
from app.schemas.timetable import (
    BulkCreateRequest,
    ClassAssignment,
    Day,
    MergeCandidate,
    MergeRequest,
    Session,
    SessionCreate,
    SessionUpdate,
    SplitResult,
    WeeklyGrid,
)
from app.services import time_grid
from app.services.conflict_service import describe_conflict, detect_conflicts, find_conflict
from app.services.grid import project_grid
from app.services.registry import TeacherSchedule

router = APIRouter()
logger = logging.getLogger(__name__)


def _auto_merge(flag: bool | None, settings: Settings) -> bool:
    return settings.auto_merge_labs if flag is None else flag


@router.get("/", response_model=list[Session])
def list_schedules(schedule: TeacherSchedule = Depends(get_teacher_schedule)) -> list[Session]:
    return schedule.sessions.list_all()


@router.post("/", response_model=Session, status_code=status.HTTP_201_CREATED)
def create_schedule(
    payload: SessionCreate,
    auto_merge: bool | None = Query(default=None, alias="autoMerge"),
    schedule: TeacherSchedule = Depends(get_teacher_schedule),
    settings: Settings = Depends(get_settings),
) -> Session:
    return schedule.engine.create_session(payload, auto_merge=_auto_merge(auto_merge, settings))


@router.post("/bulk", response_model=list[Session], status_code=status.HTTP_201_CREATED)
def create_bulk_schedules(
    payload: BulkCreateRequest,
    schedule: TeacherSchedule = Depends(get_teacher_schedule),
    settings: Settings = Depends(get_settings),
) -> list[Session]:
    created = schedule.engine.create_weekly(payload.schedules, auto_merge=_auto_merge(payload.auto_merge, settings))
    logger.info("Weekly builder stored %d session(s) for teacher %s", len(created), schedule.teacher_id)
    return created


@router.post("/check-conflict", response_model=ConflictCheckResult)
def check_schedule_conflict(
    payload: ConflictCheckRequest,
    schedule: TeacherSchedule = Depends(get_teacher_schedule),
) -> ConflictCheckResult:
    excluded = {payload.exclude_id} if payload.exclude_id else set()
    blocking = find_conflict(
        payload.day,
        payload.start_time,
        payload.end_time,
        schedule.sessions.list_by_day(payload.day),
        exclude_ids=excluded,
    )
    if blocking is None:
        return ConflictCheckResult(has_conflict=False)
    return ConflictCheckResult(
        has_conflict=True,
        conflict=blocking,
        message=describe_conflict(payload.day, payload.start_time, payload.end_time, blocking),
    )


@router.get("/conflicts", response_model=ConflictReport)
def list_conflicts(schedule: TeacherSchedule = Depends(get_teacher_schedule)) -> ConflictReport:
    return detect_conflicts(schedule.sessions.list_all())


@router.get("/weekly", response_model=WeeklyGrid)
def get_weekly_grid(schedule: TeacherSchedule = Depends(get_teacher_schedule)) -> WeeklyGrid:
    return project_grid(schedule.sessions.list_all(), time_grid.time_slots(), time_grid.days())


@router.get("/merge-candidates", response_model=list[MergeCandidate])
def list_merge_candidates(schedule: TeacherSchedule = Depends(get_teacher_schedule)) -> list[MergeCandidate]:
    return schedule.engine.candidates()


@router.post("/merge-all", response_model=list[Session])
def merge_all_candidates(schedule: TeacherSchedule = Depends(get_teacher_schedule)) -> list[Session]:
    return schedule.engine.merge_all()


@router.post("/merge", response_model=Session)
def merge_schedules(
    payload: MergeRequest,
    schedule: TeacherSchedule = Depends(get_teacher_schedule),
) -> Session:
    return schedule.engine.merge(payload.first_id, payload.second_id, payload.custom_label)


@router.post("/split/{session_id}", response_model=SplitResult)
def split_schedule(
    session_id: str,
    schedule: TeacherSchedule = Depends(get_teacher_schedule),
) -> SplitResult:
    first, second = schedule.engine.split(session_id)
    return SplitResult(first=first, second=second)


@router.get("/day/{day}", response_model=list[Session])
def list_schedules_for_day(
    day: Day,
    schedule: TeacherSchedule = Depends(get_teacher_schedule),
) -> list[Session]:
    return schedule.sessions.list_by_day(day)


@router.get("/{session_id}", response_model=Session)
def get_schedule(session_id: str, schedule: TeacherSchedule = Depends(get_teacher_schedule)) -> Session:
    return schedule.sessions.get(session_id)


@router.put("/{session_id}", response_model=Session)
def update_schedule(
    session_id: str,
    payload: SessionUpdate,
    auto_merge: bool | None = Query(default=None, alias="autoMerge"),
    schedule: TeacherSchedule = Depends(get_teacher_schedule),
    settings: Settings = Depends(get_settings),
) -> Session:
    return schedule.engine.update_session(session_id, payload, auto_merge=_auto_merge(auto_merge, settings))


@router.put("/{session_id}/class", response_model=Session)
def assign_schedule_class(
    session_id: str,
    payload: ClassAssignment,
    auto_merge: bool | None = Query(default=None, alias="autoMerge"),
    schedule: TeacherSchedule = Depends(get_teacher_schedule),
    settings: Settings = Depends(get_settings),
) -> Session:
    return schedule.engine.assign_class(session_id, payload.class_ref, auto_merge=_auto_merge(auto_merge, settings))


@router.delete("/{session_id}", response_model=Session)
def delete_schedule(session_id: str, schedule: TeacherSchedule = Depends(get_teacher_schedule)) -> Session:
    return schedule.sessions.delete(session_id)
