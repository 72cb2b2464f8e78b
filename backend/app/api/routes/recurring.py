from datetime import date, datetime
import logging
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from fastapi import APIRouter, Depends, Query, status

from app.api.deps import get_teacher_schedule
from app.core.config import Settings, get_settings
from app.schemas.recurring import (
    RecurringScheduleTemplate,
    RecurringTemplateCreate,
    RecurringTemplateUpdate,
    ScheduledOccurrence,
    ScheduleOverride,
    ScheduleOverrideCreate,
)
from app.services.registry import TeacherSchedule

router = APIRouter()
logger = logging.getLogger(__name__)


def current_time(settings: Settings = Depends(get_settings)) -> datetime:
    try:
        tz = ZoneInfo(settings.timezone)
    except ZoneInfoNotFoundError:
        logger.warning("Invalid timezone '%s', defaulting to UTC.", settings.timezone)
        tz = ZoneInfo("UTC")
    return datetime.now(tz)


@router.get("/", response_model=list[RecurringScheduleTemplate])
def list_recurring_schedules(
    schedule: TeacherSchedule = Depends(get_teacher_schedule),
) -> list[RecurringScheduleTemplate]:
    return schedule.templates.list_all()


@router.post("/", response_model=RecurringScheduleTemplate, status_code=status.HTTP_201_CREATED)
def create_recurring_schedule(
    payload: RecurringTemplateCreate,
    schedule: TeacherSchedule = Depends(get_teacher_schedule),
) -> RecurringScheduleTemplate:
    return schedule.templates.create(payload)


@router.get("/today", response_model=list[RecurringScheduleTemplate])
def get_todays_schedule(
    now: datetime = Depends(current_time),
    schedule: TeacherSchedule = Depends(get_teacher_schedule),
) -> list[RecurringScheduleTemplate]:
    return schedule.templates.today(now)


@router.get("/date/{on}", response_model=list[RecurringScheduleTemplate])
def get_schedule_for_date(
    on: date,
    schedule: TeacherSchedule = Depends(get_teacher_schedule),
) -> list[RecurringScheduleTemplate]:
    return schedule.templates.for_date(on)


@router.get("/range", response_model=list[ScheduledOccurrence])
def get_schedule_for_date_range(
    start_date: date = Query(alias="startDate"),
    end_date: date = Query(alias="endDate"),
    schedule: TeacherSchedule = Depends(get_teacher_schedule),
) -> list[ScheduledOccurrence]:
    return schedule.templates.for_range(start_date, end_date)


@router.get("/overrides", response_model=list[ScheduleOverride])
def list_schedule_overrides(schedule: TeacherSchedule = Depends(get_teacher_schedule)) -> list[ScheduleOverride]:
    return schedule.templates.overrides()


@router.post("/override", response_model=ScheduleOverride, status_code=status.HTTP_201_CREATED)
def create_schedule_override(
    payload: ScheduleOverrideCreate,
    schedule: TeacherSchedule = Depends(get_teacher_schedule),
) -> ScheduleOverride:
    return schedule.templates.add_override(payload)


@router.get("/{template_id}", response_model=RecurringScheduleTemplate)
def get_recurring_schedule(
    template_id: str,
    schedule: TeacherSchedule = Depends(get_teacher_schedule),
) -> RecurringScheduleTemplate:
    return schedule.templates.get(template_id)


@router.put("/{template_id}", response_model=RecurringScheduleTemplate)
def update_recurring_schedule(
    template_id: str,
    payload: RecurringTemplateUpdate,
    schedule: TeacherSchedule = Depends(get_teacher_schedule),
) -> RecurringScheduleTemplate:
    return schedule.templates.update(template_id, payload)


@router.delete("/{template_id}", response_model=RecurringScheduleTemplate)
def delete_recurring_schedule(
    template_id: str,
    schedule: TeacherSchedule = Depends(get_teacher_schedule),
) -> RecurringScheduleTemplate:
    return schedule.templates.delete(template_id)
