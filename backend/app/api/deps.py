from fastapi import Depends, HTTPException, Request, status

from app.core.config import Settings, get_settings
from app.services.registry import ScheduleRegistry, TeacherSchedule, get_registry


def get_teacher_id(request: Request, settings: Settings = Depends(get_settings)) -> str:
    # No authentication here: the header is only the partition key of the schedule.
    teacher_id = (request.headers.get(settings.teacher_header) or "").strip()
    if not teacher_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Missing {settings.teacher_header} header",
        )
    return teacher_id


def get_teacher_schedule(
    teacher_id: str = Depends(get_teacher_id),
    registry: ScheduleRegistry = Depends(get_registry),
) -> TeacherSchedule:
    return registry.for_teacher(teacher_id)
