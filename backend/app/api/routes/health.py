from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from app.core.config import Settings, get_settings
from app.services.registry import ScheduleRegistry, get_registry

router = APIRouter()


@router.get("/health")
def health() -> dict:
    return {"status": "ok"}


@router.get("/health/live")
def health_live(
    settings: Settings = Depends(get_settings),
    registry: ScheduleRegistry = Depends(get_registry),
) -> dict:
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "service": settings.project_name,
        "teachers": len(registry.teacher_ids()),
    }
