from fastapi import APIRouter

from app.schemas.timetable import MergeBlock, TimeSlot
from app.services import merge_rules, time_grid

router = APIRouter()


@router.get("/", response_model=list[TimeSlot])
def list_time_slots() -> list[TimeSlot]:
    return time_grid.time_slots()


@router.get("/available", response_model=list[TimeSlot])
def list_available_time_slots() -> list[TimeSlot]:
    return time_grid.class_slots()


@router.get("/days")
def list_days() -> list[dict]:
    return [{"id": day.value, "label": day.value, "short": day.short} for day in time_grid.days()]


@router.get("/merge-blocks", response_model=list[MergeBlock])
def list_merge_blocks() -> list[MergeBlock]:
    return merge_rules.merge_blocks()
