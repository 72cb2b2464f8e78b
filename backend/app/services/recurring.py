from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime, timedelta
import logging
from threading import RLock
import uuid

from app.core.exceptions import AppError, ConflictError, NotFoundError
from app.schemas.recurring import (
    RecurringScheduleTemplate,
    RecurringTemplateCreate,
    RecurringTemplateUpdate,
    ScheduledOccurrence,
    ScheduleOverride,
    ScheduleOverrideCreate,
)
from app.schemas.timetable import Day
from app.services.conflict_service import slots_overlap

logger = logging.getLogger(__name__)

MAX_RANGE_DAYS = 366


def _sort_key(template: RecurringScheduleTemplate) -> tuple[int, str]:
    return template.start_minutes, template.id


def for_date(templates: Iterable[RecurringScheduleTemplate], on: date) -> list[RecurringScheduleTemplate]:
    """Templates that imply a session on ``on`` (weekday match, inside the semester)."""
    day = Day.from_weekday(on.weekday())
    if day is None:
        return []
    active = [item for item in templates if item.day == day and item.active_on(on)]
    return sorted(active, key=_sort_key)


def today(templates: Iterable[RecurringScheduleTemplate], now: datetime) -> list[RecurringScheduleTemplate]:
    return for_date(templates, now.date())


def _occurrence(
    template: RecurringScheduleTemplate,
    on: date,
    override: ScheduleOverride | None,
) -> ScheduledOccurrence:
    data = {
        "template_id": template.id,
        "on_date": on,
        "day": template.day,
        "start_time": template.start_time,
        "end_time": template.end_time,
        "class_ref": template.class_ref,
        "room": template.room,
        "session_type": template.session_type,
        "title": template.title,
    }
    if override is not None:
        data["overridden"] = True
        data["note"] = override.note
        if override.room is not None:
            data["room"] = override.room
        if override.start_time is not None:
            data["start_time"] = override.start_time
            data["end_time"] = override.end_time
    return ScheduledOccurrence.model_validate(data)


def for_range(
    templates: Iterable[RecurringScheduleTemplate],
    start: date,
    end: date,
    overrides: Iterable[ScheduleOverride] = (),
) -> list[ScheduledOccurrence]:
    """Occurrences for every date in [start, end], with per-date overrides applied."""
    if end < start:
        raise AppError("End date must not be before start date", status_code=400)
    if (end - start).days >= MAX_RANGE_DAYS:
        raise AppError(f"Date range cannot exceed {MAX_RANGE_DAYS} days", status_code=400)

    pool = list(templates)
    override_map = {(item.template_id, item.on_date): item for item in overrides}

    occurrences: list[ScheduledOccurrence] = []
    current = start
    while current <= end:
        for template in for_date(pool, current):
            override = override_map.get((template.id, current))
            if override is not None and override.cancelled:
                continue
            occurrences.append(_occurrence(template, current, override))
        current += timedelta(days=1)

    occurrences.sort(key=lambda item: (item.on_date, item.start_time, item.template_id))
    return occurrences


class RecurringTemplateStore:
    """Recurring templates and their one-date overrides for one teacher."""

    def __init__(self) -> None:
        self._templates: dict[str, RecurringScheduleTemplate] = {}
        self._overrides: dict[str, ScheduleOverride] = {}
        self._lock = RLock()

    def list_all(self) -> list[RecurringScheduleTemplate]:
        with self._lock:
            templates = list(self._templates.values())
        return sorted(templates, key=lambda item: (list(Day).index(item.day), item.start_minutes, item.id))

    def get(self, template_id: str) -> RecurringScheduleTemplate:
        template = self._templates.get(template_id)
        if template is None:
            raise NotFoundError("Recurring schedule", template_id)
        return template

    def _ensure_free(self, template: RecurringScheduleTemplate) -> None:
        for existing in self._templates.values():
            if existing.id == template.id or existing.day != template.day:
                continue
            semesters_meet = existing.semester_start <= template.semester_end and template.semester_start <= existing.semester_end
            if semesters_meet and slots_overlap(
                existing.start_minutes, existing.end_minutes, template.start_minutes, template.end_minutes
            ):
                raise ConflictError(
                    f"Recurring schedule overlaps {existing.class_ref} on {existing.day.value} "
                    f"{existing.start_time}-{existing.end_time} in Room {existing.room}",
                    existing,
                )

    def create(self, data: RecurringTemplateCreate) -> RecurringScheduleTemplate:
        template = RecurringScheduleTemplate.model_validate({**data.model_dump(), "id": str(uuid.uuid4())})
        with self._lock:
            self._ensure_free(template)
            self._templates[template.id] = template
        logger.info("Created recurring schedule %s for %s on %s", template.id, template.class_ref, template.day.value)
        return template

    def update(self, template_id: str, patch: RecurringTemplateUpdate) -> RecurringScheduleTemplate:
        with self._lock:
            updated = self.get(template_id).with_changes(**patch.changes())
            self._ensure_free(updated)
            self._templates[template_id] = updated
        return updated

    def delete(self, template_id: str) -> RecurringScheduleTemplate:
        with self._lock:
            template = self.get(template_id)
            del self._templates[template_id]
            stale = [key for key, item in self._overrides.items() if item.template_id == template_id]
            for key in stale:
                del self._overrides[key]
        logger.info("Deleted recurring schedule %s (%d override(s) dropped)", template_id, len(stale))
        return template

    def add_override(self, data: ScheduleOverrideCreate) -> ScheduleOverride:
        with self._lock:
            template = self.get(data.template_id)
            if not for_date([template], data.on_date):
                raise AppError(
                    f"Recurring schedule {template.id} has no occurrence on {data.on_date.isoformat()}",
                    status_code=400,
                )
            # One override per occurrence; a newer one replaces the old.
            for key, existing in list(self._overrides.items()):
                if existing.template_id == data.template_id and existing.on_date == data.on_date:
                    del self._overrides[key]
            override = ScheduleOverride.model_validate({**data.model_dump(), "id": str(uuid.uuid4())})
            self._overrides[override.id] = override
        return override

    def overrides(self) -> list[ScheduleOverride]:
        with self._lock:
            return sorted(self._overrides.values(), key=lambda item: (item.on_date, item.template_id))

    def today(self, now: datetime) -> list[RecurringScheduleTemplate]:
        return today(self.list_all(), now)

    def for_date(self, on: date) -> list[RecurringScheduleTemplate]:
        return for_date(self.list_all(), on)

    def for_range(self, start: date, end: date) -> list[ScheduledOccurrence]:
        return for_range(self.list_all(), start, end, self.overrides())
