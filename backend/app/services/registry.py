from __future__ import annotations

from dataclasses import dataclass, field
from threading import Lock

from app.services.merge_engine import MergeEngine
from app.services.recurring import RecurringTemplateStore
from app.services.session_store import SessionStore


@dataclass
class TeacherSchedule:
    teacher_id: str
    sessions: SessionStore = field(default_factory=SessionStore)
    templates: RecurringTemplateStore = field(default_factory=RecurringTemplateStore)

    @property
    def engine(self) -> MergeEngine:
        return MergeEngine(self.sessions)


class ScheduleRegistry:
    """In-memory schedules partitioned by teacher; persistence lives elsewhere."""

    def __init__(self) -> None:
        self._schedules: dict[str, TeacherSchedule] = {}
        self._lock = Lock()

    def for_teacher(self, teacher_id: str) -> TeacherSchedule:
        with self._lock:
            schedule = self._schedules.get(teacher_id)
            if schedule is None:
                schedule = TeacherSchedule(teacher_id=teacher_id)
                self._schedules[teacher_id] = schedule
            return schedule

    def teacher_ids(self) -> list[str]:
        with self._lock:
            return sorted(self._schedules)

    def clear(self) -> None:
        with self._lock:
            self._schedules.clear()


_registry = ScheduleRegistry()


def get_registry() -> ScheduleRegistry:
    return _registry


def clear_registry() -> None:
    _registry.clear()
