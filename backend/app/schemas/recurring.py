from __future__ import annotations

from datetime import date
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from app.schemas.timetable import (
    Day,
    SessionType,
    normalize_day,
    parse_time_to_minutes,
    validate_time_value,
)


class RecurringTemplateFields(BaseModel):
    class_ref: str = Field(alias="classId", min_length=1, max_length=64)
    day: Day = Field(alias="dayOfWeek")
    start_time: str = Field(alias="startTime")
    end_time: str = Field(alias="endTime")
    room: str = Field(alias="roomNumber", min_length=1, max_length=50)
    session_type: SessionType = Field(default=SessionType.lecture, alias="sessionType")
    semester_start: date = Field(alias="semesterStartDate")
    semester_end: date = Field(alias="semesterEndDate")
    title: str = Field(default="", max_length=200)
    semester: str | None = Field(default=None, max_length=20)
    academic_year: str | None = Field(default=None, alias="academicYear", max_length=20)
    description: str = Field(default="", max_length=1000)

    model_config = {"populate_by_name": True}

    @field_validator("day", mode="before")
    @classmethod
    def validate_day(cls, value: Any) -> Any:
        return normalize_day(value)

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time_format(cls, value: str) -> str:
        return validate_time_value(value)

    @model_validator(mode="after")
    def validate_ranges(self) -> "RecurringTemplateFields":
        if parse_time_to_minutes(self.end_time) <= parse_time_to_minutes(self.start_time):
            raise ValueError("End time must be after start time")
        if self.semester_end < self.semester_start:
            raise ValueError("Semester end date must not be before its start date")
        return self

    @property
    def start_minutes(self) -> int:
        return parse_time_to_minutes(self.start_time)

    @property
    def end_minutes(self) -> int:
        return parse_time_to_minutes(self.end_time)

    def active_on(self, on: date) -> bool:
        return self.semester_start <= on <= self.semester_end


class RecurringTemplateCreate(RecurringTemplateFields):
    pass


class RecurringTemplateUpdate(BaseModel):
    class_ref: str | None = Field(default=None, alias="classId", min_length=1, max_length=64)
    day: Day | None = Field(default=None, alias="dayOfWeek")
    start_time: str | None = Field(default=None, alias="startTime")
    end_time: str | None = Field(default=None, alias="endTime")
    room: str | None = Field(default=None, alias="roomNumber", min_length=1, max_length=50)
    session_type: SessionType | None = Field(default=None, alias="sessionType")
    semester_start: date | None = Field(default=None, alias="semesterStartDate")
    semester_end: date | None = Field(default=None, alias="semesterEndDate")
    title: str | None = Field(default=None, max_length=200)
    description: str | None = Field(default=None, max_length=1000)

    model_config = {"populate_by_name": True}

    @field_validator("day", mode="before")
    @classmethod
    def validate_day(cls, value: Any) -> Any:
        return normalize_day(value)

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class RecurringScheduleTemplate(RecurringTemplateFields):
    """A weekly obligation that implies one session per matching weekday."""

    id: str = Field(min_length=1, max_length=36)

    model_config = {"populate_by_name": True, "frozen": True}

    def with_changes(self, **changes: Any) -> "RecurringScheduleTemplate":
        return RecurringScheduleTemplate.model_validate({**self.model_dump(), **changes})


class ScheduleOverrideCreate(BaseModel):
    template_id: str = Field(alias="templateId", min_length=1, max_length=36)
    on_date: date = Field(alias="date")
    cancelled: bool = False
    room: str | None = Field(default=None, alias="roomNumber", min_length=1, max_length=50)
    start_time: str | None = Field(default=None, alias="startTime")
    end_time: str | None = Field(default=None, alias="endTime")
    note: str = Field(default="", max_length=500)

    model_config = {"populate_by_name": True}

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time_format(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return validate_time_value(value)

    @model_validator(mode="after")
    def validate_override(self) -> "ScheduleOverrideCreate":
        if (self.start_time is None) != (self.end_time is None):
            raise ValueError("startTime and endTime must be overridden together")
        if self.start_time is not None and (
            parse_time_to_minutes(self.end_time) <= parse_time_to_minutes(self.start_time)
        ):
            raise ValueError("End time must be after start time")
        if not self.cancelled and self.room is None and self.start_time is None:
            raise ValueError("An override must cancel the occurrence or change its room or time")
        return self


class ScheduleOverride(ScheduleOverrideCreate):
    id: str = Field(min_length=1, max_length=36)

    model_config = {"populate_by_name": True, "frozen": True}


class ScheduledOccurrence(BaseModel):
    template_id: str = Field(alias="templateId")
    on_date: date = Field(alias="date")
    day: Day = Field(alias="dayOfWeek")
    start_time: str = Field(alias="startTime")
    end_time: str = Field(alias="endTime")
    class_ref: str = Field(alias="classId")
    room: str = Field(alias="roomNumber")
    session_type: SessionType = Field(alias="sessionType")
    title: str = ""
    overridden: bool = False
    note: str = ""

    model_config = {"populate_by_name": True, "frozen": True}
