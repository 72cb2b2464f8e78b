from __future__ import annotations

import re
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator, model_validator

TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")

SESSION_MINUTES = 60
MERGED_SESSION_MINUTES = 120


def parse_time_to_minutes(value: str) -> int:
    if not TIME_PATTERN.match(value):
        raise ValueError("Time must be in HH:MM 24-hour format")
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def format_minutes(total: int) -> str:
    hours, minutes = divmod(total, 60)
    return f"{hours:02d}:{minutes:02d}"


def validate_time_value(value: str) -> str:
    value = value.strip()
    if not TIME_PATTERN.match(value):
        raise ValueError("Time must be in HH:MM 24-hour format")
    return value


class Day(str, Enum):
    monday = "Monday"
    tuesday = "Tuesday"
    wednesday = "Wednesday"
    thursday = "Thursday"
    friday = "Friday"
    saturday = "Saturday"

    @property
    def short(self) -> str:
        return self.value[:3]

    @classmethod
    def from_weekday(cls, weekday: int) -> "Day | None":
        """Map ``date.weekday()`` (0=Monday) to a Day; Sunday has no sessions."""
        members = list(cls)
        if 0 <= weekday < len(members):
            return members[weekday]
        return None


DAY_SHORT_MAP = {day.short: day for day in Day}


def normalize_day(value: Any) -> Any:
    if isinstance(value, str):
        stripped = value.strip()
        return DAY_SHORT_MAP.get(stripped, stripped)
    return value


class SlotKind(str, Enum):
    class_period = "class"
    break_period = "break"


class SessionType(str, Enum):
    lecture = "lecture"
    lab = "lab"
    project = "project"
    tutorial = "tutorial"
    practical = "practical"


class TimeSlot(BaseModel):
    id: str = Field(min_length=1, max_length=36)
    start: str
    end: str
    kind: SlotKind = SlotKind.class_period
    label: str = ""

    model_config = {"frozen": True}

    @field_validator("start", "end")
    @classmethod
    def validate_time_format(cls, value: str) -> str:
        return validate_time_value(value)

    @model_validator(mode="after")
    def validate_time_order(self) -> "TimeSlot":
        if parse_time_to_minutes(self.end) <= parse_time_to_minutes(self.start):
            raise ValueError("End time must be after start time")
        return self

    @property
    def start_minutes(self) -> int:
        return parse_time_to_minutes(self.start)

    @property
    def end_minutes(self) -> int:
        return parse_time_to_minutes(self.end)

    @property
    def is_break(self) -> bool:
        return self.kind == SlotKind.break_period


class MergeBlock(BaseModel):
    index: int = Field(ge=0)
    first: TimeSlot
    second: TimeSlot
    merged: TimeSlot

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def validate_contiguous(self) -> "MergeBlock":
        if self.first.is_break or self.second.is_break:
            raise ValueError("Break slots cannot be part of a merge block")
        if self.first.end != self.second.start:
            raise ValueError("Merge block halves must be contiguous")
        if self.merged.start != self.first.start or self.merged.end != self.second.end:
            raise ValueError("Merged window must span both halves exactly")
        return self

    @property
    def default_label(self) -> str:
        return f"{self.merged.start} - {self.merged.end} (Lab Session)"


class SessionFields(BaseModel):
    class_ref: str = Field(alias="classId", min_length=1, max_length=64)
    day: Day = Field(alias="dayOfWeek")
    start_time: str = Field(alias="startTime")
    end_time: str = Field(alias="endTime")
    room: str = Field(alias="roomNumber", min_length=1, max_length=50)
    session_type: SessionType = Field(default=SessionType.lecture, alias="sessionType")
    title: str | None = Field(default=None, max_length=200)
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

    @field_validator("class_ref", "room")
    @classmethod
    def strip_reference(cls, value: str) -> str:
        trimmed = value.strip()
        if not trimmed:
            raise ValueError("Value cannot be blank")
        return trimmed

    @model_validator(mode="after")
    def validate_time_order(self) -> "SessionFields":
        if self.end_minutes <= self.start_minutes:
            raise ValueError("End time must be after start time")
        return self

    @property
    def start_minutes(self) -> int:
        return parse_time_to_minutes(self.start_time)

    @property
    def end_minutes(self) -> int:
        return parse_time_to_minutes(self.end_time)

    @property
    def duration_minutes(self) -> int:
        return self.end_minutes - self.start_minutes


class SessionCreate(SessionFields):
    @model_validator(mode="after")
    def validate_single_period(self) -> "SessionCreate":
        if self.duration_minutes != SESSION_MINUTES:
            raise ValueError(
                "Sessions are created one hour at a time; merge two sessions to build a two-hour lab"
            )
        return self


class SessionUpdate(BaseModel):
    class_ref: str | None = Field(default=None, alias="classId", min_length=1, max_length=64)
    day: Day | None = Field(default=None, alias="dayOfWeek")
    start_time: str | None = Field(default=None, alias="startTime")
    end_time: str | None = Field(default=None, alias="endTime")
    room: str | None = Field(default=None, alias="roomNumber", min_length=1, max_length=50)
    session_type: SessionType | None = Field(default=None, alias="sessionType")
    title: str | None = Field(default=None, max_length=200)
    description: str | None = Field(default=None, max_length=1000)
    custom_label: str | None = Field(default=None, alias="customLabel", max_length=200)

    model_config = {"populate_by_name": True}

    @field_validator("day", mode="before")
    @classmethod
    def validate_day(cls, value: Any) -> Any:
        return normalize_day(value)

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time_format(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return validate_time_value(value)

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class Session(SessionFields):
    """A concrete session on the weekly grid, owned by a SessionStore."""

    id: str = Field(min_length=1, max_length=36)
    is_merged: bool = Field(default=False, alias="isMerged")
    merged_with: str | None = Field(default=None, alias="mergedWith")
    custom_label: str | None = Field(default=None, alias="customLabel", max_length=200)
    pre_merge_type: SessionType | None = Field(default=None, alias="preMergeType")

    model_config = {"populate_by_name": True, "frozen": True}

    @model_validator(mode="after")
    def validate_merge_state(self) -> "Session":
        if self.is_merged:
            if self.duration_minutes != MERGED_SESSION_MINUTES:
                raise ValueError("A merged session must last exactly two hours")
            if not self.merged_with:
                raise ValueError("A merged session must reference the session it absorbed")
        else:
            if self.duration_minutes != SESSION_MINUTES:
                raise ValueError("An unmerged session must last exactly one hour")
            if self.merged_with is not None:
                raise ValueError("Only merged sessions can reference an absorbed session")
        return self

    def with_changes(self, **changes: Any) -> "Session":
        """Return a re-validated copy; the stored instance is never mutated."""
        return Session.model_validate({**self.model_dump(), **changes})

    @property
    def display_label(self) -> str:
        if self.custom_label:
            return self.custom_label
        if self.title:
            return self.title
        return f"{self.class_ref} ({self.session_type.value})"


class MergeRequest(BaseModel):
    first_id: str = Field(alias="sourceScheduleId", min_length=1, max_length=36)
    second_id: str = Field(alias="targetScheduleId", min_length=1, max_length=36)
    custom_label: str | None = Field(default=None, alias="customLabel", max_length=200)

    model_config = {"populate_by_name": True}

    @field_validator("custom_label")
    @classmethod
    def normalize_label(cls, value: str | None) -> str | None:
        if value is None:
            return None
        trimmed = value.strip()
        return trimmed or None


class MergeCandidate(BaseModel):
    day: Day
    block: MergeBlock
    first: Session
    second: Session

    @property
    def class_ref(self) -> str:
        return self.first.class_ref


class SplitResult(BaseModel):
    first: Session
    second: Session


class BulkCreateRequest(BaseModel):
    schedules: list[SessionCreate] = Field(min_length=1, max_length=200)
    auto_merge: bool | None = Field(default=None, alias="autoMerge")

    model_config = {"populate_by_name": True}


class ClassAssignment(BaseModel):
    class_ref: str = Field(alias="classId", min_length=1, max_length=64)

    model_config = {"populate_by_name": True}


class GridCell(BaseModel):
    day: Day
    slot_id: str = Field(alias="slotId")
    kind: Literal["session", "spanned", "break", "empty"]
    session: Session | None = None
    spanned_by: str | None = Field(default=None, alias="spannedBy")
    row_span: int = Field(default=1, alias="rowSpan", ge=0)

    model_config = {"populate_by_name": True}


class WeeklyGrid(BaseModel):
    days: list[Day]
    time_slots: list[TimeSlot] = Field(alias="timeSlots")
    cells: dict[Day, list[GridCell]]

    model_config = {"populate_by_name": True}

    def cell(self, day: Day, slot_id: str) -> GridCell:
        for item in self.cells[day]:
            if item.slot_id == slot_id:
                return item
        raise KeyError(f"{day.value}/{slot_id}")
