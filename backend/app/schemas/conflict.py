from typing import Any, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from app.schemas.timetable import Day, Session, normalize_day, parse_time_to_minutes, validate_time_value


class ConflictCheckRequest(BaseModel):
    day: Day = Field(alias="dayOfWeek")
    start_time: str = Field(alias="startTime")
    end_time: str = Field(alias="endTime")
    exclude_id: Optional[str] = Field(default=None, alias="excludeId")

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
    def validate_time_order(self) -> "ConflictCheckRequest":
        if parse_time_to_minutes(self.end_time) <= parse_time_to_minutes(self.start_time):
            raise ValueError("End time must be after start time")
        return self


class ConflictCheckResult(BaseModel):
    has_conflict: bool = Field(alias="hasConflict")
    conflict: Optional[Session] = None
    message: str = ""

    model_config = {"populate_by_name": True}


class ConflictDetail(BaseModel):
    id: str
    conflict_type: Literal["session_overlap"] = "session_overlap"
    day: Day
    description: str
    severity: Literal["hard", "soft"] = "hard"
    affected_sessions: List[str]  # ids of the overlapping sessions


class ConflictReport(BaseModel):
    conflicts: List[ConflictDetail]

    @property
    def has_conflicts(self) -> bool:
        return bool(self.conflicts)
