"""Request/response models for the routines API (camelCase on the wire)."""

from datetime import date, datetime
from typing import Any, Dict, List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from ..domain.schedule import Schedule, parse_schedule


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )


# Request models


class ScheduleIn(CamelModel):
    frequency: Literal["daily", "weekly", "monthly"]
    days_of_week: Optional[List[int]] = None
    day_of_month: Optional[int] = Field(default=None, ge=1, le=31)
    time: Optional[str] = Field(
        default=None, pattern=r"^([0-1][0-9]|2[0-3]):[0-5][0-9]$"
    )
    end_date: Optional[date] = None

    @model_validator(mode="after")
    def check_frequency_fields(self) -> "ScheduleIn":
        if self.days_of_week is not None and any(
            not 0 <= d <= 6 for d in self.days_of_week
        ):
            raise ValueError("daysOfWeek values must be between 0 and 6")
        if self.frequency == "weekly" and not self.days_of_week:
            raise ValueError("daysOfWeek is required for weekly routines")
        if self.frequency == "monthly" and self.day_of_month is None:
            raise ValueError("dayOfMonth is required for monthly routines")
        return self

    def to_schedule(self) -> Schedule:
        return parse_schedule(self.model_dump(by_alias=True, exclude_none=True))


class RoutineCreate(CamelModel):
    name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=2000)
    schedule: ScheduleIn
    assigned_to_user_id: Optional[UUID] = None
    is_active: bool = True


class RoutineUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=2000)
    schedule: Optional[ScheduleIn] = None
    assigned_to_user_id: Optional[UUID] = None
    is_active: Optional[bool] = None

    def to_patch(self) -> Dict[str, Any]:
        """Fields the client actually sent, converted for RoutineService."""
        patch: Dict[str, Any] = {}
        for name in self.model_fields_set:
            value = getattr(self, name)
            if name == "schedule":
                if value is None:
                    continue
                value = value.to_schedule()
            elif name == "assigned_to_user_id" and value is not None:
                value = str(value)
            elif value is None and name in ("name", "is_active"):
                continue
            patch[name] = value
        return patch


# Response models


class RoutineOut(CamelModel):
    id: str
    couple_id: str
    name: str
    description: Optional[str]
    schedule: Dict[str, Any]
    assigned_to_user_id: Optional[str]
    is_active: bool
    created_by_id: str
    created_at: datetime
    updated_at: datetime


class OccurrenceOut(CamelModel):
    id: str
    routine_id: str
    couple_id: str
    scheduled_date: date
    completed_at: Optional[datetime]
    completed_by_id: Optional[str]
    skipped: bool
    created_at: datetime


class StatsOut(CamelModel):
    total: int
    completed: int
    skipped: int
    completion_rate: int
    current_streak: int


class RoutineListResponse(BaseModel):
    routines: List[RoutineOut]


class RoutineResponse(BaseModel):
    message: Optional[str] = None
    routine: RoutineOut


class MessageResponse(BaseModel):
    message: str


class OccurrenceListResponse(BaseModel):
    occurrences: List[OccurrenceOut]


class OccurrenceResponse(BaseModel):
    message: str
    occurrence: OccurrenceOut


class StatsResponse(BaseModel):
    stats: StatsOut
