from datetime import date, datetime, time
from typing import Any

from pydantic import BaseModel, Field, ValidationInfo, field_serializer, field_validator

from .common import hhmm, normalize_weekday, parse_clock


class GoodTimingBase(BaseModel):
    day: str = Field(..., description="Day of the week, any letter case")
    start_date: date
    end_date: date

    @field_validator("day", mode="before")
    @classmethod
    def _weekday(cls, value: Any) -> str:
        return normalize_weekday(value)

    @field_validator("end_date")
    @classmethod
    def _end_after_start(cls, value: date, info: ValidationInfo) -> date:
        start = info.data.get("start_date")
        if start is not None and start > value:
            raise ValueError("Start date must be before or equal to end date")
        return value


class GoodTimingCreate(GoodTimingBase):
    pass


class GoodTimingUpdate(GoodTimingBase):
    pass


class TimeSlotCreate(BaseModel):
    start_time: time
    end_time: time
    category_id: int = Field(..., ge=1, description="Category ID must be a positive integer")
    description: str | None = Field(None, max_length=500)

    @field_validator("start_time", mode="before")
    @classmethod
    def _start(cls, value: Any) -> time | None:
        return parse_clock(value, "Start time")

    @field_validator("end_time", mode="before")
    @classmethod
    def _end(cls, value: Any) -> time | None:
        return parse_clock(value, "End time")

    @field_validator("end_time")
    @classmethod
    def _end_after_start(cls, value: time, info: ValidationInfo) -> time:
        start = info.data.get("start_time")
        if start is not None and start >= value:
            raise ValueError("Start time must be before end time")
        return value


class TimeSlotUpdate(TimeSlotCreate):
    pass


class TimeSlotResponse(BaseModel):
    id: int
    parent_id: int
    start_time: time
    end_time: time
    category_id: int
    category_name: str | None = None
    category_color: str | None = None
    description: str | None = None

    class Config:
        from_attributes = True

    @field_serializer("start_time", "end_time")
    def _clock(self, value: time) -> str | None:
        return hhmm(value)


class GoodTimingResponse(BaseModel):
    id: int
    day: str
    start_date: date
    end_date: date
    created_by: int | None = None
    created_by_name: str | None = None
    created_at: datetime
    updated_at: datetime | None = None
    time_slots: list[TimeSlotResponse] = Field(default_factory=list)

    class Config:
        from_attributes = True


class GoodTimingListResponse(BaseModel):
    good_timings: list[GoodTimingResponse]


class GoodTimingEnvelope(BaseModel):
    good_timing: GoodTimingResponse


class GoodTimingMutationResponse(BaseModel):
    message: str
    good_timing: GoodTimingResponse


class TimeSlotMutationResponse(BaseModel):
    message: str
    time_slot: TimeSlotResponse
