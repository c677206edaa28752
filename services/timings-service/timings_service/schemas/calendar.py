from datetime import date, datetime, time
from typing import Annotated, Any

from pydantic import BaseModel, Field, StringConstraints, field_serializer, field_validator

from ..services.calendar_resolver import to_calendar_date
from .categories import CategoryResponse
from .common import EventColor, hhmm, parse_clock

EventTitle = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=200)]


def _iso_date(value: Any, label: str) -> date | None:
    if value is None:
        return None
    parsed = to_calendar_date(value)
    if parsed is None:
        raise ValueError(f"{label} must be a valid ISO 8601 date")
    return parsed


class CalendarEventBase(BaseModel):
    description: str | None = Field(None, max_length=500)
    start_time: time | None = None
    end_time: time | None = None
    category_id: int | None = Field(None, ge=1)

    @field_validator("start_date", mode="before", check_fields=False)
    @classmethod
    def _start_date(cls, value: Any) -> date | None:
        return _iso_date(value, "Start date")

    @field_validator("end_date", mode="before", check_fields=False)
    @classmethod
    def _end_date(cls, value: Any) -> date | None:
        return _iso_date(value, "End date")

    @field_validator("start_time", mode="before")
    @classmethod
    def _start_time(cls, value: Any) -> time | None:
        return parse_clock(value or None, "Start time")

    @field_validator("end_time", mode="before")
    @classmethod
    def _end_time(cls, value: Any) -> time | None:
        return parse_clock(value or None, "End time")


class CalendarEventCreate(CalendarEventBase):
    title: EventTitle
    start_date: date
    end_date: date
    is_all_day: bool = False
    color: EventColor = EventColor.blue


class CalendarEventUpdate(CalendarEventBase):
    title: EventTitle | None = None
    start_date: date | None = None
    end_date: date | None = None
    is_all_day: bool | None = None
    color: EventColor | None = None


class CalendarEventResponse(BaseModel):
    id: int
    title: str
    description: str | None = None
    start_date: date
    end_date: date
    start_time: time | None = None
    end_time: time | None = None
    category_id: int | None = None
    category_name: str | None = None
    category_color: str | None = None
    is_all_day: bool
    color: str
    created_by: int | None = None
    created_by_name: str | None = None
    created_at: datetime
    updated_at: datetime | None = None

    class Config:
        from_attributes = True

    @field_serializer("start_time", "end_time")
    def _clock(self, value: time | None) -> str | None:
        return hhmm(value)


class CalendarEventListResponse(BaseModel):
    success: bool = True
    events: list[CalendarEventResponse]


class CalendarEventEnvelope(BaseModel):
    success: bool = True
    event: CalendarEventResponse


class CalendarEventMutationResponse(BaseModel):
    success: bool = True
    message: str
    event: CalendarEventResponse


class CalendarCategoriesResponse(BaseModel):
    success: bool = True
    categories: list[CategoryResponse]


class ResolvedSlotResponse(BaseModel):
    start_time: str
    end_time: str
    category_name: str | None = None
    category_color: str | None = None
    description: str | None = None
    is_all_day: bool = False

    class Config:
        from_attributes = True


class ResolvedWindowResponse(BaseModel):
    source: str
    source_id: int | str | None = None
    window_label: str
    start_date: date
    end_date: date
    time_slots: list[ResolvedSlotResponse]

    class Config:
        from_attributes = True


class DayResolutionResponse(BaseModel):
    date: date
    windows: list[ResolvedWindowResponse]
    slots: list[ResolvedSlotResponse]


class GridCellResponse(BaseModel):
    date: date
    visible: list[ResolvedSlotResponse]
    more: int
    total: int

    class Config:
        from_attributes = True


class CalendarGridResponse(BaseModel):
    start_date: date
    end_date: date
    limit: int
    cells: list[GridCellResponse]
