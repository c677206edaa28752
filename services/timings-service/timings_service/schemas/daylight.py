from datetime import date, datetime, time
from typing import Annotated, Any

from pydantic import BaseModel, Field, StringConstraints, ValidationInfo, field_serializer, field_validator

from .common import hhmmss, parse_clock

TimezoneName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=3, max_length=50)]


class DaylightUpsert(BaseModel):
    sunrise_time: time
    sunset_time: time
    timezone: TimezoneName | None = None
    latitude: float | None = Field(None, ge=-90, le=90)
    longitude: float | None = Field(None, ge=-180, le=180)
    notes: str | None = Field(None, max_length=500)

    @field_validator("sunrise_time", mode="before")
    @classmethod
    def _sunrise(cls, value: Any) -> time | None:
        return parse_clock(value, "Sunrise time", allow_seconds=True)

    @field_validator("sunset_time", mode="before")
    @classmethod
    def _sunset(cls, value: Any) -> time | None:
        return parse_clock(value, "Sunset time", allow_seconds=True)

    @field_validator("sunset_time")
    @classmethod
    def _sunset_after_sunrise(cls, value: time, info: ValidationInfo) -> time:
        sunrise = info.data.get("sunrise_time")
        # compared at minute precision
        if sunrise is not None and sunrise.replace(second=0) >= value.replace(second=0):
            raise ValueError("Sunrise time must be before sunset time")
        return value


class DaylightBulkItem(DaylightUpsert):
    date: date


class DaylightBulkRequest(BaseModel):
    daylight_data: list[DaylightBulkItem] = Field(..., min_length=1)


class DaylightResponse(BaseModel):
    id: int
    date: date
    sunrise_time: time
    sunset_time: time
    timezone: str
    latitude: float | None = None
    longitude: float | None = None
    notes: str | None = None
    updated_by: int | None = None
    updated_at: datetime

    class Config:
        from_attributes = True

    @field_serializer("sunrise_time", "sunset_time")
    def _clock(self, value: time) -> str | None:
        return hhmmss(value)


class DaylightListResponse(BaseModel):
    daylight: list[DaylightResponse]


class DaylightEnvelope(BaseModel):
    daylight: DaylightResponse


class DaylightMutationResponse(BaseModel):
    message: str
    daylight: DaylightResponse


class DaylightBulkResponse(BaseModel):
    message: str
    daylight: list[DaylightResponse]


class DaylightDeleteResponse(BaseModel):
    message: str
    deleted_daylight: DaylightResponse


class DaylightDeleteAllResponse(BaseModel):
    message: str
    deleted_count: int
