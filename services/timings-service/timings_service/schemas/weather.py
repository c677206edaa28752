from datetime import date

from pydantic import BaseModel


class WeatherDaylightData(BaseModel):
    date: date
    sunrise_time: str
    sunset_time: str
    timezone: str
    latitude: float | None = None
    longitude: float | None = None
    cached: bool


class WeatherDaylightResponse(BaseModel):
    message: str
    data: WeatherDaylightData


class WeatherRangeResponse(BaseModel):
    message: str
    data: list[WeatherDaylightData]
    count: int
