from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import Settings
from ..dependencies import get_app_settings, get_db, get_sun_client, require_admin
from ..errors import ValidationError
from ..models.users import User
from ..schemas.common import parse_path_date
from ..schemas.daylight import DaylightMutationResponse, DaylightResponse, DaylightUpsert
from ..schemas.weather import WeatherDaylightData, WeatherDaylightResponse, WeatherRangeResponse
from ..services import daylight_service, weather_service
from ..services.weather_service import SunriseSunsetClient

router = APIRouter(prefix="/weather", tags=["weather"])


@router.get("/daylight/range", response_model=WeatherRangeResponse)
async def get_daylight_range(
    start_date: str | None = Query(None),
    end_date: str | None = Query(None),
    lat: float | None = Query(None, ge=-90, le=90),
    lng: float | None = Query(None, ge=-180, le=180),
    db: AsyncSession = Depends(get_db),
    client: SunriseSunsetClient = Depends(get_sun_client),
    settings: Settings = Depends(get_app_settings),
) -> WeatherRangeResponse:
    if not start_date or not end_date:
        raise ValidationError("start_date and end_date are required", error="Missing parameters")

    data = await weather_service.get_daylight_range(
        db,
        client,
        parse_path_date(start_date),
        parse_path_date(end_date),
        settings,
        lat=lat,
        lng=lng,
    )
    return WeatherRangeResponse(
        message="Daylight data retrieved successfully",
        data=[WeatherDaylightData(**item) for item in data],
        count=len(data),
    )


@router.get("/daylight/{day}", response_model=WeatherDaylightResponse)
async def get_daylight(
    day: str,
    lat: float | None = Query(None, ge=-90, le=90),
    lng: float | None = Query(None, ge=-180, le=180),
    db: AsyncSession = Depends(get_db),
    client: SunriseSunsetClient = Depends(get_sun_client),
    settings: Settings = Depends(get_app_settings),
) -> WeatherDaylightResponse:
    data = await weather_service.get_or_fetch_daylight(db, client, parse_path_date(day), settings, lat=lat, lng=lng)
    message = "Daylight data retrieved from cache" if data["cached"] else "Daylight data fetched successfully"
    return WeatherDaylightResponse(message=message, data=WeatherDaylightData(**data))


@router.put("/daylight/{day}", response_model=DaylightMutationResponse)
async def put_daylight(
    day: str,
    payload: DaylightUpsert,
    actor: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> DaylightMutationResponse:
    row, _ = await daylight_service.upsert_daylight(
        db,
        parse_path_date(day),
        payload,
        default_timezone=settings.DISPLAY_TIMEZONE,
        retention=settings.DAYLIGHT_RETENTION_DAYS,
        updated_by=actor.id,
    )
    return DaylightMutationResponse(
        message="Daylight data updated successfully",
        daylight=DaylightResponse.model_validate(row),
    )
