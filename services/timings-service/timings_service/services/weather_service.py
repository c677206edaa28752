from datetime import UTC, date, datetime, time, timedelta
from typing import Any
from zoneinfo import ZoneInfo

import structlog
from backend_common.http_client import ServiceClient
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import Settings
from ..database import as_utc
from ..errors import UpstreamError, ValidationError
from ..metrics import WEATHER_LOOKUPS_TOTAL
from ..models.daylight import Daylight
from ..schemas.common import hhmmss
from ..throttle import Throttle
from . import daylight_service

logger = structlog.get_logger(__name__)

FETCHED_NOTE = "Fetched from sunrise-sunset.org"


class SunriseSunsetClient:
    """Client for the public sunrise-sunset.org API."""

    def __init__(self, http: ServiceClient, base_url: str) -> None:
        self.http = http
        self.base_url = base_url

    async def fetch(self, day: date, lat: float, lng: float) -> tuple[datetime, datetime]:
        """Sunrise and sunset for ``day`` as UTC instants."""
        resp = await self.http.get(
            self.base_url,
            params={"lat": lat, "lng": lng, "date": day.isoformat(), "formatted": 0},
            provider="sunrise-sunset",
        )
        if not resp.success:
            raise UpstreamError(f"Failed to fetch daylight data: {resp.error}", error="Failed to fetch daylight data")

        payload = resp.data if isinstance(resp.data, dict) else {}
        if payload.get("status") != "OK":
            raise UpstreamError(
                f"API returned status: {payload.get('status', 'unknown')}",
                error="Failed to fetch daylight data",
            )
        results = payload.get("results") or {}
        try:
            sunrise = datetime.fromisoformat(str(results["sunrise"]))
            sunset = datetime.fromisoformat(str(results["sunset"]))
        except (KeyError, ValueError) as exc:
            raise UpstreamError(f"Malformed API response: {exc}", error="Failed to fetch daylight data") from exc
        return as_utc(sunrise), as_utc(sunset)


def to_local_clock(instant: datetime, tz_name: str) -> time:
    return instant.astimezone(ZoneInfo(tz_name)).time().replace(microsecond=0)


def _payload(row: Daylight, *, cached: bool) -> dict[str, Any]:
    return {
        "date": row.date,
        "sunrise_time": hhmmss(row.sunrise_time),
        "sunset_time": hhmmss(row.sunset_time),
        "timezone": row.timezone,
        "latitude": row.latitude,
        "longitude": row.longitude,
        "cached": cached,
    }


def is_fresh(row: Daylight, now: datetime, max_age: timedelta) -> bool:
    return now - as_utc(row.updated_at) < max_age


async def _fetch_and_store(
    db: AsyncSession,
    client: SunriseSunsetClient,
    day: date,
    lat: float,
    lng: float,
    settings: Settings,
) -> Daylight:
    sunrise_utc, sunset_utc = await client.fetch(day, lat, lng)
    tz_name = settings.DISPLAY_TIMEZONE
    row, _ = await daylight_service.apply_upsert(
        db,
        day,
        sunrise_time=to_local_clock(sunrise_utc, tz_name),
        sunset_time=to_local_clock(sunset_utc, tz_name),
        timezone=tz_name,
        latitude=lat,
        longitude=lng,
        notes=FETCHED_NOTE,
    )
    # cache writes are not trimmed; retention applies to the daylight endpoints
    await db.commit()
    WEATHER_LOOKUPS_TOTAL.labels(source="upstream").inc()
    logger.info("daylight_fetched", date=day.isoformat(), lat=lat, lng=lng)
    return row


async def get_or_fetch_daylight(
    db: AsyncSession,
    client: SunriseSunsetClient,
    day: date,
    settings: Settings,
    *,
    lat: float | None = None,
    lng: float | None = None,
    now: datetime | None = None,
) -> dict[str, Any]:
    lat = settings.WEATHER_DEFAULT_LAT if lat is None else lat
    lng = settings.WEATHER_DEFAULT_LNG if lng is None else lng
    now = now or datetime.now(UTC)

    row = await daylight_service.get_by_date(db, day)
    if row is not None and is_fresh(row, now, timedelta(hours=settings.WEATHER_CACHE_HOURS)):
        WEATHER_LOOKUPS_TOTAL.labels(source="cache").inc()
        return _payload(row, cached=True)

    row = await _fetch_and_store(db, client, day, lat, lng, settings)
    return _payload(row, cached=False)


async def get_daylight_range(
    db: AsyncSession,
    client: SunriseSunsetClient,
    start_date: date,
    end_date: date,
    settings: Settings,
    *,
    lat: float | None = None,
    lng: float | None = None,
    throttle: Throttle | None = None,
) -> list[dict[str, Any]]:
    """Stored rows are reused as-is; missing dates are fetched one by one, failures skipped."""
    if start_date > end_date:
        raise ValidationError.for_field("end_date", "Start date must be before or equal to end date")
    span = (end_date - start_date).days + 1
    if span > settings.WEATHER_MAX_RANGE_DAYS:
        raise ValidationError.for_field(
            "end_date", f"Date range cannot exceed {settings.WEATHER_MAX_RANGE_DAYS} days"
        )

    lat = settings.WEATHER_DEFAULT_LAT if lat is None else lat
    lng = settings.WEATHER_DEFAULT_LNG if lng is None else lng
    throttle = throttle or Throttle(settings.WEATHER_FETCH_INTERVAL_SECONDS)

    stored = {row.date: row for row in await daylight_service.list_range(db, start_date, end_date)}
    data: list[dict[str, Any]] = []
    for offset in range(span):
        day = start_date + timedelta(days=offset)
        if day in stored:
            WEATHER_LOOKUPS_TOTAL.labels(source="cache").inc()
            data.append(_payload(stored[day], cached=True))
            continue
        await throttle.wait()
        try:
            row = await _fetch_and_store(db, client, day, lat, lng, settings)
        except UpstreamError as exc:
            logger.warning("daylight_range_fetch_skipped", date=day.isoformat(), error=exc.message)
            continue
        data.append(_payload(row, cached=False))
    return data
