from collections.abc import Iterable
from datetime import date, time

import structlog
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import utcnow
from ..errors import NotFoundError
from ..metrics import DAYLIGHT_ROWS_TRIMMED_TOTAL, DAYLIGHT_WRITES_TOTAL
from ..models.daylight import Daylight
from ..schemas.daylight import DaylightBulkItem, DaylightUpsert

logger = structlog.get_logger(__name__)

DEFAULT_RECENT_LIMIT = 7


async def get_by_date(db: AsyncSession, day: date) -> Daylight | None:
    res = await db.execute(select(Daylight).where(Daylight.date == day))
    return res.scalar_one_or_none()


async def _get_daylight_or_404(db: AsyncSession, day: date) -> Daylight:
    row = await get_by_date(db, day)
    if row is None:
        raise NotFoundError(f"No daylight data found for {day.isoformat()}", error="Daylight data not found")
    return row


async def get_daylight(db: AsyncSession, day: date) -> Daylight:
    return await _get_daylight_or_404(db, day)


async def list_recent(db: AsyncSession, limit: int = DEFAULT_RECENT_LIMIT) -> list[Daylight]:
    res = await db.execute(select(Daylight).order_by(Daylight.date.desc()).limit(limit))
    return list(res.scalars().all())


async def list_range(db: AsyncSession, start_date: date | None, end_date: date | None) -> list[Daylight]:
    stmt = select(Daylight)
    if start_date is not None:
        stmt = stmt.where(Daylight.date >= start_date)
    if end_date is not None:
        stmt = stmt.where(Daylight.date <= end_date)
    res = await db.execute(stmt.order_by(Daylight.date))
    return list(res.scalars().all())


async def trim_to_recent(db: AsyncSession, keep: int) -> int:
    """Delete every row older than the ``keep`` most recent dates."""
    res = await db.execute(select(Daylight.date).order_by(Daylight.date.desc()).offset(keep).limit(1))
    cutoff = res.scalar_one_or_none()
    if cutoff is None:
        return 0
    result = await db.execute(delete(Daylight).where(Daylight.date <= cutoff))
    removed = result.rowcount or 0
    if removed:
        DAYLIGHT_ROWS_TRIMMED_TOTAL.inc(removed)
        logger.info("daylight_retention_trimmed", removed=removed, cutoff=cutoff.isoformat(), keep=keep)
    return removed


async def apply_upsert(
    db: AsyncSession,
    day: date,
    *,
    sunrise_time: time,
    sunset_time: time,
    timezone: str,
    latitude: float | None = None,
    longitude: float | None = None,
    notes: str | None = None,
    updated_by: int | None = None,
) -> tuple[Daylight, bool]:
    """Stage an insert or update for ``day``; the caller commits. Returns (row, created)."""
    row = await get_by_date(db, day)
    created = row is None
    if row is None:
        row = Daylight(date=day)
        db.add(row)
    row.sunrise_time = sunrise_time
    row.sunset_time = sunset_time
    row.timezone = timezone
    row.latitude = latitude
    row.longitude = longitude
    row.notes = notes
    row.updated_by = updated_by
    row.updated_at = utcnow()
    await db.flush()
    return row, created


async def upsert_daylight(
    db: AsyncSession,
    day: date,
    payload: DaylightUpsert,
    *,
    default_timezone: str,
    retention: int,
    updated_by: int | None = None,
) -> tuple[Daylight, bool]:
    row, created = await apply_upsert(
        db,
        day,
        sunrise_time=payload.sunrise_time,
        sunset_time=payload.sunset_time,
        timezone=payload.timezone or default_timezone,
        latitude=payload.latitude,
        longitude=payload.longitude,
        notes=payload.notes,
        updated_by=updated_by,
    )
    await db.commit()
    DAYLIGHT_WRITES_TOTAL.labels(operation="create" if created else "update").inc()
    logger.info("daylight_upserted", date=day.isoformat(), created=created)

    # best effort, runs after the write has committed
    await trim_to_recent(db, retention)
    await db.commit()
    return row, created


async def bulk_upsert(
    db: AsyncSession,
    items: Iterable[DaylightBulkItem],
    *,
    default_timezone: str,
    retention: int,
    updated_by: int | None = None,
) -> list[Daylight]:
    """Upsert a batch inside the caller's transaction, then trim."""
    rows: dict[date, Daylight] = {}
    for item in items:
        row, _ = await apply_upsert(
            db,
            item.date,
            sunrise_time=item.sunrise_time,
            sunset_time=item.sunset_time,
            timezone=item.timezone or default_timezone,
            latitude=item.latitude,
            longitude=item.longitude,
            notes=item.notes,
            updated_by=updated_by,
        )
        rows[item.date] = row
    DAYLIGHT_WRITES_TOTAL.labels(operation="bulk").inc(len(rows))
    logger.info("daylight_bulk_upserted", count=len(rows))

    await trim_to_recent(db, retention)
    kept = await db.execute(select(Daylight.date).where(Daylight.date.in_(list(rows))))
    kept_dates = set(kept.scalars().all())
    return [rows[d] for d in sorted(rows) if d in kept_dates]


async def delete_daylight(db: AsyncSession, day: date) -> Daylight:
    row = await _get_daylight_or_404(db, day)
    await db.delete(row)
    await db.commit()
    DAYLIGHT_WRITES_TOTAL.labels(operation="delete").inc()
    logger.info("daylight_deleted", date=day.isoformat())
    return row


async def delete_all(db: AsyncSession) -> int:
    result = await db.execute(delete(Daylight))
    await db.commit()
    removed = result.rowcount or 0
    DAYLIGHT_WRITES_TOTAL.labels(operation="delete_all").inc()
    logger.info("daylight_deleted_all", removed=removed)
    return removed
