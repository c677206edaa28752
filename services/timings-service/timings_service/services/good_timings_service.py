from datetime import date

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..errors import NotFoundError, ValidationError
from ..metrics import GOOD_TIMING_WRITES_TOTAL
from ..models.timings import GoodTiming, TimeSlot
from ..models.users import User
from ..schemas.good_timings import GoodTimingCreate, GoodTimingUpdate, TimeSlotCreate, TimeSlotUpdate
from . import categories_service

logger = structlog.get_logger(__name__)


async def _get_timing_or_404(db: AsyncSession, timing_id: int) -> GoodTiming:
    res = await db.execute(
        select(GoodTiming).where(GoodTiming.id == timing_id).execution_options(populate_existing=True)
    )
    timing = res.scalar_one_or_none()
    if timing is None:
        raise NotFoundError("The requested good timing does not exist", error="Good timing not found")
    return timing


async def _get_slot_or_404(db: AsyncSession, timing_id: int, slot_id: int) -> TimeSlot:
    res = await db.execute(
        select(TimeSlot)
        .where(TimeSlot.id == slot_id, TimeSlot.parent_id == timing_id)
        .execution_options(populate_existing=True)
    )
    slot = res.scalar_one_or_none()
    if slot is None:
        raise NotFoundError("The requested time slot does not exist", error="Time slot not found")
    return slot


async def _ensure_active_category(db: AsyncSession, category_id: int) -> None:
    if await categories_service.get_active_category(db, category_id) is None:
        message = "Category not found or inactive"
        raise ValidationError(
            message,
            error="Invalid category",
            details=[{"field": "category_id", "message": message}],
        )


async def list_good_timings(
    db: AsyncSession,
    *,
    start_date: date | None = None,
    end_date: date | None = None,
    day: str | None = None,
) -> list[GoodTiming]:
    stmt = select(GoodTiming)
    if start_date is not None:
        stmt = stmt.where(GoodTiming.start_date >= start_date)
    if end_date is not None:
        stmt = stmt.where(GoodTiming.end_date <= end_date)
    if day:
        stmt = stmt.where(func.lower(GoodTiming.day) == day.strip().lower())
    res = await db.execute(stmt.order_by(GoodTiming.start_date, GoodTiming.day, GoodTiming.id))
    return list(res.scalars().all())


async def list_timings_covering(db: AsyncSession, first_day: date, last_day: date) -> list[GoodTiming]:
    """Timings whose range overlaps [first_day, last_day]."""
    res = await db.execute(
        select(GoodTiming)
        .where(GoodTiming.start_date <= last_day, GoodTiming.end_date >= first_day)
        .order_by(GoodTiming.start_date, GoodTiming.id)
    )
    return list(res.scalars().all())


async def get_good_timing(db: AsyncSession, timing_id: int) -> GoodTiming:
    return await _get_timing_or_404(db, timing_id)


async def create_good_timing(db: AsyncSession, payload: GoodTimingCreate, actor: User) -> GoodTiming:
    timing = GoodTiming(
        day=payload.day,
        start_date=payload.start_date,
        end_date=payload.end_date,
        created_by=actor.id,
    )
    db.add(timing)
    await db.commit()
    GOOD_TIMING_WRITES_TOTAL.labels(entity="good_timing", operation="create").inc()
    logger.info("good_timing_created", good_timing_id=timing.id, day=timing.day, actor_id=actor.id)
    return await _get_timing_or_404(db, timing.id)


async def update_good_timing(db: AsyncSession, timing_id: int, payload: GoodTimingUpdate) -> GoodTiming:
    timing = await _get_timing_or_404(db, timing_id)
    timing.day = payload.day
    timing.start_date = payload.start_date
    timing.end_date = payload.end_date
    await db.commit()
    GOOD_TIMING_WRITES_TOTAL.labels(entity="good_timing", operation="update").inc()
    logger.info("good_timing_updated", good_timing_id=timing_id)
    return await _get_timing_or_404(db, timing_id)


async def delete_good_timing(db: AsyncSession, timing_id: int) -> GoodTiming:
    timing = await _get_timing_or_404(db, timing_id)
    await db.delete(timing)
    await db.commit()
    GOOD_TIMING_WRITES_TOTAL.labels(entity="good_timing", operation="delete").inc()
    logger.info("good_timing_deleted", good_timing_id=timing_id)
    return timing


async def add_time_slot(db: AsyncSession, timing_id: int, payload: TimeSlotCreate) -> TimeSlot:
    await _get_timing_or_404(db, timing_id)
    await _ensure_active_category(db, payload.category_id)

    slot = TimeSlot(
        parent_id=timing_id,
        start_time=payload.start_time,
        end_time=payload.end_time,
        category_id=payload.category_id,
        description=payload.description,
    )
    db.add(slot)
    await db.commit()
    GOOD_TIMING_WRITES_TOTAL.labels(entity="time_slot", operation="create").inc()
    logger.info("time_slot_created", good_timing_id=timing_id, time_slot_id=slot.id)
    return await _get_slot_or_404(db, timing_id, slot.id)


async def update_time_slot(db: AsyncSession, timing_id: int, slot_id: int, payload: TimeSlotUpdate) -> TimeSlot:
    slot = await _get_slot_or_404(db, timing_id, slot_id)
    if payload.category_id != slot.category_id:
        await _ensure_active_category(db, payload.category_id)

    slot.start_time = payload.start_time
    slot.end_time = payload.end_time
    slot.category_id = payload.category_id
    if "description" in payload.model_fields_set:
        slot.description = payload.description
    await db.commit()
    GOOD_TIMING_WRITES_TOTAL.labels(entity="time_slot", operation="update").inc()
    logger.info("time_slot_updated", good_timing_id=timing_id, time_slot_id=slot_id)
    return await _get_slot_or_404(db, timing_id, slot_id)


async def delete_time_slot(db: AsyncSession, timing_id: int, slot_id: int) -> TimeSlot:
    slot = await _get_slot_or_404(db, timing_id, slot_id)
    await db.delete(slot)
    await db.commit()
    GOOD_TIMING_WRITES_TOTAL.labels(entity="time_slot", operation="delete").inc()
    logger.info("time_slot_deleted", good_timing_id=timing_id, time_slot_id=slot_id)
    return slot
