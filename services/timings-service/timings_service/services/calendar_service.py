from datetime import date, timedelta

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..errors import AuthorizationError, NotFoundError, ValidationError
from ..metrics import CALENDAR_EVENT_WRITES_TOTAL
from ..models.calendar import CalendarEvent
from ..models.users import User
from ..schemas.calendar import CalendarEventCreate, CalendarEventUpdate
from . import categories_service, good_timings_service
from .auspicious_timings import load_auspicious_entries
from .calendar_resolver import GridCell, ResolvedWindow, build_grid_cell, resolve_day

logger = structlog.get_logger(__name__)


async def _get_event_or_404(db: AsyncSession, event_id: int) -> CalendarEvent:
    res = await db.execute(
        select(CalendarEvent).where(CalendarEvent.id == event_id).execution_options(populate_existing=True)
    )
    event = res.scalar_one_or_none()
    if event is None:
        raise NotFoundError("The requested calendar event does not exist", error="Event not found")
    return event


def _ensure_can_modify(event: CalendarEvent, actor: User) -> None:
    if not actor.is_admin and event.created_by != actor.id:
        raise AuthorizationError("You can only modify your own events", error="Permission denied")


async def _ensure_category_exists(db: AsyncSession, category_id: int | None) -> None:
    if category_id is not None and await categories_service.get_active_category(db, category_id) is None:
        raise ValidationError.for_field("category_id", "Category not found or inactive")


async def list_events(
    db: AsyncSession,
    *,
    start_date: date | None = None,
    end_date: date | None = None,
    category_id: int | None = None,
) -> list[CalendarEvent]:
    stmt = select(CalendarEvent)
    if start_date is not None:
        stmt = stmt.where(CalendarEvent.start_date >= start_date)
    if end_date is not None:
        stmt = stmt.where(CalendarEvent.end_date <= end_date)
    if category_id is not None:
        stmt = stmt.where(CalendarEvent.category_id == category_id)
    res = await db.execute(stmt.order_by(CalendarEvent.start_date, CalendarEvent.start_time, CalendarEvent.id))
    return list(res.scalars().all())


async def list_events_overlapping(db: AsyncSession, first_day: date, last_day: date) -> list[CalendarEvent]:
    res = await db.execute(
        select(CalendarEvent)
        .where(CalendarEvent.start_date <= last_day, CalendarEvent.end_date >= first_day)
        .order_by(CalendarEvent.start_date, CalendarEvent.start_time, CalendarEvent.id)
    )
    return list(res.scalars().all())


async def get_event(db: AsyncSession, event_id: int) -> CalendarEvent:
    return await _get_event_or_404(db, event_id)


async def create_event(db: AsyncSession, payload: CalendarEventCreate, actor: User) -> CalendarEvent:
    await _ensure_category_exists(db, payload.category_id)
    event = CalendarEvent(
        title=payload.title,
        description=payload.description,
        start_date=payload.start_date,
        end_date=payload.end_date,
        start_time=payload.start_time,
        end_time=payload.end_time,
        category_id=payload.category_id,
        is_all_day=payload.is_all_day,
        color=payload.color.value,
        created_by=actor.id,
    )
    db.add(event)
    await db.commit()
    CALENDAR_EVENT_WRITES_TOTAL.labels(operation="create").inc()
    logger.info("calendar_event_created", event_id=event.id, actor_id=actor.id)
    return await _get_event_or_404(db, event.id)


async def update_event(db: AsyncSession, event_id: int, payload: CalendarEventUpdate, actor: User) -> CalendarEvent:
    event = await _get_event_or_404(db, event_id)
    _ensure_can_modify(event, actor)

    # absent or null fields keep their stored value
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    if "category_id" in changes and changes["category_id"] != event.category_id:
        await _ensure_category_exists(db, changes["category_id"])
    if "color" in changes:
        changes["color"] = payload.color.value

    for field, value in changes.items():
        setattr(event, field, value)
    await db.commit()
    CALENDAR_EVENT_WRITES_TOTAL.labels(operation="update").inc()
    logger.info("calendar_event_updated", event_id=event_id, actor_id=actor.id, fields=sorted(changes))
    return await _get_event_or_404(db, event_id)


async def delete_event(db: AsyncSession, event_id: int, actor: User) -> CalendarEvent:
    event = await _get_event_or_404(db, event_id)
    _ensure_can_modify(event, actor)
    await db.delete(event)
    await db.commit()
    CALENDAR_EVENT_WRITES_TOTAL.labels(operation="delete").inc()
    logger.info("calendar_event_deleted", event_id=event_id, actor_id=actor.id)
    return event


async def resolve_dates(
    db: AsyncSession,
    first_day: date,
    last_day: date,
    *,
    today: date,
    include_auspicious: bool = True,
) -> dict[date, list[ResolvedWindow]]:
    """Resolve every date in [first_day, last_day] against one fetch of each source."""
    timings = await good_timings_service.list_timings_covering(db, first_day, last_day)
    events = await list_events_overlapping(db, first_day, last_day)
    auspicious = load_auspicious_entries(today) if include_auspicious else []

    resolved: dict[date, list[ResolvedWindow]] = {}
    day = first_day
    while day <= last_day:
        resolved[day] = resolve_day(day, timings, events, auspicious)
        day += timedelta(days=1)
    return resolved


async def resolve_single_day(
    db: AsyncSession, target: date, *, today: date, include_auspicious: bool = True
) -> list[ResolvedWindow]:
    resolved = await resolve_dates(db, target, target, today=today, include_auspicious=include_auspicious)
    return resolved[target]


async def build_grid(
    db: AsyncSession,
    first_day: date,
    last_day: date,
    *,
    limit: int,
    today: date,
    include_auspicious: bool = True,
) -> list[GridCell]:
    resolved = await resolve_dates(db, first_day, last_day, today=today, include_auspicious=include_auspicious)
    return [build_grid_cell(day, windows, limit) for day, windows in resolved.items()]
