from datetime import date

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import Settings
from ..dependencies import get_app_settings, get_current_user, get_db
from ..errors import ValidationError
from ..models.users import User
from ..schemas.calendar import (
    CalendarCategoriesResponse,
    CalendarEventCreate,
    CalendarEventEnvelope,
    CalendarEventListResponse,
    CalendarEventMutationResponse,
    CalendarEventResponse,
    CalendarEventUpdate,
    CalendarGridResponse,
    DayResolutionResponse,
    GridCellResponse,
    ResolvedSlotResponse,
    ResolvedWindowResponse,
)
from ..schemas.categories import CategoryResponse
from ..schemas.common import MessageResponse, check_date_range, parse_path_date
from ..services import calendar_service, categories_service
from ..services.calendar_resolver import sorted_slots

router = APIRouter(prefix="/calendar", tags=["calendar"])

MAX_GRID_DAYS = 62


@router.get("", response_model=CalendarEventListResponse)
async def list_events(
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
    category_id: int | None = Query(None, ge=1),
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> CalendarEventListResponse:
    check_date_range(start_date, end_date)
    rows = await calendar_service.list_events(db, start_date=start_date, end_date=end_date, category_id=category_id)
    return CalendarEventListResponse(events=[CalendarEventResponse.model_validate(e) for e in rows])


@router.get("/categories/list", response_model=CalendarCategoriesResponse)
async def list_event_categories(
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> CalendarCategoriesResponse:
    rows = await categories_service.list_active_categories(db)
    return CalendarCategoriesResponse(categories=[CategoryResponse.model_validate(c) for c in rows])


@router.get("/day/{day}", response_model=DayResolutionResponse)
async def resolve_day(
    day: str,
    include_demo: bool = Query(True, description="Include the static auspicious timings"),
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> DayResolutionResponse:
    target = parse_path_date(day)
    windows = await calendar_service.resolve_single_day(
        db, target, today=settings.local_today(), include_auspicious=include_demo
    )
    return DayResolutionResponse(
        date=target,
        windows=[ResolvedWindowResponse.model_validate(w) for w in windows],
        slots=[ResolvedSlotResponse.model_validate(s) for s in sorted_slots(windows)],
    )


@router.get("/grid", response_model=CalendarGridResponse)
async def calendar_grid(
    start_date: date = Query(...),
    end_date: date = Query(...),
    limit: int = Query(3, ge=0, le=50, description="Slots shown per cell before collapsing"),
    include_demo: bool = Query(True),
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> CalendarGridResponse:
    check_date_range(start_date, end_date)
    if (end_date - start_date).days + 1 > MAX_GRID_DAYS:
        raise ValidationError.for_field("end_date", f"Date range cannot exceed {MAX_GRID_DAYS} days")

    cells = await calendar_service.build_grid(
        db,
        start_date,
        end_date,
        limit=limit,
        today=settings.local_today(),
        include_auspicious=include_demo,
    )
    return CalendarGridResponse(
        start_date=start_date,
        end_date=end_date,
        limit=limit,
        cells=[GridCellResponse.model_validate(c) for c in cells],
    )


@router.get("/{event_id}", response_model=CalendarEventEnvelope)
async def get_event(
    event_id: int,
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> CalendarEventEnvelope:
    event = await calendar_service.get_event(db, event_id)
    return CalendarEventEnvelope(event=CalendarEventResponse.model_validate(event))


@router.post("", response_model=CalendarEventMutationResponse, status_code=status.HTTP_201_CREATED)
async def create_event(
    payload: CalendarEventCreate,
    actor: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> CalendarEventMutationResponse:
    event = await calendar_service.create_event(db, payload, actor)
    return CalendarEventMutationResponse(
        message="Event created successfully",
        event=CalendarEventResponse.model_validate(event),
    )


@router.put("/{event_id}", response_model=CalendarEventMutationResponse)
async def update_event(
    event_id: int,
    payload: CalendarEventUpdate,
    actor: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> CalendarEventMutationResponse:
    event = await calendar_service.update_event(db, event_id, payload, actor)
    return CalendarEventMutationResponse(
        message="Event updated successfully",
        event=CalendarEventResponse.model_validate(event),
    )


@router.delete("/{event_id}", response_model=MessageResponse)
async def delete_event(
    event_id: int,
    actor: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    await calendar_service.delete_event(db, event_id, actor)
    return MessageResponse(message="Event deleted successfully")
