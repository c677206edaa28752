from datetime import date

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..dependencies import get_current_user, get_db, require_admin
from ..models.users import User
from ..schemas.common import MessageResponse, check_date_range
from ..schemas.good_timings import (
    GoodTimingCreate,
    GoodTimingEnvelope,
    GoodTimingListResponse,
    GoodTimingMutationResponse,
    GoodTimingResponse,
    GoodTimingUpdate,
    TimeSlotCreate,
    TimeSlotMutationResponse,
    TimeSlotResponse,
    TimeSlotUpdate,
)
from ..services import good_timings_service

router = APIRouter(prefix="/good-timings", tags=["good-timings"])


@router.get("", response_model=GoodTimingListResponse)
async def list_good_timings(
    start_date: date | None = Query(None, description="Only timings starting on or after this date"),
    end_date: date | None = Query(None, description="Only timings ending on or before this date"),
    day: str | None = Query(None, max_length=20),
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> GoodTimingListResponse:
    check_date_range(start_date, end_date)
    rows = await good_timings_service.list_good_timings(db, start_date=start_date, end_date=end_date, day=day)
    return GoodTimingListResponse(good_timings=[GoodTimingResponse.model_validate(t) for t in rows])


@router.get("/{timing_id}", response_model=GoodTimingEnvelope)
async def get_good_timing(
    timing_id: int,
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> GoodTimingEnvelope:
    timing = await good_timings_service.get_good_timing(db, timing_id)
    return GoodTimingEnvelope(good_timing=GoodTimingResponse.model_validate(timing))


@router.post("", response_model=GoodTimingMutationResponse, status_code=status.HTTP_201_CREATED)
async def create_good_timing(
    payload: GoodTimingCreate,
    actor: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> GoodTimingMutationResponse:
    timing = await good_timings_service.create_good_timing(db, payload, actor)
    return GoodTimingMutationResponse(
        message="Good timing created successfully",
        good_timing=GoodTimingResponse.model_validate(timing),
    )


@router.put("/{timing_id}", response_model=GoodTimingMutationResponse)
async def update_good_timing(
    timing_id: int,
    payload: GoodTimingUpdate,
    _: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> GoodTimingMutationResponse:
    timing = await good_timings_service.update_good_timing(db, timing_id, payload)
    return GoodTimingMutationResponse(
        message="Good timing updated successfully",
        good_timing=GoodTimingResponse.model_validate(timing),
    )


@router.delete("/{timing_id}", response_model=MessageResponse)
async def delete_good_timing(
    timing_id: int,
    _: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    await good_timings_service.delete_good_timing(db, timing_id)
    return MessageResponse(message="Good timing deleted successfully")


@router.post(
    "/{timing_id}/time-slots",
    response_model=TimeSlotMutationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_time_slot(
    timing_id: int,
    payload: TimeSlotCreate,
    _: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> TimeSlotMutationResponse:
    slot = await good_timings_service.add_time_slot(db, timing_id, payload)
    return TimeSlotMutationResponse(
        message="Time slot added successfully",
        time_slot=TimeSlotResponse.model_validate(slot),
    )


@router.put("/{timing_id}/time-slots/{slot_id}", response_model=TimeSlotMutationResponse)
async def update_time_slot(
    timing_id: int,
    slot_id: int,
    payload: TimeSlotUpdate,
    _: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> TimeSlotMutationResponse:
    slot = await good_timings_service.update_time_slot(db, timing_id, slot_id, payload)
    return TimeSlotMutationResponse(
        message="Time slot updated successfully",
        time_slot=TimeSlotResponse.model_validate(slot),
    )


@router.delete("/{timing_id}/time-slots/{slot_id}", response_model=MessageResponse)
async def delete_time_slot(
    timing_id: int,
    slot_id: int,
    _: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    await good_timings_service.delete_time_slot(db, timing_id, slot_id)
    return MessageResponse(message="Time slot deleted successfully")
