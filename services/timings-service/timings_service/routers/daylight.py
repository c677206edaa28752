from datetime import date

from backend_common.database import Database
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import Settings
from ..dependencies import get_app_settings, get_current_user, get_database, get_db, require_admin
from ..models.users import User
from ..schemas.common import check_date_range, parse_path_date
from ..schemas.daylight import (
    DaylightBulkRequest,
    DaylightBulkResponse,
    DaylightDeleteAllResponse,
    DaylightDeleteResponse,
    DaylightEnvelope,
    DaylightListResponse,
    DaylightMutationResponse,
    DaylightResponse,
    DaylightUpsert,
)
from ..services import daylight_service

router = APIRouter(prefix="/daylight", tags=["daylight"])


def _listing(rows) -> DaylightListResponse:
    return DaylightListResponse(daylight=[DaylightResponse.model_validate(r) for r in rows])


@router.get("", response_model=DaylightListResponse)
async def list_daylight(
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> DaylightListResponse:
    check_date_range(start_date, end_date)
    if start_date is None and end_date is None:
        return _listing(await daylight_service.list_recent(db))
    return _listing(await daylight_service.list_range(db, start_date, end_date))


@router.get("/admin/all", response_model=DaylightListResponse)
async def list_all_daylight(
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
    _: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> DaylightListResponse:
    check_date_range(start_date, end_date)
    return _listing(await daylight_service.list_range(db, start_date, end_date))


@router.put("/bulk", response_model=DaylightBulkResponse)
async def bulk_upsert_daylight(
    payload: DaylightBulkRequest,
    actor: User = Depends(require_admin),
    database: Database = Depends(get_database),
    settings: Settings = Depends(get_app_settings),
) -> DaylightBulkResponse:
    rows = await database.transaction(
        lambda session: daylight_service.bulk_upsert(
            session,
            payload.daylight_data,
            default_timezone=settings.DISPLAY_TIMEZONE,
            retention=settings.DAYLIGHT_RETENTION_DAYS,
            updated_by=actor.id,
        )
    )
    return DaylightBulkResponse(
        message=f"Successfully processed {len(payload.daylight_data)} daylight records",
        daylight=[DaylightResponse.model_validate(r) for r in rows],
    )


@router.delete("/all", response_model=DaylightDeleteAllResponse)
async def delete_all_daylight(
    _: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> DaylightDeleteAllResponse:
    removed = await daylight_service.delete_all(db)
    return DaylightDeleteAllResponse(message="All daylight data deleted successfully", deleted_count=removed)


@router.get("/{day}", response_model=DaylightEnvelope)
async def get_daylight(
    day: str,
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> DaylightEnvelope:
    row = await daylight_service.get_daylight(db, parse_path_date(day))
    return DaylightEnvelope(daylight=DaylightResponse.model_validate(row))


@router.put("/{day}", response_model=DaylightMutationResponse)
async def upsert_daylight(
    day: str,
    payload: DaylightUpsert,
    actor: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> DaylightMutationResponse:
    row, created = await daylight_service.upsert_daylight(
        db,
        parse_path_date(day),
        payload,
        default_timezone=settings.DISPLAY_TIMEZONE,
        retention=settings.DAYLIGHT_RETENTION_DAYS,
        updated_by=actor.id,
    )
    verb = "created" if created else "updated"
    return DaylightMutationResponse(
        message=f"Daylight data {verb} successfully",
        daylight=DaylightResponse.model_validate(row),
    )


@router.delete("/{day}", response_model=DaylightDeleteResponse)
async def delete_daylight(
    day: str,
    _: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> DaylightDeleteResponse:
    row = await daylight_service.delete_daylight(db, parse_path_date(day))
    return DaylightDeleteResponse(
        message="Daylight data deleted successfully",
        deleted_daylight=DaylightResponse.model_validate(row),
    )
