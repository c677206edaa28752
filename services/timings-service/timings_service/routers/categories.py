from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..dependencies import get_current_user, get_db, require_admin
from ..models.users import User
from ..schemas.categories import (
    CategoryCreate,
    CategoryDeleteResponse,
    CategoryEnvelope,
    CategoryListResponse,
    CategoryMutationResponse,
    CategoryResponse,
    CategoryUpdate,
)
from ..services import categories_service

router = APIRouter(prefix="/categories", tags=["categories"])


@router.get("", response_model=CategoryListResponse)
async def list_categories(
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> CategoryListResponse:
    rows = await categories_service.list_active_categories(db)
    return CategoryListResponse(categories=[CategoryResponse.model_validate(c) for c in rows])


@router.get("/all", response_model=CategoryListResponse)
async def list_all_categories(
    _: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> CategoryListResponse:
    rows = await categories_service.list_all_categories(db)
    return CategoryListResponse(categories=[CategoryResponse.model_validate(c) for c in rows])


@router.get("/{category_id}", response_model=CategoryEnvelope)
async def get_category(
    category_id: int,
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> CategoryEnvelope:
    category = await categories_service.get_category(db, category_id)
    return CategoryEnvelope(category=CategoryResponse.model_validate(category))


@router.post("", response_model=CategoryMutationResponse, status_code=status.HTTP_201_CREATED)
async def create_category(
    payload: CategoryCreate,
    _: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> CategoryMutationResponse:
    category = await categories_service.create_category(db, payload)
    return CategoryMutationResponse(
        message="Category created successfully",
        category=CategoryResponse.model_validate(category),
    )


@router.put("/{category_id}", response_model=CategoryMutationResponse)
async def update_category(
    category_id: int,
    payload: CategoryUpdate,
    _: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> CategoryMutationResponse:
    category = await categories_service.update_category(db, category_id, payload)
    return CategoryMutationResponse(
        message="Category updated successfully",
        category=CategoryResponse.model_validate(category),
    )


@router.delete("/{category_id}", response_model=CategoryDeleteResponse)
async def delete_category(
    category_id: int,
    _: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> CategoryDeleteResponse:
    category = await categories_service.delete_category(db, category_id)
    return CategoryDeleteResponse(
        message="Category deleted successfully",
        deleted_category=CategoryResponse.model_validate(category),
    )
