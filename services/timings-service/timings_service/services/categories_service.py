import structlog
from sqlalchemy import exists, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..errors import ConflictError, NotFoundError
from ..metrics import CATEGORY_WRITES_TOTAL
from ..models.timings import Category, TimeSlot
from ..schemas.categories import CategoryCreate, CategoryUpdate

logger = structlog.get_logger(__name__)


async def _get_category_or_404(db: AsyncSession, category_id: int) -> Category:
    category = await db.get(Category, category_id)
    if category is None:
        raise NotFoundError("The requested category does not exist", error="Category not found")
    return category


async def _ensure_name_free(db: AsyncSession, name: str, exclude_id: int | None = None) -> None:
    stmt = select(Category.id).where(func.lower(Category.name) == name.lower())
    if exclude_id is not None:
        stmt = stmt.where(Category.id != exclude_id)
    if (await db.execute(stmt)).first() is not None:
        raise ConflictError(
            "A category with this name already exists",
            error="Category already exists",
            status_code=400,
        )


async def list_active_categories(db: AsyncSession) -> list[Category]:
    res = await db.execute(select(Category).where(Category.is_active.is_(True)).order_by(Category.name))
    return list(res.scalars().all())


async def list_all_categories(db: AsyncSession) -> list[Category]:
    res = await db.execute(select(Category).order_by(Category.is_active.desc(), Category.name))
    return list(res.scalars().all())


async def get_category(db: AsyncSession, category_id: int) -> Category:
    return await _get_category_or_404(db, category_id)


async def get_active_category(db: AsyncSession, category_id: int) -> Category | None:
    res = await db.execute(select(Category).where(Category.id == category_id, Category.is_active.is_(True)))
    return res.scalar_one_or_none()


async def create_category(db: AsyncSession, payload: CategoryCreate) -> Category:
    await _ensure_name_free(db, payload.name)
    category = Category(name=payload.name, color_token=payload.color_token.value, is_active=True)
    db.add(category)
    await db.commit()
    await db.refresh(category)
    CATEGORY_WRITES_TOTAL.labels(operation="create").inc()
    logger.info("category_created", category_id=category.id, name=category.name)
    return category


async def update_category(db: AsyncSession, category_id: int, payload: CategoryUpdate) -> Category:
    category = await _get_category_or_404(db, category_id)
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    if "name" in changes:
        await _ensure_name_free(db, changes["name"], exclude_id=category.id)
    if "color_token" in changes:
        changes["color_token"] = payload.color_token.value

    for field, value in changes.items():
        setattr(category, field, value)
    await db.commit()
    await db.refresh(category)
    CATEGORY_WRITES_TOTAL.labels(operation="update").inc()
    logger.info("category_updated", category_id=category.id, fields=sorted(changes))
    return category


async def delete_category(db: AsyncSession, category_id: int) -> Category:
    category = await _get_category_or_404(db, category_id)
    in_use = await db.scalar(select(exists().where(TimeSlot.category_id == category_id)))
    if in_use:
        raise ConflictError(
            "Cannot delete category that is being used in time slots",
            error="Category in use",
            status_code=400,
        )
    await db.delete(category)
    await db.commit()
    CATEGORY_WRITES_TOTAL.labels(operation="delete").inc()
    logger.info("category_deleted", category_id=category_id)
    return category
