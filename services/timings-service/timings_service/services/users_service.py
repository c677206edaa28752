import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import Settings
from ..errors import AuthorizationError, NotFoundError, ValidationError
from ..models.users import User, UserRole
from ..schemas.users import UserUpdate
from ..security import hash_password

logger = structlog.get_logger(__name__)


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    res = await db.execute(select(User).where(User.email == email.lower()))
    return res.scalar_one_or_none()


async def _get_user_or_404(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError("The requested user does not exist", error="User not found")
    return user


async def get_user(db: AsyncSession, user_id: int) -> User:
    return await _get_user_or_404(db, user_id)


async def list_users(db: AsyncSession) -> list[User]:
    res = await db.execute(select(User).order_by(User.created_at.desc(), User.id.desc()))
    return list(res.scalars().all())


async def create_user(
    db: AsyncSession,
    *,
    email: str,
    password: str,
    name: str,
    settings: Settings,
    phone_number: str | None = None,
    role: UserRole = UserRole.USER,
) -> User:
    user = User(
        email=email.lower(),
        password_hash=await hash_password(password, settings),
        name=name,
        phone_number=phone_number,
        role=role,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


async def update_user(db: AsyncSession, user_id: int, payload: UserUpdate, actor: User) -> User:
    user = await _get_user_or_404(db, user_id)
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    if not changes:
        raise ValidationError("At least one field must be provided for update", error="No updates provided")
    if "role" in changes and not actor.is_admin:
        raise AuthorizationError("Only admins can change user roles")

    for field, value in changes.items():
        setattr(user, field, value)
    await db.commit()
    await db.refresh(user)
    logger.info("user_updated", user_id=user.id, actor_id=actor.id, fields=sorted(changes))
    return user


async def delete_user(db: AsyncSession, user_id: int, actor: User) -> User:
    if user_id == actor.id:
        raise ValidationError("You cannot delete your own account", error="Cannot delete self")
    user = await _get_user_or_404(db, user_id)
    await db.delete(user)
    await db.commit()
    logger.info("user_deleted", user_id=user_id, actor_id=actor.id)
    return user


async def ensure_bootstrap_admin(db: AsyncSession, settings: Settings) -> User | None:
    if not settings.BOOTSTRAP_ADMIN_EMAIL or not settings.BOOTSTRAP_ADMIN_PASSWORD:
        return None
    existing = await get_user_by_email(db, settings.BOOTSTRAP_ADMIN_EMAIL)
    if existing is not None:
        if not existing.is_admin:
            existing.role = UserRole.ADMIN
            await db.commit()
        return existing
    admin = await create_user(
        db,
        email=settings.BOOTSTRAP_ADMIN_EMAIL,
        password=settings.BOOTSTRAP_ADMIN_PASSWORD,
        name=settings.BOOTSTRAP_ADMIN_NAME,
        role=UserRole.ADMIN,
        settings=settings,
    )
    logger.info("bootstrap_admin_created", user_id=admin.id)
    return admin
