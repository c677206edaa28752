import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import Settings
from ..errors import AuthenticationError, ConflictError
from ..metrics import LOGINS_TOTAL, USERS_REGISTERED_TOTAL
from ..models.users import User, UserRole
from ..schemas.users import LoginRequest, RegisterRequest
from ..security import create_access_token, decode_access_token, verify_password
from . import users_service

logger = structlog.get_logger(__name__)


async def register(db: AsyncSession, payload: RegisterRequest, settings: Settings) -> tuple[User, str]:
    if await users_service.get_user_by_email(db, payload.email) is not None:
        raise ConflictError(
            "A user with this email already exists",
            error="User already exists",
            status_code=400,
        )

    # self-registration never grants admin
    user = await users_service.create_user(
        db,
        email=payload.email,
        password=payload.password,
        name=payload.name,
        phone_number=payload.phone_number,
        role=UserRole.USER,
        settings=settings,
    )
    USERS_REGISTERED_TOTAL.inc()
    logger.info("user_registered", user_id=user.id)
    return user, create_access_token(user, settings)


async def login(db: AsyncSession, payload: LoginRequest, settings: Settings) -> tuple[User, str]:
    user = await users_service.get_user_by_email(db, payload.email)
    if user is None or not await verify_password(payload.password, user.password_hash, settings):
        LOGINS_TOTAL.labels(outcome="rejected").inc()
        logger.info("login_rejected", email_domain=payload.email.rsplit("@", 1)[-1])
        raise AuthenticationError("Email or password is incorrect", error="Invalid credentials")

    LOGINS_TOTAL.labels(outcome="success").inc()
    logger.info("login_succeeded", user_id=user.id)
    return user, create_access_token(user, settings)


async def authenticate(db: AsyncSession, token: str | None, settings: Settings) -> User:
    """Resolve a bearer token to the current user row."""
    if not token:
        raise AuthenticationError("No token provided")
    user_id = decode_access_token(token, settings)
    user = await db.get(User, user_id)
    if user is None:
        raise AuthenticationError("User not found")
    return user
