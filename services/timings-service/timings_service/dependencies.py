from backend_common.dependencies import bind_request_user, make_get_database, make_get_db_async, make_get_state
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from .config import Settings
from .errors import AuthorizationError
from .models.users import User
from .services import auth_service

get_db = make_get_db_async("database")
get_database = make_get_database("database")
get_mailer = make_get_state("mailer")
get_sun_client = make_get_state("sun_client")

_bearer = HTTPBearer(auto_error=False)


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> User:
    token = credentials.credentials if credentials else None
    user = await auth_service.authenticate(db, token, settings)
    bind_request_user(settings.SERVICE_NAME, user.id, user.email)
    return user


async def require_admin(user: User = Depends(get_current_user)) -> User:
    if not user.is_admin:
        raise AuthorizationError("Admin privileges required")
    return user


def ensure_admin_or_owner(
    user: User,
    owner_id: int | None,
    message: str = "You can only access your own resources",
) -> None:
    if user.is_admin or (owner_id is not None and owner_id == user.id):
        return
    raise AuthorizationError(message)


async def require_admin_or_self(user_id: int, user: User = Depends(get_current_user)) -> User:
    ensure_admin_or_owner(user, user_id)
    return user

