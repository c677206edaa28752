from datetime import UTC, datetime
from functools import lru_cache
from typing import Any

import jwt
from fastapi.concurrency import run_in_threadpool
from passlib.context import CryptContext

from .config import Settings
from .errors import AuthenticationError
from .models.users import User, UserRole


@lru_cache()
def get_password_context(rounds: int) -> CryptContext:
    return CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)


async def hash_password(password: str, settings: Settings) -> str:
    ctx = get_password_context(settings.BCRYPT_ROUNDS)
    return await run_in_threadpool(ctx.hash, password)


async def verify_password(password: str, password_hash: str, settings: Settings) -> bool:
    ctx = get_password_context(settings.BCRYPT_ROUNDS)
    return await run_in_threadpool(ctx.verify, password, password_hash)


def create_access_token(user: User, settings: Settings, now: datetime | None = None) -> str:
    now = now or datetime.now(UTC)
    role = user.role.value if isinstance(user.role, UserRole) else str(user.role)
    payload: dict[str, Any] = {
        "sub": str(user.id),
        "userId": user.id,
        "email": user.email,
        "role": role,
        "iat": now,
        "exp": now + settings.jwt_expires_delta,
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str, settings: Settings) -> int:
    """Return the user id carried by a bearer token."""
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Token expired")
    except jwt.PyJWTError:
        raise AuthenticationError("Invalid token")

    subject = payload.get("userId", payload.get("sub"))
    try:
        return int(subject)
    except (TypeError, ValueError):
        raise AuthenticationError("Invalid token")
