from collections.abc import AsyncGenerator, Callable
from typing import Any

from fastapi import Request
from sentry_sdk import set_tag, set_user
from sqlalchemy.ext.asyncio import AsyncSession

from .database import Database


def make_get_database(state_attr: str = "database") -> Callable[[Request], Database]:
    def get_database(request: Request) -> Database:
        return getattr(request.app.state, state_attr)

    return get_database


def make_get_db_async(
    state_attr: str = "database",
) -> Callable[[Request], AsyncGenerator[AsyncSession, None]]:
    async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
        database: Database = getattr(request.app.state, state_attr)
        async with database.session() as session:
            yield session

    return get_db


def make_get_state(state_attr: str) -> Callable[[Request], Any]:
    """Dependency returning a collaborator that the lifespan stored on ``app.state``."""

    def get_state(request: Request) -> Any:
        return getattr(request.app.state, state_attr)

    return get_state


def bind_request_user(service_name: str, user_id: int | str, email: str | None = None) -> None:
    user: dict[str, str] = {"id": str(user_id)}
    if email:
        user["email"] = email
    set_user(user)
    set_tag("service", service_name)
