import asyncio
from collections.abc import Awaitable, Callable, Mapping, Sequence
from typing import Any, TypeVar

import structlog
from sqlalchemy import MetaData, text
from sqlalchemy.engine import Row
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

logger = structlog.get_logger(__name__)

T = TypeVar("T")

_CONNECTION_RESET_MARKERS = (
    "connection reset",
    "connection refused",
    "connection was closed",
    "connection is closed",
    "name or service not known",
    "could not translate host name",
)


def ensure_asyncpg_url(url: str) -> str:
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+asyncpg://", 1)
    return url


def create_async_engine_and_session(
    database_url: str,
    *,
    echo: bool = False,
    expire_on_commit: bool = False,
    autoflush: bool = True,
    **engine_kwargs: Any,
) -> tuple[AsyncEngine, async_sessionmaker[AsyncSession]]:
    engine = create_async_engine(database_url, echo=echo, **engine_kwargs)
    session_factory = async_sessionmaker(
        bind=engine,
        expire_on_commit=expire_on_commit,
        autoflush=autoflush,
        class_=AsyncSession,
    )
    return engine, session_factory


def is_connection_reset(exc: BaseException) -> bool:
    """True for errors that mean the connection went away rather than a bad statement."""
    if isinstance(exc, OSError):
        return True
    if isinstance(exc, DBAPIError):
        if exc.connection_invalidated:
            return True
        message = str(exc.orig or exc).lower()
        return any(marker in message for marker in _CONNECTION_RESET_MARKERS)
    return False


class Database:
    """
    Process-wide database accessor.

    Built once at start-up and handed to request handlers through ``app.state``:
    - ``execute`` runs a single parameterized statement, retrying on connection resets
    - ``transaction`` runs a callable inside BEGIN / COMMIT, rolling back if it raises
    """

    def __init__(
        self,
        database_url: str,
        *,
        pool_min: int = 2,
        pool_max: int = 10,
        retries: int = 2,
        retry_delay: float = 1.0,
        echo: bool = False,
    ) -> None:
        self.url = ensure_asyncpg_url(database_url)
        engine_kwargs: dict[str, Any] = {"pool_pre_ping": True}
        if not self.url.startswith("sqlite"):
            engine_kwargs["pool_size"] = pool_min
            engine_kwargs["max_overflow"] = max(pool_max - pool_min, 0)
        self.engine, self.session_factory = create_async_engine_and_session(
            self.url,
            echo=echo,
            **engine_kwargs,
        )
        self.retries = retries
        self.retry_delay = retry_delay

    def session(self) -> AsyncSession:
        return self.session_factory()

    async def execute(self, statement: str, parameters: Mapping[str, Any] | None = None) -> Sequence[Row]:
        attempt = 0
        while True:
            try:
                async with self.engine.begin() as conn:
                    result = await conn.execute(text(statement), dict(parameters or {}))
                    return result.fetchall() if result.returns_rows else []
            except Exception as exc:
                if attempt >= self.retries or not is_connection_reset(exc):
                    raise
                attempt += 1
                logger.warning(
                    "db_connection_retry",
                    attempt=attempt,
                    max_retries=self.retries,
                    error=str(exc),
                )
                await asyncio.sleep(self.retry_delay)

    async def transaction(self, fn: Callable[[AsyncSession], Awaitable[T]]) -> T:
        async with self.session_factory() as session:
            try:
                result = await fn(session)
                await session.commit()
                return result
            except Exception:
                await session.rollback()
                logger.warning("db_transaction_rolled_back")
                raise

    async def ping(self) -> bool:
        rows = await self.execute("SELECT 1")
        return bool(rows)

    async def create_all(self, metadata: MetaData) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(metadata.create_all)

    async def dispose(self) -> None:
        await self.engine.dispose()
