from datetime import UTC, datetime

from backend_common.database import Database
from sqlalchemy.orm import declarative_base

from .config import Settings

Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns
    return value.replace(tzinfo=UTC) if value.tzinfo is None else value.astimezone(UTC)


def build_database(settings: Settings) -> Database:
    return Database(
        settings.DATABASE_URL,
        pool_min=settings.DB_POOL_MIN,
        pool_max=settings.DB_POOL_MAX,
        retries=settings.DB_CONNECT_RETRIES,
        retry_delay=settings.DB_RETRY_DELAY_SECONDS,
        echo=settings.DB_ECHO,
    )
