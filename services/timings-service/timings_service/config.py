import re
from datetime import date, datetime, timedelta
from functools import lru_cache
from zoneinfo import ZoneInfo

from backend_common.logging import is_dev_env
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_DURATION_RE = re.compile(r"^\s*(\d+)\s*([smhd]?)\s*$")
_DURATION_UNITS = {"": 1, "s": 1, "m": 60, "h": 3600, "d": 86400}


def parse_duration(value: str) -> timedelta:
    """Parse ``7d`` / ``12h`` / ``30m`` / ``45s`` / ``3600`` into a timedelta."""
    match = _DURATION_RE.match(value.lower())
    if not match:
        raise ValueError(f"Invalid duration: {value!r}")
    amount, unit = match.groups()
    return timedelta(seconds=int(amount) * _DURATION_UNITS[unit])


class Settings(BaseSettings):
    SERVICE_NAME: str = "timings-service"
    APP_ENV: str = "local"
    API_PREFIX: str = "/api"

    DATABASE_URL: str = "sqlite+aiosqlite:///./dvs.db"
    DB_POOL_MIN: int = 2
    DB_POOL_MAX: int = 10
    DB_CONNECT_RETRIES: int = 2
    DB_RETRY_DELAY_SECONDS: float = 1.0
    DB_AUTO_CREATE: bool = True
    DB_ECHO: bool = False

    JWT_SECRET: str = "dvs-dev-secret-change-me"
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRES_IN: str = "7d"
    BCRYPT_ROUNDS: int = 12

    BOOTSTRAP_ADMIN_EMAIL: str | None = None
    BOOTSTRAP_ADMIN_PASSWORD: str | None = None
    BOOTSTRAP_ADMIN_NAME: str = "Administrator"

    CORS_ORIGINS: str = "http://localhost:3000,http://127.0.0.1:3000"
    FRONTEND_URL: str = "http://localhost:3000"

    RATE_LIMIT_MAX_REQUESTS: int = 100
    RATE_LIMIT_WINDOW_SECONDS: int = 15 * 60

    SMTP_HOST: str = "smtp.gmail.com"
    SMTP_PORT: int = 587
    SMTP_USER: str | None = None
    SMTP_PASS: str | None = None
    SMTP_USE_TLS: bool = True
    SMTP_TIMEOUT_SECONDS: float = 30.0
    MAIL_FROM_NAME: str = "DVS Daily Newsletter"
    MAIL_SEND_INTERVAL_SECONDS: float = 0.1

    DISPLAY_TIMEZONE: str = "Asia/Kolkata"
    DAYLIGHT_RETENTION_DAYS: int = 7

    WEATHER_API_URL: str = "https://api.sunrise-sunset.org/json"
    WEATHER_DEFAULT_LAT: float = 28.6139
    WEATHER_DEFAULT_LNG: float = 77.2090
    WEATHER_CACHE_HOURS: float = 6.0
    WEATHER_FETCH_INTERVAL_SECONDS: float = 0.1
    WEATHER_MAX_RANGE_DAYS: int = 31
    WEATHER_TIMEOUT_SECONDS: float = 10.0

    ENABLE_METRICS: bool = True
    LOG_LEVEL: str = "INFO"
    SENTRY_DSN: str | None = None
    SENTRY_TRACES_SAMPLE_RATE: float = 0.0

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @field_validator("JWT_EXPIRES_IN")
    @classmethod
    def _check_expiry(cls, value: str) -> str:
        parse_duration(value)
        return value

    @property
    def jwt_expires_delta(self) -> timedelta:
        return parse_duration(self.JWT_EXPIRES_IN)

    @property
    def is_development(self) -> bool:
        return is_dev_env(self.APP_ENV)

    def local_today(self) -> date:
        return datetime.now(ZoneInfo(self.DISPLAY_TIMEZONE)).date()


@lru_cache()
def get_settings() -> Settings:
    return Settings()
