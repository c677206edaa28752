from backend_common.logging import configure_logging as _configure_logging
from sentry_sdk.integrations.httpx import HttpxIntegration

from .config import Settings


def configure_logging(settings: Settings) -> None:
    _configure_logging(
        settings.SERVICE_NAME,
        extra_sentry_integrations=[HttpxIntegration()],
        app_env=settings.APP_ENV,
        log_level=settings.LOG_LEVEL,
        sentry_dsn=settings.SENTRY_DSN,
        sentry_traces_sample_rate=settings.SENTRY_TRACES_SAMPLE_RATE,
    )
