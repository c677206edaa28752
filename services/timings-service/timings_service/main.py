import time
from contextlib import AsyncExitStack, asynccontextmanager
from datetime import UTC, datetime

import httpx
import structlog
from backend_common.fastapi_app import create_service_app, parse_origins
from backend_common.http_client import ServiceClient
from backend_common.logging import install_loop_exception_logging
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from . import models  # noqa: F401
from .config import Settings, get_settings
from .database import Base, build_database
from .errors import register_exception_handlers
from .logging_config import configure_logging
from .rate_limit import RateLimitMiddleware
from .routers.auth import router as auth_router
from .routers.calendar import router as calendar_router
from .routers.categories import router as categories_router
from .routers.daylight import router as daylight_router
from .routers.good_timings import router as good_timings_router
from .routers.newsletter import router as newsletter_router
from .routers.users import router as users_router
from .routers.weather import router as weather_router
from .services import users_service
from .services.mail_service import Mailer, SmtpMailer
from .services.weather_service import SunriseSunsetClient

logger = structlog.get_logger(__name__)


def create_app(
    settings: Settings | None = None,
    *,
    mailer: Mailer | None = None,
    http_transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Build the service; ``mailer`` and ``http_transport`` replace the real SMTP relay and network."""
    settings = settings or get_settings()
    configure_logging(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        install_loop_exception_logging()
        database = build_database(settings)
        async with AsyncExitStack() as stack:
            stack.push_async_callback(database.dispose)
            if settings.DB_AUTO_CREATE:
                await database.create_all(Base.metadata)
            async with database.session() as db:
                await users_service.ensure_bootstrap_admin(db, settings)

            http = await stack.enter_async_context(
                ServiceClient(timeout=settings.WEATHER_TIMEOUT_SECONDS, transport=http_transport)
            )
            app.state.settings = settings
            app.state.database = database
            app.state.mailer = mailer or SmtpMailer.from_settings(settings)
            app.state.sun_client = SunriseSunsetClient(http, settings.WEATHER_API_URL)
            app.state.started_at = time.monotonic()
            logger.info("service_started", service=settings.SERVICE_NAME, env=settings.APP_ENV)
            yield
            logger.info("service_stopping", service=settings.SERVICE_NAME)

    app = create_service_app(
        title=settings.SERVICE_NAME,
        version="1.0.0",
        description="Daily good timings, calendar events, daylight data and the daily newsletter",
        enable_metrics=settings.ENABLE_METRICS,
        cors_allow_origins=parse_origins(settings.CORS_ORIGINS, settings.FRONTEND_URL),
        cors_allow_credentials=True,
        cors_allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        cors_allow_headers=["*"],
        extra_middleware=[
            (
                RateLimitMiddleware,
                {
                    "max_requests": settings.RATE_LIMIT_MAX_REQUESTS,
                    "window_seconds": settings.RATE_LIMIT_WINDOW_SECONDS,
                },
            ),
        ],
        lifespan=lifespan,
    )
    register_exception_handlers(app, show_details=settings.is_development)

    @app.get("/health")
    async def health(request: Request) -> JSONResponse:
        body = {
            "timestamp": datetime.now(UTC).isoformat(),
            "uptime": round(time.monotonic() - request.app.state.started_at, 3),
        }
        try:
            await request.app.state.database.ping()
        except (SQLAlchemyError, OSError) as exc:
            logger.error("health_check_failed", error=str(exc))
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content={"status": "ERROR", "database": "Disconnected", "error": str(exc), **body},
            )
        return JSONResponse(content={"status": "OK", "database": "Connected", **body})

    for router in (
        auth_router,
        users_router,
        categories_router,
        good_timings_router,
        daylight_router,
        calendar_router,
        newsletter_router,
        weather_router,
    ):
        app.include_router(router, prefix=settings.API_PREFIX)

    return app


app = create_app()
