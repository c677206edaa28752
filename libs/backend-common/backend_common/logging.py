import asyncio
import logging
import os
import sys
from collections.abc import Iterable
from typing import Any

import sentry_sdk
import structlog
from asgi_correlation_id.context import correlation_id
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.logging import LoggingIntegration
from structlog.contextvars import merge_contextvars

DEV_ENVIRONMENTS = frozenset({"local", "dev", "development"})


def is_dev_env(app_env: str | None = None) -> bool:
    return (app_env or os.getenv("APP_ENV", "local")).lower() in DEV_ENVIRONMENTS


def _add_service_and_env(service_name: str, app_env: str):
    def processor(logger, method_name, event_dict):
        event_dict["service"] = service_name
        event_dict["env"] = app_env
        return event_dict

    return processor


def _add_correlation_id(logger, method_name, event_dict):
    cid = correlation_id.get(None)
    if cid is not None:
        event_dict["correlation_id"] = cid
    return event_dict


def _bind_correlation_id_to_sentry(logger, method_name, event_dict):
    cid = event_dict.get("correlation_id")
    if cid is not None:
        sentry_sdk.set_tag("correlation_id", cid)
    return event_dict


def configure_logging(
    default_service_name: str,
    extra_sentry_integrations: Iterable[object] | None = None,
    *,
    app_env: str | None = None,
    log_level: str | None = None,
    sentry_dsn: str | None = None,
    sentry_traces_sample_rate: float = 0.0,
) -> None:
    service_name = os.getenv("SERVICE_NAME", default_service_name)
    app_env = app_env or os.getenv("APP_ENV", "local")
    sentry_dsn = sentry_dsn or os.getenv("SENTRY_DSN")

    level_name = (log_level or os.getenv("LOG_LEVEL", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    if sentry_dsn:
        integrations: list[Any] = [FastApiIntegration()]
        if extra_sentry_integrations is not None:
            integrations.extend(list(extra_sentry_integrations))
        integrations.append(LoggingIntegration(level=logging.INFO, event_level=logging.ERROR))

        sentry_sdk.init(
            dsn=sentry_dsn,
            environment=app_env,
            integrations=integrations,
            traces_sample_rate=sentry_traces_sample_rate,
            send_default_pii=False,
        )
        sentry_sdk.set_tag("service", service_name)

    shared_processors = [
        merge_contextvars,
        _add_service_and_env(service_name, app_env),
        _add_correlation_id,
        _bind_correlation_id_to_sentry,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]

    renderer = structlog.dev.ConsoleRenderer() if is_dev_env(app_env) else structlog.processors.JSONRenderer()

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=level,
        force=True,
    )

    structlog.configure(
        processors=shared_processors + [renderer],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def install_loop_exception_logging(loop: asyncio.AbstractEventLoop | None = None) -> None:
    """Log exceptions escaping background tasks instead of letting them go unnoticed."""
    loop = loop or asyncio.get_running_loop()
    log = structlog.get_logger("asyncio")

    def handler(loop: asyncio.AbstractEventLoop, context: dict[str, Any]) -> None:
        exc = context.get("exception")
        log.error(
            "unhandled_async_exception",
            message=context.get("message"),
            error=str(exc) if exc else None,
            exc_info=exc,
        )

    loop.set_exception_handler(handler)
