import time
import uuid
from collections.abc import Sequence
from typing import Any

from asgi_correlation_id import CorrelationIdMiddleware
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Referrer-Policy": "no-referrer",
}


def instrument_with_metrics(
    app: FastAPI,
    *,
    endpoint: str = "/metrics",
    include_in_schema: bool = False,
) -> None:
    Instrumentator().instrument(app).expose(
        app,
        endpoint=endpoint,
        include_in_schema=include_in_schema,
    )


def add_correlation_id_middleware(
    app: FastAPI,
    *,
    header_name: str = "X-Request-ID",
) -> None:
    app.add_middleware(
        CorrelationIdMiddleware,
        header_name=header_name,
        generator=lambda: str(uuid.uuid4()),
        update_request_header=True,
    )


def add_response_headers_middleware(app: FastAPI) -> None:
    @app.middleware("http")
    async def add_process_time_and_security_headers(request: Request, call_next):
        start_time = time.time()
        response = await call_next(request)
        response.headers["X-Process-Time"] = str(time.time() - start_time)
        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        return response


def parse_origins(raw: str | None, *extra: str | None) -> list[str]:
    if not raw or raw.strip() == "*":
        origins = ["*"]
    else:
        origins = [o.strip() for o in raw.split(",") if o.strip()]
    if origins != ["*"]:
        for origin in extra:
            if origin and origin not in origins:
                origins.append(origin)
    return origins


def create_service_app(
    *,
    title: str,
    version: str = "0.1.0",
    description: str | None = None,
    enable_metrics: bool = True,
    metrics_endpoint: str = "/metrics",
    include_metrics_in_schema: bool = False,
    enable_cors: bool = True,
    cors_allow_origins: Sequence[str] | None = ("*",),
    cors_allow_credentials: bool = True,
    cors_allow_methods: Sequence[str] = ("*",),
    cors_allow_headers: Sequence[str] = ("*",),
    cors_expose_headers: Sequence[str] | None = ("X-Request-ID", "X-Process-Time"),
    enable_correlation_id: bool = True,
    correlation_header_name: str = "X-Request-ID",
    extra_middleware: Sequence[tuple[type, dict[str, Any]]] = (),
    **fastapi_kwargs: Any,
) -> FastAPI:
    app = FastAPI(title=title, version=version, description=description, **fastapi_kwargs)

    if enable_metrics:
        instrument_with_metrics(
            app,
            endpoint=metrics_endpoint,
            include_in_schema=include_metrics_in_schema,
        )

    # added before the shared layers so CORS, headers and request ids wrap their responses
    for middleware_class, options in extra_middleware:
        app.add_middleware(middleware_class, **options)

    add_response_headers_middleware(app)

    if enable_cors and cors_allow_origins is not None:
        origins = list(cors_allow_origins)
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            # browsers reject credentials with a wildcard origin
            allow_credentials=cors_allow_credentials and origins != ["*"],
            allow_methods=list(cors_allow_methods),
            allow_headers=list(cors_allow_headers),
            expose_headers=list(cors_expose_headers) if cors_expose_headers is not None else [],
        )

    if enable_correlation_id:
        add_correlation_id_middleware(app, header_name=correlation_header_name)

    return app
