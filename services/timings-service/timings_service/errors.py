from typing import Any

import structlog
from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .metrics import ERRORS_TOTAL

logger = structlog.get_logger(__name__)

_LOCATION_PREFIXES = {"body", "query", "path", "header", "cookie"}


class AppError(HTTPException):
    default_status = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_error = "Internal server error"

    def __init__(
        self,
        message: str,
        *,
        error: str | None = None,
        status_code: int | None = None,
        details: list[dict[str, Any]] | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        super().__init__(status_code=status_code or self.default_status, detail=message, headers=headers)
        self.error = error or self.default_error
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.error, "message": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class ValidationError(AppError):
    default_status = status.HTTP_400_BAD_REQUEST
    default_error = "Validation failed"

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationError":
        return cls(message, details=[{"field": field, "message": message}])


class AuthenticationError(AppError):
    default_status = status.HTTP_401_UNAUTHORIZED
    default_error = "Access denied"

    def __init__(self, message: str, **kwargs: Any) -> None:
        kwargs.setdefault("headers", {"WWW-Authenticate": "Bearer"})
        super().__init__(message, **kwargs)


class AuthorizationError(AppError):
    default_status = status.HTTP_403_FORBIDDEN
    default_error = "Access denied"


class NotFoundError(AppError):
    default_status = status.HTTP_404_NOT_FOUND
    default_error = "Not found"


class ConflictError(AppError):
    default_status = status.HTTP_409_CONFLICT
    default_error = "Conflict"


class UpstreamError(AppError):
    default_status = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_error = "Upstream service error"


def _field_name(loc: tuple[Any, ...]) -> str:
    parts = [str(p) for p in loc if not (isinstance(p, str) and p in _LOCATION_PREFIXES)]
    return ".".join(parts) or "request"


def _clean_message(msg: str) -> str:
    for prefix in ("Value error, ", "Assertion failed, "):
        if msg.startswith(prefix):
            return msg[len(prefix) :]
    return msg


def validation_details(exc: RequestValidationError) -> list[dict[str, str]]:
    return [
        {"field": _field_name(tuple(err.get("loc", ()))), "message": _clean_message(err.get("msg", ""))}
        for err in exc.errors()
    ]


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    ERRORS_TOTAL.labels(error=exc.__class__.__name__).inc()
    if exc.status_code >= 500:
        logger.error("request_failed", path=request.url.path, error=exc.error, message=exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=exc.headers)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = validation_details(exc)
    ERRORS_TOTAL.labels(error="ValidationError").inc()
    logger.info("request_validation_failed", path=request.url.path, fields=[d["field"] for d in details])
    message = details[0]["message"] if details else "Invalid request"
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Validation failed", "message": message, "details": details},
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == status.HTTP_404_NOT_FOUND and exc.detail == "Not Found":
        content: dict[str, Any] = {
            "error": "Route not found",
            "message": f"No route matches {request.method} {request.url.path}",
            "path": request.url.path,
        }
    else:
        detail = exc.detail if isinstance(exc.detail, str) else "Request failed"
        content = {"error": detail, "message": detail}
    return JSONResponse(status_code=exc.status_code, content=content, headers=getattr(exc, "headers", None))


def make_unhandled_exception_handler(show_details: bool):
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        ERRORS_TOTAL.labels(error="UnexpectedError").inc()
        logger.exception("unhandled_exception", path=request.url.path, method=request.method)
        message = str(exc) if show_details else "Something went wrong"
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Internal server error", "message": message},
        )

    return unhandled_exception_handler


def register_exception_handlers(app: FastAPI, *, show_details: bool) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, make_unhandled_exception_handler(show_details))
