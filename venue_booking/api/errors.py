"""
Exception handlers rendering every failure as the error envelope:

    {"success": false, "message": "...", "errors": [{"field": ..., "message": ...}]}
"""

from typing import Any, Callable, Coroutine, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import Response

from venue_booking.core.exceptions import BookingAPIError, ValidationError
from venue_booking.core.logging import get_logger

logger = get_logger(__name__)

ExceptionHandler = Callable[[Request, Exception], Coroutine[Any, Any, Response]]


def error_response(
    status_code: int,
    message: str,
    errors: Optional[list[dict]] = None,
    headers: Optional[dict] = None,
) -> JSONResponse:
    content = {"success": False, "message": message}
    if errors:
        content["errors"] = errors
    return JSONResponse(status_code=status_code, content=content, headers=headers)


async def booking_api_error_handler(request: Request, exc: BookingAPIError) -> JSONResponse:
    log = logger.warning if exc.status_code < 500 else logger.error
    log("request_rejected", error=type(exc).__name__, status_code=exc.status_code, message=exc.message)
    return error_response(exc.status_code, exc.message, exc.errors)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return error_response(exc.status_code, message, headers=getattr(exc, "headers", None))


def _field_name(location: tuple) -> str:
    # Drop the "body"/"query"/"path" prefix
    parts = [str(part) for part in location[1:]] or [str(part) for part in location]
    return ".".join(parts)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [{"field": _field_name(error["loc"]), "message": error["msg"]} for error in exc.errors()]
    return error_response(ValidationError.status_code, "Validation failed", errors)


async def storage_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("storage_error", error=str(exc), error_type=type(exc).__name__)
    return error_response(status.HTTP_503_SERVICE_UNAVAILABLE, "Storage unavailable")


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_error", error=str(exc), error_type=type(exc).__name__)
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


EXCEPTION_HANDLERS: dict[type[Exception], ExceptionHandler] = {
    BookingAPIError: booking_api_error_handler,
    StarletteHTTPException: http_exception_handler,
    RequestValidationError: validation_error_handler,
    SQLAlchemyError: storage_error_handler,
    Exception: unhandled_error_handler,
}


def register_exception_handlers(app: FastAPI) -> None:
    for exception_class, handler in EXCEPTION_HANDLERS.items():
        app.add_exception_handler(exception_class, handler)
