"""예외 → HTTP 응답 변환"""
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from booking_search.core.exceptions import (
    BookingNotFoundException,
    BookingNotSupportedException,
    BookingSearchException,
    NoProvidersAvailableException,
    ProviderNotFoundException,
    SearchTimeoutException,
    ValidationException,
)
from booking_search.core.logging import logger


# 순서대로 검사 (하위 클래스 먼저)
STATUS_BY_EXCEPTION = (
    (ValidationException, 400),
    (ProviderNotFoundException, 404),
    (BookingNotFoundException, 404),
    (BookingNotSupportedException, 501),
    (NoProvidersAvailableException, 503),
    (SearchTimeoutException, 504),
)


def status_code_for(exc: BookingSearchException) -> int:
    for exc_type, status_code in STATUS_BY_EXCEPTION:
        if isinstance(exc, exc_type):
            return status_code
    return 500


def error_body(error: str, error_code: str, message: str) -> dict:
    return {"success": False, "error": error, "error_code": error_code, "message": message}


async def booking_exception_handler(request: Request, exc: BookingSearchException) -> JSONResponse:
    status_code = status_code_for(exc)
    if status_code >= 500:
        logger.error(f"[API] {request.method} {request.url.path} failed: {exc}")
    else:
        logger.warning(f"[API] {request.method} {request.url.path} rejected: {exc}")

    return JSONResponse(
        status_code=status_code,
        content=error_body(type(exc).__name__, exc.error_code, exc.message),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    reason = first.get("msg", "invalid request")
    message = f"{location}: {reason}" if location else reason

    logger.warning(f"[API] {request.method} {request.url.path} invalid request: {message}")
    return JSONResponse(
        status_code=400,
        content=error_body("ValidationException", "VALIDATION_ERROR", message),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BookingSearchException, booking_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
