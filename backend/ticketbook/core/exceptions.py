"""
Error taxonomy for the booking engine.

Every error carries the HTTP status it maps to, so routes never translate
errors themselves; `register_exception_handlers` does it once for the app.
"""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from ticketbook.core.logging import get_logger

logger = get_logger(__name__)


class BookingError(Exception):
    """Base error with a client-safe message and status code."""

    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(BookingError):
    """Malformed request, rejected before any storage access."""

    status_code = 422


class NotFound(BookingError):
    status_code = status.HTTP_404_NOT_FOUND


class InsufficientInventory(BookingError):
    status_code = status.HTTP_409_CONFLICT


class Forbidden(BookingError):
    status_code = status.HTTP_403_FORBIDDEN


class AlreadyCancelled(BookingError):
    status_code = status.HTTP_400_BAD_REQUEST


class StorageFailure(BookingError):
    """Unexpected engine fault. The message never includes engine text."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str = "Booking could not be completed"):
        super().__init__(message)


async def booking_error_handler(request: Request, exc: BookingError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("request_storage_failure", detail=exc.message)
    else:
        logger.info("request_rejected", error=type(exc).__name__, detail=exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_exception", error=str(exc))
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BookingError, booking_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
