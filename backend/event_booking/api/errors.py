"""
Maps the booking error taxonomy onto HTTP responses.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from event_booking.core.exceptions import AuthenticationError, BookingError, ValidationError
from event_booking.core.logging import get_logger

logger = get_logger(__name__)


async def booking_error_handler(request: Request, exc: BookingError) -> JSONResponse:
    content = {"detail": exc.message, "code": exc.code.value}
    if isinstance(exc, ValidationError):
        content["field"] = exc.field

    headers = None
    if isinstance(exc, AuthenticationError):
        headers = {"WWW-Authenticate": "Bearer"}

    logger.warning("request_rejected", code=exc.code.value, status_code=exc.status_code)
    return JSONResponse(status_code=exc.status_code, content=content, headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BookingError, booking_error_handler)
