"""API exception handlers"""
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from domain.exceptions import (
    AssetNotAvailableError, BelowMinimumStayError, BookingNotFoundError, BookingValidationError,
    DateRangeConflictError, ForbiddenError, InvalidTransitionError, ReservationError, TransientStoreError,
)

logger = logging.getLogger(__name__)

STATUS_CODES = {
    BookingValidationError: 400,
    BelowMinimumStayError: 400,
    AssetNotAvailableError: 404,
    BookingNotFoundError: 404,
    ForbiddenError: 403,
    DateRangeConflictError: 409,
    InvalidTransitionError: 409,
}


async def reservation_error_handler(request: Request, exc: ReservationError) -> JSONResponse:
    status_code = STATUS_CODES.get(type(exc), 400)
    logger.warning("%s %s rejected: %s (%s)", request.method, request.url.path, exc.message, type(exc).__name__)

    content = {"detail": exc.message, "error": type(exc).__name__}
    if isinstance(exc, InvalidTransitionError):
        content["allowed"] = exc.allowed
    if isinstance(exc, BelowMinimumStayError):
        content["minimum_stay_days"] = exc.minimum_stay_days
    return JSONResponse(status_code=status_code, content=content)


async def transient_store_error_handler(request: Request, exc: TransientStoreError) -> JSONResponse:
    logger.error("%s %s failed after retries: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=503,
        content={"detail": "Booking store temporarily unavailable", "error": type(exc).__name__},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ReservationError, reservation_error_handler)
    app.add_exception_handler(TransientStoreError, transient_store_error_handler)
