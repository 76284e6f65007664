"""Domain exceptions and the DRF exception handler for the booking funnel."""

from __future__ import annotations

import logging

from rest_framework import status  # type: ignore
from rest_framework.response import Response  # type: ignore
from rest_framework.views import exception_handler  # type: ignore

from apps.inventory.domain.availability import InsufficientInventoryError, InventoryError
from apps.pricing.domain.rate_calculator import RateValidationError

from .errors import BookingError, BookingErrorCode, BookingErrorHandler
from .services import BookingConflictError

logger = logging.getLogger(__name__)


class BookingSessionError(Exception):
    """Raised when a request needs a live booking session and there is none."""


class SessionExpiredError(BookingSessionError):
    """Raised when the booking session has lapsed."""


def enqueue_error_event(event_name: str, payload: dict) -> None:
    from .tasks import report_booking_error

    report_booking_error.delay(event_name, payload)


api_error_handler = BookingErrorHandler(analytics_sink=enqueue_error_event)


def _view_context(context) -> dict:
    request = context.get("request")
    view = context.get("view")
    return {
        "path": getattr(request, "path", None),
        "method": getattr(request, "method", None),
        "view": type(view).__name__ if view is not None else None,
    }


def to_booking_error(exc: Exception, context: dict | None = None) -> tuple[BookingError, int] | None:
    """Map a domain exception to a catalog error and HTTP status; None if unmapped."""

    context = context or {}
    if isinstance(exc, InsufficientInventoryError):
        error = api_error_handler.create_error(
            BookingErrorCode.INVENTORY_INSUFFICIENT,
            {
                **context,
                "room_type_id": str(exc.room_type_id),
                "requested": exc.requested,
                "available": exc.available,
            },
        )
        return error, status.HTTP_409_CONFLICT

    if isinstance(exc, RateValidationError):
        field_name = exc.fields[0] if exc.fields else "rate"
        message = exc.errors[0] if exc.errors else str(exc)
        error = api_error_handler.handle_validation_error(
            field_name,
            message,
            {**context, "errors": exc.errors, "fields": exc.fields},
        )
        return error, status.HTTP_400_BAD_REQUEST

    if isinstance(exc, BookingSessionError):
        return (
            api_error_handler.create_error(BookingErrorCode.SESSION_EXPIRED, {**context, "detail": str(exc)}),
            status.HTTP_401_UNAUTHORIZED,
        )

    if isinstance(exc, (BookingConflictError, InventoryError)):
        return (
            api_error_handler.create_error(BookingErrorCode.AVAILABILITY_CHANGED, {**context, "detail": str(exc)}),
            status.HTTP_409_CONFLICT,
        )

    return None


def booking_exception_handler(exc, context):  # type: ignore
    """REST_FRAMEWORK EXCEPTION_HANDLER: booking errors first, DRF defaults otherwise."""

    mapped = to_booking_error(exc, _view_context(context))
    if mapped is None:
        return exception_handler(exc, context)

    error, http_status = mapped
    api_error_handler.log_error(error)
    return Response({"error": error.to_dict()}, status=http_status)
