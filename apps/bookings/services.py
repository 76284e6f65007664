"""Domain services for booking workflows."""

from __future__ import annotations

import logging
from datetime import datetime, time, timezone as dt_timezone

from django.conf import settings  # type: ignore

from apps.hotels.models import RoomType
from apps.inventory.domain.availability import AvailabilityManager
from apps.inventory.services import get_availability_manager
from apps.pricing.domain.rate_calculator import RatePlanType
from apps.pricing.services import build_rate_calculator, quote_room_type
from shared.application.uow import DjangoUnitOfWork
from shared.domain.clock import Clock, system_clock

from .domain.events import BookingCancelled, BookingCreated
from .models import Booking
from .session import (
    BookingSessionManager,
    DjangoSessionStorage,
    HoldGateway,
    HttpHoldGateway,
    LocalHoldGateway,
    SessionConfig,
)

logger = logging.getLogger(__name__)


class BookingConflictError(Exception):
    """Raised when the hold behind a booking is gone or no longer usable."""


class BookingCancellationError(Exception):
    """Raised when a booking can no longer be cancelled."""


def create_booking_from_hold(
    *,
    hold_id: str,
    guest_first_name: str,
    guest_last_name: str,
    guest_email: str,
    guest_phone: str = "",
    special_requests: str = "",
    adults: int,
    children: int = 0,
    rate_plan_type: str = RatePlanType.FLEXIBLE,
    currency: str = "USD",
    manager: AvailabilityManager | None = None,
    clock: Clock = system_clock,
) -> Booking:
    """
    Price the held stay and turn the hold into a booking.

    The booking insert and the hold conversion share one transaction; if
    the hold cannot be converted nothing is written and
    BookingConflictError is raised. RateValidationError propagates.
    """

    manager = manager or get_availability_manager(clock)
    hold = manager.get_hold(hold_id)
    if hold is None or not hold.is_live(clock.now()):
        raise BookingConflictError(f"Hold {hold_id} is no longer active.")

    room_type = RoomType.objects.select_related("hotel").get(pk=hold.room_type_id)
    breakdown = quote_room_type(
        room_type,
        hold.check_in_date,
        hold.check_out_date,
        adults=adults,
        children=children,
        rate_plan_type=rate_plan_type,
        currency=currency,
        calculator=build_rate_calculator(clock),
    )
    rooms = hold.room_count

    with DjangoUnitOfWork() as uow:
        booking = Booking.objects.create(
            hotel=room_type.hotel,
            room_type=room_type,
            hold_id=hold_id,
            guest_first_name=guest_first_name,
            guest_last_name=guest_last_name,
            guest_email=guest_email,
            guest_phone=guest_phone,
            special_requests=special_requests,
            check_in=hold.check_in_date,
            check_out=hold.check_out_date,
            adults=adults,
            children=children,
            rooms=rooms,
            rate_plan_type=RatePlanType(rate_plan_type).value,
            currency=breakdown.currency,
            base_amount=breakdown.base_amount * rooms,
            taxes_amount=breakdown.taxes.total_taxes * rooms,
            fees_amount=breakdown.fees.total_fees * rooms,
            discounts_amount=breakdown.discounts.total_discounts * rooms,
            total_amount=breakdown.total_amount * rooms,
            deposit_amount=breakdown.deposit_amount * rooms,
        )

        if not manager.convert_hold_to_booking(hold_id, str(booking.id)):
            raise BookingConflictError(f"Hold {hold_id} could not be converted.")

        uow.add_event(
            BookingCreated(
                occurred_at=clock.now(),
                booking_id=str(booking.id),
                confirmation_number=booking.confirmation_number,
                hold_id=hold_id,
                guest_email=booking.guest_email,
                check_in=booking.check_in,
                check_out=booking.check_out,
                total_amount=booking.total_amount,
                currency=booking.currency,
            )
        )

    logger.info(f"Booking {booking.confirmation_number} created from hold {hold_id}")
    return booking


def hours_until_check_in(booking: Booking, now: datetime) -> float:
    check_in_at = datetime.combine(booking.check_in, time.min, tzinfo=dt_timezone.utc)
    return (check_in_at - now).total_seconds() / 3600


def cancel_booking(booking: Booking, reason: str = "", *, clock: Clock = system_clock) -> Booking:
    """Cancel a booking at least BOOKING_CANCELLATION_DEADLINE_HOURS before check-in."""

    if booking.status == Booking.Status.CANCELLED:
        raise BookingCancellationError("Booking is already cancelled.")
    if booking.status == Booking.Status.COMPLETED:
        raise BookingCancellationError("Completed bookings cannot be cancelled.")

    now = clock.now()
    deadline = settings.BOOKING_CANCELLATION_DEADLINE_HOURS
    if hours_until_check_in(booking, now) < deadline:
        raise BookingCancellationError(
            f"Cancellation deadline has passed. Bookings must be cancelled at least "
            f"{deadline} hours before check-in."
        )

    with DjangoUnitOfWork() as uow:
        booking.status = Booking.Status.CANCELLED
        booking.cancellation_reason = reason[:255]
        booking.cancelled_at = now
        if booking.payment_status in (Booking.PaymentStatus.PAID, Booking.PaymentStatus.PARTIAL):
            booking.payment_status = Booking.PaymentStatus.REFUNDED
        booking.save(update_fields=["status", "cancellation_reason", "cancelled_at", "payment_status", "updated_at"])
        uow.add_event(
            BookingCancelled(
                occurred_at=clock.now(),
                booking_id=str(booking.id),
                confirmation_number=booking.confirmation_number,
                guest_email=booking.guest_email,
                reason=booking.cancellation_reason,
            )
        )

    logger.info(f"Booking {booking.confirmation_number} cancelled")
    return booking


def find_booking(confirmation_number: str, email: str) -> Booking | None:
    """Guest lookup by confirmation number and the e-mail used to book."""

    return (
        Booking.objects.select_related("hotel", "room_type")
        .filter(confirmation_number=confirmation_number.strip().upper(), guest_email__iexact=email.strip())
        .first()
    )


def get_hold_gateway(clock: Clock = system_clock) -> HoldGateway:
    if settings.BOOKING_HOLD_GATEWAY == "http":
        return HttpHoldGateway(settings.BOOKING_HOLD_API_URL)
    return LocalHoldGateway(get_availability_manager(clock))


def get_session_manager(request, clock: Clock = system_clock) -> BookingSessionManager:
    """Session manager backed by the request's Django session."""

    config = SessionConfig(
        session_timeout_minutes=settings.BOOKING_SESSION_TIMEOUT_MINUTES,
        hold_timeout_minutes=settings.BOOKING_HOLD_TIMEOUT_MINUTES,
        warning_minutes=settings.BOOKING_SESSION_WARNING_MINUTES,
    )
    return BookingSessionManager(
        DjangoSessionStorage(request.session),
        hold_gateway=get_hold_gateway(clock),
        clock=clock,
        config=config,
    )
