"""Celery tasks for the booking domain."""

from __future__ import annotations

import logging

import requests
from celery import shared_task  # type: ignore
from django.conf import settings  # type: ignore
from django.core.mail import send_mail  # type: ignore
from django.utils import timezone  # type: ignore

from .models import Booking

logger = logging.getLogger(__name__)


def _send_guest_email(booking: Booking, subject: str, message: str) -> bool:
    try:
        send_mail(
            subject=subject,
            message=message,
            from_email=settings.DEFAULT_FROM_EMAIL,
            recipient_list=[booking.guest_email],
            fail_silently=False,
        )
    except Exception as e:
        logger.error(f"Failed to send email to {booking.guest_email}: {e}", exc_info=True)
        return False

    logger.info(f"Email sent to {booking.guest_email}: {subject}")
    return True


# ============================================================================
# NOTIFICATION TASKS
# ============================================================================

@shared_task(name="bookings.send_booking_confirmation_email")
def send_booking_confirmation_email(booking_id: str) -> bool:
    """Booking confirmation for the guest, with the price breakdown."""
    try:
        booking = Booking.objects.select_related("hotel", "room_type").get(pk=booking_id)
    except Booking.DoesNotExist:
        logger.error(f"Booking {booking_id} not found for confirmation email")
        return False

    message = (
        f"Dear {booking.guest_name},\n\n"
        f"Thank you for booking with {booking.hotel.name}.\n\n"
        f"Confirmation number: {booking.confirmation_number}\n"
        f"Room: {booking.room_type.name} x {booking.rooms}\n"
        f"Check-in: {booking.check_in:%d %b %Y}\n"
        f"Check-out: {booking.check_out:%d %b %Y} ({booking.nights} nights)\n"
        f"Total: {booking.total_amount:.0f} {booking.currency}\n"
        f"Deposit due: {booking.deposit_amount:.0f} {booking.currency}\n\n"
        f"Free cancellation until {settings.BOOKING_CANCELLATION_DEADLINE_HOURS} hours before check-in.\n"
    )
    return _send_guest_email(booking, f"Booking confirmation {booking.confirmation_number}", message)


@shared_task(name="bookings.send_booking_cancellation_email")
def send_booking_cancellation_email(booking_id: str) -> bool:
    try:
        booking = Booking.objects.select_related("hotel").get(pk=booking_id)
    except Booking.DoesNotExist:
        logger.error(f"Booking {booking_id} not found for cancellation email")
        return False

    message = (
        f"Dear {booking.guest_name},\n\n"
        f"Your booking {booking.confirmation_number} at {booking.hotel.name} "
        f"for {booking.check_in:%d %b %Y} has been cancelled.\n"
    )
    if booking.cancellation_reason:
        message += f"Reason: {booking.cancellation_reason}\n"
    return _send_guest_email(booking, f"Booking {booking.confirmation_number} cancelled", message)


# ============================================================================
# ANALYTICS
# ============================================================================

@shared_task(name="bookings.report_booking_error")
def report_booking_error(event_name: str, payload: dict) -> bool:
    """
    Deliver a booking-error analytics event.

    Posts to BOOKING_ANALYTICS_URL when it is configured; otherwise the
    event is only logged.
    """
    url = settings.BOOKING_ANALYTICS_URL
    if not url:
        logger.info(f"Analytics event {event_name}", extra={"analytics": payload})
        return False

    try:
        response = requests.post(url, json={"event": event_name, "properties": payload}, timeout=5)
        response.raise_for_status()
    except requests.RequestException as e:
        logger.warning(f"Failed to deliver analytics event {event_name}: {e}")
        return False
    return True


# ============================================================================
# PERIODIC TASKS (run by Celery Beat)
# ============================================================================

@shared_task(name="bookings.complete_finished_bookings")
def complete_finished_bookings() -> dict[str, int]:
    """
    Mark live bookings whose check-out date has passed as completed.

    Runs every hour.

    Returns:
        dict: {"completed": number of bookings completed}
    """
    completed = Booking.objects.filter(
        status__in=Booking.ACTIVE_STATUSES,
        check_out__lte=timezone.localdate(),
    ).update(status=Booking.Status.COMPLETED, updated_at=timezone.now())

    if completed:
        logger.info(f"Completed {completed} bookings")
    return {"completed": completed}
