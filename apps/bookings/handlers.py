"""
Booking event handlers

Run after the booking transaction commits; e-mails go out via Celery.
"""

import logging

from shared.application.message_bus import message_bus

from .domain.events import BookingCancelled, BookingCreated

logger = logging.getLogger(__name__)


def send_confirmation_on_booking_created(event: BookingCreated):
    from .tasks import send_booking_confirmation_email

    send_booking_confirmation_email.delay(event.booking_id)
    logger.debug(f"Queued confirmation email for booking {event.confirmation_number}")


def send_notice_on_booking_cancelled(event: BookingCancelled):
    from .tasks import send_booking_cancellation_email

    send_booking_cancellation_email.delay(event.booking_id)


def register_handlers():
    message_bus.register_event_handler(BookingCreated, send_confirmation_on_booking_created)
    message_bus.register_event_handler(BookingCancelled, send_notice_on_booking_cancelled)
