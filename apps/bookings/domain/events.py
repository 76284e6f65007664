"""
Booking lifecycle events

Emitted inside DjangoUnitOfWork; handlers in apps.bookings.handlers queue
the guest e-mails once the booking row is committed.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from shared.domain.base import DomainEvent


@dataclass(kw_only=True)
class BookingCreated(DomainEvent):
    """A hold was converted into a pending booking."""
    booking_id: str
    confirmation_number: str
    hold_id: str
    guest_email: str
    check_in: date
    check_out: date
    total_amount: Decimal
    currency: str


@dataclass(kw_only=True)
class BookingCancelled(DomainEvent):
    booking_id: str
    confirmation_number: str
    guest_email: str
    reason: str = ''
