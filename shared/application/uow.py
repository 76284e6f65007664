"""
Unit of work for booking writes

Wraps a block in ``transaction.atomic`` and collects the domain events it
produces. Events reach the message bus only through
``transaction.on_commit``; a rolled-back block publishes nothing.
"""

from typing import List, Optional
import logging

from django.db import transaction  # type: ignore

from shared.application.message_bus import MessageBus, message_bus
from shared.domain.base import DomainEvent

logger = logging.getLogger(__name__)


class DjangoUnitOfWork:
    """
    Usage:
        with DjangoUnitOfWork() as uow:
            booking = Booking.objects.create(...)
            if not manager.convert_hold_to_booking(hold_id, booking.id):
                raise BookingConflictError(...)   # booking row rolled back
            uow.add_event(BookingCreated(...))
    """

    def __init__(self, bus: Optional[MessageBus] = None, using: Optional[str] = None):
        self.bus = bus or message_bus
        self.using = using
        self._events: List[DomainEvent] = []
        self._atomic = None

    def __enter__(self):
        self._atomic = transaction.atomic(using=self.using)
        self._atomic.__enter__()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            self._schedule_publish()
        elif self._events:
            logger.warning(f"Rolled back, dropping {len(self._events)} event(s): {exc_type.__name__}")
        self._events = []
        return self._atomic.__exit__(exc_type, exc_val, exc_tb)

    def add_event(self, event: DomainEvent) -> None:
        self._events.append(event)

    @property
    def pending_events(self) -> List[DomainEvent]:
        return list(self._events)

    def _schedule_publish(self) -> None:
        if not self._events:
            return
        events = list(self._events)
        transaction.on_commit(lambda: self.bus.publish_events(events), using=self.using)
