"""
In-process event dispatch

Booking services never call e-mail or analytics code directly; they emit
domain events and the handlers registered here react once the database
transaction has committed (see shared.application.uow).
"""

from collections import defaultdict
from typing import Callable, DefaultDict, Iterable, List, Type
import logging

from shared.domain.base import DomainEvent

logger = logging.getLogger(__name__)

EventHandler = Callable[[DomainEvent], None]


class MessageBus:
    """
    Event type -> handlers registry

    Handlers run after commit. A failing handler is logged and the
    remaining handlers still run.
    """

    def __init__(self):
        self._handlers: DefaultDict[Type[DomainEvent], List[EventHandler]] = defaultdict(list)

    def register_event_handler(self, event_type: Type[DomainEvent], handler: EventHandler) -> None:
        # AppConfig.ready() may run more than once (tests, autoreload)
        if handler not in self._handlers[event_type]:
            self._handlers[event_type].append(handler)

    def handlers_for(self, event_type: Type[DomainEvent]) -> List[EventHandler]:
        return list(self._handlers.get(event_type, ()))

    def publish_events(self, events: Iterable[DomainEvent]) -> int:
        """Dispatch every event; returns how many handler calls succeeded."""
        delivered = 0
        for event in events:
            handlers = self.handlers_for(type(event))
            if not handlers:
                logger.warning(f"No handlers for {event.name}", extra={'domain_event': event.to_dict()})
                continue

            logger.info(f"Dispatching {event.name} to {len(handlers)} handler(s)", extra={'domain_event': event.to_dict()})
            for handler in handlers:
                try:
                    handler(event)
                except Exception as e:
                    logger.error(
                        f"Handler {getattr(handler, '__name__', handler)!r} failed for {event.name}: {e}",
                        exc_info=True,
                    )
                    continue
                delivered += 1
        return delivered


message_bus = MessageBus()
