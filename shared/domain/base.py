"""
Domain building blocks

- ValueObject: frozen dataclass compared by value (DateRange)
- DomainEvent: record of a booking fact, dispatched after commit
"""

from abc import ABC
from dataclasses import dataclass, field, fields
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID, uuid4

from shared.domain.clock import system_clock


@dataclass(frozen=True)
class ValueObject(ABC):
    """Immutable, identity-free; equality is field equality."""


def _plain(value):
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (Decimal, UUID)):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    return value


@dataclass(kw_only=True)
class DomainEvent:
    """
    Something that happened to a booking or a hold

    Subclasses add their own keyword-only fields. ``occurred_at`` is taken
    from the system clock in UTC.
    """
    event_id: UUID = field(default_factory=uuid4)
    occurred_at: datetime = field(default_factory=system_clock.now)

    @property
    def name(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict:
        """Flat JSON-ready payload used for structured logs."""
        data = {'event_type': self.name}
        data.update({f.name: _plain(getattr(self, f.name)) for f in fields(self)})
        return data
