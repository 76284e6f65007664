"""
Shared value objects

- SUPPORTED_CURRENCIES / round_whole: prices are quoted in whole units
- DateRange: a stay, check-in inclusive to check-out exclusive
"""

from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterator

from shared.domain.base import ValueObject

SUPPORTED_CURRENCIES = ('USD', 'EUR', 'GBP', 'CAD', 'AUD')


def round_whole(value) -> Decimal:
    """Round half up to whole currency units."""
    return Decimal(str(value)).quantize(Decimal('1'), rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class DateRange(ValueObject):
    """
    Nights of a stay, hold or availability query

    ``end_date`` is the check-out day and is not a night of the stay, so
    back-to-back stays share no night.
    """
    start_date: date
    end_date: date

    def __post_init__(self):
        if self.start_date >= self.end_date:
            raise ValueError(f"Check-out ({self.end_date}) must be after check-in ({self.start_date})")

    def touches_period(self, start: date, end: date) -> bool:
        """
        True if any night falls in the closed period [start, end]

        Inventory blocks and restrictions store an inclusive end date.
        """
        return start < self.end_date and end >= self.start_date

    def nights(self) -> Iterator[date]:
        night = self.start_date
        while night < self.end_date:
            yield night
            night += timedelta(days=1)

    def __len__(self) -> int:
        return (self.end_date - self.start_date).days

    def __str__(self):
        return f"{self.start_date.isoformat()}..{self.end_date.isoformat()}"
