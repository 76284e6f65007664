"""Pricing services: exchange rates and quotes."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from django.conf import settings  # type: ignore
from django.utils import timezone  # type: ignore

from apps.hotels.services import get_hotel_tax_regions
from apps.pricing.domain.rate_calculator import (
    GuestCount,
    RateBreakdown,
    RateCalculationInput,
    RateCalculator,
    RatePlanType,
)
from shared.domain.clock import Clock, system_clock
from shared.domain.value_objects import SUPPORTED_CURRENCIES

from .models import CurrencyRate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExchangeRateTable:
    base: str
    rates: dict[str, Decimal]
    source: str
    as_of: date


def get_default_exchange_rates() -> dict[str, Decimal]:
    return {code: Decimal(str(rate)) for code, rate in settings.DEFAULT_EXCHANGE_RATES.items()}


def get_exchange_rates(base: str = "USD", on: date | None = None) -> ExchangeRateTable:
    """Return multipliers relative to ``base``.

    Stored rows are quoted against USD. Currencies without a row for the day
    keep their default multiplier.
    """

    if base not in SUPPORTED_CURRENCIES:
        raise ValueError(f"Unsupported currency: {base}")

    on = on or timezone.localdate()
    rates = get_default_exchange_rates()
    rows = CurrencyRate.objects.filter(
        base_currency="USD",
        effective_date=on,
        target_currency__in=SUPPORTED_CURRENCIES,
    )
    source = "default"
    for row in rows:
        rates[row.target_currency] = row.rate
        source = "database"

    if source == "default":
        logger.info(f"No stored currency rates for {on}, using defaults")

    if base != "USD":
        base_rate = rates[base]
        rates = {code: rate / base_rate for code, rate in rates.items()}

    return ExchangeRateTable(base=base, rates=rates, source=source, as_of=on)


def build_rate_calculator(clock: Clock = system_clock) -> RateCalculator:
    return RateCalculator(hotel_locations=get_hotel_tax_regions(), clock=clock)


def quote_room_type(
    room_type,
    check_in: date,
    check_out: date,
    *,
    adults: int,
    children: int = 0,
    rate_plan_type: str = RatePlanType.FLEXIBLE,
    currency: str = "USD",
    calculator: RateCalculator | None = None,
) -> RateBreakdown:
    """Price a stay in ``room_type``; raises RateValidationError on bad input."""

    calculator = calculator or build_rate_calculator()
    rate_input = RateCalculationInput(
        base_rate=room_type.base_price,
        number_of_nights=(check_out - check_in).days,
        hotel_id=str(room_type.hotel_id),
        room_type_id=str(room_type.id),
        check_in_date=check_in,
        check_out_date=check_out,
        guests=GuestCount(adults=adults, children=children),
        currency=currency,
        exchange_rates=get_exchange_rates("USD").rates,
        rate_plan_type=RatePlanType(rate_plan_type),
    )
    return calculator.calculate_rate(rate_input)
