"""
Rate Calculator

Single source of truth for stay pricing. Every component that shows or
charges a price (room offers, quotes, booking creation) goes through
RateCalculator so guests always see the same numbers.

Pricing pipeline:
1. Convert the nightly USD rate to the target currency and multiply by nights
2. Taxes: VAT by hotel region plus a capped per-person city tax
3. Fees: clamped service fee and per-night cleaning fee
4. Discounts: additive early-booking, length-of-stay and non-refundable promo
5. Total, average nightly rate and deposit by rate plan

All amounts are whole currency units. The base amount is rounded first and
every tax, fee and discount is derived from the rounded base, so
total == base + taxes + fees - discounts holds exactly.

The early-booking discount depends on "now", so results are deterministic
only for a fixed clock.
"""

import json
import logging
import math
from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone
from decimal import Decimal
from enum import Enum
from typing import List, Mapping, Optional

from shared.domain.clock import Clock, system_clock
from shared.domain.value_objects import round_whole

logger = logging.getLogger(__name__)


class RatePlanType(str, Enum):
    FLEXIBLE = 'flexible'
    NON_REFUNDABLE = 'non_refundable'
    ADVANCE_PURCHASE = 'advance_purchase'


TAX_RATES = {
    'jerusalem': Decimal('0.17'),
    'bethlehem': Decimal('0.16'),
    'default': Decimal('0.17'),
}

DEPOSIT_RULES = {
    RatePlanType.FLEXIBLE: Decimal('0.30'),
    RatePlanType.NON_REFUNDABLE: Decimal('0.20'),
    RatePlanType.ADVANCE_PURCHASE: Decimal('0.50'),
}
DEFAULT_DEPOSIT_PERCENTAGE = Decimal('0.30')

SERVICE_FEE_PERCENTAGE = Decimal('0.05')
SERVICE_FEE_MINIMUM = Decimal('15')
SERVICE_FEE_MAXIMUM = Decimal('50')
CLEANING_FEE_PER_NIGHT = Decimal('20')
CITY_TAX_PER_PERSON_PER_NIGHT = Decimal('5.50')
CITY_TAX_MAX_NIGHTS = 7

EARLY_BOOKING_DAYS = 30
EARLY_BOOKING_DISCOUNT = Decimal('0.10')
LENGTH_OF_STAY_NIGHTS = 7
LENGTH_OF_STAY_DISCOUNT = Decimal('0.05')
NON_REFUNDABLE_DISCOUNT = Decimal('0.15')

MAX_NIGHTS = 365
MAX_GUESTS = 8

# Hotels of the group and the tax region they sit in
DEFAULT_HOTEL_LOCATIONS = {
    'a1111111-1111-1111-1111-111111111111': 'jerusalem',
    'a2222222-2222-2222-2222-222222222222': 'jerusalem',
    'a3333333-3333-3333-3333-333333333333': 'bethlehem',
    'a4444444-4444-4444-4444-444444444444': 'jerusalem',
}


class RateValidationError(ValueError):
    """Raised when a rate request fails validation."""

    def __init__(self, errors: List[str], fields: Optional[List[str]] = None):
        self.errors = list(errors)
        self.fields = list(fields or [])
        super().__init__('; '.join(self.errors))


@dataclass(frozen=True)
class GuestCount:
    adults: int
    children: int = 0

    @property
    def total(self) -> int:
        return self.adults + self.children


@dataclass(frozen=True)
class RateCalculationInput:
    """
    A single pricing request

    base_rate is the nightly rate in USD. exchange_rates maps a currency
    code to its multiplier relative to USD.
    """
    base_rate: Decimal
    number_of_nights: int
    hotel_id: str
    room_type_id: str
    check_in_date: date
    check_out_date: date
    guests: GuestCount
    currency: str = 'USD'
    exchange_rates: Mapping[str, Decimal] = field(default_factory=dict)
    rate_plan_type: RatePlanType = RatePlanType.FLEXIBLE


@dataclass(frozen=True)
class TaxBreakdown:
    vat_tax: Decimal
    city_tax: Decimal
    service_tax: Decimal
    total_taxes: Decimal
    tax_rate: Decimal


@dataclass(frozen=True)
class FeeBreakdown:
    service_fee: Decimal
    cleaning_fee: Decimal
    resort_fee: Decimal
    total_fees: Decimal


@dataclass(frozen=True)
class DiscountBreakdown:
    early_booking_discount: Decimal
    length_of_stay_discount: Decimal
    loyalty_discount: Decimal
    promotional_discount: Decimal
    total_discounts: Decimal


@dataclass(frozen=True)
class RateBreakdown:
    base_amount: Decimal
    taxes: TaxBreakdown
    fees: FeeBreakdown
    discounts: DiscountBreakdown
    total_amount: Decimal
    currency: str
    average_nightly_rate: Decimal
    deposit_amount: Decimal
    deposit_percentage: Decimal

    @property
    def balance_due(self) -> Decimal:
        return self.total_amount - self.deposit_amount


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    errors: List[str]
    fields: List[str]


@dataclass(frozen=True)
class FormattedRate:
    breakdown: RateBreakdown
    base_amount: str
    total_amount: str
    deposit_amount: str
    average_nightly: str
    savings: Optional[str] = None


class RateCalculator:
    """
    Stay price calculator

    Usage:
        calculator = RateCalculator(hotel_locations={hotel_id: 'jerusalem'})
        breakdown = calculator.calculate_rate(rate_input)

    calculate_rate validates its input by default and raises
    RateValidationError instead of pricing a malformed request.
    """

    def __init__(
        self,
        hotel_locations: Optional[Mapping[str, str]] = None,
        clock: Clock = system_clock,
    ):
        self.hotel_locations = dict(DEFAULT_HOTEL_LOCATIONS if hotel_locations is None else hotel_locations)
        self.clock = clock

    def calculate_rate(self, rate_input: RateCalculationInput, *, validate: bool = True) -> RateBreakdown:
        """
        Calculate the full price breakdown for a stay

        Args:
            rate_input: The pricing request
            validate: Run validate_input first and fail loudly on errors

        Returns:
            RateBreakdown with whole-unit amounts

        Raises:
            RateValidationError: If validate is set and the input is invalid
        """
        if validate:
            result = self.validate_input(rate_input)
            if not result.valid:
                raise RateValidationError(result.errors, result.fields)

        nights = rate_input.number_of_nights
        factor = self._exchange_factor(rate_input)
        base_amount = round_whole(Decimal(str(rate_input.base_rate)) * factor * nights)

        taxes = self._calculate_taxes(base_amount, rate_input.hotel_id, rate_input.guests, nights)
        fees = self._calculate_fees(base_amount, nights)
        discounts = self._calculate_discounts(
            base_amount,
            rate_input.check_in_date,
            nights,
            rate_input.rate_plan_type,
        )

        total_amount = base_amount + taxes.total_taxes + fees.total_fees - discounts.total_discounts
        average_nightly_rate = round_whole(total_amount / nights) if nights > 0 else total_amount

        deposit_percentage = DEPOSIT_RULES.get(rate_input.rate_plan_type, DEFAULT_DEPOSIT_PERCENTAGE)
        deposit_amount = round_whole(total_amount * deposit_percentage)

        return RateBreakdown(
            base_amount=base_amount,
            taxes=taxes,
            fees=fees,
            discounts=discounts,
            total_amount=total_amount,
            currency=rate_input.currency,
            average_nightly_rate=average_nightly_rate,
            deposit_amount=deposit_amount,
            deposit_percentage=deposit_percentage,
        )

    def validate_input(self, rate_input: RateCalculationInput) -> ValidationResult:
        errors: List[str] = []
        fields: List[str] = []

        def reject(field_name: str, message: str) -> None:
            fields.append(field_name)
            errors.append(message)

        if Decimal(str(rate_input.base_rate)) <= 0:
            reject('base_rate', 'Base rate must be greater than 0')

        if rate_input.number_of_nights <= 0:
            reject('number_of_nights', 'Number of nights must be greater than 0')

        if rate_input.number_of_nights > MAX_NIGHTS:
            reject('number_of_nights', f'Number of nights cannot exceed {MAX_NIGHTS}')

        if rate_input.guests.adults < 1:
            reject('adults', 'At least one adult is required')

        if rate_input.guests.total > MAX_GUESTS:
            reject('guests', f'Maximum {MAX_GUESTS} guests per booking')

        if rate_input.check_in_date < self.clock.now().date():
            reject('check_in_date', 'Check-in date cannot be in the past')

        return ValidationResult(valid=not errors, errors=errors, fields=fields)

    def days_to_check_in(self, check_in_date: date) -> int:
        """Whole days until check-in, rounded up."""
        check_in_at = datetime.combine(check_in_date, time.min, tzinfo=timezone.utc)
        seconds = (check_in_at - self.clock.now()).total_seconds()
        return math.ceil(seconds / 86400)

    def get_hotel_location(self, hotel_id: str) -> str:
        return self.hotel_locations.get(str(hotel_id), 'default')

    def _exchange_factor(self, rate_input: RateCalculationInput) -> Decimal:
        factor = rate_input.exchange_rates.get(rate_input.currency)
        if factor is None:
            logger.warning(
                f"No exchange rate for {rate_input.currency}, pricing with factor 1"
            )
            return Decimal('1')
        return Decimal(str(factor))

    def _calculate_taxes(self, base_amount: Decimal, hotel_id: str, guests: GuestCount, nights: int) -> TaxBreakdown:
        location = self.get_hotel_location(hotel_id)
        tax_rate = TAX_RATES.get(location, TAX_RATES['default'])

        vat_tax = round_whole(base_amount * tax_rate)
        city_tax_nights = max(0, min(nights, CITY_TAX_MAX_NIGHTS))
        city_tax = round_whole(guests.total * CITY_TAX_PER_PERSON_PER_NIGHT * city_tax_nights)
        # No service tax is levied in the group's regions
        service_tax = Decimal('0')

        return TaxBreakdown(
            vat_tax=vat_tax,
            city_tax=city_tax,
            service_tax=service_tax,
            total_taxes=vat_tax + city_tax + service_tax,
            tax_rate=tax_rate,
        )

    def _calculate_fees(self, base_amount: Decimal, nights: int) -> FeeBreakdown:
        service_fee = round_whole(
            max(SERVICE_FEE_MINIMUM, min(base_amount * SERVICE_FEE_PERCENTAGE, SERVICE_FEE_MAXIMUM))
        )
        cleaning_fee = round_whole(CLEANING_FEE_PER_NIGHT * nights)
        resort_fee = Decimal('0')

        return FeeBreakdown(
            service_fee=service_fee,
            cleaning_fee=cleaning_fee,
            resort_fee=resort_fee,
            total_fees=service_fee + cleaning_fee + resort_fee,
        )

    def _calculate_discounts(
        self,
        base_amount: Decimal,
        check_in_date: date,
        nights: int,
        rate_plan_type: RatePlanType,
    ) -> DiscountBreakdown:
        zero = Decimal('0')

        early_booking = (
            round_whole(base_amount * EARLY_BOOKING_DISCOUNT)
            if self.days_to_check_in(check_in_date) >= EARLY_BOOKING_DAYS
            else zero
        )
        length_of_stay = (
            round_whole(base_amount * LENGTH_OF_STAY_DISCOUNT)
            if nights >= LENGTH_OF_STAY_NIGHTS
            else zero
        )
        promotional = (
            round_whole(base_amount * NON_REFUNDABLE_DISCOUNT)
            if rate_plan_type == RatePlanType.NON_REFUNDABLE
            else zero
        )
        # Loyalty programme is not live yet
        loyalty = zero

        return DiscountBreakdown(
            early_booking_discount=early_booking,
            length_of_stay_discount=length_of_stay,
            loyalty_discount=loyalty,
            promotional_discount=promotional,
            total_discounts=early_booking + length_of_stay + loyalty + promotional,
        )


def format_rate_breakdown(breakdown: RateBreakdown) -> str:
    """Render a breakdown as an indented JSON summary."""
    currency = breakdown.currency
    return json.dumps(
        {
            'baseAmount': f'{currency} {breakdown.base_amount}',
            'taxes': int(breakdown.taxes.total_taxes),
            'fees': int(breakdown.fees.total_fees),
            'discounts': int(breakdown.discounts.total_discounts),
            'total': f'{currency} {breakdown.total_amount}',
            'deposit': f'{currency} {breakdown.deposit_amount}',
        },
        indent=2,
    )


def calculate_and_format_rate(
    rate_input: RateCalculationInput,
    calculator: Optional[RateCalculator] = None,
) -> FormattedRate:
    """Price a stay and pre-format the amounts shown on room offers."""
    calculator = calculator or RateCalculator()
    breakdown = calculator.calculate_rate(rate_input)
    currency = rate_input.currency
    savings = breakdown.discounts.total_discounts

    return FormattedRate(
        breakdown=breakdown,
        base_amount=f'{currency} {breakdown.base_amount}',
        total_amount=f'{currency} {breakdown.total_amount}',
        deposit_amount=f'{currency} {breakdown.deposit_amount}',
        average_nightly=f'{currency} {breakdown.average_nightly_rate}',
        savings=f'{currency} {savings}' if savings > 0 else None,
    )
