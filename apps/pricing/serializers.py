"""Serializers for quotes and exchange rates."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from apps.hotels.models import RoomType
from apps.pricing.domain.rate_calculator import RatePlanType
from shared.domain.value_objects import SUPPORTED_CURRENCIES


def _amount(**kwargs):
    return serializers.DecimalField(max_digits=12, decimal_places=0, read_only=True, **kwargs)


class TaxBreakdownSerializer(serializers.Serializer):
    vat_tax = _amount()
    city_tax = _amount()
    service_tax = _amount()
    total_taxes = _amount()
    tax_rate = serializers.DecimalField(max_digits=4, decimal_places=2, read_only=True)


class FeeBreakdownSerializer(serializers.Serializer):
    service_fee = _amount()
    cleaning_fee = _amount()
    resort_fee = _amount()
    total_fees = _amount()


class DiscountBreakdownSerializer(serializers.Serializer):
    early_booking_discount = _amount()
    length_of_stay_discount = _amount()
    loyalty_discount = _amount()
    promotional_discount = _amount()
    total_discounts = _amount()


class RateBreakdownSerializer(serializers.Serializer):
    base_amount = _amount()
    taxes = TaxBreakdownSerializer(read_only=True)
    fees = FeeBreakdownSerializer(read_only=True)
    discounts = DiscountBreakdownSerializer(read_only=True)
    total_amount = _amount()
    currency = serializers.CharField(read_only=True)
    average_nightly_rate = _amount()
    deposit_amount = _amount()
    deposit_percentage = serializers.DecimalField(max_digits=4, decimal_places=2, read_only=True)
    balance_due = _amount()


class QuoteRequestSerializer(serializers.Serializer):
    """Stay to price. Range checks on nights and guests happen in the calculator."""

    room_type = serializers.PrimaryKeyRelatedField(
        queryset=RoomType.objects.select_related("hotel").filter(status=RoomType.Status.ACTIVE),
    )
    check_in = serializers.DateField()
    check_out = serializers.DateField()
    adults = serializers.IntegerField(default=2)
    children = serializers.IntegerField(default=0)
    rate_plan_type = serializers.ChoiceField(
        choices=[plan.value for plan in RatePlanType],
        default=RatePlanType.FLEXIBLE.value,
    )
    currency = serializers.ChoiceField(choices=SUPPORTED_CURRENCIES, default="USD")


class CurrencyRatesQuerySerializer(serializers.Serializer):
    base = serializers.ChoiceField(choices=SUPPORTED_CURRENCIES, default="USD")
