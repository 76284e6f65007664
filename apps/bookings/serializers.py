"""Serializers for the booking domain."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from apps.pricing.domain.rate_calculator import RatePlanType
from shared.domain.value_objects import SUPPORTED_CURRENCIES

from .models import Booking
from .session import BookingStep


class BookingCreateSerializer(serializers.Serializer):
    """Guest details submitted to turn a hold into a booking."""

    hold_id = serializers.CharField(max_length=64)
    guest_first_name = serializers.CharField(max_length=100)
    guest_last_name = serializers.CharField(max_length=100)
    guest_email = serializers.EmailField()
    guest_phone = serializers.CharField(max_length=32, required=False, allow_blank=True, default="")
    special_requests = serializers.CharField(required=False, allow_blank=True, default="")
    adults = serializers.IntegerField()
    children = serializers.IntegerField(default=0)
    rate_plan_type = serializers.ChoiceField(
        choices=[plan.value for plan in RatePlanType],
        default=RatePlanType.FLEXIBLE.value,
    )
    currency = serializers.ChoiceField(choices=SUPPORTED_CURRENCIES, default="USD")


class BookingSerializer(serializers.ModelSerializer):
    """Booking details returned to the guest."""

    hotel_id = serializers.ReadOnlyField(source="hotel.id")
    hotel_name = serializers.ReadOnlyField(source="hotel.name")
    room_type_id = serializers.ReadOnlyField(source="room_type.id")
    room_type_name = serializers.ReadOnlyField(source="room_type.name")
    nights = serializers.ReadOnlyField()
    base_amount = serializers.DecimalField(max_digits=12, decimal_places=0)
    taxes_amount = serializers.DecimalField(max_digits=12, decimal_places=0)
    fees_amount = serializers.DecimalField(max_digits=12, decimal_places=0)
    discounts_amount = serializers.DecimalField(max_digits=12, decimal_places=0)
    total_amount = serializers.DecimalField(max_digits=12, decimal_places=0)
    deposit_amount = serializers.DecimalField(max_digits=12, decimal_places=0)

    class Meta:
        model = Booking
        fields = [
            "id",
            "confirmation_number",
            "hotel_id",
            "hotel_name",
            "room_type_id",
            "room_type_name",
            "hold_id",
            "guest_first_name",
            "guest_last_name",
            "guest_email",
            "guest_phone",
            "special_requests",
            "check_in",
            "check_out",
            "nights",
            "adults",
            "children",
            "rooms",
            "rate_plan_type",
            "currency",
            "base_amount",
            "taxes_amount",
            "fees_amount",
            "discounts_amount",
            "total_amount",
            "deposit_amount",
            "status",
            "payment_status",
            "cancellation_reason",
            "cancelled_at",
            "created_at",
        ]
        read_only_fields = fields


class BookingLookupSerializer(serializers.Serializer):
    confirmation_number = serializers.CharField(max_length=8)
    email = serializers.EmailField()


class BookingCancelSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")


# ===== Booking session =====

class SearchCriteriaSerializer(serializers.Serializer):
    hotel_id = serializers.CharField(max_length=200)
    check_in_date = serializers.DateField()
    check_out_date = serializers.DateField()
    adults = serializers.IntegerField(min_value=1, default=2)
    children = serializers.IntegerField(min_value=0, default=0)
    rooms = serializers.IntegerField(min_value=1, default=1)
    currency = serializers.ChoiceField(choices=SUPPORTED_CURRENCIES, default="USD")

    def validate(self, attrs):  # type: ignore
        if attrs["check_in_date"] >= attrs["check_out_date"]:
            raise serializers.ValidationError("Check-out must be after check-in.")
        return attrs


class BookingSessionSerializer(serializers.Serializer):
    session_id = serializers.CharField()
    expires_at = serializers.DateTimeField()
    created_at = serializers.DateTimeField()
    step = serializers.CharField(source="step.value")
    search_criteria = SearchCriteriaSerializer(allow_null=True)
    hotel_id = serializers.CharField(allow_null=True)
    selected_room_type_id = serializers.CharField(allow_null=True)
    selected_rate_plan = serializers.CharField(allow_null=True)
    guest_details = serializers.DictField()
    booking_hold_id = serializers.CharField(allow_null=True)
    timeout_minutes = serializers.IntegerField(allow_null=True)


class SessionUpdateSerializer(serializers.Serializer):
    step = serializers.ChoiceField(choices=[step.value for step in BookingStep], required=False)
    search_criteria = SearchCriteriaSerializer(required=False)
    hotel_id = serializers.CharField(max_length=200, required=False, allow_null=True)
    selected_room_type_id = serializers.CharField(max_length=64, required=False, allow_null=True)
    selected_rate_plan = serializers.ChoiceField(
        choices=[plan.value for plan in RatePlanType],
        required=False,
        allow_null=True,
    )
    guest_details = serializers.DictField(required=False)


class SessionExtendSerializer(serializers.Serializer):
    minutes = serializers.IntegerField(min_value=1, max_value=120, default=30)


class SessionHoldSerializer(serializers.Serializer):
    room_type_id = serializers.CharField(max_length=64)
    check_in_date = serializers.DateField()
    check_out_date = serializers.DateField()
    room_count = serializers.IntegerField(min_value=1, default=1)

    def validate(self, attrs):  # type: ignore
        if attrs["check_in_date"] >= attrs["check_out_date"]:
            raise serializers.ValidationError("Check-out must be after check-in.")
        return attrs


class TimeoutWarningSerializer(serializers.Serializer):
    show_warning = serializers.BooleanField()
    minutes_remaining = serializers.IntegerField()


class SessionStatsSerializer(serializers.Serializer):
    session_age_minutes = serializers.IntegerField()
    time_remaining_minutes = serializers.IntegerField()
    step = serializers.CharField()
    has_holds = serializers.BooleanField()
