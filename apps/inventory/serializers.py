"""Serializers for availability, holds and inventory reports."""

from __future__ import annotations

from django.conf import settings  # type: ignore
from rest_framework import serializers  # type: ignore

from apps.hotels.models import RoomType
from apps.pricing.domain.rate_calculator import RatePlanType
from shared.domain.value_objects import SUPPORTED_CURRENCIES


class AvailabilityRequestSerializer(serializers.Serializer):
    """Search request; ``hotel`` accepts a hotel id or slug."""

    hotel = serializers.CharField(max_length=200)
    room_type = serializers.UUIDField(required=False, allow_null=True)
    check_in = serializers.DateField()
    check_out = serializers.DateField()
    rooms = serializers.IntegerField(min_value=1, default=1)
    adults = serializers.IntegerField(default=2)
    children = serializers.IntegerField(default=0)
    currency = serializers.ChoiceField(choices=SUPPORTED_CURRENCIES, default="USD")
    rate_plan_type = serializers.ChoiceField(
        choices=[plan.value for plan in RatePlanType],
        default=RatePlanType.FLEXIBLE.value,
    )

    def validate(self, attrs):  # type: ignore
        if attrs["check_in"] >= attrs["check_out"]:
            raise serializers.ValidationError("Check-out must be after check-in.")
        return attrs


class InventoryRestrictionSerializer(serializers.Serializer):
    type = serializers.CharField(source="type.value")
    value = serializers.IntegerField(allow_null=True)
    message = serializers.CharField()
    active = serializers.BooleanField()


class InventoryStatusSerializer(serializers.Serializer):
    room_type_id = serializers.CharField()
    total_inventory = serializers.IntegerField()
    available_rooms = serializers.IntegerField()
    blocked_rooms = serializers.IntegerField()
    maintenance_rooms = serializers.IntegerField()
    held_rooms = serializers.IntegerField()
    net_available = serializers.IntegerField()
    oversell_limit = serializers.IntegerField()
    can_book_rooms = serializers.IntegerField()
    hold_capacity = serializers.IntegerField()
    restrictions = InventoryRestrictionSerializer(many=True)


class InventoryAlertSerializer(serializers.Serializer):
    type = serializers.CharField(source="type.value")
    severity = serializers.CharField(source="severity.value")
    message = serializers.CharField()
    room_type_id = serializers.CharField()
    date = serializers.DateField()


class BookingHoldSerializer(serializers.Serializer):
    hold_id = serializers.CharField()
    room_type_id = serializers.CharField()
    check_in_date = serializers.DateField()
    check_out_date = serializers.DateField()
    room_count = serializers.IntegerField()
    expires_at = serializers.DateTimeField()
    status = serializers.CharField(source="status.value")
    created_at = serializers.DateTimeField(allow_null=True)
    released_at = serializers.DateTimeField(allow_null=True)
    converted_at = serializers.DateTimeField(allow_null=True)
    booking_id = serializers.CharField(allow_null=True)


class HoldCreateSerializer(serializers.Serializer):
    room_type_id = serializers.PrimaryKeyRelatedField(
        queryset=RoomType.objects.filter(status=RoomType.Status.ACTIVE),
    )
    check_in_date = serializers.DateField()
    check_out_date = serializers.DateField()
    room_count = serializers.IntegerField(min_value=1, default=1)
    expires_in_minutes = serializers.IntegerField(min_value=1, max_value=60, required=False)

    def validate(self, attrs):  # type: ignore
        if attrs["check_in_date"] >= attrs["check_out_date"]:
            raise serializers.ValidationError("Check-out must be after check-in.")
        attrs.setdefault("expires_in_minutes", settings.BOOKING_HOLD_TIMEOUT_MINUTES)
        return attrs


class InventorySummaryQuerySerializer(serializers.Serializer):
    hotel = serializers.CharField(max_length=200)
    date = serializers.DateField(required=False)


class InventorySummarySerializer(serializers.Serializer):
    hotel_id = serializers.CharField()
    date = serializers.DateField()
    total_rooms = serializers.IntegerField()
    available_rooms = serializers.IntegerField()
    occupied_rooms = serializers.IntegerField()
    blocked_rooms = serializers.IntegerField()
    maintenance_rooms = serializers.IntegerField()
    held_rooms = serializers.IntegerField()
    occupancy_rate = serializers.DecimalField(max_digits=5, decimal_places=4)
