"""Serializers for the hotel catalog."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from .models import Hotel, RoomType


class RoomTypeSerializer(serializers.ModelSerializer):
    hotel_id = serializers.ReadOnlyField(source="hotel.id")

    class Meta:
        model = RoomType
        fields = [
            "id",
            "hotel_id",
            "name",
            "description",
            "base_price",
            "max_occupancy",
            "total_inventory",
            "status",
        ]
        read_only_fields = fields


class HotelSerializer(serializers.ModelSerializer):
    room_types = serializers.SerializerMethodField()

    class Meta:
        model = Hotel
        fields = [
            "id",
            "name",
            "slug",
            "city",
            "tax_region",
            "currency",
            "contact_email",
            "contact_phone",
            "room_types",
        ]
        read_only_fields = fields

    def get_room_types(self, obj: Hotel):  # type: ignore
        active = [room for room in obj.room_types.all() if room.status == RoomType.Status.ACTIVE]
        return RoomTypeSerializer(active, many=True).data
