"""API views for availability search and booking holds."""

from __future__ import annotations

import logging

from django.utils import timezone  # type: ignore
from rest_framework import permissions, status  # type: ignore
from rest_framework.exceptions import NotFound  # type: ignore
from rest_framework.response import Response  # type: ignore
from rest_framework.views import APIView  # type: ignore

from apps.hotels.models import RoomType
from apps.hotels.serializers import RoomTypeSerializer
from apps.hotels.services import resolve_hotel
from apps.inventory.domain.availability import InventoryQuery
from apps.pricing.serializers import RateBreakdownSerializer
from apps.pricing.services import build_rate_calculator, quote_room_type

from .serializers import (
    AvailabilityRequestSerializer,
    BookingHoldSerializer,
    HoldCreateSerializer,
    InventoryAlertSerializer,
    InventoryRestrictionSerializer,
    InventoryStatusSerializer,
    InventorySummaryQuerySerializer,
    InventorySummarySerializer,
)
from .services import get_availability_manager

logger = logging.getLogger(__name__)


class AvailabilityView(APIView):
    """Inventory for a stay plus priced offers for every bookable room type."""

    permission_classes = [permissions.AllowAny]

    def post(self, request):  # type: ignore
        serializer = AvailabilityRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        hotel = resolve_hotel(data["hotel"])

        result = get_availability_manager().check_availability(
            InventoryQuery(
                hotel_id=str(hotel.id),
                room_type_id=str(data["room_type"]) if data.get("room_type") else None,
                check_in_date=data["check_in"],
                check_out_date=data["check_out"],
                rooms_requested=data["rooms"],
            )
        )

        bookable = {
            status_.room_type_id: status_.hold_capacity
            for status_ in result.inventory
            if status_.hold_capacity >= data["rooms"]
        }
        room_types = RoomType.objects.select_related("hotel").filter(pk__in=list(bookable))
        calculator = build_rate_calculator()
        offers = []
        for room_type in room_types:
            breakdown = quote_room_type(
                room_type,
                data["check_in"],
                data["check_out"],
                adults=data["adults"],
                children=data["children"],
                rate_plan_type=data["rate_plan_type"],
                currency=data["currency"],
                calculator=calculator,
            )
            offers.append(
                {
                    "room_type": RoomTypeSerializer(room_type).data,
                    "hold_capacity": bookable[str(room_type.id)],
                    "rate": RateBreakdownSerializer(breakdown).data,
                }
            )
        offers.sort(key=lambda offer: int(offer["rate"]["total_amount"]))

        return Response(
            {
                "hotel_id": str(hotel.id),
                "available": result.available,
                "inventory": InventoryStatusSerializer(result.inventory, many=True).data,
                "alerts": InventoryAlertSerializer(result.alerts, many=True).data,
                "restrictions": InventoryRestrictionSerializer(result.restrictions, many=True).data,
                "offers": offers,
            }
        )


class HoldListCreateView(APIView):
    permission_classes = [permissions.AllowAny]

    def post(self, request):  # type: ignore
        serializer = HoldCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        hold = get_availability_manager().reserve_hold(
            str(data["room_type_id"].pk),
            data["check_in_date"],
            data["check_out_date"],
            data["room_count"],
            data["expires_in_minutes"],
        )
        return Response({"hold": BookingHoldSerializer(hold).data}, status=status.HTTP_201_CREATED)


class HoldDetailView(APIView):
    permission_classes = [permissions.AllowAny]

    def get(self, request, hold_id: str):  # type: ignore
        hold = get_availability_manager().get_hold(hold_id)
        if hold is None:
            raise NotFound("Hold not found.")
        return Response({"hold": BookingHoldSerializer(hold).data})

    def delete(self, request, hold_id: str):  # type: ignore
        if not get_availability_manager().release_booking_hold(hold_id):
            raise NotFound("Hold not found.")
        return Response(status=status.HTTP_204_NO_CONTENT)


class InventorySummaryView(APIView):
    """One-night occupancy snapshot for hotel staff."""

    permission_classes = [permissions.IsAdminUser]

    def get(self, request):  # type: ignore
        serializer = InventorySummaryQuerySerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        hotel = resolve_hotel(serializer.validated_data["hotel"])
        on = serializer.validated_data.get("date") or timezone.localdate()
        summary = get_availability_manager().get_inventory_summary(str(hotel.id), on)
        return Response(InventorySummarySerializer(summary).data)
