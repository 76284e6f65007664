"""Read-only API for the hotel catalog."""

from __future__ import annotations

from django_filters.rest_framework import DjangoFilterBackend  # type: ignore
from rest_framework import permissions, viewsets  # type: ignore
from rest_framework.filters import OrderingFilter  # type: ignore

from .filters import HotelFilterSet
from .models import Hotel
from .serializers import HotelSerializer


class HotelViewSet(viewsets.ReadOnlyModelViewSet):
    """Active hotels with their room types, addressed by slug."""

    queryset = Hotel.objects.filter(is_active=True).prefetch_related("room_types")
    serializer_class = HotelSerializer
    permission_classes = [permissions.AllowAny]
    lookup_field = "slug"
    filter_backends = [DjangoFilterBackend, OrderingFilter]
    filterset_class = HotelFilterSet
    ordering_fields = ["name", "city"]
