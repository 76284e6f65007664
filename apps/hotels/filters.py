"""FilterSet definitions for the hotel catalog."""

from __future__ import annotations

import django_filters  # type: ignore

from .models import Hotel


class HotelFilterSet(django_filters.FilterSet):
    city = django_filters.CharFilter(field_name="city", lookup_expr="icontains")
    tax_region = django_filters.CharFilter(field_name="tax_region", lookup_expr="exact")
    guests = django_filters.NumberFilter(method="filter_guests")

    class Meta:
        model = Hotel
        fields = ["city", "tax_region"]

    def filter_guests(self, queryset, name, value):  # type: ignore
        return queryset.filter(
            room_types__status="active",
            room_types__max_occupancy__gte=int(value),
        ).distinct()
