"""Hotel lookups shared by the booking contexts."""

from __future__ import annotations

import uuid

from django.conf import settings  # type: ignore
from django.shortcuts import get_object_or_404  # type: ignore

from .models import Hotel


def resolve_hotel(identifier) -> Hotel:
    """Return the active hotel addressed by UUID or slug, or raise Http404."""

    queryset = Hotel.objects.filter(is_active=True)
    try:
        hotel_id = uuid.UUID(str(identifier))
    except ValueError:
        return get_object_or_404(queryset, slug=str(identifier))
    return get_object_or_404(queryset, pk=hotel_id)


def get_hotel_tax_regions() -> dict[str, str]:
    """Hotel id -> tax region, configured ids first, catalog rows on top."""

    regions = {str(key): value for key, value in getattr(settings, "HOTEL_TAX_REGIONS", {}).items()}
    for hotel_id, region in Hotel.objects.values_list("id", "tax_region"):
        regions[str(hotel_id)] = region
    return regions
