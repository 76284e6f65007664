"""URL routing for inventory."""

from __future__ import annotations

from django.urls import path  # type: ignore

from .views import AvailabilityView, HoldDetailView, HoldListCreateView, InventorySummaryView

urlpatterns = [
    path("availability/", AvailabilityView.as_view(), name="inventory-availability"),
    path("holds/", HoldListCreateView.as_view(), name="inventory-hold-list"),
    path("holds/<str:hold_id>/", HoldDetailView.as_view(), name="inventory-hold-detail"),
    path("summary/", InventorySummaryView.as_view(), name="inventory-summary"),
]
