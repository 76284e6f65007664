"""URL routing for the booking domain."""

from __future__ import annotations

from django.urls import include, path  # type: ignore
from rest_framework.routers import DefaultRouter  # type: ignore

from .views import (
    BookingSessionExtendView,
    BookingSessionHoldDetailView,
    BookingSessionHoldView,
    BookingSessionView,
    BookingViewSet,
)

router = DefaultRouter()
router.register(r"", BookingViewSet, basename="booking")

urlpatterns = [
    path("session/", BookingSessionView.as_view(), name="booking-session"),
    path("session/extend/", BookingSessionExtendView.as_view(), name="booking-session-extend"),
    path("session/hold/", BookingSessionHoldView.as_view(), name="booking-session-hold"),
    path(
        "session/hold/<str:hold_id>/",
        BookingSessionHoldDetailView.as_view(),
        name="booking-session-hold-detail",
    ),
    path("", include(router.urls)),
]
