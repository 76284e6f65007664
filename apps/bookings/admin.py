"""Admin registration for bookings."""

from __future__ import annotations

from django.contrib import admin

from .models import Booking


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = (
        "confirmation_number",
        "hotel",
        "room_type",
        "guest_email",
        "status",
        "payment_status",
        "check_in",
        "check_out",
        "total_amount",
        "created_at",
    )
    list_filter = ("status", "payment_status", "hotel", "check_in")
    search_fields = ("confirmation_number", "guest_email", "guest_last_name", "hold_id")
    readonly_fields = (
        "confirmation_number",
        "hold_id",
        "base_amount",
        "taxes_amount",
        "fees_amount",
        "discounts_amount",
        "total_amount",
        "deposit_amount",
        "created_at",
        "updated_at",
    )
