"""Admin registrations for inventory."""

from __future__ import annotations

from django.contrib import admin

from .models import BookingHold, InventoryBlock, RoomRestriction


@admin.register(InventoryBlock)
class InventoryBlockAdmin(admin.ModelAdmin):
    list_display = ("room_type", "start_date", "end_date", "rooms_blocked", "reason")
    list_filter = ("reason", "room_type__hotel")
    search_fields = ("room_type__name", "note")


@admin.register(RoomRestriction)
class RoomRestrictionAdmin(admin.ModelAdmin):
    list_display = ("room_type", "restriction_type", "value", "start_date", "end_date", "active")
    list_filter = ("restriction_type", "active")


@admin.register(BookingHold)
class BookingHoldAdmin(admin.ModelAdmin):
    list_display = ("hold_id", "room_type", "check_in_date", "check_out_date", "room_count", "status", "expires_at")
    list_filter = ("status",)
    search_fields = ("hold_id",)
    readonly_fields = ("hold_id", "created_at", "released_at", "converted_at", "booking")
