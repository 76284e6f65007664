"""Admin registrations for the hotel catalog."""

from __future__ import annotations

from django.contrib import admin

from .models import Hotel, RoomType


class RoomTypeInline(admin.TabularInline):
    model = RoomType
    extra = 0
    fields = ("name", "base_price", "max_occupancy", "total_inventory", "oversell_rate", "status")


@admin.register(Hotel)
class HotelAdmin(admin.ModelAdmin):
    list_display = ("name", "city", "tax_region", "currency", "is_active")
    list_filter = ("tax_region", "is_active")
    search_fields = ("name", "slug", "city")
    prepopulated_fields = {"slug": ("name",)}
    inlines = [RoomTypeInline]


@admin.register(RoomType)
class RoomTypeAdmin(admin.ModelAdmin):
    list_display = ("name", "hotel", "base_price", "total_inventory", "oversell_rate", "status")
    list_filter = ("status", "hotel")
    search_fields = ("name", "hotel__name")
