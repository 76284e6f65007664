"""Admin registration for exchange rates."""

from __future__ import annotations

from django.contrib import admin

from .models import CurrencyRate


@admin.register(CurrencyRate)
class CurrencyRateAdmin(admin.ModelAdmin):
    list_display = ("base_currency", "target_currency", "rate", "effective_date", "source")
    list_filter = ("base_currency", "target_currency", "source")
    date_hierarchy = "effective_date"
