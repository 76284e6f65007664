"""URL routing for pricing."""

from __future__ import annotations

from django.urls import path  # type: ignore

from .views import CurrencyRatesView, QuoteView

urlpatterns = [
    path("quote/", QuoteView.as_view(), name="pricing-quote"),
    path("currency-rates/", CurrencyRatesView.as_view(), name="pricing-currency-rates"),
]
