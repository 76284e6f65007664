"""Exchange-rate storage."""

from __future__ import annotations

from django.db import models  # type: ignore
from django.utils import timezone  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class CurrencyRate(models.Model):
    """Daily multiplier from a base currency to a target currency."""

    base_currency = models.CharField(max_length=3, default="USD")
    target_currency = models.CharField(max_length=3)
    rate = models.DecimalField(max_digits=12, decimal_places=6)
    effective_date = models.DateField(default=timezone.localdate)
    source = models.CharField(max_length=32, default="manual")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "currency_rates"
        verbose_name = _("Currency rate")
        verbose_name_plural = _("Currency rates")
        ordering = ["-effective_date", "target_currency"]
        constraints = [
            models.UniqueConstraint(
                fields=["base_currency", "target_currency", "effective_date"],
                name="currency_rate_unique_per_day",
            ),
            models.CheckConstraint(condition=models.Q(rate__gt=0), name="currency_rate_positive"),
        ]

    def __str__(self) -> str:
        return f"{self.base_currency}->{self.target_currency} {self.rate} ({self.effective_date})"
