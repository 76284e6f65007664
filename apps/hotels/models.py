"""Hotel catalog models."""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.core.validators import MaxValueValidator, MinValueValidator  # type: ignore
from django.db import models  # type: ignore
from django.utils.text import slugify  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class Hotel(models.Model):
    """A hotel of the group."""

    class TaxRegion(models.TextChoices):
        JERUSALEM = "jerusalem", _("Jerusalem")
        BETHLEHEM = "bethlehem", _("Bethlehem")
        DEFAULT = "default", _("Default")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=200)
    slug = models.SlugField(max_length=200, unique=True, blank=True)
    city = models.CharField(max_length=100, blank=True)
    tax_region = models.CharField(
        max_length=20,
        choices=TaxRegion.choices,
        default=TaxRegion.DEFAULT,
        help_text=_("Region used to pick the VAT rate."),
    )
    currency = models.CharField(max_length=3, default="USD")
    contact_email = models.EmailField(blank=True)
    contact_phone = models.CharField(max_length=32, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "hotels"
        verbose_name = _("Hotel")
        verbose_name_plural = _("Hotels")
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name

    def save(self, *args, **kwargs):  # type: ignore
        if not self.slug:
            self.slug = slugify(self.name)[:200]
        super().save(*args, **kwargs)


class RoomType(models.Model):
    """A sellable room category with its inventory size."""

    class Status(models.TextChoices):
        ACTIVE = "active", _("Active")
        INACTIVE = "inactive", _("Inactive")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    hotel = models.ForeignKey(
        Hotel,
        on_delete=models.CASCADE,
        related_name="room_types",
    )
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    base_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        help_text=_("Nightly rate in USD before taxes and fees."),
    )
    max_occupancy = models.PositiveSmallIntegerField(default=2)
    total_inventory = models.PositiveIntegerField(default=0)
    oversell_rate = models.DecimalField(
        max_digits=4,
        decimal_places=2,
        default=Decimal("0.10"),
        validators=[MinValueValidator(Decimal("0")), MaxValueValidator(Decimal("1"))],
        help_text=_("Share of total inventory that may be sold beyond free rooms."),
    )
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.ACTIVE,
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "room_types"
        verbose_name = _("Room type")
        verbose_name_plural = _("Room types")
        ordering = ["hotel", "base_price"]

    def __str__(self) -> str:
        return f"{self.hotel.name}: {self.name}"
