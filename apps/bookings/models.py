"""Booking models for the Ambassador hotel group."""

from __future__ import annotations

import secrets
import uuid
from decimal import Decimal

from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class Booking(models.Model):
    """A confirmed stay, created from a booking hold."""

    class Status(models.TextChoices):
        PENDING = "pending", _("Pending")
        CONFIRMED = "confirmed", _("Confirmed")
        CANCELLED = "cancelled", _("Cancelled")
        COMPLETED = "completed", _("Completed")

    class PaymentStatus(models.TextChoices):
        PENDING = "pending", _("Pending")
        PARTIAL = "partial", _("Deposit paid")
        PAID = "paid", _("Paid")
        REFUNDED = "refunded", _("Refunded")

    ACTIVE_STATUSES = (Status.PENDING, Status.CONFIRMED)

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    confirmation_number = models.CharField(max_length=8, unique=True, editable=False)
    hotel = models.ForeignKey(
        "hotels.Hotel",
        on_delete=models.PROTECT,
        related_name="bookings",
    )
    room_type = models.ForeignKey(
        "hotels.RoomType",
        on_delete=models.PROTECT,
        related_name="bookings",
    )
    hold_id = models.CharField(max_length=64, blank=True, db_index=True)
    guest_first_name = models.CharField(max_length=100)
    guest_last_name = models.CharField(max_length=100)
    guest_email = models.EmailField(db_index=True)
    guest_phone = models.CharField(max_length=32, blank=True)
    special_requests = models.TextField(blank=True)
    check_in = models.DateField()
    check_out = models.DateField()
    adults = models.PositiveSmallIntegerField(default=1)
    children = models.PositiveSmallIntegerField(default=0)
    rooms = models.PositiveSmallIntegerField(default=1)
    rate_plan_type = models.CharField(max_length=20, default="flexible")
    currency = models.CharField(max_length=3, default="USD")
    base_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0"))
    taxes_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0"))
    fees_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0"))
    discounts_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0"))
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0"))
    deposit_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0"))
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.PENDING,
    )
    payment_status = models.CharField(
        max_length=20,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING,
    )
    cancellation_reason = models.CharField(max_length=255, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "bookings"
        verbose_name = _("Booking")
        verbose_name_plural = _("Bookings")
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(check_out__gt=models.F("check_in")),
                name="booking_valid_dates",
            ),
        ]
        indexes = [
            models.Index(fields=["room_type", "check_in", "check_out"]),
            models.Index(fields=["status"]),
        ]

    def __str__(self) -> str:
        return f"Booking {self.confirmation_number} at {self.hotel_id}"

    def save(self, *args, **kwargs):  # type: ignore
        if self._state.adding and not self.confirmation_number:
            self.confirmation_number = self.generate_confirmation_number()
        super().save(*args, **kwargs)

    @staticmethod
    def generate_confirmation_number() -> str:
        return secrets.token_hex(4).upper()

    @property
    def nights(self) -> int:
        return (self.check_out - self.check_in).days

    @property
    def guest_name(self) -> str:
        return f"{self.guest_first_name} {self.guest_last_name}".strip()
