"""Inventory records: blocks, restrictions and booking holds."""

from __future__ import annotations

from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class InventoryBlock(models.Model):
    """Rooms taken out of sale for a period (end date inclusive)."""

    class Reason(models.TextChoices):
        MAINTENANCE = "maintenance", _("Maintenance")
        GROUP = "group", _("Group allotment")
        OWNER = "owner", _("Owner use")
        OTHER = "other", _("Other")

    room_type = models.ForeignKey(
        "hotels.RoomType",
        on_delete=models.CASCADE,
        related_name="inventory_blocks",
    )
    start_date = models.DateField()
    end_date = models.DateField()
    rooms_blocked = models.PositiveIntegerField(default=1)
    reason = models.CharField(max_length=20, choices=Reason.choices, default=Reason.OTHER)
    note = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "inventory_blocks"
        verbose_name = _("Inventory block")
        verbose_name_plural = _("Inventory blocks")
        ordering = ["start_date"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(end_date__gte=models.F("start_date")),
                name="inventory_block_valid_dates",
            ),
        ]
        indexes = [
            models.Index(fields=["room_type", "start_date", "end_date"]),
        ]

    def __str__(self) -> str:
        return f"{self.rooms_blocked} x {self.room_type_id} {self.start_date}..{self.end_date} ({self.reason})"


class RoomRestriction(models.Model):
    """Stay rule applied to a room type for a period (end date inclusive)."""

    class RestrictionType(models.TextChoices):
        MINIMUM_STAY = "minimum_stay", _("Minimum stay")
        MAXIMUM_STAY = "maximum_stay", _("Maximum stay")
        CLOSED_TO_ARRIVAL = "closed_to_arrival", _("Closed to arrival")
        CLOSED_TO_DEPARTURE = "closed_to_departure", _("Closed to departure")
        STOP_SELL = "stop_sell", _("Stop sell")

    room_type = models.ForeignKey(
        "hotels.RoomType",
        on_delete=models.CASCADE,
        related_name="restrictions",
    )
    restriction_type = models.CharField(max_length=32, choices=RestrictionType.choices)
    start_date = models.DateField()
    end_date = models.DateField()
    value = models.PositiveIntegerField(null=True, blank=True)
    description = models.CharField(max_length=255, blank=True)
    active = models.BooleanField(default=True)

    class Meta:
        db_table = "room_restrictions"
        verbose_name = _("Room restriction")
        verbose_name_plural = _("Room restrictions")
        ordering = ["start_date"]
        indexes = [
            models.Index(fields=["room_type", "start_date", "end_date"]),
        ]

    def __str__(self) -> str:
        return f"{self.restriction_type} {self.start_date}..{self.end_date}"


class BookingHold(models.Model):
    """Lease on rooms while a guest completes checkout."""

    class Status(models.TextChoices):
        ACTIVE = "active", _("Active")
        EXPIRED = "expired", _("Expired")
        CONVERTED = "converted", _("Converted")

    hold_id = models.CharField(max_length=64, unique=True)
    room_type = models.ForeignKey(
        "hotels.RoomType",
        on_delete=models.CASCADE,
        related_name="holds",
    )
    check_in_date = models.DateField()
    check_out_date = models.DateField()
    room_count = models.PositiveIntegerField(default=1)
    expires_at = models.DateTimeField()
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.ACTIVE)
    booking = models.ForeignKey(
        "bookings.Booking",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="holds",
    )
    created_at = models.DateTimeField()
    released_at = models.DateTimeField(null=True, blank=True)
    converted_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "booking_holds"
        verbose_name = _("Booking hold")
        verbose_name_plural = _("Booking holds")
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(check_out_date__gt=models.F("check_in_date")),
                name="booking_hold_valid_dates",
            ),
            models.CheckConstraint(condition=models.Q(room_count__gte=1), name="booking_hold_rooms_positive"),
        ]
        indexes = [
            models.Index(fields=["room_type", "status", "expires_at"]),
        ]

    def __str__(self) -> str:
        return f"{self.hold_id} ({self.status})"
