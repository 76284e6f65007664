"""ORM-backed inventory store and manager wiring."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import date, datetime

from django.core.exceptions import ValidationError  # type: ignore
from django.db import transaction  # type: ignore
from django.db.utils import NotSupportedError  # type: ignore

from apps.hotels.models import RoomType
from apps.inventory.domain.availability import (
    AvailabilityManager,
    BlockRecord,
    BookingHold,
    HoldStatus,
    InventoryError,
    RestrictionRecord,
    RestrictionType,
    RoomTypeRecord,
)
from shared.domain.clock import Clock, system_clock
from shared.domain.value_objects import DateRange

from .models import BookingHold as BookingHoldModel
from .models import InventoryBlock, RoomRestriction

logger = logging.getLogger(__name__)


def _lock_queryset_if_possible(queryset):
    """Apply select_for_update when inside transaction.atomic()."""

    if not transaction.get_connection().in_atomic_block:
        return queryset

    try:
        return queryset.select_for_update()
    except NotSupportedError:
        return queryset


def _hold_from_model(record: BookingHoldModel) -> BookingHold:
    return BookingHold(
        hold_id=record.hold_id,
        room_type_id=str(record.room_type_id),
        check_in_date=record.check_in_date,
        check_out_date=record.check_out_date,
        room_count=record.room_count,
        expires_at=record.expires_at,
        status=HoldStatus(record.status),
        created_at=record.created_at,
        released_at=record.released_at,
        converted_at=record.converted_at,
        booking_id=str(record.booking_id) if record.booking_id else None,
    )


def _room_type_record(room_type: RoomType) -> RoomTypeRecord:
    return RoomTypeRecord(
        id=str(room_type.id),
        hotel_id=str(room_type.hotel_id),
        total_inventory=room_type.total_inventory,
        oversell_rate=room_type.oversell_rate,
    )


class DjangoInventoryStore:
    """InventoryStore over the hotels, inventory and bookings tables."""

    def list_room_types(self, hotel_id, room_type_id=None) -> list[RoomTypeRecord]:
        queryset = RoomType.objects.filter(hotel_id=hotel_id, status=RoomType.Status.ACTIVE)
        if room_type_id:
            queryset = queryset.filter(pk=room_type_id)
        return [_room_type_record(room_type) for room_type in queryset.order_by("base_price")]

    def get_room_type(self, room_type_id) -> RoomTypeRecord:
        """Active room type by id; inactive ones cannot be held."""
        try:
            room_type = RoomType.objects.get(pk=room_type_id, status=RoomType.Status.ACTIVE)
        except (RoomType.DoesNotExist, ValidationError, ValueError) as exc:
            raise InventoryError(f"Unknown room type {room_type_id}") from exc
        return _room_type_record(room_type)

    def booked_rooms(self, room_type_id, check_in: date, check_out: date) -> int:
        """Peak number of rooms taken by live bookings on any night of the stay."""

        from apps.bookings.models import Booking  # Local import to prevent circular dependency

        stays = list(
            Booking.objects.filter(
                room_type_id=room_type_id,
                status__in=(Booking.Status.PENDING, Booking.Status.CONFIRMED),
                check_in__lt=check_out,
                check_out__gt=check_in,
            ).values_list("check_in", "check_out", "rooms")
        )
        if not stays:
            return 0

        peak = 0
        for night in DateRange(check_in, check_out).nights():
            taken = sum(rooms for start, end, rooms in stays if start <= night < end)
            peak = max(peak, taken)
        return peak

    def blocks(self, room_type_id, check_in: date, check_out: date) -> list[BlockRecord]:
        queryset = InventoryBlock.objects.filter(
            room_type_id=room_type_id,
            start_date__lt=check_out,
            end_date__gte=check_in,
        )
        return [
            BlockRecord(
                room_type_id=str(block.room_type_id),
                start_date=block.start_date,
                end_date=block.end_date,
                rooms_blocked=block.rooms_blocked,
                reason=block.reason,
            )
            for block in queryset
        ]

    def restrictions(self, room_type_id, check_in: date, check_out: date) -> list[RestrictionRecord]:
        queryset = RoomRestriction.objects.filter(
            room_type_id=room_type_id,
            start_date__lt=check_out,
            end_date__gte=check_in,
        )
        return [
            RestrictionRecord(
                room_type_id=str(restriction.room_type_id),
                restriction_type=RestrictionType(restriction.restriction_type),
                start_date=restriction.start_date,
                end_date=restriction.end_date,
                value=restriction.value,
                description=restriction.description,
                active=restriction.active,
            )
            for restriction in queryset
        ]

    def active_holds(self, room_type_id, now: datetime, check_in=None, check_out=None) -> list[BookingHold]:
        queryset = BookingHoldModel.objects.filter(
            status=BookingHoldModel.Status.ACTIVE,
            expires_at__gt=now,
        )
        if room_type_id:
            queryset = queryset.filter(room_type_id=room_type_id)
        if check_in and check_out:
            queryset = queryset.filter(check_in_date__lt=check_out, check_out_date__gt=check_in)
        return [_hold_from_model(record) for record in queryset]

    @contextmanager
    def locked(self, room_type_id):
        """Serialize hold placement per room type."""

        with transaction.atomic():
            list(_lock_queryset_if_possible(RoomType.objects.filter(pk=room_type_id)))
            yield

    def add_hold(self, hold: BookingHold) -> None:
        BookingHoldModel.objects.create(
            hold_id=hold.hold_id,
            room_type_id=hold.room_type_id,
            check_in_date=hold.check_in_date,
            check_out_date=hold.check_out_date,
            room_count=hold.room_count,
            expires_at=hold.expires_at,
            status=hold.status.value,
            created_at=hold.created_at,
        )

    def get_hold(self, hold_id: str) -> BookingHold | None:
        record = BookingHoldModel.objects.filter(hold_id=hold_id).first()
        return _hold_from_model(record) if record else None

    def release_hold(self, hold_id: str, released_at: datetime) -> bool:
        with transaction.atomic():
            holds = BookingHoldModel.objects.filter(hold_id=hold_id)
            if not holds.exists():
                return False
            holds.filter(status=BookingHoldModel.Status.ACTIVE).update(
                status=BookingHoldModel.Status.EXPIRED,
                released_at=released_at,
            )
        return True

    def convert_hold(self, hold_id: str, booking_id: str, converted_at: datetime) -> bool:
        with transaction.atomic():
            updated = BookingHoldModel.objects.filter(
                hold_id=hold_id,
                status=BookingHoldModel.Status.ACTIVE,
                expires_at__gt=converted_at,
            ).update(
                status=BookingHoldModel.Status.CONVERTED,
                booking_id=booking_id,
                converted_at=converted_at,
            )
        return updated == 1

    def expire_holds(self, now: datetime, hold_id: str | None = None) -> int:
        queryset = BookingHoldModel.objects.filter(
            status=BookingHoldModel.Status.ACTIVE,
            expires_at__lte=now,
        )
        if hold_id:
            queryset = queryset.filter(hold_id=hold_id)
        return queryset.update(status=BookingHoldModel.Status.EXPIRED, released_at=now)


def get_availability_manager(clock: Clock = system_clock) -> AvailabilityManager:
    return AvailabilityManager(DjangoInventoryStore(), clock=clock)
