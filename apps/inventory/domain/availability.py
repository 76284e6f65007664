"""
Availability Manager

Derives room inventory for a stay and manages booking holds.

Inventory for a room type is computed per query from underlying records:
- available rooms: total inventory minus the peak rooms taken by bookings
- blocked rooms: non-maintenance inventory blocks touching the stay
- maintenance rooms: blocks with reason=maintenance
- held rooms: active, unexpired holds overlapping the stay

Key invariants:
- net_available and can_book_rooms are never negative
- a hold is only created if capacity is still there at insert time; the
  check and the insert run inside one store transaction with the room
  type locked
- releasing a hold and sweeping expired holds are idempotent

Blocks and restrictions are stored with an inclusive end date; holds and
bookings use a half-open [check_in, check_out) range.
"""

import logging
import math
import uuid
from contextlib import AbstractContextManager
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Callable, List, Optional, Protocol

from shared.domain.clock import Clock, system_clock
from shared.domain.value_objects import DateRange

logger = logging.getLogger(__name__)


class RestrictionType(str, Enum):
    MINIMUM_STAY = 'minimum_stay'
    MAXIMUM_STAY = 'maximum_stay'
    CLOSED_TO_ARRIVAL = 'closed_to_arrival'
    CLOSED_TO_DEPARTURE = 'closed_to_departure'
    STOP_SELL = 'stop_sell'


class AlertType(str, Enum):
    LOW_INVENTORY = 'low_inventory'
    OVERBOOKING_RISK = 'overbooking_risk'
    MAINTENANCE_CONFLICT = 'maintenance_conflict'
    RESTRICTION_VIOLATION = 'restriction_violation'


class AlertSeverity(str, Enum):
    INFO = 'info'
    WARNING = 'warning'
    CRITICAL = 'critical'


class HoldStatus(str, Enum):
    ACTIVE = 'active'
    EXPIRED = 'expired'
    CONVERTED = 'converted'


MAINTENANCE_REASON = 'maintenance'


class InventoryError(Exception):
    """Base error for inventory operations."""


class InsufficientInventoryError(InventoryError):
    """Raised when a hold would exceed the rooms that can still be sold."""

    def __init__(self, room_type_id: str, requested: int, available: int):
        self.room_type_id = room_type_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Room type {room_type_id}: requested {requested} room(s), {available} can be held"
        )


# ===== Store records =====

@dataclass(frozen=True)
class RoomTypeRecord:
    id: str
    hotel_id: str
    total_inventory: int
    oversell_rate: Decimal = Decimal('0.10')


@dataclass(frozen=True)
class BlockRecord:
    room_type_id: str
    start_date: date
    end_date: date
    rooms_blocked: int
    reason: str = ''


@dataclass(frozen=True)
class RestrictionRecord:
    room_type_id: str
    restriction_type: RestrictionType
    start_date: date
    end_date: date
    value: Optional[int] = None
    description: str = ''
    active: bool = True


# ===== Query results =====

@dataclass(frozen=True)
class InventoryQuery:
    hotel_id: str
    check_in_date: date
    check_out_date: date
    rooms_requested: int = 1
    room_type_id: Optional[str] = None


@dataclass(frozen=True)
class InventoryRestriction:
    type: RestrictionType
    message: str
    active: bool
    value: Optional[int] = None


@dataclass(frozen=True)
class InventoryStatus:
    room_type_id: str
    total_inventory: int
    available_rooms: int
    blocked_rooms: int
    maintenance_rooms: int
    held_rooms: int
    net_available: int
    oversell_limit: int
    can_book_rooms: int
    restrictions: List[InventoryRestriction] = field(default_factory=list)

    @property
    def hold_capacity(self) -> int:
        """
        Rooms a new hold may still take

        Unlike net_available this does not clamp the shortfall at zero
        before adding the oversell allowance, so rooms already sold into
        the oversell margin are not offered again.
        """
        raw = self.available_rooms - self.blocked_rooms - self.maintenance_rooms - self.held_rooms
        return max(0, min(raw + self.oversell_limit, self.total_inventory))

    @property
    def occupancy_rate(self) -> Decimal:
        if self.total_inventory <= 0:
            return Decimal('0')
        return Decimal(self.total_inventory - self.net_available) / Decimal(self.total_inventory)


@dataclass(frozen=True)
class InventoryAlert:
    type: AlertType
    severity: AlertSeverity
    message: str
    room_type_id: str
    date: date


@dataclass(frozen=True)
class AvailabilityResult:
    available: bool
    inventory: List[InventoryStatus]
    alerts: List[InventoryAlert]
    restrictions: List[InventoryRestriction]


@dataclass(frozen=True)
class BookingHold:
    hold_id: str
    room_type_id: str
    check_in_date: date
    check_out_date: date
    room_count: int
    expires_at: datetime
    status: HoldStatus = HoldStatus.ACTIVE
    created_at: Optional[datetime] = None
    released_at: Optional[datetime] = None
    converted_at: Optional[datetime] = None
    booking_id: Optional[str] = None

    def is_expired(self, now: datetime) -> bool:
        """A hold lapses once its lease end is reached."""
        return self.expires_at <= now

    def is_live(self, now: datetime) -> bool:
        return self.status == HoldStatus.ACTIVE and not self.is_expired(now)


@dataclass(frozen=True)
class InventorySummary:
    hotel_id: str
    date: date
    total_rooms: int
    available_rooms: int
    occupied_rooms: int
    blocked_rooms: int
    maintenance_rooms: int
    held_rooms: int
    occupancy_rate: Decimal


class InventoryStore(Protocol):
    """Persistence operations the availability manager relies on."""

    def list_room_types(self, hotel_id: str, room_type_id: Optional[str] = None) -> List[RoomTypeRecord]:
        ...

    def get_room_type(self, room_type_id: str) -> RoomTypeRecord:
        ...

    def booked_rooms(self, room_type_id: str, check_in: date, check_out: date) -> int:
        ...

    def blocks(self, room_type_id: str, check_in: date, check_out: date) -> List[BlockRecord]:
        ...

    def restrictions(self, room_type_id: str, check_in: date, check_out: date) -> List[RestrictionRecord]:
        ...

    def active_holds(
        self,
        room_type_id: Optional[str],
        now: datetime,
        check_in: Optional[date] = None,
        check_out: Optional[date] = None,
    ) -> List[BookingHold]:
        ...

    def locked(self, room_type_id: str) -> AbstractContextManager:
        ...

    def add_hold(self, hold: BookingHold) -> None:
        ...

    def get_hold(self, hold_id: str) -> Optional[BookingHold]:
        ...

    def release_hold(self, hold_id: str, released_at: datetime) -> bool:
        ...

    def convert_hold(self, hold_id: str, booking_id: str, converted_at: datetime) -> bool:
        ...

    def expire_holds(self, now: datetime, hold_id: Optional[str] = None) -> int:
        ...


def generate_hold_id() -> str:
    return f"hold_{uuid.uuid4().hex}"


def restriction_message(restriction_type: RestrictionType, value: Optional[int] = None) -> str:
    """Standard guest-facing text for a restriction."""
    plural = '' if value == 1 else 's'
    if restriction_type == RestrictionType.MINIMUM_STAY:
        return f"Minimum stay of {value} night{plural} required"
    if restriction_type == RestrictionType.MAXIMUM_STAY:
        return f"Maximum stay of {value} night{plural} allowed"
    if restriction_type == RestrictionType.CLOSED_TO_ARRIVAL:
        return 'Closed to arrival on this date'
    if restriction_type == RestrictionType.CLOSED_TO_DEPARTURE:
        return 'Closed to departure on this date'
    if restriction_type == RestrictionType.STOP_SELL:
        return 'Not available for booking'
    return 'Booking restriction applies'


class AvailabilityManager:
    """
    Inventory and hold service

    Usage:
        manager = AvailabilityManager(store, clock=clock)
        result = manager.check_availability(query)
        hold_id = manager.create_booking_hold(room_type_id, check_in, check_out, 1)

    check_availability propagates store errors. The hold lifecycle methods
    used by the booking funnel (create/release/convert) never raise; they
    report failure through None/False and log the cause.
    """

    LOW_INVENTORY_THRESHOLD = 3
    OVERBOOKING_THRESHOLD = Decimal('0.95')
    DEFAULT_HOLD_MINUTES = 15

    def __init__(
        self,
        store: InventoryStore,
        clock: Clock = system_clock,
        id_factory: Callable[[], str] = generate_hold_id,
    ):
        self.store = store
        self.clock = clock
        self.id_factory = id_factory

    # ===== Availability =====

    def check_availability(self, query: InventoryQuery) -> AvailabilityResult:
        """
        Check inventory for a stay across one or all room types of a hotel

        Alerts and restrictions are informational and do not affect the
        available flag.
        """
        stay = DateRange(query.check_in_date, query.check_out_date)
        room_types = self.store.list_room_types(query.hotel_id, query.room_type_id)

        inventory: List[InventoryStatus] = []
        alerts: List[InventoryAlert] = []
        restrictions: List[InventoryRestriction] = []

        for room_type in room_types:
            status = self._build_status(room_type, stay)
            inventory.append(status)
            restrictions.extend(r for r in status.restrictions if r.active)
            alerts.extend(self.generate_alerts(status, stay.start_date))

        total_bookable = sum(status.can_book_rooms for status in inventory)

        return AvailabilityResult(
            available=total_bookable >= query.rooms_requested,
            inventory=inventory,
            alerts=alerts,
            restrictions=restrictions,
        )

    def get_room_type_inventory(self, room_type_id: str, check_in: date, check_out: date) -> InventoryStatus:
        room_type = self.store.get_room_type(room_type_id)
        return self._build_status(room_type, DateRange(check_in, check_out))

    def _build_status(self, room_type: RoomTypeRecord, stay: DateRange) -> InventoryStatus:
        total = max(0, room_type.total_inventory)
        check_in, check_out = stay.start_date, stay.end_date

        booked = self.store.booked_rooms(room_type.id, check_in, check_out)
        available_rooms = max(0, total - booked)

        blocked_rooms = 0
        maintenance_rooms = 0
        for block in self.store.blocks(room_type.id, check_in, check_out):
            if not stay.touches_period(block.start_date, block.end_date):
                continue
            if block.reason == MAINTENANCE_REASON:
                maintenance_rooms += block.rooms_blocked
            else:
                blocked_rooms += block.rooms_blocked

        now = self.clock.now()
        held_rooms = sum(
            hold.room_count
            for hold in self.store.active_holds(room_type.id, now, check_in, check_out)
            if hold.is_live(now)
        )

        restrictions = [
            InventoryRestriction(
                type=record.restriction_type,
                value=record.value,
                message=record.description or restriction_message(record.restriction_type, record.value),
                active=record.active,
            )
            for record in self.store.restrictions(room_type.id, check_in, check_out)
            if stay.touches_period(record.start_date, record.end_date)
        ]

        net_available = max(0, available_rooms - blocked_rooms - maintenance_rooms - held_rooms)
        oversell_limit = math.floor(total * room_type.oversell_rate)
        can_book_rooms = max(0, min(net_available + oversell_limit, total))

        return InventoryStatus(
            room_type_id=room_type.id,
            total_inventory=total,
            available_rooms=available_rooms,
            blocked_rooms=blocked_rooms,
            maintenance_rooms=maintenance_rooms,
            held_rooms=held_rooms,
            net_available=net_available,
            oversell_limit=oversell_limit,
            can_book_rooms=can_book_rooms,
            restrictions=restrictions,
        )

    def generate_alerts(self, status: InventoryStatus, on: date) -> List[InventoryAlert]:
        alerts: List[InventoryAlert] = []

        def alert(alert_type: AlertType, severity: AlertSeverity, message: str) -> None:
            alerts.append(InventoryAlert(
                type=alert_type,
                severity=severity,
                message=message,
                room_type_id=status.room_type_id,
                date=on,
            ))

        if 0 < status.net_available <= self.LOW_INVENTORY_THRESHOLD:
            plural = '' if status.net_available == 1 else 's'
            alert(AlertType.LOW_INVENTORY, AlertSeverity.WARNING, f"Only {status.net_available} room{plural} left!")

        if status.total_inventory > 0 and status.occupancy_rate >= self.OVERBOOKING_THRESHOLD:
            alert(AlertType.OVERBOOKING_RISK, AlertSeverity.CRITICAL, 'High occupancy - monitor for overbooking')

        if status.maintenance_rooms > 0:
            plural = '' if status.maintenance_rooms == 1 else 's'
            alert(
                AlertType.MAINTENANCE_CONFLICT,
                AlertSeverity.INFO,
                f"{status.maintenance_rooms} room{plural} under maintenance",
            )

        for restriction in status.restrictions:
            if restriction.active:
                alert(AlertType.RESTRICTION_VIOLATION, AlertSeverity.WARNING, restriction.message)

        return alerts

    # ===== Holds =====

    def reserve_hold(
        self,
        room_type_id: str,
        check_in: date,
        check_out: date,
        room_count: int,
        expires_in_minutes: int = DEFAULT_HOLD_MINUTES,
    ) -> BookingHold:
        """
        Place a hold after re-checking capacity under the room-type lock

        Raises:
            InsufficientInventoryError: If the rooms are no longer there
            InventoryError: For malformed requests or unknown room types
        """
        if room_count < 1:
            raise InventoryError('A hold must cover at least one room')
        if expires_in_minutes <= 0:
            raise InventoryError('Hold lifetime must be positive')
        try:
            stay = DateRange(check_in, check_out)
        except ValueError as exc:
            raise InventoryError(str(exc)) from exc

        with self.store.locked(room_type_id):
            room_type = self.store.get_room_type(room_type_id)
            status = self._build_status(room_type, stay)
            if status.hold_capacity < room_count:
                raise InsufficientInventoryError(room_type_id, room_count, status.hold_capacity)

            now = self.clock.now()
            hold = BookingHold(
                hold_id=self.id_factory(),
                room_type_id=room_type_id,
                check_in_date=stay.start_date,
                check_out_date=stay.end_date,
                room_count=room_count,
                expires_at=now + timedelta(minutes=expires_in_minutes),
                status=HoldStatus.ACTIVE,
                created_at=now,
            )
            self.store.add_hold(hold)

        logger.info(
            f"Hold {hold.hold_id} placed on {room_count} room(s) of {room_type_id} "
            f"for {stay}, expires {hold.expires_at.isoformat()}"
        )
        return hold

    def create_booking_hold(
        self,
        room_type_id: str,
        check_in: date,
        check_out: date,
        room_count: int,
        expires_in_minutes: int = DEFAULT_HOLD_MINUTES,
    ) -> Optional[str]:
        """Place a hold; returns its id or None if it could not be placed."""
        try:
            hold = self.reserve_hold(room_type_id, check_in, check_out, room_count, expires_in_minutes)
        except InsufficientInventoryError as e:
            logger.warning(f"Hold rejected: {e}")
            return None
        except Exception as e:
            logger.error(f"Failed to create booking hold for {room_type_id}: {e}", exc_info=True)
            return None
        return hold.hold_id

    def release_booking_hold(self, hold_id: str) -> bool:
        """
        Release a hold

        Idempotent: returns True whenever the hold exists. Active holds
        become expired; converted holds keep their status.
        """
        try:
            released = self.store.release_hold(hold_id, self.clock.now())
        except Exception as e:
            logger.error(f"Failed to release booking hold {hold_id}: {e}", exc_info=True)
            return False

        if released:
            logger.info(f"Hold {hold_id} released")
        else:
            logger.warning(f"Release requested for unknown hold {hold_id}")
        return released

    def convert_hold_to_booking(self, hold_id: str, booking_id: str) -> bool:
        """Convert an active, unexpired hold into a confirmed booking."""
        try:
            converted = self.store.convert_hold(hold_id, str(booking_id), self.clock.now())
        except Exception as e:
            logger.error(f"Failed to convert hold {hold_id} to booking {booking_id}: {e}", exc_info=True)
            return False

        if converted:
            logger.info(f"Hold {hold_id} converted to booking {booking_id}")
        else:
            logger.warning(f"Hold {hold_id} is not active, cannot convert to booking {booking_id}")
        return converted

    def get_hold(self, hold_id: str) -> Optional[BookingHold]:
        """Load a hold, expiring it on read if its lease has run out."""
        hold = self.store.get_hold(hold_id)
        if hold is None:
            return None

        now = self.clock.now()
        if hold.status == HoldStatus.ACTIVE and hold.is_expired(now):
            self.store.expire_holds(now, hold_id=hold_id)
            hold = replace(hold, status=HoldStatus.EXPIRED, released_at=now)
        return hold

    def get_active_holds(self, room_type_id: Optional[str] = None) -> List[BookingHold]:
        now = self.clock.now()
        return [hold for hold in self.store.active_holds(room_type_id, now) if hold.is_live(now)]

    def cleanup_expired_holds(self) -> int:
        """Mark every lapsed active hold as expired; returns how many changed."""
        count = self.store.expire_holds(self.clock.now())
        if count:
            logger.info(f"Expired {count} booking holds")
        return count

    # ===== Reporting =====

    def get_inventory_summary(self, hotel_id: str, on: date) -> InventorySummary:
        """Occupancy snapshot of a hotel for a single night."""
        night = DateRange(on, on + timedelta(days=1))

        total = available = occupied = blocked = maintenance = held = 0
        for room_type in self.store.list_room_types(hotel_id):
            status = self._build_status(room_type, night)
            total += status.total_inventory
            available += status.net_available
            occupied += status.total_inventory - status.available_rooms
            blocked += status.blocked_rooms
            maintenance += status.maintenance_rooms
            held += status.held_rooms

        occupancy = Decimal('0')
        if total:
            occupancy = (Decimal(occupied) / Decimal(total)).quantize(Decimal('0.0001'), rounding=ROUND_HALF_UP)

        return InventorySummary(
            hotel_id=str(hotel_id),
            date=on,
            total_rooms=total,
            available_rooms=available,
            occupied_rooms=occupied,
            blocked_rooms=blocked,
            maintenance_rooms=maintenance,
            held_rooms=held,
            occupancy_rate=occupancy,
        )
