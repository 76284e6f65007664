from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from apps.inventory.domain.availability import (
    AvailabilityManager,
    BlockRecord,
    HoldStatus,
    InventoryError,
    RestrictionRecord,
    RoomTypeRecord,
)
from shared.domain.clock import FixedClock


class InMemoryInventoryStore:
    """Dict-backed InventoryStore for domain tests."""

    def __init__(self):
        self.room_types = {}
        self.booked = {}
        self.block_records = []
        self.restriction_records = []
        self.holds = {}
        self.lock_calls = []
        self.fail_writes = False

    def add_room_type(self, room_type_id, hotel_id='hotel-1', total_inventory=10, oversell_rate='0.10'):
        self.room_types[room_type_id] = RoomTypeRecord(
            id=room_type_id,
            hotel_id=hotel_id,
            total_inventory=total_inventory,
            oversell_rate=Decimal(oversell_rate),
        )

    def add_block(self, room_type_id, start, end, rooms, reason='other'):
        self.block_records.append(BlockRecord(room_type_id, start, end, rooms, reason))

    def add_restriction(self, room_type_id, restriction_type, start, end, value=None, description='', active=True):
        self.restriction_records.append(
            RestrictionRecord(room_type_id, restriction_type, start, end, value, description, active)
        )

    def list_room_types(self, hotel_id, room_type_id=None):
        return [
            room_type for room_type in self.room_types.values()
            if room_type.hotel_id == hotel_id and (room_type_id is None or room_type.id == room_type_id)
        ]

    def get_room_type(self, room_type_id):
        try:
            return self.room_types[room_type_id]
        except KeyError:
            raise InventoryError(f'Unknown room type {room_type_id}')

    def booked_rooms(self, room_type_id, check_in, check_out):
        return self.booked.get(room_type_id, 0)

    def blocks(self, room_type_id, check_in, check_out):
        return [
            block for block in self.block_records
            if block.room_type_id == room_type_id and block.start_date < check_out and block.end_date >= check_in
        ]

    def restrictions(self, room_type_id, check_in, check_out):
        return [
            record for record in self.restriction_records
            if record.room_type_id == room_type_id and record.start_date < check_out and record.end_date >= check_in
        ]

    def active_holds(self, room_type_id, now, check_in=None, check_out=None):
        holds = [
            hold for hold in self.holds.values()
            if hold.status == HoldStatus.ACTIVE and hold.expires_at > now
        ]
        if room_type_id:
            holds = [hold for hold in holds if hold.room_type_id == room_type_id]
        if check_in and check_out:
            holds = [hold for hold in holds if hold.check_in_date < check_out and hold.check_out_date > check_in]
        return holds

    @contextmanager
    def locked(self, room_type_id):
        self.lock_calls.append(room_type_id)
        yield

    def add_hold(self, hold):
        if self.fail_writes:
            raise RuntimeError('store unavailable')
        self.holds[hold.hold_id] = hold

    def get_hold(self, hold_id):
        return self.holds.get(hold_id)

    def release_hold(self, hold_id, released_at):
        if self.fail_writes:
            raise RuntimeError('store unavailable')
        hold = self.holds.get(hold_id)
        if hold is None:
            return False
        if hold.status == HoldStatus.ACTIVE:
            self.holds[hold_id] = replace(hold, status=HoldStatus.EXPIRED, released_at=released_at)
        return True

    def convert_hold(self, hold_id, booking_id, converted_at):
        hold = self.holds.get(hold_id)
        if hold is None or hold.status != HoldStatus.ACTIVE or hold.expires_at <= converted_at:
            return False
        self.holds[hold_id] = replace(
            hold, status=HoldStatus.CONVERTED, booking_id=booking_id, converted_at=converted_at
        )
        return True

    def expire_holds(self, now, hold_id=None):
        count = 0
        for key, hold in list(self.holds.items()):
            if hold_id and key != hold_id:
                continue
            if hold.status == HoldStatus.ACTIVE and hold.expires_at <= now:
                self.holds[key] = replace(hold, status=HoldStatus.EXPIRED, released_at=now)
                count += 1
        return count


@pytest.fixture
def clock():
    return FixedClock(datetime(2026, 5, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def store():
    store = InMemoryInventoryStore()
    store.add_room_type('deluxe', total_inventory=10)
    return store


@pytest.fixture
def manager(store, clock):
    counter = iter(range(1, 1000))
    return AvailabilityManager(store, clock=clock, id_factory=lambda: f'hold_{next(counter)}')
