from datetime import date, timedelta
from decimal import Decimal

import pytest

from apps.inventory.domain.availability import (
    AlertSeverity,
    AlertType,
    BookingHold,
    HoldStatus,
    InsufficientInventoryError,
    InventoryError,
    InventoryQuery,
    RestrictionType,
)

CHECK_IN = date(2026, 5, 10)
CHECK_OUT = date(2026, 5, 13)


def seed_hold(store, clock, hold_id, room_count, minutes=10, room_type_id='deluxe', check_in=CHECK_IN, check_out=CHECK_OUT):
    now = clock.now()
    store.holds[hold_id] = BookingHold(
        hold_id=hold_id,
        room_type_id=room_type_id,
        check_in_date=check_in,
        check_out_date=check_out,
        room_count=room_count,
        expires_at=now + timedelta(minutes=minutes),
        created_at=now,
    )


def query(rooms=1, room_type_id=None):
    return InventoryQuery(
        hotel_id='hotel-1',
        room_type_id=room_type_id,
        check_in_date=CHECK_IN,
        check_out_date=CHECK_OUT,
        rooms_requested=rooms,
    )


def test_oversell_allowance_on_fully_committed_room_type(store, clock, manager):
    store.add_block('deluxe', CHECK_IN, CHECK_IN + timedelta(days=1), 2)
    store.add_block('deluxe', CHECK_IN, CHECK_IN, 1, reason='maintenance')
    seed_hold(store, clock, 'hold_existing', 8)

    status = manager.get_room_type_inventory('deluxe', CHECK_IN, CHECK_OUT)

    assert status.total_inventory == 10
    assert status.available_rooms == 10
    assert status.blocked_rooms == 2
    assert status.maintenance_rooms == 1
    assert status.held_rooms == 8
    assert status.net_available == 0
    assert status.oversell_limit == 1
    assert status.can_book_rooms == 1


def test_inventory_never_goes_negative(store, clock, manager):
    store.booked['deluxe'] = 6
    store.add_block('deluxe', CHECK_IN, CHECK_OUT, 9)
    seed_hold(store, clock, 'hold_big', 8)

    status = manager.get_room_type_inventory('deluxe', CHECK_IN, CHECK_OUT)

    assert status.available_rooms == 4
    assert status.net_available == 0
    assert status.can_book_rooms >= 0
    assert status.hold_capacity == 0


def test_available_compares_bookable_rooms_with_request(store, clock, manager):
    store.add_block('deluxe', CHECK_IN, CHECK_OUT, 9)

    assert manager.check_availability(query(rooms=2)).available is True
    assert manager.check_availability(query(rooms=3)).available is False


def test_availability_sums_room_types(store, manager):
    store.add_room_type('suite', total_inventory=4, oversell_rate='0')
    store.add_room_type('elsewhere', hotel_id='hotel-2', total_inventory=50)

    result = manager.check_availability(query(rooms=14))

    assert {status.room_type_id for status in result.inventory} == {'deluxe', 'suite'}
    assert sum(status.can_book_rooms for status in result.inventory) == 14
    assert result.available is True

    single = manager.check_availability(query(rooms=1, room_type_id='suite'))
    assert [status.room_type_id for status in single.inventory] == ['suite']


def test_block_end_date_is_inclusive(store, manager):
    store.add_block('deluxe', CHECK_IN - timedelta(days=5), CHECK_IN, 2)
    store.add_block('deluxe', CHECK_OUT, CHECK_OUT + timedelta(days=3), 5)

    status = manager.get_room_type_inventory('deluxe', CHECK_IN, CHECK_OUT)

    assert status.blocked_rooms == 2


def test_maintenance_blocks_are_not_double_counted(store, manager):
    store.add_block('deluxe', CHECK_IN, CHECK_OUT, 3, reason='maintenance')

    status = manager.get_room_type_inventory('deluxe', CHECK_IN, CHECK_OUT)

    assert status.blocked_rooms == 0
    assert status.maintenance_rooms == 3
    assert status.net_available == 7


def test_holds_outside_the_stay_are_ignored(store, clock, manager):
    seed_hold(store, clock, 'hold_before', 4, check_in=CHECK_IN - timedelta(days=3), check_out=CHECK_IN)
    seed_hold(store, clock, 'hold_overlap', 2, check_in=CHECK_OUT - timedelta(days=1), check_out=CHECK_OUT + timedelta(days=2))

    status = manager.get_room_type_inventory('deluxe', CHECK_IN, CHECK_OUT)

    assert status.held_rooms == 2


def test_expired_hold_stops_counting(store, clock, manager):
    seed_hold(store, clock, 'hold_short', 3, minutes=15)

    assert manager.get_room_type_inventory('deluxe', CHECK_IN, CHECK_OUT).held_rooms == 3

    clock.advance(minutes=14, seconds=59)
    assert manager.get_room_type_inventory('deluxe', CHECK_IN, CHECK_OUT).held_rooms == 3

    clock.advance(seconds=1)
    assert manager.get_room_type_inventory('deluxe', CHECK_IN, CHECK_OUT).held_rooms == 0


def test_restriction_messages(store, manager):
    store.add_restriction('deluxe', RestrictionType.MINIMUM_STAY, CHECK_IN, CHECK_OUT, value=3)
    store.add_restriction('deluxe', RestrictionType.MAXIMUM_STAY, CHECK_IN, CHECK_OUT, value=1)
    store.add_restriction('deluxe', RestrictionType.CLOSED_TO_ARRIVAL, CHECK_IN, CHECK_IN)
    store.add_restriction('deluxe', RestrictionType.STOP_SELL, CHECK_IN, CHECK_OUT, description='Private event')

    status = manager.get_room_type_inventory('deluxe', CHECK_IN, CHECK_OUT)

    assert [r.message for r in status.restrictions] == [
        'Minimum stay of 3 nights required',
        'Maximum stay of 1 night allowed',
        'Closed to arrival on this date',
        'Private event',
    ]


def test_restrictions_do_not_block_availability(store, manager):
    store.add_restriction('deluxe', RestrictionType.STOP_SELL, CHECK_IN, CHECK_OUT)
    store.add_restriction('deluxe', RestrictionType.CLOSED_TO_DEPARTURE, CHECK_IN, CHECK_OUT, active=False)

    result = manager.check_availability(query())

    assert result.available is True
    assert [r.type for r in result.restrictions] == [RestrictionType.STOP_SELL]
    violations = [a for a in result.alerts if a.type == AlertType.RESTRICTION_VIOLATION]
    assert len(violations) == 1
    assert violations[0].severity == AlertSeverity.WARNING
    assert violations[0].message == 'Not available for booking'


def test_low_inventory_and_maintenance_alerts(store, manager):
    store.add_block('deluxe', CHECK_IN, CHECK_OUT, 7)
    store.add_block('deluxe', CHECK_IN, CHECK_OUT, 1, reason='maintenance')

    alerts = manager.check_availability(query()).alerts

    by_type = {alert.type: alert for alert in alerts}
    assert by_type[AlertType.LOW_INVENTORY].message == 'Only 2 rooms left!'
    assert by_type[AlertType.LOW_INVENTORY].severity == AlertSeverity.WARNING
    assert by_type[AlertType.MAINTENANCE_CONFLICT].message == '1 room under maintenance'
    assert by_type[AlertType.MAINTENANCE_CONFLICT].severity == AlertSeverity.INFO
    assert AlertType.OVERBOOKING_RISK not in by_type
    assert all(alert.date == CHECK_IN for alert in alerts)


def test_overbooking_risk_alert(store, clock, manager):
    seed_hold(store, clock, 'hold_all', 10)

    result = manager.check_availability(query())

    risk = [a for a in result.alerts if a.type == AlertType.OVERBOOKING_RISK]
    assert len(risk) == 1
    assert risk[0].severity == AlertSeverity.CRITICAL
    assert result.inventory[0].occupancy_rate == Decimal('1')
    assert result.available is True


def test_empty_room_type_raises_no_overbooking_alert(store, manager):
    store.add_room_type('closed', total_inventory=0)

    result = manager.check_availability(query(room_type_id='closed'))

    assert result.available is False
    assert result.inventory[0].can_book_rooms == 0
    assert result.alerts == []


def test_create_booking_hold(store, clock, manager):
    hold_id = manager.create_booking_hold('deluxe', CHECK_IN, CHECK_OUT, 2)

    assert hold_id == 'hold_1'
    hold = store.holds[hold_id]
    assert hold.status == HoldStatus.ACTIVE
    assert hold.room_count == 2
    assert hold.expires_at == clock.now() + timedelta(minutes=15)
    assert store.lock_calls == ['deluxe']
    assert manager.get_room_type_inventory('deluxe', CHECK_IN, CHECK_OUT).held_rooms == 2


def test_second_hold_is_rejected_once_capacity_is_gone(store, clock, manager):
    store.add_block('deluxe', CHECK_IN, CHECK_OUT, 2)
    store.add_block('deluxe', CHECK_IN, CHECK_OUT, 1, reason='maintenance')
    seed_hold(store, clock, 'hold_existing', 7)
    assert manager.get_room_type_inventory('deluxe', CHECK_IN, CHECK_OUT).can_book_rooms == 1

    first = manager.create_booking_hold('deluxe', CHECK_IN, CHECK_OUT, 1)
    second = manager.create_booking_hold('deluxe', CHECK_IN, CHECK_OUT, 1)

    assert first is not None
    assert second is None
    assert len(store.holds) == 2


def test_fully_committed_room_type_offers_no_hold_capacity(store, clock, manager):
    store.add_block('deluxe', CHECK_IN, CHECK_OUT, 2)
    store.add_block('deluxe', CHECK_IN, CHECK_OUT, 1, reason='maintenance')
    seed_hold(store, clock, 'hold_existing', 8)

    status = manager.get_room_type_inventory('deluxe', CHECK_IN, CHECK_OUT)

    assert status.can_book_rooms == 1
    assert status.hold_capacity == 0
    assert manager.check_availability(query()).available is True
    assert manager.create_booking_hold('deluxe', CHECK_IN, CHECK_OUT, 1) is None
    assert list(store.holds) == ['hold_existing']


def test_reserve_hold_reports_shortfall(store, manager):
    store.add_block('deluxe', CHECK_IN, CHECK_OUT, 10)

    with pytest.raises(InsufficientInventoryError) as excinfo:
        manager.reserve_hold('deluxe', CHECK_IN, CHECK_OUT, 2)

    assert excinfo.value.requested == 2
    assert excinfo.value.available == 1


@pytest.mark.parametrize(
    'room_type_id, check_in, check_out, rooms',
    [
        ('deluxe', CHECK_IN, CHECK_OUT, 0),
        ('deluxe', CHECK_OUT, CHECK_IN, 1),
        ('missing', CHECK_IN, CHECK_OUT, 1),
    ],
)
def test_reserve_hold_rejects_bad_requests(manager, room_type_id, check_in, check_out, rooms):
    with pytest.raises(InventoryError):
        manager.reserve_hold(room_type_id, check_in, check_out, rooms)

    assert manager.create_booking_hold(room_type_id, check_in, check_out, rooms) is None


def test_create_booking_hold_swallows_store_failures(store, manager):
    store.fail_writes = True

    assert manager.create_booking_hold('deluxe', CHECK_IN, CHECK_OUT, 1) is None


def test_release_is_idempotent(store, manager):
    hold_id = manager.create_booking_hold('deluxe', CHECK_IN, CHECK_OUT, 1)

    assert manager.release_booking_hold(hold_id) is True
    assert manager.release_booking_hold(hold_id) is True
    assert store.holds[hold_id].status == HoldStatus.EXPIRED
    assert store.holds[hold_id].released_at is not None
    assert manager.release_booking_hold('hold_unknown') is False


def test_release_failure_returns_false(store, manager):
    hold_id = manager.create_booking_hold('deluxe', CHECK_IN, CHECK_OUT, 1)
    store.fail_writes = True

    assert manager.release_booking_hold(hold_id) is False


def test_released_converted_hold_stays_converted(store, manager):
    hold_id = manager.create_booking_hold('deluxe', CHECK_IN, CHECK_OUT, 1)
    assert manager.convert_hold_to_booking(hold_id, 'booking-1') is True

    assert manager.release_booking_hold(hold_id) is True
    hold = store.holds[hold_id]
    assert hold.status == HoldStatus.CONVERTED
    assert hold.booking_id == 'booking-1'


def test_convert_requires_live_hold(store, clock, manager):
    hold_id = manager.create_booking_hold('deluxe', CHECK_IN, CHECK_OUT, 1)
    assert manager.convert_hold_to_booking(hold_id, 'booking-1') is True
    assert manager.convert_hold_to_booking(hold_id, 'booking-2') is False

    late_id = manager.create_booking_hold('deluxe', CHECK_IN, CHECK_OUT, 1)
    clock.advance(minutes=16)
    assert manager.convert_hold_to_booking(late_id, 'booking-3') is False
    assert manager.convert_hold_to_booking('hold_unknown', 'booking-4') is False


def test_get_hold_expires_lapsed_lease(store, clock, manager):
    hold_id = manager.create_booking_hold('deluxe', CHECK_IN, CHECK_OUT, 1, expires_in_minutes=5)
    assert manager.get_hold(hold_id).status == HoldStatus.ACTIVE

    clock.advance(minutes=5)
    hold = manager.get_hold(hold_id)

    assert hold.status == HoldStatus.EXPIRED
    assert store.holds[hold_id].status == HoldStatus.EXPIRED
    assert manager.get_hold('hold_unknown') is None


def test_active_holds_never_include_lapsed_ones(store, clock, manager):
    short_id = manager.create_booking_hold('deluxe', CHECK_IN, CHECK_OUT, 1, expires_in_minutes=5)
    long_id = manager.create_booking_hold('deluxe', CHECK_IN, CHECK_OUT, 1, expires_in_minutes=30)

    clock.advance(minutes=10)

    active = manager.get_active_holds()
    assert [hold.hold_id for hold in active] == [long_id]
    assert all(hold.expires_at >= clock.now() for hold in active)
    assert short_id not in [hold.hold_id for hold in manager.get_active_holds('deluxe')]


def test_cleanup_expired_holds(store, clock, manager):
    manager.create_booking_hold('deluxe', CHECK_IN, CHECK_OUT, 1, expires_in_minutes=5)
    manager.create_booking_hold('deluxe', CHECK_IN, CHECK_OUT, 1, expires_in_minutes=5)
    keeper = manager.create_booking_hold('deluxe', CHECK_IN, CHECK_OUT, 1, expires_in_minutes=60)

    clock.advance(minutes=6)

    assert manager.cleanup_expired_holds() == 2
    assert manager.cleanup_expired_holds() == 0
    assert store.holds[keeper].status == HoldStatus.ACTIVE


def test_inventory_summary(store, clock, manager):
    store.booked['deluxe'] = 3
    store.add_block('deluxe', CHECK_IN, CHECK_IN, 1)
    store.add_block('deluxe', CHECK_IN, CHECK_IN, 1, reason='maintenance')
    seed_hold(store, clock, 'hold_summary', 2)

    summary = manager.get_inventory_summary('hotel-1', CHECK_IN)

    assert summary.total_rooms == 10
    assert summary.occupied_rooms == 3
    assert summary.blocked_rooms == 1
    assert summary.maintenance_rooms == 1
    assert summary.held_rooms == 2
    assert summary.available_rooms == 3
    assert summary.occupancy_rate == Decimal('0.3000')
