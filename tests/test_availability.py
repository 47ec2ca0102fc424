from datetime import date, timedelta

import pytest

from akwanda.core.exceptions import InvalidDateRange, Unauthorized
from akwanda.services.availability_service import AvailabilityStatus, availability_service
from tests.factories import (
    actor_for,
    make_commission_booking,
    make_property,
    make_room,
    make_user,
)

CHECK_IN = date(2026, 4, 10)


async def _setup(db):
    host = await make_user(db, "host")
    guest = await make_user(db, "guest")
    prop = await make_property(db, host)
    return host, guest, prop


async def test_empty_property_is_available(db):
    _, _, prop = await _setup(db)

    status = await availability_service.check_availability(
        db, prop.id, None, CHECK_IN, CHECK_IN + timedelta(days=3)
    )

    assert status == AvailabilityStatus.AVAILABLE


async def test_overlapping_live_booking_conflicts(db):
    _, guest, prop = await _setup(db)
    await make_commission_booking(db, prop, guest, 1_000, check_in=CHECK_IN)

    overlapping = await availability_service.is_available(
        db, prop.id, None, CHECK_IN + timedelta(days=1), CHECK_IN + timedelta(days=4)
    )

    assert overlapping is False


async def test_checkout_day_can_be_next_check_in(db):
    _, guest, prop = await _setup(db)
    booking = await make_commission_booking(db, prop, guest, 1_000, check_in=CHECK_IN)

    back_to_back = await availability_service.is_available(
        db, prop.id, None, booking.check_out, booking.check_out + timedelta(days=2)
    )
    before = await availability_service.is_available(
        db, prop.id, None, CHECK_IN - timedelta(days=2), CHECK_IN
    )

    assert back_to_back is True
    assert before is True


async def test_terminal_bookings_do_not_block(db):
    _, guest, prop = await _setup(db)
    await make_commission_booking(db, prop, guest, 1_000, check_in=CHECK_IN, status="cancelled")
    await make_commission_booking(
        db, prop, guest, 1_000, check_in=CHECK_IN + timedelta(days=1), status="ended"
    )

    assert await availability_service.is_available(
        db, prop.id, None, CHECK_IN, CHECK_IN + timedelta(days=3)
    )


async def test_excluded_booking_is_ignored(db):
    _, guest, prop = await _setup(db)
    booking = await make_commission_booking(db, prop, guest, 1_000, check_in=CHECK_IN)

    status = await availability_service.check_availability(
        db,
        prop.id,
        None,
        CHECK_IN,
        CHECK_IN + timedelta(days=5),
        exclude_booking_id=booking.id,
    )

    assert status == AvailabilityStatus.AVAILABLE


async def test_rooms_are_independent_but_whole_property_blocks_them(db):
    _, guest, prop = await _setup(db)
    room_a = await make_room(db, prop, room_number="A")
    room_b = await make_room(db, prop, room_number="B")
    booking = await make_commission_booking(db, prop, guest, 1_000, check_in=CHECK_IN)
    booking.room_id = room_a.id
    await db.flush()

    stay = (CHECK_IN, CHECK_IN + timedelta(days=2))
    assert not await availability_service.is_available(db, prop.id, room_a.id, *stay)
    assert await availability_service.is_available(db, prop.id, room_b.id, *stay)

    # A whole-property booking takes every room
    whole = await make_commission_booking(
        db, prop, guest, 1_000, check_in=CHECK_IN + timedelta(days=10)
    )
    assert not await availability_service.is_available(
        db, prop.id, room_b.id, whole.check_in, whole.check_out
    )


async def test_invalid_range_is_rejected(db):
    _, _, prop = await _setup(db)

    with pytest.raises(InvalidDateRange):
        await availability_service.check_availability(db, prop.id, None, CHECK_IN, CHECK_IN)


async def test_room_locks_merge_and_block_bookings(db):
    host, _, prop = await _setup(db)
    room = await make_room(db, prop)
    owner = actor_for(host)

    await availability_service.lock_room_dates(
        db, room.id, CHECK_IN, CHECK_IN + timedelta(days=3), owner, reason="Repainting"
    )
    locks = await availability_service.lock_room_dates(
        db, room.id, CHECK_IN + timedelta(days=2), CHECK_IN + timedelta(days=6), owner
    )

    assert len(locks) == 1
    assert locks[0].start_date == CHECK_IN
    assert locks[0].end_date == CHECK_IN + timedelta(days=6)
    assert locks[0].reason == "Repainting"
    assert not await availability_service.is_available(
        db, prop.id, room.id, CHECK_IN + timedelta(days=5), CHECK_IN + timedelta(days=7)
    )

    remaining = await availability_service.unlock_room_dates(
        db, room.id, CHECK_IN, CHECK_IN + timedelta(days=6), owner
    )
    assert remaining == []
    assert await availability_service.is_available(
        db, prop.id, room.id, CHECK_IN, CHECK_IN + timedelta(days=6)
    )


async def test_only_owner_or_admin_can_lock(db):
    _, guest, prop = await _setup(db)
    room = await make_room(db, prop)
    admin = await make_user(db, "admin")

    with pytest.raises(Unauthorized):
        await availability_service.lock_room_dates(
            db, room.id, CHECK_IN, CHECK_IN + timedelta(days=1), actor_for(guest)
        )

    locks = await availability_service.lock_room_dates(
        db, room.id, CHECK_IN, CHECK_IN + timedelta(days=1), actor_for(admin)
    )
    assert len(locks) == 1
