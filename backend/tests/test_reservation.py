"""
Service-level tests for reserve_tickets and cancel_booking.

These call the booking service directly, one session per unit of work,
and check counters through separate sessions afterwards.
"""

from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from ticketbook.core.exceptions import (
    AlreadyCancelled,
    InsufficientInventory,
    NotFound,
    StorageFailure,
    ValidationError,
)
from ticketbook.models.booking import Booking
from ticketbook.services.booking_service import cancel_booking, reserve_tickets

from conftest import (
    assert_inventory_invariants,
    count_bookings,
    fetch_booking,
    fetch_event,
    fetch_tier,
)


@pytest.mark.asyncio
async def test_reserve_general_admission(session_factory, test_user, test_event):
    async with session_factory() as db:
        booking = await reserve_tickets(db, test_user.id, test_event.id, 4)

    assert booking.id is not None
    assert booking.status == "confirmed"
    assert booking.ticket_tier_id is None
    assert booking.total_price == Decimal("0.00")
    assert (await fetch_event(session_factory, test_event.id)).available_seats == 96
    await assert_inventory_invariants(session_factory)


@pytest.mark.asyncio
async def test_tier_reservation_and_cancel_round_trip(session_factory, test_user, tiered_event):
    """Tier price 99.99 x 2 = 199.98; cancel restores both counters by 2."""
    vip = tiered_event.ticket_tiers[0]

    async with session_factory() as db:
        booking = await reserve_tickets(db, test_user.id, tiered_event.id, 2, ticket_tier_id=vip.id)

    assert booking.total_price == Decimal("199.98")
    assert (await fetch_event(session_factory, tiered_event.id)).available_seats == 98
    assert (await fetch_tier(session_factory, vip.id)).available_quantity == 8

    async with session_factory() as db:
        cancelled = await cancel_booking(db, booking.id, test_user.id, "user")

    assert cancelled.status == "cancelled"
    assert (await fetch_event(session_factory, tiered_event.id)).available_seats == 100
    assert (await fetch_tier(session_factory, vip.id)).available_quantity == 10
    assert (await fetch_booking(session_factory, booking.id)).status == "cancelled"
    await assert_inventory_invariants(session_factory)


@pytest.mark.asyncio
async def test_second_cancel_is_rejected_and_changes_nothing(session_factory, test_user, tiered_event):
    general = tiered_event.ticket_tiers[1]
    async with session_factory() as db:
        booking = await reserve_tickets(db, test_user.id, tiered_event.id, 5, ticket_tier_id=general.id)
    async with session_factory() as db:
        await cancel_booking(db, booking.id, test_user.id, "user")

    seats_after_first = (await fetch_event(session_factory, tiered_event.id)).available_seats
    tier_after_first = (await fetch_tier(session_factory, general.id)).available_quantity

    async with session_factory() as db:
        with pytest.raises(AlreadyCancelled):
            await cancel_booking(db, booking.id, test_user.id, "user")

    assert (await fetch_event(session_factory, tiered_event.id)).available_seats == seats_after_first
    assert (await fetch_tier(session_factory, general.id)).available_quantity == tier_after_first


@pytest.mark.asyncio
async def test_foreign_tier_is_not_found_and_seats_unchanged(session_factory, test_user, tiered_event, other_event):
    foreign_tier = other_event.ticket_tiers[0]

    async with session_factory() as db:
        with pytest.raises(NotFound):
            await reserve_tickets(db, test_user.id, tiered_event.id, 1, ticket_tier_id=foreign_tier.id)

    assert (await fetch_event(session_factory, tiered_event.id)).available_seats == 100
    assert (await fetch_tier(session_factory, foreign_tier.id)).available_quantity == 5
    assert await count_bookings(session_factory) == 0


@pytest.mark.asyncio
async def test_missing_tier_is_not_found(session_factory, test_user, tiered_event):
    async with session_factory() as db:
        with pytest.raises(NotFound):
            await reserve_tickets(db, test_user.id, tiered_event.id, 1, ticket_tier_id=999)

    assert (await fetch_event(session_factory, tiered_event.id)).available_seats == 100


@pytest.mark.asyncio
async def test_missing_event_is_not_found(session_factory, test_user):
    async with session_factory() as db:
        with pytest.raises(NotFound):
            await reserve_tickets(db, test_user.id, 12345, 1)


@pytest.mark.asyncio
@pytest.mark.parametrize("quantity", [0, -3])
async def test_bad_quantity_never_touches_storage(session_factory, test_user, test_event, quantity):
    db = AsyncMock(spec=AsyncSession)

    with pytest.raises(ValidationError):
        await reserve_tickets(db, test_user.id, test_event.id, quantity)

    assert db.mock_calls == []
    assert (await fetch_event(session_factory, test_event.id)).available_seats == 100
    assert await count_bookings(session_factory) == 0


@pytest.mark.asyncio
async def test_tier_shortage_leaves_event_seats_alone(session_factory, test_user, tiered_event):
    """Event has seats, tier does not: nothing moves."""
    vip = tiered_event.ticket_tiers[0]

    async with session_factory() as db:
        with pytest.raises(InsufficientInventory):
            await reserve_tickets(db, test_user.id, tiered_event.id, 11, ticket_tier_id=vip.id)

    assert (await fetch_event(session_factory, tiered_event.id)).available_seats == 100
    assert (await fetch_tier(session_factory, vip.id)).available_quantity == 10
    assert await count_bookings(session_factory) == 0


@pytest.mark.asyncio
async def test_exact_remaining_stock_can_be_taken(session_factory, test_user, small_event):
    async with session_factory() as db:
        await reserve_tickets(db, test_user.id, small_event.id, 10)

    assert (await fetch_event(session_factory, small_event.id)).available_seats == 0

    async with session_factory() as db:
        with pytest.raises(InsufficientInventory):
            await reserve_tickets(db, test_user.id, small_event.id, 1)
    await assert_inventory_invariants(session_factory)


@pytest.mark.asyncio
async def test_cancel_scoped_to_owner(session_factory, test_user, other_user, admin_user, test_event):
    async with session_factory() as db:
        booking = await reserve_tickets(db, test_user.id, test_event.id, 3)

    async with session_factory() as db:
        with pytest.raises(NotFound):
            await cancel_booking(db, booking.id, other_user.id, "user")
    assert (await fetch_booking(session_factory, booking.id)).status == "confirmed"

    async with session_factory() as db:
        cancelled = await cancel_booking(db, booking.id, admin_user.id, "admin")
    assert cancelled.status == "cancelled"
    assert (await fetch_event(session_factory, test_event.id)).available_seats == 100


@pytest.mark.asyncio
async def test_cancel_missing_booking(session_factory, admin_user):
    async with session_factory() as db:
        with pytest.raises(NotFound):
            await cancel_booking(db, 4040, admin_user.id, "admin")


@pytest.mark.asyncio
async def test_storage_fault_rolls_back_and_hides_engine_text(
    session_factory, test_user, tiered_event, monkeypatch
):
    """A failure while inserting the booking undoes the counter decrements."""
    vip = tiered_event.ticket_tiers[0]

    async with session_factory() as db:
        async def broken_flush(*args, **kwargs):
            raise OperationalError("INSERT INTO bookings", {}, Exception("disk I/O error at page 7"))

        monkeypatch.setattr(db, "flush", broken_flush)

        with pytest.raises(StorageFailure) as excinfo:
            await reserve_tickets(db, test_user.id, tiered_event.id, 2, ticket_tier_id=vip.id)

    assert "disk" not in excinfo.value.message
    assert "INSERT" not in excinfo.value.message
    assert (await fetch_event(session_factory, tiered_event.id)).available_seats == 100
    assert (await fetch_tier(session_factory, vip.id)).available_quantity == 10
    assert await count_bookings(session_factory) == 0


@pytest.mark.asyncio
async def test_reserve_cancel_sequence_keeps_invariants(session_factory, test_user, other_user, tiered_event):
    vip, general = tiered_event.ticket_tiers
    plan = [
        (test_user, vip, 3),
        (other_user, general, 20),
        (test_user, None, 40),
        (other_user, vip, 7),
        (test_user, general, 30),
    ]

    booking_ids = []
    for user, tier, qty in plan:
        async with session_factory() as db:
            booking = await reserve_tickets(
                db, user.id, tiered_event.id, qty, ticket_tier_id=tier.id if tier else None
            )
            booking_ids.append((booking.id, user.id))
        await assert_inventory_invariants(session_factory)

    event = await fetch_event(session_factory, tiered_event.id)
    assert event.available_seats == 0
    assert (await fetch_tier(session_factory, vip.id)).available_quantity == 0

    for booking_id, user_id in booking_ids:
        async with session_factory() as db:
            await cancel_booking(db, booking_id, user_id, "user")
        await assert_inventory_invariants(session_factory)

    assert (await fetch_event(session_factory, tiered_event.id)).available_seats == 100
    assert (await fetch_tier(session_factory, vip.id)).available_quantity == 10
    assert (await fetch_tier(session_factory, general.id)).available_quantity == 50


def test_booking_references_block_deletes():
    """Users, events and tiers a booking points at cannot be deleted or nulled out."""
    foreign_keys = {fk.parent.name: fk.ondelete for fk in Booking.__table__.foreign_keys}
    assert foreign_keys == {
        "user_id": "RESTRICT",
        "event_id": "RESTRICT",
        "ticket_tier_id": "RESTRICT",
    }
