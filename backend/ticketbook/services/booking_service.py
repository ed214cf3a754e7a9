"""
Booking service: concurrency-safe reservation and compensation.

CONCURRENCY STRATEGY: Row Lock + Conditional Update
===================================================

Problem:
  Two users try to book the last seats simultaneously.
  Both read available_seats=6, both decrement by 6, both succeed.
  Result: Overbooking.

Solution:
  Every mutation of a stock counter happens inside one of two units of work,
  reserve_tickets and cancel_booking, and each of them:

  1. Reads the rows it will mutate with SELECT ... FOR UPDATE, so the
     sufficiency check sees the same row version the write will change.
  2. Writes with a conditional update and verifies the affected row count:
       UPDATE events SET available_seats = available_seats - :n
       WHERE id = :event_id AND available_seats >= :n
     rowcount == 0 means the stock is gone and the whole unit rolls back.
  3. Commits once, after the booking row is flushed.

  The conditional update alone is enough on engines without row locks
  (SQLite serializes writers instead); the row lock makes the check-then-write
  window explicit on PostgreSQL. DB CHECK constraints are the final net.

  Lock order is always event -> ticket tier. Cancellation locks its booking
  first, then takes the same event -> tier order. Reservation never locks an
  existing booking row, so the two paths cannot wait on each other in a cycle.

  There is no retry loop: a request that loses the race for the last seats
  gets InsufficientInventory, not a second attempt.

Cancellation is a two-state machine (confirmed -> cancelled) checked and set
inside the locked transaction. The status flip is itself conditional
(WHERE status = 'confirmed'), so of two concurrent cancellations exactly one
credits the counters and the other sees AlreadyCancelled.
"""

import time
from decimal import Decimal
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ticketbook.core.config import get_settings
from ticketbook.core.exceptions import (
    AlreadyCancelled,
    BookingError,
    Forbidden,
    InsufficientInventory,
    NotFound,
    StorageFailure,
    ValidationError,
)
from ticketbook.core.logging import get_logger
from ticketbook.core.metrics import booking_latency, record_booking_attempt, record_cancellation
from ticketbook.models.booking import Booking, BookingStatus
from ticketbook.models.event import Event, TicketTier
from ticketbook.services.audit_service import AuditDispatcher
from ticketbook.services.validation_gate import (
    event_exists,
    has_sufficient_stock,
    tier_exists,
    validate_quantity,
)

logger = get_logger(__name__)
settings = get_settings()

CENTS = Decimal("0.01")

_RESERVE_OUTCOMES = {
    InsufficientInventory: "insufficient",
    NotFound: "not_found",
    StorageFailure: "error",
}

_CANCEL_OUTCOMES = {
    AlreadyCancelled: "already_cancelled",
    NotFound: "not_found",
    StorageFailure: "error",
}


def _emit(audit: Optional[AuditDispatcher], **record) -> None:
    if audit is not None:
        audit.emit(**record)


def compute_total_price(tier: Optional[TicketTier], quantity: int) -> Decimal:
    if tier is None:
        return Decimal("0.00")
    return (Decimal(tier.price) * quantity).quantize(CENTS)


async def _take_stock(db: AsyncSession, model, row_id: int, counter, quantity: int) -> bool:
    """Decrement `counter` only if it still covers `quantity`. True if the row changed."""
    result = await db.execute(
        update(model)
        .where(model.id == row_id, counter >= quantity)
        .values({counter: counter - quantity})
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def _return_stock(db: AsyncSession, model, row_id: int, counter, quantity: int) -> None:
    result = await db.execute(
        update(model)
        .where(model.id == row_id)
        .values({counter: counter + quantity})
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        logger.error("stock_row_missing", table=model.__tablename__, row_id=row_id)
        raise StorageFailure()


async def reserve_tickets(
    db: AsyncSession,
    user_id: int,
    event_id: int,
    quantity: int,
    ticket_tier_id: Optional[int] = None,
    audit: Optional[AuditDispatcher] = None,
    origin_address: Optional[str] = None,
) -> Booking:
    """
    Reserve `quantity` seats (and tier units, when a tier is given) and
    record a confirmed booking, all in one transaction.

    Raises:
        ValidationError: quantity < 1, before any storage access
        NotFound: event missing, or tier missing / belonging to another event
        InsufficientInventory: a counter cannot cover the request
        StorageFailure: any engine-level fault (details logged, not exposed)
    """
    try:
        validate_quantity(quantity)
    except ValidationError:
        record_booking_attempt("invalid")
        raise

    start_time = time.perf_counter()
    try:
        event = await event_exists(db, event_id, lock=True)

        tier = None
        if ticket_tier_id is not None:
            tier = await tier_exists(db, event_id, ticket_tier_id, lock=True)

        if not has_sufficient_stock(event.available_seats, quantity):
            logger.warning(
                "booking_failed_no_stock",
                event_id=event_id,
                requested=quantity,
                available=event.available_seats,
            )
            raise InsufficientInventory(
                f"Not enough seats. Requested: {quantity}, Available: {event.available_seats}"
            )

        if tier is not None and not has_sufficient_stock(tier.available_quantity, quantity):
            logger.warning(
                "booking_failed_no_stock",
                event_id=event_id,
                ticket_tier_id=tier.id,
                requested=quantity,
                available=tier.available_quantity,
            )
            raise InsufficientInventory(
                f"Not enough tickets. Requested: {quantity}, Available: {tier.available_quantity}"
            )

        total_price = compute_total_price(tier, quantity)

        if not await _take_stock(db, Event, event_id, Event.available_seats, quantity):
            raise InsufficientInventory("Not enough seats")
        if tier is not None and not await _take_stock(
            db, TicketTier, tier.id, TicketTier.available_quantity, quantity
        ):
            raise InsufficientInventory("Not enough tickets")

        booking = Booking(
            user_id=user_id,
            event_id=event_id,
            ticket_tier_id=tier.id if tier is not None else None,
            quantity=quantity,
            total_price=total_price,
            status=BookingStatus.CONFIRMED.value,
        )
        db.add(booking)
        await db.flush()

        await db.commit()

    except BookingError as e:
        await db.rollback()
        record_booking_attempt(_RESERVE_OUTCOMES.get(type(e), "error"))
        _emit(
            audit,
            actor_id=user_id,
            action="booking_failed",
            resource_type="event",
            resource_id=event_id,
            details=f"Booking rejected for event {event_id}: {e.message}",
            origin_address=origin_address,
        )
        raise
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("storage_failure", operation="reserve", event_id=event_id, user_id=user_id)
        record_booking_attempt("error")
        _emit(
            audit,
            actor_id=user_id,
            action="booking_failed",
            resource_type="event",
            resource_id=event_id,
            details=f"Booking failed for event {event_id}: storage failure",
            origin_address=origin_address,
        )
        raise StorageFailure()
    finally:
        booking_latency.observe(time.perf_counter() - start_time)

    record_booking_attempt("success")
    logger.info(
        "booking_created",
        booking_id=booking.id,
        user_id=user_id,
        event_id=event_id,
        ticket_tier_id=booking.ticket_tier_id,
        quantity=quantity,
        total_price=str(total_price),
    )
    _emit(
        audit,
        actor_id=user_id,
        action="booking_created",
        resource_type="booking",
        resource_id=booking.id,
        details=f"Booking created for event {event_id}",
        origin_address=origin_address,
    )
    return booking


async def cancel_booking(
    db: AsyncSession,
    booking_id: int,
    caller_id: int,
    caller_role: str,
    audit: Optional[AuditDispatcher] = None,
    origin_address: Optional[str] = None,
) -> Booking:
    """
    Cancel a confirmed booking and give its seats (and tier units) back.

    Non-admin callers only see their own bookings; someone else's booking is
    reported as NotFound rather than revealing that it exists.
    """
    try:
        query = select(Booking).where(Booking.id == booking_id)
        if caller_role != settings.ADMIN_ROLE:
            query = query.where(Booking.user_id == caller_id)
        query = query.with_for_update().execution_options(populate_existing=True)

        booking = (await db.execute(query)).scalar_one_or_none()
        if booking is None:
            raise NotFound("Booking not found")

        if booking.is_cancelled:
            raise AlreadyCancelled("Booking is already cancelled")

        flipped = await db.execute(
            update(Booking)
            .where(Booking.id == booking.id, Booking.status == BookingStatus.CONFIRMED.value)
            .values(status=BookingStatus.CANCELLED.value)
            .execution_options(synchronize_session=False)
        )
        if flipped.rowcount != 1:
            # Lost the race to a concurrent cancellation on an engine without row locks
            raise AlreadyCancelled("Booking is already cancelled")

        await _return_stock(db, Event, booking.event_id, Event.available_seats, booking.quantity)
        if booking.ticket_tier_id is not None:
            await _return_stock(
                db, TicketTier, booking.ticket_tier_id, TicketTier.available_quantity, booking.quantity
            )

        await db.refresh(booking)
        await db.commit()

    except BookingError as e:
        await db.rollback()
        record_cancellation(_CANCEL_OUTCOMES.get(type(e), "error"))
        _emit(
            audit,
            actor_id=caller_id,
            action="booking_cancel_failed",
            resource_type="booking",
            resource_id=booking_id,
            details=e.message,
            origin_address=origin_address,
        )
        raise
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("storage_failure", operation="cancel", booking_id=booking_id, user_id=caller_id)
        record_cancellation("error")
        _emit(
            audit,
            actor_id=caller_id,
            action="booking_cancel_failed",
            resource_type="booking",
            resource_id=booking_id,
            details="Cancellation failed: storage failure",
            origin_address=origin_address,
        )
        raise StorageFailure("Cancellation could not be completed")

    record_cancellation("success")
    logger.info(
        "booking_cancelled",
        booking_id=booking.id,
        user_id=caller_id,
        event_id=booking.event_id,
        ticket_tier_id=booking.ticket_tier_id,
        quantity_restored=booking.quantity,
    )
    _emit(
        audit,
        actor_id=caller_id,
        action="booking_cancelled",
        resource_type="booking",
        resource_id=booking.id,
        details="Booking cancelled",
        origin_address=origin_address,
    )
    return booking


def _detail_query():
    return (
        select(Booking)
        .options(selectinload(Booking.event), selectinload(Booking.ticket_tier))
        .execution_options(populate_existing=True)
    )


async def list_bookings(
    db: AsyncSession,
    caller_id: int,
    caller_role: str,
    include_all: bool = False,
) -> list[Booking]:
    """Own bookings newest first; every booking when an admin asks for all."""
    query = _detail_query()

    if include_all:
        if caller_role != settings.ADMIN_ROLE:
            raise Forbidden("Only administrators can list all bookings")
    else:
        query = query.where(Booking.user_id == caller_id)

    result = await db.execute(query.order_by(Booking.created_at.desc(), Booking.id.desc()))
    return list(result.scalars().all())


async def get_booking(db: AsyncSession, booking_id: int, caller_id: int, caller_role: str) -> Booking:
    query = _detail_query().where(Booking.id == booking_id)
    if caller_role != settings.ADMIN_ROLE:
        query = query.where(Booking.user_id == caller_id)

    booking = (await db.execute(query)).scalar_one_or_none()
    if booking is None:
        raise NotFound("Booking not found")
    return booking
