"""
Read-only checks used by the reservation and compensation transactions.

All reads run on the caller's session, inside the caller's transaction.
With `lock=True` the row is read with SELECT ... FOR UPDATE and
populate_existing, so the returned object reflects the locked row rather
than whatever the session's identity map held from an earlier transaction.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ticketbook.core.exceptions import NotFound, ValidationError
from ticketbook.models.event import Event, TicketTier


def validate_quantity(quantity: int) -> None:
    if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity < 1:
        raise ValidationError("Quantity must be at least 1")


def has_sufficient_stock(current_available: int, requested_qty: int) -> bool:
    return current_available >= requested_qty


async def event_exists(db: AsyncSession, event_id: int, lock: bool = False) -> Event:
    query = select(Event).where(Event.id == event_id)
    if lock:
        query = query.with_for_update().execution_options(populate_existing=True)

    event = (await db.execute(query)).scalar_one_or_none()
    if event is None:
        raise NotFound(f"Event {event_id} not found")
    return event


async def tier_exists(db: AsyncSession, event_id: int, tier_id: int, lock: bool = False) -> TicketTier:
    """A tier that exists but belongs to another event is reported as missing."""
    query = select(TicketTier).where(
        TicketTier.id == tier_id,
        TicketTier.event_id == event_id,
    )
    if lock:
        query = query.with_for_update().execution_options(populate_existing=True)

    tier = (await db.execute(query)).scalar_one_or_none()
    if tier is None:
        raise NotFound(f"Ticket tier {tier_id} not found for event {event_id}")
    return tier
