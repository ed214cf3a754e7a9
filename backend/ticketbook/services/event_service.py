"""
Event catalog: create, read, list and patch events with their ticket tiers.

Stock counters are initialised here and never touched again; only the
booking service moves them afterwards.
"""

from datetime import datetime, timezone
from sqlalchemy import select, func, update
from sqlalchemy.ext.asyncio import AsyncSession

from ticketbook.core.exceptions import NotFound, ValidationError
from ticketbook.models.event import Event, TicketTier
from ticketbook.schemas.event import EventCreate, EventUpdate
from ticketbook.core.logging import get_logger

logger = get_logger(__name__)

# Only these columns may be patched; capacity and counters are absent on purpose.
PATCHABLE_FIELDS = frozenset({"title", "description", "date", "location"})


def _ensure_future(date: datetime) -> None:
    if date.tzinfo is None:
        date = date.replace(tzinfo=timezone.utc)
    if date <= datetime.now(timezone.utc):
        raise ValidationError("Event date must be in the future")


async def create_event(db: AsyncSession, event_data: EventCreate, created_by: int) -> Event:
    """Create an event with full seat availability and fully stocked tiers."""
    _ensure_future(event_data.date)

    allocated = sum(tier.quantity for tier in event_data.ticket_tiers)
    if allocated > event_data.capacity:
        raise ValidationError(
            f"Ticket tier quantities ({allocated}) exceed event capacity ({event_data.capacity})"
        )

    event = Event(
        title=event_data.title,
        description=event_data.description,
        date=event_data.date,
        location=event_data.location,
        capacity=event_data.capacity,
        available_seats=event_data.capacity,
        created_by=created_by,
        ticket_tiers=[
            TicketTier(
                name=tier.name,
                price=tier.price,
                quantity=tier.quantity,
                available_quantity=tier.quantity,
            )
            for tier in event_data.ticket_tiers
        ],
    )
    db.add(event)
    await db.commit()

    logger.info(
        "event_created",
        event_id=event.id,
        title=event.title,
        capacity=event.capacity,
        tiers=len(event.ticket_tiers),
    )
    return await get_event(db, event.id)


async def get_event(db: AsyncSession, event_id: int) -> Event:
    """Get a single event by ID with live counters."""
    result = await db.execute(
        select(Event).where(Event.id == event_id).execution_options(populate_existing=True)
    )
    event = result.scalar_one_or_none()

    if not event:
        raise NotFound(f"Event {event_id} not found")
    return event


async def list_events(
    db: AsyncSession,
    page: int = 1,
    page_size: int = 20,
    upcoming_only: bool = True,
) -> tuple[list[Event], int]:
    """
    List events with pagination.
    Uses the ix_events_date index for efficient date filtering.
    """
    query = select(Event)

    if upcoming_only:
        query = query.where(Event.date >= datetime.now(timezone.utc))

    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar()

    events_query = (
        query
        .order_by(Event.date.asc(), Event.id.asc())
        .offset((page - 1) * page_size)
        .limit(page_size)
        .execution_options(populate_existing=True)
    )
    result = await db.execute(events_query)
    events = list(result.scalars().all())

    return events, total


async def update_event(db: AsyncSession, event_id: int, changes: EventUpdate) -> Event:
    """
    Apply a partial update.

    Only fields present in the request body are written, as bound
    parameters of a single UPDATE statement.
    """
    values = {
        field: value
        for field, value in changes.model_dump(exclude_unset=True).items()
        # description is the only nullable column
        if field in PATCHABLE_FIELDS and (value is not None or field == "description")
    }
    if "date" in values:
        _ensure_future(values["date"])

    if not values:
        return await get_event(db, event_id)

    result = await db.execute(
        update(Event)
        .where(Event.id == event_id)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        await db.rollback()
        raise NotFound(f"Event {event_id} not found")
    await db.commit()

    logger.info("event_updated", event_id=event_id, fields=sorted(values))
    return await get_event(db, event_id)
