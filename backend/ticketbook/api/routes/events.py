"""
Event catalog endpoints. Writes are admin-only; reads are public.
"""

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ticketbook.db.session import get_db
from ticketbook.schemas.event import EventCreate, EventUpdate, EventResponse, EventListResponse
from ticketbook.schemas.booking import MAX_ROW_ID
from ticketbook.services.event_service import create_event, get_event, list_events, update_event
from ticketbook.core.security import Caller, require_admin

router = APIRouter(prefix="/events", tags=["Events"])


@router.post("/", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
async def create_event_endpoint(
    event_data: EventCreate,
    caller: Caller = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Create an event and its ticket tiers. Requires the admin role."""
    return await create_event(db, event_data, caller.user_id)


@router.get("/", response_model=EventListResponse)
async def list_events_endpoint(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    upcoming_only: bool = Query(True),
    db: AsyncSession = Depends(get_db),
):
    """List events with pagination. Always read live, never cached."""
    events, total = await list_events(db, page, page_size, upcoming_only)
    return EventListResponse(
        events=[EventResponse.model_validate(e) for e in events],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/{event_id}", response_model=EventResponse)
async def get_event_endpoint(
    event_id: int = Path(..., gt=0, le=MAX_ROW_ID),
    db: AsyncSession = Depends(get_db),
):
    """Get a single event by ID with live seat and tier counters."""
    return await get_event(db, event_id)


@router.patch("/{event_id}", response_model=EventResponse)
async def update_event_endpoint(
    changes: EventUpdate,
    event_id: int = Path(..., gt=0, le=MAX_ROW_ID),
    caller: Caller = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Patch descriptive fields. Capacity and stock cannot be changed here."""
    return await update_event(db, event_id, changes)
