"""
Booking endpoints with concurrency-safe reservation and cancellation.
"""

from fastapi import APIRouter, Depends, Path, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from ticketbook.api.middleware import client_address
from ticketbook.db.session import get_db
from ticketbook.schemas.booking import (
    BookingCreate,
    BookingResponse,
    BookingDetailResponse,
    BookingCancelResponse,
    MAX_ROW_ID,
)
from ticketbook.services.audit_factory import get_audit_dispatcher
from ticketbook.services.audit_service import AuditDispatcher
from ticketbook.services.booking_service import (
    reserve_tickets,
    cancel_booking,
    list_bookings,
    get_booking,
)
from ticketbook.core.security import Caller, get_current_caller

router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.post("/", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    booking_data: BookingCreate,
    request: Request,
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db),
    audit: AuditDispatcher = Depends(get_audit_dispatcher),
):
    """
    Reserve seats, optionally from a ticket tier.

    Counters are checked and decremented under a row lock in one
    transaction. Losing the race for the last seats returns 409.
    """
    return await reserve_tickets(
        db,
        caller.user_id,
        booking_data.event_id,
        booking_data.quantity,
        ticket_tier_id=booking_data.ticket_tier_id,
        audit=audit,
        origin_address=client_address(request),
    )


@router.put("/{booking_id}/cancel", response_model=BookingCancelResponse)
async def cancel_booking_endpoint(
    request: Request,
    booking_id: int = Path(..., gt=0, le=MAX_ROW_ID),
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db),
    audit: AuditDispatcher = Depends(get_audit_dispatcher),
):
    """Cancel a booking and release its seats. Owner or admin only."""
    booking = await cancel_booking(
        db,
        booking_id,
        caller.user_id,
        caller.role,
        audit=audit,
        origin_address=client_address(request),
    )
    return BookingCancelResponse(
        message="Booking cancelled successfully",
        booking_id=booking.id,
        status=booking.status,
    )


@router.get("/", response_model=list[BookingDetailResponse])
async def list_bookings_endpoint(
    include_all: bool = Query(False, alias="all", description="Every user's bookings (admin only)"),
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db),
):
    """List the caller's bookings, or all bookings for an admin."""
    bookings = await list_bookings(db, caller.user_id, caller.role, include_all=include_all)
    return [BookingDetailResponse.from_booking(b) for b in bookings]


@router.get("/{booking_id}", response_model=BookingDetailResponse)
async def get_booking_endpoint(
    booking_id: int = Path(..., gt=0, le=MAX_ROW_ID),
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db),
):
    booking = await get_booking(db, booking_id, caller.user_id, caller.role)
    return BookingDetailResponse.from_booking(booking)
