"""
Pydantic schemas for booking-related request/response validation.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


# Upper bound of the int4 primary keys
MAX_ROW_ID = 2**31 - 1


class BookingCreate(BaseModel):
    event_id: int = Field(..., gt=0, le=MAX_ROW_ID)
    ticket_tier_id: Optional[int] = Field(None, gt=0, le=MAX_ROW_ID)
    quantity: int = Field(..., ge=1)


class BookingResponse(BaseModel):
    id: int
    user_id: int
    event_id: int
    ticket_tier_id: Optional[int]
    quantity: int
    total_price: Decimal
    status: str
    created_at: datetime

    model_config = {"from_attributes": True}


class BookingDetailResponse(BookingResponse):
    event_title: str
    event_date: datetime
    event_location: str
    ticket_tier_name: Optional[str] = None

    @classmethod
    def from_booking(cls, booking) -> "BookingDetailResponse":
        """Flatten a booking loaded with its event and tier relationships."""
        return cls(
            **BookingResponse.model_validate(booking).model_dump(),
            event_title=booking.event.title,
            event_date=booking.event.date,
            event_location=booking.event.location,
            ticket_tier_name=booking.ticket_tier.name if booking.ticket_tier else None,
        )


class BookingCancelResponse(BaseModel):
    message: str
    booking_id: int
    status: str
