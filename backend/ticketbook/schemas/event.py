"""
Pydantic schemas for event-related request/response validation.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field


class TicketTierCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    quantity: int = Field(..., gt=0)


class TicketTierResponse(BaseModel):
    id: int
    event_id: int
    name: str
    price: Decimal
    quantity: int
    available_quantity: int

    model_config = {"from_attributes": True}


class EventCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=1000)
    date: datetime
    location: str = Field(..., min_length=1, max_length=255)
    capacity: int = Field(..., gt=0, le=100000)
    ticket_tiers: list[TicketTierCreate] = Field(default_factory=list)


class EventUpdate(BaseModel):
    """Partial update. Capacity and stock counters are deliberately absent."""

    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=1000)
    date: Optional[datetime] = None
    location: Optional[str] = Field(None, min_length=1, max_length=255)

    model_config = {"extra": "forbid"}


class EventResponse(BaseModel):
    id: int
    title: str
    description: Optional[str]
    date: datetime
    location: str
    capacity: int
    available_seats: int
    created_by: Optional[int]
    created_at: datetime
    ticket_tiers: list[TicketTierResponse] = []

    model_config = {"from_attributes": True}


class EventListResponse(BaseModel):
    events: list[EventResponse]
    total: int
    page: int
    page_size: int
