from ticketbook.schemas.user import UserCreate, UserResponse, UserLogin, Token
from ticketbook.schemas.event import (
    EventCreate, EventUpdate, EventResponse, EventListResponse,
    TicketTierCreate, TicketTierResponse,
)
from ticketbook.schemas.booking import (
    BookingCreate, BookingResponse, BookingDetailResponse, BookingCancelResponse,
)

__all__ = [
    "UserCreate", "UserResponse", "UserLogin", "Token",
    "EventCreate", "EventUpdate", "EventResponse", "EventListResponse",
    "TicketTierCreate", "TicketTierResponse",
    "BookingCreate", "BookingResponse", "BookingDetailResponse", "BookingCancelResponse",
]
