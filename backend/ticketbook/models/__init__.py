from ticketbook.models.user import User
from ticketbook.models.event import Event, TicketTier
from ticketbook.models.booking import Booking, BookingStatus
from ticketbook.models.activity_log import ActivityLog

__all__ = ["User", "Event", "TicketTier", "Booking", "BookingStatus", "ActivityLog"]
