"""
Booking ledger entry representing a user's reservation for an event.

Key design decisions:
- Status is a two-state machine: confirmed -> cancelled, never back
- Bookings are never deleted; cancellation flips the status and keeps the row
- Referenced users, events and tiers cannot be deleted out from under a booking
- ticket_tier_id is optional: without it the booking draws on event capacity only
- total_price is fixed at reservation time (tier price x quantity, or 0)
"""

import enum

from sqlalchemy import Column, Integer, String, Numeric, ForeignKey, CheckConstraint, Index
from sqlalchemy.orm import relationship

from ticketbook.db.base import Base, TimestampMixin


class BookingStatus(str, enum.Enum):
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class Booking(Base, TimestampMixin):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="RESTRICT"), nullable=False, index=True)
    ticket_tier_id = Column(Integer, ForeignKey("ticket_tiers.id", ondelete="RESTRICT"), nullable=True)
    quantity = Column(Integer, nullable=False)
    total_price = Column(Numeric(10, 2), nullable=False, default=0)
    status = Column(String(20), nullable=False, default=BookingStatus.CONFIRMED.value)

    event = relationship("Event")
    ticket_tier = relationship("TicketTier")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="check_booking_quantity_positive"),
        CheckConstraint("total_price >= 0", name="check_booking_total_non_negative"),
        CheckConstraint("status IN ('confirmed', 'cancelled')", name="check_booking_status"),
        Index("ix_bookings_user_created", "user_id", "created_at"),
    )

    @property
    def is_cancelled(self) -> bool:
        return self.status == BookingStatus.CANCELLED.value

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, user={self.user_id}, event={self.event_id}, status={self.status})>"
