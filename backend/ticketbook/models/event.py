"""
Event and ticket tier models with seat inventory tracking.

Key design decisions:
- `capacity` and `quantity` are fixed at creation; they are the invariant ceilings
- `available_seats` / `available_quantity` are denormalized live counters, written
  only by the reservation and compensation transactions
- CHECK constraints keep every counter within [0, ceiling] even if application code is wrong
- Index on `date` for range queries (e.g., "events this week")
"""

from sqlalchemy import Column, Integer, String, DateTime, Numeric, ForeignKey, Index, CheckConstraint
from sqlalchemy.orm import relationship

from ticketbook.db.base import Base, TimestampMixin


class Event(Base, TimestampMixin):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(String(1000), nullable=True)
    date = Column(DateTime(timezone=True), nullable=False)
    location = Column(String(255), nullable=False)
    capacity = Column(Integer, nullable=False)
    available_seats = Column(Integer, nullable=False)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    ticket_tiers = relationship(
        "TicketTier",
        back_populates="event",
        lazy="selectin",
        order_by="TicketTier.id",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        CheckConstraint("capacity > 0", name="check_capacity_positive"),
        CheckConstraint("available_seats >= 0", name="check_available_seats_non_negative"),
        CheckConstraint("available_seats <= capacity", name="check_available_lte_capacity"),
        Index("ix_events_date", "date"),
        Index("ix_events_available_date", "available_seats", "date"),
    )

    def __repr__(self) -> str:
        return f"<Event(id={self.id}, title={self.title}, available={self.available_seats}/{self.capacity})>"


class TicketTier(Base):
    __tablename__ = "ticket_tiers"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    quantity = Column(Integer, nullable=False)
    available_quantity = Column(Integer, nullable=False)

    event = relationship("Event", back_populates="ticket_tiers")

    __table_args__ = (
        CheckConstraint("price >= 0", name="check_tier_price_non_negative"),
        CheckConstraint("quantity > 0", name="check_tier_quantity_positive"),
        CheckConstraint("available_quantity >= 0", name="check_tier_available_non_negative"),
        CheckConstraint("available_quantity <= quantity", name="check_tier_available_lte_quantity"),
    )

    def __repr__(self) -> str:
        return (
            f"<TicketTier(id={self.id}, event={self.event_id}, name={self.name}, "
            f"available={self.available_quantity}/{self.quantity})>"
        )
