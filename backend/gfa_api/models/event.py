"""
Event model with seat occupancy tracking.

Key design decisions:
- `registered` is a denormalized counter kept equal to the number of
  registration rows; only the registration ledger moves it
- CHECK constraints are the final safety net for 0 <= registered <= seats
- Index on `date` because every listing is ordered by it
"""

from datetime import time

from sqlalchemy import Column, Integer, String, Text, Date, Time, Boolean, Index, CheckConstraint
from sqlalchemy.orm import relationship

from gfa_api.db.base import Base, TimestampMixin

DEFAULT_EVENT_TIME = time(12, 0)
DEFAULT_SEATS = 100


class Event(Base, TimestampMixin):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    date = Column(Date, nullable=False)
    time = Column(Time, nullable=True, default=DEFAULT_EVENT_TIME)
    location = Column(String(255), nullable=False)
    image = Column(String(255), nullable=True)
    seats = Column(Integer, nullable=False, default=DEFAULT_SEATS)
    registered = Column(Integer, nullable=False, default=0)
    category = Column(String(50), nullable=True)
    featured = Column(Boolean, nullable=False, default=False)

    registrations = relationship(
        "Registration",
        back_populates="event",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        CheckConstraint("seats > 0", name="check_seats_positive"),
        CheckConstraint("registered >= 0", name="check_registered_non_negative"),
        CheckConstraint("registered <= seats", name="check_registered_lte_seats"),
        Index("ix_events_date", "date"),
        Index("ix_events_featured_date", "featured", "date"),
    )

    @property
    def available_seats(self) -> int:
        return self.seats - self.registered

    def __repr__(self) -> str:
        return f"<Event(id={self.id}, title={self.title}, registered={self.registered}/{self.seats})>"
