"""
Registration model: one seat held by one user on one event.

Key design decisions:
- Unique constraint on (user_id, event_id) backs the "already registered" check
- Rows are created and deleted only together with the Event.registered counter
- Both foreign keys cascade, so a registration never outlives its user or event
"""

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint, func
from sqlalchemy.orm import relationship

from gfa_api.db.base import Base

STATUS_CONFIRMED = "confirmed"


class Registration(Base):
    __tablename__ = "event_registrations"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String(50), nullable=False, default=STATUS_CONFIRMED)
    registration_date = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    user = relationship("User", back_populates="registrations")
    event = relationship("Event", back_populates="registrations")

    __table_args__ = (
        UniqueConstraint("user_id", "event_id", name="uq_user_event_registration"),
    )

    def __repr__(self) -> str:
        return f"<Registration(id={self.id}, user={self.user_id}, event={self.event_id}, status={self.status})>"
