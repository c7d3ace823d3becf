"""
User model: credentials, session token, reset token and profile fields.
"""

from sqlalchemy import Column, Integer, String, Text, Date, DateTime, CheckConstraint
from sqlalchemy.orm import relationship

from gfa_api.db.base import Base, TimestampMixin


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)

    # Single active credential; replaced on login/registration, cleared on logout/reset
    session_token = Column(String(1024), nullable=True, index=True)

    # Always written and cleared as a pair
    reset_token = Column(String(64), nullable=True, index=True)
    reset_token_expiry = Column(DateTime(timezone=True), nullable=True)

    phone = Column(String(50), nullable=True)
    birthday = Column(Date, nullable=True)
    bio = Column(Text, nullable=True)
    profile_completion = Column(Integer, nullable=False, default=30)
    last_login = Column(DateTime(timezone=True), nullable=True)

    registrations = relationship(
        "Registration",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        CheckConstraint(
            "profile_completion >= 0 AND profile_completion <= 100",
            name="check_profile_completion_range",
        ),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email})>"
