"""Initial schema: users, events, event_registrations with indexes and constraints.

Revision ID: 001
Revises: None
Create Date: 2026-10-16
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("hashed_password", sa.String(255), nullable=False),
        sa.Column("session_token", sa.String(1024), nullable=True),
        sa.Column("reset_token", sa.String(64), nullable=True),
        sa.Column("reset_token_expiry", sa.DateTime(timezone=True), nullable=True),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("birthday", sa.Date(), nullable=True),
        sa.Column("bio", sa.Text(), nullable=True),
        sa.Column("profile_completion", sa.Integer(), nullable=False, server_default=sa.text("30")),
        sa.Column("last_login", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint(
            "profile_completion >= 0 AND profile_completion <= 100",
            name="check_profile_completion_range",
        ),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    # Session and reset lookups go by token value
    op.create_index("ix_users_session_token", "users", ["session_token"])
    op.create_index("ix_users_reset_token", "users", ["reset_token"])

    op.create_table(
        "events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("time", sa.Time(), nullable=True, server_default=sa.text("'12:00:00'")),
        sa.Column("location", sa.String(255), nullable=False),
        sa.Column("image", sa.String(255), nullable=True),
        sa.Column("seats", sa.Integer(), nullable=False, server_default=sa.text("100")),
        sa.Column("registered", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("category", sa.String(50), nullable=True),
        sa.Column("featured", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("seats > 0", name="check_seats_positive"),
        sa.CheckConstraint("registered >= 0", name="check_registered_non_negative"),
        sa.CheckConstraint("registered <= seats", name="check_registered_lte_seats"),
    )
    op.create_index("ix_events_id", "events", ["id"])
    # Every listing is ORDER BY date
    op.create_index("ix_events_date", "events", ["date"])
    # Featured carousel: WHERE featured ORDER BY date LIMIT n
    op.create_index("ix_events_featured_date", "events", ["featured", "date"])

    op.create_table(
        "event_registrations",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("status", sa.String(50), nullable=False, server_default=sa.text("'confirmed'")),
        sa.Column(
            "registration_date", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
        sa.UniqueConstraint("user_id", "event_id", name="uq_user_event_registration"),
    )
    op.create_index("ix_event_registrations_id", "event_registrations", ["id"])
    op.create_index("ix_event_registrations_user_id", "event_registrations", ["user_id"])
    op.create_index("ix_event_registrations_event_id", "event_registrations", ["event_id"])


def downgrade() -> None:
    op.drop_table("event_registrations")
    op.drop_table("events")
    op.drop_table("users")
