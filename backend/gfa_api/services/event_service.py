"""
Event registry: CRUD over events.

`registered` is owned by the registration ledger and is never written here,
except that a seat edit must keep `seats >= registered`; that edit takes the
same per-event lock and row lock the ledger uses.
"""

import datetime as dt
from typing import Optional

from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from gfa_api.core.exceptions import NotFoundError, ValidationError
from gfa_api.core.logging import get_logger
from gfa_api.core.metrics import record_db_operation
from gfa_api.db.locks import event_lock
from gfa_api.db.session import atomic
from gfa_api.models.event import Event, DEFAULT_EVENT_TIME, DEFAULT_SEATS
from gfa_api.models.registration import Registration
from gfa_api.services.patching import apply_patch

logger = get_logger(__name__)

# Explicit nulls for these are ignored by update_event
REQUIRED_EVENT_FIELDS = ("title", "date", "location", "seats", "featured")
PATCHABLE_EVENT_FIELDS = (
    "title", "description", "date", "time", "location", "image", "seats", "category", "featured",
)


async def create_event(
    db: AsyncSession,
    title: Optional[str],
    date: Optional[dt.date],
    location: Optional[str],
    seats: Optional[int] = None,
    description: Optional[str] = None,
    time: Optional[dt.time] = None,
    image: Optional[str] = None,
    category: Optional[str] = None,
    featured: Optional[bool] = None,
) -> Event:
    """Create a new event with no registrations."""
    if not title or not date or not location:
        raise ValidationError("Title, date, and location are required fields")
    if seats is not None and seats < 1:
        raise ValidationError("Seats must be a positive number")

    event = Event(
        title=title,
        description=description,
        date=date,
        time=time or DEFAULT_EVENT_TIME,
        location=location,
        image=image,
        seats=seats or DEFAULT_SEATS,
        registered=0,
        category=category,
        featured=bool(featured),
    )
    async with atomic(db):
        db.add(event)
        await db.flush()
        await db.refresh(event)

    record_db_operation("write")
    logger.info("event_created", event_id=event.id, title=event.title, seats=event.seats)
    return event


async def get_event(db: AsyncSession, event_id: int) -> Event:
    """Get a single event by ID, always re-read from the database."""
    async with atomic(db):
        result = await db.execute(
            select(Event)
            .where(Event.id == event_id)
            .execution_options(populate_existing=True)
        )
        event = result.scalar_one_or_none()

    record_db_operation("read")
    if event is None:
        raise NotFoundError("Event not found")
    return event


async def update_event(db: AsyncSession, event_id: int, patch: dict) -> Event:
    """
    Apply a partial update. Fields absent from ``patch`` are left unchanged;
    ``registered`` cannot be patched.
    """
    patch = {field: value for field, value in patch.items() if field in PATCHABLE_EVENT_FIELDS}
    new_seats = patch.get("seats")
    if new_seats is not None and new_seats < 1:
        raise ValidationError("Seats must be a positive number")

    async with event_lock(event_id):
        async with atomic(db):
            result = await db.execute(
                select(Event)
                .where(Event.id == event_id)
                .with_for_update()
                .execution_options(populate_existing=True)
            )
            event = result.scalar_one_or_none()
            if event is None:
                raise NotFoundError("Event not found")

            if new_seats is not None and new_seats < event.registered:
                raise ValidationError(
                    f"Seats cannot be lower than current registrations ({event.registered})"
                )

            changed = apply_patch(event, patch, required=REQUIRED_EVENT_FIELDS)
            await db.flush()
            await db.refresh(event)

    record_db_operation("write")
    logger.info("event_updated", event_id=event_id, fields=changed)
    return event


async def delete_event(db: AsyncSession, event_id: int) -> None:
    """Delete an event together with every registration for it."""
    async with event_lock(event_id):
        async with atomic(db):
            event = await db.get(Event, event_id, with_for_update=True, populate_existing=True)
            if event is None:
                raise NotFoundError("Event not found")

            removed = await db.execute(
                delete(Registration)
                .where(Registration.event_id == event_id)
                .execution_options(synchronize_session=False)
            )
            await db.delete(event)

    record_db_operation("write")
    logger.info("event_deleted", event_id=event_id, registrations_removed=removed.rowcount)


async def list_events(
    db: AsyncSession,
    category: Optional[str] = None,
    featured: Optional[bool] = None,
    limit: Optional[int] = None,
) -> list[Event]:
    """
    List events ordered by date ascending.
    Each filter is applied only when given; no filters returns every event.
    Uses the ix_events_date / ix_events_featured_date indexes.
    """
    query = select(Event)

    if category is not None:
        query = query.where(Event.category == category)
    if featured is not None:
        query = query.where(Event.featured == featured)

    query = query.order_by(Event.date.asc(), Event.time.asc(), Event.id.asc())
    if limit is not None:
        query = query.limit(limit)

    async with atomic(db):
        result = await db.execute(query.execution_options(populate_existing=True))
        events = list(result.scalars().all())

    record_db_operation("read")
    return events


async def list_featured_events(db: AsyncSession, limit: int = 3) -> list[Event]:
    return await list_events(db, featured=True, limit=limit)
