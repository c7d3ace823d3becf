"""
Registration ledger: the user <-> event seat relation.

CONCURRENCY STRATEGY: per-event serialization + guarded counter update
=====================================================================

Problem:
  Two users try to take the last seat simultaneously.
  Both read registered=seats-1, both insert, both increment.
  Result: Overbooking.

Invariant:
  For every event E, after every commit:
    count(registrations for E) == E.registered  and  0 <= registered <= seats

Solution:
  register / cancel for an event run as one unit:

  1. event_lock(event_id): in-process asyncio lock, one writer per event
  2. BEGIN, SELECT ... FROM events WHERE id = :id FOR UPDATE
     (row lock, serializes writers across worker processes)
  3. UPDATE events SET registered = registered + 1
     WHERE id = :id AND registered < seats
     rowcount == 0 means the event is full
  4. INSERT the registration row; the (user_id, event_id) unique
     constraint rejects a duplicate that slipped past the pre-check
  5. COMMIT, or ROLLBACK on any error so the row and the counter
     always move together

  The CHECK constraints on events (registered >= 0, registered <= seats)
  are the final safety net.

  Optimistic read-then-write with retries is not used here: the counter
  is only ever changed under the row lock.
"""

import time
from datetime import date

from sqlalchemy import select, update, delete, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from gfa_api.core.exceptions import CapacityError, ConflictError, NotFoundError
from gfa_api.core.logging import get_logger
from gfa_api.core.metrics import record_registration_attempt, record_cancellation, registration_latency
from gfa_api.db.locks import event_lock
from gfa_api.db.session import atomic
from gfa_api.models.event import Event
from gfa_api.models.registration import Registration, STATUS_CONFIRMED
from gfa_api.models.user import User

logger = get_logger(__name__)

ALREADY_REGISTERED = "You are already registered for this event"
FULLY_BOOKED = "This event is fully booked"
UNIQUE_REGISTRATION = "uq_user_event_registration"
UNIQUE_REGISTRATION_SQLITE = "UNIQUE constraint failed: event_registrations.user_id, event_registrations.event_id"


def is_duplicate_registration(exc: IntegrityError) -> bool:
    """True when ``exc`` comes from the (user_id, event_id) unique constraint."""
    message = str(exc.orig)
    # PostgreSQL names the constraint, SQLite names the columns
    return UNIQUE_REGISTRATION in message or UNIQUE_REGISTRATION_SQLITE in message


async def _lock_event_row(db: AsyncSession, event_id: int) -> Event | None:
    result = await db.execute(
        select(Event)
        .where(Event.id == event_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def register_for_event(db: AsyncSession, user_id: int, event_id: int) -> tuple[Registration, Event]:
    """
    Take one seat on an event for a user.

    Raises NotFoundError (event or user missing), ConflictError (already
    registered) or CapacityError (no seats left). Returns the registration
    and the event as committed.
    """
    start = time.perf_counter()
    status = "error"
    try:
        async with event_lock(event_id):
            try:
                async with atomic(db):
                    event = await _lock_event_row(db, event_id)
                    if event is None:
                        status = "not_found"
                        raise NotFoundError("Event not found")

                    if await db.get(User, user_id) is None:
                        status = "not_found"
                        raise NotFoundError("User not found")

                    existing = await db.execute(
                        select(Registration.id).where(
                            Registration.user_id == user_id,
                            Registration.event_id == event_id,
                        )
                    )
                    if existing.scalar_one_or_none() is not None:
                        status = "conflict"
                        raise ConflictError(ALREADY_REGISTERED)

                    taken = await db.execute(
                        update(Event)
                        .where(Event.id == event_id, Event.registered < Event.seats)
                        .values(registered=Event.registered + 1)
                        .execution_options(synchronize_session=False)
                    )
                    if taken.rowcount == 0:
                        status = "full"
                        logger.warning(
                            "registration_failed_full",
                            event_id=event_id,
                            user_id=user_id,
                            seats=event.seats,
                            registered=event.registered,
                        )
                        raise CapacityError(FULLY_BOOKED)

                    registration = Registration(
                        event_id=event_id,
                        user_id=user_id,
                        status=STATUS_CONFIRMED,
                    )
                    db.add(registration)
                    await db.flush()
                    await db.refresh(registration)
                    await db.refresh(event)
            except IntegrityError as e:
                # The whole unit was rolled back; only the pair constraint means a duplicate
                if not is_duplicate_registration(e):
                    logger.error("registration_integrity_error", user_id=user_id, event_id=event_id, error=str(e.orig))
                    raise
                status = "conflict"
                raise ConflictError(ALREADY_REGISTERED) from None

        status = "success"
    finally:
        record_registration_attempt(status)
        registration_latency.observe(time.perf_counter() - start)

    logger.info(
        "registration_created",
        registration_id=registration.id,
        user_id=user_id,
        event_id=event_id,
        registered=event.registered,
        seats=event.seats,
    )
    return registration, event


async def cancel_registration(db: AsyncSession, user_id: int, event_id: int) -> Event:
    """
    Release a user's seat. Raises NotFoundError if the user holds none.
    Returns the event as committed.
    """
    async with event_lock(event_id):
        async with atomic(db):
            event = await _lock_event_row(db, event_id)
            result = await db.execute(
                select(Registration).where(
                    Registration.user_id == user_id,
                    Registration.event_id == event_id,
                )
            )
            registration = result.scalar_one_or_none()
            if event is None or registration is None:
                record_cancellation("not_found")
                raise NotFoundError("Registration not found")

            await db.delete(registration)
            # A registration existed, so registered >= 1 here
            await db.execute(
                update(Event)
                .where(Event.id == event_id)
                .values(registered=Event.registered - 1)
                .execution_options(synchronize_session=False)
            )
            await db.flush()
            await db.refresh(event)

    record_cancellation("success")
    logger.info(
        "registration_cancelled",
        user_id=user_id,
        event_id=event_id,
        registered=event.registered,
        seats=event.seats,
    )
    return event


async def list_user_events(
    db: AsyncSession,
    user_id: int,
    upcoming_only: bool = False,
    limit: int | None = None,
) -> list[tuple[Event, Registration]]:
    """
    Events a user is registered for, with the registration, by event date.
    ``upcoming_only`` keeps events dated today or later.
    """
    query = (
        select(Event, Registration)
        .join(Registration, Registration.event_id == Event.id)
        .where(Registration.user_id == user_id)
    )
    if upcoming_only:
        query = query.where(Event.date >= date.today())
    query = query.order_by(Event.date.asc(), Event.time.asc(), Event.id.asc())
    if limit is not None:
        query = query.limit(limit)

    async with atomic(db):
        result = await db.execute(query.execution_options(populate_existing=True))
        rows = [(event, registration) for event, registration in result.all()]
    return rows


async def registered_event_ids(db: AsyncSession, user_id: int) -> list[int]:
    async with atomic(db):
        result = await db.execute(
            select(Registration.event_id).where(Registration.user_id == user_id)
        )
        return sorted(result.scalars().all())


async def release_all_for_user(db: AsyncSession, user_id: int) -> int:
    """
    Drop every registration a user holds and give the seats back.

    Must run inside the caller's transaction (account deletion), with the
    affected event locks already held. Event rows are locked in ascending
    id order. Returns the number of seats released.
    """
    result = await db.execute(
        select(Registration.event_id, func.count(Registration.id))
        .where(Registration.user_id == user_id)
        .group_by(Registration.event_id)
        .order_by(Registration.event_id.asc())
    )
    per_event = result.all()

    for event_id, held in per_event:
        await _lock_event_row(db, event_id)
        await db.execute(
            update(Event)
            .where(Event.id == event_id)
            .values(registered=Event.registered - held)
            .execution_options(synchronize_session=False)
        )

    await db.execute(
        delete(Registration)
        .where(Registration.user_id == user_id)
        .execution_options(synchronize_session=False)
    )

    released = sum(held for _, held in per_event)
    logger.info("registrations_released", user_id=user_id, seats_released=released, events=len(per_event))
    return released
