"""
Concurrency tests for the registration ledger.

Every task gets its own session, as concurrent requests do, and all of
them race for the same event.
"""

import asyncio

import pytest
from sqlalchemy import select, func

from gfa_api.core.exceptions import CapacityError, ConflictError
from gfa_api.models.event import Event
from gfa_api.models.registration import Registration
from gfa_api.services import auth_service, registration_service

from conftest import make_event, make_user


async def _attempt(session_factory, user_id: int, event_id: int) -> str:
    async with session_factory() as session:
        try:
            await registration_service.register_for_event(session, user_id, event_id)
        except CapacityError:
            return "full"
        except ConflictError:
            return "duplicate"
    return "ok"


async def _state(session_factory, event_id: int) -> tuple[int, int]:
    async with session_factory() as session:
        event = await session.get(Event, event_id)
        rows = await session.execute(
            select(func.count(Registration.id)).where(Registration.event_id == event_id)
        )
        return event.registered, rows.scalar_one()


@pytest.mark.asyncio
async def test_concurrent_registrations_never_overbook(db_session, session_factory):
    """20 users race for 5 seats: exactly 5 succeed."""
    event = await make_event(db_session, title="Hot Ticket", seats=5)
    users = [await make_user(db_session, f"racer{i}@example.com") for i in range(20)]

    results = await asyncio.gather(
        *[_attempt(session_factory, user.id, event.id) for user in users]
    )

    assert results.count("ok") == 5
    assert results.count("full") == 15
    assert await _state(session_factory, event.id) == (5, 5)


@pytest.mark.asyncio
async def test_concurrent_duplicate_registrations(db_session, session_factory):
    """The same user firing several requests at once holds one seat."""
    event = await make_event(db_session, seats=10)
    user = await make_user(db_session, "eager@example.com")

    results = await asyncio.gather(
        *[_attempt(session_factory, user.id, event.id) for _ in range(5)]
    )

    assert results.count("ok") == 1
    assert results.count("duplicate") == 4
    assert await _state(session_factory, event.id) == (1, 1)


@pytest.mark.asyncio
async def test_concurrent_register_and_cancel(db_session, session_factory):
    """Mixed register/cancel traffic keeps the counter equal to the row count."""
    event = await make_event(db_session, seats=3)
    holders = [await make_user(db_session, f"holder{i}@example.com") for i in range(3)]
    newcomers = [await make_user(db_session, f"new{i}@example.com") for i in range(6)]

    for user in holders:
        assert await _attempt(session_factory, user.id, event.id) == "ok"

    async def cancel(user_id: int) -> str:
        async with session_factory() as session:
            await registration_service.cancel_registration(session, user_id, event.id)
        return "cancelled"

    await asyncio.gather(
        *[cancel(user.id) for user in holders],
        *[_attempt(session_factory, user.id, event.id) for user in newcomers],
    )

    registered, rows = await _state(session_factory, event.id)
    assert registered == rows
    assert 0 <= registered <= 3


@pytest.mark.asyncio
async def test_account_deletion_releases_seats(db_session, session_factory):
    """Deleting an account gives back every seat it held."""
    first = await make_event(db_session, title="First", seats=2)
    second = await make_event(db_session, title="Second", seats=2)
    user = await make_user(db_session, "leaving@example.com")
    stayer = await make_user(db_session, "staying@example.com")

    for event in (first, second):
        assert await _attempt(session_factory, user.id, event.id) == "ok"
    assert await _attempt(session_factory, stayer.id, first.id) == "ok"

    async with session_factory() as session:
        await auth_service.delete_account(session, user.id)

    assert await _state(session_factory, first.id) == (1, 1)
    assert await _state(session_factory, second.id) == (0, 0)
