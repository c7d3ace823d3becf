"""
Tests for registration endpoints: seat accounting, duplicates and cancellation.
"""

from datetime import date, timedelta
from unittest.mock import AsyncMock

import pytest
from httpx import AsyncClient
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError

from gfa_api.models.event import Event
from gfa_api.core.exceptions import ConflictError
from gfa_api.models.registration import Registration
from gfa_api.services import registration_service

from conftest import make_event


async def counter_and_rows(session_factory, event_id: int) -> tuple[int, int]:
    """Read the event counter and the real row count through a fresh session."""
    async with session_factory() as session:
        event = await session.get(Event, event_id)
        rows = await session.execute(
            select(func.count(Registration.id)).where(Registration.event_id == event_id)
        )
        return event.registered, rows.scalar_one()


@pytest.mark.asyncio
async def test_register_for_event(client: AsyncClient, auth_headers, test_user, test_event):
    """Successful registration takes exactly one seat."""
    response = await client.post(f"/api/events/{test_event.id}/register", headers=auth_headers)
    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "success"
    assert body["message"] == "Successfully registered for the event"
    assert body["data"]["event_id"] == test_event.id
    assert body["data"]["user_id"] == test_user.id
    assert body["data"]["status"] == "confirmed"

    event_response = await client.get(f"/api/events/{test_event.id}")
    data = event_response.json()["data"]
    assert data["registered"] == 1
    assert data["available_seats"] == 99


@pytest.mark.asyncio
async def test_register_unauthenticated(client: AsyncClient, test_event):
    response = await client.post(f"/api/events/{test_event.id}/register")
    assert response.status_code == 401
    assert response.json() == {"status": "error", "error": "Unauthorized: No token provided"}


@pytest.mark.asyncio
async def test_register_with_garbage_token(client: AsyncClient, test_event):
    response = await client.post(
        f"/api/events/{test_event.id}/register",
        headers={"Authorization": "Bearer not-a-real-token"},
    )
    assert response.status_code == 401
    assert response.json()["error"] == "Unauthorized: Invalid or expired token"


@pytest.mark.asyncio
async def test_register_sold_out(client: AsyncClient, auth_headers, sold_out_event, session_factory):
    """Registering for a full event is rejected and nothing changes."""
    response = await client.post(f"/api/events/{sold_out_event.id}/register", headers=auth_headers)
    assert response.status_code == 400
    assert response.json() == {"status": "error", "error": "This event is fully booked"}

    registered, _ = await counter_and_rows(session_factory, sold_out_event.id)
    assert registered == 50


@pytest.mark.asyncio
async def test_duplicate_registration(client: AsyncClient, auth_headers, test_event, session_factory):
    """Same user registering twice is rejected; counter moves once."""
    first = await client.post(f"/api/events/{test_event.id}/register", headers=auth_headers)
    assert first.status_code == 201

    second = await client.post(f"/api/events/{test_event.id}/register", headers=auth_headers)
    assert second.status_code == 400
    assert second.json()["error"] == "You are already registered for this event"

    assert await counter_and_rows(session_factory, test_event.id) == (1, 1)


@pytest.mark.asyncio
async def test_last_seat_goes_to_one_user(
    client: AsyncClient, auth_headers, other_headers, single_seat_event, session_factory
):
    """One seat: A gets it, B is turned away, A cancels, B gets it."""
    url = f"/api/events/{single_seat_event.id}/register"

    response_a = await client.post(url, headers=auth_headers)
    assert response_a.status_code == 201

    response_b = await client.post(url, headers=other_headers)
    assert response_b.status_code == 400
    assert response_b.json()["error"] == "This event is fully booked"

    cancel = await client.delete(url, headers=auth_headers)
    assert cancel.status_code == 200

    retry_b = await client.post(url, headers=other_headers)
    assert retry_b.status_code == 201

    assert await counter_and_rows(session_factory, single_seat_event.id) == (1, 1)


@pytest.mark.asyncio
async def test_cancel_registration(client: AsyncClient, auth_headers, test_event, session_factory):
    """Register then cancel leaves the event as it was."""
    url = f"/api/events/{test_event.id}/register"
    await client.post(url, headers=auth_headers)

    response = await client.delete(url, headers=auth_headers)
    assert response.status_code == 200
    assert response.json() == {"status": "success", "message": "Registration cancelled successfully"}

    assert await counter_and_rows(session_factory, test_event.id) == (0, 0)


@pytest.mark.asyncio
async def test_cancel_without_registration(client: AsyncClient, auth_headers, test_event, session_factory):
    response = await client.delete(f"/api/events/{test_event.id}/register", headers=auth_headers)
    assert response.status_code == 404
    assert response.json()["error"] == "Registration not found"

    assert await counter_and_rows(session_factory, test_event.id) == (0, 0)


@pytest.mark.asyncio
async def test_cancel_twice(client: AsyncClient, auth_headers, test_event):
    url = f"/api/events/{test_event.id}/register"
    await client.post(url, headers=auth_headers)
    await client.delete(url, headers=auth_headers)

    response = await client.delete(url, headers=auth_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_register_nonexistent_event(client: AsyncClient, auth_headers):
    response = await client.post("/api/events/99999/register", headers=auth_headers)
    assert response.status_code == 404
    assert response.json()["error"] == "Event not found"


@pytest.mark.asyncio
async def test_register_invalid_event_id(client: AsyncClient, auth_headers):
    """A non-numeric id is a bad request, not a missing event."""
    response = await client.post("/api/events/abc/register", headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["status"] == "error"


@pytest.mark.asyncio
async def test_list_user_events(client: AsyncClient, auth_headers, test_event, single_seat_event):
    """User sees exactly the events they hold a seat on."""
    await client.post(f"/api/events/{test_event.id}/register", headers=auth_headers)

    response = await client.get("/api/events/user/events", headers=auth_headers)
    assert response.status_code == 200
    body = response.json()
    assert body["count"] == 1
    assert body["data"][0]["id"] == test_event.id
    assert body["data"][0]["registration_status"] == "confirmed"
    assert body["data"][0]["registered"] == 1
    assert "registration_date" in body["data"][0]


@pytest.mark.asyncio
async def test_list_user_events_orders_by_date(client: AsyncClient, auth_headers, db_session):
    """Events come back soonest first, whatever order they were created in."""
    today = date.today()
    later = await make_event(db_session, title="Later", date=today + timedelta(days=20))
    soonest = await make_event(db_session, title="Soonest", date=today + timedelta(days=5))
    latest = await make_event(db_session, title="Latest", date=today + timedelta(days=40))
    for event in (latest, later, soonest):
        assert (await client.post(f"/api/events/{event.id}/register", headers=auth_headers)).status_code == 201

    response = await client.get("/api/events/user/events", headers=auth_headers)
    assert response.status_code == 200
    assert [e["id"] for e in response.json()["data"]] == [soonest.id, later.id, latest.id]


@pytest.mark.asyncio
async def test_list_user_events_is_per_user(client: AsyncClient, auth_headers, other_headers, test_event):
    await client.post(f"/api/events/{test_event.id}/register", headers=auth_headers)

    response = await client.get("/api/events/user/events", headers=other_headers)
    assert response.status_code == 200
    assert response.json()["count"] == 0


@pytest.mark.asyncio
async def test_list_user_events_requires_auth(client: AsyncClient):
    response = await client.get("/api/events/user/events")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_registration_confirmation_email(client: AsyncClient, auth_headers, test_user, test_event, notifier):
    await client.post(f"/api/events/{test_event.id}/register", headers=auth_headers)

    assert len(notifier.sent) == 1
    assert notifier.sent[0]["to"] == test_user.email
    assert test_event.title in notifier.sent[0]["subject"]


# ==================== Integrity errors ====================

def _integrity_error(message: str) -> IntegrityError:
    return IntegrityError("INSERT INTO event_registrations", {}, Exception(message))


DUPLICATE_PAIR = 'duplicate key value violates unique constraint "uq_user_event_registration"'
MISSING_USER = (
    'insert or update on table "event_registrations" violates foreign key constraint '
    '"event_registrations_user_id_fkey"'
)


def test_is_duplicate_registration():
    assert registration_service.is_duplicate_registration(_integrity_error(DUPLICATE_PAIR))
    assert registration_service.is_duplicate_registration(
        _integrity_error("UNIQUE constraint failed: event_registrations.user_id, event_registrations.event_id")
    )
    assert not registration_service.is_duplicate_registration(_integrity_error(MISSING_USER))
    assert not registration_service.is_duplicate_registration(
        _integrity_error("CHECK constraint failed: events.check_registered_lte_seats")
    )


@pytest.mark.asyncio
async def test_foreign_key_failure_is_not_reported_as_duplicate(session_factory, test_user, test_event, monkeypatch):
    """Only the (user, event) constraint maps to 'already registered'; anything else propagates."""
    async with session_factory() as session:
        monkeypatch.setattr(session, "flush", AsyncMock(side_effect=_integrity_error(MISSING_USER)))
        with pytest.raises(IntegrityError):
            await registration_service.register_for_event(session, test_user.id, test_event.id)

    assert await counter_and_rows(session_factory, test_event.id) == (0, 0)


@pytest.mark.asyncio
async def test_unique_violation_on_insert_is_reported_as_duplicate(session_factory, test_user, test_event, monkeypatch):
    async with session_factory() as session:
        monkeypatch.setattr(session, "flush", AsyncMock(side_effect=_integrity_error(DUPLICATE_PAIR)))
        with pytest.raises(ConflictError, match="already registered"):
            await registration_service.register_for_event(session, test_user.id, test_event.id)

    assert await counter_and_rows(session_factory, test_event.id) == (0, 0)
