"""
Registration endpoints: take a seat, give it back, list my events.
"""

from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from gfa_api.core.security import Identity, get_current_identity, get_current_user_id
from gfa_api.db.session import get_db
from gfa_api.schemas.event import EventResponse
from gfa_api.schemas.registration import (
    MessageResponse,
    RegistrationEnvelope,
    RegistrationResponse,
    UserEventListResponse,
    UserEventResponse,
)
from gfa_api.services import registration_service
from gfa_api.services.notification_service import Notifier, get_notifier, notify, registration_confirmation_email

router = APIRouter(prefix="/events", tags=["Registrations"])


@router.get("/user/events", response_model=UserEventListResponse)
async def list_my_events(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Events the authenticated user is registered for, by event date."""
    rows = await registration_service.list_user_events(db, user_id)
    data = [
        UserEventResponse(
            **EventResponse.model_validate(event).model_dump(),
            registration_date=registration.registration_date,
            registration_status=registration.status,
        )
        for event, registration in rows
    ]
    return UserEventListResponse(count=len(data), data=data)


@router.post("/{event_id}/register", response_model=RegistrationEnvelope, status_code=status.HTTP_201_CREATED)
async def register_for_event(
    event_id: int,
    background_tasks: BackgroundTasks,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    """
    Take one seat on an event.

    The capacity check and the counter increment commit together under a
    per-event lock, so concurrent requests can never overbook.
    """
    registration, event = await registration_service.register_for_event(db, identity.user_id, event_id)
    background_tasks.add_task(
        notify,
        notifier,
        registration_confirmation_email(identity.email, event.title, event.date.isoformat(), event.location),
    )
    return RegistrationEnvelope(
        message="Successfully registered for the event",
        data=RegistrationResponse.model_validate(registration),
    )


@router.delete("/{event_id}/register", response_model=MessageResponse)
async def cancel_registration(
    event_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Cancel a registration and release the seat."""
    await registration_service.cancel_registration(db, user_id, event_id)
    return MessageResponse(message="Registration cancelled successfully")
