"""
Event registry endpoints. Reads are public; writes require a session.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from gfa_api.core.security import get_current_user_id
from gfa_api.core.logging import get_logger
from gfa_api.db.session import get_db
from gfa_api.schemas.event import EventCreate, EventEnvelope, EventListResponse, EventResponse, EventUpdate
from gfa_api.schemas.registration import MessageResponse
from gfa_api.services import event_service

logger = get_logger(__name__)
router = APIRouter(prefix="/events", tags=["Events"])


def _listing(events) -> EventListResponse:
    return EventListResponse(
        count=len(events),
        data=[EventResponse.model_validate(e) for e in events],
    )


@router.get("", response_model=EventListResponse)
async def list_events_endpoint(
    category: Optional[str] = Query(None),
    featured: Optional[bool] = Query(None),
    limit: Optional[int] = Query(None, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
):
    """List events by date ascending, optionally filtered by category/featured."""
    events = await event_service.list_events(db, category=category, featured=featured, limit=limit)
    return _listing(events)


@router.get("/featured", response_model=EventListResponse)
async def list_featured_events_endpoint(
    limit: int = Query(3, ge=1, le=50),
    db: AsyncSession = Depends(get_db),
):
    events = await event_service.list_featured_events(db, limit=limit)
    return _listing(events)


@router.get("/{event_id}", response_model=EventEnvelope)
async def get_event_endpoint(event_id: int, db: AsyncSession = Depends(get_db)):
    """Get a single event with live seat counts."""
    event = await event_service.get_event(db, event_id)
    return EventEnvelope(data=EventResponse.model_validate(event))


@router.post("", response_model=EventEnvelope, status_code=status.HTTP_201_CREATED)
async def create_event_endpoint(
    event_data: EventCreate,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Create a new event. Requires authentication."""
    event = await event_service.create_event(db, **event_data.model_dump())
    logger.info("event_created_by", event_id=event.id, user_id=user_id)
    return EventEnvelope(message="Event created successfully", data=EventResponse.model_validate(event))


@router.put("/{event_id}", response_model=EventEnvelope)
async def update_event_endpoint(
    event_id: int,
    event_data: EventUpdate,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Partial update: only the fields present in the body are applied."""
    event = await event_service.update_event(db, event_id, event_data.to_patch())
    return EventEnvelope(message="Event updated successfully", data=EventResponse.model_validate(event))


@router.delete("/{event_id}", response_model=MessageResponse)
async def delete_event_endpoint(
    event_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    await event_service.delete_event(db, event_id)
    return MessageResponse(message="Event deleted successfully")
