"""
Pydantic schemas for event-related request/response validation.
"""

import datetime as dt
from typing import Optional
from pydantic import BaseModel, Field


class EventCreate(BaseModel):
    title: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    date: Optional[dt.date] = None
    time: Optional[dt.time] = None
    location: Optional[str] = Field(None, max_length=255)
    image: Optional[str] = Field(None, max_length=255)
    seats: Optional[int] = None
    category: Optional[str] = Field(None, max_length=50)
    featured: Optional[bool] = None


class EventUpdate(BaseModel):
    """
    Partial update. Only fields present in the request body are applied;
    see ``event_service.update_event`` for how explicit nulls are treated.
    """

    title: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    date: Optional[dt.date] = None
    time: Optional[dt.time] = None
    location: Optional[str] = Field(None, max_length=255)
    image: Optional[str] = Field(None, max_length=255)
    seats: Optional[int] = None
    category: Optional[str] = Field(None, max_length=50)
    featured: Optional[bool] = None

    def to_patch(self) -> dict:
        return self.model_dump(exclude_unset=True)


class EventResponse(BaseModel):
    id: int
    title: str
    description: Optional[str]
    date: dt.date
    time: Optional[dt.time]
    location: str
    image: Optional[str]
    seats: int
    registered: int
    available_seats: int
    category: Optional[str]
    featured: bool

    model_config = {"from_attributes": True}


class EventEnvelope(BaseModel):
    status: str = "success"
    message: Optional[str] = None
    data: EventResponse


class EventListResponse(BaseModel):
    status: str = "success"
    count: int
    data: list[EventResponse]
