"""
Pydantic schemas for the registration ledger.
"""

import datetime as dt
from typing import Optional
from pydantic import BaseModel

from gfa_api.schemas.event import EventResponse
from gfa_api.schemas.user import UserProfile


class RegistrationResponse(BaseModel):
    id: int
    event_id: int
    user_id: int
    status: str
    registration_date: dt.datetime

    model_config = {"from_attributes": True}


class RegistrationEnvelope(BaseModel):
    status: str = "success"
    message: str
    data: RegistrationResponse


class UserEventResponse(EventResponse):
    registration_date: dt.datetime
    registration_status: str


class UserEventListResponse(BaseModel):
    status: str = "success"
    count: int
    data: list[UserEventResponse]


class MessageResponse(BaseModel):
    status: str = "success"
    message: str


class DashboardEvent(BaseModel):
    """Compact upcoming-event card for the member dashboard."""

    id: int
    title: str
    date: dt.date
    location: str
    image: Optional[str]
    registration_date: dt.datetime


class DashboardData(BaseModel):
    user: UserProfile
    events: list[DashboardEvent]


class DashboardResponse(BaseModel):
    status: str = "success"
    data: DashboardData
