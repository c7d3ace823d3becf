from gfa_api.schemas.user import (
    UserCreate, UserLogin, Token, ForgotPasswordRequest, ResetPasswordRequest,
    ChangePasswordRequest, ProfileUpdate, ProfileResponse, ProfileUpdateResponse,
)
from gfa_api.schemas.event import EventCreate, EventUpdate, EventResponse, EventEnvelope, EventListResponse
from gfa_api.schemas.registration import (
    RegistrationResponse, RegistrationEnvelope, UserEventResponse, UserEventListResponse, MessageResponse,
    DashboardEvent, DashboardData, DashboardResponse,
)

__all__ = [
    "UserCreate", "UserLogin", "Token", "ForgotPasswordRequest", "ResetPasswordRequest",
    "ChangePasswordRequest", "ProfileUpdate", "ProfileResponse", "ProfileUpdateResponse",
    "EventCreate", "EventUpdate", "EventResponse", "EventEnvelope", "EventListResponse",
    "RegistrationResponse", "RegistrationEnvelope", "UserEventResponse", "UserEventListResponse",
    "MessageResponse", "DashboardEvent", "DashboardData", "DashboardResponse",
]
