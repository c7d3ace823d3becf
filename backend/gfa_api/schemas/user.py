"""
Pydantic schemas for account, session and profile requests/responses.

Request fields are optional at the schema level: presence and length rules
live in the auth service so they produce the same errors whether called over
HTTP or directly.
"""

from datetime import date, datetime
from typing import Optional
from pydantic import BaseModel, Field


class UserCreate(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class UserLogin(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class ForgotPasswordRequest(BaseModel):
    email: Optional[str] = None


class ResetPasswordRequest(BaseModel):
    token: Optional[str] = None
    new_password: Optional[str] = Field(None, alias="newPassword")

    model_config = {"populate_by_name": True}


class ChangePasswordRequest(BaseModel):
    current_password: Optional[str] = Field(None, alias="currentPassword")
    new_password: Optional[str] = Field(None, alias="newPassword")

    model_config = {"populate_by_name": True}


class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)
    birthday: Optional[date] = None
    bio: Optional[str] = None


class Token(BaseModel):
    status: str = "success"
    message: str
    token: str


class UserProfile(BaseModel):
    id: int
    name: str
    email: str
    phone: Optional[str]
    birthday: Optional[date]
    bio: Optional[str]
    last_login: Optional[datetime]
    profile_completion: int
    upcoming_events: int = 0

    model_config = {"from_attributes": True}


class ProfileResponse(BaseModel):
    status: str = "success"
    user: UserProfile


class ProfileUpdateResponse(BaseModel):
    status: str = "success"
    message: str
    profile_completion: int
