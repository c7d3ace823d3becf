"""
Authentication endpoints: account lifecycle, sessions, password reset and profile.
"""

from fastapi import APIRouter, BackgroundTasks, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from gfa_api.core.security import extract_credential, get_current_identity, get_current_user_id, Identity
from gfa_api.db.session import get_db
from gfa_api.schemas.registration import DashboardData, DashboardResponse, MessageResponse
from gfa_api.schemas.user import (
    ChangePasswordRequest,
    ForgotPasswordRequest,
    ProfileResponse,
    ProfileUpdate,
    ProfileUpdateResponse,
    ResetPasswordRequest,
    Token,
    UserCreate,
    UserLogin,
    UserProfile,
)
from gfa_api.services import auth_service
from gfa_api.services.notification_service import (
    Notifier,
    get_notifier,
    notify,
    password_reset_email,
    welcome_email,
)

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/register", response_model=Token, status_code=status.HTTP_201_CREATED)
async def register(
    user_data: UserCreate,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    """Create an account and return its first credential. Sends a welcome email."""
    user, token = await auth_service.register_user(db, user_data.name, user_data.email, user_data.password)
    background_tasks.add_task(notify, notifier, welcome_email(user.email, user.name))
    return Token(message="User registered successfully!", token=token)


@router.post("/login", response_model=Token)
async def login(login_data: UserLogin, db: AsyncSession = Depends(get_db)):
    """Authenticate and receive a fresh credential (invalidates the previous one)."""
    token = await auth_service.authenticate_user(db, login_data.email, login_data.password)
    return Token(message="Login successful", token=token)


@router.post("/logout", response_model=MessageResponse)
async def logout(request: Request, db: AsyncSession = Depends(get_db)):
    await auth_service.logout_user(db, extract_credential(request))
    return MessageResponse(message="Logout successful")


@router.get("/verify", response_model=MessageResponse)
async def verify(request: Request, db: AsyncSession = Depends(get_db)):
    """Strict check: the credential must still be the one stored for its user."""
    await auth_service.verify_session(db, extract_credential(request))
    return MessageResponse(message="Token is valid")


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(
    body: ForgotPasswordRequest,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    user, reset_token = await auth_service.request_password_reset(db, body.email)
    background_tasks.add_task(notify, notifier, password_reset_email(user.email, reset_token))
    return MessageResponse(message="Password reset email sent. Check your inbox!")


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(body: ResetPasswordRequest, db: AsyncSession = Depends(get_db)):
    await auth_service.reset_password(db, body.token, body.new_password)
    return MessageResponse(message="Password reset successful. You can now log in!")


@router.get("/profile", response_model=ProfileResponse)
async def get_profile(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    profile = await auth_service.get_profile(db, user_id)
    return ProfileResponse(user=UserProfile(**profile))


@router.get("/dashboard", response_model=DashboardResponse)
async def get_dashboard(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Profile plus the next upcoming events the member holds a seat on."""
    dashboard = await auth_service.get_dashboard(db, user_id)
    return DashboardResponse(data=DashboardData(**dashboard))


@router.put("/profile", response_model=ProfileUpdateResponse)
async def update_profile(
    body: ProfileUpdate,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    completion = await auth_service.update_profile(db, user_id, body.model_dump(exclude_unset=True))
    return ProfileUpdateResponse(message="Profile updated successfully", profile_completion=completion)


@router.post("/change-password", response_model=MessageResponse)
async def change_password(
    body: ChangePasswordRequest,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    await auth_service.change_password(db, identity.user_id, body.current_password, body.new_password)
    return MessageResponse(message="Password changed successfully")


@router.delete("/account", response_model=MessageResponse)
async def delete_account(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    await auth_service.delete_account(db, user_id)
    return MessageResponse(message="Account deleted successfully")
