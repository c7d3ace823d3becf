"""
Credential store: accounts, session tokens, password reset and profile.

Each user holds at most one live session token (the last credential issued)
and at most one live reset token. bcrypt work runs in the thread pool and
always before the transaction opens.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from gfa_api.core.config import get_settings
from gfa_api.core.exceptions import AuthError, ConflictError, NotFoundError, ValidationError
from gfa_api.core.logging import get_logger
from gfa_api.core.metrics import record_auth
from gfa_api.core.security import (
    create_access_token,
    decode_access_token,
    dummy_password_hash,
    generate_reset_token,
    hash_password,
    verify_password,
)
from gfa_api.db.locks import event_locks
from gfa_api.db.session import atomic
from gfa_api.models.event import Event
from gfa_api.models.registration import Registration
from gfa_api.models.user import User
from gfa_api.services import registration_service
from gfa_api.services.patching import apply_patch

logger = get_logger(__name__)
settings = get_settings()

MIN_PASSWORD_LENGTH = 8
INVALID_CREDENTIALS = "Invalid email or password"
INVALID_SESSION = "Invalid or expired token"
PROFILE_FIELDS = ("name", "phone", "birthday", "bio")
DASHBOARD_EVENT_LIMIT = 3


def _check_password_length(password: str, label: str = "Password") -> None:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"{label} must be at least {MIN_PASSWORD_LENGTH} characters long")


async def _get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    result = await db.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()


async def register_user(
    db: AsyncSession,
    name: Optional[str],
    email: Optional[str],
    password: Optional[str],
) -> tuple[User, str]:
    """
    Create an account and open its first session.
    Returns the user and the issued credential.
    """
    if not name or not email or not password:
        raise ValidationError("All fields are required")
    _check_password_length(password)

    hashed = await run_in_threadpool(hash_password, password)

    try:
        async with atomic(db):
            if await _get_user_by_email(db, email) is not None:
                logger.warning("registration_failed", reason="email_exists", email=email)
                record_auth("register", success=False)
                raise ConflictError("User already exists")

            user = User(name=name, email=email, hashed_password=hashed)
            db.add(user)
            await db.flush()

            token = create_access_token(user.id, user.email)
            user.session_token = token
            await db.flush()
            await db.refresh(user)
    except IntegrityError:
        # Lost a race with a concurrent registration for the same email
        record_auth("register", success=False)
        raise ConflictError("User already exists") from None

    record_auth("register", success=True)
    logger.info("user_registered", user_id=user.id, email=user.email)
    return user, token


async def authenticate_user(db: AsyncSession, email: Optional[str], password: Optional[str]) -> str:
    """
    Check credentials and issue a new credential, replacing the stored one.
    Unknown email and wrong password fail identically.
    """
    if not email or not password:
        raise ValidationError("Email and password are required")

    async with atomic(db):
        user = await _get_user_by_email(db, email)

    hashed = user.hashed_password if user is not None else dummy_password_hash()
    matches = await run_in_threadpool(verify_password, password, hashed)
    if user is None or not matches:
        logger.warning("login_failed", email=email)
        record_auth("login", success=False)
        raise AuthError(INVALID_CREDENTIALS)

    token = create_access_token(user.id, user.email)
    async with atomic(db):
        user = await db.get(User, user.id, populate_existing=True)
        if user is None:
            # Account deleted between the two steps
            record_auth("login", success=False)
            raise AuthError(INVALID_CREDENTIALS)
        user.session_token = token
        user.last_login = datetime.now(timezone.utc)

    record_auth("login", success=True)
    logger.info("user_logged_in", user_id=user.id)
    return token


async def logout_user(db: AsyncSession, token: Optional[str]) -> None:
    """Forget the session holding ``token``. Always succeeds."""
    if not token:
        return

    async with atomic(db):
        result = await db.execute(select(User).where(User.session_token == token))
        user = result.scalar_one_or_none()
        if user is not None:
            user.session_token = None

    if user is not None:
        logger.info("user_logged_out", user_id=user.id)


async def verify_session(db: AsyncSession, token: Optional[str]) -> User:
    """
    Strict session check: the credential must be the one stored for its user
    and must still pass signature/expiry verification. A stored credential
    that fails verification is cleared before the error is raised.
    """
    if not token:
        raise AuthError("No token provided")

    identity = None
    async with atomic(db):
        result = await db.execute(select(User).where(User.session_token == token))
        user = result.scalar_one_or_none()
        if user is not None:
            identity = decode_access_token(token)
            if identity is None or identity.user_id != user.id:
                user.session_token = None

    if user is None:
        record_auth("verify", success=False)
        raise AuthError(INVALID_SESSION)
    if identity is None or identity.user_id != user.id:
        logger.warning("session_revoked", user_id=user.id, reason="credential_failed_verification")
        record_auth("verify", success=False)
        raise AuthError(INVALID_SESSION)

    record_auth("verify", success=True)
    return user


async def request_password_reset(db: AsyncSession, email: Optional[str]) -> tuple[User, str]:
    """Issue a fresh reset token, replacing any earlier one. Returns the user and the token."""
    if not email:
        raise ValidationError("Email is required")

    reset_token = generate_reset_token()
    expiry = datetime.now(timezone.utc) + timedelta(minutes=settings.RESET_TOKEN_EXPIRE_MINUTES)

    async with atomic(db):
        user = await _get_user_by_email(db, email)
        if user is None:
            raise NotFoundError("User not found")
        user.reset_token = reset_token
        user.reset_token_expiry = expiry

    logger.info("password_reset_requested", user_id=user.id)
    return user, reset_token


async def reset_password(db: AsyncSession, token: Optional[str], new_password: Optional[str]) -> None:
    """
    Consume a reset token. Clears the reset pair and the session token, so
    every device has to log in again.
    """
    if not token or not new_password:
        raise ValidationError("Token and new password are required")
    _check_password_length(new_password)

    hashed = await run_in_threadpool(hash_password, new_password)
    now = datetime.now(timezone.utc)

    async with atomic(db):
        result = await db.execute(
            select(User)
            .where(User.reset_token == token, User.reset_token_expiry > now)
            .with_for_update()
        )
        user = result.scalar_one_or_none()
        if user is None:
            record_auth("reset", success=False)
            raise AuthError("Invalid or expired reset token")

        user.hashed_password = hashed
        user.reset_token = None
        user.reset_token_expiry = None
        user.session_token = None

    record_auth("reset", success=True)
    logger.info("password_reset", user_id=user.id)


async def change_password(
    db: AsyncSession,
    user_id: int,
    current_password: Optional[str],
    new_password: Optional[str],
) -> None:
    """Replace the password after checking the current one. The session token is kept."""
    if not current_password or not new_password:
        raise ValidationError("Current password and new password are required")
    _check_password_length(new_password, label="New password")

    async with atomic(db):
        user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")

    if not await run_in_threadpool(verify_password, current_password, user.hashed_password):
        logger.warning("password_change_failed", user_id=user_id, reason="wrong_current_password")
        raise AuthError("Current password is incorrect")

    hashed = await run_in_threadpool(hash_password, new_password)
    async with atomic(db):
        user = await db.get(User, user_id, populate_existing=True)
        if user is None:
            raise NotFoundError("User not found")
        user.hashed_password = hashed

    logger.info("password_changed", user_id=user_id)


async def get_profile(db: AsyncSession, user_id: int) -> dict:
    """Profile fields plus the number of upcoming events the user holds a seat on."""
    async with atomic(db):
        user = await db.get(User, user_id, populate_existing=True)
        if user is None:
            raise NotFoundError("User not found")

        upcoming = await db.execute(
            select(func.count(Registration.id))
            .join(Event, Event.id == Registration.event_id)
            .where(Registration.user_id == user_id, Event.date >= date.today())
        )
        upcoming_events = upcoming.scalar_one()

    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "phone": user.phone,
        "birthday": user.birthday,
        "bio": user.bio,
        "last_login": user.last_login,
        "profile_completion": user.profile_completion,
        "upcoming_events": upcoming_events,
    }


async def get_dashboard(db: AsyncSession, user_id: int) -> dict:
    """Profile plus the next few upcoming events the user is registered for."""
    profile = await get_profile(db, user_id)
    rows = await registration_service.list_user_events(
        db, user_id, upcoming_only=True, limit=DASHBOARD_EVENT_LIMIT
    )
    events = [
        {
            "id": event.id,
            "title": event.title,
            "date": event.date,
            "location": event.location,
            "image": event.image,
            "registration_date": registration.registration_date,
        }
        for event, registration in rows
    ]
    return {"user": profile, "events": events}


def profile_completion_for(user: User) -> int:
    filled = sum(1 for field in PROFILE_FIELDS if getattr(user, field))
    return min(30 + filled * 15, 100)


async def update_profile(db: AsyncSession, user_id: int, patch: dict) -> int:
    """Partial profile update; returns the recomputed profile completion."""
    patch = {field: value for field, value in patch.items() if field in PROFILE_FIELDS}
    if patch.get("name") == "":
        raise ValidationError("Name cannot be empty")

    async with atomic(db):
        user = await db.get(User, user_id, with_for_update=True, populate_existing=True)
        if user is None:
            raise NotFoundError("User not found")

        changed = apply_patch(user, patch, required=("name",))
        user.profile_completion = profile_completion_for(user)
        completion = user.profile_completion

    logger.info("profile_updated", user_id=user_id, fields=changed, profile_completion=completion)
    return completion


async def delete_account(db: AsyncSession, user_id: int) -> None:
    """
    Remove a user. Every seat they hold is released in the same transaction,
    so the affected events' counters stay equal to their registration counts.
    """
    event_ids = await registration_service.registered_event_ids(db, user_id)

    async with event_locks(event_ids):
        async with atomic(db):
            user = await db.get(User, user_id, with_for_update=True, populate_existing=True)
            if user is None:
                raise NotFoundError("User not found")

            released = await registration_service.release_all_for_user(db, user_id)
            await db.delete(user)

    logger.info("account_deleted", user_id=user_id, seats_released=released)
