"""
Password hashing, credential signing and the per-request session guard.

The guard only checks the credential's signature and expiry; it never touches
the database. The stricter check against the stored session token lives in
``auth_service.verify_session``.
"""

import base64
import hashlib
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from functools import lru_cache

import bcrypt
import structlog
from fastapi import Depends, Request
from jose import JWTError, jwt

from gfa_api.core.config import get_settings
from gfa_api.core.exceptions import AuthError

settings = get_settings()


# ==================== Password Hashing ====================

def _bcrypt_input(password: str) -> bytes:
    # bcrypt reads at most 72 bytes; always hand it a 44-byte digest
    return base64.b64encode(hashlib.sha256(password.encode("utf-8")).digest())


def hash_password(password: str) -> str:
    """Hash a plain text password with bcrypt at the configured cost."""
    salt = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(_bcrypt_input(password), salt).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return bcrypt.checkpw(_bcrypt_input(plain_password), hashed_password.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt hash
        return False


@lru_cache()
def dummy_password_hash() -> str:
    """Hash compared against when the email is unknown, so both login failures cost the same."""
    return hash_password(secrets.token_urlsafe(16))


# ==================== Credentials ====================

@dataclass(frozen=True)
class Identity:
    user_id: int
    email: str


def create_access_token(user_id: int, email: str, expires_delta: timedelta | None = None) -> str:
    """Issue a signed credential for a user (24h by default)."""
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    claims = {
        "sub": str(user_id),
        "id": user_id,
        "email": email,
        "iat": now,
        "exp": expire,
        "jti": secrets.token_hex(8),
    }
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> Identity | None:
    """Verify signature and expiry. Returns None for anything that does not check out."""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None

    subject = payload.get("sub")
    email = payload.get("email")
    if subject is None or email is None:
        return None
    try:
        user_id = int(subject)
    except (TypeError, ValueError):
        return None
    return Identity(user_id=user_id, email=email)


def generate_reset_token() -> str:
    """256-bit password reset token, hex encoded."""
    return secrets.token_hex(32)


# ==================== Session Guard ====================

def extract_credential(request: Request) -> str | None:
    """Cookie first, then ``Authorization: Bearer <token>``."""
    token = request.cookies.get(settings.SESSION_COOKIE_NAME)
    if not token:
        token = request.headers.get("Authorization")
    if not token:
        return None
    if token.startswith("Bearer "):
        token = token[len("Bearer "):]
    return token.strip() or None


async def get_current_identity(request: Request) -> Identity:
    token = extract_credential(request)
    if token is None:
        raise AuthError("Unauthorized: No token provided")

    identity = decode_access_token(token)
    if identity is None:
        raise AuthError("Unauthorized: Invalid or expired token")

    structlog.contextvars.bind_contextvars(user_id=identity.user_id)
    request.state.identity = identity
    return identity


async def get_current_user_id(identity: Identity = Depends(get_current_identity)) -> int:
    return identity.user_id
