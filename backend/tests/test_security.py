"""
Tests for credential handling and the per-request session guard.
"""

from datetime import timedelta

import pytest
from httpx import AsyncClient
from jose import jwt

from gfa_api.core.config import get_settings
from gfa_api.core.security import (
    create_access_token,
    decode_access_token,
    generate_reset_token,
    hash_password,
    verify_password,
)

from conftest import bearer


def test_password_hash_roundtrip():
    hashed = hash_password("correct horse battery")
    assert hashed.startswith("$2")
    assert verify_password("correct horse battery", hashed)
    assert not verify_password("wrong", hashed)


def test_password_hash_past_bcrypt_byte_limit():
    """Bytes beyond bcrypt's 72-byte window still decide the match."""
    long_password = "é" * 50  # 100 bytes of UTF-8
    hashed = hash_password(long_password)
    assert verify_password(long_password, hashed)
    assert not verify_password("é" * 49 + "e", hashed)


def test_verify_password_rejects_non_bcrypt_value():
    assert verify_password("anything", "plaintext") is False


def test_token_claims():
    token = create_access_token(7, "seven@example.com")
    claims = jwt.get_unverified_claims(token)
    assert claims["sub"] == "7"
    assert claims["id"] == 7
    assert claims["email"] == "seven@example.com"
    assert claims["exp"] - claims["iat"] == 24 * 60 * 60
    assert "jti" in claims


def test_expired_token_is_rejected():
    token = create_access_token(7, "seven@example.com", expires_delta=timedelta(seconds=-1))
    assert decode_access_token(token) is None


def test_token_signed_with_other_key_is_rejected():
    settings = get_settings()
    forged = jwt.encode({"sub": "1", "email": "x@example.com"}, "other-key", algorithm=settings.ALGORITHM)
    assert decode_access_token(forged) is None


def test_reset_token_shape():
    token = generate_reset_token()
    assert len(token) == 64
    int(token, 16)
    assert generate_reset_token() != token


@pytest.mark.asyncio
async def test_guard_accepts_cookie(client: AsyncClient, test_user):
    token = create_access_token(test_user.id, test_user.email)
    client.cookies.set("token", token)
    response = await client.get("/api/auth/profile")
    assert response.status_code == 200
    assert response.json()["user"]["id"] == test_user.id


@pytest.mark.asyncio
async def test_guard_prefers_cookie_over_header(client: AsyncClient, test_user, other_user):
    client.cookies.set("token", create_access_token(test_user.id, test_user.email))
    response = await client.get(
        "/api/auth/profile",
        headers=bearer(create_access_token(other_user.id, other_user.email)),
    )
    assert response.status_code == 200
    assert response.json()["user"]["id"] == test_user.id


@pytest.mark.asyncio
async def test_guard_accepts_bare_header(client: AsyncClient, test_user):
    token = create_access_token(test_user.id, test_user.email)
    response = await client.get("/api/auth/profile", headers={"Authorization": token})
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_guard_rejects_expired_token(client: AsyncClient, test_user):
    token = create_access_token(test_user.id, test_user.email, expires_delta=timedelta(seconds=-1))
    response = await client.get("/api/auth/profile", headers=bearer(token))
    assert response.status_code == 401
    assert response.json()["error"] == "Unauthorized: Invalid or expired token"
    assert response.headers["www-authenticate"] == "Bearer"


@pytest.mark.asyncio
async def test_health_and_metrics(client: AsyncClient):
    health = await client.get("/health")
    assert health.status_code == 200
    assert health.json()["status"] == "healthy"

    metrics = await client.get("/metrics")
    assert metrics.status_code == 200
    assert "registration_attempts_total" in metrics.text
