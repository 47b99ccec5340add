"""
Authentication endpoint tests.
Covers: register, login, session resolution, duplicate email/username.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from httpx import AsyncClient
from jose import jwt

from ticketdesk.core.config import settings
from ticketdesk.core.security import create_session_token, decode_session_token

pytestmark = pytest.mark.asyncio


class TestRegister:
    async def test_register_success(self, client: AsyncClient) -> None:
        response = await client.post(
            "/api/v1/auth/register",
            json={
                "email": "NewUser@Example.com",
                "username": "newuser",
                "password": "NewPass1",
                "full_name": "  New User ",
            },
        )
        assert response.status_code == 201
        data = response.json()
        assert data["email"] == "newuser@example.com"
        assert data["username"] == "newuser"
        assert data["full_name"] == "New User"
        assert "hashed_password" not in data
        assert "password" not in data
        assert "id" in data

    async def test_register_duplicate_email(
        self, client: AsyncClient, registered_user: dict
    ) -> None:
        response = await client.post(
            "/api/v1/auth/register",
            json={
                "email": "TESTUSER@example.com",  # same address, different case
                "username": "differentuser",
                "password": "TestPass1",
            },
        )
        assert response.status_code == 409
        assert response.json()["error"] == "CONFLICT"

    async def test_register_duplicate_username(
        self, client: AsyncClient, registered_user: dict
    ) -> None:
        response = await client.post(
            "/api/v1/auth/register",
            json={
                "email": "different@example.com",
                "username": "testuser",  # already registered
                "password": "TestPass1",
            },
        )
        assert response.status_code == 409

    async def test_register_short_password(self, client: AsyncClient) -> None:
        response = await client.post(
            "/api/v1/auth/register",
            json={
                "email": "weak@example.com",
                "username": "weakuser",
                "password": "short",
            },
        )
        assert response.status_code == 422
        assert response.json()["error"] == "VALIDATION_ERROR"

    async def test_register_invalid_email(self, client: AsyncClient) -> None:
        response = await client.post(
            "/api/v1/auth/register",
            json={
                "email": "not-an-email",
                "username": "someuser",
                "password": "ValidPass1",
            },
        )
        assert response.status_code == 422

    async def test_register_short_username_is_trimmed(self, client: AsyncClient) -> None:
        response = await client.post(
            "/api/v1/auth/register",
            json={"email": "u1@example.com", "username": " u1 ", "password": "ValidPass1"},
        )
        assert response.status_code == 201, response.text
        assert response.json()["username"] == "u1"

    async def test_register_blank_username(self, client: AsyncClient) -> None:
        response = await client.post(
            "/api/v1/auth/register",
            json={"email": "blank@example.com", "username": "   ", "password": "ValidPass1"},
        )
        assert response.status_code == 422


class TestLogin:
    async def test_login_success(
        self, client: AsyncClient, registered_user: dict
    ) -> None:
        response = await client.post(
            "/api/v1/auth/login",
            json={"email": "testuser@example.com", "password": "TestPass1"},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["token_type"] == "bearer"
        assert data["expires_in"] == 7 * 24 * 60 * 60
        assert data["user"]["id"] == registered_user["id"]

        payload = decode_session_token(data["access_token"])
        assert payload["sub"] == registered_user["id"]

    async def test_login_is_case_insensitive_on_email(
        self, client: AsyncClient, registered_user: dict
    ) -> None:
        response = await client.post(
            "/api/v1/auth/login",
            json={"email": "TestUser@Example.COM", "password": "TestPass1"},
        )
        assert response.status_code == 200

    async def test_login_wrong_password(
        self, client: AsyncClient, registered_user: dict
    ) -> None:
        response = await client.post(
            "/api/v1/auth/login",
            json={"email": "testuser@example.com", "password": "WrongPass1"},
        )
        assert response.status_code == 401
        assert response.json()["error"] == "INVALID_CREDENTIALS"

    async def test_login_nonexistent_user(self, client: AsyncClient) -> None:
        response = await client.post(
            "/api/v1/auth/login",
            json={"email": "nobody@example.com", "password": "TestPass1"},
        )
        assert response.status_code == 401
        assert response.json()["error"] == "INVALID_CREDENTIALS"


class TestSession:
    async def test_me_success(
        self, client: AsyncClient, auth_headers: dict, registered_user: dict
    ) -> None:
        response = await client.get("/api/v1/auth/me", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["email"] == registered_user["email"]

    async def test_me_without_token(self, client: AsyncClient) -> None:
        response = await client.get("/api/v1/auth/me")
        assert response.status_code == 401
        assert response.json()["error"] == "UNAUTHORIZED"

    async def test_me_with_garbage_token(self, client: AsyncClient) -> None:
        response = await client.get(
            "/api/v1/auth/me", headers={"Authorization": "Bearer this.is.invalid"}
        )
        assert response.status_code == 401
        assert response.json()["error"] == "INVALID_TOKEN"

    async def test_me_with_expired_token(
        self, client: AsyncClient, registered_user: dict
    ) -> None:
        past = datetime.now(timezone.utc) - timedelta(days=8)
        token = jwt.encode(
            {
                "sub": registered_user["id"],
                "type": "access",
                "iat": past,
                "exp": past + timedelta(days=7),
            },
            settings.SECRET_KEY,
            algorithm=settings.ALGORITHM,
        )
        response = await client.get(
            "/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"}
        )
        assert response.status_code == 401
        assert response.json()["error"] == "INVALID_TOKEN"

    async def test_me_for_unknown_subject(self, client: AsyncClient) -> None:
        token = create_session_token("00000000-0000-0000-0000-000000000000")
        response = await client.get(
            "/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"}
        )
        assert response.status_code == 401

    async def test_health(self, client: AsyncClient) -> None:
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"
