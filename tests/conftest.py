"""
Test configuration and shared fixtures.
Each test gets its own in-memory SQLite database, so tests never share rows.
"""
from __future__ import annotations

import os

# Settings are read at import time; these must be in place first.
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-ticketdesk-0123456789abcdef")
os.environ["RATE_LIMIT_ENABLED"] = "false"

from collections.abc import AsyncGenerator, Awaitable, Callable  # noqa: E402
from typing import Any  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402

from ticketdesk.core.config import settings  # noqa: E402
from ticketdesk.core.security import hash_password  # noqa: E402
from ticketdesk.db.base import Base  # noqa: E402
from ticketdesk.db.session import get_db  # noqa: E402
from ticketdesk.main import app  # noqa: E402
from ticketdesk.models.user import User  # noqa: E402

# ── Test database ─────────────────────────────────────────────────────────────
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

TEST_PASSWORD = "TestPass1"
_PASSWORD_HASH = hash_password(TEST_PASSWORD)


def make_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """A fresh in-memory database with every table created."""
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest_asyncio.fixture
async def db(engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    async with make_session_factory(engine)() as session:
        try:
            yield session
        finally:
            await session.rollback()


@pytest_asyncio.fixture
async def client(db: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Provide an async HTTP test client with the test DB injected."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        try:
            yield db
            await db.commit()
        except Exception:
            await db.rollback()
            raise

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def policy(monkeypatch: pytest.MonkeyPatch) -> Callable[..., None]:
    """Switch access-policy settings for the duration of one test."""

    def apply(**overrides: Any) -> None:
        for name, value in overrides.items():
            monkeypatch.setattr(settings, name, value)

    return apply


# ── Helper fixtures ───────────────────────────────────────────────────────────

@pytest_asyncio.fixture
async def make_user(db: AsyncSession) -> Callable[..., Awaitable[User]]:
    """Insert a user row directly; every user shares TEST_PASSWORD."""

    async def factory(username: str, full_name: str = "") -> User:
        user = User(
            email=f"{username}@example.com",
            username=username,
            hashed_password=_PASSWORD_HASH,
            full_name=full_name,
        )
        db.add(user)
        await db.commit()
        return user

    return factory


@pytest_asyncio.fixture
async def registered_user(client: AsyncClient) -> dict[str, Any]:
    """Register and return a standard user."""
    response = await client.post(
        "/api/v1/auth/register",
        json={
            "email": "testuser@example.com",
            "username": "testuser",
            "password": TEST_PASSWORD,
            "full_name": "Test User",
        },
    )
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
def login(client: AsyncClient) -> Callable[[str], Awaitable[dict[str, str]]]:
    """Log in by email and return Authorization headers."""

    async def do_login(email: str) -> dict[str, str]:
        response = await client.post(
            "/api/v1/auth/login",
            json={"email": email, "password": TEST_PASSWORD},
        )
        assert response.status_code == 200, response.text
        return {"Authorization": f"Bearer {response.json()['access_token']}"}

    return do_login


@pytest_asyncio.fixture
async def auth_headers(login, registered_user: dict) -> dict[str, str]:
    """Return Authorization headers for the registered test user."""
    return await login("testuser@example.com")


@pytest_asyncio.fixture
async def other_user(client: AsyncClient) -> dict[str, Any]:
    response = await client.post(
        "/api/v1/auth/register",
        json={
            "email": "other@example.com",
            "username": "otheruser",
            "password": TEST_PASSWORD,
            "full_name": "Other User",
        },
    )
    assert response.status_code == 201, response.text
    return response.json()


@pytest_asyncio.fixture
async def other_headers(login, other_user: dict) -> dict[str, str]:
    return await login("other@example.com")
