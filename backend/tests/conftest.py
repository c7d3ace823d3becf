"""
Pytest fixtures for test database, client, authentication and notifications.

Each test gets a fresh SQLite database file. Every HTTP request gets its
own session, as in production, so nothing is shared through an identity map.
"""

import os

# Must be set before gfa_api reads its settings
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./gfa_import_only.db")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("EMAIL_ENABLED", "false")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from datetime import date, timedelta
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from gfa_api.main import app
from gfa_api.db.base import Base
from gfa_api.db.session import get_db
from gfa_api.core.security import create_access_token, hash_password
from gfa_api.models.user import User
from gfa_api.models.event import Event
from gfa_api.services.notification_service import Notifier, get_notifier

TEST_PASSWORD = "testpassword123"


class RecordingNotifier(Notifier):
    """Collects messages instead of sending them; can be told to fail."""

    def __init__(self):
        self.sent: list[dict] = []
        self.fail = False

    async def send(self, to: str, subject: str, html: str) -> None:
        if self.fail:
            raise ConnectionError("SMTP server unavailable")
        self.sent.append({"to": to, "subject": subject, "html": html})


@pytest_asyncio.fixture(scope="function")
async def engine(tmp_path):
    """Fresh database file per test, tables created from the models."""
    test_engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Session for arranging test data."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest_asyncio.fixture(scope="function")
async def client(session_factory, notifier) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client with per-request test sessions and a recording notifier."""

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


async def make_user(session: AsyncSession, email: str, name: str = "Test User") -> User:
    user = User(name=name, email=email, hashed_password=hash_password(TEST_PASSWORD))
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return user


async def make_event(session: AsyncSession, **overrides) -> Event:
    fields = {
        "title": "Portfolio Management Workshop",
        "description": "Hands-on session",
        "date": date.today() + timedelta(days=30),
        "location": "London",
        "seats": 100,
        "registered": 0,
        "category": "workshop",
        "featured": False,
    }
    fields.update(overrides)
    event = Event(**fields)
    session.add(event)
    await session.commit()
    await session.refresh(event)
    return event


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession) -> User:
    return await make_user(db_session, "test@example.com")


@pytest_asyncio.fixture
async def other_user(db_session: AsyncSession) -> User:
    return await make_user(db_session, "other@example.com", name="Other User")


@pytest_asyncio.fixture
async def auth_token(test_user: User) -> str:
    return create_access_token(test_user.id, test_user.email)


@pytest_asyncio.fixture
async def auth_headers(auth_token: str) -> dict:
    return bearer(auth_token)


@pytest_asyncio.fixture
async def other_headers(other_user: User) -> dict:
    return bearer(create_access_token(other_user.id, other_user.email))


@pytest_asyncio.fixture
async def test_event(db_session: AsyncSession) -> Event:
    """Event with 100 seats."""
    return await make_event(db_session)


@pytest_asyncio.fixture
async def single_seat_event(db_session: AsyncSession) -> Event:
    return await make_event(db_session, title="Private Briefing", seats=1)


@pytest_asyncio.fixture
async def sold_out_event(db_session: AsyncSession) -> Event:
    return await make_event(db_session, title="Sold Out Seminar", seats=50, registered=50)
