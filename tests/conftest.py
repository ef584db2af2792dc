"""
Shared test fixtures and utilities.

Settings are read once at import time, so the environment is prepared
before anything under app/ is imported.
"""

import os

os.environ["JWT_SECRET_KEY"] = "test-secret-key-for-testing-only-0123456789"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./.pytest-unused.db"
os.environ["IDENTITY_STRATEGY"] = "refreshing"
os.environ["ENABLE_DEV_ROUTES"] = "true"
os.environ["OPENAI_API_KEY"] = ""

from typing import Optional
from uuid import uuid4

import httpx
import pytest
import pytest_asyncio
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.core.identity import IdentityResolver
from app.core.otp import ExpiringCodeCache
from app.core.security import generate_friend_code, get_password_hash
from app.core.token import create_access_token
from app.infra.db import get_db
from app.models import Base, User

TEST_PASSWORD = "correct-horse-battery"


@pytest.fixture(scope="session")
def password_hash() -> str:
    """bcrypt is slow; hash the shared test password once."""
    return get_password_hash(TEST_PASSWORD)


@pytest_asyncio.fixture
async def engine(tmp_path):
    """File-backed SQLite so separate sessions see each other's commits."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture
async def db(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
def make_user(db, password_hash):
    """Factory inserting a user row."""

    async def _make_user(
        name: str = "Tester",
        email: Optional[str] = None,
        friend_code: Optional[str] = None,
        point: int = 0,
        **fields,
    ) -> User:
        user = User(
            id=str(uuid4()),
            email=email or f"{uuid4().hex[:10]}@example.com",
            password_hash=password_hash,
            name=name,
            friend_code=friend_code or generate_friend_code(),
            point=point,
            **fields,
        )
        db.add(user)
        await db.commit()
        await db.refresh(user)
        return user

    return _make_user


def bearer(user_id: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user_id)}"}


@pytest.fixture
def auth_headers():
    """Build an Authorization header for a user id."""
    return bearer


@pytest.fixture
def application(session_maker):
    """App wired to the test database."""
    from app.main import create_app

    app = create_app()

    async def override_get_db():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.state.identity_resolver = IdentityResolver("refreshing", session_maker)
    app.state.otp_cache = ExpiringCodeCache(ttl_seconds=300, max_entries=10)
    yield app
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(application):
    transport = httpx.ASGITransport(app=application)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
