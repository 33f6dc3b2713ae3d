"""Shared test configuration and fixtures.

Uses a transactional rollback strategy per test for full isolation:
- Each test gets its own transaction that rolls back after the test.
- The test database `staydesk_test` must exist before running API tests.

Pure service tests (metadata, phone, notifications, lifecycle with in-memory
stores) never touch these database fixtures.
"""

import uuid
from collections.abc import AsyncGenerator
from decimal import Decimal

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine

from staydesk.auth.jwt import create_access_token
from staydesk.config import settings
from staydesk.database import Base, get_db
from staydesk.main import app
from staydesk.models.property import Property
from staydesk.models.user import User

# ---------------------------------------------------------------------------
# Test database engine: same PG instance, `staydesk_test` DB.
# ---------------------------------------------------------------------------

_base_url = settings.async_database_url
_test_db_url = _base_url.rsplit("/", 1)[0] + "/staydesk_test"


def _make_engine():
    return create_async_engine(
        _test_db_url,
        echo=False,
        pool_pre_ping=True,
    )


# ---------------------------------------------------------------------------
# Session-scoped: create / drop all tables once per test session
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture(scope="session", loop_scope="session")
async def test_engine():
    """Create a session-scoped engine tied to the session event loop."""
    engine = _make_engine()
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture(scope="session", loop_scope="session")
async def setup_test_db(test_engine):
    """Create all tables at the start of the session and drop them at the end."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


# ---------------------------------------------------------------------------
# Per-test: transactional rollback for isolation
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def db_session(test_engine, setup_test_db) -> AsyncGenerator[AsyncSession, None]:
    """Yield an async session wrapped in a transaction that always rolls back."""
    async with test_engine.connect() as connection:
        transaction = await connection.begin()
        session = AsyncSession(bind=connection, expire_on_commit=False)

        try:
            yield session
        finally:
            await session.close()
            await transaction.rollback()


@pytest_asyncio.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Provide an httpx AsyncClient wired to use the test DB session."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Convenience fixtures: users, tokens, property
# ---------------------------------------------------------------------------


async def make_user(
    db_session: AsyncSession,
    first_name: str,
    last_name: str,
    phone: str | None = None,
    is_active: bool = True,
) -> User:
    """Insert a user with a unique email."""
    unique = uuid.uuid4().hex[:8]
    user = User(
        email=f"{first_name.lower()}-{unique}@test.com",
        first_name=first_name,
        last_name=last_name,
        phone=phone,
        is_active=is_active,
    )
    db_session.add(user)
    await db_session.flush()
    await db_session.refresh(user)
    return user


def bearer(user: User) -> dict[str, str]:
    """Authorization headers for ``user``."""
    token = create_access_token(user.id)
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def owner(db_session: AsyncSession) -> User:
    return await make_user(db_session, "Olivia", "Owner", phone="0700000001")


@pytest_asyncio.fixture
async def requester(db_session: AsyncSession) -> User:
    return await make_user(db_session, "Rita", "Requester", phone="+254 722 000 111")


@pytest_asyncio.fixture
async def outsider(db_session: AsyncSession) -> User:
    return await make_user(db_session, "Oscar", "Outsider")


@pytest_asyncio.fixture
async def owner_headers(owner: User) -> dict[str, str]:
    return bearer(owner)


@pytest_asyncio.fixture
async def requester_headers(requester: User) -> dict[str, str]:
    return bearer(requester)


@pytest_asyncio.fixture
async def outsider_headers(outsider: User) -> dict[str, str]:
    return bearer(outsider)


@pytest_asyncio.fixture
async def test_property(db_session: AsyncSession, owner: User) -> Property:
    """A property owned by ``owner``, inserted directly via the ORM."""
    prop = Property(
        owner_id=owner.id,
        title="Seaside Villa",
        location="Diani, Kwale",
        price=Decimal("120000"),
        images=["https://img.test/seaside-1.jpg"],
    )
    db_session.add(prop)
    await db_session.flush()
    await db_session.refresh(prop)
    return prop
