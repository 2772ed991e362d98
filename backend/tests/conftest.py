"""
BaseSites Backend: Test Configuration (conftest.py)
===================================================

Fixture Hierarchy (all function-scoped):
    ├── mock_db_session: AsyncMock session for pure unit tests
    ├── engine: per-test SQLite database (file in tmp_path), schema created
    │   └── session_factory / db_session: real AsyncSession on that engine
    │       └── make_profile / make_location: committed seed rows
    ├── identity: FakeIdentityGateway (token → user map, records deletions)
    └── test_client: httpx AsyncClient over ASGITransport with the database
        and identity gateway overridden

The SQLite engine runs in explicit-BEGIN mode with foreign keys on, so
ON DELETE CASCADE / SET NULL and SAVEPOINTs behave as on PostgreSQL.
"""

import os

# Must be set before anything imports basesites.config
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["API_KEY"] = "test-api-key"
os.environ["IDENTITY_URL"] = "http://identity.test"
os.environ["IDENTITY_ANON_KEY"] = "anon-test-key"
os.environ["IDENTITY_SERVICE_KEY"] = "service-test-key"
os.environ["RETRY_MAX_ATTEMPTS"] = "1"
os.environ["LOG_LEVEL"] = "WARNING"

from typing import Dict, List, Optional
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from unittest.mock import AsyncMock, MagicMock

from basesites.database import Base, get_db_session
from basesites.exceptions import UnauthorizedError, UpstreamError
from basesites.models.location import Location
from basesites.models.profile import Profile
from basesites.services.identity_service import IdentityGateway, IdentityUser

# Registers every table on Base.metadata
from basesites.models import logbook, saved_location, submission  # noqa: F401

API_KEY = "test-api-key"


# ══════════════════════════════════════════════════════════════════════════
# Identity provider double
# ══════════════════════════════════════════════════════════════════════════

class FakeIdentityGateway(IdentityGateway):
    """In-memory identity provider: tokens map to users; deletions are recorded."""

    def __init__(self):
        self.users: Dict[str, IdentityUser] = {}
        self.deleted: List[UUID] = []
        self.fail_deletes = False
        self.state = "closed"

    def issue(self, user_id: UUID, email: Optional[str] = None) -> str:
        token = f"token-{user_id}"
        self.users[token] = IdentityUser(id=user_id, email=email)
        return token

    async def verify_token(self, token: str) -> IdentityUser:
        user = self.users.get(token)
        if user is None:
            raise UnauthorizedError()
        return user

    async def delete_identity(self, user_id: UUID) -> None:
        if self.fail_deletes:
            raise UpstreamError("The account could not be deleted right now. Please try again later.")
        self.deleted.append(user_id)

    @property
    def circuit_state(self) -> str:
        return self.state


# ══════════════════════════════════════════════════════════════════════════
# Mock session (no database)
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def mock_db_session():
    """
    AsyncMock standing in for AsyncSession.

    `begin_nested()` returns an async context manager that does not
    swallow exceptions, so SQLAlchemyError side effects on `execute`
    propagate like they would from a real savepoint block.
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    session.begin_nested = MagicMock()
    session.begin_nested.return_value.__aenter__ = AsyncMock(return_value=None)
    session.begin_nested.return_value.__aexit__ = AsyncMock(return_value=False)
    return session


# ══════════════════════════════════════════════════════════════════════════
# Real database
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def engine(tmp_path):
    test_engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")

    @event.listens_for(test_engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # Let SQLAlchemy own BEGIN so SAVEPOINT works under pysqlite semantics
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(test_engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def make_profile(session_factory):
    """Insert and commit a profile; returns it."""

    async def _make(role: str = "USER", **fields) -> Profile:
        profile = Profile(
            id=fields.pop("id", uuid4()),
            email=fields.pop("email", None),
            role=role,
            **fields,
        )
        if profile.email is None:
            profile.email = f"{profile.id.hex[:8]}@example.com"
        async with session_factory() as session:
            session.add(profile)
            await session.commit()
        return profile

    return _make


@pytest.fixture
def make_location(session_factory):
    """Insert and commit a location; returns it."""

    async def _make(**fields) -> Location:
        values = {"name": "Perrine Bridge", "country": "USA", "latitude": 42.6, "longitude": -114.45}
        values.update(fields)
        location = Location(**values)
        async with session_factory() as session:
            session.add(location)
            await session.commit()
            await session.refresh(location)
        return location

    return _make


@pytest.fixture
def site_payload():
    return {
        "name": "Kjerag",
        "country": "Norway",
        "latitude": 59.03,
        "longitude": 6.59,
        "rock_drop_ft": 3200,
        "total_height_ft": 3280,
        "cliff_aspect": "N",
        "notes": "Exit point marked with a painted circle",
    }


# ══════════════════════════════════════════════════════════════════════════
# HTTP client
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def identity():
    return FakeIdentityGateway()


@pytest_asyncio.fixture
async def test_client(session_factory, identity):
    """
    AsyncClient against a fresh app. ASGITransport skips the lifespan, so
    the gateway is placed on app.state here.
    """
    from basesites.main import create_app
    from basesites.middleware.auth import get_identity_gateway

    app = create_app()
    app.state.identity_gateway = identity

    async def override_db_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = override_db_session
    app.dependency_overrides[get_identity_gateway] = lambda: identity

    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        headers={"x-api-key": API_KEY},
    ) as client:
        yield client


@pytest.fixture
def user_headers(make_profile, identity):
    """Creates a profile of the given role and returns (profile, headers)."""

    async def _make(role: str = "USER", **fields):
        profile = await make_profile(role=role, **fields)
        token = identity.issue(profile.id, profile.email)
        return profile, {"Authorization": f"Bearer {token}"}

    return _make
