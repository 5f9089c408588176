"""Shared pytest fixtures for all test suites."""

import os
from collections.abc import AsyncGenerator
from datetime import UTC, datetime

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.pool import NullPool, StaticPool

from backend.app.api.auth import get_rate_limit_middleware
from backend.app.api.dependencies import get_tenant_cache
from backend.app.config import Settings
from backend.app.db.context import RequestContext
from backend.app.db.engine import get_session
from backend.app.db.inmemory import InMemoryMembershipStore, InMemoryRateLimiter
from backend.app.db.models import Base, Organization, OrganizationMember
from backend.app.main import app
from backend.app.middleware.ratelimit import RateLimitMiddleware, create_default_bucket_map
from backend.app.models.organization import Role
from backend.app.tenancy.cache import InMemoryTenantCache
from backend.app.tenancy.directory import OrganizationDirectory
from tests.factories import ACME, ALICE, BOB, GLOBEX


@pytest.fixture
def settings() -> Settings:
    return Settings(database_url="sqlite+aiosqlite:///:memory:")


@pytest.fixture
def acme_ctx() -> RequestContext:
    return RequestContext(user_id=ALICE, organization_id=ACME, role=Role.owner)


@pytest.fixture
def membership_store() -> InMemoryMembershipStore:
    return InMemoryMembershipStore()


@pytest.fixture
def directory(membership_store: InMemoryMembershipStore, settings: Settings) -> OrganizationDirectory:
    return OrganizationDirectory(membership_store, settings)


@pytest_asyncio.fixture
async def sqlite_engine() -> AsyncGenerator[AsyncEngine, None]:
    """In-memory SQLite engine shared by every session of one test."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def sqlite_session(sqlite_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSession(sqlite_engine, expire_on_commit=False) as session:
        yield session


@pytest_asyncio.fixture
async def seeded_engine(sqlite_engine: AsyncEngine) -> AsyncEngine:
    """Two organizations: alice owns acme, bob owns globex, alice is a member of globex."""
    now = datetime.now(UTC)
    async with AsyncSession(sqlite_engine) as session:
        session.add_all(
            [
                Organization(id=ACME, name="Acme Corp", plan="basic"),
                Organization(id=GLOBEX, name="Globex Inc", plan="professional"),
            ]
        )
        await session.flush()
        session.add_all(
            [
                OrganizationMember(
                    user_id=ALICE,
                    organization_id=ACME,
                    role="owner",
                    invite_status="accepted",
                    is_default=True,
                    joined_at=now,
                ),
                OrganizationMember(
                    user_id=BOB,
                    organization_id=GLOBEX,
                    role="owner",
                    invite_status="accepted",
                    is_default=True,
                    joined_at=now,
                ),
                OrganizationMember(
                    user_id=ALICE,
                    organization_id=GLOBEX,
                    role="member",
                    invite_status="accepted",
                    joined_at=now,
                ),
            ]
        )
        await session.commit()
    return sqlite_engine


@pytest_asyncio.fixture
async def client(seeded_engine: AsyncEngine) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against the app, bound to the seeded SQLite database."""

    async def override_session() -> AsyncGenerator[AsyncSession, None]:
        async with AsyncSession(seeded_engine, expire_on_commit=False) as session:
            yield session

    cache = InMemoryTenantCache()
    rate_limits = RateLimitMiddleware(
        InMemoryRateLimiter(max_requests=1000), create_default_bucket_map()
    )

    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[get_tenant_cache] = lambda: cache
    app.dependency_overrides[get_rate_limit_middleware] = lambda: rate_limits

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def postgres_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create async engine for PostgreSQL integration tests.

    Requires DATABASE_URL to be set to a real PostgreSQL connection string.
    Tests using this fixture should be marked with @pytest.mark.postgres.
    """
    database_url = os.getenv("DATABASE_URL")
    if not database_url:
        pytest.skip("DATABASE_URL not set - skipping postgres test")

    if not database_url.startswith(("postgresql://", "postgresql+asyncpg://")):
        pytest.skip(f"DATABASE_URL is not PostgreSQL: {database_url}")

    if database_url.startswith("postgresql://"):
        database_url = database_url.replace("postgresql://", "postgresql+asyncpg://", 1)

    engine = create_async_engine(database_url, poolclass=NullPool, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()
