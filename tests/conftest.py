"""Shared test fixtures for CoachBook tests.

Uses an in-memory SQLite async engine so tests run without PostgreSQL.
"""

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from coachbook.core.config import Settings
from coachbook.core.database import Base, get_db
from coachbook.main import app
from coachbook.services.document_store import DocumentStore
from coachbook.services.scheduling import SchedulingService

# Import all models to ensure they're registered with Base.metadata
from coachbook.models.document import Document  # noqa: F401


TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
TENANT_ID = "tenant-1"


@pytest_asyncio.fixture
async def engine():
    """Fresh in-memory database per test."""
    engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def client(session_factory):
    """Async HTTP test client."""
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def db(session_factory):
    """Direct DB session for test setup/assertions."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def store(db):
    return DocumentStore(db)


@pytest.fixture
def config():
    return Settings(
        SERIES_HORIZON_WEEKS=52,
        ENFORCE_AVAILABILITY=True,
        ALLOW_MIDNIGHT_ROLLOVER=True,
    )


@pytest_asyncio.fixture
async def scheduler(store, config):
    return SchedulingService(store, TENANT_ID, config)
