"""Async SQLAlchemy engine, declarative base and session dependency."""

from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import declarative_base

from coachbook.core.config import settings

engine = create_async_engine(settings.DATABASE_URL, echo=False)
SessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

Base = declarative_base()


async def get_db():
    async with SessionLocal() as session:
        yield session


async def init_models():
    """Create tables that do not exist yet (local development without alembic)."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


def migration_options(url: str) -> dict:
    """Keyword arguments for ``alembic.context.configure`` on the given database URL.

    Column types are compared so the ``data`` column's JSON/JSONB variant is
    autogenerated per dialect. SQLite cannot ALTER columns in place, so its
    migrations run in batch mode.
    """
    return {
        "target_metadata": Base.metadata,
        "compare_type": True,
        "render_as_batch": url.startswith("sqlite"),
    }
