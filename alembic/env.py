"""Migrations for the CoachBook ``documents`` table.

The database URL comes from ``coachbook.core.config.settings`` (``DATABASE_URL``
in the environment or ``.env``), not from alembic.ini, so the API and its
migrations always target the same database.
"""

import asyncio
import sys
import os

# alembic/ sits next to the coachbook package
_project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from logging.config import fileConfig

from sqlalchemy import pool
from sqlalchemy.ext.asyncio import create_async_engine

from alembic import context

from coachbook.core.config import settings
from coachbook.core.database import migration_options
from coachbook.models.document import Document  # noqa: F401 registers the documents table

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

options = migration_options(settings.DATABASE_URL)


def run_migrations_offline() -> None:
    """Emit SQL for the configured dialect without connecting."""
    context.configure(url=settings.DATABASE_URL, literal_binds=True, **options)
    with context.begin_transaction():
        context.run_migrations()


def run_document_migrations(connection):
    context.configure(connection=connection, **options)
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    engine = create_async_engine(settings.DATABASE_URL, poolclass=pool.NullPool)
    try:
        async with engine.connect() as connection:
            await connection.run_sync(run_document_migrations)
    finally:
        await engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
