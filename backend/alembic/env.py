"""
BaseSites Backend: Alembic Migration Environment
================================================

What:  Applies the revisions in `alembic/versions/` to the directory database.
How:   Online runs open a short-lived async engine on `settings.database_url`
       (NullPool, no application pool settings) and hand its connection to
       Alembic through `run_sync`. Offline runs render SQL for the same URL.
       alembic.ini carries logging config only; it has no URL.
Who:   `alembic upgrade head` from `backend/`.

Autogenerate compares against `Base.metadata`, so every model module must
be imported below before a revision is generated.
"""

import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import create_async_engine

from basesites.config import settings
from basesites.database import Base
from basesites.models import location, logbook, profile, saved_location, submission  # noqa: F401

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# Column type changes (e.g. String(50) → Text) show up in autogenerate diffs
MIGRATION_OPTIONS = {
    "target_metadata": Base.metadata,
    "compare_type": True,
}


def run_migrations_offline() -> None:
    context.configure(
        url=settings.database_url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **MIGRATION_OPTIONS,
    )
    with context.begin_transaction():
        context.run_migrations()


def _migrate(connection: Connection) -> None:
    context.configure(connection=connection, **MIGRATION_OPTIONS)
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    migration_engine = create_async_engine(settings.database_url, poolclass=pool.NullPool)
    try:
        async with migration_engine.connect() as connection:
            await connection.run_sync(_migrate)
    finally:
        await migration_engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
