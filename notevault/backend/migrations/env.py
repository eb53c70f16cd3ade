"""
Alembic Migration Environment.

Runs the notes schema migrations through the async engine. The URL comes
from config/settings/database.yaml plus DB_PASSWORD unless one is passed on
the command line:

    alembic upgrade head
    alembic -x db_url=sqlite+aiosqlite:///scratch.db upgrade head
    alembic upgrade head --sql
"""

import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import create_async_engine

from notevault.backend.core.config import get_database_url
from notevault.backend.models.base import Base
from notevault.backend.models.note import Note  # noqa: F401

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _database_url() -> str:
    """Command-line override first, then the configured PostgreSQL database."""
    return context.get_x_argument(as_dictionary=True).get("db_url") or get_database_url()


def _configure(**kwargs) -> None:
    url = kwargs.get("url")
    connection = kwargs.get("connection")
    dialect = connection.dialect.name if connection is not None else url.split(":", 1)[0]
    context.configure(
        target_metadata=target_metadata,
        compare_type=True,
        # SQLite cannot ALTER most columns in place
        render_as_batch=dialect.startswith("sqlite"),
        **kwargs,
    )


def run_migrations_offline() -> None:
    """Emit SQL for review without connecting."""
    _configure(
        url=_database_url(),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def _run_sync_migrations(connection: Connection) -> None:
    _configure(connection=connection)
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    """Connect with a throwaway async engine and apply migrations."""
    engine = create_async_engine(_database_url(), poolclass=pool.NullPool)
    try:
        async with engine.connect() as connection:
            await connection.run_sync(_run_sync_migrations)
    finally:
        await engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
