"""Alembic environment for the LeadLines assistant metadata store.

The database URL comes from ``Settings`` (``LEADLINES_DATABASE_URL`` or
``.env``) so migrations always target the same store the app talks to.
``alembic.ini``'s ``sqlalchemy.url`` is only a fallback for ad-hoc runs with
``-x use_ini_url=true``.
"""

from __future__ import annotations

import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool
from sqlalchemy.ext.asyncio import create_async_engine

from leadlines_assistant.config import get_settings
from leadlines_assistant.db.models import Base

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata

# Kept apart from any other app's migrations sharing the database
VERSION_TABLE = "leadlines_alembic_version"


def _database_url() -> str:
    if context.get_x_argument(as_dictionary=True).get("use_ini_url") == "true":
        return config.get_main_option("sqlalchemy.url")
    return get_settings().database_url


def _configure(**kwargs) -> None:
    context.configure(
        target_metadata=target_metadata,
        version_table=VERSION_TABLE,
        compare_type=True,
        # SQLite cannot ALTER constraints in place
        render_as_batch=True,
        **kwargs,
    )


def run_migrations_offline() -> None:
    _configure(url=_database_url(), literal_binds=True, dialect_opts={"paramstyle": "named"})
    with context.begin_transaction():
        context.run_migrations()


def _run_sync(connection) -> None:
    _configure(connection=connection)
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    engine = create_async_engine(_database_url(), poolclass=pool.NullPool)
    try:
        async with engine.connect() as connection:
            await connection.run_sync(_run_sync)
    finally:
        await engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
