"""Async engine and per-step transactions for the metadata store."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from ..config import Settings

# Lifecycle steps hold a connection only for one short write, never across a
# provider call, so a small pool covers many concurrent conversations.
_POSTGRES_POOL = {"pool_size": 5, "max_overflow": 10, "pool_recycle": 1800}


def make_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """Create the metadata store engine (asyncpg on Postgres, aiosqlite locally)."""
    options: dict[str, Any] = {"echo": echo, "pool_pre_ping": True}
    if database_url.startswith("postgresql"):
        options.update(_POSTGRES_POOL)
    elif database_url.startswith("sqlite"):
        options["connect_args"] = {"check_same_thread": False}
    return create_async_engine(database_url, **options)


def engine_from_settings(settings: Settings) -> AsyncEngine:
    return make_engine(settings.database_url, echo=settings.database_echo)


def make_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@asynccontextmanager
async def transaction(session_factory: async_sessionmaker[AsyncSession]) -> AsyncIterator[AsyncSession]:
    """One lifecycle step: commit on clean exit, roll back on any error."""
    async with session_factory() as session:
        async with session.begin():
            yield session
