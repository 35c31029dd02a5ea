"""Async engine and session factory for the click ledger and catalog.

SQLite (aiosqlite) in development and tests, PostgreSQL (asyncpg) in
production. Every request runs in its own session from ``get_session``.
"""
from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from config.settings import settings


def async_url(url: str) -> str:
    """Plain ``postgresql://`` URLs are served through asyncpg."""
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return url


_db_url = async_url(settings.DATABASE_URL)

_engine_kwargs: dict = {"echo": False}

if not _db_url.startswith("sqlite"):
    _engine_kwargs.update({
        # Redirects hold a connection only for one insert, so a small pool
        # with burst overflow absorbs campaign traffic spikes
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": settings.DB_MAX_OVERFLOW,
        "pool_timeout": 30,
        "pool_recycle": 1800,
        "pool_pre_ping": True,
        # Analytics scans must not pin a connection past the request timeout
        "connect_args": {"command_timeout": settings.DB_COMMAND_TIMEOUT},
    })

engine = create_async_engine(_db_url, **_engine_kwargs)

async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_session() -> AsyncSession:
    """FastAPI dependency: one session per request."""
    async with async_session() as session:
        yield session
