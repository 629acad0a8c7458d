"""
Database Layer - Async SQLAlchemy engine + session factory.
"""
import os
import logging
from typing import Optional
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    create_async_engine,
    AsyncSession,
    async_sessionmaker,
)
from sqlalchemy.orm import DeclarativeBase

logger = logging.getLogger("opsboard-db")

# Dev mode: no DB configured, fall back to a local SQLite file
DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./opsboard.db"


def normalize_database_url(raw_url: str) -> str:
    """Point plain postgres URLs at the asyncpg driver."""
    url = raw_url or DEFAULT_DATABASE_URL
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql+asyncpg://", 1)
    elif url.startswith("postgresql://") and "+asyncpg" not in url:
        url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return url


class Base(DeclarativeBase):
    pass


def build_engine(url: Optional[str] = None, **kwargs) -> AsyncEngine:
    database_url = normalize_database_url(url if url is not None else os.getenv("DATABASE_URL", ""))
    if database_url.startswith("postgresql"):
        kwargs.setdefault("pool_size", 10)
        kwargs.setdefault("max_overflow", 20)
        kwargs.setdefault("pool_pre_ping", True)
        kwargs.setdefault("pool_timeout", 5)
    return create_async_engine(database_url, echo=False, **kwargs)


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker] = None


def get_engine() -> AsyncEngine:
    """Process-wide engine, created on first use so imports never connect."""
    global _engine
    if _engine is None:
        _engine = build_engine()
    return _engine


def get_session_factory() -> async_sessionmaker:
    global _session_factory
    if _session_factory is None:
        _session_factory = build_session_factory(get_engine())
    return _session_factory


async def init_db(engine: Optional[AsyncEngine] = None) -> None:
    """Create missing tables. Production deployments run the Alembic migration instead."""
    from opsboard.models import orm_models  # noqa: F401
    target = engine or get_engine()
    async with target.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables initialized.")


async def dispose_db() -> None:
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None

