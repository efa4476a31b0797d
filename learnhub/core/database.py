"""
Async SQLAlchemy engines and session management.

Two pools:
  - request engine (DATABASE_URL): per-request sessions, caller-scoped queries
  - service engine (SERVICE_DATABASE_URL): elevated credential, used only by
    backend writes performed on a user's behalf (see service_session)
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from .config import get_settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """SQLAlchemy declarative base. All models inherit from this."""
    pass


# Lazy globals, initialized on first use
_engine = None
_session_factory = None
_service_engine = None
_service_session_factory = None


def _make_engine(url: str, label: str):
    settings = get_settings()

    # Ensure we're using asyncpg driver for PostgreSQL
    if url.startswith("postgresql://"):
        url = url.replace("postgresql://", "postgresql+asyncpg://", 1)

    # SQLite doesn't support pool_size / max_overflow
    is_sqlite = "sqlite" in url
    kwargs = {
        "echo": settings.debug,
    }
    if not is_sqlite:
        kwargs["pool_size"] = 10
        kwargs["max_overflow"] = 5
        kwargs["pool_pre_ping"] = True

    engine = create_async_engine(url, **kwargs)
    logger.info("%s engine created (%s)", label, "sqlite" if is_sqlite else "postgresql")
    return engine


def get_engine():
    global _engine
    if _engine is None:
        _engine = _make_engine(get_settings().database_url, "Database")
    return _engine


def get_service_engine():
    global _service_engine
    if _service_engine is None:
        settings = get_settings()
        url = settings.service_database_url or settings.database_url
        _service_engine = _make_engine(url, "Service database")
    return _service_engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(
            bind=get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
        )
    return _session_factory


def _get_service_session_factory() -> async_sessionmaker[AsyncSession]:
    global _service_session_factory
    if _service_session_factory is None:
        _service_session_factory = async_sessionmaker(
            bind=get_service_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
        )
    return _service_session_factory


async def get_db() -> AsyncIterator[AsyncSession]:
    """FastAPI dependency — yields a DB session per request."""
    factory = get_session_factory()
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def service_session() -> AsyncIterator[AsyncSession]:
    """Elevated session. Commits on success, rolls back on error."""
    factory = _get_service_session_factory()
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db():
    """Create all tables. Called on startup."""
    engine = get_engine()
    async with engine.begin() as conn:
        # Import all models so they register with Base.metadata
        from ..models import material  # noqa: F401
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables created/verified")


async def close_db():
    """Dispose engines. Called on shutdown."""
    global _engine, _session_factory, _service_engine, _service_session_factory
    if _engine:
        await _engine.dispose()
        _engine = None
        _session_factory = None
        logger.info("Database engine disposed")
    if _service_engine:
        await _service_engine.dispose()
        _service_engine = None
        _service_session_factory = None
        logger.info("Service database engine disposed")
