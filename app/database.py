"""Database Connection and Session Management"""

import re
import ssl

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base
from typing import Any, AsyncGenerator, Dict

from app.config import settings


def normalize_database_url(url: str) -> str:
    """Convert postgresql:// to postgresql+asyncpg:// for async support"""
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return url


def build_engine(url: str) -> AsyncEngine:
    """
    Create the async engine for a database URL.

    PostgreSQL gets the pooled configuration from settings; SQLite (used by the
    test suite) takes the dialect's default pool.
    """
    database_url = normalize_database_url(url)
    engine_kwargs: Dict[str, Any] = {"echo": settings.DEBUG, "future": True}

    if database_url.startswith("sqlite"):
        return create_async_engine(database_url, **engine_kwargs)

    # asyncpg uses ssl=SSLContext or True, not sslmode; strip sslmode from URL (asyncpg#737, SQLAlchemy#6275)
    connect_args: Dict[str, Any] = {}
    if re.search(r"[?&]sslmode=(require|required|verify-full)", database_url, re.I):
        _ssl_ctx = ssl.create_default_context()
        _ssl_ctx.check_hostname = False
        _ssl_ctx.verify_mode = ssl.CERT_NONE
        connect_args["ssl"] = _ssl_ctx
        database_url = re.sub(r"[?&]sslmode=[^&]+", "", database_url, flags=re.I)
        database_url = re.sub(r"\?&", "?", database_url).rstrip("?")
    if "?&" in database_url:
        database_url = database_url.replace("?&", "?")

    # pool_pre_ping detects stale connections between daily runs
    return create_async_engine(
        database_url,
        connect_args=connect_args,
        pool_pre_ping=True,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        pool_recycle=settings.DB_POOL_RECYCLE,
        **engine_kwargs,
    )


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker:
    """Session factory with the settings every job unit of work relies on"""
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


engine = build_engine(settings.DATABASE_URL)

AsyncSessionLocal = build_session_factory(engine)

# Base class for declarative models
Base = declarative_base()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency function to get database session.

    Yields:
        AsyncSession: Database session
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def close_db() -> None:
    """Close database connections"""
    await engine.dispose()
