"""
Database base configuration and async session management
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from app.core.config import settings

# Base class for models (must be defined first)
Base = declarative_base()

# Engine and session factory - created lazily so Alembic can import Base
# without a database connection
_engine = None
_AsyncSessionLocal = None


def new_id() -> str:
    """Primary key generator for string UUID columns"""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _get_database_url():
    """Get database URL, converting to async format if needed"""
    database_url = settings.DATABASE_URL or "postgresql+asyncpg://localhost/privacylens"
    if database_url.startswith("postgresql://"):
        database_url = database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return database_url


def get_engine():
    """Get or create the async database engine (lazy initialization)"""
    global _engine
    if _engine is None:
        _engine = create_async_engine(
            _get_database_url(),
            pool_pre_ping=True,
            echo=settings.DEBUG,
            future=True
        )
    return _engine


def get_session_factory():
    """Get or create the async session factory (lazy initialization)"""
    global _AsyncSessionLocal
    if _AsyncSessionLocal is None:
        _AsyncSessionLocal = async_sessionmaker(
            get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
            autocommit=False,
            autoflush=False
        )
    return _AsyncSessionLocal


async def dispose_engine():
    """Close pooled connections on shutdown"""
    global _engine, _AsyncSessionLocal
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _AsyncSessionLocal = None


async def get_db():
    """
    Async dependency to get database session.
    Use this in FastAPI route dependencies.

    Example:
        @router.get("/clauses")
        async def list_clauses(db: AsyncSession = Depends(get_db)):
            result = await db.execute(select(ClauseLibrary))
            return result.scalars().all()
    """
    if not settings.DATABASE_URL:
        raise ValueError("DATABASE_URL not configured")

    session_factory = get_session_factory()
    async with session_factory() as session:
        try:
            yield session
        finally:
            await session.close()
