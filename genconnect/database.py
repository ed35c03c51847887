"""Database connection and session management using SQLAlchemy async ORM"""
import logging
from typing import AsyncGenerator, Optional
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base
from redis import asyncio as aioredis

from genconnect import config

logger = logging.getLogger(__name__)


def to_async_url(url: str) -> str:
    """Rewrite a sync driver URL into its async driver equivalent."""
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+asyncpg://", 1)
    if url.startswith("sqlite://"):
        return url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    return url


DATABASE_URL = to_async_url(config.DATABASE_URL)


def _engine_options(url: str) -> dict:
    # SQLite has a single writer; pool sizing only applies to Postgres
    if url.startswith("sqlite"):
        return {"echo": False}
    return {
        "echo": False,
        "pool_size": 20,
        "max_overflow": 30,
        "pool_recycle": 3600,
        "pool_pre_ping": True,
    }


engine = create_async_engine(DATABASE_URL, **_engine_options(DATABASE_URL))

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)

# Base class for declarative models
Base = declarative_base()

# Redis client (initialized on app startup when REDIS_URL is set)
redis_client: Optional[aioredis.Redis] = None


async def init_db() -> None:
    """Create all tables. Used at startup in development and by the demo loader."""
    # Import models so they register on Base.metadata
    import genconnect.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables ensured")


async def close_db() -> None:
    """Dispose the engine's connection pool"""
    await engine.dispose()
    logger.info("Database engine disposed")


async def init_redis() -> Optional[aioredis.Redis]:
    """Initialize Redis connection with async client, if configured"""
    global redis_client
    if not config.REDIS_URL:
        logger.info("REDIS_URL not set, chat fan-out stays in-process")
        return None
    redis_client = aioredis.from_url(
        config.REDIS_URL,
        encoding="utf-8",
        decode_responses=True,
        max_connections=50,
    )
    return redis_client


async def close_redis():
    """Close Redis connection"""
    global redis_client
    if redis_client:
        await redis_client.close()
        redis_client = None


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency for FastAPI endpoints to get database session.

    Services commit at their own transaction boundaries; anything left
    uncommitted when the request ends is committed here, and any error
    rolls the session back.
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
