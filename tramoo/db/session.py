"""Async database session and engine."""
import logging
from collections.abc import AsyncGenerator
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from tramoo.core.config import settings
from tramoo.core.logging import mask_database_url

logger = logging.getLogger(__name__)


def _build_engine():
    engine_kwargs: dict[str, object] = {"echo": settings.DEBUG, "pool_pre_ping": True}
    if settings.DATABASE_URL.startswith("postgresql"):
        engine_kwargs.update(pool_size=10, max_overflow=20, connect_args={"timeout": 10})
    logger.info("Database URL: %s", mask_database_url(settings.DATABASE_URL))
    return create_async_engine(settings.DATABASE_URL, **engine_kwargs)


engine = _build_engine()


class Base(DeclarativeBase):
    pass


async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


def utcnow() -> datetime:
    """Naive UTC timestamp, matching the DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
