"""Database connection and session management."""
import logging

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from clinicvoice.config.constants import LOGGER_NAME
from clinicvoice.db.models import Base

logger = logging.getLogger(LOGGER_NAME)


def normalize_database_url(database_url: str) -> str:
    """Convert sync driver URLs to their async equivalents."""
    if database_url.startswith("postgresql://"):
        return database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if database_url.startswith("postgres://"):
        return database_url.replace("postgres://", "postgresql+asyncpg://", 1)
    if database_url.startswith("sqlite://"):
        return database_url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    return database_url


def create_engine(database_url: str, **kwargs) -> AsyncEngine:
    """Create the async engine for a database URL."""
    return create_async_engine(
        normalize_database_url(database_url),
        echo=False,
        future=True,
        **kwargs,
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    """Create the session factory used by the SQL stores."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def init_db(engine: AsyncEngine) -> None:
    """Initialize database tables."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables initialized")
