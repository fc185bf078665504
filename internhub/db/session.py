"""Database session and engine configuration."""

from typing import AsyncGenerator

from dotenv import load_dotenv
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from internhub.config import settings
from internhub.db.base import Base

# Load environment variables
load_dotenv()


def _engine_options() -> dict:
    """Pool options; SQLite drivers do not accept queue pool sizing."""
    options = {"echo": settings.DEBUG, "pool_pre_ping": True}
    if not settings.is_sqlite:
        options["pool_size"] = settings.DATABASE_POOL_SIZE
        options["max_overflow"] = settings.DATABASE_MAX_OVERFLOW
    return options


# Create async engine
engine = create_async_engine(settings.DATABASE_URL, **_engine_options())

# Create async session factory
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency to get database session."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def init_db():
    """Initialize database tables."""
    async with engine.begin() as conn:
        # Import all models to register them
        from internhub import models  # noqa: F401

        # Create tables (in production, use Alembic migrations)
        if settings.DEBUG or settings.is_sqlite:
            await conn.run_sync(Base.metadata.create_all)
