"""Async SQLAlchemy engine, session factory and database client.

This module centralizes the database plumbing in the core layer so the
signing store, the migrations and the health endpoint share one engine.
"""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from app.core.config import settings
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


engine = create_async_engine(
    settings.database_url,
    pool_size=settings.database_pool_size,
    max_overflow=settings.database_max_overflow,
    echo=settings.database_echo,
    future=True,
    # Disable prepared statement cache for PgBouncer compatibility
    connect_args={"statement_cache_size": 0},
)

async_session_maker = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


class DatabaseClient:
    """PostgreSQL database client with connection and migration management."""

    def __init__(self, engine: AsyncEngine):
        """Initialize database client.

        Args:
            engine: SQLAlchemy async engine
        """
        self.engine = engine

    async def connect(self) -> bool:
        """Test database connection."""
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            LOGGER.info("Database connection successful")
            return True

        except Exception:
            LOGGER.error("Database connection failed", exc_info=True)
            raise

    async def disconnect(self) -> None:
        """Close database connection."""
        await self.engine.dispose()
        LOGGER.info("Database connection closed")

    async def create_tables(self) -> None:
        """Create all database tables from SQLAlchemy models.

        This will create tables that don't exist without dropping existing ones.
        """
        # Register the models on Base.metadata
        import app.database.models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        LOGGER.info("Database tables created/verified successfully")

    async def health_check(self) -> dict:
        """Check database health."""
        try:
            async with self.engine.connect() as conn:
                val = await conn.scalar(text("SELECT 1"))
            return {
                "status": "healthy",
                "connected": True,
                "database": "postgresql",
                "latency_test": "passed" if val == 1 else "failed",
            }

        except Exception as e:
            LOGGER.error("Database health check failed", extra={"error": str(e)})
            return {
                "status": "unhealthy",
                "connected": False,
                "error": str(e),
            }


# Global database client instance
db_client = DatabaseClient(engine)


async def init_database(auto_migrate: bool = True) -> None:
    """Initialize database connection and optionally create missing tables.

    Args:
        auto_migrate: Whether to run create_all on startup
    """
    LOGGER.info("Initializing database connection...")
    await db_client.connect()

    if auto_migrate:
        await db_client.create_tables()

    LOGGER.info("Database initialization completed")


async def close_database() -> None:
    """Close database connection."""
    try:
        LOGGER.info("Closing database connection...")
        await db_client.disconnect()
    except Exception as e:
        LOGGER.error(
            "Error closing database",
            exc_info=True,
            extra={"error": str(e)}
        )
