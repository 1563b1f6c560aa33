"""Async engine, request-scoped sessions and startup schema checks."""

from collections.abc import AsyncGenerator
from typing import Any, Dict

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from specflow.core.config import settings
from specflow.utils.logging import get_logger

LOGGER = get_logger(__name__)


class Base(DeclarativeBase):
    """Declarative base shared by every model."""

    pass


engine = create_async_engine(
    settings.database_url,
    pool_size=settings.database_pool_size,
    max_overflow=settings.database_max_overflow,
    echo=settings.database_echo,
    pool_pre_ping=True,
    # PgBouncer in transaction mode cannot keep prepared statements
    connect_args={"statement_cache_size": 0},
)

async_session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield one session per request.

    Yields:
        AsyncSession: Session closed when the request finishes
    """
    async with async_session_maker() as session:
        yield session


class DatabaseClient:
    """Connectivity probe and table bootstrap for the configured engine."""

    def __init__(self, engine: AsyncEngine):
        self.engine = engine

    async def ping(self) -> bool:
        async with self.engine.connect() as conn:
            return await conn.scalar(text("SELECT 1")) == 1

    async def create_tables(self) -> None:
        """Create missing tables; existing tables are left alone."""
        from specflow.database import models  # noqa: F401  registers tables on Base.metadata

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        LOGGER.info(f"Verified {len(Base.metadata.tables)} tables")

    async def health_check(self) -> Dict[str, Any]:
        try:
            ok = await self.ping()
        except (SQLAlchemyError, OSError) as e:
            LOGGER.error("Database health check failed", extra={"error": str(e)})
            return {"status": "unhealthy", "error": str(e)}
        return {"status": "healthy" if ok else "unhealthy"}

    async def dispose(self) -> None:
        await self.engine.dispose()


db_client = DatabaseClient(engine)


async def init_database(auto_migrate: bool = True) -> None:
    """Check connectivity at startup and optionally create missing tables.

    Args:
        auto_migrate: Run ``create_all`` after the connection check
    """
    await db_client.ping()
    LOGGER.info("Database connection established")

    if auto_migrate:
        await db_client.create_tables()


async def close_database() -> None:
    await db_client.dispose()
    LOGGER.info("Database connections closed")
