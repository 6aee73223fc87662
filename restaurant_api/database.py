"""
Database Connection Module
Handles the database connection using the SQLAlchemy async engine.
"""

import logging
from typing import AsyncIterator

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase

from restaurant_api.core.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)

# Pool sizing only applies to server databases
engine_options = {"echo": settings.debug}
if not settings.is_sqlite:
    engine_options.update(pool_size=5, max_overflow=10, pool_pre_ping=True)


def enable_sqlite_savepoints(async_engine: AsyncEngine) -> None:
    """
    Hand transaction control on SQLite from the driver to SQLAlchemy.

    The sqlite driver defers BEGIN until the first write, so a SAVEPOINT opened
    before it becomes the outermost transaction and its RELEASE commits.
    """
    @event.listens_for(async_engine.sync_engine, "connect")
    def _disable_driver_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(async_engine.sync_engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")


engine = create_async_engine(settings.database_url, **engine_options)
if settings.is_sqlite:
    enable_sqlite_savepoints(engine)

# Session factory - creates new database sessions
async_session_maker = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False  # Objects remain accessible after commit
)


# Base class for all our models
class Base(DeclarativeBase):
    pass


async def get_db() -> AsyncIterator[AsyncSession]:
    """
    Dependency injection for FastAPI routes.
    Yields a database session and ensures cleanup.
    """
    async with async_session_maker() as session:
        try:
            yield session
        finally:
            await session.close()


async def init_db() -> None:
    """
    Create all tables in database.
    Called once at application startup.
    """
    # Register every model on Base.metadata
    import restaurant_api.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables created successfully")
