"""
Database session management.

Provides the async SQLAlchemy engine, a session factory, the per-request
``get_db`` dependency and schema creation for startup.
"""

import logging
from collections.abc import AsyncGenerator

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from app.core.config import settings
from app.core.resilience import retry_with_backoff
from app.db.base import metadata

logger = logging.getLogger(__name__)

# ── Engine creation (PostgreSQL or SQLite) ──
if settings.USE_SQLITE:
    engine_options = {"connect_args": {"check_same_thread": False}}
    if not settings.SQLITE_PATH:
        # Every connection must share the SAME in-memory database.
        from sqlalchemy.pool import StaticPool

        engine_options["poolclass"] = StaticPool

    engine = create_async_engine(settings.DATABASE_URL, echo=settings.DEBUG, **engine_options)

    # SQLite only enforces FOREIGN KEY / ON DELETE CASCADE with this pragma.
    @event.listens_for(engine.sync_engine, "connect")
    def _set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

else:
    engine = create_async_engine(
        settings.DATABASE_URL,
        echo=settings.DEBUG,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        pool_recycle=settings.DB_POOL_RECYCLE,
        pool_pre_ping=True,
    )

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    # Attribute access after commit() must not trigger a (sync) lazy reload.
    expire_on_commit=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding one session per request."""
    async with AsyncSessionLocal() as session:
        yield session


@retry_with_backoff(max_retries=settings.DB_CONNECT_RETRIES, base_delay=2.0)
async def create_tables() -> None:
    """Create any missing tables, retrying while the database comes up."""
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)
    logger.info("Database tables ready")


async def ping_database() -> bool:
    """Return True if a trivial ``SELECT 1`` succeeds."""
    try:
        async with AsyncSessionLocal() as session:
            await session.execute(text("SELECT 1"))
    except Exception:
        logger.warning("Database ping failed", exc_info=True)
        return False
    return True
